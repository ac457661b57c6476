"""Risk-control mapping, suggestion and coverage models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .control import Control


class MappingType(str, Enum):
    PREVENTIVE = "Preventive"
    DETECTIVE = "Detective"
    CORRECTIVE = "Corrective"
    COMPENSATING = "Compensating"


class Effectiveness(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


COVERAGE_BY_EFFECTIVENESS: dict[Effectiveness, int] = {
    Effectiveness.HIGH: 80,
    Effectiveness.MEDIUM: 50,
    Effectiveness.LOW: 30,
}


class RiskControlMapping(BaseModel):
    """An accepted association between a risk and a control."""

    id: str
    risk_id: str
    control_id: str
    mapping_type: MappingType
    effectiveness: Effectiveness
    coverage: int = Field(ge=0, le=100)
    ai_generated: bool = False
    ai_confidence: float = Field(default=0, ge=0, le=1)
    rationale: str = ""
    created_at: datetime


class ControlSuggestion(BaseModel):
    control: Control
    relevance_score: int = Field(ge=0, le=100)
    reasoning: str
    suggested_mapping_type: MappingType
    estimated_effectiveness: Effectiveness
    implementation_priority: int = Field(ge=0, le=100)
    ai_rationale: Optional[str] = None


class SuggestionResult(BaseModel):
    risk_id: str
    suggestions: list[ControlSuggestion] = []
    error: Optional[str] = None
    ai_refined: bool = False
    duration_seconds: float = 0


class RiskCoverage(BaseModel):
    risk_id: str
    title: str
    severity: str
    mapping_count: int = 0
    coverage: int = 0
    estimated_hours: float = 0


class CoverageSummary(BaseModel):
    total_risks: int = 0
    total_controls: int = 0
    active_mappings: int = 0
    average_coverage: int = 0
    uncovered_risks: list[str] = []
    by_risk: list[RiskCoverage] = []
