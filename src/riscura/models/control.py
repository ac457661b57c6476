"""Control catalog data models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_CATEGORY_COLOR = "#6B7280"

# Keyed by the first word of the category name, lowercased.
CATEGORY_COLORS: dict[str, str] = {
    "access": "#3B82F6",
    "data": "#10B981",
    "network": "#F59E0B",
    "incident": "#EF4444",
    "compliance": "#8B5CF6",
    "vendor": "#06B6D4",
}


def category_color(name: str) -> str:
    """Pick the display color for a category name."""
    words = name.lower().split()
    if not words:
        return DEFAULT_CATEGORY_COLOR
    return CATEGORY_COLORS.get(words[0], DEFAULT_CATEGORY_COLOR)


class Priority(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Complexity(str, Enum):
    SIMPLE = "Simple"
    MODERATE = "Moderate"
    COMPLEX = "Complex"


class AutomationPotential(str, Enum):
    FULL = "Full"
    PARTIAL = "Partial"
    NONE = "None"

    @classmethod
    def _missing_(cls, value: object) -> AutomationPotential | None:
        # Catalog sources spell "no automation" as "Manual" as well.
        text = str(value).strip().lower()
        if text in ("manual", "none", ""):
            return cls.NONE
        for member in cls:
            if member.value.lower() == text:
                return member
        return None


class ControlCategory(BaseModel):
    name: str
    color: str = DEFAULT_CATEGORY_COLOR


class Control(BaseModel):
    """A catalog-defined mitigation measure."""

    id: str
    title: str
    description: str = ""
    category: ControlCategory
    priority: Priority
    risk_mitigation_score: float = Field(default=0, ge=0, le=10)
    ai_confidence: float = Field(default=0, ge=0, le=1)
    implementation_complexity: Complexity = Complexity.MODERATE
    automation_potential: AutomationPotential = AutomationPotential.NONE
    estimated_hours: float = Field(default=0, ge=0)
    tags: set[str] = Field(default_factory=set)

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"name": value, "color": category_color(value)}
        return value

    @field_validator("automation_potential", mode="before")
    @classmethod
    def _coerce_automation(cls, value: Any) -> Any:
        if value is None:
            return AutomationPotential.NONE
        if isinstance(value, str):
            return AutomationPotential(value)
        return value

    @property
    def text(self) -> str:
        """Title and description, as used for keyword matching."""
        return f"{self.title} {self.description}"
