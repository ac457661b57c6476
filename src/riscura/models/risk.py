"""Risk register data models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class Severity(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Rating(str, Enum):
    VERY_HIGH = "Very High"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    VERY_LOW = "Very Low"


class Risk(BaseModel):
    """An identified organizational risk. Read-only input to the scorer."""

    id: str
    title: str
    description: str = ""
    category: str = ""
    severity: Severity
    likelihood: Rating = Rating.MEDIUM
    impact: Rating = Rating.MEDIUM
    risk_score: float = 0
