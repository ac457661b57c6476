"""Risk-to-control relevance scoring and suggestion ranking.

Scores every candidate control against a risk with a weighted additive
heuristic, derives the mapping type, effectiveness and implementation
priority for each candidate, and returns the best matches.
"""

from __future__ import annotations

from typing import Iterable, Optional

from pydantic import BaseModel, Field
from rich.console import Console

from ..models.control import AutomationPotential, Complexity, Control, Priority
from ..models.mapping import ControlSuggestion, Effectiveness, MappingType
from ..models.risk import Risk, Severity
from .matcher import CategoryMatcher, KeywordMatcher

console = Console()

SUGGESTION_LIMIT = 5
MAX_SCORE = 100
HIGH_MITIGATION_THRESHOLD = 8
DEFAULT_REASONING = "General security enhancement"

SEVERITY_WEIGHT: dict[Severity, int] = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}

COMPLEXITY_WEIGHT: dict[Complexity, int] = {
    Complexity.SIMPLE: 3,
    Complexity.MODERATE: 2,
    Complexity.COMPLEX: 1,
}

# Control priorities that count as aligned with each risk severity.
ALIGNED_PRIORITIES: dict[Severity, set[Priority]] = {
    Severity.CRITICAL: {Priority.CRITICAL},
    Severity.HIGH: {Priority.CRITICAL, Priority.HIGH},
}

EFFECTIVENESS_THRESHOLDS: list[tuple[int, Effectiveness]] = [
    (70, Effectiveness.HIGH),
    (40, Effectiveness.MEDIUM),
]


class ScoringWeights(BaseModel):
    """Weights for each relevance rule. All must be non-negative."""

    category_match: float = Field(default=30, ge=0)
    severity_alignment: float = Field(default=25, ge=0)
    mitigation_multiplier: float = Field(default=2, ge=0)
    confidence_multiplier: float = Field(default=20, ge=0)
    keyword_bonus: float = Field(default=5, ge=0)

    @classmethod
    def from_config(cls, config: dict) -> ScoringWeights:
        weights = (config.get("scoring") or {}).get("weights") or {}
        return cls(**weights)


DEFAULT_WEIGHTS = ScoringWeights()
DEFAULT_MATCHER = KeywordMatcher()


def build_matcher(config: dict) -> KeywordMatcher:
    """Create the keyword matcher described by the scoring config."""
    keywords = (config.get("scoring") or {}).get("keywords")
    return KeywordMatcher(keywords)


def _clamp(value: float) -> int:
    return int(round(max(0, min(MAX_SCORE, value))))


def severity_aligned(risk: Risk, control: Control) -> bool:
    """True if the control priority is high enough for the risk severity."""
    return control.priority in ALIGNED_PRIORITIES.get(risk.severity, set())


def score(
    risk: Risk,
    control: Control,
    matcher: Optional[CategoryMatcher] = None,
    weights: Optional[ScoringWeights] = None,
) -> int:
    """Relevance of a control to a risk, as an integer in [0, 100]."""
    matcher = matcher or DEFAULT_MATCHER
    weights = weights or DEFAULT_WEIGHTS
    total = 0.0

    if matcher.categories_match(risk.category, control.category.name):
        total += weights.category_match

    if severity_aligned(risk, control):
        total += weights.severity_alignment

    total += control.risk_mitigation_score * weights.mitigation_multiplier
    total += control.ai_confidence * weights.confidence_multiplier

    risk_text = f"{risk.title} {risk.description}"
    shared = matcher.shared_keywords(risk_text, control.text)
    total += len(shared) * weights.keyword_bonus

    return _clamp(total)


def build_reasoning(
    risk: Risk,
    control: Control,
    matcher: Optional[CategoryMatcher] = None,
) -> str:
    """Human-readable explanation of which scoring rules fired."""
    matcher = matcher or DEFAULT_MATCHER
    reasons: list[str] = []

    if matcher.categories_match(risk.category, control.category.name):
        reasons.append(f"Directly addresses {risk.category.lower()} risks")
    if control.risk_mitigation_score >= HIGH_MITIGATION_THRESHOLD:
        reasons.append("High risk mitigation potential")
    if control.automation_potential == AutomationPotential.FULL:
        reasons.append("Can be fully automated")
    if control.priority.value == risk.severity.value:
        reasons.append("Priority level matches risk severity")

    return ", ".join(reasons) if reasons else DEFAULT_REASONING


def suggest_mapping_type(
    control: Control,
    matcher: Optional[CategoryMatcher] = None,
) -> MappingType:
    return (matcher or DEFAULT_MATCHER).mapping_type_for(control.category.name)


def estimate_effectiveness(relevance_score: int) -> Effectiveness:
    for threshold, tier in EFFECTIVENESS_THRESHOLDS:
        if relevance_score >= threshold:
            return tier
    return Effectiveness.LOW


def implementation_priority(risk: Risk, control: Control) -> int:
    """How urgently the control should be implemented for this risk, 0-100.

    Severe risks, effective controls and simple implementations rank first.
    """
    priority = SEVERITY_WEIGHT[risk.severity] * 25
    priority += control.risk_mitigation_score * 5
    priority += COMPLEXITY_WEIGHT[control.implementation_complexity] * 10
    return _clamp(priority)


def build_suggestion(
    risk: Risk,
    control: Control,
    matcher: Optional[CategoryMatcher] = None,
    weights: Optional[ScoringWeights] = None,
) -> ControlSuggestion:
    relevance = score(risk, control, matcher, weights)
    return ControlSuggestion(
        control=control,
        relevance_score=relevance,
        reasoning=build_reasoning(risk, control, matcher),
        suggested_mapping_type=suggest_mapping_type(control, matcher),
        estimated_effectiveness=estimate_effectiveness(relevance),
        implementation_priority=implementation_priority(risk, control),
    )


def rank_controls(
    risk: Risk,
    catalog: Iterable[Control],
    excluded_ids: Iterable[str] = (),
    limit: int = SUGGESTION_LIMIT,
    matcher: Optional[CategoryMatcher] = None,
    weights: Optional[ScoringWeights] = None,
) -> list[ControlSuggestion]:
    """Top candidate controls for a risk, best first.

    Controls in excluded_ids (already mapped to the risk) are never returned.
    Equal scores keep catalog order. A control that cannot be scored is
    skipped and the pass continues.
    """
    excluded = set(excluded_ids)
    suggestions: list[ControlSuggestion] = []

    for control in catalog:
        control_id = getattr(control, "id", None)
        if control_id in excluded:
            continue
        try:
            suggestions.append(build_suggestion(risk, control, matcher, weights))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            console.print(
                f"  [yellow]WARN[/yellow] Skipping control {control_id or '?'}: {e}"
            )

    suggestions.sort(key=lambda s: s.relevance_score, reverse=True)
    return suggestions[:max(limit, 0)]
