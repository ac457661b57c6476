"""Category and keyword matching strategies.

The scorer only talks to the CategoryMatcher protocol, so the substring
heuristic below can be swapped for a taxonomy or embedding lookup.
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol, runtime_checkable

from ..models.mapping import MappingType

DEFAULT_KEYWORDS: tuple[str, ...] = (
    "access",
    "data",
    "security",
    "authentication",
    "encryption",
    "monitoring",
)

# First matching rule wins; checked against the raw category name.
MAPPING_TYPE_RULES: list[tuple[tuple[str, ...], MappingType]] = [
    (("Access", "Authentication"), MappingType.PREVENTIVE),
    (("Monitoring", "Detection"), MappingType.DETECTIVE),
    (("Response", "Recovery"), MappingType.CORRECTIVE),
]


@runtime_checkable
class CategoryMatcher(Protocol):
    """Protocol for anything that relates risk and control vocabularies."""

    def categories_match(self, risk_category: str, control_category: str) -> bool: ...

    def shared_keywords(self, risk_text: str, control_text: str) -> list[str]: ...

    def mapping_type_for(self, control_category: str) -> MappingType: ...


class KeywordMatcher:
    """Case-insensitive substring matching over a fixed vocabulary."""

    def __init__(self, keywords: Optional[Iterable[str]] = None):
        source = DEFAULT_KEYWORDS if keywords is None else keywords
        self.keywords = tuple(k.lower() for k in source if k)

    def categories_match(self, risk_category: str, control_category: str) -> bool:
        risk_cat = (risk_category or "").strip().lower()
        control_cat = (control_category or "").strip().lower()
        if not risk_cat or not control_cat:
            return False
        return control_cat in risk_cat or risk_cat in control_cat

    def shared_keywords(self, risk_text: str, control_text: str) -> list[str]:
        risk_lower = (risk_text or "").lower()
        control_lower = (control_text or "").lower()
        return [
            word for word in self.keywords
            if word in risk_lower and word in control_lower
        ]

    def mapping_type_for(self, control_category: str) -> MappingType:
        name = control_category or ""
        for needles, mapping_type in MAPPING_TYPE_RULES:
            if any(needle in name for needle in needles):
                return mapping_type
        return MappingType.PREVENTIVE
