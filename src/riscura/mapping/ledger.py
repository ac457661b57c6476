"""Mapping ledger: accepted risk-control associations and coverage.

The ledger is the single owner of mapping state. Mutations are atomic
under a lock, are persisted through an optional store, and are rolled back
if the store rejects them.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, Optional, Protocol

from ..models.control import Control
from ..models.mapping import (
    COVERAGE_BY_EFFECTIVENESS,
    ControlSuggestion,
    Effectiveness,
    MappingType,
    RiskControlMapping,
)

MAX_COVERAGE = 100
DEFAULT_AI_CONFIDENCE = 0.85
DEFAULT_AI_RATIONALE = "AI-suggested mapping based on risk-control analysis"

MappingObserver = Callable[[list[RiskControlMapping]], None]


class MappingSink(Protocol):
    def save(self, mappings: list[RiskControlMapping]) -> None: ...


def new_mapping_id() -> str:
    return f"mapping_{uuid.uuid4().hex[:16]}"


class MappingLedger:
    """Ordered, observable list of RiskControlMapping entries."""

    def __init__(
        self,
        mappings: Optional[Iterable[RiskControlMapping]] = None,
        store: Optional[MappingSink] = None,
        unique_pairs: bool = True,
    ):
        self._mappings: list[RiskControlMapping] = list(mappings or [])
        self._observers: list[MappingObserver] = []
        self._lock = threading.RLock()
        self.store = store
        self.unique_pairs = unique_pairs

    def __len__(self) -> int:
        return len(self._mappings)

    def __iter__(self) -> Iterator[RiskControlMapping]:
        return iter(self.mappings)

    @property
    def mappings(self) -> list[RiskControlMapping]:
        with self._lock:
            return list(self._mappings)

    def subscribe(self, observer: MappingObserver) -> Callable[[], None]:
        """Register a callback for ledger changes. Returns an unsubscribe function."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.mappings
        for observer in list(self._observers):
            observer(snapshot)

    def _commit(self, updated: list[RiskControlMapping]) -> None:
        """Swap in a new mapping list, persisting first. Caller holds the lock."""
        previous = self._mappings
        self._mappings = updated
        if self.store is not None:
            try:
                self.store.save(list(updated))
            except Exception:
                self._mappings = previous
                raise

    # ── Mutations ──

    def add_mapping(
        self,
        risk_id: str,
        control_id: str,
        mapping_type: MappingType | str,
        effectiveness: Effectiveness | str,
        ai_generated: bool = False,
        confidence: float = 0.0,
        rationale: str = "",
    ) -> RiskControlMapping:
        """Record a new mapping and return it.

        Coverage is fixed by the effectiveness tier. When unique_pairs is set,
        an existing entry for the same risk and control is replaced.
        """
        effectiveness = Effectiveness(effectiveness)
        entry = RiskControlMapping(
            id=new_mapping_id(),
            risk_id=risk_id,
            control_id=control_id,
            mapping_type=MappingType(mapping_type),
            effectiveness=effectiveness,
            coverage=COVERAGE_BY_EFFECTIVENESS[effectiveness],
            ai_generated=ai_generated,
            ai_confidence=confidence,
            rationale=rationale,
            created_at=datetime.now(timezone.utc),
        )

        with self._lock:
            updated = list(self._mappings)
            if self.unique_pairs:
                updated = [
                    m for m in updated
                    if not (m.risk_id == risk_id and m.control_id == control_id)
                ]
            updated.append(entry)
            self._commit(updated)

        self._notify()
        return entry

    def apply_suggestion(
        self,
        risk_id: str,
        suggestion: ControlSuggestion,
        confidence: float = DEFAULT_AI_CONFIDENCE,
    ) -> RiskControlMapping:
        """Accept a ranked suggestion for a risk."""
        rationale = suggestion.ai_rationale or suggestion.reasoning or DEFAULT_AI_RATIONALE
        return self.add_mapping(
            risk_id,
            suggestion.control.id,
            suggestion.suggested_mapping_type,
            suggestion.estimated_effectiveness,
            ai_generated=True,
            confidence=confidence,
            rationale=rationale,
        )

    def remove_mapping(self, mapping_id: str) -> bool:
        """Remove a mapping by id. Unknown ids are ignored; returns True if removed."""
        with self._lock:
            updated = [m for m in self._mappings if m.id != mapping_id]
            if len(updated) == len(self._mappings):
                return False
            self._commit(updated)

        self._notify()
        return True

    # ── Queries ──

    def mappings_for_risk(self, risk_id: str) -> list[RiskControlMapping]:
        with self._lock:
            return [m for m in self._mappings if m.risk_id == risk_id]

    def find_mapping(self, risk_id: str, control_id: str) -> Optional[RiskControlMapping]:
        return next(
            (m for m in self.mappings_for_risk(risk_id) if m.control_id == control_id),
            None,
        )

    def control_ids_for_risk(self, risk_id: str) -> set[str]:
        return {m.control_id for m in self.mappings_for_risk(risk_id)}

    def controls_for_risk(self, risk_id: str, catalog: Iterable[Control]) -> list[Control]:
        """Distinct catalog controls mapped to a risk, in catalog order."""
        mapped = self.control_ids_for_risk(risk_id)
        seen: set[str] = set()
        result: list[Control] = []
        for control in catalog:
            if control.id in mapped and control.id not in seen:
                seen.add(control.id)
                result.append(control)
        return result

    def unmapped_controls_for_risk(self, risk_id: str, catalog: Iterable[Control]) -> list[Control]:
        mapped = self.control_ids_for_risk(risk_id)
        return [c for c in catalog if c.id not in mapped]

    def coverage_for_risk(self, risk_id: str) -> int:
        """Additive coverage of a risk, capped at 100. Zero with no mappings."""
        total = sum(m.coverage for m in self.mappings_for_risk(risk_id))
        return max(0, min(MAX_COVERAGE, total))

    def average_coverage(self, risk_ids: Iterable[str]) -> int:
        ids = list(risk_ids)
        if not ids:
            return 0
        return round(sum(self.coverage_for_risk(rid) for rid in ids) / len(ids))

    def estimated_hours_for_risk(self, risk_id: str, catalog: Iterable[Control]) -> float:
        return sum(c.estimated_hours for c in self.controls_for_risk(risk_id, catalog))
