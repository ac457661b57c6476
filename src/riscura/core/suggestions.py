"""Control suggestion generation for a selected risk.

Ranking itself is a pure heuristic (see mapping.scorer). This module wraps
it in a single asynchronous, timeout-bounded call that can optionally ask
an AI provider to explain each suggestion, and a session object that keeps
only the result for the most recent risk selection.
"""

from __future__ import annotations

import asyncio
import re
import time
from typing import Optional

from rich.console import Console

from ..mapping.ledger import MappingLedger
from ..mapping.matcher import CategoryMatcher
from ..mapping.scorer import SUGGESTION_LIMIT, ScoringWeights, rank_controls
from ..models.control import Control
from ..models.mapping import ControlSuggestion, RiskControlMapping, SuggestionResult
from ..models.risk import Risk
from ..providers.base import AIProvider
from ..utils.sanitize import sanitize_error

console = Console()

DEFAULT_TIMEOUT_SECONDS = 30.0

RATIONALE_SYSTEM_PROMPT = (
    "You are a governance, risk and compliance analyst. For each candidate "
    "control, explain in one or two sentences how it reduces the given risk. "
    "Be specific to the risk; do not restate the control title."
)

_RATIONALE_PATTERN = re.compile(
    r"###\s+CONTROL:\s*(\S+)\s*\n+\s*\*\*Rationale:\*\*\s*(.+?)(?=\n\s*###|\Z)",
    re.DOTALL | re.IGNORECASE,
)


def build_rationale_prompt(risk: Risk, suggestions: list[ControlSuggestion]) -> str:
    """Build the user prompt listing the risk and its candidate controls."""
    parts = ["# RISK\n"]
    parts.append(f"**Title:** {risk.title}")
    parts.append(f"**Category:** {risk.category or 'Uncategorized'}")
    parts.append(f"**Severity:** {risk.severity.value}")
    parts.append(f"**Likelihood / Impact:** {risk.likelihood.value} / {risk.impact.value}")
    if risk.description:
        parts.append(f"**Description:** {risk.description}")
    parts.append("\n# CANDIDATE CONTROLS\n")

    for s in suggestions:
        control = s.control
        parts.append(f"## {control.id}: {control.title}")
        parts.append(f"**Category:** {control.category.name}")
        parts.append(f"**Suggested type:** {s.suggested_mapping_type.value}")
        if control.description:
            parts.append(f"**Description:** {control.description}")
        parts.append("")

    parts.append(
        "For every control above, answer in exactly this format:\n"
        "### CONTROL: <control id>\n"
        "**Rationale:** <one or two sentences>"
    )
    return "\n".join(parts)


def parse_rationales(content: str) -> dict[str, str]:
    """Parse provider output into {control_id: rationale}."""
    return {
        m.group(1).strip(): " ".join(m.group(2).split())
        for m in _RATIONALE_PATTERN.finditer(content or "")
    }


class SuggestionService:
    """Generates ranked control suggestions for one risk at a time."""

    def __init__(
        self,
        catalog: list[Control],
        ledger: MappingLedger,
        provider: Optional[AIProvider] = None,
        limit: int = SUGGESTION_LIMIT,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        matcher: Optional[CategoryMatcher] = None,
        weights: Optional[ScoringWeights] = None,
    ):
        self.catalog = catalog
        self.ledger = ledger
        self.provider = provider
        self.limit = limit
        self.timeout_seconds = timeout_seconds
        self.matcher = matcher
        self.weights = weights

    def rank(self, risk: Risk) -> list[ControlSuggestion]:
        """Heuristic ranking only, excluding controls already mapped to the risk."""
        return rank_controls(
            risk,
            self.catalog,
            excluded_ids=self.ledger.control_ids_for_risk(risk.id),
            limit=self.limit,
            matcher=self.matcher,
            weights=self.weights,
        )

    async def _explain(
        self, risk: Risk, suggestions: list[ControlSuggestion]
    ) -> tuple[list[ControlSuggestion], bool]:
        """Attach AI rationales. A provider failure keeps the heuristic reasoning."""
        result = await self.provider.complete_with_retry(
            system_prompt=RATIONALE_SYSTEM_PROMPT,
            user_prompt=build_rationale_prompt(risk, suggestions),
        )
        if not result.success:
            console.print(f"  [yellow]WARN[/yellow] AI rationale failed: {result.error}")
            console.print("  [dim]Proceeding with heuristic reasoning[/dim]")
            return suggestions, False

        rationales = parse_rationales(result.content or "")
        if not rationales:
            console.print("  [yellow]WARN[/yellow] AI response had no parseable rationales")
            return suggestions, False

        explained = [
            s.model_copy(update={"ai_rationale": rationales.get(s.control.id)})
            for s in suggestions
        ]
        return explained, True

    async def _analyze(self, risk: Risk) -> tuple[list[ControlSuggestion], bool]:
        suggestions = self.rank(risk)
        if self.provider is None or not suggestions:
            return suggestions, False
        return await self._explain(risk, suggestions)

    async def generate(self, risk: Risk) -> SuggestionResult:
        """Suggestions for a risk. Failures give an empty list plus an error notice."""
        start = time.time()
        try:
            suggestions, refined = await asyncio.wait_for(
                self._analyze(risk), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            message = f"Suggestion generation timed out after {self.timeout_seconds}s"
            console.print(f"  [red]ERROR[/red] {message}")
            return SuggestionResult(
                risk_id=risk.id, error=message, duration_seconds=round(time.time() - start, 2)
            )
        except Exception as e:
            message = sanitize_error(f"Suggestion generation failed: {e}")
            console.print(f"  [red]ERROR[/red] {message}")
            return SuggestionResult(
                risk_id=risk.id, error=message, duration_seconds=round(time.time() - start, 2)
            )

        return SuggestionResult(
            risk_id=risk.id,
            suggestions=suggestions,
            ai_refined=refined,
            duration_seconds=round(time.time() - start, 2),
        )


class SuggestionSession:
    """Tracks the selected risk and its in-flight suggestion request.

    Selecting a new risk cancels the previous request; a result that arrives
    for a superseded selection is dropped.
    """

    def __init__(self, service: SuggestionService):
        self.service = service
        self.selected_risk: Optional[Risk] = None
        self.result: Optional[SuggestionResult] = None
        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def is_analyzing(self) -> bool:
        return self._task is not None and not self._task.done()

    def _cancel(self) -> None:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, risk: Risk, generation: int) -> Optional[SuggestionResult]:
        result = await self.service.generate(risk)
        if generation != self._generation:
            return None
        self.result = result
        return result

    def select(self, risk: Risk) -> asyncio.Task:
        """Select a risk and start generating its suggestions. Needs a running loop."""
        self._cancel()
        self.selected_risk = risk
        self.result = None
        self._task = asyncio.create_task(self._run(risk, self._generation))
        return self._task

    def deselect(self) -> None:
        self._cancel()
        self.selected_risk = None
        self.result = None

    async def wait(self) -> Optional[SuggestionResult]:
        """Wait for the suggestions of whatever risk is selected when they settle."""
        while self._task is not None:
            task = self._task
            try:
                await task
            except asyncio.CancelledError:
                if task is self._task:
                    raise
                continue
            if task is self._task:
                break
        return self.result

    async def close(self) -> None:
        """Abandon any in-flight request and clear the selection."""
        task = self._task
        self.deselect()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def apply(self, suggestion: ControlSuggestion) -> Optional[RiskControlMapping]:
        """Accept a suggestion for the selected risk. No-op without a selection."""
        if self.selected_risk is None:
            return None
        mapping = self.service.ledger.apply_suggestion(self.selected_risk.id, suggestion)
        if self.result is not None:
            remaining = [
                s for s in self.result.suggestions if s.control.id != suggestion.control.id
            ]
            self.result = self.result.model_copy(update={"suggestions": remaining})
        return mapping
