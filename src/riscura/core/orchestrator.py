"""Project workflows behind the riscura CLI.

Each run_* function loads the project workspace, performs one action and
returns a process exit code.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from .. import __version__
from ..mapping.catalog import filter_risks, find_by_id, get_catalog, get_risks
from ..mapping.ledger import MappingLedger
from ..mapping.scorer import ScoringWeights, build_matcher
from ..models.control import Control
from ..models.risk import Risk
from ..providers.base import AIProvider, get_ai_provider
from .config import get_effective_config, project_dir
from .report import export_mappings_json, generate_coverage_report, summarize_coverage
from .store import MappingStoreError, YamlMappingStore
from .suggestions import SuggestionService

console = Console()

EXIT_OK = 0
EXIT_BAD_INPUT = 11
EXIT_NOT_INITIALIZED = 12
EXIT_PROVIDER_ERROR = 13
EXIT_STORE_ERROR = 14


@dataclass
class Workspace:
    project_path: Path
    config: dict
    risks: list[Risk]
    catalog: list[Control]
    ledger: MappingLedger

    @property
    def project_name(self) -> str:
        return self.config.get("project", {}).get("name") or self.project_path.name

    def risk(self, risk_id: str) -> Optional[Risk]:
        return find_by_id(self.risks, risk_id)

    def control(self, control_id: str) -> Optional[Control]:
        return find_by_id(self.catalog, control_id)

    def suggestion_service(
        self,
        provider: Optional[AIProvider] = None,
        limit: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ) -> SuggestionService:
        settings = self.config.get("suggestions", {})
        return SuggestionService(
            self.catalog,
            self.ledger,
            provider=provider,
            limit=limit if limit is not None else settings.get("limit", 5),
            timeout_seconds=timeout_seconds or settings.get("timeout_seconds", 30),
            matcher=build_matcher(self.config),
            weights=ScoringWeights.from_config(self.config),
        )


def initialize_project(project_path: Path) -> None:
    """Initialize the .riscura directory structure in a project."""
    rdir = project_dir(project_path)
    (rdir / "reports").mkdir(parents=True, exist_ok=True)

    config_path = rdir / "config.yaml"
    if not config_path.exists():
        config_path.write_text(
            "# Riscura project configuration\n"
            "\n"
            f"riscura_version: \"{__version__}\"\n"
            "\n"
            "project:\n"
            f'  name: "{project_path.name}"\n'
            "\n"
            "suggestions:\n"
            "  limit: 5\n"
            "  ai_rationale: false\n"
            "\n"
            "ai:\n"
            "  provider: anthropic\n",
            encoding="utf-8",
        )

    templates = {
        "risks.yaml": "# Risk register\nrisks: []\n",
        "controls.yaml": "# Project controls (merged over the built-in library)\ncontrols: []\n",
        "mappings.yaml": "mappings: []\n",
    }
    for name, content in templates.items():
        path = rdir / name
        if not path.exists():
            path.write_text(content, encoding="utf-8")

    console.print(f"  [green]Initialized[/green] .riscura/ in {project_path.name}")


def load_workspace(project_path: Path, cli_overrides: Optional[dict] = None) -> Optional[Workspace]:
    """Load config, risks, catalog and ledger. None if the project is not initialized."""
    project_path = Path(project_path).resolve()
    if not project_dir(project_path).exists():
        console.print("  [red]ERROR[/red] Project not initialized. Run: riscura init -p <path>")
        return None

    config = get_effective_config(project_path, cli_overrides=cli_overrides)
    store = YamlMappingStore.for_project(project_path)
    try:
        existing = store.load()
    except MappingStoreError as e:
        console.print(f"  [red]ERROR[/red] {e}")
        return None

    ledger = MappingLedger(
        existing,
        store=store,
        unique_pairs=config.get("mapping", {}).get("unique_pairs", True),
    )
    return Workspace(
        project_path=project_path,
        config=config,
        risks=get_risks(config, project_path),
        catalog=get_catalog(config, project_path),
        ledger=ledger,
    )


def _unknown_risk(risk_id: str) -> int:
    console.print(f"  [red]ERROR[/red] Unknown risk: {risk_id}")
    return EXIT_BAD_INPUT


async def run_suggest(
    project_path: Path,
    risk_id: str,
    dry_run: bool = False,
    ai_provider: Optional[str] = None,
    ai_model: Optional[str] = None,
    ai_endpoint: Optional[str] = None,
    limit: Optional[int] = None,
    timeout: Optional[float] = None,
    output_format: str = "table",
) -> int:
    """Rank controls for a risk and print the suggestions."""
    cli_overrides: dict = {}
    if ai_provider:
        cli_overrides.setdefault("ai", {})["provider"] = ai_provider

    ws = load_workspace(project_path, cli_overrides or None)
    if ws is None:
        return EXIT_NOT_INITIALIZED

    risk = ws.risk(risk_id)
    if risk is None:
        return _unknown_risk(risk_id)

    provider = None
    use_ai = ws.config.get("suggestions", {}).get("ai_rationale", False) or ai_provider
    if use_ai and not dry_run:
        try:
            provider = get_ai_provider(
                ws.config,
                provider_override=ai_provider,
                model_override=ai_model,
                endpoint_override=ai_endpoint,
            )
            console.print(f"  [green]OK[/green] Provider: {provider.name}")
        except ValueError as e:
            console.print(f"  [red]ERROR[/red] Failed to initialize AI provider: {e}")
            return EXIT_PROVIDER_ERROR

    service = ws.suggestion_service(provider=provider, limit=limit, timeout_seconds=timeout)
    result = await service.generate(risk)

    if output_format == "json":
        console.print_json(json.dumps(result.model_dump(mode="json")))
        return EXIT_OK

    console.print()
    console.print(f"  [bold cyan]SUGGESTIONS[/bold cyan] for {risk.id}: [white]{risk.title}[/white]")
    console.print(
        f"  Severity: {risk.severity.value}  "
        f"Coverage: {ws.ledger.coverage_for_risk(risk.id)}%"
    )
    console.print()

    if result.error:
        console.print(f"  [red]ERROR[/red] {result.error}")
        return EXIT_OK

    if not result.suggestions:
        console.print(
            "  [dim]No additional control suggestions found. "
            "All relevant controls may already be mapped.[/dim]"
        )
        return EXIT_OK

    table = Table(show_lines=False)
    table.add_column("Control")
    table.add_column("Title")
    table.add_column("Match", justify="right")
    table.add_column("Type")
    table.add_column("Effectiveness")
    table.add_column("Priority", justify="right")
    table.add_column("Reasoning")
    for s in result.suggestions:
        table.add_row(
            s.control.id,
            s.control.title,
            f"{s.relevance_score}%",
            s.suggested_mapping_type.value,
            s.estimated_effectiveness.value,
            str(s.implementation_priority),
            s.ai_rationale or s.reasoning,
        )
    console.print(table)
    return EXIT_OK


def run_apply(project_path: Path, risk_id: str, control_id: str) -> int:
    """Accept the suggestion for one control against a risk."""
    ws = load_workspace(project_path)
    if ws is None:
        return EXIT_NOT_INITIALIZED

    risk = ws.risk(risk_id)
    if risk is None:
        return _unknown_risk(risk_id)

    service = ws.suggestion_service(limit=len(ws.catalog))
    suggestion = next((s for s in service.rank(risk) if s.control.id == control_id), None)
    if suggestion is None:
        console.print(
            f"  [red]ERROR[/red] {control_id} is not a candidate for {risk_id} "
            f"(unknown or already mapped)"
        )
        return EXIT_BAD_INPUT

    confidence = ws.config.get("mapping", {}).get("default_ai_confidence", 0.85)
    try:
        mapping = ws.ledger.apply_suggestion(risk.id, suggestion, confidence=confidence)
    except MappingStoreError as e:
        console.print(f"  [red]ERROR[/red] {e}")
        return EXIT_STORE_ERROR

    console.print(
        f"  [green]OK[/green] Mapped {control_id} to {risk_id} "
        f"({mapping.mapping_type.value}, {mapping.effectiveness.value}, +{mapping.coverage}%)"
    )
    console.print(f"  Coverage: {ws.ledger.coverage_for_risk(risk.id)}%")
    return EXIT_OK


def run_map(
    project_path: Path,
    risk_id: str,
    control_id: str,
    mapping_type: str,
    effectiveness: str,
    rationale: str = "",
) -> int:
    """Record a manual mapping."""
    ws = load_workspace(project_path)
    if ws is None:
        return EXIT_NOT_INITIALIZED

    if ws.risk(risk_id) is None:
        return _unknown_risk(risk_id)
    if ws.control(control_id) is None:
        console.print(f"  [red]ERROR[/red] Unknown control: {control_id}")
        return EXIT_BAD_INPUT

    try:
        mapping = ws.ledger.add_mapping(
            risk_id,
            control_id,
            mapping_type,
            effectiveness,
            ai_generated=False,
            confidence=1.0,
            rationale=rationale,
        )
    except MappingStoreError as e:
        console.print(f"  [red]ERROR[/red] {e}")
        return EXIT_STORE_ERROR

    console.print(f"  [green]OK[/green] {mapping.id}: {control_id} -> {risk_id} (+{mapping.coverage}%)")
    return EXIT_OK


def run_unmap(project_path: Path, mapping_id: str) -> int:
    ws = load_workspace(project_path)
    if ws is None:
        return EXIT_NOT_INITIALIZED

    try:
        removed = ws.ledger.remove_mapping(mapping_id)
    except MappingStoreError as e:
        console.print(f"  [red]ERROR[/red] {e}")
        return EXIT_STORE_ERROR

    if removed:
        console.print(f"  [green]OK[/green] Removed {mapping_id}")
    else:
        console.print(f"  [dim]No mapping with id {mapping_id}; nothing to remove[/dim]")
    return EXIT_OK


def show_coverage(project_path: Path, risk_id: Optional[str] = None) -> int:
    ws = load_workspace(project_path)
    if ws is None:
        return EXIT_NOT_INITIALIZED

    risks = ws.risks
    if risk_id:
        risk = ws.risk(risk_id)
        if risk is None:
            return _unknown_risk(risk_id)
        risks = [risk]

    summary = summarize_coverage(risks, ws.ledger, ws.catalog)

    table = Table()
    table.add_column("Risk")
    table.add_column("Title")
    table.add_column("Severity")
    table.add_column("Mappings", justify="right")
    table.add_column("Coverage", justify="right")
    for row in summary.by_risk:
        color = "green" if row.coverage >= 80 else "yellow" if row.coverage > 0 else "red"
        table.add_row(
            row.risk_id,
            row.title,
            row.severity,
            str(row.mapping_count),
            f"[{color}]{row.coverage}%[/{color}]",
        )
    console.print(table)
    console.print(
        f"  Average coverage: {summary.average_coverage}%  "
        f"Uncovered: {len(summary.uncovered_risks)}/{summary.total_risks}"
    )
    return EXIT_OK


def write_report(project_path: Path, output: Optional[Path] = None) -> int:
    ws = load_workspace(project_path)
    if ws is None:
        return EXIT_NOT_INITIALIZED

    reports_dir = project_dir(ws.project_path) / "reports"
    report_path = Path(output) if output else reports_dir / "COVERAGE-REPORT.md"
    report_path.parent.mkdir(parents=True, exist_ok=True)

    summary = summarize_coverage(ws.risks, ws.ledger, ws.catalog)
    report_path.write_text(
        generate_coverage_report(summary, project_name=ws.project_name),
        encoding="utf-8",
    )
    json_path = export_mappings_json(ws.ledger, report_path.parent / "mappings.json")

    console.print(f"  [green]OK[/green] Report: {report_path}")
    console.print(f"  [green]OK[/green] Mappings: {json_path}")
    return EXIT_OK


def list_risks(
    project_path: Path,
    search: str = "",
    severity: Optional[str] = None,
    category: Optional[str] = None,
) -> int:
    ws = load_workspace(project_path)
    if ws is None:
        return EXIT_NOT_INITIALIZED

    risks = filter_risks(ws.risks, search=search, severity=severity, category=category)
    console.print(f"  Risks ({len(risks)} of {len(ws.risks)})")
    for risk in risks:
        console.print(
            f"  {risk.id}  [white]{risk.title}[/white]  "
            f"[dim]{risk.category or '-'} / {risk.severity.value}[/dim]  "
            f"{ws.ledger.coverage_for_risk(risk.id)}%"
        )
    return EXIT_OK
