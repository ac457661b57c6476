"""Riscura command line: rank controls for risks and track coverage."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click

from .. import __version__

MAPPING_TYPES = ["Preventive", "Detective", "Corrective", "Compensating"]
EFFECTIVENESS = ["High", "Medium", "Low"]
SEVERITIES = ["Critical", "High", "Medium", "Low"]

project_option = click.option(
    "--project", "-p", type=click.Path(exists=True), default=".", show_default=True,
    help="Project path",
)


@click.group()
@click.version_option(__version__, prog_name="riscura")
def riscura_cli() -> None:
    """Riscura - AI-assisted risk-to-control mapping."""


@riscura_cli.command()
@project_option
def init(project: str) -> None:
    """Initialize Riscura in a project."""
    from ..core.orchestrator import initialize_project

    initialize_project(Path(project))


@riscura_cli.command()
@project_option
@click.argument("risk_id")
@click.option("--dry-run", is_flag=True, help="Heuristic ranking only (no API calls)")
@click.option("--ai-provider", type=click.Choice(["anthropic", "openai", "ollama"]))
@click.option("--ai-model", type=str, help="Model override")
@click.option("--ai-endpoint", type=str, help="Endpoint override")
@click.option("--limit", "-n", type=click.IntRange(min=1), help="Number of suggestions")
@click.option("--timeout", type=float, help="Seconds before giving up")
@click.option("--format", "-f", "output_format", type=click.Choice(["table", "json"]), default="table")
def suggest(
    project: str,
    risk_id: str,
    dry_run: bool,
    ai_provider: str | None,
    ai_model: str | None,
    ai_endpoint: str | None,
    limit: int | None,
    timeout: float | None,
    output_format: str,
) -> None:
    """Suggest controls for a risk.

    Example: riscura suggest RISK-001 -p ./grc --ai-provider anthropic
    """
    from ..core.orchestrator import run_suggest

    exit_code = asyncio.run(
        run_suggest(
            project_path=Path(project),
            risk_id=risk_id,
            dry_run=dry_run,
            ai_provider=ai_provider,
            ai_model=ai_model,
            ai_endpoint=ai_endpoint,
            limit=limit,
            timeout=timeout,
            output_format=output_format,
        )
    )
    sys.exit(exit_code)


@riscura_cli.command()
@project_option
@click.argument("risk_id")
@click.argument("control_id")
def apply(project: str, risk_id: str, control_id: str) -> None:
    """Accept the suggested mapping of a control to a risk."""
    from ..core.orchestrator import run_apply

    sys.exit(run_apply(Path(project), risk_id, control_id))


@riscura_cli.command("map")
@project_option
@click.argument("risk_id")
@click.argument("control_id")
@click.option("--type", "-t", "mapping_type", type=click.Choice(MAPPING_TYPES), default="Preventive")
@click.option("--effectiveness", "-e", type=click.Choice(EFFECTIVENESS), required=True)
@click.option("--rationale", "-r", default="", help="Why the control addresses the risk")
def map_control(
    project: str,
    risk_id: str,
    control_id: str,
    mapping_type: str,
    effectiveness: str,
    rationale: str,
) -> None:
    """Map a control to a risk by hand.

    Example: riscura map RISK-001 probo-ac-001 -e High -r "MFA on all admin consoles"
    """
    from ..core.orchestrator import run_map

    sys.exit(run_map(Path(project), risk_id, control_id, mapping_type, effectiveness, rationale))


@riscura_cli.command()
@project_option
@click.argument("mapping_id")
def unmap(project: str, mapping_id: str) -> None:
    """Remove a mapping."""
    from ..core.orchestrator import run_unmap

    sys.exit(run_unmap(Path(project), mapping_id))


@riscura_cli.command()
@project_option
@click.option("--risk", "risk_id", type=str, help="Only this risk")
def coverage(project: str, risk_id: str | None) -> None:
    """Show control coverage per risk."""
    from ..core.orchestrator import show_coverage

    sys.exit(show_coverage(Path(project), risk_id))


@riscura_cli.command()
@project_option
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Report path")
def report(project: str, output: str | None) -> None:
    """Write the coverage report and mappings export."""
    from ..core.orchestrator import write_report

    sys.exit(write_report(Path(project), Path(output) if output else None))


@riscura_cli.command()
@project_option
@click.option("--search", "-s", default="", help="Match title or description")
@click.option("--severity", type=click.Choice(SEVERITIES))
@click.option("--category", type=str)
def risks(project: str, search: str, severity: str | None, category: str | None) -> None:
    """List risks in the register."""
    from ..core.orchestrator import list_risks

    sys.exit(list_risks(Path(project), search=search, severity=severity, category=category))


def main() -> None:
    riscura_cli()


if __name__ == "__main__":
    main()
