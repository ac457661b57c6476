"""Coverage summaries and the coverage report."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from .. import __version__
from ..mapping.ledger import MappingLedger
from ..models.control import Control
from ..models.mapping import CoverageSummary, RiskCoverage
from ..models.risk import Risk, Severity

SEVERITY_ORDER = {
    Severity.CRITICAL.value: 0,
    Severity.HIGH.value: 1,
    Severity.MEDIUM.value: 2,
    Severity.LOW.value: 3,
}


def summarize_coverage(
    risks: list[Risk],
    ledger: MappingLedger,
    catalog: list[Control],
) -> CoverageSummary:
    """Per-risk and portfolio coverage for a risk register."""
    rows = [
        RiskCoverage(
            risk_id=risk.id,
            title=risk.title,
            severity=risk.severity.value,
            mapping_count=len(ledger.mappings_for_risk(risk.id)),
            coverage=ledger.coverage_for_risk(risk.id),
            estimated_hours=ledger.estimated_hours_for_risk(risk.id, catalog),
        )
        for risk in risks
    ]

    return CoverageSummary(
        total_risks=len(risks),
        total_controls=len(catalog),
        active_mappings=len(ledger),
        average_coverage=ledger.average_coverage(r.id for r in risks),
        uncovered_risks=[row.risk_id for row in rows if row.coverage == 0],
        by_risk=rows,
    )


def generate_coverage_report(
    summary: CoverageSummary,
    project_name: str = "",
) -> str:
    """Render a CoverageSummary as markdown. Weakest coverage is listed first."""
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    lines: list[str] = []
    lines.append("# Risk Coverage Report")
    lines.append("")
    if project_name:
        lines.append(f"**Project:** {project_name}")
    lines.append(f"**Date:** {timestamp}")
    lines.append("")

    lines.append("## Summary")
    lines.append("")
    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    lines.append(f"| Risks | {summary.total_risks} |")
    lines.append(f"| Available controls | {summary.total_controls} |")
    lines.append(f"| Active mappings | {summary.active_mappings} |")
    lines.append(f"| Average coverage | {summary.average_coverage}% |")
    lines.append(f"| Uncovered risks | {len(summary.uncovered_risks)} |")
    lines.append("")

    if summary.by_risk:
        rows = sorted(
            summary.by_risk,
            key=lambda r: (r.coverage, SEVERITY_ORDER.get(r.severity, 4)),
        )
        lines.append("## Coverage by Risk")
        lines.append("")
        lines.append("| Risk | Title | Severity | Mappings | Coverage | Est. Hours |")
        lines.append("|------|-------|----------|----------|----------|------------|")
        for row in rows:
            lines.append(
                f"| {row.risk_id} | {row.title} | {row.severity} | {row.mapping_count} "
                f"| {row.coverage}% | {row.estimated_hours:g} |"
            )
        lines.append("")

    if summary.uncovered_risks:
        lines.append("## Uncovered Risks")
        lines.append("")
        for risk_id in summary.uncovered_risks:
            lines.append(f"- {risk_id}")
        lines.append("")

    lines.append("---")
    lines.append(f"*Generated by Riscura v{__version__} at {timestamp}*")

    return "\n".join(lines)


def export_mappings_json(ledger: MappingLedger, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"mappings": [m.model_dump(mode="json") for m in ledger.mappings]}
    output_path.write_text(
        json.dumps(payload, indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    return output_path
