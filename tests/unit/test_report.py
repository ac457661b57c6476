"""Tests for core/report.py."""

from __future__ import annotations

import json

from riscura.core.report import export_mappings_json, generate_coverage_report, summarize_coverage
from riscura.mapping.ledger import MappingLedger


def _register(make_risk):
    return [
        make_risk(id="R1", title="Account takeover", severity="Critical"),
        make_risk(id="R2", title="Late filing", severity="Medium"),
        make_risk(id="R3", title="Vendor outage", severity="Low"),
    ]


class TestSummarizeCoverage:
    def test_counts_and_average(self, make_risk, make_control):
        catalog = [make_control(id="C1", estimated_hours=16), make_control(id="C2", estimated_hours=4)]
        ledger = MappingLedger()
        ledger.add_mapping("R1", "C1", "Preventive", "High")
        ledger.add_mapping("R1", "C2", "Detective", "Low")
        ledger.add_mapping("R2", "C2", "Preventive", "Medium")

        summary = summarize_coverage(_register(make_risk), ledger, catalog)

        assert summary.total_risks == 3
        assert summary.total_controls == 2
        assert summary.active_mappings == 3
        # (100 + 50 + 0) / 3
        assert summary.average_coverage == 50
        assert summary.uncovered_risks == ["R3"]
        r1 = summary.by_risk[0]
        assert (r1.mapping_count, r1.coverage, r1.estimated_hours) == (2, 100, 20)

    def test_empty_register(self):
        summary = summarize_coverage([], MappingLedger(), [])
        assert summary.total_risks == 0
        assert summary.average_coverage == 0
        assert summary.by_risk == []


class TestGenerateCoverageReport:
    def test_sections(self, make_risk):
        ledger = MappingLedger()
        ledger.add_mapping("R2", "C1", "Preventive", "High")
        summary = summarize_coverage(_register(make_risk), ledger, [])

        report = generate_coverage_report(summary, project_name="acme-grc")

        assert report.startswith("# Risk Coverage Report")
        assert "**Project:** acme-grc" in report
        assert "| Average coverage | 27% |" in report
        assert "| Uncovered risks | 2 |" in report
        assert "## Uncovered Risks" in report
        assert "- R1" in report
        assert "Generated by Riscura v" in report

    def test_weakest_and_most_severe_first(self, make_risk):
        ledger = MappingLedger()
        ledger.add_mapping("R2", "C1", "Preventive", "High")
        summary = summarize_coverage(_register(make_risk), ledger, [])

        report = generate_coverage_report(summary)

        assert report.index("| R1 |") < report.index("| R3 |") < report.index("| R2 |")

    def test_fully_covered_has_no_uncovered_section(self, make_risk):
        ledger = MappingLedger()
        ledger.add_mapping("R1", "C1", "Preventive", "High")
        summary = summarize_coverage([make_risk(id="R1")], ledger, [])
        assert "## Uncovered Risks" not in generate_coverage_report(summary)


def test_export_mappings_json(tmp_path):
    ledger = MappingLedger()
    created = ledger.add_mapping("R1", "C1", "Corrective", "Medium", rationale="restore drill")

    path = export_mappings_json(ledger, tmp_path / "out" / "mappings.json")

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["mappings"][0]["id"] == created.id
    assert data["mappings"][0]["mapping_type"] == "Corrective"
    assert data["mappings"][0]["coverage"] == 50
