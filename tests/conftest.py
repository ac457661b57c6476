"""Shared fixtures for Riscura tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from riscura.models.control import Control
from riscura.models.risk import Risk

RISKS_YAML = """risks:
  - id: RISK-001
    title: Unauthorized access to customer records
    description: Shared admin accounts allow access to customer data without authentication logs.
    category: Access Control
    severity: Critical
    likelihood: High
    impact: Very High
    risk_score: 20
  - id: RISK-002
    title: Missed regulatory filing
    description: Quarterly filings are tracked in a spreadsheet.
    category: Compliance
    severity: Medium
  - id: RISK-003
    title: Vendor outage
    description: Single payment processor with no fallback.
    category: Vendor
    severity: Low
"""


@pytest.fixture
def make_risk() -> Callable[..., Risk]:
    """Factory for risks with neutral defaults (no keywords, no category)."""

    def _make(**overrides) -> Risk:
        fields = {
            "id": "RISK-001",
            "title": "Regulatory filing missed",
            "description": "",
            "category": "Compliance",
            "severity": "High",
        }
        fields.update(overrides)
        return Risk(**fields)

    return _make


@pytest.fixture
def make_control() -> Callable[..., Control]:
    """Factory for controls that score zero against the default risk."""

    def _make(**overrides) -> Control:
        fields = {
            "id": "CTRL-001",
            "title": "Filing calendar review",
            "description": "",
            "category": "General",
            "priority": "Low",
            "risk_mitigation_score": 0,
            "ai_confidence": 0,
            "implementation_complexity": "Moderate",
            "automation_potential": "None",
            "estimated_hours": 0,
        }
        fields.update(overrides)
        return Control(**fields)

    return _make


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    project = tmp_path / "grc-project"
    project.mkdir()
    return project


@pytest.fixture
def initialized_project(tmp_project: Path) -> Path:
    """A project with .riscura initialized and a small risk register."""
    rdir = tmp_project / ".riscura"
    (rdir / "reports").mkdir(parents=True)
    (rdir / "config.yaml").write_text(
        'project:\n  name: "grc-project"\n\nai:\n  provider: anthropic\n',
        encoding="utf-8",
    )
    (rdir / "risks.yaml").write_text(RISKS_YAML, encoding="utf-8")
    (rdir / "controls.yaml").write_text("controls: []\n", encoding="utf-8")
    (rdir / "mappings.yaml").write_text("mappings: []\n", encoding="utf-8")
    return tmp_project
