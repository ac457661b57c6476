"""Tests for mapping/scorer.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from riscura.mapping.matcher import KeywordMatcher
from riscura.mapping.scorer import (
    DEFAULT_REASONING,
    ScoringWeights,
    build_matcher,
    build_reasoning,
    build_suggestion,
    estimate_effectiveness,
    implementation_priority,
    rank_controls,
    score,
    severity_aligned,
    suggest_mapping_type,
)
from riscura.models.control import Control
from riscura.models.mapping import Effectiveness, MappingType


class TestScore:
    def test_all_rules_combine(self, make_risk, make_control):
        risk = make_risk(category="Compliance", severity="High")
        control = make_control(
            category="Compliance Monitoring",
            priority="High",
            risk_mitigation_score=9,
            ai_confidence=0.9,
        )
        # 30 category + 25 alignment + 18 mitigation + 18 confidence
        assert score(risk, control) == 91

    def test_keyword_bonus_only(self, make_risk, make_control):
        risk = make_risk(category="", severity="Low", title="Customer data encryption")
        control = make_control(title="Data encryption at rest")
        assert score(risk, control) == 10

    def test_zero_when_nothing_matches(self, make_risk, make_control):
        assert score(make_risk(), make_control()) == 0

    def test_clamped_to_100(self, make_risk, make_control):
        risk = make_risk(
            category="Access Control",
            severity="Critical",
            title="Data access without authentication",
        )
        control = make_control(
            category="Access Control",
            priority="Critical",
            risk_mitigation_score=10,
            ai_confidence=1.0,
            title="Authentication for data access",
        )
        assert score(risk, control) == 100

    def test_empty_risk_category_gets_no_category_points(self, make_risk, make_control):
        control = make_control(category="Compliance Monitoring")
        assert score(make_risk(category=""), control) == 0

    def test_custom_weights(self, make_risk, make_control):
        risk = make_risk(category="Compliance", severity="Low")
        control = make_control(category="Compliance", risk_mitigation_score=5)
        weights = ScoringWeights(category_match=10, mitigation_multiplier=1)
        assert score(risk, control, weights=weights) == 15

    def test_monotonic_in_mitigation(self, make_risk, make_control):
        risk = make_risk()
        scores = [
            score(risk, make_control(risk_mitigation_score=m)) for m in range(0, 11)
        ]
        assert scores == sorted(scores)

    def test_monotonic_in_confidence(self, make_risk, make_control):
        risk = make_risk()
        scores = [
            score(risk, make_control(ai_confidence=c / 10)) for c in range(0, 11)
        ]
        assert scores == sorted(scores)


class TestSeverityAlignment:
    @pytest.mark.parametrize(
        "severity,priority,expected",
        [
            ("Critical", "Critical", True),
            ("Critical", "High", False),
            ("High", "Critical", True),
            ("High", "High", True),
            ("High", "Medium", False),
            ("Medium", "Medium", False),
            ("Low", "Critical", False),
        ],
    )
    def test_alignment_table(self, make_risk, make_control, severity, priority, expected):
        assert severity_aligned(make_risk(severity=severity), make_control(priority=priority)) is expected


class TestReasoning:
    def test_default_when_nothing_fires(self, make_risk, make_control):
        assert build_reasoning(make_risk(category=""), make_control()) == DEFAULT_REASONING

    def test_all_reasons_in_order(self, make_risk, make_control):
        risk = make_risk(category="Access Control", severity="High")
        control = make_control(
            category="Access Control",
            priority="High",
            risk_mitigation_score=8,
            automation_potential="Full",
        )
        assert build_reasoning(risk, control) == (
            "Directly addresses access control risks, "
            "High risk mitigation potential, "
            "Can be fully automated, "
            "Priority level matches risk severity"
        )

    def test_mitigation_below_threshold_not_mentioned(self, make_risk, make_control):
        text = build_reasoning(make_risk(category=""), make_control(risk_mitigation_score=7))
        assert text == DEFAULT_REASONING


class TestMappingType:
    def test_uses_control_category(self, make_control):
        assert suggest_mapping_type(make_control(category="Incident Response")) == MappingType.CORRECTIVE

    def test_uses_given_matcher(self, make_control):
        class AlwaysDetective(KeywordMatcher):
            def mapping_type_for(self, control_category):
                return MappingType.DETECTIVE

        control = make_control(category="Access Control")
        assert suggest_mapping_type(control, AlwaysDetective()) == MappingType.DETECTIVE


class TestEffectiveness:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (100, Effectiveness.HIGH),
            (70, Effectiveness.HIGH),
            (69, Effectiveness.MEDIUM),
            (40, Effectiveness.MEDIUM),
            (39, Effectiveness.LOW),
            (0, Effectiveness.LOW),
        ],
    )
    def test_thresholds(self, value, expected):
        assert estimate_effectiveness(value) == expected


class TestImplementationPriority:
    @pytest.mark.parametrize(
        "severity,mitigation,complexity,expected",
        [
            ("Critical", 10, "Simple", 100),
            ("Low", 0, "Complex", 35),
            ("Medium", 6, "Moderate", 100),
            ("High", 2, "Complex", 95),
        ],
    )
    def test_formula(self, make_risk, make_control, severity, mitigation, complexity, expected):
        risk = make_risk(severity=severity)
        control = make_control(risk_mitigation_score=mitigation, implementation_complexity=complexity)
        assert implementation_priority(risk, control) == expected


class TestBuildSuggestion:
    def test_fields_are_consistent(self, make_risk, make_control):
        risk = make_risk(category="Compliance", severity="High")
        control = make_control(
            category="Compliance Monitoring",
            priority="High",
            risk_mitigation_score=9,
            ai_confidence=0.9,
        )
        suggestion = build_suggestion(risk, control)
        assert suggestion.control.id == control.id
        assert suggestion.relevance_score == 91
        assert suggestion.estimated_effectiveness == Effectiveness.HIGH
        assert suggestion.suggested_mapping_type == MappingType.DETECTIVE
        assert suggestion.ai_rationale is None


class TestRankControls:
    def test_best_first(self, make_risk, make_control):
        catalog = [
            make_control(id="low", risk_mitigation_score=1),
            make_control(id="high", risk_mitigation_score=9),
            make_control(id="mid", risk_mitigation_score=5),
        ]
        ranked = rank_controls(make_risk(), catalog)
        assert [s.control.id for s in ranked] == ["high", "mid", "low"]

    def test_ties_keep_catalog_order(self, make_risk, make_control):
        catalog = [make_control(id=f"c{i}", risk_mitigation_score=3) for i in range(4)]
        ranked = rank_controls(make_risk(), catalog)
        assert [s.control.id for s in ranked] == ["c0", "c1", "c2", "c3"]

    def test_limited_to_five_by_default(self, make_risk, make_control):
        catalog = [make_control(id=f"c{i}", risk_mitigation_score=i) for i in range(8)]
        ranked = rank_controls(make_risk(), catalog)
        assert len(ranked) == 5
        assert ranked[0].control.id == "c7"

    def test_custom_limit(self, make_risk, make_control):
        catalog = [make_control(id=f"c{i}") for i in range(4)]
        assert len(rank_controls(make_risk(), catalog, limit=2)) == 2

    def test_excluded_ids_never_returned(self, make_risk, make_control):
        catalog = [
            make_control(id="mapped", risk_mitigation_score=10),
            make_control(id="free", risk_mitigation_score=1),
        ]
        ranked = rank_controls(make_risk(), catalog, excluded_ids={"mapped"})
        assert [s.control.id for s in ranked] == ["free"]

    def test_empty_catalog(self, make_risk):
        assert rank_controls(make_risk(), []) == []

    def test_malformed_control_is_skipped(self, make_risk, make_control):
        broken = Control.model_construct(id="BAD")
        catalog = [broken, make_control(id="good")]
        ranked = rank_controls(make_risk(), catalog)
        assert [s.control.id for s in ranked] == ["good"]

    def test_scores_are_within_bounds(self, make_risk, make_control):
        catalog = [
            make_control(id=f"c{m}", risk_mitigation_score=m, ai_confidence=m / 10)
            for m in range(11)
        ]
        for s in rank_controls(make_risk(), catalog, limit=20):
            assert 0 <= s.relevance_score <= 100
            assert 0 <= s.implementation_priority <= 100


class TestScoringWeights:
    def test_defaults(self):
        weights = ScoringWeights()
        assert weights.category_match == 30
        assert weights.keyword_bonus == 5

    def test_from_config(self):
        weights = ScoringWeights.from_config({"scoring": {"weights": {"keyword_bonus": 7}}})
        assert weights.keyword_bonus == 7
        assert weights.severity_alignment == 25

    def test_from_config_missing_section(self):
        assert ScoringWeights.from_config({}) == ScoringWeights()

    def test_negative_weight_rejected(self):
        with pytest.raises(ValidationError):
            ScoringWeights(category_match=-1)

    def test_build_matcher_uses_configured_keywords(self):
        matcher = build_matcher({"scoring": {"keywords": ["phishing"]}})
        assert matcher.keywords == ("phishing",)

    def test_build_matcher_defaults(self):
        assert "encryption" in build_matcher({}).keywords
