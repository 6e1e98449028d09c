"""Tests for analysis response validation, repair and neutral baselines."""

import copy
import math
from typing import Any

import pytest

from ai_comments.core.models import FlagType, RiskCategory, Severity
from ai_comments.prompts.schema import (
    INCOMPLETE_SUMMARY,
    SchemaValidationError,
    default_breakdown,
    default_pr_score,
    fallback_analysis_result,
    parse_breakdown,
    parse_flag,
    repair_analysis_result,
    validate_analysis_result,
)

BREAKDOWN = {
    "codeConsistency": 85,
    "reuseScore": 80,
    "aiDetectionRisk": 20,
    "cascadeRisk": 25,
    "responsiveScore": 80,
    "semanticScore": 85,
    "intentAlignment": 90,
}


class TestParseBreakdown:
    """Test strict breakdown parsing."""

    def test_valid_breakdown(self) -> None:
        breakdown = parse_breakdown(BREAKDOWN)
        assert breakdown.code_consistency == 85
        assert breakdown.cascade_risk == 25
        assert breakdown.to_dict() == BREAKDOWN

    def test_missing_metric(self) -> None:
        """A missing metric is reported with its path."""
        data = {k: v for k, v in BREAKDOWN.items() if k != "cascadeRisk"}
        with pytest.raises(SchemaValidationError, match=r"breakdown\.cascadeRisk: required"):
            parse_breakdown(data)

    def test_null_counts_as_missing(self) -> None:
        """A null value is treated the same as an absent key."""
        with pytest.raises(SchemaValidationError, match="required field is missing"):
            parse_breakdown({**BREAKDOWN, "reuseScore": None})

    @pytest.mark.parametrize("bad_value", [True, "80", math.nan, math.inf])
    def test_rejects_non_numbers(self, bad_value: Any) -> None:
        """Booleans, strings and non-finite numbers are rejected."""
        with pytest.raises(SchemaValidationError, match="reuseScore"):
            parse_breakdown({**BREAKDOWN, "reuseScore": bad_value})

    def test_integer_beyond_float_range_rejected(self) -> None:
        with pytest.raises(SchemaValidationError, match=r"reuseScore: number must be finite"):
            parse_breakdown({**BREAKDOWN, "reuseScore": 10**400})

    @pytest.mark.parametrize(
        ("bad_value", "expected"),
        [(10**400, 100), (-(10**400), 0), (math.inf, 100), (-math.inf, 0)],
    )
    def test_unbounded_values_clamped(self, bad_value: Any, expected: float) -> None:
        """Lenient parsing treats oversized and infinite numbers as out of range."""
        breakdown = parse_breakdown({**BREAKDOWN, "reuseScore": bad_value}, clamp_numbers=True)
        assert breakdown.reuse_score == expected

    def test_nan_rejected_when_lenient(self) -> None:
        with pytest.raises(SchemaValidationError, match="number must be finite"):
            parse_breakdown({**BREAKDOWN, "reuseScore": math.nan}, clamp_numbers=True)

    def test_out_of_range_strict(self) -> None:
        with pytest.raises(SchemaValidationError, match=r"150 is outside \[0, 100\]"):
            parse_breakdown({**BREAKDOWN, "reuseScore": 150})

    def test_out_of_range_clamped(self) -> None:
        """Lenient parsing pulls numbers back into range."""
        breakdown = parse_breakdown(
            {**BREAKDOWN, "reuseScore": 150, "cascadeRisk": -5}, clamp_numbers=True
        )
        assert breakdown.reuse_score == 100
        assert breakdown.cascade_risk == 0

    def test_not_an_object(self) -> None:
        with pytest.raises(SchemaValidationError, match="expected object, got list"):
            parse_breakdown([1, 2, 3])


class TestParseFlag:
    """Test flag parsing."""

    def test_valid_flag(self) -> None:
        flag = parse_flag({"type": "warning", "message": "Check contrast", "confidence": 0.7})
        assert flag.type is FlagType.WARNING
        assert flag.details is None

    def test_unknown_flag_type(self) -> None:
        with pytest.raises(SchemaValidationError, match="'error' is not one of"):
            parse_flag({"type": "error", "message": "x", "confidence": 0.5})


class TestValidateAnalysisResult:
    """Test full-contract validation."""

    def test_valid_payload(self, valid_analysis_payload: dict[str, Any]) -> None:
        data = validate_analysis_result(valid_analysis_payload)

        assert data.affected_components[0].component_name == "HeroBanner"
        assert data.risks[0].category is RiskCategory.RESPONSIVE
        assert data.suggestions[0].code_example is None
        assert data.style_consistency.issues == ()
        assert data.pr_score.overall == 82
        assert data.pr_score.would_approve is True

    def test_round_trips_to_wire_shape(self, valid_analysis_payload: dict[str, Any]) -> None:
        """to_dict reproduces the validated payload."""
        assert validate_analysis_result(valid_analysis_payload).to_dict() == (
            valid_analysis_payload
        )

    def test_collects_errors_from_every_section(
        self, valid_analysis_payload: dict[str, Any]
    ) -> None:
        """Errors from independent sections are all reported."""
        payload = copy.deepcopy(valid_analysis_payload)
        payload["risks"][0]["severity"] = "catastrophic"
        payload["prScore"]["wouldApprove"] = "yes"
        del payload["suggestions"]

        with pytest.raises(SchemaValidationError) as exc_info:
            validate_analysis_result(payload)

        errors = exc_info.value.errors
        assert any(e.startswith("risks[0].severity") for e in errors)
        assert any(e.startswith("prScore.wouldApprove") for e in errors)
        assert any(e.startswith("result.suggestions") for e in errors)

    def test_rejects_non_object(self) -> None:
        with pytest.raises(SchemaValidationError, match="result: expected object"):
            validate_analysis_result(["not", "an", "object"])


class TestRepairAnalysisResult:
    """Test salvage of partially valid payloads."""

    def test_drops_malformed_items(self, valid_analysis_payload: dict[str, Any]) -> None:
        """Malformed array items are dropped and well-formed ones kept."""
        payload = copy.deepcopy(valid_analysis_payload)
        payload["risks"].append({"id": "broken"})

        data, errors = repair_analysis_result(payload)

        assert [risk.id for risk in data.risks] == ["risk-1"]
        assert any(e.startswith("risks[1]") for e in errors)

    def test_non_array_section_becomes_empty(
        self, valid_analysis_payload: dict[str, Any]
    ) -> None:
        payload = copy.deepcopy(valid_analysis_payload)
        payload["affectedComponents"] = "none"

        data, errors = repair_analysis_result(payload)

        assert data.affected_components == ()
        assert "affectedComponents: expected array, using empty list" in errors

    def test_clamps_out_of_range_scores(self, valid_analysis_payload: dict[str, Any]) -> None:
        payload = copy.deepcopy(valid_analysis_payload)
        payload["prScore"]["breakdown"]["cascadeRisk"] = 140
        payload["prScore"]["confidence"] = 1.5

        data, _ = repair_analysis_result(payload)

        assert data.pr_score.breakdown.cascade_risk == 100
        assert data.pr_score.confidence == 1

    def test_missing_pr_score_uses_baseline(
        self, valid_analysis_payload: dict[str, Any]
    ) -> None:
        payload = copy.deepcopy(valid_analysis_payload)
        del payload["prScore"]

        data, errors = repair_analysis_result(payload)

        assert data.pr_score == default_pr_score()
        assert any(e.startswith("prScore") for e in errors)
        assert data.style_consistency.overall_consistency == 85


class TestBaselines:
    """Test neutral baselines."""

    def test_default_breakdown(self) -> None:
        """Quality metrics default to 70 and risk metrics to 30."""
        breakdown = default_breakdown()
        assert breakdown.code_consistency == 70
        assert breakdown.ai_detection_risk == 30
        assert breakdown.cascade_risk == 30
        assert breakdown.intent_alignment == 70

    def test_default_pr_score(self) -> None:
        score = default_pr_score()
        assert score.overall == 70
        assert score.summary == INCOMPLETE_SUMMARY
        assert score.would_approve is True
        assert score.confidence == 0.5
        assert score.flags == ()

    def test_fallback_result_carries_parse_error_risk(self) -> None:
        data = fallback_analysis_result()

        assert data.affected_components == ()
        assert data.suggestions == ()
        assert len(data.risks) == 1
        risk = data.risks[0]
        assert risk.id == "parse-error"
        assert risk.severity is Severity.MEDIUM
        assert risk.category is RiskCategory.COMPATIBILITY
        assert risk.title == "Analysis Parse Error"
