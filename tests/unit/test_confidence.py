"""Tests for confidence calibration."""

from dataclasses import replace

import pytest

from ai_comments.prompts.schema import fallback_analysis_result
from ai_comments.utils.confidence import (
    ConfidenceFactors,
    calculate_confidence,
    extract_average_confidence,
    get_confidence_label,
    should_warn_low_confidence,
)


class TestCalculateConfidence:
    """Test the weighted confidence combination."""

    def test_all_best_factors(self) -> None:
        factors = ConfidenceFactors(
            context_available=1.0,
            change_complexity=0.0,
            llm_confidence=1.0,
            schema_validation=1.0,
            token_usage_ratio=0.0,
        )
        assert calculate_confidence(factors) == 1.0

    def test_all_worst_factors(self) -> None:
        factors = ConfidenceFactors(
            context_available=0.0,
            change_complexity=1.0,
            llm_confidence=0.0,
            schema_validation=0.0,
            token_usage_ratio=1.0,
        )
        assert calculate_confidence(factors) == 0.0

    def test_token_ratio_omitted_renormalizes(self) -> None:
        """Without a token ratio the remaining weights are renormalized."""
        factors = ConfidenceFactors(
            context_available=1.0,
            change_complexity=0.0,
            llm_confidence=1.0,
            schema_validation=0.0,
        )
        # (0.2 + 0.15 + 0.35) / 0.95
        assert calculate_confidence(factors) == 0.74

    def test_weighted_mean(self) -> None:
        factors = ConfidenceFactors(
            context_available=0.5,
            change_complexity=0.5,
            llm_confidence=0.5,
            schema_validation=0.5,
            token_usage_ratio=0.5,
        )
        assert calculate_confidence(factors) == 0.5

    def test_factors_are_clamped(self) -> None:
        """Out-of-range factors are clamped and a ratio above 1 counts as 1."""
        factors = ConfidenceFactors(
            context_available=2.0,
            change_complexity=-1.0,
            llm_confidence=5.0,
            schema_validation=1.0,
            token_usage_ratio=3.0,
        )
        assert calculate_confidence(factors) == 0.95

    def test_rounded_to_two_decimals(self) -> None:
        factors = ConfidenceFactors(
            context_available=0.333,
            change_complexity=0.0,
            llm_confidence=0.777,
            schema_validation=1.0,
            token_usage_ratio=0.1,
        )
        result = calculate_confidence(factors)
        assert result == round(result, 2)


class TestExtractAverageConfidence:
    """Test averaging of per-field confidences."""

    def test_fallback_result(self) -> None:
        """Parse-error risk, style review and PR score each contribute 0.5."""
        assert extract_average_confidence(fallback_analysis_result()) == 0.5

    def test_mixed_confidences(self) -> None:
        data = fallback_analysis_result()
        data = replace(
            data,
            risks=(),
            style_consistency=replace(data.style_consistency, confidence=0.9),
            pr_score=replace(data.pr_score, confidence=0.7),
        )
        assert extract_average_confidence(data) == pytest.approx(0.8)


class TestLabels:
    """Test confidence labels and warnings."""

    @pytest.mark.parametrize(
        ("confidence", "label"),
        [
            (0.95, "Very High"),
            (0.9, "Very High"),
            (0.8, "High"),
            (0.75, "High"),
            (0.6, "Moderate"),
            (0.5, "Low"),
            (0.4, "Low"),
            (0.1, "Very Low"),
        ],
    )
    def test_labels(self, confidence: float, label: str) -> None:
        assert get_confidence_label(confidence) == label

    @pytest.mark.parametrize(("confidence", "warn"), [(0.59, True), (0.6, False), (0.9, False)])
    def test_low_confidence_warning(self, confidence: float, warn: bool) -> None:
        assert should_warn_low_confidence(confidence) is warn
