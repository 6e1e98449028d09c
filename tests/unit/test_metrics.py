"""Tests for BatchMetrics aggregation."""

import pytest
from conftest import FakeProvider, make_changes

from ai_comments.analyzer import BatchMetrics, ChangeAnalyzer
from ai_comments.core.events import CompleteEvent, ErrorEvent, StartEvent
from ai_comments.core.models import AnalysisContext
from ai_comments.llm.exceptions import LLMAPIError


def _metrics(**overrides: float) -> BatchMetrics:
    values = {
        "total_changes": 3,
        "completed_changes": 2,
        "failed_changes": 1,
        "total_tokens": 1000,
        "avg_confidence": 0.8,
        "approval_rate": 0.5,
        "avg_overall_score": 75.0,
    }
    values.update(overrides)
    return BatchMetrics(**values)


class TestBatchMetricsValidation:
    """Test BatchMetrics field validation."""

    def test_valid(self) -> None:
        metrics = _metrics()
        assert metrics.success_rate == pytest.approx(2 / 3)
        assert metrics.avg_tokens_per_result == 500

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"total_changes": -1}, "total_changes must be >= 0"),
            ({"failed_changes": 2}, "exceeds total_changes"),
            ({"total_tokens": -5}, "total_tokens must be >= 0"),
            ({"avg_confidence": 1.5}, "avg_confidence must be between"),
            ({"approval_rate": -0.1}, "approval_rate must be between"),
            ({"avg_overall_score": 101}, "avg_overall_score must be between"),
        ],
    )
    def test_invalid(self, overrides: dict[str, float], message: str) -> None:
        with pytest.raises(ValueError, match=message):
            _metrics(**overrides)

    def test_empty_rates_are_zero(self) -> None:
        metrics = _metrics(
            total_changes=0,
            completed_changes=0,
            failed_changes=0,
            total_tokens=0,
            avg_confidence=0.0,
            approval_rate=0.0,
            avg_overall_score=0.0,
        )
        assert metrics.success_rate == 0.0
        assert metrics.avg_tokens_per_result == 0.0


class TestFromEvents:
    """Test aggregation over analysis streams."""

    def test_mixed_batch(
        self, valid_analysis_json: str, analysis_context: AnalysisContext
    ) -> None:
        provider = FakeProvider(
            default=valid_analysis_json,
            by_marker={"`#item-3`": LLMAPIError("backend unavailable")},
            total_tokens=400,
        )
        events = ChangeAnalyzer(provider).analyze_stream(make_changes(3), analysis_context)
        metrics = BatchMetrics.from_events(events)

        assert metrics.total_changes == 3
        assert metrics.completed_changes == 2
        assert metrics.failed_changes == 1
        assert metrics.total_tokens == 800
        assert metrics.approval_rate == 1.0
        assert metrics.avg_overall_score == 82
        assert 0.0 < metrics.avg_confidence <= 1.0

    def test_all_failed(self) -> None:
        events = [
            StartEvent(total_changes=2),
            ErrorEvent(change_id="a", error="x", total_changes=2, completed_changes=0),
            ErrorEvent(change_id="b", error="x", total_changes=2, completed_changes=0),
            CompleteEvent(total_changes=2, completed_changes=0),
        ]
        metrics = BatchMetrics.from_events(events)

        assert metrics.failed_changes == 2
        assert metrics.completed_changes == 0
        assert metrics.avg_overall_score == 0.0

    def test_total_without_start_event(self) -> None:
        """Partial streams count the events they saw."""
        events = [ErrorEvent(change_id="a", error="x", total_changes=5, completed_changes=0)]
        assert BatchMetrics.from_events(events).total_changes == 1
