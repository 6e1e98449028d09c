"""Batch metrics for analysis runs.

This module provides a summary of one ``analyze_stream`` run: how many changes
succeeded or failed, token consumption and score/confidence averages.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from ai_comments.core.events import (
    AnalysisStreamEvent,
    CompleteEvent,
    ErrorEvent,
    ResultEvent,
    StartEvent,
)


@dataclass(frozen=True, slots=True)
class BatchMetrics:
    """Metrics for a batch of change analyses.

    Attributes:
        total_changes: Number of changes submitted.
        completed_changes: Number of changes analyzed successfully.
        failed_changes: Number of changes that produced an error event.
        total_tokens: Total tokens consumed by successful analyses.
        avg_confidence: Average result confidence (0.0-1.0).
        approval_rate: Share of results whose PR score would be approved (0.0-1.0).
        avg_overall_score: Average overall PR score (0-100).

    Example:
        >>> metrics = BatchMetrics.from_events(analyzer.analyze_stream(changes, context))
        >>> f"{metrics.success_rate:.0%}"
        '67%'
    """

    total_changes: int
    completed_changes: int
    failed_changes: int
    total_tokens: int
    avg_confidence: float
    approval_rate: float
    avg_overall_score: float

    def __post_init__(self) -> None:
        """Validate metrics values."""
        if self.total_changes < 0:
            raise ValueError(f"total_changes must be >= 0, got {self.total_changes}")
        if self.completed_changes < 0:
            raise ValueError(f"completed_changes must be >= 0, got {self.completed_changes}")
        if self.failed_changes < 0:
            raise ValueError(f"failed_changes must be >= 0, got {self.failed_changes}")
        if self.completed_changes + self.failed_changes > self.total_changes:
            raise ValueError(
                f"completed_changes + failed_changes "
                f"({self.completed_changes + self.failed_changes}) "
                f"exceeds total_changes ({self.total_changes})"
            )
        if self.total_tokens < 0:
            raise ValueError(f"total_tokens must be >= 0, got {self.total_tokens}")
        if not 0.0 <= self.avg_confidence <= 1.0:
            raise ValueError(
                f"avg_confidence must be between 0.0 and 1.0, got {self.avg_confidence}"
            )
        if not 0.0 <= self.approval_rate <= 1.0:
            raise ValueError(
                f"approval_rate must be between 0.0 and 1.0, got {self.approval_rate}"
            )
        if not 0.0 <= self.avg_overall_score <= 100.0:
            raise ValueError(
                f"avg_overall_score must be between 0 and 100, got {self.avg_overall_score}"
            )

    @classmethod
    def from_events(cls, events: Iterable[AnalysisStreamEvent]) -> "BatchMetrics":
        """Aggregate metrics from a stream of analysis events.

        ``total_changes`` comes from the start or complete event; streams
        without either fall back to the number of result and error events.
        """
        total: int | None = None
        failed = 0
        results = []

        for event in events:
            if isinstance(event, StartEvent | CompleteEvent):
                total = event.total_changes
            elif isinstance(event, ResultEvent):
                results.append(event.result)
            elif isinstance(event, ErrorEvent):
                failed += 1

        completed = len(results)
        if total is None:
            total = completed + failed

        if not results:
            return cls(
                total_changes=total,
                completed_changes=0,
                failed_changes=failed,
                total_tokens=0,
                avg_confidence=0.0,
                approval_rate=0.0,
                avg_overall_score=0.0,
            )

        return cls(
            total_changes=total,
            completed_changes=completed,
            failed_changes=failed,
            total_tokens=sum(r.tokens_used for r in results),
            avg_confidence=sum(r.confidence for r in results) / completed,
            approval_rate=sum(1 for r in results if r.pr_score.would_approve) / completed,
            avg_overall_score=sum(r.pr_score.overall for r in results) / completed,
        )

    @property
    def success_rate(self) -> float:
        """Share of submitted changes analyzed successfully (0.0 when empty)."""
        if self.total_changes == 0:
            return 0.0
        return self.completed_changes / self.total_changes

    @property
    def avg_tokens_per_result(self) -> float:
        """Average tokens per successful analysis (0.0 when none succeeded)."""
        if self.completed_changes == 0:
            return 0.0
        return self.total_tokens / self.completed_changes
