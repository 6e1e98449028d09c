"""Stream events emitted by batch analysis.

``AnalysisStreamEvent`` is a closed union of five event records. Consumers
dispatch on the concrete class (or on the ``type`` key of ``to_dict()`` when
the event has crossed a wire boundary).

Example:
    >>> for event in analyzer.analyze_stream(changes, context):
    ...     if isinstance(event, ResultEvent):
    ...         print(event.result.pr_score.overall)
    ...     elif isinstance(event, ErrorEvent):
    ...         print(f"{event.change_id} failed: {event.error}")
"""

from dataclasses import dataclass
from typing import ClassVar, TypeAlias

from ai_comments.core.models import AnalysisResult, JSONDict


@dataclass(frozen=True, slots=True)
class StartEvent:
    """Emitted once before any change is processed."""

    type: ClassVar[str] = "start"

    total_changes: int
    completed_changes: int = 0

    def to_dict(self) -> JSONDict:
        return {
            "type": self.type,
            "totalChanges": self.total_changes,
            "completedChanges": self.completed_changes,
        }


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """Emitted before a change is analyzed."""

    type: ClassVar[str] = "progress"

    change_id: str
    progress: float
    total_changes: int
    completed_changes: int

    def to_dict(self) -> JSONDict:
        return {
            "type": self.type,
            "changeId": self.change_id,
            "progress": self.progress,
            "totalChanges": self.total_changes,
            "completedChanges": self.completed_changes,
        }


@dataclass(frozen=True, slots=True)
class ResultEvent:
    """Emitted when a change was analyzed successfully."""

    type: ClassVar[str] = "result"

    change_id: str
    result: AnalysisResult
    progress: float
    total_changes: int
    completed_changes: int

    def to_dict(self) -> JSONDict:
        return {
            "type": self.type,
            "changeId": self.change_id,
            "result": self.result.to_dict(),
            "progress": self.progress,
            "totalChanges": self.total_changes,
            "completedChanges": self.completed_changes,
        }


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    """Emitted when analysis of a single change failed.

    ``change_id`` is None only for batch-level failures reported by a
    transport layer, never for events produced by the analyzer itself.
    """

    type: ClassVar[str] = "error"

    change_id: str | None
    error: str
    total_changes: int
    completed_changes: int

    def to_dict(self) -> JSONDict:
        data: JSONDict = {
            "type": self.type,
            "error": self.error,
            "totalChanges": self.total_changes,
            "completedChanges": self.completed_changes,
        }
        if self.change_id is not None:
            data["changeId"] = self.change_id
        return data


@dataclass(frozen=True, slots=True)
class CompleteEvent:
    """Emitted once after every change was processed."""

    type: ClassVar[str] = "complete"

    total_changes: int
    completed_changes: int

    def to_dict(self) -> JSONDict:
        return {
            "type": self.type,
            "totalChanges": self.total_changes,
            "completedChanges": self.completed_changes,
        }


AnalysisStreamEvent: TypeAlias = (
    StartEvent | ProgressEvent | ResultEvent | ErrorEvent | CompleteEvent
)

EVENT_TYPES: frozenset[str] = frozenset({"start", "progress", "result", "error", "complete"})
