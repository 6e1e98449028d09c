"""Change analysis orchestration, result parsing and batch metrics."""

from ai_comments.analyzer.change_analyzer import AnalyzerConfig, BatchOptions, ChangeAnalyzer
from ai_comments.analyzer.metrics import BatchMetrics
from ai_comments.analyzer.parser import ParseOutcome, ParseTier, StructuredResultParser

__all__: list[str] = [
    "AnalyzerConfig",
    "BatchMetrics",
    "BatchOptions",
    "ChangeAnalyzer",
    "ParseOutcome",
    "ParseTier",
    "StructuredResultParser",
]
