"""AI Comments.

LLM-backed change analysis and scoring for DOM edits: affected components,
risks, suggestions, style review and a seven-metric PR score.
"""

__version__ = "0.1.0"

from .analyzer.change_analyzer import AnalyzerConfig, BatchOptions, ChangeAnalyzer
from .analyzer.metrics import BatchMetrics
from .core.events import (
    AnalysisStreamEvent,
    CompleteEvent,
    ErrorEvent,
    ProgressEvent,
    ResultEvent,
    StartEvent,
)
from .core.models import AnalysisContext, AnalysisResult, ChangeInput, ChangeType, ElementState
from .scoring.engine import ScoringEngine
from .scoring.weights import ScoringWeights

__all__ = [
    "AnalysisContext",
    "AnalysisResult",
    "AnalysisStreamEvent",
    "AnalyzerConfig",
    "BatchMetrics",
    "BatchOptions",
    "ChangeAnalyzer",
    "ChangeInput",
    "ChangeType",
    "CompleteEvent",
    "ElementState",
    "ErrorEvent",
    "ProgressEvent",
    "ResultEvent",
    "ScoringEngine",
    "ScoringWeights",
    "StartEvent",
]
