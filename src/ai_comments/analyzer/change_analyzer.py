"""Change analysis orchestration.

``ChangeAnalyzer`` composes the pipeline for one change (prompt context,
provider call, structured parsing, score reconciliation and confidence) and
sequences it over a batch as a lazy stream of events. Batches run either
sequentially or in fixed-size parallel windows; in both modes a failing change
yields an ``error`` event and the rest of the batch carries on.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace

from ai_comments.analyzer.parser import StructuredResultParser
from ai_comments.core.events import (
    AnalysisStreamEvent,
    CompleteEvent,
    ErrorEvent,
    ProgressEvent,
    ResultEvent,
    StartEvent,
)
from ai_comments.core.models import AnalysisContext, AnalysisResult, ChangeInput
from ai_comments.llm.constants import MAX_WORKERS
from ai_comments.llm.providers.base import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    LLMMessage,
    LLMProvider,
    LLMRequest,
)
from ai_comments.prompts.context import (
    build_prompt_context,
    estimate_change_complexity,
    estimate_context_quality,
)
from ai_comments.prompts.templates import PromptManager
from ai_comments.scoring.engine import ScoringEngine
from ai_comments.scoring.weights import ScoringWeights
from ai_comments.utils.confidence import (
    ConfidenceFactors,
    calculate_confidence,
    extract_average_confidence,
)

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3

ProgressCallback = Callable[[AnalysisStreamEvent], None]


@dataclass(frozen=True, slots=True)
class AnalyzerConfig:
    """Settings for a ``ChangeAnalyzer``.

    Args:
        max_tokens: Token budget per provider call (also the denominator of the
            token usage ratio)
        temperature: Sampling temperature
        weights: Scoring weights for the overall PR score
        include_raw_response: Keep the raw model output on each result
    """

    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    include_raw_response: bool = True

    def __post_init__(self) -> None:
        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature must be in [0.0, 2.0], got {self.temperature}")


@dataclass(frozen=True, slots=True)
class BatchOptions:
    """Options for ``analyze_stream`` and ``analyze_all``.

    Args:
        parallel: Run changes in windows of ``concurrency`` on a thread pool
        concurrency: Window size for parallel mode
        on_progress: Called with every event as it is yielded. Exceptions it
            raises are logged and ignored.
    """

    parallel: bool = False
    concurrency: int = DEFAULT_CONCURRENCY
    on_progress: ProgressCallback | None = None

    def __post_init__(self) -> None:
        if not 1 <= self.concurrency <= MAX_WORKERS:
            raise ValueError(
                f"concurrency must be between 1 and {MAX_WORKERS}, got {self.concurrency}"
            )


def _error_message(error: BaseException) -> str:
    return str(error) or type(error).__name__


class ChangeAnalyzer:
    """Analyze DOM changes with an LLM provider.

    Examples:
        >>> analyzer = ChangeAnalyzer(provider)
        >>> result = analyzer.analyze(change, context)
        >>> result.pr_score.overall
        82

        >>> for event in analyzer.analyze_stream(changes, context, BatchOptions(parallel=True)):
        ...     print(event.to_dict()["type"])

    Attributes:
        provider: Provider used for every analysis call
        config: Analyzer settings
        prompt_manager: Renders system and analysis prompts
        scoring_engine: Reconciles model scores and derives flags
    """

    def __init__(self, provider: LLMProvider, config: AnalyzerConfig | None = None) -> None:
        self.provider = provider
        self.config = config or AnalyzerConfig()
        self.prompt_manager = PromptManager()
        self.scoring_engine = ScoringEngine(self.config.weights)
        self.parser = StructuredResultParser()

    def analyze(self, change: ChangeInput, context: AnalysisContext) -> AnalysisResult:
        """Analyze a single change.

        Args:
            change: Change to analyze
            context: Page context shared by the batch

        Returns:
            Complete analysis result. Malformed model output is absorbed by the
            parser tiers and only lowers the confidence.

        Raises:
            LLMError: If the provider call fails
        """
        timestamp = int(time.time() * 1000)
        logger.debug(f"Analyzing change {change.id} ({change.type.value})")

        prompt_context = build_prompt_context(change, context)
        request = LLMRequest(
            messages=[
                LLMMessage("system", self.prompt_manager.render("system", prompt_context)),
                LLMMessage("user", self.prompt_manager.render("analysis", prompt_context)),
            ],
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            json_mode=True,
        )

        response = self.provider.complete(request)
        logger.debug(
            f"Provider returned {len(response.content)} characters for change {change.id} "
            f"({response.total_tokens} tokens, finish_reason={response.finish_reason.value})"
        )

        outcome = self.parser.parse(response.content)
        data = outcome.data

        pr_score = self.scoring_engine.validate_and_recalculate(data.pr_score)
        pr_score = replace(
            pr_score,
            flags=self.scoring_engine.merge_flags(pr_score.flags, pr_score.breakdown),
        )

        confidence = calculate_confidence(
            ConfidenceFactors(
                context_available=estimate_context_quality(context),
                change_complexity=estimate_change_complexity(change),
                llm_confidence=extract_average_confidence(data),
                schema_validation=outcome.schema_validation,
                token_usage_ratio=response.total_tokens / self.config.max_tokens,
            )
        )

        logger.debug(
            f"Change {change.id}: tier={outcome.tier.value}, overall={pr_score.overall}, "
            f"confidence={confidence}"
        )

        return AnalysisResult(
            id=str(uuid.uuid4()),
            change_id=change.id,
            timestamp=timestamp,
            affected_components=data.affected_components,
            risks=data.risks,
            suggestions=data.suggestions,
            style_consistency=data.style_consistency,
            pr_score=pr_score,
            confidence=confidence,
            provider=self.provider.name,
            tokens_used=response.total_tokens,
            raw_response=response.content if self.config.include_raw_response else None,
        )

    def analyze_stream(
        self,
        changes: Sequence[ChangeInput],
        context: AnalysisContext,
        options: BatchOptions | None = None,
    ) -> Iterator[AnalysisStreamEvent]:
        """Analyze changes, yielding progress, result and error events.

        The stream is ``start``, then for each change a ``progress`` event
        followed by its ``result`` or ``error``, then ``complete``. A failed
        change does not count towards ``completed_changes``.

        In parallel mode each window's ``progress`` events are yielded before
        the window runs; its results and errors follow in input order once the
        whole window has finished. Nothing runs until the caller iterates, and
        a caller that stops iterating stops further windows.

        Args:
            changes: Changes to analyze
            context: Page context shared by every change
            options: Batch options (sequential, no callback when None)

        Yields:
            AnalysisStreamEvent instances
        """
        options = options or BatchOptions()
        changes = list(changes)
        total = len(changes)
        mode = f"parallel, concurrency={options.concurrency}" if options.parallel else "sequential"
        logger.info(f"Starting analysis of {total} change(s) ({mode})")

        events = (
            self._parallel_events(changes, context, options.concurrency)
            if options.parallel
            else self._sequential_events(changes, context)
        )

        failed = 0
        completed = 0
        for event in events:
            if isinstance(event, ErrorEvent):
                failed += 1
            completed = event.completed_changes
            self._notify(options.on_progress, event)
            yield event

        logger.info(f"Analysis complete: {completed}/{total} succeeded, {failed} failed")

    def _sequential_events(
        self, changes: list[ChangeInput], context: AnalysisContext
    ) -> Iterator[AnalysisStreamEvent]:
        total = len(changes)
        completed = 0
        yield StartEvent(total_changes=total)

        for change in changes:
            yield ProgressEvent(
                change_id=change.id,
                progress=completed / total,
                total_changes=total,
                completed_changes=completed,
            )
            try:
                result = self.analyze(change, context)
            except Exception as e:
                logger.warning(f"Analysis failed for change {change.id}: {type(e).__name__}: {e}")
                yield ErrorEvent(
                    change_id=change.id,
                    error=_error_message(e),
                    total_changes=total,
                    completed_changes=completed,
                )
                continue

            completed += 1
            yield ResultEvent(
                change_id=change.id,
                result=result,
                progress=completed / total,
                total_changes=total,
                completed_changes=completed,
            )

        yield CompleteEvent(total_changes=total, completed_changes=completed)

    def _parallel_events(
        self, changes: list[ChangeInput], context: AnalysisContext, concurrency: int
    ) -> Iterator[AnalysisStreamEvent]:
        total = len(changes)
        completed = 0
        yield StartEvent(total_changes=total)

        with ThreadPoolExecutor(max_workers=concurrency) as executor:
            for start in range(0, total, concurrency):
                window = changes[start : start + concurrency]
                logger.debug(f"Running window of {len(window)} change(s) at offset {start}")

                for change in window:
                    yield ProgressEvent(
                        change_id=change.id,
                        progress=completed / total,
                        total_changes=total,
                        completed_changes=completed,
                    )

                futures: list[Future[AnalysisResult]] = [
                    executor.submit(self.analyze, change, context) for change in window
                ]

                # Wait for the whole window, then report in input order
                for change, future in zip(window, futures, strict=True):
                    try:
                        result = future.result()
                    except Exception as e:
                        logger.warning(
                            f"Analysis failed for change {change.id}: {type(e).__name__}: {e}"
                        )
                        yield ErrorEvent(
                            change_id=change.id,
                            error=_error_message(e),
                            total_changes=total,
                            completed_changes=completed,
                        )
                        continue

                    completed += 1
                    yield ResultEvent(
                        change_id=change.id,
                        result=result,
                        progress=completed / total,
                        total_changes=total,
                        completed_changes=completed,
                    )

        yield CompleteEvent(total_changes=total, completed_changes=completed)

    def analyze_all(
        self,
        changes: Sequence[ChangeInput],
        context: AnalysisContext,
        options: BatchOptions | None = None,
    ) -> list[AnalysisResult]:
        """Analyze changes and return the successful results in input order.

        Progress and error events are discarded; use ``analyze_stream`` to
        observe failures.
        """
        return [
            event.result
            for event in self.analyze_stream(changes, context, options)
            if isinstance(event, ResultEvent)
        ]

    @staticmethod
    def _notify(callback: ProgressCallback | None, event: AnalysisStreamEvent) -> None:
        if callback is None:
            return
        try:
            callback(event)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
