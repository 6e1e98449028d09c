"""Scoring engine: the arithmetic authority over PR quality scores.

The model reports an overall score alongside its seven-metric breakdown. The
engine recomputes the overall score from the breakdown, overrides the model's
figure when the two disagree by more than ``SCORE_TOLERANCE``, and derives
threshold-based reviewer flags, an approval decision and a summary sentence.
Every method is a pure function of its inputs and the engine's weights.
"""

import logging
import math
from collections.abc import Iterable
from dataclasses import replace

from ai_comments.core.models import Flag, FlagType, PRScore, PRScoreBreakdown
from ai_comments.scoring.criteria import (
    CRITERIA_BY_KEY,
    Evaluation,
    evaluate_score,
    get_score_label,
)
from ai_comments.scoring.weights import INVERTED_METRICS, ScoringWeights
from ai_comments.utils.text import clamp

logger = logging.getLogger(__name__)

# Maximum allowed difference between reported and recomputed overall score
SCORE_TOLERANCE: float = 10

WARNING_FLAG_CONFIDENCE: float = 0.9
INFO_FLAG_CONFIDENCE: float = 0.8
INFO_FLAG_MIN_VALUE: float = 90

APPROVAL_MIN_OVERALL: float = 60
APPROVAL_MAX_CASCADE_RISK: float = 80
APPROVAL_MIN_SEMANTIC_SCORE: float = 40
APPROVAL_MIN_INTENT_ALIGNMENT: float = 50


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _format_value(value: float) -> str:
    return f"{value:g}"


class ScoringEngine:
    """Computes and reconciles PR scores.

    Args:
        weights: Metric weights. Defaults to ``ScoringWeights()``.

    Example:
        >>> engine = ScoringEngine(ScoringWeights().with_overrides(cascade_risk=2.0))
        >>> engine.calculate_overall_score(breakdown)
        84
    """

    def __init__(self, weights: ScoringWeights | None = None) -> None:
        self.weights = weights or ScoringWeights()

    def calculate_overall_score(self, breakdown: PRScoreBreakdown) -> int:
        """Compute the weighted overall score from a breakdown.

        Inverted metrics contribute ``100 - value``. The weighted mean is
        rounded half-up and clamped to [0, 100].
        """
        weighted_sum = 0.0
        total_weight = 0.0

        for metric, weight in self.weights.items():
            value = clamp(getattr(breakdown, metric), 0, 100)
            if metric in INVERTED_METRICS:
                value = 100 - value
            weighted_sum += value * weight
            total_weight += weight

        return int(clamp(_round_half_up(weighted_sum / total_weight), 0, 100))

    def validate_and_recalculate(self, pr_score: PRScore) -> PRScore:
        """Replace the reported overall score if it strays from the breakdown.

        The breakdown itself is never altered.
        """
        recalculated = self.calculate_overall_score(pr_score.breakdown)
        difference = abs(pr_score.overall - recalculated)

        if difference > SCORE_TOLERANCE:
            logger.debug(
                f"Reported overall {pr_score.overall} differs from recomputed {recalculated} "
                f"by {difference:g}; using recomputed score"
            )
            return replace(pr_score, overall=recalculated)
        return pr_score

    def generate_flags(self, breakdown: PRScoreBreakdown) -> list[Flag]:
        """Derive reviewer flags from metric thresholds.

        A ``bad`` metric yields a warning; a ``good`` metric at 90 or above
        yields an info flag. Flags are returned in canonical metric order.
        """
        flags: list[Flag] = []

        for metric, value in breakdown.items():
            criteria = CRITERIA_BY_KEY[metric]
            evaluation = evaluate_score(metric, value)

            if evaluation is Evaluation.BAD:
                flags.append(
                    Flag(
                        type=FlagType.WARNING,
                        message=criteria.warning_message.format(value=_format_value(value)),
                        confidence=WARNING_FLAG_CONFIDENCE,
                    )
                )
            elif evaluation is Evaluation.GOOD and value >= INFO_FLAG_MIN_VALUE:
                flags.append(
                    Flag(
                        type=FlagType.INFO,
                        message=criteria.positive_message,
                        confidence=INFO_FLAG_CONFIDENCE,
                    )
                )

        return flags

    def should_approve(self, overall: float, breakdown: PRScoreBreakdown) -> bool:
        """Decide approval, hard-gating specific failure modes."""
        if overall < APPROVAL_MIN_OVERALL:
            return False
        if breakdown.cascade_risk > APPROVAL_MAX_CASCADE_RISK:
            return False
        if breakdown.semantic_score < APPROVAL_MIN_SEMANTIC_SCORE:
            return False
        if breakdown.intent_alignment < APPROVAL_MIN_INTENT_ALIGNMENT:
            return False
        return True

    def weakest_metric(self, breakdown: PRScoreBreakdown) -> str:
        """Return the metric with the lowest quality-axis value.

        Risk metrics are compared as ``100 - value``. Ties keep the earliest
        metric in canonical order.
        """
        weakest_key = "code_consistency"
        weakest_value = 100.0

        for metric, value in breakdown.items():
            effective = 100 - value if metric in INVERTED_METRICS else value
            if effective < weakest_value:
                weakest_value = effective
                weakest_key = metric

        return weakest_key

    def get_summary(self, overall: float, breakdown: PRScoreBreakdown) -> str:
        """Produce a one-sentence summary naming the weakest area."""
        label = get_score_label(overall)
        area = CRITERIA_BY_KEY[self.weakest_metric(breakdown)].weak_area

        if overall >= 80:
            return f"{label} change. Well-structured with good attention to {area}."
        if overall >= 60:
            return f"{label}. Consider improving {area} before merging."
        return f"{label}. Significant concerns with {area}. Review recommended."

    def merge_flags(
        self, model_flags: Iterable[Flag], breakdown: PRScoreBreakdown
    ) -> tuple[Flag, ...]:
        """Append threshold flags to the model's own flags, skipping duplicates."""
        merged = list(model_flags)
        seen = {flag.message for flag in merged}
        for flag in self.generate_flags(breakdown):
            if flag.message not in seen:
                merged.append(flag)
                seen.add(flag.message)
        return tuple(merged)

    def score(
        self,
        breakdown: PRScoreBreakdown,
        model_flags: Iterable[Flag] = (),
        confidence: float = 1.0,
    ) -> PRScore:
        """Build a complete PR score from a breakdown alone.

        Args:
            breakdown: Seven-metric breakdown
            model_flags: Flags to keep ahead of the generated ones
            confidence: Confidence to attach to the score

        Returns:
            PRScore whose overall, flags, summary and approval are all derived
            by this engine
        """
        overall = self.calculate_overall_score(breakdown)
        return PRScore(
            overall=overall,
            breakdown=breakdown,
            flags=self.merge_flags(model_flags, breakdown),
            summary=self.get_summary(overall, breakdown),
            would_approve=self.should_approve(overall, breakdown),
            confidence=confidence,
        )
