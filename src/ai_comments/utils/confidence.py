"""Confidence estimation for analysis results.

The final confidence attached to an ``AnalysisResult`` combines five
independent signals: how much page context was available, how complex the
change is, what the model said about its own confidence, which parser tier
decoded the response and how close the call came to its token budget.
"""

from dataclasses import dataclass

from ai_comments.core.models import AnalysisResultData
from ai_comments.utils.text import clamp

CONTEXT_WEIGHT: float = 0.2
COMPLEXITY_WEIGHT: float = 0.15
LLM_CONFIDENCE_WEIGHT: float = 0.35
SCHEMA_VALIDATION_WEIGHT: float = 0.25
TOKEN_USAGE_WEIGHT: float = 0.05

DEFAULT_LLM_CONFIDENCE: float = 0.7
LOW_CONFIDENCE_THRESHOLD: float = 0.6


@dataclass(frozen=True, slots=True)
class ConfidenceFactors:
    """Inputs to the confidence calculation, each in [0, 1].

    Args:
        context_available: Page context quality (higher is more confident)
        change_complexity: Change complexity (lower is more confident)
        llm_confidence: Model self-reported confidence
        schema_validation: Parser tier factor (1.0, 0.5 or 0.0)
        token_usage_ratio: Tokens used relative to the budget (lower is more
            confident). Omitted from the weighting when None.
    """

    context_available: float
    change_complexity: float
    llm_confidence: float
    schema_validation: float
    token_usage_ratio: float | None = None


def calculate_confidence(factors: ConfidenceFactors) -> float:
    """Combine confidence factors into a single value.

    Factors are clamped to [0, 1]. The result is the weighted mean over the
    factors actually present, rounded to two decimal places.
    """
    weighted_sum = 0.0
    total_weight = 0.0

    weighted_sum += clamp(factors.context_available, 0, 1) * CONTEXT_WEIGHT
    total_weight += CONTEXT_WEIGHT

    weighted_sum += (1 - clamp(factors.change_complexity, 0, 1)) * COMPLEXITY_WEIGHT
    total_weight += COMPLEXITY_WEIGHT

    weighted_sum += clamp(factors.llm_confidence, 0, 1) * LLM_CONFIDENCE_WEIGHT
    total_weight += LLM_CONFIDENCE_WEIGHT

    weighted_sum += clamp(factors.schema_validation, 0, 1) * SCHEMA_VALIDATION_WEIGHT
    total_weight += SCHEMA_VALIDATION_WEIGHT

    if factors.token_usage_ratio is not None:
        weighted_sum += (1 - clamp(factors.token_usage_ratio, 0, 1)) * TOKEN_USAGE_WEIGHT
        total_weight += TOKEN_USAGE_WEIGHT

    return round(clamp(weighted_sum / total_weight, 0, 1), 2)


def extract_average_confidence(data: AnalysisResultData) -> float:
    """Average every per-field confidence in the parsed analysis.

    Returns:
        Mean confidence, or 0.7 when the analysis carries none
    """
    confidences = [c.confidence for c in data.affected_components]
    confidences.extend(r.confidence for r in data.risks)
    confidences.extend(s.confidence for s in data.suggestions)
    confidences.append(data.style_consistency.confidence)
    confidences.append(data.pr_score.confidence)

    if not confidences:
        return DEFAULT_LLM_CONFIDENCE
    return sum(confidences) / len(confidences)


def get_confidence_label(confidence: float) -> str:
    if confidence >= 0.9:
        return "Very High"
    if confidence >= 0.75:
        return "High"
    if confidence >= 0.6:
        return "Moderate"
    if confidence >= 0.4:
        return "Low"
    return "Very Low"


def should_warn_low_confidence(confidence: float) -> bool:
    return confidence < LOW_CONFIDENCE_THRESHOLD
