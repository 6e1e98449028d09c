"""Deterministic PR scoring: weights, criteria and the scoring engine."""

from ai_comments.scoring.criteria import SCORING_CRITERIA, ScoringCriteria, get_score_label
from ai_comments.scoring.engine import ScoringEngine
from ai_comments.scoring.weights import ScoringWeights

__all__: list[str] = [
    "SCORING_CRITERIA",
    "ScoringCriteria",
    "ScoringEngine",
    "ScoringWeights",
    "get_score_label",
]
