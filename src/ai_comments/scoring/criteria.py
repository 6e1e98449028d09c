"""Per-metric scoring criteria and labels."""

from dataclasses import dataclass
from enum import Enum


class Evaluation(str, Enum):
    """Classification of a single metric value."""

    GOOD = "good"
    NEUTRAL = "neutral"
    BAD = "bad"


@dataclass(frozen=True, slots=True)
class ScoringCriteria:
    """Thresholds and reviewer-facing wording for one breakdown metric.

    For inverted metrics ``good_threshold`` is an upper bound (lower is
    better); for the others it is a lower bound.
    """

    key: str
    name: str
    description: str
    good_threshold: float
    bad_threshold: float
    is_inverted: bool
    warning_message: str
    positive_message: str
    weak_area: str


SCORING_CRITERIA: tuple[ScoringCriteria, ...] = (
    ScoringCriteria(
        key="code_consistency",
        name="Code Consistency",
        description="How well the change matches surrounding code patterns and conventions",
        good_threshold=80,
        bad_threshold=50,
        is_inverted=False,
        warning_message=(
            "Low code consistency ({value}%). The change may not match surrounding patterns."
        ),
        positive_message="Excellent code consistency with existing patterns.",
        weak_area="code consistency",
    ),
    ScoringCriteria(
        key="reuse_score",
        name="Code Reuse",
        description="Whether the change leverages existing utilities vs creating redundant ones",
        good_threshold=75,
        bad_threshold=40,
        is_inverted=False,
        warning_message="Low reuse score ({value}%). Consider using existing utilities instead.",
        positive_message="Great use of existing utilities and components.",
        weak_area="code reuse",
    ),
    ScoringCriteria(
        key="ai_detection_risk",
        name="AI Detection Risk",
        description="Likelihood a reviewer would flag this as AI-generated",
        good_threshold=30,
        bad_threshold=70,
        is_inverted=True,
        warning_message="High AI detection risk ({value}%). The change may appear AI-generated.",
        positive_message="Change appears natural and human-written.",
        weak_area="natural appearance",
    ),
    ScoringCriteria(
        key="cascade_risk",
        name="CSS Cascade Risk",
        description="Risk of CSS changes affecting other elements unexpectedly",
        good_threshold=30,
        bad_threshold=60,
        is_inverted=True,
        warning_message="High cascade risk ({value}%). CSS changes may affect other elements.",
        positive_message="CSS changes are well-scoped with low cascade risk.",
        weak_area="CSS scoping",
    ),
    ScoringCriteria(
        key="responsive_score",
        name="Responsive Design",
        description="Quality of responsive design considerations",
        good_threshold=75,
        bad_threshold=45,
        is_inverted=False,
        warning_message=(
            "Low responsive score ({value}%). Mobile/tablet breakpoints may be affected."
        ),
        positive_message="Excellent responsive design considerations.",
        weak_area="responsive design",
    ),
    ScoringCriteria(
        key="semantic_score",
        name="Semantic HTML",
        description="Preservation of semantic HTML structure",
        good_threshold=80,
        bad_threshold=50,
        is_inverted=False,
        warning_message="Low semantic score ({value}%). HTML structure may not be semantic.",
        positive_message="Semantic HTML structure preserved.",
        weak_area="semantic structure",
    ),
    ScoringCriteria(
        key="intent_alignment",
        name="Intent Alignment",
        description="How well the change matches what the user likely intended",
        good_threshold=85,
        bad_threshold=60,
        is_inverted=False,
        warning_message=(
            "Low intent alignment ({value}%). The change may not match user expectations."
        ),
        positive_message="Change aligns well with user intent.",
        weak_area="intent alignment",
    ),
)

CRITERIA_BY_KEY: dict[str, ScoringCriteria] = {c.key: c for c in SCORING_CRITERIA}


def get_criteria(key: str) -> ScoringCriteria | None:
    return CRITERIA_BY_KEY.get(key)


def evaluate_score(key: str, value: float) -> Evaluation:
    """Classify a metric value against its thresholds.

    Unknown metrics are always neutral.
    """
    criteria = get_criteria(key)
    if criteria is None:
        return Evaluation.NEUTRAL

    if criteria.is_inverted:
        if value <= criteria.good_threshold:
            return Evaluation.GOOD
        if value >= criteria.bad_threshold:
            return Evaluation.BAD
    else:
        if value >= criteria.good_threshold:
            return Evaluation.GOOD
        if value <= criteria.bad_threshold:
            return Evaluation.BAD

    return Evaluation.NEUTRAL


def get_score_label(score: float) -> str:
    """Return the human label for an overall score."""
    if score >= 90:
        return "Excellent"
    if score >= 80:
        return "Good"
    if score >= 70:
        return "Acceptable"
    if score >= 60:
        return "Needs Review"
    if score >= 50:
        return "Concerning"
    return "Poor"
