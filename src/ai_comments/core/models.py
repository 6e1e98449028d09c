"""Data models for the change analysis pipeline.

This module contains the core data classes used throughout the system to
represent submitted DOM changes, page context, the structured review produced
by the model, and the final analysis result.

All records are immutable. Output records expose ``to_dict()`` which produces
the camelCase wire shape described by the analysis JSON schema, so a result
can be sent to a browser client unchanged.

Example:
    >>> from ai_comments.core.models import ChangeInput, ChangeType, ElementState
    >>> change = ChangeInput(
    ...     id="chg-1",
    ...     type=ChangeType.STYLE,
    ...     element_tag="button",
    ...     xpath="/html/body/div/button",
    ...     selector="div > button.primary",
    ...     original=ElementState(styles={"color": "red"}),
    ...     modified=ElementState(styles={"color": "blue", "display": "none"}),
    ... )
    >>> change.type.value
    'style'
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeAlias

JSONDict: TypeAlias = dict[str, Any]


class ChangeType(str, Enum):
    """Kind of DOM edit submitted for analysis."""

    TEXT = "text"
    STYLE = "style"


class ImpactLevel(str, Enum):
    """How strongly a component is affected by a change."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Severity(str, Enum):
    """Risk severity level."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RiskCategory(str, Enum):
    """Category of an identified risk."""

    CASCADE = "cascade"
    RESPONSIVE = "responsive"
    ACCESSIBILITY = "accessibility"
    PERFORMANCE = "performance"
    SEMANTIC = "semantic"
    COMPATIBILITY = "compatibility"
    DESIGN_CONSISTENCY = "design-consistency"


class SuggestionType(str, Enum):
    """Kind of improvement suggestion."""

    IMPROVEMENT = "improvement"
    ALTERNATIVE = "alternative"
    BEST_PRACTICE = "best-practice"
    OPTIMIZATION = "optimization"


class Priority(str, Enum):
    """Suggestion priority."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FlagType(str, Enum):
    """Kind of reviewer-facing flag."""

    WARNING = "warning"
    SUGGESTION = "suggestion"
    INFO = "info"


# ---------------------------------------------------------------------------
# Input side
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ElementState:
    """Snapshot of an element before or after an edit.

    Args:
        text_content: Text content of the element, if captured
        styles: Inline/computed style properties, if captured
    """

    text_content: str | None = None
    styles: Mapping[str, str] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "ElementState":
        """Build a state from its wire form (``textContent`` / ``styles``)."""
        if not data:
            return cls()
        styles = data.get("styles")
        return cls(
            text_content=data.get("textContent"),
            styles={str(k): str(v) for k, v in styles.items()} if styles else None,
        )

    def to_dict(self) -> JSONDict:
        """Return the wire form, omitting absent fields."""
        data: JSONDict = {}
        if self.text_content is not None:
            data["textContent"] = self.text_content
        if self.styles is not None:
            data["styles"] = dict(self.styles)
        return data


@dataclass(frozen=True, slots=True)
class ChangeInput:
    """A single DOM edit to analyze.

    Attributes:
        id: Unique identifier of the change
        type: Text or style change
        element_tag: HTML tag of the edited element
        xpath: XPath to the element
        selector: CSS selector for the element
        original: Element state before the edit
        modified: Element state after the edit
    """

    id: str
    type: ChangeType
    element_tag: str
    xpath: str
    selector: str
    original: ElementState = field(default_factory=ElementState)
    modified: ElementState = field(default_factory=ElementState)

    def __post_init__(self) -> None:
        """Validate ChangeInput fields after initialization.

        Raises:
            ValueError: If id is empty or type is not a ChangeType
        """
        if not self.id:
            raise ValueError("change id cannot be empty")
        if not isinstance(self.type, ChangeType):
            raise ValueError(f"type must be a ChangeType, got {self.type!r}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChangeInput":
        """Build a change from its camelCase wire form.

        Raises:
            ValueError: If a required field is missing or the type is unknown
        """
        try:
            return cls(
                id=str(data["id"]),
                type=ChangeType(data["type"]),
                element_tag=str(data.get("elementTag", "")),
                xpath=str(data.get("xpath", "")),
                selector=str(data.get("selector", "")),
                original=ElementState.from_dict(data.get("original")),
                modified=ElementState.from_dict(data.get("modified")),
            )
        except KeyError as e:
            raise ValueError(f"change is missing required field {e}") from e

    def to_dict(self) -> JSONDict:
        """Return the camelCase wire form."""
        return {
            "id": self.id,
            "type": self.type.value,
            "elementTag": self.element_tag,
            "xpath": self.xpath,
            "selector": self.selector,
            "original": self.original.to_dict(),
            "modified": self.modified.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class AnalysisContext:
    """Context about the page on which the change was made.

    Attributes:
        page_url: URL of the edited page
        surrounding_html: HTML of surrounding elements, if captured
        design_system: Detected design system/framework label
        existing_classes: CSS classes already used on the page
        viewport_width: Viewport width in pixels
    """

    page_url: str
    surrounding_html: str | None = None
    design_system: str = "unknown"
    existing_classes: frozenset[str] = frozenset()
    viewport_width: int | None = 1920

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AnalysisContext":
        """Build a context from its camelCase wire form.

        Raises:
            ValueError: If pageUrl is missing
        """
        if not data.get("pageUrl"):
            raise ValueError("context requires a pageUrl")
        return cls(
            page_url=str(data["pageUrl"]),
            surrounding_html=data.get("surroundingHTML"),
            design_system=data.get("designSystem") or "unknown",
            existing_classes=frozenset(data.get("existingClasses") or ()),
            viewport_width=data.get("viewportWidth", 1920),
        )


# ---------------------------------------------------------------------------
# Model output side
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ComponentImpact:
    """A component affected by a change."""

    component_name: str
    impact_level: ImpactLevel
    description: str
    other_pages_affected: tuple[str, ...]
    confidence: float
    file_path: str | None = None

    def to_dict(self) -> JSONDict:
        data: JSONDict = {
            "componentName": self.component_name,
            "impactLevel": self.impact_level.value,
            "description": self.description,
            "otherPagesAffected": list(self.other_pages_affected),
            "confidence": self.confidence,
        }
        if self.file_path is not None:
            data["filePath"] = self.file_path
        return data


@dataclass(frozen=True, slots=True)
class Risk:
    """A potential problem introduced by a change."""

    id: str
    severity: Severity
    category: RiskCategory
    title: str
    description: str
    confidence: float
    affected_breakpoints: tuple[str, ...] | None = None
    mitigation: str | None = None

    def to_dict(self) -> JSONDict:
        data: JSONDict = {
            "id": self.id,
            "severity": self.severity.value,
            "category": self.category.value,
            "title": self.title,
            "description": self.description,
            "confidence": self.confidence,
        }
        if self.affected_breakpoints is not None:
            data["affectedBreakpoints"] = list(self.affected_breakpoints)
        if self.mitigation is not None:
            data["mitigation"] = self.mitigation
        return data


@dataclass(frozen=True, slots=True)
class Suggestion:
    """An improvement suggestion for a change."""

    id: str
    type: SuggestionType
    priority: Priority
    title: str
    description: str
    rationale: str
    confidence: float
    code_example: str | None = None

    def to_dict(self) -> JSONDict:
        data: JSONDict = {
            "id": self.id,
            "type": self.type.value,
            "priority": self.priority.value,
            "title": self.title,
            "description": self.description,
            "rationale": self.rationale,
            "confidence": self.confidence,
        }
        if self.code_example is not None:
            data["codeExample"] = self.code_example
        return data


@dataclass(frozen=True, slots=True)
class StyleIssue:
    """A single style consistency problem."""

    property: str
    issue: str
    suggestion: str

    def to_dict(self) -> JSONDict:
        return {"property": self.property, "issue": self.issue, "suggestion": self.suggestion}


@dataclass(frozen=True, slots=True)
class StyleReview:
    """Style consistency review. Sub-scores are in [0, 100]."""

    overall_consistency: float
    design_system_alignment: float
    color_consistency: float
    spacing_consistency: float
    typography_consistency: float
    issues: tuple[StyleIssue, ...]
    confidence: float

    def to_dict(self) -> JSONDict:
        return {
            "overallConsistency": self.overall_consistency,
            "designSystemAlignment": self.design_system_alignment,
            "colorConsistency": self.color_consistency,
            "spacingConsistency": self.spacing_consistency,
            "typographyConsistency": self.typography_consistency,
            "issues": [issue.to_dict() for issue in self.issues],
            "confidence": self.confidence,
        }


# Breakdown field name -> wire key, in canonical metric order
BREAKDOWN_FIELDS: dict[str, str] = {
    "code_consistency": "codeConsistency",
    "reuse_score": "reuseScore",
    "ai_detection_risk": "aiDetectionRisk",
    "cascade_risk": "cascadeRisk",
    "responsive_score": "responsiveScore",
    "semantic_score": "semanticScore",
    "intent_alignment": "intentAlignment",
}


@dataclass(frozen=True, slots=True)
class PRScoreBreakdown:
    """Seven-metric quality breakdown, each metric in [0, 100].

    ``ai_detection_risk`` and ``cascade_risk`` are risk metrics where lower is
    better; the remaining metrics are quality metrics where higher is better.
    """

    code_consistency: float
    reuse_score: float
    ai_detection_risk: float
    cascade_risk: float
    responsive_score: float
    semantic_score: float
    intent_alignment: float

    def items(self) -> list[tuple[str, float]]:
        """Return ``(metric, value)`` pairs in canonical order."""
        return [(name, getattr(self, name)) for name in BREAKDOWN_FIELDS]

    def to_dict(self) -> JSONDict:
        return {wire: getattr(self, name) for name, wire in BREAKDOWN_FIELDS.items()}


@dataclass(frozen=True, slots=True)
class Flag:
    """A reviewer-facing note attached to a PR score."""

    type: FlagType
    message: str
    confidence: float
    details: str | None = None

    def to_dict(self) -> JSONDict:
        data: JSONDict = {
            "type": self.type.value,
            "message": self.message,
            "confidence": self.confidence,
        }
        if self.details is not None:
            data["details"] = self.details
        return data


@dataclass(frozen=True, slots=True)
class PRScore:
    """Aggregate quality score for a change."""

    overall: float
    breakdown: PRScoreBreakdown
    flags: tuple[Flag, ...]
    summary: str
    would_approve: bool
    confidence: float

    def to_dict(self) -> JSONDict:
        return {
            "overall": self.overall,
            "breakdown": self.breakdown.to_dict(),
            "flags": [flag.to_dict() for flag in self.flags],
            "summary": self.summary,
            "wouldApprove": self.would_approve,
            "confidence": self.confidence,
        }


@dataclass(frozen=True, slots=True)
class AnalysisResultData:
    """The structured review returned by the model, after parsing."""

    affected_components: tuple[ComponentImpact, ...]
    risks: tuple[Risk, ...]
    suggestions: tuple[Suggestion, ...]
    style_consistency: StyleReview
    pr_score: PRScore

    def to_dict(self) -> JSONDict:
        return {
            "affectedComponents": [c.to_dict() for c in self.affected_components],
            "risks": [r.to_dict() for r in self.risks],
            "suggestions": [s.to_dict() for s in self.suggestions],
            "styleConsistency": self.style_consistency.to_dict(),
            "prScore": self.pr_score.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Complete analysis result for one change.

    Attributes:
        id: Unique ID of this analysis
        change_id: ID of the analyzed change
        timestamp: Analysis start time in epoch milliseconds
        affected_components: Components affected by the change
        risks: Identified risks
        suggestions: Improvement suggestions
        style_consistency: Style consistency review
        pr_score: PR score after arithmetic reconciliation
        confidence: Calibrated confidence in the analysis (0.0-1.0)
        provider: Label of the provider that produced the review
        tokens_used: Total tokens consumed by the provider call
        raw_response: Raw model output, kept for debugging
    """

    id: str
    change_id: str
    timestamp: int
    affected_components: tuple[ComponentImpact, ...]
    risks: tuple[Risk, ...]
    suggestions: tuple[Suggestion, ...]
    style_consistency: StyleReview
    pr_score: PRScore
    confidence: float
    provider: str
    tokens_used: int
    raw_response: str | None = None

    def __post_init__(self) -> None:
        """Validate AnalysisResult fields after initialization.

        Raises:
            ValueError: If confidence or tokens_used is out of range
        """
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0.0, 1.0], got {self.confidence}")
        if self.tokens_used < 0:
            raise ValueError(f"tokens_used must be >= 0, got {self.tokens_used}")

    def to_dict(self) -> JSONDict:
        data: JSONDict = {
            "id": self.id,
            "changeId": self.change_id,
            "timestamp": self.timestamp,
            "affectedComponents": [c.to_dict() for c in self.affected_components],
            "risks": [r.to_dict() for r in self.risks],
            "suggestions": [s.to_dict() for s in self.suggestions],
            "styleConsistency": self.style_consistency.to_dict(),
            "prScore": self.pr_score.to_dict(),
            "confidence": self.confidence,
            "provider": self.provider,
            "tokensUsed": self.tokens_used,
        }
        if self.raw_response is not None:
            data["rawResponse"] = self.raw_response
        return data
