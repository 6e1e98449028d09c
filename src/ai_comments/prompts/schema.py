"""Output schema for model analysis responses.

This module owns the contract between the prompt and the parser:

- ``get_analysis_result_json_schema()`` returns the JSON schema embedded in
  the analysis prompt.
- ``validate_analysis_result()`` checks a decoded JSON object against the full
  structural and range contract and converts it into records.
- ``repair_analysis_result()`` salvages what it can from an object that failed
  validation: well-formed array items are kept, numbers are clamped into range
  and malformed sections fall back to neutral baselines.
"""

import math
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, TypeVar

from ai_comments.core.models import (
    BREAKDOWN_FIELDS,
    AnalysisResultData,
    ComponentImpact,
    Flag,
    FlagType,
    ImpactLevel,
    PRScore,
    PRScoreBreakdown,
    Priority,
    Risk,
    RiskCategory,
    Severity,
    StyleIssue,
    StyleReview,
    Suggestion,
    SuggestionType,
)
from ai_comments.utils.text import clamp

E = TypeVar("E", bound=Enum)
T = TypeVar("T")

NEUTRAL_SCORE: float = 70.0
NEUTRAL_RISK: float = 30.0
NEUTRAL_CONFIDENCE: float = 0.5
INCOMPLETE_SUMMARY = "Analysis incomplete. Manual review recommended."
PARSE_ERROR_DESCRIPTION = "Could not fully parse the analysis result. Review manually."

RISK_METRICS: frozenset[str] = frozenset({"ai_detection_risk", "cascade_risk"})


class SchemaValidationError(ValueError):
    """Raised when model output does not satisfy the analysis schema.

    Args:
        errors: Human-readable descriptions, one per violation
    """

    def __init__(self, errors: list[str] | str) -> None:
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("; ".join(self.errors))


class _FieldReader:
    """Typed accessor over one JSON object, reporting errors by path.

    In clamping mode numbers outside their declared range are pulled back into
    range instead of being rejected.
    """

    def __init__(self, data: Any, path: str, clamp_numbers: bool = False) -> None:
        if not isinstance(data, Mapping):
            raise SchemaValidationError(f"{path}: expected object, got {type(data).__name__}")
        self.data = data
        self.path = path
        self.clamp_numbers = clamp_numbers

    def _fail(self, key: str, message: str) -> SchemaValidationError:
        return SchemaValidationError(f"{self.path}.{key}: {message}")

    def _get(self, key: str, optional: bool) -> Any:
        value = self.data.get(key)
        if value is None and not optional:
            raise self._fail(key, "required field is missing")
        return value

    def string(self, key: str, optional: bool = False) -> str | None:
        value = self._get(key, optional)
        if value is None:
            return None
        if not isinstance(value, str):
            raise self._fail(key, f"expected string, got {type(value).__name__}")
        return value

    def number(self, key: str, low: float, high: float) -> float:
        value = self._get(key, optional=False)
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise self._fail(key, f"expected number, got {type(value).__name__}")
        try:
            as_float = float(value)
        except OverflowError:
            # Integer beyond float range
            as_float = math.inf if value > 0 else -math.inf
        if math.isnan(as_float) or (math.isinf(as_float) and not self.clamp_numbers):
            raise self._fail(key, "number must be finite")
        if not low <= as_float <= high:
            if not self.clamp_numbers:
                raise self._fail(key, f"{value} is outside [{low:g}, {high:g}]")
            return clamp(as_float, low, high)
        return value

    def boolean(self, key: str) -> bool:
        value = self._get(key, optional=False)
        if not isinstance(value, bool):
            raise self._fail(key, f"expected boolean, got {type(value).__name__}")
        return value

    def enum(self, key: str, enum_cls: type[E]) -> E:
        value = self._get(key, optional=False)
        try:
            return enum_cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in enum_cls)
            raise self._fail(key, f"{value!r} is not one of: {allowed}") from None

    def string_list(self, key: str, optional: bool = False) -> tuple[str, ...] | None:
        value = self._get(key, optional)
        if value is None:
            return None
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise self._fail(key, "expected array of strings")
        return tuple(value)

    def array(self, key: str) -> list[Any]:
        value = self._get(key, optional=False)
        if not isinstance(value, list):
            raise self._fail(key, f"expected array, got {type(value).__name__}")
        return value


# ---------------------------------------------------------------------------
# Item parsers
#
# Every item parser takes (data, path, clamp_numbers) and raises
# SchemaValidationError naming the offending field.
# ---------------------------------------------------------------------------


def parse_component_impact(
    data: Any, path: str = "component", clamp_numbers: bool = False
) -> ComponentImpact:
    r = _FieldReader(data, path, clamp_numbers)
    return ComponentImpact(
        component_name=r.string("componentName"),
        file_path=r.string("filePath", optional=True),
        impact_level=r.enum("impactLevel", ImpactLevel),
        description=r.string("description"),
        other_pages_affected=r.string_list("otherPagesAffected"),
        confidence=r.number("confidence", 0, 1),
    )


def parse_risk(data: Any, path: str = "risk", clamp_numbers: bool = False) -> Risk:
    r = _FieldReader(data, path, clamp_numbers)
    return Risk(
        id=r.string("id"),
        severity=r.enum("severity", Severity),
        category=r.enum("category", RiskCategory),
        title=r.string("title"),
        description=r.string("description"),
        affected_breakpoints=r.string_list("affectedBreakpoints", optional=True),
        mitigation=r.string("mitigation", optional=True),
        confidence=r.number("confidence", 0, 1),
    )


def parse_suggestion(
    data: Any, path: str = "suggestion", clamp_numbers: bool = False
) -> Suggestion:
    r = _FieldReader(data, path, clamp_numbers)
    return Suggestion(
        id=r.string("id"),
        type=r.enum("type", SuggestionType),
        priority=r.enum("priority", Priority),
        title=r.string("title"),
        description=r.string("description"),
        code_example=r.string("codeExample", optional=True),
        rationale=r.string("rationale"),
        confidence=r.number("confidence", 0, 1),
    )


def parse_style_issue(data: Any, path: str = "issue", clamp_numbers: bool = False) -> StyleIssue:
    r = _FieldReader(data, path, clamp_numbers)
    return StyleIssue(
        property=r.string("property"),
        issue=r.string("issue"),
        suggestion=r.string("suggestion"),
    )


def parse_flag(data: Any, path: str = "flag", clamp_numbers: bool = False) -> Flag:
    r = _FieldReader(data, path, clamp_numbers)
    return Flag(
        type=r.enum("type", FlagType),
        message=r.string("message"),
        details=r.string("details", optional=True),
        confidence=r.number("confidence", 0, 1),
    )


def parse_breakdown(
    data: Any, path: str = "breakdown", clamp_numbers: bool = False
) -> PRScoreBreakdown:
    r = _FieldReader(data, path, clamp_numbers)
    return PRScoreBreakdown(
        **{name: r.number(wire, 0, 100) for name, wire in BREAKDOWN_FIELDS.items()}
    )


def _parse_items(
    items: list[Any],
    parser: Callable[[Any, str, bool], T],
    path: str,
    lenient: bool,
    errors: list[str],
) -> tuple[T, ...]:
    """Parse array items.

    Strict mode raises on the first malformed item. Lenient mode clamps numbers,
    drops malformed items and records why in ``errors``.
    """
    parsed = []
    for index, item in enumerate(items):
        try:
            parsed.append(parser(item, f"{path}[{index}]", lenient))
        except SchemaValidationError as e:
            if not lenient:
                raise
            errors.extend(e.errors)
    return tuple(parsed)


def parse_style_review(
    data: Any,
    path: str = "styleConsistency",
    lenient: bool = False,
    errors: list[str] | None = None,
) -> StyleReview:
    errors = errors if errors is not None else []
    r = _FieldReader(data, path, clamp_numbers=lenient)
    return StyleReview(
        overall_consistency=r.number("overallConsistency", 0, 100),
        design_system_alignment=r.number("designSystemAlignment", 0, 100),
        color_consistency=r.number("colorConsistency", 0, 100),
        spacing_consistency=r.number("spacingConsistency", 0, 100),
        typography_consistency=r.number("typographyConsistency", 0, 100),
        issues=_parse_items(
            r.array("issues"), parse_style_issue, f"{path}.issues", lenient, errors
        ),
        confidence=r.number("confidence", 0, 1),
    )


def parse_pr_score(
    data: Any,
    path: str = "prScore",
    lenient: bool = False,
    errors: list[str] | None = None,
) -> PRScore:
    errors = errors if errors is not None else []
    r = _FieldReader(data, path, clamp_numbers=lenient)
    return PRScore(
        overall=r.number("overall", 0, 100),
        breakdown=parse_breakdown(r.data.get("breakdown"), f"{path}.breakdown", lenient),
        flags=_parse_items(r.array("flags"), parse_flag, f"{path}.flags", lenient, errors),
        summary=r.string("summary"),
        would_approve=r.boolean("wouldApprove"),
        confidence=r.number("confidence", 0, 1),
    )


# ---------------------------------------------------------------------------
# Whole-result validation and repair
# ---------------------------------------------------------------------------

_ARRAY_SECTIONS = (
    ("affectedComponents", parse_component_impact),
    ("risks", parse_risk),
    ("suggestions", parse_suggestion),
)


def validate_analysis_result(data: Any) -> AnalysisResultData:
    """Validate a decoded model response against the full contract.

    Args:
        data: Decoded JSON value

    Returns:
        Parsed analysis data

    Raises:
        SchemaValidationError: Listing every section that failed validation
    """
    if not isinstance(data, Mapping):
        raise SchemaValidationError(f"result: expected object, got {type(data).__name__}")

    errors: list[str] = []
    sections: dict[str, Any] = {}

    for key, parser in _ARRAY_SECTIONS:
        try:
            items = _FieldReader(data, "result").array(key)
            sections[key] = _parse_items(items, parser, key, False, errors)
        except SchemaValidationError as e:
            errors.extend(e.errors)

    for key, parser in (("styleConsistency", parse_style_review), ("prScore", parse_pr_score)):
        try:
            sections[key] = parser(data.get(key), key)
        except SchemaValidationError as e:
            errors.extend(e.errors)

    if errors:
        raise SchemaValidationError(errors)

    return AnalysisResultData(
        affected_components=sections["affectedComponents"],
        risks=sections["risks"],
        suggestions=sections["suggestions"],
        style_consistency=sections["styleConsistency"],
        pr_score=sections["prScore"],
    )


def repair_analysis_result(data: Mapping[str, Any]) -> tuple[AnalysisResultData, list[str]]:
    """Salvage analysis data from an object that failed validation.

    Array sections keep only their well-formed items (a value that is not an
    array becomes empty). ``styleConsistency`` and ``prScore`` are parsed with
    numbers clamped into range and fall back to neutral baselines when still
    malformed.

    Returns:
        Tuple of (repaired data, descriptions of what was dropped or replaced)
    """
    errors: list[str] = []
    sections: dict[str, Any] = {}

    for key, parser in _ARRAY_SECTIONS:
        items = data.get(key)
        if not isinstance(items, list):
            errors.append(f"{key}: expected array, using empty list")
            sections[key] = ()
            continue
        sections[key] = _parse_items(items, parser, key, True, errors)

    try:
        style_review = parse_style_review(data.get("styleConsistency"), lenient=True, errors=errors)
    except SchemaValidationError as e:
        errors.extend(e.errors)
        style_review = default_style_review()

    try:
        pr_score = parse_pr_score(data.get("prScore"), lenient=True, errors=errors)
    except SchemaValidationError as e:
        errors.extend(e.errors)
        pr_score = default_pr_score()

    return (
        AnalysisResultData(
            affected_components=sections["affectedComponents"],
            risks=sections["risks"],
            suggestions=sections["suggestions"],
            style_consistency=style_review,
            pr_score=pr_score,
        ),
        errors,
    )


# ---------------------------------------------------------------------------
# Neutral baselines
# ---------------------------------------------------------------------------


def default_style_review() -> StyleReview:
    """Neutral style review used when the model's review is unusable."""
    return StyleReview(
        overall_consistency=NEUTRAL_SCORE,
        design_system_alignment=NEUTRAL_SCORE,
        color_consistency=NEUTRAL_SCORE,
        spacing_consistency=NEUTRAL_SCORE,
        typography_consistency=NEUTRAL_SCORE,
        issues=(),
        confidence=NEUTRAL_CONFIDENCE,
    )


def default_breakdown() -> PRScoreBreakdown:
    """Neutral breakdown: quality metrics at 70, risk metrics at 30."""
    return PRScoreBreakdown(
        **{
            name: NEUTRAL_RISK if name in RISK_METRICS else NEUTRAL_SCORE
            for name in BREAKDOWN_FIELDS
        }
    )


def default_pr_score() -> PRScore:
    """Neutral PR score used when the model's score is unusable."""
    return PRScore(
        overall=NEUTRAL_SCORE,
        breakdown=default_breakdown(),
        flags=(),
        summary=INCOMPLETE_SUMMARY,
        would_approve=True,
        confidence=NEUTRAL_CONFIDENCE,
    )


def parse_error_risk() -> Risk:
    """Synthetic risk attached when the response could not be decoded at all."""
    return Risk(
        id="parse-error",
        severity=Severity.MEDIUM,
        category=RiskCategory.COMPATIBILITY,
        title="Analysis Parse Error",
        description=PARSE_ERROR_DESCRIPTION,
        confidence=NEUTRAL_CONFIDENCE,
    )


def fallback_analysis_result() -> AnalysisResultData:
    """Neutral analysis carrying a single parse-error risk."""
    return AnalysisResultData(
        affected_components=(),
        risks=(parse_error_risk(),),
        suggestions=(),
        style_consistency=default_style_review(),
        pr_score=default_pr_score(),
    )


# ---------------------------------------------------------------------------
# Prompt schema
# ---------------------------------------------------------------------------


def _number(low: float, high: float) -> dict[str, Any]:
    return {"type": "number", "minimum": low, "maximum": high}


def _enum(enum_cls: type[Enum]) -> dict[str, Any]:
    return {"type": "string", "enum": [member.value for member in enum_cls]}


_STRING: dict[str, Any] = {"type": "string"}
_STRING_ARRAY: dict[str, Any] = {"type": "array", "items": {"type": "string"}}
_CONFIDENCE = _number(0, 1)
_SCORE = _number(0, 100)


def get_analysis_result_json_schema() -> dict[str, Any]:
    """Return the JSON schema describing a complete analysis response."""
    return {
        "type": "object",
        "required": ["affectedComponents", "risks", "suggestions", "styleConsistency", "prScore"],
        "properties": {
            "affectedComponents": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": [
                        "componentName",
                        "impactLevel",
                        "description",
                        "otherPagesAffected",
                        "confidence",
                    ],
                    "properties": {
                        "componentName": _STRING,
                        "filePath": _STRING,
                        "impactLevel": _enum(ImpactLevel),
                        "description": _STRING,
                        "otherPagesAffected": _STRING_ARRAY,
                        "confidence": _CONFIDENCE,
                    },
                },
            },
            "risks": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": [
                        "id",
                        "severity",
                        "category",
                        "title",
                        "description",
                        "confidence",
                    ],
                    "properties": {
                        "id": _STRING,
                        "severity": _enum(Severity),
                        "category": _enum(RiskCategory),
                        "title": _STRING,
                        "description": _STRING,
                        "affectedBreakpoints": _STRING_ARRAY,
                        "mitigation": _STRING,
                        "confidence": _CONFIDENCE,
                    },
                },
            },
            "suggestions": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": [
                        "id",
                        "type",
                        "priority",
                        "title",
                        "description",
                        "rationale",
                        "confidence",
                    ],
                    "properties": {
                        "id": _STRING,
                        "type": _enum(SuggestionType),
                        "priority": _enum(Priority),
                        "title": _STRING,
                        "description": _STRING,
                        "codeExample": _STRING,
                        "rationale": _STRING,
                        "confidence": _CONFIDENCE,
                    },
                },
            },
            "styleConsistency": {
                "type": "object",
                "required": [
                    "overallConsistency",
                    "designSystemAlignment",
                    "colorConsistency",
                    "spacingConsistency",
                    "typographyConsistency",
                    "issues",
                    "confidence",
                ],
                "properties": {
                    "overallConsistency": _SCORE,
                    "designSystemAlignment": _SCORE,
                    "colorConsistency": _SCORE,
                    "spacingConsistency": _SCORE,
                    "typographyConsistency": _SCORE,
                    "issues": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["property", "issue", "suggestion"],
                            "properties": {
                                "property": _STRING,
                                "issue": _STRING,
                                "suggestion": _STRING,
                            },
                        },
                    },
                    "confidence": _CONFIDENCE,
                },
            },
            "prScore": {
                "type": "object",
                "required": [
                    "overall",
                    "breakdown",
                    "flags",
                    "summary",
                    "wouldApprove",
                    "confidence",
                ],
                "properties": {
                    "overall": _SCORE,
                    "breakdown": {
                        "type": "object",
                        "required": list(BREAKDOWN_FIELDS.values()),
                        "properties": {wire: _SCORE for wire in BREAKDOWN_FIELDS.values()},
                    },
                    "flags": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["type", "message", "confidence"],
                            "properties": {
                                "type": _enum(FlagType),
                                "message": _STRING,
                                "details": _STRING,
                                "confidence": _CONFIDENCE,
                            },
                        },
                    },
                    "summary": _STRING,
                    "wouldApprove": {"type": "boolean"},
                    "confidence": _CONFIDENCE,
                },
            },
        },
    }
