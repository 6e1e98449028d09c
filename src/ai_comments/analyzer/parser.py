"""Structured result parser for raw model output.

Model output is interpreted under three escalating tiers, each with its own
schema-validation factor for the confidence calculation:

- ``full`` (1.0): valid JSON satisfying the whole result contract
- ``partial`` (0.5): valid JSON object that fails validation and is repaired
  field by field
- ``failed`` (0.0): not a JSON object at all; neutral baselines plus a
  synthetic parse-error risk
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum

from ai_comments.core.models import AnalysisResultData
from ai_comments.prompts.schema import (
    SchemaValidationError,
    fallback_analysis_result,
    repair_analysis_result,
    validate_analysis_result,
)
from ai_comments.utils.text import strip_code_fences

logger = logging.getLogger(__name__)


class ParseTier(str, Enum):
    """Level at which a raw response was interpreted."""

    FULL = "full"
    PARTIAL = "partial"
    FAILED = "failed"

    @property
    def schema_validation(self) -> float:
        return _TIER_FACTORS[self]


_TIER_FACTORS: dict[ParseTier, float] = {
    ParseTier.FULL: 1.0,
    ParseTier.PARTIAL: 0.5,
    ParseTier.FAILED: 0.0,
}


@dataclass(frozen=True, slots=True)
class ParseOutcome:
    """Result of parsing one raw response.

    Attributes:
        data: Parsed (or repaired, or neutral) analysis data
        tier: Parser tier that produced ``data``
        errors: What failed validation or was repaired, empty on the full tier
    """

    data: AnalysisResultData
    tier: ParseTier
    errors: tuple[str, ...] = field(default=())

    @property
    def schema_validation(self) -> float:
        """Confidence factor for the tier (1.0, 0.5 or 0.0)."""
        return self.tier.schema_validation


class StructuredResultParser:
    """Parse raw model text into ``AnalysisResultData``.

    ``parse`` never raises: every input maps onto one of the three tiers.

    Examples:
        >>> parser = StructuredResultParser()
        >>> outcome = parser.parse("not json")
        >>> outcome.tier, outcome.schema_validation
        (<ParseTier.FAILED: 'failed'>, 0.0)
        >>> outcome.data.risks[0].id
        'parse-error'
    """

    def parse(self, raw_text: str) -> ParseOutcome:
        """Parse raw model output.

        Args:
            raw_text: Raw response content, optionally wrapped in a markdown
                code fence

        Returns:
            ParseOutcome with data, tier and the repair log
        """
        try:
            decoded = json.loads(strip_code_fences(raw_text))
        except (ValueError, RecursionError, TypeError) as e:
            # ValueError covers JSONDecodeError and the integer digit limit
            logger.warning(f"Model response is not valid JSON, using neutral result: {e}")
            return ParseOutcome(
                data=fallback_analysis_result(),
                tier=ParseTier.FAILED,
                errors=(f"invalid JSON: {e}",),
            )

        if not isinstance(decoded, dict):
            logger.warning(
                f"Model response is JSON {type(decoded).__name__}, not an object; "
                f"using neutral result"
            )
            return ParseOutcome(
                data=fallback_analysis_result(),
                tier=ParseTier.FAILED,
                errors=(f"expected JSON object, got {type(decoded).__name__}",),
            )

        try:
            data = validate_analysis_result(decoded)
        except SchemaValidationError as e:
            repaired, repair_errors = repair_analysis_result(decoded)
            errors = tuple(dict.fromkeys([*e.errors, *repair_errors]))
            logger.warning(
                f"Model response failed schema validation ({len(e.errors)} error(s)); "
                f"repaired partial result"
            )
            for error in errors:
                logger.debug(f"Schema repair: {error}")
            return ParseOutcome(data=repaired, tier=ParseTier.PARTIAL, errors=errors)

        logger.debug("Model response passed schema validation")
        return ParseOutcome(data=data, tier=ParseTier.FULL)
