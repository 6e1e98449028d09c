"""Tests for StructuredResultParser tiers."""

import copy
import json
import logging
import math
from typing import Any

import pytest

from ai_comments.analyzer import ParseTier, StructuredResultParser
from ai_comments.prompts.schema import default_pr_score
from ai_comments.utils.text import strip_code_fences


class TestStripCodeFences:
    """Test markdown code fence removal."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ('```json\n{"a": 1}\n```', '{"a": 1}'),
            ('```\n{"a": 1}\n```', '{"a": 1}'),
            ('  ```json\n{"a": 1}\n```  \n', '{"a": 1}'),
            ('  {"a": 1}  ', '{"a": 1}'),
            ('prefix ```json\n{"a": 1}\n```', 'prefix ```json\n{"a": 1}\n```'),
        ],
    )
    def test_strip(self, text: str, expected: str) -> None:
        assert strip_code_fences(text) == expected


class TestFullTier:
    """Test responses that satisfy the full contract."""

    def test_valid_json(self, valid_analysis_json: str) -> None:
        outcome = StructuredResultParser().parse(valid_analysis_json)

        assert outcome.tier is ParseTier.FULL
        assert outcome.schema_validation == 1.0
        assert outcome.errors == ()
        assert outcome.data.pr_score.overall == 82

    def test_fenced_json(self, valid_analysis_json: str) -> None:
        """A response wrapped in a markdown fence still parses fully."""
        outcome = StructuredResultParser().parse(f"```json\n{valid_analysis_json}\n```")
        assert outcome.tier is ParseTier.FULL


class TestPartialTier:
    """Test responses that decode but fail validation."""

    def test_repaired_result(
        self, valid_analysis_payload: dict[str, Any], caplog: pytest.LogCaptureFixture
    ) -> None:
        payload = copy.deepcopy(valid_analysis_payload)
        payload["suggestions"][0]["priority"] = "urgent"

        with caplog.at_level(logging.WARNING):
            outcome = StructuredResultParser().parse(json.dumps(payload))

        assert outcome.tier is ParseTier.PARTIAL
        assert outcome.schema_validation == 0.5
        assert outcome.data.suggestions == ()
        assert outcome.data.risks[0].id == "risk-1"
        assert "failed schema validation" in caplog.text

    def test_errors_are_deduplicated(self, valid_analysis_payload: dict[str, Any]) -> None:
        """The same violation reported by validation and repair appears once."""
        payload = copy.deepcopy(valid_analysis_payload)
        payload["risks"][0]["severity"] = "huge"

        outcome = StructuredResultParser().parse(json.dumps(payload))

        assert len(outcome.errors) == len(set(outcome.errors))
        assert sum("risks[0].severity" in e for e in outcome.errors) == 1

    def test_empty_object(self) -> None:
        """An empty object is repaired onto neutral baselines."""
        outcome = StructuredResultParser().parse("{}")

        assert outcome.tier is ParseTier.PARTIAL
        assert outcome.data.pr_score == default_pr_score()
        assert outcome.data.risks == ()

    @pytest.mark.parametrize(
        ("metric", "value", "expected"),
        [
            ("codeConsistency", 10**400, 100),
            ("aiDetectionRisk", -(10**400), 0),
            ("cascadeRisk", math.inf, 100),
            ("responsiveScore", -math.inf, 0),
        ],
        ids=["huge-int", "huge-negative-int", "infinity", "negative-infinity"],
    )
    def test_unusable_breakdown_numbers_clamped(
        self,
        valid_analysis_payload: dict[str, Any],
        metric: str,
        value: float,
        expected: float,
    ) -> None:
        """Numbers beyond float range or infinite are clamped when repairing."""
        payload = copy.deepcopy(valid_analysis_payload)
        payload["prScore"]["breakdown"][metric] = value

        outcome = StructuredResultParser().parse(json.dumps(payload))

        assert outcome.tier is ParseTier.PARTIAL
        assert outcome.schema_validation == 0.5
        assert outcome.data.pr_score.breakdown.to_dict()[metric] == expected
        assert any("must be finite" in error for error in outcome.errors)

    def test_huge_overall_clamped(self, valid_analysis_payload: dict[str, Any]) -> None:
        payload = copy.deepcopy(valid_analysis_payload)
        payload["prScore"]["overall"] = int("1" + "0" * 400)

        outcome = StructuredResultParser().parse(json.dumps(payload))

        assert outcome.tier is ParseTier.PARTIAL
        assert outcome.data.pr_score.overall == 100

    def test_nan_falls_back_to_baseline_score(
        self, valid_analysis_payload: dict[str, Any]
    ) -> None:
        """NaN cannot be clamped, so the score section is replaced."""
        payload = copy.deepcopy(valid_analysis_payload)
        payload["prScore"]["breakdown"]["semanticScore"] = math.nan

        outcome = StructuredResultParser().parse(json.dumps(payload))

        assert outcome.tier is ParseTier.PARTIAL
        assert outcome.data.pr_score == default_pr_score()
        assert outcome.data.risks[0].id == "risk-1"


class TestFailedTier:
    """Test responses that cannot be decoded into an object."""

    @pytest.mark.parametrize("raw", ["not json at all", "", '{"truncated": '])
    def test_invalid_json(self, raw: str) -> None:
        outcome = StructuredResultParser().parse(raw)

        assert outcome.tier is ParseTier.FAILED
        assert outcome.schema_validation == 0.0
        assert outcome.errors[0].startswith("invalid JSON")
        assert outcome.data.risks[0].id == "parse-error"

    def test_json_array(self) -> None:
        """Valid JSON that is not an object falls to the failed tier."""
        outcome = StructuredResultParser().parse("[1, 2]")

        assert outcome.tier is ParseTier.FAILED
        assert outcome.errors == ("expected JSON object, got list",)

    @pytest.mark.parametrize(
        "raw",
        [
            "null",
            "42",
            '"text"',
            "```\n```",
            "{{}}",
            "1" * 5000,
            "[" * 100_000,
            '{"prScore": ' + "[" * 100_000,
            "{" * 100_000,
        ],
        ids=[
            "null",
            "number",
            "string",
            "empty-fence",
            "double-brace",
            "integer-over-digit-limit",
            "deep-array",
            "deep-array-in-object",
            "unclosed-braces",
        ],
    )
    def test_parse_never_raises(self, raw: str) -> None:
        """Input that cannot be decoded into an object falls to the failed tier."""
        outcome = StructuredResultParser().parse(raw)

        assert outcome.tier is ParseTier.FAILED
        assert outcome.schema_validation == 0.0
        assert outcome.data.risks[0].id == "parse-error"
