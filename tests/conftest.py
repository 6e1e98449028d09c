"""Test configuration and fixtures."""

import json
import threading
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from ai_comments.core.models import AnalysisContext, ChangeInput, ChangeType, ElementState
from ai_comments.llm.exceptions import LLMAPIError
from ai_comments.llm.providers.base import (
    FinishReason,
    LLMRequest,
    LLMResponse,
    LLMStreamChunk,
    TokenUsage,
)

# A reply is either raw response text, or an exception to raise
Reply = str | Exception


class FakeProvider:
    """Scripted provider implementing the LLMProvider protocol.

    A reply is picked by the first ``by_marker`` key found in the rendered
    user prompt (a selector works well), falling back to ``default``. Every
    request is recorded for assertions. Safe to call from several threads.
    """

    name = "fake"

    def __init__(
        self,
        default: Reply = "{}",
        by_marker: dict[str, Reply] | None = None,
        total_tokens: int = 500,
        on_complete: Callable[[LLMRequest], None] | None = None,
    ) -> None:
        self.default = default
        self.by_marker = by_marker or {}
        self.total_tokens = total_tokens
        self.on_complete = on_complete
        self.requests: list[LLMRequest] = []
        self._lock = threading.Lock()

    def _reply_for(self, request: LLMRequest) -> Reply:
        user_prompt = request.messages[-1].content
        for marker, reply in self.by_marker.items():
            if marker in user_prompt:
                return reply
        return self.default

    def complete(self, request: LLMRequest) -> LLMResponse:
        with self._lock:
            self.requests.append(request)
        if self.on_complete is not None:
            self.on_complete(request)

        reply = self._reply_for(request)
        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(
            content=reply,
            prompt_tokens=self.total_tokens - 100,
            completion_tokens=100,
            total_tokens=self.total_tokens,
            model="fake-model",
            finish_reason=FinishReason.STOP,
        )

    def complete_stream(self, request: LLMRequest) -> Iterator[LLMStreamChunk]:
        response = self.complete(request)
        for start in range(0, len(response.content), 16):
            yield LLMStreamChunk(content=response.content[start : start + 16])
        yield LLMStreamChunk(
            content="",
            done=True,
            usage=TokenUsage(response.prompt_tokens, response.completion_tokens),
        )

    def count_tokens(self, text: str) -> int:
        return len(text) // 4


@pytest.fixture
def valid_analysis_payload() -> dict[str, Any]:
    """A model response satisfying the full analysis contract.

    The breakdown recomputes to an overall score of 82 with default weights.
    """
    return {
        "affectedComponents": [
            {
                "componentName": "HeroBanner",
                "filePath": "src/components/HeroBanner.tsx",
                "impactLevel": "medium",
                "description": "Heading text changes length",
                "otherPagesAffected": ["/pricing"],
                "confidence": 0.8,
            }
        ],
        "risks": [
            {
                "id": "risk-1",
                "severity": "low",
                "category": "responsive",
                "title": "Longer heading may wrap",
                "description": "The new heading may wrap on narrow viewports.",
                "affectedBreakpoints": ["mobile"],
                "mitigation": "Check the 375px breakpoint.",
                "confidence": 0.7,
            }
        ],
        "suggestions": [
            {
                "id": "sug-1",
                "type": "best-practice",
                "priority": "low",
                "title": "Use the copy constants",
                "description": "Move the heading into the shared copy file.",
                "rationale": "Keeps marketing copy in one place.",
                "confidence": 0.6,
            }
        ],
        "styleConsistency": {
            "overallConsistency": 85,
            "designSystemAlignment": 80,
            "colorConsistency": 90,
            "spacingConsistency": 85,
            "typographyConsistency": 88,
            "issues": [],
            "confidence": 0.9,
        },
        "prScore": {
            "overall": 82,
            "breakdown": {
                "codeConsistency": 85,
                "reuseScore": 80,
                "aiDetectionRisk": 20,
                "cascadeRisk": 25,
                "responsiveScore": 80,
                "semanticScore": 85,
                "intentAlignment": 90,
            },
            "flags": [],
            "summary": "Good change.",
            "wouldApprove": True,
            "confidence": 0.8,
        },
    }


@pytest.fixture
def valid_analysis_json(valid_analysis_payload: dict[str, Any]) -> str:
    return json.dumps(valid_analysis_payload)


@pytest.fixture
def text_change() -> ChangeInput:
    return ChangeInput(
        id="change-1",
        type=ChangeType.TEXT,
        element_tag="h1",
        xpath="/html/body/main/h1",
        selector="main > h1",
        original=ElementState(text_content="Welcome"),
        modified=ElementState(text_content="Welcome to our new site"),
    )


@pytest.fixture
def style_change() -> ChangeInput:
    return ChangeInput(
        id="change-2",
        type=ChangeType.STYLE,
        element_tag="div",
        xpath="/html/body/main/div[2]",
        selector=".card",
        original=ElementState(styles={"color": "red", "padding": "8px"}),
        modified=ElementState(styles={"color": "blue", "padding": "8px", "display": "none"}),
    )


@pytest.fixture
def analysis_context() -> AnalysisContext:
    return AnalysisContext(
        page_url="https://example.com/",
        surrounding_html="<main>" + "<p>content</p>" * 10 + "</main>",
        design_system="tailwind",
        existing_classes=frozenset({"card", "btn"}),
        viewport_width=1280,
    )


def make_changes(count: int) -> list[ChangeInput]:
    """Build ``count`` text changes with IDs item-1..item-N."""
    return [
        ChangeInput(
            id=f"item-{index}",
            type=ChangeType.TEXT,
            element_tag="p",
            xpath=f"/html/body/p[{index}]",
            selector=f"#item-{index}",
            original=ElementState(text_content="old"),
            modified=ElementState(text_content="new"),
        )
        for index in range(1, count + 1)
    ]


@pytest.fixture
def provider_error() -> LLMAPIError:
    return LLMAPIError("backend unavailable")
