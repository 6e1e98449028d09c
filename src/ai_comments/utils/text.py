"""Text and number utility functions.

This module provides small helpers shared across the pipeline for cleaning
model output and keeping scores inside their declared ranges.
"""

import re

_CODE_FENCE_PATTERN = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n(.*?)\n\s*```\s*$", re.DOTALL)


def clamp(value: float, low: float, high: float) -> float:
    """Constrain value to the closed interval [low, high]."""
    return max(low, min(value, high))


def strip_code_fences(text: str) -> str:
    """Remove a single surrounding markdown code fence, if present.

    Chat models frequently wrap JSON in a fenced block even when asked not to.

    Returns:
        The fenced body when the whole text is one fenced block, otherwise the
        text with surrounding whitespace removed.
    """
    match = _CODE_FENCE_PATTERN.match(text)
    if match:
        return match.group(1).strip()
    return text.strip()
