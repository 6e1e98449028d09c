"""Wire framing for analysis stream events.

Events cross process boundaries either as Server-Sent Events frames
(``data: <json>\\n\\n``) or as JSON lines. ``JSONStreamBuffer`` goes the
other way: it accumulates incremental text from a streaming provider and
extracts complete JSON values as soon as they close.
"""

import json
import logging
import re
from collections.abc import Iterable, Iterator
from typing import Any

from ai_comments.core.events import EVENT_TYPES, AnalysisStreamEvent
from ai_comments.core.models import JSONDict

logger = logging.getLogger(__name__)

_SSE_DATA_PATTERN = re.compile(r"^data: (.+)$", re.MULTILINE)


def _event_dict(event: AnalysisStreamEvent | JSONDict) -> JSONDict:
    return event if isinstance(event, dict) else event.to_dict()


def create_sse_message(event: AnalysisStreamEvent | JSONDict) -> str:
    """Frame an event as a Server-Sent Events message."""
    return f"data: {json.dumps(_event_dict(event))}\n\n"


def create_jsonl_line(event: AnalysisStreamEvent | JSONDict) -> str:
    """Frame an event as one newline-terminated JSON line."""
    return json.dumps(_event_dict(event)) + "\n"


def parse_sse_message(message: str) -> JSONDict | None:
    """Decode an SSE frame back into an event dictionary.

    Returns:
        The event dictionary, or None if the frame has no data line, the
        payload is not JSON, or it does not carry a known event ``type``
    """
    match = _SSE_DATA_PATTERN.search(message)
    if not match:
        return None

    try:
        data = json.loads(match.group(1))
    except (ValueError, RecursionError):
        logger.debug("Ignoring SSE frame with malformed JSON payload")
        return None

    if not isinstance(data, dict) or data.get("type") not in EVENT_TYPES:
        return None
    return data


def iter_sse(events: Iterable[AnalysisStreamEvent | JSONDict]) -> Iterator[str]:
    """Lazily frame a stream of events as SSE messages."""
    for event in events:
        yield create_sse_message(event)


class JSONStreamBuffer:
    """Accumulates streamed text and extracts complete JSON values.

    Brackets are matched outside of string literals, so braces inside quoted
    text do not confuse the scan.

    Example:
        >>> buffer = JSONStreamBuffer()
        >>> buffer.append('{"a": ')
        >>> buffer.try_parse()
        (False, None)
        >>> buffer.append('1} trailing')
        >>> buffer.try_parse()
        (True, {'a': 1})
        >>> buffer.buffer
        ' trailing'
    """

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def buffer(self) -> str:
        return self._buffer

    def append(self, chunk: str) -> None:
        self._buffer += chunk

    def clear(self) -> None:
        self._buffer = ""

    def _find_value_end(self) -> int:
        depth = 0
        in_string = False
        escape = False

        for index, char in enumerate(self._buffer):
            if escape:
                escape = False
                continue
            if in_string:
                if char == "\\":
                    escape = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char in "{[":
                depth += 1
            elif char in "}]":
                if depth == 0:
                    # Stray closer before any value opened
                    continue
                depth -= 1
                if depth == 0:
                    return index

        return -1

    def try_parse(self) -> tuple[bool, Any]:
        """Try to extract the first complete JSON object or array.

        On a closed value the consumed text is removed from the buffer even if
        it fails to decode, so a corrupt value cannot block later ones.

        Returns:
            Tuple of (success, decoded value or None)
        """
        end = self._find_value_end()
        if end == -1:
            return False, None

        candidate = self._buffer[: end + 1]
        self._buffer = self._buffer[end + 1 :]

        # Skip any prose the model emitted before the value opened
        starts = [i for i in (candidate.find("{"), candidate.find("[")) if i != -1]
        candidate = candidate[min(starts) :]

        try:
            return True, json.loads(candidate)
        except (ValueError, RecursionError):
            logger.debug("Discarding malformed JSON value from stream buffer")
            return False, None

    def drain(self) -> list[Any]:
        """Extract every complete JSON value currently in the buffer."""
        values: list[Any] = []
        while True:
            end = self._find_value_end()
            if end == -1:
                return values
            success, value = self.try_parse()
            if success:
                values.append(value)
