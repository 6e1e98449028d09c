"""Tests for stream events and their wire framing."""

import json

import pytest

from ai_comments.core.events import (
    CompleteEvent,
    ErrorEvent,
    ProgressEvent,
    StartEvent,
)
from ai_comments.utils.streaming import (
    JSONStreamBuffer,
    create_jsonl_line,
    create_sse_message,
    iter_sse,
    parse_sse_message,
)


class TestEventSerialization:
    """Test camelCase event dictionaries."""

    def test_start_event(self) -> None:
        assert StartEvent(total_changes=3).to_dict() == {
            "type": "start",
            "totalChanges": 3,
            "completedChanges": 0,
        }

    def test_progress_event(self) -> None:
        event = ProgressEvent(
            change_id="c1", progress=0.5, total_changes=4, completed_changes=2
        )
        assert event.to_dict() == {
            "type": "progress",
            "changeId": "c1",
            "progress": 0.5,
            "totalChanges": 4,
            "completedChanges": 2,
        }

    def test_error_event_without_change_id(self) -> None:
        """Batch-level errors omit changeId."""
        event = ErrorEvent(change_id=None, error="boom", total_changes=0, completed_changes=0)
        assert "changeId" not in event.to_dict()

    def test_error_event_with_change_id(self) -> None:
        event = ErrorEvent(change_id="c2", error="boom", total_changes=3, completed_changes=1)
        assert event.to_dict()["changeId"] == "c2"


class TestFraming:
    """Test SSE and JSONL framing."""

    def test_sse_message(self) -> None:
        message = create_sse_message(StartEvent(total_changes=2))
        assert message == (
            'data: {"type": "start", "totalChanges": 2, "completedChanges": 0}\n\n'
        )

    def test_jsonl_line(self) -> None:
        line = create_jsonl_line(CompleteEvent(total_changes=2, completed_changes=1))
        assert line.endswith("\n")
        assert line.count("\n") == 1
        assert json.loads(line) == {
            "type": "complete",
            "totalChanges": 2,
            "completedChanges": 1,
        }

    def test_accepts_plain_dicts(self) -> None:
        assert create_jsonl_line({"type": "start"}) == '{"type": "start"}\n'

    def test_sse_round_trip(self) -> None:
        event = ErrorEvent(change_id="c1", error="failed", total_changes=1, completed_changes=0)
        assert parse_sse_message(create_sse_message(event)) == event.to_dict()

    @pytest.mark.parametrize(
        "message",
        [
            "event: ping\n\n",
            "data: {not json}\n\n",
            'data: {"type": "unknown"}\n\n',
            "data: [1, 2]\n\n",
        ],
    )
    def test_parse_rejects_invalid_frames(self, message: str) -> None:
        assert parse_sse_message(message) is None

    def test_iter_sse(self) -> None:
        events = [StartEvent(total_changes=0), CompleteEvent(total_changes=0, completed_changes=0)]
        frames = list(iter_sse(events))
        assert len(frames) == 2
        assert all(frame.startswith("data: ") and frame.endswith("\n\n") for frame in frames)


class TestJSONStreamBuffer:
    """Test incremental JSON extraction."""

    def test_incomplete_value(self) -> None:
        buffer = JSONStreamBuffer()
        buffer.append('{"a": [1, 2')
        assert buffer.try_parse() == (False, None)
        assert buffer.buffer == '{"a": [1, 2'

    def test_complete_value_consumed(self) -> None:
        buffer = JSONStreamBuffer()
        buffer.append('{"a": ')
        buffer.append("1} trailing")

        assert buffer.try_parse() == (True, {"a": 1})
        assert buffer.buffer == " trailing"

    def test_braces_inside_strings(self) -> None:
        buffer = JSONStreamBuffer()
        buffer.append('{"text": "a } and { inside \\" quotes"}')
        assert buffer.try_parse() == (True, {"text": 'a } and { inside " quotes'})

    def test_leading_prose_skipped(self) -> None:
        buffer = JSONStreamBuffer()
        buffer.append('Here is the result: {"ok": true}')
        assert buffer.try_parse() == (True, {"ok": True})

    def test_array_value(self) -> None:
        buffer = JSONStreamBuffer()
        buffer.append("[1, 2, 3]")
        assert buffer.try_parse() == (True, [1, 2, 3])

    def test_malformed_value_is_discarded(self) -> None:
        """A closed but undecodable value is dropped so later values still parse."""
        buffer = JSONStreamBuffer()
        buffer.append('{bad: 1}{"good": 2}')

        assert buffer.try_parse() == (False, None)
        assert buffer.try_parse() == (True, {"good": 2})

    @pytest.mark.parametrize(
        "chunk",
        ['} {"a": 1}', '] {"a": 1}', '}]} noise {"a": 1}'],
        ids=["brace", "bracket", "several"],
    )
    def test_stray_closers_before_value_ignored(self, chunk: str) -> None:
        buffer = JSONStreamBuffer()
        buffer.append(chunk)
        assert buffer.try_parse() == (True, {"a": 1})

    def test_overly_nested_value_is_discarded(self) -> None:
        buffer = JSONStreamBuffer()
        buffer.append("[" * 100_000 + "]" * 100_000 + '{"ok": 1}')

        assert buffer.try_parse() == (False, None)
        assert buffer.try_parse() == (True, {"ok": 1})

    def test_drain(self) -> None:
        buffer = JSONStreamBuffer()
        buffer.append('{"a": 1}\n{"b": 2}\n{"c": ')

        assert buffer.drain() == [{"a": 1}, {"b": 2}]
        assert buffer.buffer == '\n{"c": '

    def test_clear(self) -> None:
        buffer = JSONStreamBuffer()
        buffer.append("{")
        buffer.clear()
        assert buffer.buffer == ""
