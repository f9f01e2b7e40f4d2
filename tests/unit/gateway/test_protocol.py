"""Tests for live query wire frames."""

import json

import pytest

from starklytics.errors import ErrorCode, MalformedMessageError
from starklytics.gateway import parse_frame
from starklytics.gateway.protocol import (
    ControlFrame,
    QuerySubmission,
    error_frame,
    result_frame,
)
from starklytics.spellbook import QueryResult


class TestParseFrame:
    def test_query_submission(self) -> None:
        frame = parse_frame(json.dumps({"type": "query", "payload": {"query": "select 1"}}))

        assert isinstance(frame, QuerySubmission)
        assert frame.payload.query == "select 1"

    def test_bytes_accepted(self) -> None:
        frame = parse_frame(b'{"type": "pong"}')

        assert isinstance(frame, ControlFrame)
        assert frame.type == "pong"

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[]",
            "42",
            '{"type": "query"}',
            '{"type": "query", "payload": {}}',
            '{"type": "query", "payload": {"query": 5}}',
            '{"type": "subscribe", "payload": {"query": "x"}}',
            '{"payload": {"query": "x"}}',
            "",
        ],
    )
    def test_malformed_frames_rejected(self, raw: str) -> None:
        with pytest.raises(MalformedMessageError):
            parse_frame(raw)


class TestOutboundFrames:
    def test_result_frame(self) -> None:
        result = QueryResult(columns=["a"], rows=[[1]])
        frame = result_frame(result, 12.34567)

        assert frame == {
            "type": "query_result",
            "payload": {"columns": ["a"], "rows": [[1]]},
            "duration": 12.346,
        }

    def test_error_frame(self) -> None:
        frame = error_frame("Invalid message format", ErrorCode.INVALID_FORMAT)

        assert frame == {
            "type": "error",
            "payload": {"message": "Invalid message format", "code": "invalid_format"},
        }
