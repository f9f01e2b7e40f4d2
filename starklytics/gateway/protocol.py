"""Wire frames for the live query channel.

Frames are JSON text messages tagged by ``type``:

    submit  {"type": "query", "payload": {"query": "<text>"}}
    result  {"type": "query_result", "payload": {"columns": [...], "rows": [...]}, "duration": 12.5}
    error   {"type": "error", "payload": {"message": "<text>", "code": "<code>"}}
    ping    {"type": "ping"}            (either direction)
    pong    {"type": "pong"}            (reply to ping)
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ValidationError

from ..errors import ErrorCode, MalformedMessageError, error_payload
from ..spellbook.models import QueryResult

INVALID_FORMAT_MESSAGE = "Invalid message format"


class QueryPayload(BaseModel):
    query: str


class QuerySubmission(BaseModel):
    """A client asking for a query to be run."""

    type: Literal["query"]
    payload: QueryPayload


class ControlFrame(BaseModel):
    type: Literal["ping", "pong"]


InboundFrame = QuerySubmission | ControlFrame


def parse_frame(raw: str | bytes) -> InboundFrame:
    """Decode and validate one inbound frame.

    Raises:
        MalformedMessageError: If the frame is not JSON or has the wrong shape.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        raise MalformedMessageError(f"Frame is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedMessageError(f"Frame is not an object: {type(data).__name__}")

    frame_type = data.get("type")
    try:
        if frame_type in ("ping", "pong"):
            return ControlFrame.model_validate(data)
        return QuerySubmission.model_validate(data)
    except ValidationError as e:
        raise MalformedMessageError(f"Frame failed validation: {e.error_count()} error(s)") from e


def result_frame(result: QueryResult, duration_ms: float | None = None) -> dict[str, Any]:
    frame: dict[str, Any] = {"type": "query_result", "payload": result.to_dict()}
    if duration_ms is not None:
        frame["duration"] = round(duration_ms, 3)
    return frame


def error_frame(message: str, code: ErrorCode = ErrorCode.EXECUTION_FAILED) -> dict[str, Any]:
    return {"type": "error", "payload": error_payload(message, code)}


def ping_frame() -> dict[str, Any]:
    return {"type": "ping"}


def pong_frame() -> dict[str, Any]:
    return {"type": "pong"}
