"""Error taxonomy for the query and dashboard core.

Per-query failures never crash the transport: they are converted to
error frames at the channel boundary. The only exception allowed to
escape the rollup engine and dispatcher is RawStoreUnavailableError.

Usage:
    from starklytics.errors import ErrorCode, error_payload

    frame = {"type": "error", "payload": error_payload(
        "Invalid message format", ErrorCode.INVALID_FORMAT
    )}
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable codes carried in error frames and HTTP details."""

    INVALID_FORMAT = "invalid_format"  # Frame failed shape/JSON validation
    EXECUTION_FAILED = "execution_failed"  # Matched query raised
    TIMEOUT = "timeout"  # Query exceeded the configured timeout
    STORE_UNAVAILABLE = "store_unavailable"  # Raw event store unreachable
    NOT_FOUND = "not_found"  # Unknown dashboard or widget


class StarklyticsError(Exception):
    """Base class for errors raised by this package."""

    code: ErrorCode = ErrorCode.EXECUTION_FAILED


class RawStoreUnavailableError(StarklyticsError):
    """The raw event store could not be read."""

    code = ErrorCode.STORE_UNAVAILABLE


class MalformedMessageError(StarklyticsError):
    """An inbound frame could not be parsed or had the wrong shape."""

    code = ErrorCode.INVALID_FORMAT


class DashboardNotFoundError(StarklyticsError):
    """A dashboard (or widget) id did not resolve."""

    code = ErrorCode.NOT_FOUND


def error_payload(message: str, code: ErrorCode = ErrorCode.EXECUTION_FAILED) -> dict[str, str]:
    """Build the payload of an error frame.

    Args:
        message: Human-readable failure description
        code: Machine-readable error code

    Returns:
        Payload dict with ``message`` and ``code``
    """
    return {"message": message, "code": code.value}
