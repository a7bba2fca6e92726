"""Error model for tool invocations.

A tool failure reaches the agent as JSON text ``{"error": "<message>"}``
inside a normal result. The code attached to each error never leaves the
process; it drives log classification only.

Example:
    >>> err = ToolError.from_exception("fetch", TimeoutError("read timed out"))
    >>> err.code, err.render()
    (<ErrorCode.TIMEOUT: 'TIMEOUT'>, '{"error":"read timed out"}')
"""

from __future__ import annotations

from enum import StrEnum
from typing import Self

import orjson
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ErrorCode(StrEnum):
    # Envelope-level failures produced by the dispatcher
    NO_ARGUMENTS = "NO_ARGUMENTS"
    UNKNOWN_TOOL = "UNKNOWN_TOOL"
    MISSING_ARGUMENT = "MISSING_ARGUMENT"
    CANCELLED = "CANCELLED"
    # Upstream failures
    RATE_LIMITED = "RATE_LIMITED"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    PARSE_ERROR = "PARSE_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    UNKNOWN = "UNKNOWN"


# Keyword hints for exceptions whose type says nothing (google.api_core, httpx)
_KEYWORDS: tuple[tuple[tuple[str, ...], ErrorCode], ...] = (
    (("timeout", "timed out"), ErrorCode.TIMEOUT),
    (("ratelimit", "too many requests", "quota"), ErrorCode.RATE_LIMITED),
    (("connect", "network", "unreachable"), ErrorCode.NETWORK_ERROR),
    (("forbidden", "permission", "unauthorized"), ErrorCode.PERMISSION_DENIED),
    (("notfound", "not found"), ErrorCode.NOT_FOUND),
    (("json", "decode"), ErrorCode.PARSE_ERROR),
)


def classify_exception(exc: BaseException) -> ErrorCode:
    """Best-effort error code for an arbitrary exception."""
    match exc:
        case ToolException(error=error):
            return error.code
        case TimeoutError():
            return ErrorCode.TIMEOUT
        case ConnectionError():
            return ErrorCode.NETWORK_ERROR
        case PermissionError():
            return ErrorCode.PERMISSION_DENIED
    text = f"{type(exc).__name__} {exc}".lower()
    return next(
        (code for words, code in _KEYWORDS if any(w in text for w in words)),
        ErrorCode.EXTERNAL_SERVICE_ERROR,
    )


def error_message(exc: BaseException) -> str:
    """``str(exc)`` verbatim, or the type name when the exception carries no text."""
    text = str(exc)
    return text if text.strip() else type(exc).__name__


class ToolError(BaseModel):
    """What went wrong in one tool invocation.

    ``message`` is surfaced verbatim to the agent; ``tool_name`` and ``code``
    are for the server's own logs.
    """

    model_config = ConfigDict(frozen=True)

    tool_name: str = ""
    message: str = Field(..., min_length=1)
    code: ErrorCode = ErrorCode.UNKNOWN

    @field_validator("message", mode="before")
    @classmethod
    def _message_from_exception(cls, v: object) -> object:
        return error_message(v) if isinstance(v, BaseException) else v

    @classmethod
    def create(cls, tool_name: str, message: str, code: ErrorCode = ErrorCode.UNKNOWN) -> Self:
        return cls(tool_name=tool_name, message=message, code=code)

    @classmethod
    def from_exception(cls, tool_name: str, exc: BaseException, context: str = "") -> Self:
        """Wrap `exc`, prefixing its message with `context` when given."""
        text = error_message(exc)
        return cls(tool_name=tool_name, message=f"{context}: {text}" if context else text, code=classify_exception(exc))

    def render(self) -> str:
        return orjson.dumps({"error": self.message}).decode()

    def __str__(self) -> str:
        return self.render()


class ToolException(Exception):
    """Raised by API clients and handlers; the dispatcher turns it into a Failure."""

    __match_args__ = ("error",)

    def __init__(self, error: ToolError) -> None:
        super().__init__(error.message)
        self.error = error

    @classmethod
    def create(cls, tool_name: str, message: str, code: ErrorCode = ErrorCode.UNKNOWN) -> Self:
        return cls(ToolError.create(tool_name, message, code))

    @classmethod
    def from_exc(cls, tool_name: str, exc: BaseException, context: str = "") -> Self:
        return cls(ToolError.from_exception(tool_name, exc, context))


class ConfigurationError(Exception):
    """Required configuration missing or invalid at startup. Fatal: exit status 1.

    ``missing`` lists the environment variables that were absent.
    """

    def __init__(self, message: str, *, missing: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.missing = missing
