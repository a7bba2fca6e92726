"""Errors reported to agents (ToolError, ToolException) and fatal startup errors."""

from .errors import (
    ConfigurationError,
    ErrorCode,
    ToolError,
    ToolException,
    classify_exception,
    error_message,
)

__all__ = [
    "ConfigurationError",
    "ErrorCode",
    "ToolError",
    "ToolException",
    "classify_exception",
    "error_message",
]
