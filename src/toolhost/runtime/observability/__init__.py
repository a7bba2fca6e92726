"""Observability: structured logging on the diagnostic channel (stderr)."""

from .logging import (
    BoundLogger,
    CaptureRenderer,
    ConsoleRenderer,
    JsonRenderer,
    LogEntry,
    LogRenderer,
    NoOpRenderer,
    configure_logging,
    get_logger,
    set_renderer,
)

__all__ = [
    "BoundLogger", "CaptureRenderer", "ConsoleRenderer", "JsonRenderer", "LogEntry", "LogRenderer",
    "NoOpRenderer", "configure_logging", "get_logger", "set_renderer",
]
