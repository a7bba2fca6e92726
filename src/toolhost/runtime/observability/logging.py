"""Structured logging for tool servers.

Every renderer writes to stderr (resolved at write time, so redirections and
test capture see it). Over the stdio transport, stdout carries protocol
frames only; a log line there would corrupt the stream.

Quick Start:
    >>> from toolhost.runtime.observability import configure_logging, get_logger
    >>>
    >>> configure_logging(format="console")  # or "json" for log aggregation
    >>> log = get_logger("toolhost.bigquery")
    >>> log.info("query job started", job_id="abc")

    >>> # Bind request context once, reuse for every line of the request
    >>> log = log.bind(tool="fetch", request_id=7)
    >>> log.warning("tool call failed", error="Failed to fetch ...")
"""

from __future__ import annotations

import logging
import sys
import time
import traceback
from dataclasses import dataclass, field
from typing import Any, Protocol, TextIO, runtime_checkable

import orjson

JsonDict = dict[str, Any]

_LEVEL_NAMES = {logging.DEBUG: "debug", logging.INFO: "info", logging.WARNING: "warning",
                logging.ERROR: "error", logging.CRITICAL: "critical"}


@dataclass(slots=True, frozen=True)
class LogEntry:
    timestamp: float
    level: str
    event: str
    context: JsonDict

    @property
    def clock(self) -> str:
        """Local HH:MM:SS.mmm"""
        return time.strftime("%H:%M:%S", time.localtime(self.timestamp)) + f".{int(self.timestamp % 1 * 1000):03d}"


# ─────────────────────────────────────────────────────────────────────────────
# Logger
# ─────────────────────────────────────────────────────────────────────────────


class BoundLogger:
    """Logger carrying a dict of context merged into every entry.

    Loggers are cheap immutable values: bind() returns a new one. The
    renderer and level are looked up at emit time, so module-level loggers
    follow configure_logging() calls made later.

    Example:
        >>> log = get_logger("toolhost.dispatcher").bind(tool="fetch")
        >>> log.info("tool call received", arguments=["url"])
        # => 10:30:45.123 [info] tool call received arguments=[url] logger="toolhost.dispatcher" tool="fetch"
    """

    __slots__ = ("context",)

    def __init__(self, context: JsonDict | None = None) -> None:
        self.context: JsonDict = context or {}

    def bind(self, **kw: Any) -> BoundLogger:
        return BoundLogger({**self.context, **kw})

    def debug(self, event: str, **kw: Any) -> None: self._emit(logging.DEBUG, event, kw)
    def info(self, event: str, **kw: Any) -> None: self._emit(logging.INFO, event, kw)
    def warning(self, event: str, **kw: Any) -> None: self._emit(logging.WARNING, event, kw)
    def error(self, event: str, **kw: Any) -> None: self._emit(logging.ERROR, event, kw)

    def exception(self, event: str, **kw: Any) -> None:
        """error() plus the traceback of the exception being handled."""
        self._emit(logging.ERROR, event, {**kw, "exc_info": traceback.format_exc()})

    def _emit(self, level: int, event: str, kw: JsonDict) -> None:
        if level < _state.level:
            return
        _state.renderer.render(LogEntry(time.time(), _LEVEL_NAMES[level], event, {**self.context, **kw}))

    def __repr__(self) -> str:
        return f"BoundLogger({self.context!r})"


def get_logger(name: str | None = None, **context: Any) -> BoundLogger:
    """Logger with `name` bound as ``logger`` plus any initial context."""
    return BoundLogger({**context, "logger": name} if name else dict(context))


# ─────────────────────────────────────────────────────────────────────────────
# Renderers
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class LogRenderer(Protocol):
    def render(self, entry: LogEntry) -> None: ...


_RESET, _DIM, _BOLD, _CYAN = "\033[0m", "\033[2m", "\033[1m", "\033[36m"
_LEVEL_STYLE = {"debug": _DIM, "info": "\033[32m", "warning": "\033[33m", "error": "\033[31m", "critical": "\033[31m"}


@dataclass(slots=True)
class ConsoleRenderer:
    """Human-readable lines: ``time [level] event key=value ...``, colored on a TTY."""

    output: TextIO | None = None
    colors: bool | None = None  # None: color when the stream is a TTY

    def render(self, entry: LogEntry) -> None:
        out = self.output or sys.stderr
        color = self.colors if self.colors is not None else out.isatty()
        ctx = dict(entry.context)
        trace = ctx.pop("exc_info", None)
        pairs = " ".join(f"{k}={_console_value(v)}" for k, v in sorted(ctx.items()))
        if color:
            line = (f"{_DIM}{entry.clock}{_RESET} {_LEVEL_STYLE[entry.level]}[{entry.level}]{_RESET} "
                    f"{_BOLD}{entry.event}{_RESET} {_CYAN}{pairs}{_RESET}")
        else:
            line = f"{entry.clock} [{entry.level}] {entry.event} {pairs}"
        out.write(line.rstrip() + "\n")
        if trace:
            out.write(trace if trace.endswith("\n") else trace + "\n")
        out.flush()


@dataclass(slots=True)
class JsonRenderer:
    """One JSON object per line, for log aggregation."""

    output: TextIO | None = None

    def render(self, entry: LogEntry) -> None:
        record = {"ts": entry.timestamp, "level": entry.level, "event": entry.event, **entry.context}
        out = self.output or sys.stderr
        out.write(orjson.dumps(record, default=str, option=orjson.OPT_APPEND_NEWLINE).decode())
        out.flush()


class NoOpRenderer:
    """Discards everything (tests, ``TOOLHOST_LOG_FORMAT=none``)."""

    __slots__ = ()

    def render(self, entry: LogEntry) -> None:
        pass


@dataclass(slots=True)
class CaptureRenderer:
    """Keeps entries in memory, for assertions in tests."""

    entries: list[LogEntry] = field(default_factory=list)

    def render(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    def events(self, level: str | None = None) -> list[str]:
        return [e.event for e in self.entries if level is None or e.level == level]


def _console_value(v: object) -> str:
    match v:
        case str(): return f'"{v}"'
        case bool(): return str(v).lower()
        case list() | tuple(): return f"[{', '.join(map(str, v))}]"
        case _: return str(v)


# ─────────────────────────────────────────────────────────────────────────────
# Process-wide configuration
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class _LogState:
    renderer: LogRenderer = field(default_factory=ConsoleRenderer)
    level: int = logging.INFO


_state = _LogState()


def configure_logging(
    format: str = "console",  # noqa: A002 - matches the settings field
    level: str = "INFO",
    *,
    output: TextIO | None = None,
    colors: bool | None = None,
) -> LogRenderer:
    """Install the process renderer: "console" (human), "json" (machine) or "none".

    Also points the stdlib ``logging`` root (used by the mcp SDK, httpx and
    uvicorn) at the same stream and level.
    """
    match format:
        case "console": renderer: LogRenderer = ConsoleRenderer(output=output, colors=colors)
        case "json": renderer = JsonRenderer(output=output)
        case "none": renderer = NoOpRenderer()
        case _: raise ValueError(f"Unknown log format {format!r}; expected console, json or none")
    _state.renderer = renderer
    _state.level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    logging.basicConfig(level=_state.level, stream=output or sys.stderr, force=True,
                        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    return renderer


def set_renderer(renderer: LogRenderer | None) -> None:
    """Swap the process renderer (None restores the stderr console renderer)."""
    _state.renderer = renderer if renderer is not None else ConsoleRenderer()
