"""Dispatch of tool invocations to registered handlers.

The dispatcher is stateless per call: it looks the tool up in the frozen
registry, rejects requests without an arguments object, runs the handler
and folds every outcome into Success or Failure. Handler exceptions never
escape as transport errors; the calling agent sees them as a Failure.
"""

from __future__ import annotations

import asyncio
import time

from toolhost.foundation.core import Failure, InvocationRequest, Success
from toolhost.foundation.errors import ToolError, ToolException
from toolhost.foundation.registry import ToolRegistry
from toolhost.runtime.cancellation import CancellationToken
from toolhost.runtime.observability import BoundLogger, get_logger


class Dispatcher:
    """Routes an InvocationRequest to its handler and normalizes the outcome.

    Example:
        >>> dispatcher = Dispatcher(registry)
        >>> result = await dispatcher.handle(
        ...     InvocationRequest(tool_name="fetch", arguments={"url": "https://example.com"}),
        ...     CancellationToken(),
        ... )
        >>> result.ok
        True
    """

    __slots__ = ("_registry", "_log")

    def __init__(self, registry: ToolRegistry, *, log: BoundLogger | None = None) -> None:
        self._registry = registry
        self._log = log or get_logger("toolhost.dispatcher")

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def handle(self, request: InvocationRequest, token: CancellationToken) -> Success | Failure:
        name = request.tool_name
        log = self._log.bind(tool=name, request_id=token.request_id)
        log.info("tool call received", arguments=sorted(request.arguments) if request.arguments else None)

        if request.arguments is None:
            return self._failed(log, Failure.no_arguments())
        if (handler := self._registry.get(name)) is None:
            return self._failed(log, Failure.unknown_tool(name))

        start = time.perf_counter()
        try:
            result = await handler(request.arguments, token)
        except asyncio.CancelledError:
            raise
        except ToolException as e:
            result = Failure.from_error(e.error)
        except Exception as e:
            result = Failure.from_error(ToolError.from_exception(name, e))
            log.exception("handler raised", error_type=type(e).__name__)

        duration_ms = round((time.perf_counter() - start) * 1000, 1)
        if isinstance(result, Failure):
            return self._failed(log, result, duration_ms=duration_ms)
        log.debug("tool call succeeded", duration_ms=duration_ms, blocks=len(result.content))
        return result

    @staticmethod
    def _failed(log: BoundLogger, failure: Failure, **kw: object) -> Failure:
        log.warning("tool call failed", error=failure.error_message, code=failure.code.value, **kw)
        return failure
