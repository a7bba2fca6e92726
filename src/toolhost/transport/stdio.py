"""Standard-stream transport: one peer, one session, for the process lifetime.

State machine: UNCONNECTED -> CONNECTED -> CLOSED. There is no reconnect;
once the peer closes stdin the transport is finished.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Any

from mcp.server.stdio import stdio_server

from toolhost.runtime.observability import get_logger

from .base import Transport, TransportState

if TYPE_CHECKING:
    from .server import ToolServer

log = get_logger("toolhost.stdio")

StreamFactory = Callable[[], AbstractAsyncContextManager[tuple[Any, Any]]]


class StdioTransport(Transport):
    """Newline-delimited JSON-RPC over stdin/stdout. stdout carries protocol frames only.

    Example:
        >>> await StdioTransport(server).serve()
    """

    __slots__ = ("_state", "_streams")

    def __init__(self, server: ToolServer, *, streams: StreamFactory = stdio_server) -> None:
        super().__init__(server)
        self._state = TransportState.UNCONNECTED
        self._streams = streams

    @property
    def state(self) -> TransportState:
        return self._state

    async def serve(self) -> None:
        if self._state is not TransportState.UNCONNECTED:
            raise RuntimeError(f"stdio transport cannot connect twice (state: {self._state})")
        async with self._streams() as (read_stream, write_stream):
            self._state = TransportState.CONNECTED
            log.info("running on stdio", server=self._server.name)
            try:
                await self._server.run(read_stream, write_stream)
            finally:
                self._state = TransportState.CLOSED
                log.info("stdio peer disconnected", server=self._server.name)
