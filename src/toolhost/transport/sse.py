"""HTTP Server-Sent-Events transport.

Routes:
    GET  /sse       -> opens the event stream; becomes the active session
    POST /messages  -> delivers one client message to the active session

One session is active at a time. A new GET /sse silently supersedes the
previous session in the slot; a disconnect clears the slot only if it still
holds the disconnecting session. A POST with no active session is answered
with 503 and otherwise ignored.

Example:
    >>> transport = SseTransport(server, port=3000)
    >>> await transport.serve()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import uvicorn
from mcp.server.sse import SseServerTransport
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from toolhost.foundation.config import DEFAULT_PORT
from toolhost.runtime.observability import get_logger

from .base import Transport, TransportState

if TYPE_CHECKING:
    from .server import ToolServer

log = get_logger("toolhost.sse")

MESSAGES_PATH = "/messages"


# ═══════════════════════════════════════════════════════════════════════════════
# Session slot
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True)
class SessionSlot:
    """Holds the single active SSE session, if any. Written only on connect/disconnect."""

    current: SseServerTransport | None = None

    @property
    def active(self) -> bool:
        return self.current is not None

    def open(self, session: SseServerTransport) -> SseServerTransport | None:
        """Make `session` the active one. Returns the superseded session, if any."""
        previous, self.current = self.current, session
        return previous

    def clear(self, session: SseServerTransport) -> bool:
        """Clear the slot if it still holds `session`."""
        if self.current is session:
            self.current = None
            return True
        return False


# ═══════════════════════════════════════════════════════════════════════════════
# Endpoints
# ═══════════════════════════════════════════════════════════════════════════════


class MessageEndpoint:
    """ASGI endpoint for POST /messages, routed to the slot's session."""

    __slots__ = ("_slot",)

    def __init__(self, slot: SessionSlot) -> None:
        self._slot = slot

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if (session := self._slot.current) is None:
            log.warning("message received with no active session")
            response = JSONResponse({"error": "No active session"}, status_code=503)
            await response(scope, receive, send)
            return
        await session.handle_post_message(scope, receive, send)


class SseTransport(Transport):
    """Starlette app served by uvicorn; stream lifetime = session lifetime."""

    __slots__ = ("_host", "_port", "_slot", "_app")

    def __init__(
        self,
        server: ToolServer,
        *,
        host: str = "0.0.0.0",
        port: int = DEFAULT_PORT,
        slot: SessionSlot | None = None,
    ) -> None:
        super().__init__(server)
        self._host = host
        self._port = port
        self._slot = slot or SessionSlot()
        self._app = Starlette(routes=[
            Route("/sse", self._handle_sse, methods=["GET"]),
            Route(MESSAGES_PATH, MessageEndpoint(self._slot), methods=["POST"]),
        ])

    @property
    def state(self) -> TransportState:
        return TransportState.SESSION_OPEN if self._slot.active else TransportState.NO_SESSION

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    @property
    def slot(self) -> SessionSlot:
        return self._slot

    @property
    def app(self) -> Starlette:
        """ASGI app, for embedding or for the test client."""
        return self._app

    async def _handle_sse(self, request: Request) -> Response:
        session = SseServerTransport(MESSAGES_PATH)
        if self._slot.open(session) is not None:
            log.info("superseding active SSE session")
        log.info("SSE connection opened", client=request.client.host if request.client else None)
        try:
            async with session.connect_sse(request.scope, request.receive, request._send) as (read, write):
                await self._server.run(read, write)
        finally:
            self._slot.clear(session)
            log.info("SSE connection closed")
        return Response()

    async def serve(self) -> None:
        log.info("running on SSE", host=self._host, port=self._port, server=self._server.name)
        config = uvicorn.Config(self._app, host=self._host, port=self._port, log_config=None)
        await uvicorn.Server(config).serve()
