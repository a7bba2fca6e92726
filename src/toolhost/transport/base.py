"""Transport abstraction: something that connects peers to a ToolServer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .server import ToolServer


class TransportState(StrEnum):
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    CLOSED = "closed"
    NO_SESSION = "no_session"
    SESSION_OPEN = "session_open"


class Transport(ABC):
    """Carries protocol messages between peers and one ToolServer.

    Tool handling is identical across transports; only connection
    lifecycle differs.
    """

    __slots__ = ("_server",)

    def __init__(self, server: ToolServer) -> None:
        self._server = server

    @property
    def server(self) -> ToolServer:
        return self._server

    @property
    @abstractmethod
    def state(self) -> TransportState: ...

    @abstractmethod
    async def serve(self) -> None:
        """Serve until the transport is finished (peer gone or process stopped)."""
        ...
