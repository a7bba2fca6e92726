"""Transports carrying MCP messages to one shared ToolServer.

Example:
    >>> server = ToolServer(registry, name="fetch")
    >>> await (SseTransport(server) if use_sse else StdioTransport(server)).serve()
"""

from .base import Transport, TransportState
from .server import ToolServer, to_call_tool_result, to_prompt_result
from .sse import MessageEndpoint, SessionSlot, SseTransport
from .stdio import StdioTransport

__all__ = [
    "MessageEndpoint", "SessionSlot", "SseTransport", "StdioTransport", "ToolServer",
    "Transport", "TransportState", "to_call_tool_result", "to_prompt_result",
]
