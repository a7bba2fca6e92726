"""Web fetcher service: one `fetch` tool plus a `fetch` prompt.

Run with ``toolhost-fetch [--sse]`` or ``python -m toolhost.services.fetch``.
"""

from __future__ import annotations

from toolhost.cli import ServiceSpec, service_command
from toolhost.foundation.config import FetchSettings
from toolhost.foundation.registry import ToolRegistry

from .client import FetchClient
from .tools import FetchPrompt, FetchTool

SERVER_NAME = "Fetch MCP Server"


def build_registry(settings: FetchSettings, *, client: FetchClient | None = None) -> ToolRegistry:
    client = client or FetchClient(settings.user_agent, timeout=settings.timeout)
    return ToolRegistry.of(FetchTool(client), prompts=(FetchPrompt(client),), closers=(client.aclose,))


SERVICE = ServiceSpec(name=SERVER_NAME, settings=FetchSettings, build=build_registry)
main = service_command(SERVICE)

__all__ = ["SERVICE", "FetchClient", "FetchPrompt", "FetchTool", "build_registry", "main"]
