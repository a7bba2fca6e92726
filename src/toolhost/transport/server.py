"""MCP protocol binding shared by every transport.

ToolServer owns the `mcp` low-level Server and installs request handlers
for the tool and prompt methods. Handlers are written against the raw typed
requests so that an absent ``arguments`` object reaches the dispatcher as
``None`` instead of being coerced to ``{}``.

Transports only move bytes: they hand a read/write stream pair to
``ToolServer.run`` and never look at message contents.

Example:
    >>> server = ToolServer(registry, name="fetch", version="0.1.0")
    >>> await StdioTransport(server).serve()
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.shared.exceptions import McpError

from toolhost.foundation.core import Failure, InvocationRequest, RenderedPrompt, Success
from toolhost.foundation.registry import ToolRegistry
from toolhost.runtime import Dispatcher, InFlightRequests
from toolhost.runtime.observability import get_logger

if TYPE_CHECKING:
    from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

log = get_logger("toolhost.server")


# ═══════════════════════════════════════════════════════════════════════════════
# Rendering
# ═══════════════════════════════════════════════════════════════════════════════


def to_call_tool_result(result: Success | Failure) -> types.CallToolResult:
    """Envelope for `tools/call`. Failures become the sole `{"error": ...}` text block."""
    blocks = [types.TextContent(type="text", text=b.text) for b in result.content]
    return types.CallToolResult(content=blocks, isError=not result.ok)


def to_prompt_result(rendered: RenderedPrompt) -> types.GetPromptResult:
    return types.GetPromptResult(
        description=rendered.description,
        messages=[
            types.PromptMessage(role=m.role, content=types.TextContent(type="text", text=m.text))
            for m in rendered.messages
        ],
    )


def _invalid_params(message: str) -> McpError:
    return McpError(types.ErrorData(code=types.INVALID_PARAMS, message=message))


# ═══════════════════════════════════════════════════════════════════════════════
# Server
# ═══════════════════════════════════════════════════════════════════════════════


class ToolServer:
    """Registry + dispatcher exposed as an MCP server.

    `tools/list` and `tools/call` are always installed; `prompts/list` and
    `prompts/get` only when the registry carries prompts, so capabilities
    advertised at initialization match what the server answers.
    """

    __slots__ = ("_registry", "_dispatcher", "_inflight", "_mcp")

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        name: str,
        version: str | None = None,
        dispatcher: Dispatcher | None = None,
    ) -> None:
        if not registry.frozen:
            registry.freeze()
        self._registry = registry
        self._dispatcher = dispatcher or Dispatcher(registry)
        self._inflight = InFlightRequests()
        self._mcp: Server[Any, Any] = Server(name, version=version)
        self._install()

    def _install(self) -> None:
        handlers = self._mcp.request_handlers
        handlers[types.ListToolsRequest] = self._on_list_tools
        handlers[types.CallToolRequest] = self._on_call_tool
        if self._registry.has_prompts:
            handlers[types.ListPromptsRequest] = self._on_list_prompts
            handlers[types.GetPromptRequest] = self._on_get_prompt

    @property
    def name(self) -> str:
        return self._mcp.name

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def inflight(self) -> InFlightRequests:
        return self._inflight

    @property
    def mcp(self) -> Server[Any, Any]:
        """Underlying low-level server (for in-memory client sessions in tests)."""
        return self._mcp

    # ─────────────────────────────────────────────────────────────────────────
    # Operations
    # ─────────────────────────────────────────────────────────────────────────

    def list_tools(self) -> list[types.Tool]:
        return [
            types.Tool(name=d.name, description=d.description, inputSchema=d.input_schema)
            for d in self._registry.list()
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> Success | Failure:
        """Dispatch under a fresh cancellation token tied to the calling task."""
        request = InvocationRequest(tool_name=name, arguments=arguments)
        return await self._inflight.run(lambda token: self._dispatcher.handle(request, token))

    def list_prompts(self) -> list[types.Prompt]:
        return [
            types.Prompt(
                name=p.name,
                description=p.description,
                arguments=[
                    types.PromptArgument(name=a.name, description=a.description, required=a.required)
                    for a in p.arguments
                ],
            )
            for p in self._registry.prompts()
        ]

    async def get_prompt(self, name: str, arguments: dict[str, str] | None) -> RenderedPrompt:
        """Render a prompt. Unknown names and bad arguments are protocol errors."""
        if (prompt := self._registry.get_prompt(name)) is None:
            raise _invalid_params(f"Unknown prompt: {name}")
        try:
            return await prompt.render(arguments or {})
        except ValueError as e:
            log.warning("prompt rejected", prompt=name, error=str(e))
            raise _invalid_params(str(e)) from e

    async def run(
        self,
        read_stream: MemoryObjectReceiveStream[Any],
        write_stream: MemoryObjectSendStream[Any],
    ) -> None:
        """Run the protocol loop over one connected stream pair until it closes."""
        log.info("session started", server=self.name, tools=len(self._registry))
        try:
            await self._mcp.run(read_stream, write_stream, self._mcp.create_initialization_options())
        finally:
            log.info("session ended", server=self.name, inflight=len(self._inflight))

    # ─────────────────────────────────────────────────────────────────────────
    # Request handlers
    # ─────────────────────────────────────────────────────────────────────────

    async def _on_list_tools(self, req: types.ListToolsRequest) -> types.ServerResult:
        return types.ServerResult(types.ListToolsResult(tools=self.list_tools()))

    async def _on_call_tool(self, req: types.CallToolRequest) -> types.ServerResult:
        result = await self.call_tool(req.params.name, req.params.arguments)
        return types.ServerResult(to_call_tool_result(result))

    async def _on_list_prompts(self, req: types.ListPromptsRequest) -> types.ServerResult:
        return types.ServerResult(types.ListPromptsResult(prompts=self.list_prompts()))

    async def _on_get_prompt(self, req: types.GetPromptRequest) -> types.ServerResult:
        rendered = await self.get_prompt(req.params.name, req.params.arguments)
        return types.ServerResult(to_prompt_result(rendered))

    def __repr__(self) -> str:
        return f"ToolServer(name={self.name!r}, tools={[d.name for d in self._registry.list()]})"
