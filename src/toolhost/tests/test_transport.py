"""Tests for the protocol binding and both transports."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import mcp.types as types
import pytest
from mcp.shared.exceptions import McpError
from mcp.shared.memory import create_connected_server_and_client_session
from starlette.testclient import TestClient
from starlette.types import Receive, Scope, Send

from toolhost import Success, ToolRegistry, tool
from toolhost.foundation.core import PromptDescriptor, PromptHandler, PromptMessage, RenderedPrompt
from toolhost.runtime.observability import CaptureRenderer
from toolhost.transport import (
    SessionSlot,
    SseTransport,
    StdioTransport,
    ToolServer,
    TransportState,
)


@tool("echo", "Echo the text back", properties={"text": {"type": "string"}}, required=["text"])
async def echo(arguments, token):
    return Success.text(arguments["text"])


class GreetPrompt(PromptHandler):
    descriptor = PromptDescriptor(name="greet", description="Greet someone")

    async def render(self, arguments: dict[str, str]) -> RenderedPrompt:
        if not arguments.get("name"):
            raise ValueError("name is required")
        return RenderedPrompt(description="greeting", messages=(PromptMessage(text=f"hi {arguments['name']}"),))


def _server(*, prompts: bool = False) -> ToolServer:
    registry = ToolRegistry.of(echo, prompts=(GreetPrompt(),) if prompts else ())
    return ToolServer(registry, name="test-server", version="9.9.9")


# ─────────────────────────────────────────────────────────────────────────────
# ToolServer
# ─────────────────────────────────────────────────────────────────────────────


class TestToolServer:
    def test_prompt_handlers_only_with_prompts(self) -> None:
        assert types.ListPromptsRequest not in _server().mcp.request_handlers
        assert types.GetPromptRequest in _server(prompts=True).mcp.request_handlers

    def test_list_tools_matches_registry(self) -> None:
        [listed] = _server().list_tools()
        assert listed.name == "echo"
        assert listed.inputSchema["required"] == ["text"]

    @pytest.mark.asyncio
    async def test_absent_arguments_reach_dispatcher_as_none(self) -> None:
        handler = _server().mcp.request_handlers[types.CallToolRequest]
        request = types.CallToolRequest(method="tools/call", params=types.CallToolRequestParams(name="echo"))
        result = (await handler(request)).root
        assert isinstance(result, types.CallToolResult)
        assert result.isError is True
        assert result.content[0].text == '{"error":"No arguments provided"}'

    @pytest.mark.asyncio
    async def test_get_prompt_bad_arguments_is_protocol_error(self) -> None:
        server = _server(prompts=True)
        with pytest.raises(McpError):
            await server.get_prompt("greet", {})
        with pytest.raises(McpError):
            await server.get_prompt("unknown", {"name": "x"})

    @pytest.mark.asyncio
    async def test_in_memory_session(self) -> None:
        server = _server(prompts=True)
        async with create_connected_server_and_client_session(server.mcp) as client:
            tools = await client.list_tools()
            assert [t.name for t in tools.tools] == ["echo"]

            ok = await client.call_tool("echo", {"text": "hello"})
            assert not ok.isError
            assert ok.content[0].text == "hello"

            unknown = await client.call_tool("nope", {})
            assert unknown.isError
            assert unknown.content[0].text == '{"error":"Unknown tool: nope"}'

            prompts = await client.list_prompts()
            assert [p.name for p in prompts.prompts] == ["greet"]
            rendered = await client.get_prompt("greet", {"name": "ada"})
            assert rendered.messages[0].content.text == "hi ada"


# ─────────────────────────────────────────────────────────────────────────────
# stdio
# ─────────────────────────────────────────────────────────────────────────────


class _RecordingServer:
    name = "recording"

    def __init__(self) -> None:
        self.runs: list[tuple[Any, Any]] = []

    async def run(self, read_stream: Any, write_stream: Any) -> None:
        self.runs.append((read_stream, write_stream))


@asynccontextmanager
async def _fake_stdio():
    yield "read", "write"


class TestStdioTransport:
    @pytest.mark.asyncio
    async def test_lifecycle(self) -> None:
        server = _RecordingServer()
        transport = StdioTransport(server, streams=_fake_stdio)  # type: ignore[arg-type]
        assert transport.state is TransportState.UNCONNECTED
        await transport.serve()
        assert transport.state is TransportState.CLOSED
        assert server.runs == [("read", "write")]

    @pytest.mark.asyncio
    async def test_connects_only_once(self) -> None:
        transport = StdioTransport(_RecordingServer(), streams=_fake_stdio)  # type: ignore[arg-type]
        await transport.serve()
        with pytest.raises(RuntimeError):
            await transport.serve()


# ─────────────────────────────────────────────────────────────────────────────
# SSE
# ─────────────────────────────────────────────────────────────────────────────


class _FakeSession:
    """Records routed POSTs and acknowledges them like the SDK transport does."""

    def __init__(self) -> None:
        self.posts = 0

    async def handle_post_message(self, scope: Scope, receive: Receive, send: Send) -> None:
        self.posts += 1
        await send({"type": "http.response.start", "status": 202, "headers": []})
        await send({"type": "http.response.body", "body": b"Accepted"})


class TestSessionSlot:
    def test_open_supersedes(self) -> None:
        slot = SessionSlot()
        first, second = object(), object()
        assert slot.open(first) is None  # type: ignore[arg-type]
        assert slot.open(second) is first  # type: ignore[arg-type]
        assert slot.current is second

    def test_clear_only_own_session(self) -> None:
        slot = SessionSlot()
        old, new = object(), object()
        slot.open(old)  # type: ignore[arg-type]
        slot.open(new)  # type: ignore[arg-type]
        assert slot.clear(old) is False  # type: ignore[arg-type]
        assert slot.current is new
        assert slot.clear(new) is True  # type: ignore[arg-type]
        assert not slot.active


class TestSseTransport:
    def test_post_without_session_is_rejected(self, captured_logs: CaptureRenderer) -> None:
        transport = SseTransport(_server())
        assert transport.state is TransportState.NO_SESSION
        with TestClient(transport.app) as client:
            resp = client.post("/messages?session_id=abc", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
        assert resp.status_code == 503
        assert resp.json() == {"error": "No active session"}
        assert "message received with no active session" in captured_logs.events("warning")
        assert transport.state is TransportState.NO_SESSION

    def test_post_routes_to_active_session(self) -> None:
        slot = SessionSlot()
        session = _FakeSession()
        slot.open(session)  # type: ignore[arg-type]
        transport = SseTransport(_server(), slot=slot)
        assert transport.state is TransportState.SESSION_OPEN
        with TestClient(transport.app) as client:
            resp = client.post("/messages?session_id=abc", json={"jsonrpc": "2.0", "id": 1, "method": "ping"})
        assert resp.status_code == 202
        assert session.posts == 1

    def test_messages_endpoint_is_post_only(self) -> None:
        with TestClient(SseTransport(_server()).app) as client:
            assert client.get("/messages").status_code == 405

    def test_default_port(self) -> None:
        transport = SseTransport(_server())
        assert transport.port == 3000
