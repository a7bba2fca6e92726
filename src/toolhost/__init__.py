"""Toolhost - MCP tool servers wrapping external APIs.

Each service registers a static catalog of tools, dispatches tool calls by
name to typed handlers, ties in-flight upstream work to request
cancellation, and speaks the Model Context Protocol over stdio or HTTP SSE.

Quick Start:
    >>> from toolhost import Success, ToolRegistry, tool
    >>>
    >>> @tool(
    ...     "echo", "Echo the text back",
    ...     properties={"text": {"type": "string"}}, required=["text"],
    ... )
    ... async def echo(arguments, token):
    ...     return Success.text(arguments["text"])
    >>>
    >>> registry = ToolRegistry.of(echo)

Serving:
    >>> from toolhost.transport import StdioTransport, ToolServer
    >>> await StdioTransport(ToolServer(registry, name="echo")).serve()

Shipped services (console scripts, ``--sse`` for HTTP):
    toolhost-fetch, toolhost-bigquery, toolhost-slack
"""

__version__ = "0.1.0"

from .foundation.core import (
    Failure,
    FunctionTool,
    InvocationRequest,
    PromptHandler,
    Success,
    TextBlock,
    ToolDescriptor,
    ToolHandler,
    tool,
)
from .foundation.errors import ConfigurationError, ErrorCode, ToolError, ToolException
from .foundation.registry import ToolRegistry
from .runtime import CancellationToken, Dispatcher, InFlightRequests

__all__ = [
    "__version__",
    # Core
    "Failure", "FunctionTool", "InvocationRequest", "PromptHandler", "Success", "TextBlock",
    "ToolDescriptor", "ToolHandler", "tool",
    # Errors
    "ConfigurationError", "ErrorCode", "ToolError", "ToolException",
    # Registry / runtime
    "CancellationToken", "Dispatcher", "InFlightRequests", "ToolRegistry",
]
