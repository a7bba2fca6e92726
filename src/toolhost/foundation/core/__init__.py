"""Core abstractions: descriptors, invocation results and handler base classes."""

from .base import PromptHandler, ToolHandler
from .decorator import FunctionTool, HandlerFn, tool
from .types import (
    ContentBlock,
    Failure,
    InvocationRequest,
    InvocationResult,
    JsonDict,
    PromptArgument,
    PromptDescriptor,
    PromptMessage,
    RenderedPrompt,
    Success,
    TextBlock,
    ToolDescriptor,
)

__all__ = [
    "ContentBlock", "Failure", "FunctionTool", "HandlerFn", "InvocationRequest", "InvocationResult",
    "JsonDict", "PromptArgument", "PromptDescriptor", "PromptHandler", "PromptMessage", "RenderedPrompt",
    "Success", "TextBlock", "ToolDescriptor", "ToolHandler", "tool",
]
