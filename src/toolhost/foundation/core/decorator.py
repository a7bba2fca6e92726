"""Decorator-based handler definition for plain async functions.

Example:
    >>> @tool(
    ...     "slack_get_user_profile",
    ...     "Get detailed profile information for a specific user",
    ...     properties={"user_id": {"type": "string", "description": "The ID of the user"}},
    ...     required=["user_id"],
    ... )
    ... async def get_user_profile(arguments, token):
    ...     return Success.text(await client.get_user_profile(arguments["user_id"]))
    ...
    >>> registry.register(get_user_profile)  # It's a ToolHandler
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Awaitable, Callable, TypeAlias

from .base import ToolHandler
from .types import Failure, JsonDict, Success, ToolDescriptor

if TYPE_CHECKING:
    from toolhost.runtime.cancellation import CancellationToken

HandlerFn: TypeAlias = Callable[[JsonDict, "CancellationToken"], Awaitable[Success | Failure]]


class FunctionTool(ToolHandler):
    """ToolHandler wrapping an async function with an instance-level descriptor."""

    def __init__(self, descriptor: ToolDescriptor, func: HandlerFn) -> None:
        self.descriptor = descriptor  # type: ignore[misc]
        self._func = func
        self.__doc__ = func.__doc__

    async def _run(self, arguments: JsonDict, token: CancellationToken) -> Success | Failure:
        return await self._func(arguments, token)

    @property
    def func(self) -> HandlerFn:
        """Access the original function."""
        return self._func


def tool(
    name: str,
    description: str,
    *,
    properties: JsonDict | None = None,
    required: list[str] | tuple[str, ...] = (),
) -> Callable[[HandlerFn], FunctionTool]:
    """Turn an async ``(arguments, token)`` function into a FunctionTool."""
    descriptor = ToolDescriptor.build(name, description, properties=properties, required=required)

    def decorator(fn: HandlerFn) -> FunctionTool:
        return FunctionTool(descriptor, fn)

    return decorator
