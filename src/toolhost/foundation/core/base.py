"""Core handler abstractions: ToolHandler and PromptHandler.

A tool handler pairs a static ToolDescriptor with an async implementation.
The base class checks the descriptor's required fields before the
implementation runs, so subclasses only see arguments that carry them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

from .types import Failure, JsonDict, PromptDescriptor, RenderedPrompt, Success, ToolDescriptor

if TYPE_CHECKING:
    from toolhost.runtime.cancellation import CancellationToken


def _is_blank(value: object) -> bool:
    return value is None or value == ""


class ToolHandler(ABC):
    """Abstract base class for all tool handlers.

    Subclasses must:
    - Define `descriptor` class variable with the ToolDescriptor
    - Implement `_run(arguments, token)` returning Success or Failure

    Exceptions raised by `_run` are converted by the dispatcher, so clients
    may raise ToolException (or anything else) freely.

    Example:
        >>> class Echo(ToolHandler):
        ...     descriptor = ToolDescriptor.build(
        ...         "echo", "Echo the text back",
        ...         properties={"text": {"type": "string"}}, required=["text"],
        ...     )
        ...
        ...     async def _run(self, arguments, token):
        ...         return Success.text(arguments["text"])
    """

    descriptor: ClassVar[ToolDescriptor]

    @property
    def name(self) -> str:
        return self.descriptor.name

    def missing_argument(self, arguments: JsonDict) -> str | None:
        """First required field that is absent or empty, if any."""
        return next((f for f in self.descriptor.required if _is_blank(arguments.get(f))), None)

    async def __call__(self, arguments: JsonDict, token: CancellationToken) -> Success | Failure:
        if (field := self.missing_argument(arguments)) is not None:
            return Failure.missing_argument(field)
        return await self._run(arguments, token)

    @abstractmethod
    async def _run(self, arguments: JsonDict, token: CancellationToken) -> Success | Failure:
        """Execute with validated arguments."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class PromptHandler(ABC):
    """Abstract base for prompts rendered on `prompts/get`.

    Unlike tools, a failing render is a protocol error: implementations
    raise, and the transport reports it to the peer.
    """

    descriptor: ClassVar[PromptDescriptor]

    @property
    def name(self) -> str:
        return self.descriptor.name

    @abstractmethod
    async def render(self, arguments: dict[str, str]) -> RenderedPrompt: ...
