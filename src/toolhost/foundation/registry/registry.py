"""Static tool catalog for one server process.

The registry provides:
- Tool registration and lookup by name, resolved once at build time
- A deterministic, registration-ordered catalog for `tools/list`
- An optional prompt catalog for servers that expose prompts
- Async cleanups for the API clients the tools share, run once at shutdown

Registries are built during startup and then frozen; after `freeze()` the
catalog is immutable for the lifetime of the process.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
from types import MappingProxyType

from toolhost.foundation.core import PromptDescriptor, PromptHandler, ToolDescriptor, ToolHandler


class ToolRegistry:
    """Name -> handler mapping plus the ordered descriptor catalog.

    Example:
        >>> registry = ToolRegistry()
        >>> registry.register(FetchTool(client))
        >>> registry.freeze()
        >>> [d.name for d in registry.list()]
        ['fetch']
    """

    __slots__ = ("_tools", "_prompts", "_catalog", "_frozen", "_closers")

    def __init__(self) -> None:
        self._tools: dict[str, ToolHandler] = {}
        self._prompts: dict[str, PromptHandler] = {}
        self._catalog: tuple[ToolDescriptor, ...] = ()
        self._frozen = False
        self._closers: list[Callable[[], Awaitable[object]]] = []

    @classmethod
    def of(
        cls,
        *handlers: ToolHandler,
        prompts: tuple[PromptHandler, ...] = (),
        closers: tuple[Callable[[], Awaitable[object]], ...] = (),
    ) -> ToolRegistry:
        """Build and freeze a registry in one step."""
        registry = cls()
        for closer in closers:
            registry.on_close(closer)
        for handler in handlers:
            registry.register(handler)
        for prompt in prompts:
            registry.register_prompt(prompt)
        return registry.freeze()

    def _check_open(self) -> None:
        if self._frozen:
            raise RuntimeError("Registry is frozen; tools are registered at startup only")

    def register(self, handler: ToolHandler) -> None:
        """Register a tool handler. Names must be unique within the process."""
        self._check_open()
        name = handler.descriptor.name
        if name in self._tools:
            raise ValueError(f"Tool '{name}' already registered")
        self._tools[name] = handler
        self._catalog = (*self._catalog, handler.descriptor)

    def register_prompt(self, prompt: PromptHandler) -> None:
        self._check_open()
        name = prompt.descriptor.name
        if name in self._prompts:
            raise ValueError(f"Prompt '{name}' already registered")
        self._prompts[name] = prompt

    def on_close(self, closer: Callable[[], Awaitable[object]]) -> None:
        """Register an async cleanup for aclose(), e.g. a shared client's ``aclose``."""
        self._closers.append(closer)

    async def aclose(self) -> None:
        """Run registered cleanups once, most recently registered first."""
        closers, self._closers = self._closers, []
        for closer in reversed(closers):
            await closer()

    def freeze(self) -> ToolRegistry:
        """Make the catalog immutable. Returns self for chaining."""
        self._tools = MappingProxyType(self._tools)  # type: ignore[assignment]
        self._prompts = MappingProxyType(self._prompts)  # type: ignore[assignment]
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def list(self) -> tuple[ToolDescriptor, ...]:
        """All tool descriptors, in registration order, identical on every call."""
        return self._catalog

    def get(self, name: str) -> ToolHandler | None:
        """Get handler by name."""
        return self._tools.get(name)

    def prompts(self) -> tuple[PromptDescriptor, ...]:
        return tuple(p.descriptor for p in self._prompts.values())

    def get_prompt(self, name: str) -> PromptHandler | None:
        return self._prompts.get(name)

    @property
    def has_prompts(self) -> bool:
        return bool(self._prompts)

    def __getitem__(self, name: str) -> ToolHandler:
        """Get handler by name, raises KeyError if not found."""
        return self._tools[name]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolHandler]:
        return iter(self._tools.values())

    def __repr__(self) -> str:
        return f"ToolRegistry(tools={list(self._tools)}, prompts={list(self._prompts)}, frozen={self._frozen})"
