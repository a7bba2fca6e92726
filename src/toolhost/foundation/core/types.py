"""Data model shared by the registry, dispatcher and transports.

Descriptors are frozen Pydantic models created once at process start.
Invocation results form a tagged union discriminated on ``status`` so that
transports can render them without isinstance chains.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Self, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, computed_field

from toolhost.foundation.errors import ErrorCode, ToolError

JsonDict: TypeAlias = dict[str, Any]


# ═══════════════════════════════════════════════════════════════════════════════
# Descriptors
# ═══════════════════════════════════════════════════════════════════════════════


class ToolDescriptor(BaseModel):
    """Static description of one tool: name, human description, input schema.

    Example:
        >>> ToolDescriptor.build(
        ...     "fetch", "Fetches content from a URL",
        ...     properties={"url": {"type": "string", "description": "URL to fetch"}},
        ...     required=["url"],
        ... )
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., pattern=r"^[a-z][a-z0-9_]*$")
    description: str = Field(..., min_length=1)
    input_schema: JsonDict = Field(default_factory=lambda: {"type": "object", "properties": {}})

    @classmethod
    def build(
        cls,
        name: str,
        description: str,
        *,
        properties: JsonDict | None = None,
        required: list[str] | tuple[str, ...] = (),
    ) -> Self:
        """Build a descriptor with an object schema from properties and required names."""
        schema: JsonDict = {"type": "object", "properties": dict(properties or {})}
        if required:
            schema["required"] = list(required)
        return cls(name=name, description=description, input_schema=schema)

    @computed_field
    @property
    def required(self) -> tuple[str, ...]:
        """Required argument names, in schema order."""
        return tuple(self.input_schema.get("required", ()))

    def to_protocol(self) -> JsonDict:
        """Wire shape: ``{name, description, inputSchema}``."""
        return {"name": self.name, "description": self.description, "inputSchema": self.input_schema}


class PromptArgument(BaseModel):
    """One templated argument of a prompt."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    required: bool = False


class PromptDescriptor(BaseModel):
    """Static description of a prompt exposed next to the tool catalog."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    description: str = ""
    arguments: tuple[PromptArgument, ...] = ()


class PromptMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"] = "user"
    text: str


class RenderedPrompt(BaseModel):
    """Result of rendering a prompt: a description plus an ordered message sequence."""

    model_config = ConfigDict(frozen=True)

    description: str = ""
    messages: tuple[PromptMessage, ...] = ()


# ═══════════════════════════════════════════════════════════════════════════════
# Invocation
# ═══════════════════════════════════════════════════════════════════════════════


class InvocationRequest(BaseModel):
    """One request to execute a tool.

    ``arguments`` is ``None`` when the caller sent no arguments object; an
    empty mapping is a present (if unhelpful) arguments object.
    """

    model_config = ConfigDict(frozen=True)

    tool_name: str
    arguments: JsonDict | None = None


class TextBlock(BaseModel):
    """A unit of response payload. Only text blocks are produced today."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str


ContentBlock: TypeAlias = TextBlock


class Success(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["success"] = "success"
    content: tuple[ContentBlock, ...] = ()

    @classmethod
    def text(cls, *texts: str) -> Self:
        """Success carrying one text block per argument."""
        return cls(content=tuple(TextBlock(text=t) for t in texts))

    @property
    def ok(self) -> bool:
        return True


class Failure(BaseModel):
    """Tool-execution failure, reported inside a normal response envelope."""

    model_config = ConfigDict(frozen=True)

    status: Literal["failure"] = "failure"
    error_message: str = Field(..., min_length=1)
    code: ErrorCode = ErrorCode.UNKNOWN

    @classmethod
    def from_error(cls, error: ToolError) -> Self:
        return cls(error_message=error.message, code=error.code)

    @classmethod
    def no_arguments(cls) -> Self:
        return cls(error_message="No arguments provided", code=ErrorCode.NO_ARGUMENTS)

    @classmethod
    def unknown_tool(cls, name: str) -> Self:
        return cls(error_message=f"Unknown tool: {name}", code=ErrorCode.UNKNOWN_TOOL)

    @classmethod
    def missing_argument(cls, field: str) -> Self:
        return cls(error_message=f"Missing required argument: {field}", code=ErrorCode.MISSING_ARGUMENT)

    @classmethod
    def cancelled(cls) -> Self:
        return cls(error_message="Request was cancelled", code=ErrorCode.CANCELLED)

    @property
    def ok(self) -> bool:
        return False

    @property
    def content(self) -> tuple[ContentBlock, ...]:
        """The sole text block: ``{"error": "<message>"}``."""
        return (TextBlock(text=self.render()),)

    def render(self) -> str:
        return ToolError(tool_name="", message=self.error_message, code=self.code).render()


InvocationResult: TypeAlias = Annotated[Success | Failure, Field(discriminator="status")]
