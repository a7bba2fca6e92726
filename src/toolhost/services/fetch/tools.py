"""The `fetch` tool and the `fetch` prompt."""

from __future__ import annotations

from typing import ClassVar

from toolhost.foundation.core import (
    JsonDict,
    PromptArgument,
    PromptDescriptor,
    PromptHandler,
    PromptMessage,
    RenderedPrompt,
    Success,
    ToolDescriptor,
    ToolHandler,
)
from toolhost.foundation.errors import ToolException
from toolhost.runtime.cancellation import CancellationToken

from .client import FetchClient

_URL_PROPERTY = {"url": {"type": "string", "description": "URL to fetch"}}


class FetchTool(ToolHandler):
    """Fetch a page and return it prefixed with `Contents of <url>:`."""

    descriptor: ClassVar[ToolDescriptor] = ToolDescriptor.build(
        "fetch", "Fetches content from a URL", properties=_URL_PROPERTY, required=["url"],
    )

    def __init__(self, client: FetchClient) -> None:
        self._client = client

    async def _run(self, arguments: JsonDict, token: CancellationToken) -> Success:
        url = str(arguments["url"])
        content = await self._client.fetch_url(url)
        return Success.text(f"Contents of {url}:\n{content}")


class FetchPrompt(PromptHandler):
    """Render a page as a user message.

    A fetch failure is embedded as the message text rather than raised; only
    a missing url is an error.
    """

    descriptor: ClassVar[PromptDescriptor] = PromptDescriptor(
        name="fetch",
        description="Fetch content from a URL",
        arguments=(PromptArgument(name="url", description="URL to fetch", required=True),),
    )

    def __init__(self, client: FetchClient) -> None:
        self._client = client

    async def render(self, arguments: dict[str, str]) -> RenderedPrompt:
        if not (url := arguments.get("url")):
            raise ValueError("URL is required")
        try:
            content = await self._client.fetch_url(url)
        except ToolException as e:
            return RenderedPrompt(description=f"Failed to fetch {url}", messages=(PromptMessage(text=e.error.message),))
        return RenderedPrompt(description=f"Contents of {url}", messages=(PromptMessage(text=content),))
