"""HTTP page fetcher used by the fetch tool and prompt."""

from __future__ import annotations

import httpx

from toolhost.foundation.config import DEFAULT_USER_AGENT
from toolhost.foundation.errors import ErrorCode, ToolException, classify_exception
from toolhost.runtime.observability import get_logger

TOOL_NAME = "fetch"

log = get_logger("toolhost.fetch")


class FetchClient:
    """GET a URL with a fixed User-Agent, following redirects, and return the body text.

    Failures raise ToolException with a `Failed to fetch <url>...` message.

    Example:
        >>> client = FetchClient("my-agent/1.0")
        >>> body = await client.fetch_url("https://example.com")
    """

    __slots__ = ("_client",)

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            headers={"User-Agent": user_agent},
            follow_redirects=True,
            timeout=timeout,
            transport=transport,
        )

    @property
    def user_agent(self) -> str:
        return self._client.headers["User-Agent"]

    async def fetch_url(self, url: str) -> str:
        try:
            resp = await self._client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            code = ErrorCode.TIMEOUT if isinstance(e, httpx.TimeoutException) else classify_exception(e)
            raise ToolException.create(TOOL_NAME, f"Failed to fetch {url}: {e}", code) from e

        if not resp.is_success:
            log.debug("upstream returned error status", url=url, status=resp.status_code)
            raise ToolException.create(
                TOOL_NAME, f"Failed to fetch {url} - status code {resp.status_code}",
                ErrorCode.NOT_FOUND if resp.status_code == 404 else ErrorCode.EXTERNAL_SERVICE_ERROR,
            )
        return resp.text

    async def aclose(self) -> None:
        await self._client.aclose()
