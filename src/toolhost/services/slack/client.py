"""Minimal Slack Web API client."""

from __future__ import annotations

import httpx

from toolhost.foundation.core import JsonDict
from toolhost.foundation.errors import ErrorCode, ToolException

SLACK_API = "https://slack.com/api"


class SlackClient:
    """Bot-token authenticated calls to the Slack Web API.

    Slack reports most API errors as ``{"ok": false, "error": ...}`` with a
    200 status; those payloads are returned unchanged. Transport failures
    and non-JSON responses raise ToolException.
    """

    __slots__ = ("_client", "_team_id")

    def __init__(
        self,
        bot_token: str,
        team_id: str = "",
        *,
        base_url: str = SLACK_API,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._team_id = team_id
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {bot_token}", "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def team_id(self) -> str:
        return self._team_id

    async def get_user_profile(self, user_id: str) -> JsonDict:
        return await self._get(
            "slack_get_user_profile", "users.profile.get", {"user": user_id, "include_labels": "true"},
        )

    async def _get(self, tool: str, method: str, params: dict[str, str]) -> JsonDict:
        try:
            resp = await self._client.get(f"/{method}", params=params)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            code = ErrorCode.RATE_LIMITED if e.response.status_code == 429 else ErrorCode.EXTERNAL_SERVICE_ERROR
            raise ToolException.create(tool, f"Slack API {method} failed: HTTP {e.response.status_code}", code) from e
        except httpx.HTTPError as e:
            raise ToolException.from_exc(tool, e, f"Slack API {method} failed") from e
        except ValueError as e:
            raise ToolException.create(tool, f"Slack API {method} returned invalid JSON", ErrorCode.PARSE_ERROR) from e

    async def aclose(self) -> None:
        await self._client.aclose()
