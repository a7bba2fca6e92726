"""Slack tools."""

from __future__ import annotations

from typing import ClassVar

import orjson

from toolhost.foundation.core import JsonDict, Success, ToolDescriptor, ToolHandler
from toolhost.runtime.cancellation import CancellationToken

from .client import SlackClient


class GetUserProfileTool(ToolHandler):
    descriptor: ClassVar[ToolDescriptor] = ToolDescriptor.build(
        "slack_get_user_profile",
        "Get detailed profile information for a specific user",
        properties={"user_id": {"type": "string", "description": "The ID of the user"}},
        required=["user_id"],
    )

    def __init__(self, client: SlackClient) -> None:
        self._client = client

    async def _run(self, arguments: JsonDict, token: CancellationToken) -> Success:
        profile = await self._client.get_user_profile(str(arguments["user_id"]))
        return Success.text(orjson.dumps(profile).decode())
