"""Slack service: user profile lookups with a bot token.

Requires ``SLACK_BOT_TOKEN`` and ``SLACK_TEAM_ID``. Run with
``toolhost-slack [--sse]`` or ``python -m toolhost.services.slack``.
"""

from __future__ import annotations

from toolhost.cli import ServiceSpec, service_command
from toolhost.foundation.config import SlackSettings
from toolhost.foundation.registry import ToolRegistry

from .client import SlackClient
from .tools import GetUserProfileTool

SERVER_NAME = "Slack MCP Server"


def build_registry(settings: SlackSettings, *, client: SlackClient | None = None) -> ToolRegistry:
    client = client or SlackClient(settings.bot_token.get_secret_value(), settings.team_id)
    return ToolRegistry.of(GetUserProfileTool(client), closers=(client.aclose,))


SERVICE = ServiceSpec(name=SERVER_NAME, settings=SlackSettings, build=build_registry)
main = service_command(SERVICE)

__all__ = ["SERVICE", "GetUserProfileTool", "SlackClient", "build_registry", "main"]
