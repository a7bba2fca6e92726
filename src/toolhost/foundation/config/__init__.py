"""Settings loaded from the environment with pydantic-settings; startup fails fast on bad config."""

from .settings import (
    DEFAULT_PORT,
    DEFAULT_USER_AGENT,
    BigQuerySettings,
    FetchSettings,
    LoggingSettings,
    ServerSettings,
    SlackSettings,
    load_settings,
)

__all__ = [
    "DEFAULT_PORT",
    "DEFAULT_USER_AGENT",
    "BigQuerySettings",
    "FetchSettings",
    "LoggingSettings",
    "ServerSettings",
    "SlackSettings",
    "load_settings",
]
