"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults. Supports .env files.

Server-wide settings use the TOOLHOST_ prefix; each service reads its
upstream credentials under the names the wrapped API is known by.

Example:
    >>> from toolhost.foundation.config import ServerSettings, load_settings
    >>> load_settings(ServerSettings).port
    3000
    >>> creds = load_settings(BigQuerySettings)  # raises ConfigurationError if unset

    # Or with environment variables:
    # TOOLHOST_PORT=8080
    # TOOLHOST_LOG_FORMAT=json
    # BIGQUERY_CREDENTIALS='{"type": "service_account", ...}'
"""

from __future__ import annotations

import json
from typing import Literal, TypeVar

from pydantic import Field, PositiveFloat, SecretStr, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from toolhost.foundation.errors import ConfigurationError

DEFAULT_USER_AGENT = "ModelContextProtocol/1.0 (+https://github.com/modelcontextprotocol/servers)"
DEFAULT_PORT = 3000

S = TypeVar("S", bound=BaseSettings)


class LoggingSettings(BaseSettings):
    """Logging configuration. Output always goes to stderr."""

    model_config = SettingsConfigDict(
        env_prefix="TOOLHOST_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"

    @field_validator("level", "format", mode="before")
    @classmethod
    def _normalize(cls, v: str, info: ValidationInfo) -> str:
        if not isinstance(v, str):
            return v
        return v.upper() if info.field_name == "level" else v.lower()


class ServerSettings(BaseSettings):
    """Root settings shared by every service process.

    Example environment variables:
        TOOLHOST_HOST=127.0.0.1
        TOOLHOST_PORT=3000
        TOOLHOST_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="TOOLHOST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_default=True,
    )

    host: str = Field(default="0.0.0.0", description="Bind address for the SSE transport")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="Port for the SSE transport")
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class _ServiceSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


def _require_secret(v: SecretStr) -> SecretStr:
    if not v.get_secret_value().strip():
        raise ValueError("must not be empty")
    return v


class FetchSettings(_ServiceSettings):
    """Settings for the web fetcher. Nothing is required."""

    user_agent: str = Field(default=DEFAULT_USER_AGENT, validation_alias="MCP_USER_AGENT")
    timeout: PositiveFloat = Field(default=30.0, validation_alias="TOOLHOST_FETCH_TIMEOUT")

    @field_validator("user_agent", mode="after")
    @classmethod
    def _default_when_blank(cls, v: str) -> str:
        return v or DEFAULT_USER_AGENT


class BigQuerySettings(_ServiceSettings):
    """Service-account credentials for the warehouse client, as a JSON document."""

    credentials: SecretStr = Field(..., validation_alias="BIGQUERY_CREDENTIALS")

    @field_validator("credentials", mode="after")
    @classmethod
    def _valid_json(cls, v: SecretStr) -> SecretStr:
        _require_secret(v)
        try:
            parsed = json.loads(v.get_secret_value())
        except json.JSONDecodeError as e:
            raise ValueError(f"must be a JSON document ({e.msg})") from None
        if not isinstance(parsed, dict):
            raise ValueError("must be a JSON object")
        return v

    def credentials_info(self) -> dict[str, object]:
        return json.loads(self.credentials.get_secret_value())


class SlackSettings(_ServiceSettings):
    """Bot token and workspace id for the messaging client."""

    bot_token: SecretStr = Field(..., validation_alias="SLACK_BOT_TOKEN")
    team_id: str = Field(..., min_length=1, validation_alias="SLACK_TEAM_ID")

    @field_validator("bot_token", mode="after")
    @classmethod
    def _non_empty(cls, v: SecretStr) -> SecretStr:
        return _require_secret(v)


def _env_name(cls: type[BaseSettings], loc: str) -> str:
    """Environment variable behind an error location (field name or alias)."""
    if (info := cls.model_fields.get(loc)) is not None:
        if isinstance(info.validation_alias, str):
            return info.validation_alias
        return f"{cls.model_config.get('env_prefix', '')}{loc}".upper()
    return loc


def load_settings(cls: type[S]) -> S:
    """Instantiate a settings class, turning validation errors into ConfigurationError.

    Missing variables are named in the message so the operator knows what to set.
    """
    try:
        return cls()
    except ValidationError as e:
        missing: list[str] = []
        problems: list[str] = []
        for err in e.errors():
            name = _env_name(cls, str(err["loc"][0])) if err["loc"] else cls.__name__
            if err["type"] == "missing" or "empty" in err["msg"] or err["type"] == "string_too_short":
                missing.append(name)
            else:
                problems.append(f"{name}: {err['msg']}")
        if missing:
            noun = "variable" if len(missing) == 1 else "variables"
            raise ConfigurationError(
                f"Please set {' and '.join(missing)} environment {noun}", missing=tuple(missing)
            ) from None
        raise ConfigurationError(f"Invalid configuration: {'; '.join(problems)}") from None
