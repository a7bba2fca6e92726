"""BigQuery service: run, dry-run, inspect and cancel warehouse query jobs.

Requires ``BIGQUERY_CREDENTIALS`` (service-account JSON). Run with
``toolhost-bigquery [--sse]`` or ``python -m toolhost.services.bigquery``.
"""

from __future__ import annotations

from toolhost.cli import ServiceSpec, service_command
from toolhost.foundation.config import BigQuerySettings
from toolhost.foundation.registry import ToolRegistry

from .client import BigQueryClient, estimate_cost
from .tools import build_tools

SERVER_NAME = "BigQuery MCP Server"


def build_registry(settings: BigQuerySettings, *, client: BigQueryClient | None = None) -> ToolRegistry:
    client = client or BigQueryClient.from_credentials(settings.credentials_info())
    return ToolRegistry.of(*build_tools(client), closers=(client.aclose,))


SERVICE = ServiceSpec(name=SERVER_NAME, settings=BigQuerySettings, build=build_registry)
main = service_command(SERVICE)

__all__ = ["SERVICE", "BigQueryClient", "build_registry", "build_tools", "estimate_cost", "main"]
