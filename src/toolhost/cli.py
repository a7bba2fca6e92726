"""Process entrypoint shared by every service.

Each service declares a ServiceSpec (display name, settings class, registry
builder) and gets a click command from ``service_command``:

    toolhost-fetch            # stdio
    toolhost-fetch --sse      # HTTP SSE on TOOLHOST_PORT (default 3000)

Startup order: server settings, logging, service settings, registry,
transport. A configuration error exits with status 1 before any transport
starts; any other escaping exception is logged as ``Fatal error in main()``
and also exits with status 1.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

import click
from pydantic_settings import BaseSettings

from toolhost import __version__
from toolhost.foundation.config import ServerSettings, load_settings
from toolhost.foundation.errors import ConfigurationError
from toolhost.foundation.registry import ToolRegistry
from toolhost.runtime.observability import configure_logging, get_logger
from toolhost.transport import SseTransport, StdioTransport, ToolServer, Transport

S = TypeVar("S", bound=BaseSettings)


@dataclass(frozen=True, slots=True)
class ServiceSpec(Generic[S]):
    """What a service contributes: its name, its settings and how to build its tools."""

    name: str
    settings: type[S]
    build: Callable[[S], ToolRegistry]
    version: str = __version__


def build_transport(server: ToolServer, server_settings: ServerSettings, *, sse: bool) -> Transport:
    """Exactly one transport per process, chosen by the --sse flag."""
    if sse:
        return SseTransport(server, host=server_settings.host, port=server_settings.port)
    return StdioTransport(server)


async def serve(spec: ServiceSpec[S], settings: S, server_settings: ServerSettings, *, sse: bool) -> None:
    """Serve until the transport finishes, then close the clients the registry holds."""
    registry = spec.build(settings)
    server = ToolServer(registry, name=spec.name, version=spec.version)
    try:
        await build_transport(server, server_settings, sse=sse).serve()
    finally:
        await registry.aclose()


def run_service(spec: ServiceSpec[S], *, sse: bool = False) -> None:
    """Load configuration, then serve until the transport finishes."""
    try:
        server_settings = load_settings(ServerSettings)
    except ConfigurationError as e:
        click.echo(str(e), err=True)
        raise SystemExit(1) from None

    configure_logging(server_settings.logging.format, server_settings.logging.level)
    log = get_logger("toolhost.cli", service=spec.name)

    try:
        settings = load_settings(spec.settings)
    except ConfigurationError as e:
        log.error("configuration error", missing=list(e.missing))
        click.echo(str(e), err=True)
        raise SystemExit(1) from None

    log.info(f"Starting {spec.name}...", transport="sse" if sse else "stdio")
    try:
        asyncio.run(serve(spec, settings, server_settings, sse=sse))
    except KeyboardInterrupt:
        log.info("interrupted")
    except Exception:
        log.exception("Fatal error in main()")
        raise SystemExit(1) from None


def service_command(spec: ServiceSpec[S]) -> click.Command:
    """Click command running `spec`, with the --sse transport switch."""

    @click.command(help=f"Run the {spec.name} over stdio, or over HTTP SSE with --sse.")
    @click.option("--sse", is_flag=True, default=False, help="Serve over HTTP Server-Sent Events.")
    @click.version_option(spec.version, prog_name=spec.name)
    def command(sse: bool) -> None:
        run_service(spec, sse=sse)

    return command
