#!/usr/bin/env python
"""
CLI management commands for the Consul Discovery Service.
"""

import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import click

from devquality.consul_service.discovery import DiscoveryClient, build_discovery_client
from devquality.consul_service.settings import Settings, get_settings, validate_configuration


@dataclass
class CLIDependencies:
    """Bundle of injectable dependencies used by CLI commands."""

    settings_factory: Callable[[], Settings]
    client_factory: Callable[[Settings], DiscoveryClient]
    server_run: Callable[..., Any]


def _get_cli_dependencies() -> CLIDependencies:
    """Return the default dependency bundle for CLI commands."""
    import uvicorn

    return CLIDependencies(
        settings_factory=get_settings,
        client_factory=build_discovery_client,
        server_run=uvicorn.run,
    )


@click.group()
def cli() -> None:
    """Consul Discovery Service CLI."""
    pass


@cli.command()
@click.option("--host", default=None, help="Bind host (defaults to HOST setting)")
@click.option("--port", default=None, type=int, help="Bind port (defaults to PORT setting)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the API server."""
    deps = _get_cli_dependencies()
    settings = deps.settings_factory()

    deps.server_run(
        "devquality.consul_service.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload or settings.reload,
        log_level=settings.observability.log_level.value.lower(),
    )


@cli.command()
def check_config() -> None:
    """Validate configuration and print warnings."""
    deps = _get_cli_dependencies()
    settings = deps.settings_factory()

    try:
        warnings = validate_configuration(settings)
    except ValueError as exc:
        click.echo(f"✗ Invalid configuration: {exc}")
        sys.exit(1)

    click.echo(f"Application:  {settings.app_name} {settings.app_version}")
    click.echo(f"Profiles:     {', '.join(settings.active_profiles)}")
    click.echo(f"Consul agent: {settings.consul.address}")
    for warning in warnings:
        click.echo(f"⚠ {warning}")
    click.echo("✓ Configuration is valid")


@cli.command()
@click.option("--test", is_flag=True, help="Run in test mode")
def check_consul(test: bool) -> None:
    """Check connectivity to the Consul agent."""
    if test:
        click.echo(f"{'consul':15} skipped (test mode)")
        return

    deps = _get_cli_dependencies()
    settings = deps.settings_factory()
    client = deps.client_factory(settings)

    try:
        services = client.get_services()
    except Exception as exc:
        click.echo(f"{'consul':15} ✗ Failed: {exc}")
        sys.exit(1)

    click.echo(f"{'consul':15} ✓ Connected ({len(services)} services)")


if __name__ == "__main__":
    cli()
