"""Command-line interface for the Mandrill exporter.

Starts the HTTP server exposing Mandrill tag statistics to Prometheus.
"""

import logging
import os
import sys
from typing import Optional

import click
import structlog
from pydantic import ValidationError

from mandrill_exporter.api import MandrillClient
from mandrill_exporter.config import configure_logging, get_settings
from mandrill_exporter.metrics import MandrillCollector, build_registry
from mandrill_exporter.web import (
    DEFAULT_LISTEN_ADDR,
    HealthFlag,
    LifecycleController,
    ListenerBindError,
    ShutdownDrainTimeout,
    create_app,
)

logger = structlog.get_logger(__name__)


@click.command()
@click.option(
    "--listen-addr",
    default=DEFAULT_LISTEN_ADDR,
    show_default=True,
    help="server listen address",
)
@click.option(
    "--shutdown-timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds to wait for in-flight requests on shutdown (default: SHUTDOWN_TIMEOUT_SECONDS)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging",
)
@click.pass_context
def cli(
    ctx: click.Context,
    listen_addr: str,
    shutdown_timeout: Optional[float],
    verbose: bool,
) -> None:
    """Export Mandrill per-tag statistics in Prometheus format."""
    try:
        settings = get_settings()
    except ValidationError as e:
        click.echo(f"Error: invalid configuration\n{e}", err=True)
        ctx.exit(1)

    configure_logging("DEBUG" if verbose else settings.LOG_LEVEL, settings.LOG_FORMAT)

    if not settings.MANDRILL_API_KEY:
        logger.warning("mandrill_api_key_missing", hint="set MANDRILL_API_KEY")

    client = MandrillClient(
        api_key=settings.MANDRILL_API_KEY,
        api_url=settings.MANDRILL_API_URL,
        timeout_seconds=settings.MANDRILL_TIMEOUT_SECONDS,
    )
    collector = MandrillCollector(client, namespace=settings.METRICS_NAMESPACE)
    registry = build_registry(collector)
    health = HealthFlag()

    controller = LifecycleController(
        create_app(registry, health),
        health,
        listen_addr=listen_addr,
        drain_timeout=shutdown_timeout or settings.SHUTDOWN_TIMEOUT_SECONDS,
    )

    try:
        controller.serve()
    except ListenerBindError as e:
        logger.critical("listener_bind_failed", listen_addr=listen_addr, error=str(e))
        ctx.exit(1)
    except ShutdownDrainTimeout as e:
        logger.critical("server_shutdown_failed", error=str(e))
        # Worker threads still blocked upstream would keep the interpreter
        # alive at exit; terminate without joining them
        logging.shutdown()
        sys.stdout.flush()
        os._exit(1)
    except KeyboardInterrupt:
        # uvicorn re-raises SIGINT once the drain has completed
        pass


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
