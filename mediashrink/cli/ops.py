"""
CLI ops commands — run the server, check health.

Usage:
    python -m mediashrink serve [--host H] [--port N] [--debug]
    python -m mediashrink health [--json]
"""

from __future__ import annotations

import json
import logging
from typing import Optional

import click


@click.command("serve")
@click.option("--host", default=None, help="Bind address (default: HOST or 0.0.0.0)")
@click.option("--port", type=int, default=None, help="Port (default: PORT or 8080)")
@click.option("--debug", is_flag=True, help="Enable Flask debug mode")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int], debug: bool) -> None:
    """Run the upload server."""
    from ..server.server import run_server

    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
    run_server(ctx.obj["settings"], host=host, port=port, debug=debug)


@click.command("health")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def health(ctx: click.Context, as_json: bool) -> None:
    """Check whether this host can compress media."""
    from ..compression.platform import detect_platform
    from ..observability.health import HealthChecker, HealthStatus

    settings = ctx.obj["settings"]
    checker = HealthChecker(settings.work_dir, detect_platform(settings.ffmpeg_path))
    result = checker.check()

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        status_colors = {
            HealthStatus.HEALTHY: ("✅", "green"),
            HealthStatus.DEGRADED: ("⚠️", "yellow"),
            HealthStatus.UNHEALTHY: ("❌", "red"),
        }
        icon, color = status_colors[result.status]
        click.echo()
        click.secho(f"{icon} Health: {result.status.value.upper()}", fg=color, bold=True)
        click.echo()
        for component in result.components:
            c_icon, c_color = status_colors[component.status]
            click.echo(f"  {c_icon} ", nl=False)
            click.secho(component.name, fg=c_color, bold=True, nl=False)
            click.echo(f": {component.message}")
        click.echo()

    if result.status == HealthStatus.UNHEALTHY:
        raise SystemExit(1)
