"""
mediashrink — CLI Entry Point

Usage:
    python -m mediashrink serve [--port N]
    python -m mediashrink compress photo.jpg [-o small.jpg]
    python -m mediashrink health [--json]
"""

from __future__ import annotations

# Load .env file FIRST, before any other imports that might read env vars
from pathlib import Path
from dotenv import load_dotenv

_env_file = Path.cwd() / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

import click

from .cli.compress import compress
from .cli.ops import health, serve
from .config.loader import ConfigError, load_settings
from .logging_config import setup_logging

# Initialize logging
setup_logging()


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """mediashrink — shrink images, GIFs and videos."""
    ctx.ensure_object(dict)
    try:
        ctx.obj["settings"] = load_settings()
    except ConfigError as e:
        raise click.UsageError(str(e)) from e


cli.add_command(serve)
cli.add_command(compress)
cli.add_command(health)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
