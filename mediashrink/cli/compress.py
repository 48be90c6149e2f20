"""
CLI compress command — run the pipeline on a local file.

Usage:
    python -m mediashrink compress INPUT [-o OUTPUT] [--profile compact]
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Optional

import click

from ..compression.profiles import PROFILES


@click.command("compress")
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-o", "--output", "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Destination (default: compressed_<name> next to the input)",
)
@click.option(
    "--profile",
    type=click.Choice(sorted(PROFILES)),
    default=None,
    help="Compression profile (default: MEDIASHRINK_PROFILE or standard)",
)
@click.pass_context
def compress(
    ctx: click.Context,
    input_path: Path,
    output_path: Optional[Path],
    profile: Optional[str],
) -> None:
    """Compress one image, GIF or video."""
    from ..compression.errors import CompressionError
    from ..compression.pipeline import CompressionPipeline, safe_filename

    settings = ctx.obj["settings"]
    if profile:
        settings = replace(settings, profile=PROFILES[profile])

    if output_path is None:
        output_path = input_path.with_name(f"compressed_{safe_filename(input_path.name)}")

    pipeline = CompressionPipeline.from_settings(settings)
    try:
        result = pipeline.compress_file(input_path, output_path)
    except CompressionError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        if getattr(e, "output", ""):
            click.echo(e.output_tail(), err=True)
        raise SystemExit(1)

    click.echo(f"  Kind:     {result.kind.value}")
    if result.width:
        click.echo(f"  Size:     {result.width}x{result.height}")
    click.echo(f"  Bytes:    {result.input_bytes:,} → {result.output_bytes:,} ({result.ratio * 100:.0f}%)")
    click.echo(f"  Elapsed:  {result.elapsed_seconds:.1f}s")
    click.secho(f"✓ Wrote {result.output_path}", fg="green")
