"""Show size and frame structure of a GIF."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from ..error_handling import GiftargetError
from ..meta import inspect_gif
from .utils import format_kb


@click.command("info")
@click.argument("gif_path", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Print the metadata as JSON")
def info(gif_path: Path, as_json: bool) -> None:
    """Print file size, frame count and timing of GIF_PATH."""
    try:
        metadata = inspect_gif(gif_path)
    except GiftargetError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(
            json.dumps(
                {
                    "size_kb": round(metadata.size_kb, 2),
                    "frame_count": metadata.frame_count,
                    "width": metadata.width,
                    "height": metadata.height,
                    "loop_count": metadata.loop_count,
                    "total_duration_ms": sum(metadata.frame_delays) * 10,
                },
                indent=2,
            )
        )
        return

    table = Table(title=f"🎞️  {gif_path.name}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Size", format_kb(metadata.size_kb))
    table.add_row("Frames", str(metadata.frame_count))
    table.add_row("Dimensions", f"{metadata.width}x{metadata.height}")
    table.add_row(
        "Loop",
        "forever" if metadata.loop_count == 0
        else "once" if metadata.loop_count is None
        else str(metadata.loop_count),
    )
    table.add_row("Duration", f"{sum(metadata.frame_delays) * 10} ms")
    Console().print(table)
