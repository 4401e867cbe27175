"""Compress a GIF toward a target file size."""

import json
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from ..config import LOSSY_SWEEP, SearchConfig
from ..orchestrator import compress
from ..schema import CompressionRequest
from .utils import (
    default_output_path,
    format_kb,
    handle_generic_error,
    handle_keyboard_interrupt,
)

EXIT_TARGET_MISSED = 2


@click.command("compress")
@click.argument(
    "input_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output GIF (default: <input>_compressed.gif next to the input)",
)
@click.option(
    "--target-size",
    "-t",
    type=click.FloatRange(min=0, min_open=True),
    default=500.0,
    show_default=True,
    help="Target size in KB",
)
@click.option(
    "--min-frame-percent",
    "-m",
    type=click.IntRange(1, 100),
    default=10,
    show_default=True,
    help="Minimum percentage of original frames to keep",
)
@click.option(
    "--threads",
    "-j",
    type=click.IntRange(min=0),
    default=0,
    show_default=True,
    help="Parallel trials (0 = number of physical cores)",
)
@click.option(
    "--lossy",
    "lossy_levels",
    type=click.IntRange(min=0),
    multiple=True,
    help="gifsicle --lossy level to add to the search grid (repeatable)",
)
@click.option(
    "--lossy-sweep",
    is_flag=True,
    help="Add gifsicle --lossy levels 30, 60, ..., 240 to the search grid",
)
@click.option(
    "--early-exit",
    is_flag=True,
    help="Stop starting new trials once a result lands just under the target",
)
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def compress_command(
    input_path: Path,
    output_path: Path | None,
    target_size: float,
    min_frame_percent: int,
    threads: int,
    lossy_levels: tuple[int, ...],
    lossy_sweep: bool,
    early_exit: bool,
    as_json: bool,
) -> None:
    """Compress INPUT_PATH toward a target file size.

    Trials with different frame strides, palette sizes and optimization levels
    run in parallel; the largest result under the target wins, or the smallest
    result when none fits. Exits with status 2 when only a best-effort result
    was produced.
    """
    try:
        request = CompressionRequest(
            input_path=input_path,
            output_path=output_path or default_output_path(input_path),
            target_size_kb=target_size,
            min_frame_percent=min_frame_percent,
            threads=threads,
            early_exit=early_exit,
        )
    except ValidationError as e:
        raise click.BadParameter(str(e)) from e

    if lossy_sweep:
        lossy_levels = (*lossy_levels, *LOSSY_SWEEP)
    search_config = SearchConfig(LOSSY_LEVELS=sorted({0, *lossy_levels}))

    try:
        if as_json:
            result = compress(request, search_config=search_config)
        else:
            result = _compress_with_progress(request, search_config)
    except KeyboardInterrupt:
        handle_keyboard_interrupt("Compression")
    except Exception as e:
        handle_generic_error("Compression", e)

    if as_json:
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        _print_result(result)

    if result.error_kind is not None:
        sys.exit(1)
    if not result.success:
        sys.exit(EXIT_TARGET_MISSED)


def _compress_with_progress(request: CompressionRequest, search_config: SearchConfig):
    console = Console(stderr=True)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Compressing trials...", total=None)

        def on_trial(completed, total, outcome):
            progress.update(task, completed=completed, total=total)

        return compress(request, search_config=search_config, progress_callback=on_trial)


def _print_result(result) -> None:
    console = Console()

    if result.error_kind is not None:
        console.print(f"❌ [red]{result.message}[/red]")
        return

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Original size", format_kb(result.original_size_kb))
    table.add_row("Compressed size", format_kb(result.compressed_size_kb))
    table.add_row("Reduction", f"{result.reduction_percent:.1f}%")
    table.add_row("Frames", f"{result.frames_retained}/{result.original_frames}")
    if result.params:
        table.add_row(
            "Parameters",
            ", ".join(f"{key}={value}" for key, value in result.params.items()),
        )
    table.add_row("Trials", f"{result.trials_run} run, {result.trials_failed} failed")
    table.add_row("Output", str(result.output_path))
    console.print(table)

    if result.success:
        console.print(f"✅ [green]{result.message}[/green]")
    else:
        console.print(f"⚠️  [yellow]{result.message}[/yellow]")
