"""Shared utilities for CLI commands."""

import logging
import sys
from pathlib import Path

import click

DEFAULT_OUTPUT_SUFFIX = "_compressed.gif"


def configure_logging(verbosity: int) -> None:
    """Route library logging to stderr; -v shows progress, -vv every trial."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def default_output_path(input_path: Path) -> Path:
    """``clip.gif`` -> ``clip_compressed.gif`` next to the input."""
    return input_path.with_name(f"{input_path.stem}{DEFAULT_OUTPUT_SUFFIX}")


def handle_generic_error(command_name: str, error: Exception) -> None:
    """Handle generic command errors with consistent formatting."""
    click.echo(f"❌ {command_name} failed: {error}", err=True)
    sys.exit(1)


def handle_keyboard_interrupt(command_name: str) -> None:
    """Handle keyboard interrupt with consistent formatting."""
    click.echo(f"\n⏹️  {command_name} interrupted by user", err=True)
    sys.exit(1)


def format_kb(size_kb: float) -> str:
    if size_kb >= 1024:
        return f"{size_kb / 1024:.2f} MB"
    return f"{size_kb:.2f} KB"
