"""CLI module for giftarget commands.

Each command lives in its own module; this package assembles them into the
``giftarget`` click group used as the console entry point.
"""

import click

from .. import __version__
from .compress_cmd import compress_command
from .deps_cmd import deps
from .info_cmd import info
from .utils import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="giftarget")
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Show search progress in the log (-vv for every trial)",
)
def main(verbose: int) -> None:
    """🎞️ giftarget — compress animated GIFs toward a target file size."""
    configure_logging(verbose)


main.add_command(compress_command)
main.add_command(info)
main.add_command(deps)

__all__ = [
    "compress_command",
    "deps",
    "info",
    "main",
]
