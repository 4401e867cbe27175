"""Report whether the gifsicle backend is installed."""

import json
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..system_tools import discover_tool, install_hint


@click.command("deps")
@click.option("--json", "as_json", is_flag=True, help="Output in JSON format")
def deps(as_json: bool) -> None:
    """Check that gifsicle can be found; exits 1 when it is missing."""
    tool = discover_tool("gifsicle")
    hint = install_hint()

    if as_json:
        click.echo(
            json.dumps(
                {
                    "gifsicle": {
                        "available": tool.available,
                        "path": tool.name,
                        "version": tool.version,
                        "install": None if tool.available else hint,
                    }
                },
                indent=2,
            )
        )
    else:
        console = Console()
        table = Table(title="🔧 External Tools", show_header=True, header_style="bold magenta")
        table.add_column("Tool", style="cyan")
        table.add_column("Status")
        table.add_column("Version")
        table.add_column("Path", style="dim")
        status = "[green]✅ Available[/green]" if tool.available else "[red]❌ Missing[/red]"
        table.add_row("gifsicle", status, tool.version or "-", tool.name)
        console.print(table)

        if not tool.available:
            console.print(
                Panel(
                    f"Install gifsicle:\n[green]{hint}[/green]\n\n"
                    "Or point GIFTARGET_GIFSICLE_PATH at an existing binary.",
                    title="Installation",
                    border_style="yellow",
                )
            )

    if not tool.available:
        sys.exit(1)
