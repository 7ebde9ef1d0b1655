"""``augent platforms``."""

from __future__ import annotations

import typer
from rich.table import Table

from augent.cli.display import open_workspace, print_section_header
from augent.platforms.registry import PLATFORM_ALIASES, PLATFORMS
from augent.ui.console import console


def platforms_command(ctx: typer.Context) -> None:
    workspace = open_workspace(ctx)
    print_section_header("Platforms", color="blue")

    aliases: dict[str, list[str]] = {}
    for alias, target in PLATFORM_ALIASES.items():
        aliases.setdefault(target, []).append(alias)

    table = Table(show_header=True, box=None)
    table.add_column("", style="dim", width=2)
    table.add_column("Id", style="cyan", header_style="bold bright_white")
    table.add_column("Name", header_style="bold bright_white")
    table.add_column("Directory", style="dim", header_style="bold bright_white")
    table.add_column("Aliases", style="dim", header_style="bold bright_white")

    for platform in PLATFORMS:
        detected = platform.is_detected(workspace.root)
        table.add_row(
            "[green]✓[/green]" if detected else "[dim]✗[/dim]",
            platform.id,
            platform.name,
            platform.directory,
            ", ".join(aliases.get(platform.id, [])),
        )
    console.print(table)
    console.print("\n[dim]✓ = detected in this workspace[/dim]")
