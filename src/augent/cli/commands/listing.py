"""``augent list`` and ``augent show``."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.table import Table

from augent.cli.display import fail, open_workspace, print_hint, print_section_header
from augent.core.exceptions import AugentError
from augent.operations.listing import list_bundles, show_bundle
from augent.ui.console import console


def _short_sha(sha: str | None) -> str:
    return sha[:8] if sha else "-"


def list_command(ctx: typer.Context) -> None:
    workspace = open_workspace(ctx)
    bundles = list_bundles(workspace)
    print_section_header("Installed Bundles", color="blue")
    console.print(f"[dim]▎• Workspace:[/dim] [cyan]{workspace.root}[/cyan]")

    if not bundles:
        console.print("[yellow]No bundles installed.[/yellow]")
        print_hint("Install with: augent install <source>")
        return

    table = Table(show_header=True, box=None)
    table.add_column("#", justify="right", style="dim", header_style="bold bright_white")
    table.add_column("Name", style="cyan", header_style="bold bright_white")
    table.add_column("Source", style="dim", header_style="bold bright_white")
    table.add_column("Commit", style="white", header_style="bold bright_white")
    table.add_column("Installed", justify="right", style="green", header_style="bold bright_white")
    table.add_column("Direct", justify="center", header_style="bold bright_white")

    for position, bundle in enumerate(bundles, 1):
        table.add_row(
            str(position),
            bundle.name,
            bundle.source,
            _short_sha(bundle.sha),
            str(bundle.installed_count),
            "[green]✓[/green]" if bundle.direct else "[dim]·[/dim]",
        )
    console.print(table)


def show_command(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Installed bundle name.", show_default=False)],
) -> None:
    workspace = open_workspace(ctx)
    try:
        details = show_bundle(workspace, name)
    except AugentError as exc:
        fail(ctx, exc)

    summary = details.summary
    print_section_header(summary.name, color="blue")
    fields = [
        ("Description", details.description),
        ("Version", details.version),
        ("Author", details.author),
        ("License", details.license),
        ("Homepage", details.homepage),
        ("Source", f"{summary.kind}: {summary.source}"),
        ("Ref", summary.ref),
        ("Commit", summary.sha),
        ("Hash", details.hash),
    ]
    for label, value in fields:
        if value:
            console.print(f"[dim]▎• {label}:[/dim] {value}")

    print_section_header("Files", color="blue")
    if not details.files:
        console.print("[yellow]This bundle provides no resources.[/yellow]")
        return

    table = Table(show_header=True, box=None)
    table.add_column("Resource", style="cyan", header_style="bold bright_white")
    table.add_column("Installed at", style="white", header_style="bold bright_white")
    for resource in details.files:
        locations = details.installed.get(resource, [])
        table.add_row(resource, "\n".join(locations) if locations else "[dim]not installed[/dim]")
    console.print(table)
