"""Main CLI entry point for augent."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from augent import __version__
from augent.cli.commands import install, listing, platforms, uninstall
from augent.cli.display import ctx_object, print_hint, print_section_header
from augent.config import get_settings
from augent.core.exceptions import ConfigurationError
from augent.core.logging.logger import configure_logging
from augent.ui.console import console

app = typer.Typer(
    help="Install and lock AI coding-assistant configuration bundles.",
    add_completion=False,
)

app.command("install", help="Install a bundle, or every bundle the workspace lists")(install.install_command)
app.command("uninstall", help="Remove a bundle and dependencies nothing else needs")(
    uninstall.uninstall_command
)
app.command("list", help="List installed bundles")(listing.list_command)
app.command("show", help="Show details of an installed bundle")(listing.show_command)
app.command("platforms", help="List supported platforms and which are detected")(
    platforms.platforms_command
)


def show_welcome() -> None:
    print_section_header(f"augent v{__version__}", color="blue")

    table = Table(show_header=True, box=None)
    table.add_column("Command", style="green", header_style="bold bright_white")
    table.add_column("Description", header_style="bold bright_white")

    table.add_row("[bold]install[/bold] [SOURCE]", "Install a bundle and its dependencies")
    table.add_row("install --frozen", "Install exactly what the lockfile records")
    table.add_row("[bold]uninstall[/bold] NAME", "Remove a bundle (or a whole @scope)")
    table.add_row("list", "List installed bundles")
    table.add_row("show NAME", "Show a bundle's files and install locations")
    table.add_row("platforms", "List supported platforms")

    console.print(table)
    console.print()
    print_hint("Sources: ./local/dir, @owner/repo, owner/repo#ref, https://host/repo.git:path")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose mode"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show errors"),
    workspace: Path | None = typer.Option(
        None, "--workspace", "-w", help="Workspace directory (defaults to the nearest .augent)"
    ),
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
) -> None:
    """augent - manage AI coding-assistant configuration bundles.

    Use --help with any command for detailed usage information.
    """
    if version:
        console.print(f"augent v{__version__}")
        raise typer.Exit()

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        typer.echo(f"Error: {exc.message}", err=True)
        raise typer.Exit(1) from exc

    level = "debug" if verbose else "error" if quiet else settings.logger.level
    configure_logging(level)

    state = ctx_object(ctx)
    state["verbose"] = verbose
    state["quiet"] = quiet
    state["workspace"] = workspace

    if ctx.invoked_subcommand is None:
        show_welcome()
