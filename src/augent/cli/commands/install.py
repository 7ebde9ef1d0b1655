"""``augent install``."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.table import Table

from augent.cli.display import ctx_object, fail, open_workspace, print_hint, print_section_header
from augent.core.exceptions import AugentError
from augent.installer.planner import PlanAction
from augent.operations.install import InstallReport, install
from augent.ui.console import console

_ACTION_STYLES = {
    PlanAction.CREATE: "green",
    PlanAction.OVERWRITE: "yellow",
    PlanAction.MERGE: "cyan",
    PlanAction.UNCHANGED: "dim",
    PlanAction.SKIP_MODIFIED: "magenta",
    PlanAction.REMOVE_STALE: "red",
}


def _print_report(report: InstallReport, *, verbose: bool) -> None:
    title = "Install plan (dry run)" if report.dry_run else "Installed bundles"
    print_section_header(title, color="blue")

    if not report.bundles:
        console.print("[yellow]Nothing to install.[/yellow]")
        print_hint("Add a bundle with: augent install <source>")
        return

    table = Table(show_header=True, box=None)
    table.add_column("#", justify="right", style="dim", header_style="bold bright_white")
    table.add_column("Bundle", style="cyan", header_style="bold bright_white")
    table.add_column("Source", style="dim", header_style="bold bright_white")
    table.add_column("Files", justify="right", header_style="bold bright_white")
    for position, bundle in enumerate(report.bundles, 1):
        table.add_row(str(position), bundle.name, bundle.reference.describe(), str(len(bundle.files)))
    console.print(table)

    console.print()
    console.print(f"[dim]▎• Platforms:[/dim] [cyan]{', '.join(report.platforms)}[/cyan]")
    summary = ", ".join(
        f"[{_ACTION_STYLES[action]}]{report.count(action)} {action.value.replace('_', ' ')}[/{_ACTION_STYLES[action]}]"
        for action in PlanAction
        if report.count(action)
    )
    if summary:
        console.print(f"[dim]▎• Files:[/dim] {summary}")

    if verbose or report.dry_run:
        files = Table(show_header=True, box=None)
        files.add_column("Action", header_style="bold bright_white")
        files.add_column("Path", style="white", header_style="bold bright_white")
        files.add_column("Bundle", style="dim", header_style="bold bright_white")
        for operation in report.operations:
            style = _ACTION_STYLES[operation.action]
            files.add_row(f"[{style}]{operation.action.value}[/{style}]", operation.location, operation.bundle)
        console.print()
        console.print(files)

    for operation in report.skipped:
        print_hint(f"Kept your changes to {operation.location}")
    for conflict in report.conflicts:
        print_hint(f"{conflict.path}: {conflict.second_bundle} overrides {conflict.first_bundle}")
    removed = report.untargeted_removals
    if removed:
        dropped = sorted({operation.platform_id for operation in removed if operation.platform_id})
        verb = "Would remove" if report.dry_run else "Removed"
        print_hint(
            f"{verb} {len(removed)} file(s) from platforms no longer targeted: {', '.join(dropped)}"
        )
    if not report.dry_run:
        for entry in report.manifest_entries:
            print_hint(f"Added {entry.name} to the workspace manifest")


def install_command(
    ctx: typer.Context,
    source: Annotated[
        str | None,
        typer.Argument(
            help="Bundle source: a local directory, @owner/repo, a git URL. "
            "Omit to install everything the workspace manifest lists.",
            show_default=False,
        ),
    ] = None,
    to: Annotated[
        list[str] | None,
        typer.Option("--to", "-t", help="Target platform id (repeatable)."),
    ] = None,
    frozen: Annotated[
        bool,
        typer.Option("--frozen", help="Fail if the lockfile would change."),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would happen without writing anything."),
    ] = False,
    update: Annotated[
        bool,
        typer.Option("--update", help="Re-resolve git refs instead of using locked commits."),
    ] = False,
    all_bundles: Annotated[
        bool,
        typer.Option(
            "--all-bundles",
            help="Install every bundle the source contains (sub-bundles or marketplace plugins).",
        ),
    ] = False,
) -> None:
    workspace = open_workspace(ctx)
    try:
        report = install(
            workspace,
            source,
            platforms=to or None,
            frozen=frozen,
            dry_run=dry_run,
            update=update,
            all_bundles=all_bundles,
        )
    except AugentError as exc:
        fail(ctx, exc)

    state = ctx_object(ctx)
    if not state.get("quiet"):
        _print_report(report, verbose=bool(state.get("verbose")))
