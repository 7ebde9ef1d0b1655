"""``augent uninstall``."""

from __future__ import annotations

from typing import Annotated

import typer

from augent.cli.display import ctx_object, fail, open_workspace, print_hint, print_section_header
from augent.core.exceptions import AugentError
from augent.operations.uninstall import UninstallReport, uninstall
from augent.ui.console import console


def _print_report(report: UninstallReport, *, verbose: bool) -> None:
    if report.message:
        console.print(f"[yellow]{report.message}:[/yellow] {report.requested}")
        return

    title = "Uninstall plan (dry run)" if report.dry_run else "Uninstalled bundles"
    print_section_header(title, color="blue")
    for name in report.targets:
        console.print(f"[red]-[/red] [cyan]{name}[/cyan]")
    for name in report.cascaded:
        console.print(f"[red]-[/red] [cyan]{name}[/cyan] [dim](no longer needed)[/dim]")

    console.print()
    console.print(f"[dim]▎• Files removed:[/dim] {len(report.removed_files)}")
    if verbose or report.dry_run:
        for location in report.removed_files:
            console.print(f"  [dim]{location}[/dim]")
    if report.kept_files:
        print_hint(f"{len(report.kept_files)} file(s) kept because other bundles still use them")
    for warning in report.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")


def uninstall_command(
    ctx: typer.Context,
    name: Annotated[
        str,
        typer.Argument(help="Bundle name, or a scope such as @owner.", show_default=False),
    ],
    all_matching: Annotated[
        bool,
        typer.Option("--all", help="Remove every bundle whose name matches the scope."),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be removed without deleting anything."),
    ] = False,
    force: Annotated[
        bool,
        typer.Option("--force", help="Do not warn about bundles that still depend on the target."),
    ] = False,
) -> None:
    workspace = open_workspace(ctx)
    try:
        report = uninstall(
            workspace,
            name,
            all_matching=all_matching,
            dry_run=dry_run,
            force=force,
        )
    except AugentError as exc:
        fail(ctx, exc)

    state = ctx_object(ctx)
    if state.get("quiet"):
        for warning in report.warnings:
            typer.echo(f"Warning: {warning}", err=True)
        return
    _print_report(report, verbose=bool(state.get("verbose")))
