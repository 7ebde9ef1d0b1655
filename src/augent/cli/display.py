"""Shared terminal output helpers for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.text import Text

from augent.core.exceptions import AugentError
from augent.ui.console import console
from augent.workspace.workspace import Workspace, find_workspace_root


def print_section_header(title: str, color: str = "blue") -> None:
    width = console.size.width
    left = f"[{color}]▎[/{color}][dim {color}]▶[/dim {color}] [{color}]{title}[/{color}]"
    left_text = Text.from_markup(left)
    separator_count = max(1, width - left_text.cell_len - 1)

    combined = Text()
    combined.append_text(left_text)
    combined.append(" ")
    combined.append("─" * separator_count, style="dim")

    console.print()
    console.print(combined)
    console.print()


def print_hint(message: str) -> None:
    console.print(f"[dim]▎• {message}[/dim]")


def ctx_object(ctx: typer.Context) -> dict[str, Any]:
    if isinstance(ctx.obj, dict):
        return ctx.obj
    if ctx.obj is None:
        ctx.obj = {}
        return ctx.obj
    return {}


def open_workspace(ctx: typer.Context) -> Workspace:
    explicit = ctx_object(ctx).get("workspace")
    root = Path(explicit) if explicit else find_workspace_root()
    try:
        return Workspace.open(root)
    except AugentError as exc:
        fail(ctx, exc)


def fail(ctx: typer.Context, exc: AugentError) -> NoReturn:
    """Report ``exc`` on stderr and exit with status 1."""
    typer.echo(f"Error: {exc.message}", err=True)
    if exc.details and ctx_object(ctx).get("verbose"):
        typer.echo(exc.details, err=True)
    raise typer.Exit(1) from exc
