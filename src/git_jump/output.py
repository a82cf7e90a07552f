"""Coloured terminal output for the CLI."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import typer

if TYPE_CHECKING:
    from collections.abc import Sequence

    from git_jump.models.branches import Branch


def format_relative_time(timestamp: str, now: datetime | None = None) -> str:
    """Render an ISO timestamp as ``just now`` / ``5m ago`` / ``3h ago`` / ``2d ago`` / date."""
    try:
        moment = datetime.fromisoformat(timestamp)
    except ValueError:
        return "unknown"
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    diff = ((now or datetime.now(UTC)) - moment).total_seconds()

    if diff < 60:
        return "just now"
    if diff < 3600:
        return f"{int(diff // 60)}m ago"
    if diff < 86_400:
        return f"{int(diff // 3600)}h ago"
    if diff < 2_592_000:
        return f"{int(diff // 86_400)}d ago"
    return moment.astimezone().strftime("%Y-%m-%d")


class Output:
    """User-facing messages. ``quiet`` silences everything except errors."""

    def __init__(self, *, quiet: bool = False, verbose: bool = False) -> None:
        self.quiet = quiet
        self.verbose = verbose

    def success(self, message: str) -> None:
        if not self.quiet:
            typer.secho(f"✓ {message}", fg=typer.colors.GREEN)

    def error(self, message: str) -> None:
        typer.secho(f"✗ {message}", fg=typer.colors.RED, err=True)

    def warning(self, message: str) -> None:
        if not self.quiet:
            typer.secho(f"⚠ {message}", fg=typer.colors.YELLOW)

    def info(self, message: str) -> None:
        if not self.quiet:
            typer.secho(f"ℹ {message}", fg=typer.colors.BLUE)

    def debug(self, message: str) -> None:
        if self.verbose:
            typer.secho(message, dim=True)

    def heading(self, message: str) -> None:
        if self.quiet:
            return
        typer.echo()
        typer.secho(message, fg=typer.colors.CYAN, bold=True)
        typer.secho("─" * len(message), dim=True)

    def branch_list(self, branches: Sequence[Branch], current_branch: str | None) -> None:
        if self.quiet or not branches:
            return
        self.heading("Tracked Branches")

        width = max(len("Branch"), *(len(branch.name) for branch in branches))
        index_width = max(3, len(str(len(branches))) + 2)
        typer.secho(f"{'#':<{index_width}} {'Branch':<{width}}  Last Visited", bold=True)
        for index, branch in enumerate(branches, start=1):
            is_current = branch.name == current_branch
            marker = "→" if is_current else " "
            label = f"{marker} {index}".ljust(index_width)
            name = branch.name.ljust(width)
            visited = format_relative_time(branch.last_visited_at)
            if is_current:
                typer.secho(f"{label} {name}  {visited}", fg=typer.colors.GREEN, bold=True)
            else:
                typer.echo(f"{label} {name}  {visited}")

    def prompt(self, message: str) -> bool:
        """Ask a yes/no question, defaulting to no. Quiet mode auto-confirms."""
        if self.quiet:
            return True
        return typer.confirm(typer.style(message, fg=typer.colors.YELLOW), default=False)
