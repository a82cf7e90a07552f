"""Typer CLI for git-jump: track, list and jump between recently used branches."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from result import Err

from git_jump import __version__
from git_jump.config import Config, default_config_content, default_config_path, load_config
from git_jump.errors import GitJumpError
from git_jump.git import GitCommandError, GitRepository, NotAGitRepositoryError
from git_jump.hooks import (
    POST_CHECKOUT,
    HookInstallStatus,
    install_post_checkout_hook,
    run_post_checkout,
)
from git_jump.output import Output
from git_jump.services.container import ServiceContainer

if TYPE_CHECKING:
    from collections.abc import Coroutine
    from typing import Any

    from git_jump.models.projects import Project
    from git_jump.services.protocols import BranchServiceProtocol

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="git-jump",
    help="Track recently visited git branches and jump between them.",
    no_args_is_help=True,
)


@dataclass
class CliState:
    """Global options shared by every command."""

    config_path: Path | None
    output: Output

    def load_config(self) -> Config:
        return load_config(self.config_path)


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to config file"),
    ] = None,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Suppress output")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output")] = False,
) -> None:
    """Track recently visited git branches and jump between them."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = CliState(config_path=config, output=Output(quiet=quiet, verbose=verbose))


@app.command()
def setup(
    ctx: typer.Context,
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing config")] = False,
) -> None:
    """Initialize the configuration file."""
    state: CliState = ctx.obj
    if not _do_setup(state.config_path or default_config_path(), state.output, force):
        raise typer.Exit(code=1)


@app.command()
def install(
    ctx: typer.Context,
    force: Annotated[bool, typer.Option("--force", help="Replace a foreign hook")] = False,
) -> None:
    """Install the post-checkout git hook in the current repository."""
    state: CliState = ctx.obj
    repository = _open_repository(state.output)
    if not _do_install(repository, state.output, force):
        raise typer.Exit(code=1)


@app.command()
def add(
    ctx: typer.Context,
    branch: Annotated[str, typer.Argument(help="Branch name to track")],
    verify: Annotated[
        bool, typer.Option("--verify/--no-verify", help="Verify the branch exists")
    ] = True,
) -> None:
    """Manually add a branch to tracking."""
    state: CliState = ctx.obj
    repository = _open_repository(state.output)
    _run(state.output, _do_add(state.load_config(), repository, state.output, branch, verify))


@app.command("list")
def list_branches(ctx: typer.Context) -> None:
    """List tracked branches for the current project."""
    state: CliState = ctx.obj
    repository = _open_repository(state.output)
    _run(state.output, _do_list(state.load_config(), repository, state.output))


@app.command()
def jump(
    ctx: typer.Context,
    index: Annotated[
        int | None, typer.Argument(help="1-based index from 'git-jump list'")
    ] = None,
) -> None:
    """Jump to the next branch, or to the branch at INDEX."""
    state: CliState = ctx.obj
    repository = _open_repository(state.output)
    _run(state.output, _do_jump(state.load_config(), repository, state.output, index))


@app.command()
def clear(
    ctx: typer.Context,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
) -> None:
    """Clear tracked branches that match none of the keep patterns."""
    state: CliState = ctx.obj
    repository = _open_repository(state.output)
    _run(state.output, _do_clear(state.load_config(), repository, state.output, yes))


@app.command()
def status(ctx: typer.Context) -> None:
    """Show current status and configuration."""
    state: CliState = ctx.obj
    repository = _open_repository(state.output)
    _run(state.output, _do_status(state.load_config(), repository, state.output))


@app.command()
def version() -> None:
    """Show version."""
    typer.echo(f"git-jump {__version__}")


@app.command(hidden=True)
def hook(
    ctx: typer.Context,
    event: Annotated[str, typer.Argument(help="Hook event name")],
    path: Annotated[Path | None, typer.Argument(help="Repository path")] = None,
) -> None:
    """Entry point for installed git hooks. Always exits 0."""
    state: CliState = ctx.obj
    if event != POST_CHECKOUT:
        return
    asyncio.run(run_post_checkout(path or Path.cwd(), state.config_path))


def _run(output: Output, action: Coroutine[Any, Any, bool]) -> None:
    """Run an async command body and map failures to exit status 1."""
    try:
        succeeded = asyncio.run(action)
    except GitJumpError as exc:
        output.error(str(exc))
        raise typer.Exit(code=1) from exc
    if not succeeded:
        raise typer.Exit(code=1)


def _open_repository(output: Output) -> GitRepository:
    try:
        return GitRepository()
    except NotAGitRepositoryError as exc:
        output.error(str(exc))
        raise typer.Exit(code=1) from exc


async def _resolve_project(
    service: BranchServiceProtocol, repository: GitRepository, output: Output
) -> Project | None:
    project = await service.resolve_project(repository.project_path, repository.project_basename)
    if isinstance(project, Err):
        output.error(str(project.err_value))
        return None
    return project.ok_value


def _do_setup(config_path: Path, output: Output, force: bool) -> bool:
    if config_path.exists() and not force:
        output.warning(f"Config file already exists at: {config_path}")
        if not output.prompt("Overwrite existing config?"):
            return False
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(default_config_content())
    except OSError as exc:
        output.error(f"Failed to create config file: {exc}")
        return False
    output.success(f"Created config file at: {config_path}")
    output.info("Edit this file to customize your branch tracking settings")
    return True


def _do_install(repository: GitRepository, output: Output, force: bool) -> bool:
    try:
        outcome = install_post_checkout_hook(repository, force=force)
        if outcome is HookInstallStatus.FOREIGN_HOOK:
            output.warning(f"A {POST_CHECKOUT} hook already exists")
            if not output.prompt("Overwrite existing hook?"):
                return False
            outcome = install_post_checkout_hook(repository, force=True)
    except (OSError, GitCommandError) as exc:
        output.error(f"Failed to install hook: {exc}")
        return False

    if outcome is HookInstallStatus.ALREADY_INSTALLED:
        output.info("Git Jump hook already installed")
        return True
    output.success(f"Installed {POST_CHECKOUT} hook in {repository.project_basename}")
    output.info("Branches will now be automatically tracked on checkout")
    return True


async def _do_add(
    config: Config, repository: GitRepository, output: Output, branch: str, verify: bool
) -> bool:
    if verify and not repository.branch_exists(branch):
        output.error(f"Branch '{branch}' does not exist in repository")
        return False

    async with await ServiceContainer.create(config) as services:
        service = services.branch_service
        project = await _resolve_project(service, repository, output)
        if project is None:
            return False
        tracked = await service.track_branch(project.id, branch)
        if isinstance(tracked, Err):
            output.error(str(tracked.err_value))
            return False

    output.success(f"Added branch '{branch}' to tracking for {repository.project_basename}")
    total = tracked.ok_value
    if total > config.max_branches:
        output.warning(
            f"Project has {total} branches (max: {config.max_branches}). "
            "Consider running 'git-jump clear'"
        )
    return True


async def _do_list(config: Config, repository: GitRepository, output: Output) -> bool:
    async with await ServiceContainer.create(config) as services:
        service = services.branch_service
        project = await _resolve_project(service, repository, output)
        if project is None:
            return False
        branches = await service.list_branches(project.id)
        if isinstance(branches, Err):
            output.error(str(branches.err_value))
            return False

    if not branches.ok_value:
        output.info(f"No branches tracked for {repository.project_basename}")
        output.info(
            "Use 'git-jump add <branch>' to add branches "
            "or 'git-jump install' to setup automatic tracking"
        )
        return True
    output.branch_list(branches.ok_value, repository.current_branch())
    return True


async def _do_jump(
    config: Config, repository: GitRepository, output: Output, index: int | None
) -> bool:
    async with await ServiceContainer.create(config) as services:
        service = services.branch_service
        project = await _resolve_project(service, repository, output)
        if project is None:
            return False

        stats = await service.project_stats(project.id)
        if isinstance(stats, Err):
            output.error(str(stats.err_value))
            return False
        if stats.ok_value.total_branches == 0:
            output.error(f"No branches tracked for {repository.project_basename}")
            output.info("Use 'git-jump add <branch>' to add branches")
            return False

        current = repository.current_branch()
        if index is not None:
            target = await service.branch_at_index(project.id, index)
        else:
            target = await service.next_branch(project.id, current)
        if isinstance(target, Err):
            output.error(str(target.err_value))
            return False
        if target.ok_value is None:
            output.error(f"Invalid branch index: {index}")
            return False

        name = target.ok_value
        if name == current:
            output.info(f"Already on branch '{name}'")
            return True

        try:
            repository.checkout(name)
        except GitCommandError as exc:
            output.error(f"Failed to checkout branch '{name}': {exc}")
            return False

        tracked = await service.track_branch(project.id, name)
        if isinstance(tracked, Err):
            output.warning(f"Switched, but could not record the visit: {tracked.err_value}")

    output.success(f"Switched to branch '{name}'")
    return True


async def _do_clear(config: Config, repository: GitRepository, output: Output, yes: bool) -> bool:
    async with await ServiceContainer.create(config) as services:
        service = services.branch_service
        project = await _resolve_project(service, repository, output)
        if project is None:
            return False

        stats = await service.project_stats(project.id)
        if isinstance(stats, Err):
            output.error(str(stats.err_value))
            return False
        if stats.ok_value.total_branches == 0:
            output.info(f"No branches tracked for {repository.project_basename}")
            return True

        keep_patterns = config.keep_patterns_for(repository.project_path)
        if not keep_patterns:
            output.warning("No keep patterns configured. All branches would be deleted.")
            output.info("Configure keep_patterns in your config file to use this command")
            return False

        output.info(f"Keep patterns: {', '.join(keep_patterns)}")
        if not yes and not output.prompt("Clear branches not matching patterns?"):
            output.info("Cancelled")
            return False

        deleted = await service.clear_branches(project.id, keep_patterns)
        if isinstance(deleted, Err):
            output.error(str(deleted.err_value))
            return False

    if deleted.ok_value == 0:
        output.info("No branches to clear (all match keep patterns)")
    else:
        output.success(f"Cleared {deleted.ok_value} branch(es)")
    return True


async def _do_status(config: Config, repository: GitRepository, output: Output) -> bool:
    output.heading("Git Jump Status")
    output.info(f"Project: {repository.project_basename}")
    output.info(f"Path: {repository.project_path}")
    output.info(f"Current branch: {repository.current_branch() or '(none)'}")

    output.heading("Configuration")
    output.info(f"Config file: {config.config_path}")
    output.info(f"Config exists: {'Yes' if config.exists else 'No'}")
    output.info(f"Database: {config.database_path}")
    output.info(f"Max branches: {config.max_branches}")
    output.info(f"Auto-track: {'Enabled' if config.auto_track else 'Disabled'}")
    keep_patterns = config.keep_patterns_for(repository.project_path)
    output.info(f"Keep patterns: {', '.join(keep_patterns)}")

    output.heading("Hook Status")
    try:
        hook_status = "Installed" if repository.hook_installed(POST_CHECKOUT) else "Not installed"
    except GitCommandError:
        logger.debug("Could not locate hooks directory", exc_info=True)
        hook_status = "Unknown"
    output.info(f"Post-checkout hook: {hook_status}")

    async with await ServiceContainer.create(config) as services:
        service = services.branch_service
        project = await _resolve_project(service, repository, output)
        if project is None:
            return False
        stats = await service.project_stats(project.id)
    if isinstance(stats, Err):
        output.error(str(stats.err_value))
        return False

    output.heading("Tracking Statistics")
    output.info(f"Total branches tracked: {stats.ok_value.total_branches}")
    if stats.ok_value.most_recent is not None:
        output.info(f"Most recent: {stats.ok_value.most_recent.name}")
    return True
