"""Thin wrapper around the git binary for the current working copy."""

from __future__ import annotations

import logging
import os
import stat
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

SKIP_HOOK_ENV = "GIT_JUMP_SKIP_HOOK"


class NotAGitRepositoryError(Exception):
    """Raised when a path is not inside a git working copy."""


class GitCommandError(Exception):
    """Raised when a git command exits with a non-zero status."""


def find_git_root(start: Path) -> Path | None:
    """Walk up from ``start`` to the first directory holding a ``.git`` entry."""
    current = start
    while True:
        if (current / ".git").exists():
            return current
        if current.parent == current:
            return None
        current = current.parent


class GitRepository:
    """Git operations needed by git-jump for one working copy."""

    def __init__(self, path: Path | str | None = None) -> None:
        start = Path(path or Path.cwd()).expanduser().resolve()
        root = find_git_root(start)
        if root is None:
            msg = f"Not a git repository: {start}"
            raise NotAGitRepositoryError(msg)
        self._root = root

    @property
    def project_path(self) -> str:
        return str(self._root)

    @property
    def project_basename(self) -> str:
        return self._root.name

    def current_branch(self) -> str | None:
        """Name of the checked-out branch, or None on a detached HEAD or git failure."""
        try:
            name = self._run("branch", "--show-current").strip()
        except GitCommandError:
            logger.debug("Could not read current branch in %s", self._root, exc_info=True)
            return None
        return name or None

    def branches(self) -> list[str]:
        try:
            output = self._run("branch", "--format=%(refname:short)")
        except GitCommandError:
            logger.debug("Could not list branches in %s", self._root, exc_info=True)
            return []
        return [line.strip() for line in output.splitlines() if line.strip()]

    def branch_exists(self, name: str) -> bool:
        return name in self.branches()

    def checkout(self, name: str) -> None:
        """Check out ``name`` without re-triggering the git-jump hook."""
        env = {**os.environ, SKIP_HOOK_ENV: "1"}
        self._run("checkout", name, env=env)

    def hook_path(self, hook_name: str) -> Path:
        git_entry = self._root / ".git"
        if git_entry.is_file():
            # Worktrees and submodules keep a "gitdir: <path>" pointer file.
            hooks_dir = Path(self._run("rev-parse", "--git-path", "hooks").strip())
            if not hooks_dir.is_absolute():
                hooks_dir = self._root / hooks_dir
            return hooks_dir / hook_name
        return git_entry / "hooks" / hook_name

    def hook_installed(self, hook_name: str) -> bool:
        path = self.hook_path(hook_name)
        return path.is_file() and os.access(path, os.X_OK)

    def read_hook(self, hook_name: str) -> str | None:
        try:
            return self.hook_path(hook_name).read_text()
        except OSError:
            return None

    def install_hook(self, hook_name: str, content: str) -> Path:
        path = self.hook_path(hook_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    def _run(self, *args: str, env: dict[str, str] | None = None) -> str:
        try:
            completed = subprocess.run(
                ["git", *args],
                cwd=self._root,
                env=env,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            msg = f"Failed to run git {' '.join(args)}: {exc}"
            raise GitCommandError(msg) from exc
        if completed.returncode != 0:
            output = (completed.stderr or completed.stdout).strip()
            msg = f"git {' '.join(args)} failed: {output}"
            raise GitCommandError(msg)
        return completed.stdout
