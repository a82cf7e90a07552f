"""Post-checkout hook template, installer and runner."""

from __future__ import annotations

import logging
import os
from enum import StrEnum
from typing import TYPE_CHECKING

from result import Err

from git_jump.config import load_config
from git_jump.git import SKIP_HOOK_ENV, GitRepository
from git_jump.services.container import ServiceContainer

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

POST_CHECKOUT = "post-checkout"
HOOK_MARKER = "Git Jump post-checkout hook"

HOOK_TEMPLATE = f"""#!/bin/sh
# {HOOK_MARKER}
# Auto-generated - do not edit manually

BRANCH_CHECKOUT=$3

# Skip checkouts made by git-jump itself; it records those visits directly
if [ -n "${SKIP_HOOK_ENV}" ]; then
    exit 0
fi

# Only track branch checkouts, not file checkouts
if [ "$BRANCH_CHECKOUT" = "1" ]; then
    if command -v git-jump >/dev/null 2>&1; then
        git-jump hook post-checkout "$(pwd)" >/dev/null 2>&1
    fi
fi

exit 0
"""


class HookInstallStatus(StrEnum):
    INSTALLED = "installed"
    ALREADY_INSTALLED = "already_installed"
    FOREIGN_HOOK = "foreign_hook"


def install_post_checkout_hook(repository: GitRepository, *, force: bool = False) -> HookInstallStatus:
    """Write the post-checkout hook unless one is already present.

    An existing git-jump hook is left alone. A foreign hook is only replaced
    when ``force`` is set.
    """
    if repository.hook_installed(POST_CHECKOUT):
        existing = repository.read_hook(POST_CHECKOUT) or ""
        if HOOK_MARKER in existing:
            return HookInstallStatus.ALREADY_INSTALLED
        if not force:
            return HookInstallStatus.FOREIGN_HOOK
    path = repository.install_hook(POST_CHECKOUT, HOOK_TEMPLATE)
    logger.info("Installed %s hook at %s", POST_CHECKOUT, path)
    return HookInstallStatus.INSTALLED


async def run_post_checkout(repository_path: str | Path, config_path: Path | None = None) -> None:
    """Track the branch just checked out in ``repository_path``.

    Never raises: a tracking failure must not fail the checkout that fired
    the hook, so every error is logged at debug level and dropped.
    """
    if os.environ.get(SKIP_HOOK_ENV):
        return
    try:
        await _track_checkout(repository_path, config_path)
    except Exception:
        logger.debug("post-checkout tracking failed for %s", repository_path, exc_info=True)


async def _track_checkout(repository_path: str | Path, config_path: Path | None) -> None:
    config = load_config(config_path)
    if not config.auto_track:
        return

    repository = GitRepository(repository_path)
    branch = repository.current_branch()
    if not branch:
        return

    async with await ServiceContainer.create(config) as services:
        outcome = await services.branch_service.auto_track(
            repository.project_path,
            repository.project_basename,
            branch,
            config.max_branches,
        )
    if isinstance(outcome, Err):
        logger.debug("post-checkout tracking failed: %s", outcome.err_value)
