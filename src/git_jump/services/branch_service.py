"""Branch service: tracking, queries and retention for the CLI and hook."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from result import Err, Ok, Result

from git_jump.errors import GitJumpError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from git_jump.data.db import Database
    from git_jump.data.ordering import OrderingEngine
    from git_jump.data.queries import QueryEngine
    from git_jump.data.repositories import BranchRepository, ProjectRepository
    from git_jump.data.retention import RetentionEngine
    from git_jump.models.branches import Branch, ProjectStats
    from git_jump.models.projects import Project

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


class BranchService:
    """Service wrapping the store and engines behind Result-returning operations.

    Every ``Err`` carries the GitJumpError raised underneath, so callers can
    still tell an unavailable store from a corrupt one or a bad pattern.
    """

    def __init__(
        self,
        db: Database,
        projects: ProjectRepository,
        branches: BranchRepository,
        ordering: OrderingEngine,
        queries: QueryEngine,
        retention: RetentionEngine,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._db = db
        self._projects = projects
        self._branches = branches
        self._ordering = ordering
        self._queries = queries
        self._retention = retention
        self._clock = clock

    async def resolve_project(self, path: str, basename: str) -> Result[Project, GitJumpError]:
        """Find the project row for ``path``, creating it on first use."""
        try:
            return Ok(await self._projects.find_or_create_project(path, basename, self._clock()))
        except GitJumpError as exc:
            return Err(exc)

    async def track_branch(self, project_id: int, name: str) -> Result[int, GitJumpError]:
        """Record a visit to ``name`` and re-rank; returns the tracked count afterwards."""
        now = self._clock()

        async def _track() -> int:
            await self._branches.upsert_branch(project_id, name, now)
            await self._projects.touch_project(project_id, now)
            return await self._ordering.reorder(project_id)

        try:
            return Ok(await self._db.run_in_transaction(_track))
        except GitJumpError as exc:
            return Err(exc)

    async def list_branches(
        self, project_id: int, limit: int | None = None
    ) -> Result[list[Branch], GitJumpError]:
        try:
            return Ok(await self._branches.list_branches(project_id, limit=limit))
        except GitJumpError as exc:
            return Err(exc)

    async def next_branch(
        self, project_id: int, current_branch: str | None
    ) -> Result[str | None, GitJumpError]:
        try:
            return Ok(await self._queries.next_branch(project_id, current_branch))
        except GitJumpError as exc:
            return Err(exc)

    async def branch_at_index(self, project_id: int, index: int) -> Result[str | None, GitJumpError]:
        try:
            return Ok(await self._queries.branch_at_index(project_id, index))
        except GitJumpError as exc:
            return Err(exc)

    async def project_stats(self, project_id: int) -> Result[ProjectStats, GitJumpError]:
        try:
            return Ok(await self._queries.project_stats(project_id))
        except GitJumpError as exc:
            return Err(exc)

    async def clear_branches(
        self, project_id: int, keep_patterns: Sequence[str]
    ) -> Result[int, GitJumpError]:
        try:
            return Ok(await self._retention.clear_by_patterns(project_id, keep_patterns))
        except GitJumpError as exc:
            return Err(exc)

    async def cleanup_branches(self, project_id: int, max_count: int) -> Result[int, GitJumpError]:
        try:
            return Ok(await self._retention.cleanup_excess(project_id, max_count))
        except GitJumpError as exc:
            return Err(exc)

    async def auto_track(
        self,
        project_path: str,
        basename: str,
        branch_name: str,
        max_branches: int,
    ) -> Result[int, GitJumpError]:
        """Hook path: track the checked-out branch and evict past the limit.

        Returns the number of evicted branches.
        """
        project = await self.resolve_project(project_path, basename)
        if isinstance(project, Err):
            return project
        project_id = project.ok_value.id

        tracked = await self.track_branch(project_id, branch_name)
        if isinstance(tracked, Err):
            return tracked
        if tracked.ok_value <= max_branches:
            return Ok(0)
        logger.debug(
            "Project %s tracks %d branches, limit %d", project_id, tracked.ok_value, max_branches
        )
        return await self.cleanup_branches(project_id, max_branches)
