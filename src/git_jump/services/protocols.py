"""Protocol definitions for services."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from result import Result

from git_jump.errors import GitJumpError
from git_jump.models.branches import Branch, ProjectStats
from git_jump.models.projects import Project


class BranchServiceProtocol(Protocol):
    """Interface for branch tracking operations."""

    async def resolve_project(self, path: str, basename: str) -> Result[Project, GitJumpError]: ...

    async def track_branch(self, project_id: int, name: str) -> Result[int, GitJumpError]: ...

    async def list_branches(
        self, project_id: int, limit: int | None = None
    ) -> Result[list[Branch], GitJumpError]: ...

    async def next_branch(
        self, project_id: int, current_branch: str | None
    ) -> Result[str | None, GitJumpError]: ...

    async def branch_at_index(
        self, project_id: int, index: int
    ) -> Result[str | None, GitJumpError]: ...

    async def project_stats(self, project_id: int) -> Result[ProjectStats, GitJumpError]: ...

    async def clear_branches(
        self, project_id: int, keep_patterns: Sequence[str]
    ) -> Result[int, GitJumpError]: ...

    async def cleanup_branches(
        self, project_id: int, max_count: int
    ) -> Result[int, GitJumpError]: ...

    async def auto_track(
        self,
        project_path: str,
        basename: str,
        branch_name: str,
        max_branches: int,
    ) -> Result[int, GitJumpError]: ...
