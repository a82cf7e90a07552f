"""Read-only MRU queries over a project's ordered branch list."""

from __future__ import annotations

from typing import TYPE_CHECKING

from git_jump.models.branches import ProjectStats

if TYPE_CHECKING:
    from git_jump.data.repositories import BranchRepository


class QueryEngine:
    """Answers next-branch, index and stats queries. Never writes."""

    def __init__(self, branches: BranchRepository) -> None:
        self._branches = branches

    async def ordered_names(self, project_id: int) -> list[str]:
        return [branch.name for branch in await self._branches.list_branches(project_id)]

    async def next_branch(self, project_id: int, current_branch: str | None) -> str | None:
        """Return the branch after ``current_branch``, wrapping to the head.

        An unknown (or missing) current branch also resolves to the head.
        """
        names = await self.ordered_names(project_id)
        if not names:
            return None
        if current_branch not in names:
            return names[0]
        index = names.index(current_branch)
        if index == len(names) - 1:
            return names[0]
        return names[index + 1]

    async def branch_at_index(self, project_id: int, index: int) -> str | None:
        """Return the branch at 1-based ``index`` or None when out of range."""
        if index < 1:
            return None
        names = await self.ordered_names(project_id)
        if index > len(names):
            return None
        return names[index - 1]

    async def project_stats(self, project_id: int) -> ProjectStats:
        total = await self._branches.count_branches(project_id)
        head = await self._branches.list_branches(project_id, limit=1)
        return ProjectStats(total_branches=total, most_recent=head[0] if head else None)
