"""Keep-pattern clearing and max-count eviction of tracked branches."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from git_jump.errors import InvalidPatternError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from git_jump.data.db import Database
    from git_jump.data.ordering import OrderingEngine
    from git_jump.data.repositories import BranchRepository

logger = logging.getLogger(__name__)


def compile_patterns(patterns: Sequence[str]) -> list[re.Pattern[str]]:
    """Compile keep patterns, failing on the first invalid one."""
    compiled: list[re.Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise InvalidPatternError(pattern, str(exc)) from exc
    return compiled


class RetentionEngine:
    """Bounds and prunes the set of tracked branches for a project."""

    def __init__(
        self,
        db: Database,
        branches: BranchRepository,
        ordering: OrderingEngine,
    ) -> None:
        self._db = db
        self._branches = branches
        self._ordering = ordering

    async def clear_by_patterns(self, project_id: int, keep_patterns: Sequence[str]) -> int:
        """Delete every branch that matches none of ``keep_patterns``.

        Patterns are unanchored (``re.search``) unless they anchor themselves.
        An empty pattern list deletes nothing. All patterns are compiled
        before any row is touched, so an invalid one leaves the store as is.
        """
        if not keep_patterns:
            return 0
        compiled = compile_patterns(keep_patterns)

        async def _clear() -> int:
            doomed = [
                branch.id
                for branch in await self._branches.list_branches(project_id)
                if not any(pattern.search(branch.name) for pattern in compiled)
            ]
            await self._branches.delete_branches(doomed)
            await self._ordering.reorder(project_id)
            return len(doomed)

        deleted = await self._db.run_in_transaction(_clear)
        logger.info("Cleared %d branches from project %s", deleted, project_id)
        return deleted

    async def cleanup_excess(self, project_id: int, max_count: int) -> int:
        """Keep only the ``max_count`` most recently visited branches."""
        if max_count < 0:
            msg = f"max_count must be non-negative, got {max_count}"
            raise ValidationError(msg)

        async def _cleanup() -> int:
            ordered = await self._branches.list_branches(project_id)
            if len(ordered) <= max_count:
                return 0
            await self._branches.delete_branches([branch.id for branch in ordered[max_count:]])
            await self._ordering.reorder(project_id)
            return len(ordered) - max_count

        deleted = await self._db.run_in_transaction(_cleanup)
        if deleted:
            logger.info(
                "Evicted %d branches from project %s (limit %d)", deleted, project_id, max_count
            )
        return deleted
