"""MRU position assignment for a project's tracked branches."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from git_jump.data.db import Database

logger = logging.getLogger(__name__)


class OrderingEngine:
    """Re-ranks every branch of a project by recency.

    Positions are rewritten as ``0..count-1`` following descending
    ``last_visited_at``, then descending ``visit_seq`` for equal timestamps,
    then ascending row id. The pass is a full re-rank, which stays cheap
    because the retention limit bounds the number of rows per project.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    async def reorder(self, project_id: int) -> int:
        """Recompute positions for ``project_id``; returns the number of branches ranked.

        Joins the caller's write transaction when one is open so the mutation
        and the re-rank commit together.
        """

        async def _reorder() -> int:
            rows = await self._db.fetch_all(
                """SELECT id FROM branches
                   WHERE project_id = ?
                   ORDER BY last_visited_at DESC, visit_seq DESC, id ASC""",
                (project_id,),
            )
            await self._db.execute_many(
                "UPDATE branches SET position = ? WHERE id = ?",
                [(index, int(row["id"])) for index, row in enumerate(rows)],
            )
            return len(rows)

        ranked = await self._db.run_in_transaction(_reorder)
        logger.debug("Reordered %d branches for project %s", ranked, project_id)
        return ranked
