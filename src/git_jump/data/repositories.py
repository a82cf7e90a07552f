"""Repository layer for SQL persistence of projects and tracked branches."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from git_jump.data._row_helpers import row_to_branch, row_to_project
from git_jump.errors import NotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from git_jump.data.db import Database
    from git_jump.models.branches import Branch
    from git_jump.models.projects import Project

# position ASC is authoritative right after a reorder; the tail keys keep the
# listing deterministic if a reader ever sees positions from a partial write.
BRANCH_ORDER_SQL = "position ASC, last_visited_at DESC, visit_seq DESC, id ASC"


def format_timestamp(moment: datetime) -> str:
    """Render a timestamp as fixed-width UTC ISO-8601 so text order matches time order."""
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment.astimezone(UTC).isoformat(timespec="microseconds")


class ProjectRepository:
    """SQL query repository for project rows."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def find_or_create_project(
        self, path: str, basename: str, now: datetime | None = None
    ) -> Project:
        """Return the project stored under ``path``, inserting it on first use."""
        existing = await self.get_project_by_path(path)
        if existing is not None:
            return existing

        stamp = format_timestamp(now or datetime.now(UTC))

        async def _create() -> Project:
            # A concurrent writer may have inserted the same path; keep its row.
            await self._db.execute(
                """INSERT INTO projects (path, basename, created_at, updated_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(path) DO NOTHING""",
                (path, basename, stamp, stamp),
            )
            project = await self.get_project_by_path(path)
            if project is None:
                msg = f"Project row for {path} vanished after insert"
                raise RuntimeError(msg)
            return project

        return await self._db.run_in_transaction(_create)

    async def get_project_by_path(self, path: str) -> Project | None:
        row = await self._db.fetch_one("SELECT * FROM projects WHERE path = ?", (path,))
        return row_to_project(row) if row is not None else None

    async def get_project(self, project_id: int) -> Project | None:
        row = await self._db.fetch_one("SELECT * FROM projects WHERE id = ?", (project_id,))
        return row_to_project(row) if row is not None else None

    async def list_projects(self) -> list[Project]:
        rows = await self._db.fetch_all("SELECT * FROM projects ORDER BY updated_at DESC")
        return [row_to_project(row) for row in rows]

    async def touch_project(self, project_id: int, now: datetime) -> None:
        await self._db.execute(
            "UPDATE projects SET updated_at = ? WHERE id = ?",
            (format_timestamp(now), project_id),
        )


class BranchRepository:
    """SQL query repository for tracked branch rows."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def upsert_branch(self, project_id: int, name: str, now: datetime) -> None:
        """Insert ``name`` at position 0 or bump its visit time and sequence.

        A single statement, so no reader sees a half-updated row. Callers run
        it inside a write transaction together with the reorder pass. Raises
        NotFoundError when ``project_id`` has no project row.
        """
        stamp = format_timestamp(now)
        try:
            await self._db.execute(
                """INSERT INTO branches
                       (project_id, name, position, visit_seq, last_visited_at, created_at)
                   VALUES (
                       ?, ?, 0,
                       (SELECT COALESCE(MAX(visit_seq), 0) + 1 FROM branches WHERE project_id = ?),
                       ?, ?
                   )
                   ON CONFLICT(project_id, name) DO UPDATE SET
                       last_visited_at = excluded.last_visited_at,
                       visit_seq = excluded.visit_seq,
                       position = 0""",
                (project_id, name, project_id, stamp, stamp),
            )
        except NotFoundError as exc:
            raise NotFoundError(f"Project {project_id} does not exist") from exc

    async def delete_branch(self, branch_id: int) -> None:
        await self._db.execute("DELETE FROM branches WHERE id = ?", (branch_id,))

    async def delete_branches(self, branch_ids: Sequence[int]) -> None:
        if not branch_ids:
            return
        await self._db.execute_many(
            "DELETE FROM branches WHERE id = ?",
            [(branch_id,) for branch_id in branch_ids],
        )

    async def list_branches(self, project_id: int, limit: int | None = None) -> list[Branch]:
        """List a project's branches in MRU order, optionally capped to ``limit`` rows."""
        sql = f"SELECT * FROM branches WHERE project_id = ? ORDER BY {BRANCH_ORDER_SQL}"
        if limit is None:
            rows = await self._db.fetch_all(sql, (project_id,))
        else:
            rows = await self._db.fetch_all(f"{sql} LIMIT ?", (project_id, max(0, limit)))
        return [row_to_branch(row) for row in rows]

    async def get_branch(self, project_id: int, name: str) -> Branch | None:
        row = await self._db.fetch_one(
            "SELECT * FROM branches WHERE project_id = ? AND name = ?",
            (project_id, name),
        )
        return row_to_branch(row) if row is not None else None

    async def count_branches(self, project_id: int) -> int:
        row = await self._db.fetch_one(
            "SELECT COUNT(*) as cnt FROM branches WHERE project_id = ?",
            (project_id,),
        )
        return int(row["cnt"]) if row else 0
