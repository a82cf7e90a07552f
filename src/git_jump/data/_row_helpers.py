"""Row-to-model conversion for the repository layer."""

from __future__ import annotations

from typing import TYPE_CHECKING

from git_jump.errors import StorageCorruptError
from git_jump.models.branches import Branch
from git_jump.models.projects import Project

if TYPE_CHECKING:
    import aiosqlite


def row_to_project(row: aiosqlite.Row) -> Project:
    try:
        return Project(
            id=int(row["id"]),
            path=str(row["path"]),
            basename=str(row["basename"]),
            created_at=str(row["created_at"]),
            updated_at=str(row["updated_at"]),
        )
    except (TypeError, ValueError) as exc:
        raise StorageCorruptError(f"Unreadable project row: {exc}") from exc


def row_to_branch(row: aiosqlite.Row) -> Branch:
    try:
        return Branch(
            id=int(row["id"]),
            project_id=int(row["project_id"]),
            name=str(row["name"]),
            position=int(row["position"]),
            visit_seq=int(row["visit_seq"]),
            last_visited_at=str(row["last_visited_at"]),
            created_at=str(row["created_at"]),
        )
    except (TypeError, ValueError) as exc:
        raise StorageCorruptError(f"Unreadable branch row: {exc}") from exc
