"""Persistence store: schema, projects, branch upserts and error mapping."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from pathlib import Path

import aiosqlite
import pytest

from git_jump.data.db import SCHEMA_VERSION, Database, translate_error
from git_jump.data.repositories import format_timestamp
from git_jump.errors import (
    NotFoundError,
    StorageBusyError,
    StorageCorruptError,
    StorageUnavailableError,
    ValidationError,
)
from git_jump.models.projects import Project
from git_jump.services.container import ServiceContainer
from tests.conftest import START, visit


@pytest.mark.asyncio
async def test_schema_creation_is_idempotent(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "branches.db"
    async with Database(db_path) as db:
        await db.execute(
            "INSERT INTO projects (path, basename, created_at, updated_at) VALUES (?, ?, ?, ?)",
            ("/tmp/p1", "p1", "t", "t"),
        )

    async with Database(db_path) as db:
        version = await db.fetch_one("SELECT value FROM app_meta WHERE key = 'schema_version'")
        projects = await db.fetch_one("SELECT COUNT(*) as cnt FROM projects")
        index = await db.fetch_one(
            "SELECT name FROM sqlite_master WHERE type = 'index' AND name = ?",
            ("idx_branches_project_position",),
        )
    assert version is not None and int(version["value"]) == SCHEMA_VERSION
    assert projects is not None and int(projects["cnt"]) == 1
    assert index is not None


@pytest.mark.asyncio
async def test_foreign_schema_version_is_not_repaired(tmp_path: Path) -> None:
    db_path = tmp_path / "branches.db"
    async with Database(db_path) as db:
        await db.execute(
            "INSERT OR REPLACE INTO app_meta (key, value) VALUES ('schema_version', '99')"
        )

    with pytest.raises(StorageCorruptError, match="schema version"):
        await Database(db_path).connect()

    async with aiosqlite.connect(str(db_path)) as raw:
        cursor = await raw.execute("SELECT value FROM app_meta WHERE key = 'schema_version'")
        row = await cursor.fetchone()
    assert row is not None and row[0] == "99"


@pytest.mark.asyncio
async def test_missing_column_is_reported_as_corrupt(tmp_path: Path) -> None:
    db_path = tmp_path / "legacy.db"
    async with aiosqlite.connect(str(db_path)) as raw:
        await raw.execute(
            """CREATE TABLE branches (
                   id INTEGER PRIMARY KEY AUTOINCREMENT,
                   project_name TEXT NOT NULL,
                   branch_name TEXT NOT NULL
               )"""
        )
        await raw.commit()

    with pytest.raises(StorageCorruptError):
        await Database(db_path).connect()


@pytest.mark.asyncio
async def test_non_database_file_is_corrupt(tmp_path: Path) -> None:
    db_path = tmp_path / "garbage.db"
    db_path.write_bytes(b"this is definitely not an sqlite file" * 100)
    with pytest.raises(StorageCorruptError):
        await Database(db_path).connect()


@pytest.mark.asyncio
async def test_unwritable_location_is_unavailable(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("a file where a directory should be")
    with pytest.raises(StorageUnavailableError):
        await Database(blocker / "sub" / "branches.db").connect()


def test_translate_error_taxonomy() -> None:
    assert isinstance(
        translate_error(aiosqlite.OperationalError("database is locked")), StorageBusyError
    )
    assert isinstance(
        translate_error(aiosqlite.OperationalError("unable to open database file")),
        StorageUnavailableError,
    )
    assert isinstance(
        translate_error(aiosqlite.DatabaseError("database disk image is malformed")),
        StorageCorruptError,
    )
    assert isinstance(translate_error(PermissionError("denied")), StorageUnavailableError)


@pytest.mark.asyncio
async def test_find_or_create_project_round_trip(services: ServiceContainer) -> None:
    first = await services.projects.find_or_create_project("/work/repo", "repo", START)
    second = await services.projects.find_or_create_project("/work/repo", "other-name", START)

    assert first.id == second.id
    assert second.basename == "repo"
    assert len(await services.projects.list_projects()) == 1


@pytest.mark.asyncio
async def test_find_or_create_project_matches_path_verbatim(services: ServiceContainer) -> None:
    a = await services.projects.find_or_create_project("/work/repo", "repo", START)
    b = await services.projects.find_or_create_project("/work/repo/", "repo", START)
    assert a.id != b.id


@pytest.mark.asyncio
async def test_upsert_keeps_names_unique(services: ServiceContainer, project: Project) -> None:
    later = START + timedelta(minutes=5)
    await services.branches.upsert_branch(project.id, "feature/x", START)
    await services.branches.upsert_branch(project.id, "feature/x", later)

    assert await services.branches.count_branches(project.id) == 1
    branch = await services.branches.get_branch(project.id, "feature/x")
    assert branch is not None
    assert branch.last_visited_at == format_timestamp(later)
    assert branch.created_at == format_timestamp(START)
    assert branch.position == 0


@pytest.mark.asyncio
async def test_upsert_bumps_visit_sequence(services: ServiceContainer, project: Project) -> None:
    await services.branches.upsert_branch(project.id, "a", START)
    await services.branches.upsert_branch(project.id, "b", START)
    await services.branches.upsert_branch(project.id, "a", START)

    a = await services.branches.get_branch(project.id, "a")
    b = await services.branches.get_branch(project.id, "b")
    assert a is not None and b is not None
    assert a.visit_seq == 3
    assert b.visit_seq == 2


@pytest.mark.asyncio
async def test_list_branches_limit(services: ServiceContainer, project: Project) -> None:
    await visit(services, project.id, "a", "b", "c")
    recent = await services.branches.list_branches(project.id, limit=2)
    assert [b.name for b in recent] == ["c", "b"]


@pytest.mark.asyncio
async def test_branches_are_scoped_per_project(services: ServiceContainer, project: Project) -> None:
    other = await services.projects.find_or_create_project("/work/other", "other", START)
    await visit(services, project.id, "main", "dev")
    await visit(services, other.id, "main")

    assert await services.branches.count_branches(project.id) == 2
    assert await services.branches.count_branches(other.id) == 1


@pytest.mark.asyncio
async def test_project_delete_cascades(services: ServiceContainer, project: Project) -> None:
    await visit(services, project.id, "a", "b")
    await services.db.execute("DELETE FROM projects WHERE id = ?", (project.id,))
    assert await services.branches.count_branches(project.id) == 0


@pytest.mark.asyncio
async def test_failed_unit_rolls_back(services: ServiceContainer, project: Project) -> None:
    async def _work() -> None:
        await services.branches.upsert_branch(project.id, "doomed", START)
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await services.db.run_in_transaction(_work)

    assert not services.db.in_transaction
    assert await services.branches.count_branches(project.id) == 0


@pytest.mark.asyncio
async def test_locked_store_surfaces_busy_after_retries(tmp_path: Path) -> None:
    db_path = tmp_path / "shared.db"
    async with (
        Database(db_path) as holder,
        Database(db_path, busy_retries=1, busy_timeout=0.05) as contender,
    ):
        await holder.execute("BEGIN IMMEDIATE")
        try:

            async def _work() -> None:
                await contender.execute("DELETE FROM branches")

            with pytest.raises(StorageBusyError):
                await contender.run_in_transaction(_work)
        finally:
            await holder.execute("ROLLBACK")


@pytest.mark.asyncio
async def test_locked_store_commits_once_lock_is_released(tmp_path: Path) -> None:
    db_path = tmp_path / "shared.db"
    async with (
        Database(db_path) as holder,
        Database(db_path, busy_retries=5, busy_timeout=0.05) as contender,
    ):
        await holder.execute("BEGIN IMMEDIATE")

        async def _release() -> None:
            await asyncio.sleep(0.1)
            await holder.execute("ROLLBACK")

        async def _work() -> None:
            await contender.execute(
                "INSERT INTO projects (path, basename, created_at, updated_at) VALUES (?, ?, ?, ?)",
                ("/work/late", "late", "t", "t"),
            )

        release = asyncio.create_task(_release())
        await contender.run_in_transaction(_work)
        await release

        row = await holder.fetch_one("SELECT COUNT(*) as cnt FROM projects")
    assert row is not None and int(row["cnt"]) == 1


@pytest.mark.asyncio
async def test_open_retries_while_another_writer_holds_the_lock(tmp_path: Path) -> None:
    db_path = tmp_path / "opening.db"
    async with aiosqlite.connect(str(db_path), isolation_level=None) as raw:
        await raw.execute("BEGIN IMMEDIATE")
        await raw.execute("CREATE TABLE scratch (x INTEGER)")

        async def _release() -> None:
            await asyncio.sleep(0.1)
            await raw.execute("ROLLBACK")

        release = asyncio.create_task(_release())
        db = Database(db_path, busy_retries=5, busy_timeout=0.05)
        await db.connect()
        await release
        try:
            version = await db.fetch_one(
                "SELECT value FROM app_meta WHERE key = 'schema_version'"
            )
        finally:
            await db.close()
    assert version is not None and int(version["value"]) == SCHEMA_VERSION


@pytest.mark.asyncio
async def test_upsert_for_missing_project_is_not_found(services: ServiceContainer) -> None:
    with pytest.raises(NotFoundError, match="Project 999 does not exist"):
        await services.branches.upsert_branch(999, "main", START)
    assert await services.branches.count_branches(999) == 0


def test_integrity_errors_are_not_corruption() -> None:
    assert isinstance(
        translate_error(aiosqlite.IntegrityError("FOREIGN KEY constraint failed")),
        NotFoundError,
    )
    assert isinstance(
        translate_error(aiosqlite.IntegrityError("NOT NULL constraint failed: branches.name")),
        ValidationError,
    )


@pytest.mark.asyncio
async def test_non_integer_column_is_corrupt(services: ServiceContainer, project: Project) -> None:
    await services.db.execute(
        """INSERT INTO branches
               (project_id, name, position, visit_seq, last_visited_at, created_at)
           VALUES (?, 'broken', 'abc', 1, 't', 't')""",
        (project.id,),
    )
    with pytest.raises(StorageCorruptError, match="Unreadable branch row"):
        await services.branches.list_branches(project.id)
