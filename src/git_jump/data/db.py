"""Async SQLite connection manager using aiosqlite."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING, Any, TypeVar

import aiosqlite

from git_jump.errors import (
    GitJumpError,
    NotFoundError,
    StorageBusyError,
    StorageCorruptError,
    StorageUnavailableError,
    ValidationError,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCHEMA_VERSION = 1
DEFAULT_BUSY_RETRIES = 3
DEFAULT_BUSY_TIMEOUT = 5.0
_RETRY_BACKOFF_SECONDS = 0.05

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS projects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    path TEXT NOT NULL UNIQUE,
    basename TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS branches (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    position INTEGER NOT NULL DEFAULT 0,
    visit_seq INTEGER NOT NULL DEFAULT 0,
    last_visited_at TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE(project_id, name)
);

CREATE INDEX IF NOT EXISTS idx_branches_project_position ON branches(project_id, position);
"""

_REQUIRED_COLUMNS = {
    "projects": {"id", "path", "basename", "created_at", "updated_at"},
    "branches": {
        "id",
        "project_id",
        "name",
        "position",
        "visit_seq",
        "last_visited_at",
        "created_at",
    },
}

_BUSY_MARKERS = ("database is locked", "database is busy", "database table is locked")
_CORRUPT_MARKERS = (
    "file is not a database",
    "malformed",
    "no such table",
    "no such column",
    "has no column",
)


def translate_error(exc: Exception) -> GitJumpError:
    """Map a sqlite/OS failure onto the git-jump error taxonomy.

    Constraint violations are caller mistakes, not store damage: a dangling
    project reference becomes NotFoundError, anything else ValidationError.
    """
    message = str(exc)
    lowered = message.lower()
    if isinstance(exc, aiosqlite.IntegrityError):
        if "foreign key" in lowered:
            return NotFoundError(message)
        return ValidationError(message)
    if isinstance(exc, aiosqlite.DatabaseError):
        if any(marker in lowered for marker in _BUSY_MARKERS):
            return StorageBusyError(message)
        if any(marker in lowered for marker in _CORRUPT_MARKERS):
            return StorageCorruptError(message)
        if isinstance(exc, aiosqlite.OperationalError):
            return StorageUnavailableError(message)
        return StorageCorruptError(message)
    return StorageUnavailableError(message)


class Database:
    """Async SQLite connection manager using aiosqlite."""

    def __init__(
        self,
        db_path: Path,
        *,
        busy_retries: int = DEFAULT_BUSY_RETRIES,
        busy_timeout: float = DEFAULT_BUSY_TIMEOUT,
    ) -> None:
        self._db_path = db_path
        self._busy_retries = max(0, busy_retries)
        self._busy_timeout = busy_timeout
        self._conn: aiosqlite.Connection | None = None

    @property
    def path(self) -> Path:
        return self._db_path

    async def __aenter__(self) -> Database:
        await self.connect()
        return self

    async def connect(self) -> Database:
        """Connect to SQLite and ensure schema.

        Opening is retried like a write unit when another process holds the
        lock past the busy timeout.
        """
        attempt = 0
        while True:
            try:
                await self._open()
                return self
            except StorageBusyError:
                if attempt >= self._busy_retries:
                    raise
                attempt += 1
                logger.debug(
                    "Store busy while opening, retrying (%d/%d)", attempt, self._busy_retries
                )
                await asyncio.sleep(_RETRY_BACKOFF_SECONDS * attempt)

    async def _open(self) -> None:
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            # Autocommit mode: transactions are opened explicitly with BEGIN IMMEDIATE.
            self._conn = await aiosqlite.connect(
                str(self._db_path), timeout=self._busy_timeout, isolation_level=None
            )
            self._conn.row_factory = aiosqlite.Row
            await self._conn.execute("PRAGMA journal_mode=WAL")
            await self._conn.execute("PRAGMA synchronous=NORMAL")
            await self._conn.execute("PRAGMA foreign_keys=ON")
            await self._ensure_schema()
        except (OSError, aiosqlite.Error) as exc:
            await self.close()
            raise translate_error(exc) from exc
        except GitJumpError:
            await self.close()
            raise

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the SQLite connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            msg = "Database not connected. Use 'async with Database(path) as db:'"
            raise RuntimeError(msg)
        return self._conn

    @property
    def in_transaction(self) -> bool:
        return self._conn is not None and self._conn.in_transaction

    async def execute(self, sql: str, params: tuple[Any, ...] = ()) -> aiosqlite.Cursor:
        """Execute a SQL statement."""
        try:
            return await self.conn.execute(sql, params)
        except aiosqlite.Error as exc:
            raise translate_error(exc) from exc

    async def execute_many(self, sql: str, params_seq: list[tuple[Any, ...]]) -> None:
        """Execute a SQL statement with many parameter sets."""
        try:
            await self.conn.executemany(sql, params_seq)
        except aiosqlite.Error as exc:
            raise translate_error(exc) from exc

    async def fetch_all(self, sql: str, params: tuple[Any, ...] = ()) -> list[aiosqlite.Row]:
        """Fetch all rows from a query."""
        try:
            cursor = await self.conn.execute(sql, params)
            return await cursor.fetchall()  # type: ignore[return-value]
        except aiosqlite.Error as exc:
            raise translate_error(exc) from exc

    async def fetch_one(self, sql: str, params: tuple[Any, ...] = ()) -> aiosqlite.Row | None:
        """Fetch a single row from a query."""
        try:
            cursor = await self.conn.execute(sql, params)
            return await cursor.fetchone()  # type: ignore[return-value]
        except aiosqlite.Error as exc:
            raise translate_error(exc) from exc

    async def run_in_transaction(self, work: Callable[[], Awaitable[T]]) -> T:
        """Run ``work`` as one atomic write unit.

        Opens a ``BEGIN IMMEDIATE`` transaction so concurrent writers are
        serialized, commits on success and rolls back on any failure. When a
        transaction is already open the work joins it instead. A locked
        database is retried ``busy_retries`` times before StorageBusyError
        is raised.
        """
        if self.in_transaction:
            return await work()

        attempt = 0
        while True:
            try:
                await self.execute("BEGIN IMMEDIATE")
                try:
                    value = await work()
                    await self.execute("COMMIT")
                except BaseException:
                    if self.in_transaction:
                        await self.execute("ROLLBACK")
                    raise
                return value
            except StorageBusyError:
                if attempt >= self._busy_retries:
                    raise
                attempt += 1
                logger.debug("Store busy, retrying (%d/%d)", attempt, self._busy_retries)
                await asyncio.sleep(_RETRY_BACKOFF_SECONDS * attempt)

    async def _ensure_schema(self) -> None:
        """Create missing objects; refuse to touch a store from another schema version."""
        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS app_meta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)
        cursor = await self.conn.execute(
            "SELECT value FROM app_meta WHERE key = 'schema_version'"
        )
        row = await cursor.fetchone()
        if row is not None:
            raw = str(row["value"])
            current_version = int(raw) if raw.isdigit() else -1
            if current_version != SCHEMA_VERSION:
                msg = (
                    f"Store {self._db_path} has schema version {raw!r}, "
                    f"expected {SCHEMA_VERSION}"
                )
                raise StorageCorruptError(msg)

        await self.conn.executescript(SCHEMA_SQL)
        await self._check_columns()
        if row is None:
            logger.info("Initialized branch store schema v%s at %s", SCHEMA_VERSION, self._db_path)
            await self.conn.execute(
                "INSERT OR REPLACE INTO app_meta (key, value) VALUES ('schema_version', ?)",
                (str(SCHEMA_VERSION),),
            )

    async def _check_columns(self) -> None:
        for table, required in _REQUIRED_COLUMNS.items():
            cursor = await self.conn.execute(f"PRAGMA table_info({table})")
            columns = {str(col["name"]) for col in await cursor.fetchall()}
            missing = required - columns
            if missing:
                msg = f"Table {table!r} is missing columns: {', '.join(sorted(missing))}"
                raise StorageCorruptError(msg)
