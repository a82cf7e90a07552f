"""Shared fixtures for git-jump tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from git_jump.config import Config
from git_jump.data.db import Database
from git_jump.models.projects import Project
from git_jump.services.container import ServiceContainer

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        self.current += self.step
        return self.current


class FakeRepository:
    """Stand-in for GitRepository that never shells out."""

    def __init__(
        self,
        project_path: str = "/work/demo",
        current: str | None = "main",
        branches: list[str] | None = None,
    ) -> None:
        self.project_path = project_path
        self.project_basename = Path(project_path).name
        self.current = current
        self.known = branches if branches is not None else ["main", "develop", "feature/x"]
        self.checkouts: list[str] = []
        self.hooks: dict[str, str] = {}

    def current_branch(self) -> str | None:
        return self.current

    def branches(self) -> list[str]:
        return list(self.known)

    def branch_exists(self, name: str) -> bool:
        return name in self.known

    def checkout(self, name: str) -> None:
        self.checkouts.append(name)
        self.current = name

    def hook_installed(self, hook_name: str) -> bool:
        return hook_name in self.hooks

    def read_hook(self, hook_name: str) -> str | None:
        return self.hooks.get(hook_name)

    def install_hook(self, hook_name: str, content: str) -> Path:
        self.hooks[hook_name] = content
        return Path(self.project_path) / ".git" / "hooks" / hook_name


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def test_db(tmp_path: Path) -> AsyncGenerator[Database]:
    """A fresh on-disk test database."""
    db = Database(tmp_path / "test.db")
    await db.__aenter__()
    yield db  # type: ignore[misc]
    await db.__aexit__(None, None, None)


@pytest.fixture
async def in_memory_db() -> AsyncGenerator[Database]:
    """SQLite in-memory database for fast unit/integration tests."""
    db = Database(Path(":memory:"))
    await db.__aenter__()
    yield db  # type: ignore[misc]
    await db.__aexit__(None, None, None)


@pytest.fixture
def services(in_memory_db: Database, clock: FakeClock) -> ServiceContainer:
    return ServiceContainer.wire(in_memory_db, clock=clock)


@pytest.fixture
async def project(services: ServiceContainer) -> Project:
    return await services.projects.find_or_create_project("/work/demo", "demo", START)


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """Config pointing at a temporary store and config file."""
    return Config(
        config_path=tmp_path / "config" / "config.toml",
        database_path=tmp_path / "data" / "branches.db",
        max_branches=3,
    )


async def visit(services: ServiceContainer, project_id: int, *names: str) -> None:
    """Record visits in order, so the last name ends up most recent."""
    for name in names:
        result = await services.branch_service.track_branch(project_id, name)
        assert result.is_ok()
