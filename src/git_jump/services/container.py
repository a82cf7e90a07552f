"""Service container with DI wiring."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from git_jump.data.db import Database
from git_jump.data.ordering import OrderingEngine
from git_jump.data.queries import QueryEngine
from git_jump.data.repositories import BranchRepository, ProjectRepository
from git_jump.data.retention import RetentionEngine
from git_jump.services.branch_service import BranchService, utc_now

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from git_jump.config import Config


@dataclass
class ServiceContainer:
    """Holds the store handle and everything wired to it. Built once per invocation."""

    db: Database
    projects: ProjectRepository
    branches: BranchRepository
    ordering: OrderingEngine
    queries: QueryEngine
    retention: RetentionEngine
    branch_service: BranchService

    @classmethod
    async def create(cls, config: Config) -> ServiceContainer:
        """Open the store at the configured path and wire all engines to it."""
        db = Database(config.database_path, busy_retries=config.busy_retries)
        await db.__aenter__()
        return cls.wire(db)

    @classmethod
    def wire(
        cls, db: Database, clock: Callable[[], datetime] | None = None
    ) -> ServiceContainer:
        """Wire engines and services around an already-connected database."""
        projects = ProjectRepository(db)
        branches = BranchRepository(db)
        ordering = OrderingEngine(db)
        queries = QueryEngine(branches)
        retention = RetentionEngine(db, branches, ordering)
        branch_service = BranchService(
            db, projects, branches, ordering, queries, retention, clock=clock or utc_now
        )

        return cls(
            db=db,
            projects=projects,
            branches=branches,
            ordering=ordering,
            queries=queries,
            retention=retention,
            branch_service=branch_service,
        )

    async def close(self) -> None:
        """Close the store handle."""
        await self.db.__aexit__(None, None, None)

    async def __aenter__(self) -> ServiceContainer:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.close()
