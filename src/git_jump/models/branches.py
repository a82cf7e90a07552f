"""Branch-level models."""

from __future__ import annotations

from pydantic import BaseModel


class Branch(BaseModel):
    """A branch name recorded in a project's MRU list."""

    id: int
    project_id: int
    name: str
    position: int = 0
    visit_seq: int = 0
    last_visited_at: str = ""
    created_at: str = ""


class ProjectStats(BaseModel):
    """Tracking statistics for one project."""

    total_branches: int = 0
    most_recent: Branch | None = None
