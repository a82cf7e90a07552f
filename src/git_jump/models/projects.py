"""Project-level models."""

from __future__ import annotations

from pydantic import BaseModel


class Project(BaseModel):
    """A tracked repository, keyed by its canonical root path."""

    id: int
    path: str
    basename: str = ""
    created_at: str = ""
    updated_at: str = ""
