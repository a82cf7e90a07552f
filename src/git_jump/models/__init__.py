"""Pydantic models for git-jump."""

from git_jump.models.branches import Branch, ProjectStats
from git_jump.models.projects import Project

__all__ = [
    "Branch",
    "Project",
    "ProjectStats",
]
