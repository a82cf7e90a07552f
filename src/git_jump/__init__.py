"""git-jump: most-recently-used branch tracking for git working copies."""

__version__ = "0.3.0"
