"""Error taxonomy for git-jump."""

from __future__ import annotations


class GitJumpError(Exception):
    """Base class for all git-jump errors."""


class StorageError(GitJumpError):
    """The branch store could not complete an operation."""


class StorageUnavailableError(StorageError):
    """The store cannot be opened or written (I/O, permissions, disk full)."""


class StorageBusyError(StorageUnavailableError):
    """The store stayed locked by another process through every retry."""


class StorageCorruptError(StorageError):
    """The store holds an unexpected schema or unreadable data."""


class NotFoundError(GitJumpError):
    """A referenced project does not exist in the store."""


class ValidationError(GitJumpError):
    """Caller supplied an argument the core cannot act on."""


class InvalidPatternError(ValidationError):
    """A keep pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid keep pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason
