"""Configuration loading from config.toml with XDG defaults."""

from __future__ import annotations

import logging
import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

APP_NAME = "git-jump"
DEFAULT_MAX_BRANCHES = 20
DEFAULT_BUSY_RETRIES = 3
DEFAULT_KEEP_PATTERNS = ("^main$", "^master$", "^develop$", "^staging$")
DEFAULT_DATABASE_PATH = "$XDG_DATA_HOME/git-jump/branches.db"

_ENV_VAR = re.compile(r"\$(\w+)")


def config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")


def data_home() -> Path:
    return Path(os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share")


def default_config_path() -> Path:
    return config_home() / APP_NAME / "config.toml"


def expand_env_vars(raw: str) -> str:
    """Expand ``$VAR`` references; XDG variables fall back to their standard defaults."""
    fallbacks = {"XDG_CONFIG_HOME": str(config_home()), "XDG_DATA_HOME": str(data_home())}

    def _sub(match: re.Match[str]) -> str:
        name = match.group(1)
        return os.environ.get(name) or fallbacks.get(name, match.group(0))

    return str(Path(_ENV_VAR.sub(_sub, raw)).expanduser())


@dataclass(frozen=True)
class ProjectConfig:
    """Per-project overrides from a ``[[projects]]`` table."""

    path: str
    name: str = ""
    keep_patterns: tuple[str, ...] | None = None


@dataclass(frozen=True)
class Config:
    """Application configuration."""

    config_path: Path = field(default_factory=default_config_path)
    database_path: Path = field(default_factory=lambda: Path(expand_env_vars(DEFAULT_DATABASE_PATH)))
    max_branches: int = DEFAULT_MAX_BRANCHES
    auto_track: bool = True
    keep_patterns: tuple[str, ...] = DEFAULT_KEEP_PATTERNS
    busy_retries: int = DEFAULT_BUSY_RETRIES
    projects: tuple[ProjectConfig, ...] = ()

    @property
    def exists(self) -> bool:
        return self.config_path.exists()

    def find_project(self, project_path: str) -> ProjectConfig | None:
        for project in self.projects:
            if project.path == project_path:
                return project
        return None

    def keep_patterns_for(self, project_path: str | None = None) -> list[str]:
        """Project-specific keep patterns when configured, otherwise the global list."""
        if project_path:
            project = self.find_project(project_path)
            if project is not None and project.keep_patterns is not None:
                return list(project.keep_patterns)
        return list(self.keep_patterns)


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from ``config_path`` (or the XDG default location).

    A missing file yields the defaults. A file that cannot be read or parsed
    is reported with a warning and also yields the defaults.
    """
    path = config_path or default_config_path()
    if not path.exists():
        return Config(config_path=path)

    try:
        data = tomllib.loads(path.read_text())
        return _config_from_data(path, data)
    except (OSError, tomllib.TOMLDecodeError, TypeError, ValueError) as exc:
        logger.warning("Error loading config file %s: %s; using defaults", path, exc)
        return Config(config_path=path)


def _config_from_data(path: Path, data: dict) -> Config:
    database = _table(data, "database")
    tracking = _table(data, "tracking")

    entries = data.get("projects", [])
    if not isinstance(entries, list):
        msg = "[[projects]] must be an array of tables"
        raise ValueError(msg)

    projects: list[ProjectConfig] = []
    for entry in entries:
        if not isinstance(entry, dict) or "path" not in entry:
            logger.warning("Ignoring [[projects]] entry without a path in %s", path)
            continue
        patterns = entry.get("keep_patterns")
        projects.append(
            ProjectConfig(
                path=str(entry["path"]),
                name=str(entry.get("name", "")),
                keep_patterns=_patterns(patterns) if patterns is not None else None,
            )
        )

    return Config(
        config_path=path,
        database_path=Path(expand_env_vars(str(database.get("path", DEFAULT_DATABASE_PATH)))),
        max_branches=int(tracking.get("max_branches", DEFAULT_MAX_BRANCHES)),
        auto_track=tracking.get("auto_track", True) is not False,
        keep_patterns=_patterns(tracking.get("keep_patterns", DEFAULT_KEEP_PATTERNS)),
        busy_retries=int(tracking.get("busy_retries", DEFAULT_BUSY_RETRIES)),
        projects=tuple(projects),
    )


def _table(data: dict, key: str) -> dict:
    value = data.get(key, {})
    if not isinstance(value, dict):
        msg = f"[{key}] must be a table, got {type(value).__name__}"
        raise ValueError(msg)
    return value


def _patterns(value: object) -> tuple[str, ...]:
    # A bare string would otherwise be split into one-character patterns.
    if not isinstance(value, (list, tuple)):
        msg = f"keep_patterns must be an array of strings, got {type(value).__name__}"
        raise ValueError(msg)
    return tuple(str(p) for p in value)


def default_config_content() -> str:
    """Commented default config.toml written by ``git-jump setup``."""
    patterns = ", ".join(f'"{p}"' for p in DEFAULT_KEEP_PATTERNS)
    return f"""[database]
# SQLite database location (defaults to XDG_DATA_HOME/git-jump/branches.db)
# You can use environment variables like $XDG_DATA_HOME or $HOME
path = "{DEFAULT_DATABASE_PATH}"

[tracking]
# Maximum number of branches to track per project
max_branches = {DEFAULT_MAX_BRANCHES}

# Automatically track branches on checkout (via git hook)
auto_track = true

# Global branch patterns to always keep when clearing (regex patterns)
keep_patterns = [{patterns}]

# Example project-specific configuration
# [[projects]]
# name = "my-project"
# path = "/path/to/my-project"
# keep_patterns = ["^main$", "^feature/.*$"]
"""
