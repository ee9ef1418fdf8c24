"""
GatePilot Storage

Repository protocols plus in-memory and SQLite backends.
"""
from __future__ import annotations

from pathlib import Path
from typing import Union

from ..exceptions import ConfigurationError
from .base import (
    FormStore,
    InitiativeStore,
    MilestoneStore,
    Repositories,
    RoleStore,
    StatusStore,
)
from .memory import (
    InMemoryFormStore,
    InMemoryInitiativeStore,
    InMemoryMilestoneStore,
    InMemoryRoleStore,
    InMemoryStatusStore,
    memory_repositories,
)
from .sqlite import SQLiteDatabase, sqlite_repositories

BACKENDS = ("memory", "sqlite")


def build_repositories(backend: str, db_path: Union[str, Path, None] = None) -> Repositories:
    """
    Construct the stores for a named backend.

    Raises:
        ConfigurationError: Unknown backend, or sqlite without a path
    """
    if backend == "memory":
        return memory_repositories()
    if backend == "sqlite":
        if not db_path:
            raise ConfigurationError(message="sqlite storage requires a database path")
        return sqlite_repositories(db_path)
    raise ConfigurationError(
        message=f"Unknown storage backend '{backend}'",
        details={"allowed": list(BACKENDS)},
    )


__all__ = [
    "BACKENDS",
    "FormStore",
    "InMemoryFormStore",
    "InMemoryInitiativeStore",
    "InMemoryMilestoneStore",
    "InMemoryRoleStore",
    "InMemoryStatusStore",
    "InitiativeStore",
    "MilestoneStore",
    "Repositories",
    "RoleStore",
    "SQLiteDatabase",
    "StatusStore",
    "build_repositories",
    "memory_repositories",
    "sqlite_repositories",
]
