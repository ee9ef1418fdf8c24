"""
GatePilot Service Configuration

All settings come from GP_* environment variables, read once at startup.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from gatepilot.catalog import DEFAULT_CATALOG_PATH
from gatepilot.exceptions import ConfigurationError
from gatepilot.storage import BACKENDS

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Service settings; see ``from_env`` for the variable names."""
    log_level: str = "INFO"
    docs_enabled: bool = True
    storage: str = "memory"
    database_path: Path = Path("data/gatepilot.db")
    gates_file: Path = DEFAULT_CATALOG_PATH
    user_header: str = "X-User-Id"
    cors_origins: tuple[str, ...] = field(default_factory=lambda: ("*",))
    max_request_size: int = 1048576  # 1MB

    def __post_init__(self) -> None:
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(
                message=f"Unknown log level '{self.log_level}'",
                details={"allowed": list(LOG_LEVELS)},
            )
        if self.storage not in BACKENDS:
            raise ConfigurationError(
                message=f"Unknown storage backend '{self.storage}'",
                details={"allowed": list(BACKENDS)},
            )
        if self.max_request_size <= 0:
            raise ConfigurationError(message="GP_MAX_REQUEST_SIZE must be positive")
        if not self.user_header.strip():
            raise ConfigurationError(message="GP_USER_HEADER must not be empty")

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level.upper())

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        """
        Build settings from the environment.

        Raises:
            ConfigurationError: On any malformed value
        """
        env = os.environ if environ is None else environ

        raw_size = env.get("GP_MAX_REQUEST_SIZE", "1048576")
        try:
            max_request_size = int(raw_size)
        except ValueError:
            raise ConfigurationError(
                message=f"GP_MAX_REQUEST_SIZE must be an integer, got '{raw_size}'"
            ) from None

        origins = tuple(
            o.strip() for o in env.get("GP_CORS_ORIGINS", "*").split(",") if o.strip()
        )

        return cls(
            log_level=env.get("GP_LOG_LEVEL", "INFO"),
            docs_enabled=_flag(env.get("GP_DOCS_ENABLED", "true")),
            storage=env.get("GP_STORAGE", "memory").strip().lower(),
            database_path=Path(env.get("GP_DATABASE_PATH", "data/gatepilot.db")),
            gates_file=Path(env.get("GP_GATES_FILE") or DEFAULT_CATALOG_PATH),
            user_header=env.get("GP_USER_HEADER", "X-User-Id"),
            cors_origins=origins or ("*",),
            max_request_size=max_request_size,
        )
