"""
Store configuration from the environment.

Environment variables:
- FILESTORE_AUTOSAVE: save after every put/remove (default: true)
- FILESTORE_FSYNC: fsync the temp file before replacing the snapshot (default: true)
- FILESTORE_LOG_LEVEL: logging level for the CLI (default: WARNING)
- FILESTORE_ALLOW: comma-separated extra type descriptors to permit (default: none)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Tuple


def _opt(name: str, default: str) -> str:
    """Get optional environment variable with default."""
    return os.getenv(name, default)


def _opt_bool(name: str, default: bool) -> bool:
    """Parse boolean environment variable."""
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _opt_list(name: str) -> Tuple[str, ...]:
    """Parse comma-separated environment variable."""
    v = os.getenv(name, "")
    return tuple(item.strip() for item in v.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Defaults applied to stores opened through Settings."""

    AUTOSAVE: bool = True
    FSYNC: bool = True
    LOG_LEVEL: str = "WARNING"
    ALLOW: Tuple[str, ...] = field(default_factory=tuple)

    @staticmethod
    def load() -> Settings:
        """Load settings from environment variables."""
        return Settings(
            AUTOSAVE=_opt_bool("FILESTORE_AUTOSAVE", True),
            FSYNC=_opt_bool("FILESTORE_FSYNC", True),
            LOG_LEVEL=_opt("FILESTORE_LOG_LEVEL", "WARNING").upper(),
            ALLOW=_opt_list("FILESTORE_ALLOW"),
        )
