"""Runtime configuration for the booking engine."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

_PREFIX = "AIRLINE_BOOKING_"


def _flag(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Explicit settings handed to the transactional entry points."""

    db_url: str = "sqlite+pysqlite:///airline.db"
    echo: bool = False
    sqlite_timeout: float = 30.0
    cancellation_window_hours: int = 24
    reference_attempts: int = 5
    log_level: str = "INFO"
    log_json: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            db_url=env.get(f"{_PREFIX}DB_URL", defaults.db_url),
            echo=_flag(env.get(f"{_PREFIX}ECHO", "false")),
            sqlite_timeout=float(env.get(f"{_PREFIX}SQLITE_TIMEOUT", defaults.sqlite_timeout)),
            cancellation_window_hours=int(
                env.get(f"{_PREFIX}CANCELLATION_WINDOW_HOURS", defaults.cancellation_window_hours)
            ),
            reference_attempts=int(env.get(f"{_PREFIX}REFERENCE_ATTEMPTS", defaults.reference_attempts)),
            log_level=env.get(f"{_PREFIX}LOG_LEVEL", defaults.log_level).upper(),
            log_json=_flag(env.get(f"{_PREFIX}LOG_JSON", "true")),
        )
