from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field, field_validator

"""
Runtime settings read from the environment.

ROWGUARD_DB_PATH          database file; unset means a private in-memory database
ROWGUARD_BUSY_TIMEOUT_MS  how long a connection waits on a locked database (default 5000)
ROWGUARD_LOG_LEVEL        level for configure_logging() (default INFO)
"""

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseModel):
    db_path: Optional[str] = None
    busy_timeout_ms: int = Field(default=5000, ge=0)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {value}")
        return level

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            db_path=os.getenv("ROWGUARD_DB_PATH") or None,
            busy_timeout_ms=int(os.getenv("ROWGUARD_BUSY_TIMEOUT_MS", "5000")),
            log_level=os.getenv("ROWGUARD_LOG_LEVEL", "INFO"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings (cached; call ``cache_clear`` after env changes)."""
    return Settings.from_env()


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach one stream handler to the ``rowguard`` logger.

    Safe to call repeatedly; the handler is only added once.
    """
    logger = logging.getLogger("rowguard")
    logger.setLevel(level or get_settings().log_level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
