"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable, failing loudly on garbage."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "ASCEND"
    DB_FILENAME = "ascend.db"
    SQLITE_PRAGMAS = {"journal_mode": "wal", "foreign_keys": "on"}
    TESTING = False

    def __init__(self) -> None:
        self.SECRET_KEY = os.getenv("ASCEND_SECRET_KEY", "replace-me")
        self.DEV_MODE = _env_bool("ASCEND_DEV_MODE", default=True)
        self.DATA_DIR = self._resolve_data_dir()
        self.DATABASE_URL = os.getenv("ASCEND_DATABASE_URL", self._build_sqlite_url())
        self.ADMIN_TOKEN = os.getenv("ASCEND_ADMIN_TOKEN")
        self.OCCURRENCE_HORIZON_DAYS = _env_int("ASCEND_OCCURRENCE_HORIZON_DAYS", 14)
        self.ROLLUP_HOUR = _env_int("ASCEND_ROLLUP_HOUR", 0)
        self.ROLLUP_MINUTE = _env_int("ASCEND_ROLLUP_MINUTE", 5)
        if not self.DEV_MODE and self.SECRET_KEY == "replace-me":
            raise ValueError("ASCEND_SECRET_KEY must be set in non-dev mode.")
        if self.OCCURRENCE_HORIZON_DAYS < 0:
            raise ValueError("ASCEND_OCCURRENCE_HORIZON_DAYS must be >= 0.")

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("ASCEND_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside the data directory."""

        return f"sqlite:///{self.DATA_DIR / self.DB_FILENAME}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        if self.DATABASE_URL.startswith("sqlite"):
            return {"connect_args": {"check_same_thread": False}}
        return {"pool_pre_ping": True}


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True


class TestConfig(BaseConfig):
    """Configuration for the test-suite: in-memory SQLite, static admin token."""

    TESTING = True

    def __init__(self) -> None:
        super().__init__()
        self.DATABASE_URL = "sqlite://"
        self.ADMIN_TOKEN = self.ADMIN_TOKEN or "test-admin-token"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        from sqlalchemy.pool import StaticPool

        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
