"""Database wiring for the Flask application."""

from __future__ import annotations

from typing import Callable

from flask import Flask, current_app
from sqlmodel import Session

from .config import BaseConfig
from .infra.database import create_db_engine, create_session_factory, init_database

_EXTENSION_KEY = "ascend.session_factory"


def init_db(app: Flask) -> None:
    """Create the engine and schema, and expose a session factory on the app."""

    config: BaseConfig = app.config["ASCEND_CONFIG"]
    engine = create_db_engine(config)
    init_database(engine)
    app.extensions["ascend.engine"] = engine
    app.extensions[_EXTENSION_KEY] = create_session_factory(engine)


def get_session_factory(app: Flask | None = None) -> Callable[[], Session]:
    """Return the session factory bound to ``app`` (or the current app)."""

    target = app or current_app
    try:
        return target.extensions[_EXTENSION_KEY]
    except KeyError as exc:  # pragma: no cover - misconfigured app
        raise RuntimeError("Database engine not initialized") from exc
