"""ASCEND habit engine service: application factory."""

from __future__ import annotations

from importlib import import_module
from typing import Iterable

from flask import Flask, jsonify

from .config import BaseConfig, DevConfig, TestConfig
from .errors import AscendError

_CONFIG_MAP = {
    "development": DevConfig,
    "testing": TestConfig,
    "default": BaseConfig,
}


def _resolve_config(name: str | None) -> type[BaseConfig]:
    """Return the config class for the provided environment name."""

    if not name:
        return BaseConfig
    return _CONFIG_MAP.get(name.lower(), BaseConfig)


def _blueprint_paths() -> Iterable[str]:
    yield "ascend.blueprints.habits"
    yield "ascend.blueprints.admin"


def create_app(config_name: str | None = None, *, config: BaseConfig | None = None) -> Flask:
    """Create and configure the Flask application instance."""

    app = Flask(__name__, instance_relative_config=True)
    config_obj = config or _resolve_config(config_name)()
    app.config.from_object(config_obj)
    app.config["ASCEND_CONFIG"] = config_obj

    from .logging_config import setup_logging

    setup_logging(config_obj)

    _register_blueprints(app)
    _register_error_handlers(app)

    # Imported lazily so model classes can be imported without building an engine.
    from .extensions import init_db

    init_db(app)

    from . import cli

    cli.init_app(app)
    return app


def _register_blueprints(app: Flask) -> None:
    """Import and register all blueprints declared in `_blueprint_paths`."""

    for dotted_path in _blueprint_paths():
        module = import_module(dotted_path)
        app.register_blueprint(getattr(module, "bp"))


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(AscendError)
    def _handle_ascend_error(exc: AscendError):
        return jsonify(exc.to_dict()), exc.status_code


__all__ = ["BaseConfig", "DevConfig", "TestConfig", "create_app"]
