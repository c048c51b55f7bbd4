"""MoodLog application factory and bootstrap."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping, Optional

from flask import Flask

from moodlog.config import config_by_name
from moodlog.extensions import db, init_extensions


def create_app(config_name: Optional[str] = None, overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    """Create and configure the MoodLog Flask application."""
    env_name = (config_name or os.environ.get("APP_ENV") or "development").lower()
    project_root = Path(__file__).resolve().parent.parent
    instance_root = project_root / "instance"

    app = Flask(__name__, instance_path=str(instance_root), instance_relative_config=True)
    config_cls = config_by_name.get(env_name, config_by_name["development"])
    app.config.from_object(config_cls)
    if overrides:
        app.config.update(overrides)

    # Normalize sqlite path to absolute to avoid "unable to open database file"
    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI")
    if db_uri and db_uri.startswith("sqlite:///") and not db_uri.startswith("sqlite:////"):
        db_path = db_uri.replace("sqlite:///", "", 1)
        abs_path = project_root / db_path
        abs_path.parent.mkdir(parents=True, exist_ok=True)
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{abs_path}"

    init_extensions(app)
    _register_models(app)
    _register_blueprints(app)
    _register_error_handlers(app)

    from moodlog.platform.channel import build_channel

    app.extensions["enrichment_channel"] = build_channel(app.config)

    @app.get("/health")
    def health():
        return {"ok": True}, 200

    # Register CLI commands
    from moodlog.scripts.enrichment_commands import register_commands

    register_commands(app)

    return app


def _register_models(app: Flask) -> None:
    """Import models so metadata is complete, and create tables outside production."""
    from moodlog.domains.journal.models import journal_entry  # noqa: F401
    from moodlog.platform.channel import models as channel_models  # noqa: F401

    if app.config.get("AUTO_CREATE_TABLES", app.config.get("ENV") != "production"):
        with app.app_context():
            db.create_all()


def _register_blueprints(app: Flask) -> None:
    """Lazy import and register all controllers."""
    from moodlog.domains.journal.controllers.journal_api import journal_api_bp

    app.register_blueprint(journal_api_bp, url_prefix="/api/journal")


def _register_error_handlers(app: Flask) -> None:
    """Basic JSON error responses."""
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        return {"ok": False, "error": exc.description}, exc.code

    @app.errorhandler(Exception)
    def _generic_error(exc: Exception):
        app.logger.exception("Unhandled error: %s", exc)
        # In debug/testing, surface the exception message to speed up diagnosis
        if app.debug or app.testing:
            return {"ok": False, "error": str(exc)}, 500
        return {"ok": False, "error": "unexpected_error"}, 500
