"""Shared extensions for the MoodLog application."""

from flask_jwt_extended import JWTManager
from flask_sqlalchemy import SQLAlchemy

from moodlog.core.cache import CacheLayer

# Core persistence, auth and read-side cache primitives
db = SQLAlchemy(session_options={"expire_on_commit": False})
jwt = JWTManager()
cache = CacheLayer()


def init_extensions(app) -> None:
    """Initialize all extensions with the Flask app."""
    db.init_app(app)
    jwt.init_app(app)
    cache.init_app(app)
