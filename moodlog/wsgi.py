"""WSGI entrypoint for the MoodLog API (see ``gunicorn.conf.py``)."""

from __future__ import annotations

import os

from moodlog import create_app

app = create_app(os.environ.get("APP_ENV"))

if __name__ == "__main__":
    app.run(
        host=os.environ.get("FLASK_RUN_HOST", "127.0.0.1"),
        port=int(os.environ.get("FLASK_RUN_PORT", "5001")),
    )
