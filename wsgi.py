# wsgi.py — production entry (gunicorn wsgi:app)
from __future__ import annotations

from config import Settings
from logging_setup import init_logging
from server import create_app

settings = Settings.from_env()
init_logging(settings.log_level)

app = create_app(settings)
