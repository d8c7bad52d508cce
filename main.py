# main.py — DEV ONLY: local Flask server; production uses gunicorn via wsgi.py
import logging

from config import Settings
from logging_setup import init_logging
from server import create_app


def main():
    settings = Settings.from_env()
    log = init_logging(settings.log_level)
    app = create_app(settings)
    s = settings.summary()
    log.info("🚀 Server on port %s", settings.port)
    log.info("📊 Google Sheets: %s", "✅" if s["sheets"] else "❌")
    log.info("🤖 Telegram Bot: %s", "✅" if s["telegram"] else "❌")
    log.info("👥 Admins: %s", ", ".join(s["admins"]) or "—")
    app.run(host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    logging.captureWarnings(True)
    main()
