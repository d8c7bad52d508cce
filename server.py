# server.py — app factory: API, health, uploaded photos, mini-app static files
from __future__ import annotations
import logging, os
from typing import Optional
from flask import Flask, jsonify, send_from_directory
from flask_cors import CORS
from werkzeug.exceptions import NotFound, RequestEntityTooLarge
from werkzeug.middleware.proxy_fix import ProxyFix

from config import Settings
from health import bp_health
from report_store import build_store
from reports_api import bp as reports_bp
from reports_service import ReportService
from sheets_gateway import build_gateway
from telegram_notify import TelegramNotifier
from uploads import UploadStore

log = logging.getLogger("reports")


def create_app(settings: Optional[Settings] = None, store=None, notifier=None, gateway=None) -> Flask:
    settings = settings or Settings.from_env()

    app = Flask(__name__, static_folder=None)
    # one proxy hop (Render / nginx) so host_url carries the public scheme + host
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)
    app.config["SETTINGS"] = settings
    app.config["MAX_CONTENT_LENGTH"] = (settings.max_upload_mb * settings.max_images + 1) * 1024 * 1024
    app.json.ensure_ascii = False

    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()] or "*"
    CORS(app, resources={r"/api/*": {"origins": origins}})

    gateway = gateway or build_gateway(settings)
    store = store or build_store(settings, gateway)
    notifier = notifier or TelegramNotifier.from_settings(settings)
    app.extensions["reports"] = ReportService(
        store,
        UploadStore.from_settings(settings),
        notifier,
        gateway,
        mirror_to_sheet=settings.store_backend != "sheets",
    )

    app.register_blueprint(reports_bp)
    app.register_blueprint(bp_health)

    upload_dir = os.path.abspath(settings.upload_dir)
    public_dir = os.path.abspath(settings.public_dir)

    @app.get("/uploads/<path:name>")
    def uploaded_file(name):
        return send_from_directory(upload_dir, name)

    @app.get("/")
    @app.get("/<path:path>")
    def spa(path: str = ""):
        if path.startswith("api/"):
            return jsonify(ok=False, error="not found"), 404
        if path:
            try:
                return send_from_directory(public_dir, path)
            except NotFound:
                pass
        return send_from_directory(public_dir, "index.html")

    @app.errorhandler(RequestEntityTooLarge)
    def too_large(_e):
        return jsonify(ok=False, error="upload too large"), 413

    log.info("app ready: %s", settings.summary())
    return app
