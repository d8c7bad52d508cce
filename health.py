# health.py
import os, time
from flask import Blueprint, current_app, jsonify
bp_health = Blueprint("health", __name__)
_started = int(time.time())

@bp_health.get("/healthz")
def health():
    svc = current_app.extensions["reports"]
    return jsonify(ok=True, uptime_s=int(time.time() - _started),
                   telegram=svc.notifier.configured,
                   sheets=svc.gateway.configured,
                   store=svc.store.describe(),
                   commit=os.getenv("RENDER_GIT_COMMIT","")[:8])
