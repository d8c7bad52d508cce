# hmac_auth.py — request-side initData gate for the mini-app API
from __future__ import annotations
import functools, logging
from typing import Any, Dict, Optional, Tuple
from flask import current_app, g, jsonify, request

from hmac_utils import verify_init_data, is_admin

log = logging.getLogger("auth")

HEADER = "X-Telegram-Init-Data"


def extract_init_data(req=None) -> str:
    """initData from form field, JSON body, query string or header (first non-empty)."""
    r = req or request
    got = r.form.get("initData")
    if not got and r.is_json:
        body = r.get_json(silent=True)
        if isinstance(body, dict):
            got = body.get("initData")
    return str(got or r.args.get("initData") or r.headers.get(HEADER) or "")

def check_init_data(req=None, settings=None) -> Tuple[Optional[Dict[str, Any]], str]:
    """
    Returns (user, err). user is None when the payload fails verification.
    """
    s = settings or current_app.config["SETTINGS"]
    user = verify_init_data(
        extract_init_data(req),
        s.bot_token,
        key_mode=s.key_mode,
        max_age_s=s.max_age_s,
    )
    if user is None:
        return (None, "unauthenticated")
    return (user, "")


def _denied(msg: str, code: int):
    return jsonify(ok=False, error=msg), code

def require_user(view):
    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        user, _ = check_init_data()
        if user is None:
            return _denied("invalid init data", 401)
        g.tg_user = user
        return view(*args, **kwargs)
    return wrapper

def require_admin(view):
    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        user, _ = check_init_data()
        if user is None:
            return _denied("invalid init data", 401)
        if not is_admin(user, current_app.config["SETTINGS"].admin_ids):
            log.info("admin access denied for user %s on %s", user.get("id"), request.path)
            return _denied("forbidden", 403)
        g.tg_user = user
        return view(*args, **kwargs)
    return wrapper
