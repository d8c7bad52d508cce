# reports_api.py — mini-app API
#
# Endpoints:
#   GET    /api/is-admin        -> {"ok": true, "is_admin": bool}
#   POST   /api/report          -> multipart (images[]) or JSON; {"ok": true, "id": ...}
#   GET    /api/reports         -> admin; newest first
#   PUT    /api/report/<id>     -> admin; edit title/description
#   DELETE /api/report/<id>     -> admin; drops the record and its photos
#
# Every route verifies initData (form/JSON field, query param or header) first.
from __future__ import annotations
import logging
from flask import Blueprint, current_app, g, jsonify, request

from hmac_auth import require_admin, require_user
from hmac_utils import is_admin
from report_store import StoreError
from reports_service import ValidationError
from uploads import FIELD, UploadRejected

log = logging.getLogger("reports")

bp = Blueprint("reports_api", __name__, url_prefix="/api")


def _ok(code: int = 200, **kw):
    return jsonify(dict(ok=True, **kw)), code

def _bad(msg: str, code: int = 400):
    return jsonify(dict(ok=False, error=msg)), code

def _service():
    return current_app.extensions["reports"]

def _settings():
    return current_app.config["SETTINGS"]

def _base_url() -> str:
    return _settings().public_base_url or request.host_url.rstrip("/")

def _fields() -> dict:
    if request.form:
        return request.form.to_dict()
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


@bp.get("/is-admin")
@require_user
def api_is_admin():
    return _ok(is_admin=is_admin(g.tg_user, _settings().admin_ids))

@bp.post("/report")
@require_user
def api_create_report():
    try:
        res = _service().create(g.tg_user, _fields(), request.files.getlist(FIELD), _base_url())
    except (ValidationError, UploadRejected) as e:
        return _bad(str(e), 400)
    except (StoreError, OSError):
        log.exception("report save failed")
        return _bad("save failed", 500)
    return _ok(id=res["report"]["id"], relayed=res["relayed"])

@bp.get("/reports")
@require_admin
def api_list_reports():
    try:
        items = _service().list()
    except StoreError:
        log.exception("report list failed")
        return _bad("read failed", 500)
    return _ok(items=items)

@bp.put("/report/<report_id>")
@require_admin
def api_update_report(report_id: str):
    try:
        item = _service().update(report_id, _fields())
    except StoreError:
        log.exception("report %s update failed", report_id)
        return _bad("update failed", 500)
    if item is None:
        return _bad("report not found", 404)
    return _ok(item=item)

@bp.delete("/report/<report_id>")
@require_admin
def api_delete_report(report_id: str):
    try:
        item = _service().delete(report_id)
    except StoreError:
        log.exception("report %s delete failed", report_id)
        return _bad("delete failed", 500)
    if item is None:
        return _bad("report not found", 404)
    return _ok()
