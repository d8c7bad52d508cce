# reports_service.py — submission + admin operations over store, uploads and the two relays
from __future__ import annotations
import logging, threading, time
from typing import Any, Dict, List, Mapping, Optional

from hmac_utils import display_name
from report_store import utc_now_iso
from uploads import public_url

log = logging.getLogger("reports")

REQUIRED = ("park", "station")


class ValidationError(ValueError):
    pass


_id_lock = threading.Lock()
_last_ms = 0

def new_report_id() -> str:
    """DEF-<epoch ms>, bumped by 1 ms when two reports land in the same millisecond."""
    global _last_ms
    with _id_lock:
        ms = max(int(time.time() * 1000), _last_ms + 1)
        _last_ms = ms
    return f"DEF-{ms}"

def _clean(v: Any) -> Optional[str]:
    if v is None:
        return None
    return str(v).strip()


class ReportService:
    def __init__(self, store, uploads, notifier, gateway, mirror_to_sheet: bool = True):
        self.store = store
        self.uploads = uploads
        self.notifier = notifier
        self.gateway = gateway
        # a sheet-backed store already is the sheet
        self.mirror_to_sheet = mirror_to_sheet

    def validate(self, form: Mapping[str, Any]) -> Dict[str, Any]:
        fields = {k: _clean(form.get(k)) for k in ("title", "description", "park", "station", "incident_at")}
        missing = [k for k in REQUIRED if not fields[k]]
        if missing:
            raise ValidationError("park and station are required")
        return fields

    def create(self, user: Mapping[str, Any], form: Mapping[str, Any], files: List, base_url: str) -> Dict[str, Any]:
        """
        Caller has already authenticated `user`. Nothing is written until the
        form and the files pass validation.
        """
        fields = self.validate(form)
        files = self.uploads.check(files)
        names = self.uploads.save(files)
        image_urls = [public_url(base_url, n) for n in names]

        now = utc_now_iso()
        report = {
            "id": new_report_id(),
            "user_id": user["id"],
            "user_name": display_name(user),
            "title": fields["title"],
            "description": fields["description"],
            "park": fields["park"],
            "station": fields["station"],
            "incident_at": fields["incident_at"] or now,
            "created_at": now,
            "image_urls": image_urls,
        }
        try:
            self.store.add(report)
        except Exception:
            self.uploads.remove(names)
            raise
        log.info("report %s saved (user %s, %d images)", report["id"], report["user_id"], len(image_urls))

        tg = self.notifier.send_report(report, image_urls)
        sheets = {"ok": True}
        if self.mirror_to_sheet:
            sheets = self.gateway.log_report(report, image_urls)
        return {
            "report": report,
            "relayed": {"telegram": bool(tg.get("ok")), "sheets": bool(sheets.get("ok"))},
        }

    def list(self) -> List[Dict[str, Any]]:
        return self.store.list()

    def update(self, report_id: str, fields: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        edit = {k: _clean(fields[k]) for k in ("title", "description") if k in fields}
        report = self.store.update(report_id, edit)
        if report is None:
            return None
        log.info("report %s updated (%s)", report_id, ",".join(sorted(edit)) or "no fields")
        if self.mirror_to_sheet:
            self.gateway.update_report(report)
        return report

    def delete(self, report_id: str) -> Optional[Dict[str, Any]]:
        report = self.store.delete(report_id)
        if report is None:
            return None
        removed = self.uploads.remove_for_urls(report.get("image_urls"))
        log.info("report %s deleted (%d files removed)", report_id, removed)
        if self.mirror_to_sheet:
            self.gateway.delete_report(report_id)
        return report
