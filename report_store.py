# report_store.py — report persistence: JSON array on disk, or the Google Sheet itself
from __future__ import annotations
import json, logging, os, threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

log = logging.getLogger("store")

EDITABLE_FIELDS = ("title", "description")


class StoreError(RuntimeError):
    pass


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def apply_edit(report: Dict[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
    for k in EDITABLE_FIELDS:
        if k in fields and fields[k] is not None:
            report[k] = fields[k]
    report["updated_at"] = utc_now_iso()
    return report


class JsonReportStore:
    """
    Whole-file JSON array. Every mutation is read-modify-write under one lock,
    written through a temp file + os.replace so readers never see a torn file.
    """

    def __init__(self, path: str = "reports.json"):
        self.path = path
        self._lock = threading.Lock()

    def _load(self) -> List[Dict[str, Any]]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = f.read()
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StoreError(f"cannot read {self.path}: {e}") from e
        if not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise StoreError(f"corrupt reports file {self.path}: {e}") from e
        if not isinstance(data, list):
            raise StoreError(f"reports file {self.path} is not a JSON array")
        return data

    def _save(self, reports: List[Dict[str, Any]]) -> None:
        tmp = self.path + ".tmp"
        d = os.path.dirname(self.path)
        try:
            if d:
                os.makedirs(d, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(reports, f, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)
        except OSError as e:
            raise StoreError(f"cannot write {self.path}: {e}") from e

    @staticmethod
    def _index(reports: List[Dict[str, Any]], report_id: str) -> int:
        for i, r in enumerate(reports):
            if r.get("id") == report_id:
                return i
        return -1

    def add(self, report: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            reports = self._load()
            reports.append(report)
            self._save(reports)
        return report

    def list(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(reversed(self._load()))

    def get(self, report_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            reports = self._load()
        i = self._index(reports, report_id)
        return reports[i] if i >= 0 else None

    def update(self, report_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            reports = self._load()
            i = self._index(reports, report_id)
            if i < 0:
                return None
            apply_edit(reports[i], fields)
            self._save(reports)
            return reports[i]

    def delete(self, report_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            reports = self._load()
            i = self._index(reports, report_id)
            if i < 0:
                return None
            removed = reports.pop(i)
            self._save(reports)
            return removed

    def describe(self) -> str:
        return f"json:{self.path}"


class SheetReportStore:
    """The spreadsheet is the system of record; one row per report, id in column A."""

    def __init__(self, gateway):
        self.gateway = gateway
        self._lock = threading.Lock()

    def _rows(self) -> List[Dict[str, Any]]:
        try:
            return self.gateway.read_reports()
        except Exception as e:
            raise StoreError(f"sheet read failed: {e}") from e

    def add(self, report: Dict[str, Any]) -> Dict[str, Any]:
        res = self.gateway.log_report(report, report.get("image_urls") or [])
        if not res.get("ok"):
            raise StoreError(f"sheet append failed: {res.get('error')}")
        return report

    def list(self) -> List[Dict[str, Any]]:
        return list(reversed(self._rows()))

    def get(self, report_id: str) -> Optional[Dict[str, Any]]:
        for r in self._rows():
            if r.get("id") == report_id:
                return r
        return None

    def update(self, report_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            report = self.get(report_id)
            if report is None:
                return None
            apply_edit(report, fields)
            res = self.gateway.update_report(report)
            if not res.get("ok"):
                raise StoreError(f"sheet update failed: {res.get('error')}")
            return report

    def delete(self, report_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            report = self.get(report_id)
            if report is None:
                return None
            res = self.gateway.delete_report(report_id)
            if not res.get("ok"):
                raise StoreError(f"sheet delete failed: {res.get('error')}")
            return report

    def describe(self) -> str:
        return "sheets"


def build_store(settings, gateway=None):
    if settings.store_backend == "sheets":
        if gateway is None:
            raise StoreError("REPORTS_STORE=sheets needs a sheets gateway")
        log.info("report store: Google Sheet")
        return SheetReportStore(gateway)
    log.info("report store: %s", settings.reports_path)
    return JsonReportStore(settings.reports_path)
