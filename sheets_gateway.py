from __future__ import annotations

import os
import json
import time
import random
import logging
from typing import Any, Dict, List, Optional

import gspread

log = logging.getLogger("sheets")

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

# A..K, one row per report
COLUMNS = [
    "id", "created_at", "user_id", "user_name", "park", "station",
    "title", "description", "incident_at", "image_urls", "updated_at",
]
TABLE_RANGE = "A1:K1"
LAST_COL = "K"

BACKOFF_BASE_S = float(os.getenv("SHEETS_BACKOFF_BASE_S", "1.0"))
BACKOFF_MAX_S = float(os.getenv("SHEETS_BACKOFF_MAX_S", "16"))
BACKOFF_JIT_S = float(os.getenv("SHEETS_BACKOFF_JIT_S", "0.35"))
BACKOFF_TRIES = int(os.getenv("SHEETS_BACKOFF_TRIES", "4"))

_RETRY_API = ("rate limit", "quota", "429", "500", "503", "user rate limit")
_RETRY_NET = ("timed out", "connection reset", "temporarily", "unavailable")


def _with_backoff(op_name: str, fn, *args, **kwargs):
    """Retry quota / 5xx APIErrors and transient network errors with exponential backoff."""
    delay = BACKOFF_BASE_S + random.random() * BACKOFF_JIT_S
    attempt = 1
    while True:
        try:
            return fn(*args, **kwargs)
        except gspread.exceptions.APIError as e:
            if attempt >= BACKOFF_TRIES or not any(s in str(e).lower() for s in _RETRY_API):
                raise
            log.warning("Sheets backoff (%s): %s", op_name, e)
        except Exception as e:
            if attempt >= BACKOFF_TRIES or not any(s in str(e).lower() for s in _RETRY_NET):
                raise
            log.warning("Transient error (%s): %s; retrying…", op_name, e)
        time.sleep(delay)
        delay = min(BACKOFF_MAX_S, delay * 1.8)
        attempt += 1


def report_to_row(report: Dict[str, Any], image_urls: Optional[List[str]] = None) -> List[Any]:
    urls = image_urls if image_urls is not None else (report.get("image_urls") or [])
    return [
        report.get("id", ""),
        report.get("created_at", ""),
        report.get("user_id", ""),
        report.get("user_name") or "Unknown",
        report.get("park", ""),
        report.get("station", ""),
        report.get("title") or "",
        report.get("description") or "",
        report.get("incident_at", ""),
        ", ".join(urls),
        report.get("updated_at") or "",
    ]

def row_to_report(row: List[Any]) -> Optional[Dict[str, Any]]:
    """Inverse of report_to_row; None for blank and header rows."""
    if not row or not str(row[0]).strip() or str(row[0]).strip().lower() == "id":
        return None
    cells = [str(c) for c in row] + [""] * (len(COLUMNS) - len(row))
    rep: Dict[str, Any] = dict(zip(COLUMNS, cells))
    uid = rep["user_id"]
    rep["user_id"] = int(uid) if uid.lstrip("-").isdigit() else uid
    rep["image_urls"] = [u.strip() for u in rep["image_urls"].split(",") if u.strip()]
    if not rep["updated_at"]:
        rep.pop("updated_at")
    return rep


class NoopAdapter:
    """Adapter used when gspread / creds are unavailable."""
    configured = False

    def append_row(self, values: List[Any]) -> dict:
        return {"ok": False, "error": "sheets not configured"}

    def read_all(self) -> List[List[Any]]:
        return []

    def find_row(self, report_id: str) -> Optional[int]:
        return None

    def update_row(self, row: int, values: List[Any]) -> dict:
        return {"ok": False, "error": "sheets not configured"}

    def delete_row(self, row: int) -> dict:
        return {"ok": False, "error": "sheets not configured"}


class GSpreadAdapter:
    """
    Thin wrapper around one gspread worksheet (by SHEET_ID or SHEET_URL;
    named worksheet or the first one).
    """
    configured = True

    def __init__(self, service_json: str, sheet_id: str = "", sheet_url: str = "", worksheet: str = ""):
        if not service_json:
            raise RuntimeError("service account JSON not set (GOOGLE_SERVICE_JSON / SVC_JSON)")
        if not (sheet_id or sheet_url):
            raise RuntimeError("SHEET_ID or SHEET_URL not set")

        client = gspread.service_account_from_dict(json.loads(service_json), scopes=SCOPES)
        sh = client.open_by_key(sheet_id) if sheet_id else client.open_by_url(sheet_url)
        self._ws = sh.worksheet(worksheet) if worksheet else sh.sheet1

    @classmethod
    def from_worksheet(cls, ws) -> "GSpreadAdapter":
        self = cls.__new__(cls)
        self._ws = ws
        return self

    def append_row(self, values: List[Any]) -> dict:
        _with_backoff("append_row", self._ws.append_row, values,
                      value_input_option="RAW", table_range=TABLE_RANGE)
        return {"ok": True}

    def read_all(self) -> List[List[Any]]:
        return _with_backoff("get_all_values", self._ws.get_all_values)

    def find_row(self, report_id: str) -> Optional[int]:
        cell = _with_backoff("find", self._ws.find, report_id, in_column=1)
        return cell.row if cell is not None else None

    def update_row(self, row: int, values: List[Any]) -> dict:
        _with_backoff("update", self._ws.update,
                      range_name=f"A{row}:{LAST_COL}{row}", values=[values],
                      value_input_option="RAW")
        return {"ok": True}

    def delete_row(self, row: int) -> dict:
        _with_backoff("delete_rows", self._ws.delete_rows, row)
        return {"ok": True}


class SheetsGateway:
    """
    Report log on top of an adapter. Every call returns {"ok": bool, "error"?}
    and never raises; callers treat the sheet as best-effort.
    """

    def __init__(self, adapter: Any):
        self.adapter = adapter

    @property
    def configured(self) -> bool:
        return bool(getattr(self.adapter, "configured", False))

    def _call(self, what: str, fn, *args) -> dict:
        try:
            res = fn(*args)
        except Exception as e:  # noqa: BLE001
            log.error("Sheets %s failed: %s", what, e)
            return {"ok": False, "error": str(e)}
        if not res.get("ok"):
            log.info("Sheets %s skipped: %s", what, res.get("error"))
        return res

    def log_report(self, report: Dict[str, Any], image_urls: Optional[List[str]] = None) -> dict:
        return self._call("append", self.adapter.append_row, report_to_row(report, image_urls))

    def update_report(self, report: Dict[str, Any]) -> dict:
        row = self._find(report.get("id", ""))
        if isinstance(row, dict):
            return row
        return self._call("update", self.adapter.update_row, row, report_to_row(report))

    def delete_report(self, report_id: str) -> dict:
        row = self._find(report_id)
        if isinstance(row, dict):
            return row
        return self._call("delete", self.adapter.delete_row, row)

    def _find(self, report_id: str):
        if not self.configured:
            return {"ok": False, "error": "sheets not configured"}
        try:
            row = self.adapter.find_row(report_id)
        except Exception as e:  # noqa: BLE001
            log.error("Sheets lookup of %s failed: %s", report_id, e)
            return {"ok": False, "error": str(e)}
        if row is None:
            return {"ok": False, "error": f"row for {report_id} not found"}
        return row

    def read_reports(self) -> List[Dict[str, Any]]:
        out = []
        for row in self.adapter.read_all():
            rep = row_to_report(row)
            if rep is not None:
                out.append(rep)
        return out

    def health(self) -> dict:
        return {"ok": self.configured}


def build_gateway(settings) -> SheetsGateway:
    """Falls back to NoopAdapter when credentials are missing or gspread cannot connect."""
    if not settings.sheets_configured:
        log.info("Google Sheets not configured")
        return SheetsGateway(NoopAdapter())
    try:
        adapter = GSpreadAdapter(
            settings.service_json,
            sheet_id=settings.sheet_id,
            sheet_url=settings.sheet_url,
            worksheet=settings.worksheet,
        )
        log.info("Google Sheets connected")
    except Exception as e:  # noqa: BLE001
        log.error("Google Sheets connection failed: %s", e)
        adapter = NoopAdapter()
    return SheetsGateway(adapter)
