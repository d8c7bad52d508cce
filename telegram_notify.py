# telegram_notify.py — relay new reports into the group chat (text + one photo per image)
from __future__ import annotations
import html, logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter, Retry

from logging_setup import redact

log = logging.getLogger("tg")

API = "https://api.telegram.org"
MAX_TEXT = 4000


def _requests_session():
    s = requests.Session()
    retry = Retry(
        total=3, connect=3, read=3, backoff_factor=0.4,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset(["GET", "POST"])
    )
    adapter = HTTPAdapter(max_retries=retry)
    s.mount("https://", adapter); s.mount("http://", adapter)
    return s


def format_incident_date(value: Optional[str]) -> str:
    if not value:
        return "not specified"
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return str(value)
    return dt.strftime("%d.%m.%Y, %H:%M:%S")

def format_report_message(report: Dict[str, Any]) -> str:
    e = lambda v: html.escape(str(v))  # noqa: E731
    text = (
        "🚨 New defect report\n\n"
        f"👤 User: {e(report.get('user_name') or 'Unknown')} (ID: {e(report.get('user_id'))})\n"
        f"🏢 Park: {e(report.get('park', ''))}\n"
        f"🏭 Station: {e(report.get('station', ''))}\n"
        f"📝 Title: {e(report.get('title') or 'not specified')}\n"
        f"📅 Incident date: {e(format_incident_date(report.get('incident_at')))}\n\n"
        f"📄 Description:\n{e(report.get('description') or 'not specified')}\n\n"
        f"🆔 Report ID: {e(report.get('id'))}"
    )
    return _cut(text, MAX_TEXT)

def _cut(text: str, limit: int) -> str:
    """Truncate without leaving a half entity (`&am`) that parse_mode=HTML rejects."""
    if len(text) <= limit:
        return text
    out = text[:limit]
    amp = out.rfind("&")
    if amp != -1 and ";" not in out[amp:]:
        out = out[:amp]
    return out


class TelegramNotifier:
    def __init__(self, bot_token: str, chat_id: str, thread_id: Optional[int] = None,
                 timeout_s: int = 10, session=None):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.thread_id = thread_id
        self.timeout_s = timeout_s
        self.session = session or _requests_session()

    @classmethod
    def from_settings(cls, settings) -> "TelegramNotifier":
        return cls(settings.bot_token, settings.chat_id, settings.thread_id, settings.tg_timeout_s)

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    def _payload(self, **kw) -> dict:
        p = {"chat_id": self.chat_id, **kw}
        if self.thread_id:
            p["message_thread_id"] = self.thread_id
        return p

    def _post(self, method: str, payload: dict) -> dict:
        r = self.session.post(f"{API}/bot{self.bot_token}/{method}", json=payload, timeout=self.timeout_s)
        try:
            body = r.json()
        except ValueError:
            body = {"ok": False, "description": r.text[:200]}
        if not body.get("ok"):
            log.warning("Telegram %s failed: %s", method, body.get("description"))
        return body

    def send_report(self, report: Dict[str, Any], image_urls: Optional[List[str]] = None) -> dict:
        if not self.configured:
            return {"ok": False, "error": "telegram not configured"}
        try:
            res = self._post("sendMessage", self._payload(text=format_report_message(report), parse_mode="HTML"))
            for url in image_urls or []:
                self._post("sendPhoto", self._payload(photo=url, caption=f"📸 Photo for report #{report.get('id')}"))
        except requests.RequestException as e:
            msg = redact(e, self.bot_token)
            log.error("Telegram relay failed: %s", msg)
            return {"ok": False, "error": msg}
        out = {"ok": bool(res.get("ok"))}
        if not out["ok"]:
            out["error"] = res.get("description") or "sendMessage failed"
        return out
