# config.py — process-wide settings, read once at boot and passed explicitly
from __future__ import annotations
import os, pathlib
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

KEY_MODES = ("webapp", "sha256")
STORE_BACKENDS = ("json", "sheets")


class ConfigError(ValueError):
    pass


def _env(key: str, default: str = "") -> str:
    return (os.getenv(key) or default).strip()

def _env_int(key: str, default: int) -> int:
    raw = _env(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None

def parse_admin_ids(raw: str) -> frozenset[str]:
    """ADMIN_IDS="1, 2,,3" -> {"1","2","3"}; whitespace trimmed, empties dropped."""
    return frozenset(s.strip() for s in (raw or "").split(",") if s.strip())

def _read_service_json() -> str:
    """
    Google service-account JSON, in order of precedence:
      1) GOOGLE_SERVICE_JSON / SVC_JSON (raw JSON or a filename)
      2) GOOGLE_APPLICATION_CREDENTIALS (filename)
    """
    for key in ("GOOGLE_SERVICE_JSON", "SVC_JSON"):
        val = _env(key)
        if not val:
            continue
        if val.lstrip().startswith("{"):
            return val
        p = pathlib.Path(val)
        if p.exists():
            return p.read_text(encoding="utf-8")
    p = _env("GOOGLE_APPLICATION_CREDENTIALS")
    if p and pathlib.Path(p).exists():
        return pathlib.Path(p).read_text(encoding="utf-8")
    return ""


@dataclass(frozen=True)
class Settings:
    bot_token: str = ""
    chat_id: str = ""
    thread_id: Optional[int] = None
    admin_ids: frozenset = field(default_factory=frozenset)

    key_mode: str = "webapp"
    max_age_s: int = 0

    sheet_id: str = ""
    sheet_url: str = ""
    worksheet: str = ""
    service_json: str = ""

    store_backend: str = "json"
    reports_path: str = "reports.json"
    upload_dir: str = "uploads"
    public_dir: str = "public"
    max_upload_mb: int = 10
    max_images: int = 10
    public_base_url: str = ""

    tg_timeout_s: int = 10
    cors_origins: str = "*"
    log_level: str = "INFO"
    port: int = 3000

    def __post_init__(self):
        if self.key_mode not in KEY_MODES:
            raise ConfigError(f"INITDATA_KEY_MODE must be one of {KEY_MODES}, got {self.key_mode!r}")
        if self.store_backend not in STORE_BACKENDS:
            raise ConfigError(f"REPORTS_STORE must be one of {STORE_BACKENDS}, got {self.store_backend!r}")
        if self.max_age_s < 0:
            raise ConfigError("INITDATA_MAX_AGE_SEC must be >= 0")

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        thread = _env("TELEGRAM_THREAD_ID")
        return cls(
            bot_token=_env("BOT_TOKEN") or _env("TELEGRAM_BOT_TOKEN"),
            chat_id=_env("TELEGRAM_CHAT_ID"),
            thread_id=_env_int("TELEGRAM_THREAD_ID", 0) if thread else None,
            admin_ids=parse_admin_ids(os.getenv("ADMIN_IDS", "")),
            key_mode=_env("INITDATA_KEY_MODE", "webapp").lower(),
            max_age_s=_env_int("INITDATA_MAX_AGE_SEC", 0),
            sheet_id=_env("SHEET_ID"),
            sheet_url=_env("SHEET_URL"),
            worksheet=_env("SHEET_WORKSHEET"),
            service_json=_read_service_json(),
            store_backend=_env("REPORTS_STORE", "json").lower(),
            reports_path=_env("REPORTS_PATH", "reports.json"),
            upload_dir=_env("UPLOAD_DIR", "uploads"),
            public_dir=_env("PUBLIC_DIR", "public"),
            max_upload_mb=_env_int("MAX_UPLOAD_MB", 10),
            max_images=_env_int("MAX_IMAGES", 10),
            public_base_url=_env("PUBLIC_BASE_URL").rstrip("/"),
            tg_timeout_s=_env_int("TG_TIMEOUT_SEC", 10),
            cors_origins=_env("CORS_ORIGINS", "*"),
            log_level=_env("REPORTS_LOG_LEVEL", "INFO").upper(),
            port=_env_int("PORT", 3000),
        )

    @property
    def telegram_configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    @property
    def sheets_configured(self) -> bool:
        return bool(self.service_json and (self.sheet_id or self.sheet_url))

    def summary(self) -> dict:
        """Boot log view. Never includes the bot token or service credentials."""
        return {
            "telegram": self.telegram_configured,
            "sheets": self.sheets_configured,
            "store": self.store_backend,
            "key_mode": self.key_mode,
            "max_age_s": self.max_age_s,
            "admins": sorted(self.admin_ids),
            "port": self.port,
        }
