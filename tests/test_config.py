from __future__ import annotations

import json

import pytest

from config import ConfigError, Settings, parse_admin_ids

ENV_KEYS = [
    "BOT_TOKEN", "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID", "TELEGRAM_THREAD_ID", "ADMIN_IDS",
    "INITDATA_KEY_MODE", "INITDATA_MAX_AGE_SEC", "SHEET_ID", "SHEET_URL", "SHEET_WORKSHEET",
    "GOOGLE_SERVICE_JSON", "SVC_JSON", "GOOGLE_APPLICATION_CREDENTIALS", "REPORTS_STORE",
    "REPORTS_PATH", "PUBLIC_BASE_URL", "PORT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for k in ENV_KEYS:
        monkeypatch.delenv(k, raising=False)


def test_admin_ids_trimmed_and_empties_dropped() -> None:
    assert parse_admin_ids(" 42 , 7,, ,100 ") == frozenset({"42", "7", "100"})
    assert parse_admin_ids("") == frozenset()


def test_admin_ids_case_sensitive() -> None:
    assert "abc" not in parse_admin_ids("ABC")


def test_defaults(monkeypatch) -> None:
    s = Settings.from_env(dotenv=False)
    assert s.key_mode == "webapp"
    assert s.max_age_s == 0
    assert s.store_backend == "json"
    assert s.thread_id is None
    assert s.port == 3000
    assert not s.telegram_configured
    assert not s.sheets_configured


def test_from_env(monkeypatch, tmp_path) -> None:
    svc = tmp_path / "svc.json"
    svc.write_text(json.dumps({"type": "service_account"}), encoding="utf-8")
    monkeypatch.setenv("BOT_TOKEN", "tok")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "-100")
    monkeypatch.setenv("TELEGRAM_THREAD_ID", "12")
    monkeypatch.setenv("ADMIN_IDS", "1, 2")
    monkeypatch.setenv("INITDATA_KEY_MODE", "SHA256")
    monkeypatch.setenv("SHEET_ID", "abc")
    monkeypatch.setenv("SVC_JSON", str(svc))
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://x.example/")

    s = Settings.from_env(dotenv=False)
    assert s.bot_token == "tok"
    assert s.thread_id == 12
    assert s.admin_ids == frozenset({"1", "2"})
    assert s.key_mode == "sha256"
    assert s.public_base_url == "https://x.example"
    assert s.telegram_configured
    assert s.sheets_configured


def test_telegram_bot_token_fallback(monkeypatch) -> None:
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "legacy")
    assert Settings.from_env(dotenv=False).bot_token == "legacy"


@pytest.mark.parametrize("key,value", [
    ("INITDATA_KEY_MODE", "plain"),
    ("REPORTS_STORE", "postgres"),
    ("PORT", "eighty"),
    ("INITDATA_MAX_AGE_SEC", "-5"),
])
def test_invalid_values_raise(monkeypatch, key: str, value: str) -> None:
    monkeypatch.setenv(key, value)
    with pytest.raises(ConfigError):
        Settings.from_env(dotenv=False)


def test_summary_hides_secrets() -> None:
    s = Settings(bot_token="SUPERSECRET", service_json='{"private_key": "k"}', admin_ids=frozenset({"9"}))
    text = json.dumps(s.summary())
    assert "SUPERSECRET" not in text
    assert "private_key" not in text
    assert s.summary()["admins"] == ["9"]
