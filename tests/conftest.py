from __future__ import annotations

import pytest

from config import Settings
from hmac_utils import sign_init_data
from report_store import JsonReportStore
from server import create_app

BOT_TOKEN = "123456:TEST-TOKEN"
ADMIN_ID = 42
USER_ID = 7


class FakeNotifier:
    configured = True

    def __init__(self, ok: bool = True):
        self.ok = ok
        self.sent: list[tuple[dict, list]] = []

    def send_report(self, report, image_urls=None):
        self.sent.append((dict(report), list(image_urls or [])))
        return {"ok": self.ok}


class FakeGateway:
    configured = True

    def __init__(self):
        self.logged: list[dict] = []
        self.updated: list[dict] = []
        self.deleted: list[str] = []

    def log_report(self, report, image_urls=None):
        self.logged.append(dict(report))
        return {"ok": True}

    def update_report(self, report):
        self.updated.append(dict(report))
        return {"ok": True}

    def delete_report(self, report_id):
        self.deleted.append(report_id)
        return {"ok": True}

    def health(self):
        return {"ok": True}


def init_data_for(user_id: int, token: str = BOT_TOKEN, **user) -> str:
    return sign_init_data({"auth_date": 1700000000, "user": {"id": user_id, **user}}, token)


@pytest.fixture
def settings(tmp_path) -> Settings:
    public = tmp_path / "public"
    public.mkdir()
    (public / "index.html").write_text("<html>mini-app</html>", encoding="utf-8")
    return Settings(
        bot_token=BOT_TOKEN,
        chat_id="-100500",
        admin_ids=frozenset({str(ADMIN_ID)}),
        reports_path=str(tmp_path / "reports.json"),
        upload_dir=str(tmp_path / "uploads"),
        public_dir=str(public),
        public_base_url="https://reports.example.com",
    )


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def store(settings) -> JsonReportStore:
    return JsonReportStore(settings.reports_path)


@pytest.fixture
def app(settings, store, notifier, gateway):
    app = create_app(settings, store=store, notifier=notifier, gateway=gateway)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def user_init() -> str:
    return init_data_for(USER_ID, first_name=" Ann ", last_name="Lee")


@pytest.fixture
def admin_init() -> str:
    return init_data_for(ADMIN_ID, first_name="Root")
