# tests/conftest.py
import os
import pathlib

import pytest
from freezegun import freeze_time

from modules.healthjobs_watch.lib import config as hw_config
from modules.healthjobs_watch.lib.models import JobRecord

FIXTURES = pathlib.Path(__file__).parent / "fixtures"

TEST_TOKEN = "123456:TEST-token"
TEST_CHAT = "424242"


# ---------------------------------------------------------------------
# Live tests are opt-in: use --live or RUN_LIVE_TESTS=1
# ---------------------------------------------------------------------
def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run tests marked as 'live' (real browser / network calls).",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "live: marks tests that perform live network calls or hit external services (skipped by default).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_live = config.getoption("--live") or os.getenv("RUN_LIVE_TESTS") == "1"
    if run_live:
        return
    skip_live = pytest.mark.skip(reason="live tests disabled (use --live or RUN_LIVE_TESTS=1)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------
# Test-wide env defaults (autouse, function-scoped)
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _env_defaults(monkeypatch, tmp_path):
    # Logs go to a throwaway dir so real logs stay clean (per test)
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("ACTIVITY_LOG_PREFIX", "activity-test")
    monkeypatch.setenv("ERROR_LOG_PREFIX", "error-test")

    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", TEST_TOKEN)
    monkeypatch.setenv("TELEGRAM_CHAT_ID", TEST_CHAT)
    monkeypatch.setenv("HEALTHJOBS_DATA_FILE", str(tmp_path / "data" / "jobs.json"))
    for name in ("CI", "HEADLESS", "HEALTHJOBS_SEARCH_URL", "HEALTHJOBS_BASE_URL", "HEALTHJOBS_TZ", "CONFIG_PATH"):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def frozen_utc():
    with freeze_time("2025-01-01T00:00:00Z"):
        yield


# ---------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------
@pytest.fixture
def listing_html() -> str:
    return (FIXTURES / "job_list.html").read_text(encoding="utf-8")


@pytest.fixture
def data_file(tmp_path) -> str:
    return str(tmp_path / "data" / "jobs.json")


@pytest.fixture
def fresh_settings(data_file):
    """
    A brand-new Settings per test, built from an explicit env so no .env file
    or developer environment leaks in.
    """
    return hw_config.Settings.from_env_and_kwargs(
        {"data_file": data_file},
        env={"TELEGRAM_BOT_TOKEN": TEST_TOKEN, "TELEGRAM_CHAT_ID": TEST_CHAT},
    )


@pytest.fixture
def make_record():
    def _make(id_: str, title: str | None = None, **fields) -> JobRecord:
        return JobRecord(
            id=id_,
            title=title or f"Job {id_}",
            employer=fields.pop("employer", "NHS Trust"),
            location=fields.pop("location", "London"),
            salary=fields.pop("salary", "£50,000"),
            link=fields.pop("link", f"https://www.healthjobsuk.com{id_}"),
            scraped_at=fields.pop("scraped_at", "2025-01-01T00:00:00.000Z"),
            **fields,
        )

    return _make


class RecordingNotifier:
    """Stand-in for TelegramNotifier: keeps every message, optionally fails some."""

    def __init__(self, fail_when=None):
        self.messages: list[str] = []
        self.failed: list[str] = []
        self._fail_when = fail_when or (lambda text: False)
        self.closed = False

    def send(self, text: str) -> bool:
        if self._fail_when(text):
            self.failed.append(text)
            return False
        self.messages.append(text)
        return True

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def recording_notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return RecordingNotifier(fail_when=lambda text: True)
