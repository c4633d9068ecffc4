# tests/live/test_healthjobs_live.py
from __future__ import annotations

import os

import pytest

from modules.healthjobs_watch.lib import config as hw_config

pytestmark = pytest.mark.live


def _print_results(records, max_items: int | None = None) -> None:
    # allow override via env (e.g., HEALTHJOBS_MAX_PRINT=999)
    if max_items is None:
        max_items = int(os.getenv("HEALTHJOBS_MAX_PRINT", "10"))
    print(f"\n[healthjobs] {len(records)} listing(s)")
    for rec in records[:max_items]:
        print(f"  - {rec.title} | {rec.employer} | {rec.location} | {rec.salary}\n    {rec.link}")


@pytest.fixture
def live_settings(data_file):
    return hw_config.Settings.from_env_and_kwargs(
        {"data_file": data_file, "headless": True},
        env={"TELEGRAM_BOT_TOKEN": "unused", "TELEGRAM_CHAT_ID": "unused"},
    )


def test_live_results_page_parses(live_settings):
    pytest.importorskip("playwright.sync_api")
    from modules.healthjobs_watch.lib.extractor import extract_jobs

    records = extract_jobs(live_settings)
    _print_results(records)

    assert isinstance(records, list)
    for rec in records:
        assert rec.id and rec.title
        assert rec.link == "" or rec.link.startswith("http")
        assert not rec.salary.startswith("Salary:")


def test_live_end_to_end_sends_to_telegram(data_file):
    """
    Full run against the real site and a real chat. The autouse env fixture
    replaces the Telegram credentials, so the real ones come in under
    HEALTHJOBS_LIVE_BOT_TOKEN and HEALTHJOBS_LIVE_CHAT_ID.
    """
    token = os.getenv("HEALTHJOBS_LIVE_BOT_TOKEN")
    chat_id = os.getenv("HEALTHJOBS_LIVE_CHAT_ID")
    if not token or not chat_id:
        pytest.skip("set HEALTHJOBS_LIVE_BOT_TOKEN and HEALTHJOBS_LIVE_CHAT_ID to post to a real chat")
    from modules.healthjobs_watch import run

    meta = run(bot_token=token, chat_id=chat_id, data_file=data_file, headless=True)

    assert meta["scraped_total"] >= meta["new_total"]
    assert meta["stored_total"] >= meta["new_total"]
