"""
Engine for one HealthJobsUK check: extract, diff against the stored set,
notify, persist.

Features:
  - Sequential run: every step completes before the next starts
  - Per-posting Telegram alerts plus one summary per run
  - One failure alert, then re-raise, on any uncaught error
  - Special modes: `ingest_only_no_notify`, `skip_network`
  - Dependency injection for testability (`extract`, `notifier`)
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from . import differ, logging_bridge, render, store
from .config import Settings
from .models import JobRecord
from .notifier import TelegramNotifier


# =============================================================================
# DEFAULT EXTRACTOR (PRODUCTION)
# =============================================================================
def _default_extract(settings: Settings) -> list[JobRecord]:
    """
    Drive the real browser. Imported lazily so tests that inject `extract`
    never touch Playwright.
    """
    from .extractor import extract_jobs

    return extract_jobs(settings)


# =============================================================================
# MAIN ORCHESTRATOR
# =============================================================================
def run_once(
    settings: Settings,
    *,
    extract: Callable[[Settings], list[JobRecord]] | None = None,
    notifier: TelegramNotifier | None = None,
) -> dict[str, Any]:
    """
    Run one complete check.

    Args:
        settings: Configuration built once by the entry point.
        extract: Optional override for the browser extraction (for testing).
        notifier: Optional override for the Telegram sender (for testing).

    Returns:
        Meta dict with counts, new ids, elapsed seconds and summary message.

    Raises:
        Whatever extraction or persistence raised, after one failure alert.
    """
    start = time.perf_counter()
    extract_func = extract or _default_extract
    owns_notifier = notifier is None
    if notifier is None:
        notifier = TelegramNotifier(settings.bot_token, settings.chat_id, timeout=settings.notify_timeout_s)

    logging_bridge.activity({
        "component": "healthjobs_watch.engine",
        "op": "start",
        "search_url": settings.search_url,
        "data_file": settings.data_file,
        "flags": {
            "headless": settings.headless,
            "skip_network": settings.skip_network,
            "ingest_only_no_notify": settings.ingest_only_no_notify,
        },
    })

    try:
        # ---------------------------------------------------------------------
        # EXTRACT
        # ---------------------------------------------------------------------
        if settings.skip_network:
            current: list[JobRecord] = []
        else:
            current = extract_func(settings)

        # ---------------------------------------------------------------------
        # DIFF against the previous run
        # ---------------------------------------------------------------------
        previous = store.load(settings.data_file)
        result = differ.diff(current, previous)
        notify = not settings.ingest_only_no_notify

        # ---------------------------------------------------------------------
        # PER-POSTING ALERTS (best effort, sequential)
        # ---------------------------------------------------------------------
        delivered = 0
        if notify:
            for rec in result.new_records:
                if notifier.send(render.job_message(rec)):
                    delivered += 1

        # ---------------------------------------------------------------------
        # PERSIST merged store
        # ---------------------------------------------------------------------
        store.save(settings.data_file, result.merged)

        # ---------------------------------------------------------------------
        # SUMMARY
        # ---------------------------------------------------------------------
        elapsed_s = time.perf_counter() - start
        checked_at = render.format_checked_at(datetime.now(timezone.utc), settings.tzinfo())
        msg = render.summary_message(len(result.new_records), len(current), elapsed_s, checked_at)
        if notify:
            notifier.send(msg)

    except Exception as e:
        logging_bridge.error({
            "component": "healthjobs_watch.engine",
            "op": "run_once",
            "error": repr(e),
            "elapsed_s": round(time.perf_counter() - start, 3),
        })
        notifier.send(render.failure_message(e))
        raise
    finally:
        if owns_notifier:
            notifier.close()

    meta: dict[str, Any] = {
        "message": msg,
        "new_total": len(result.new_records),
        "scraped_total": len(current),
        "stored_total": len(result.merged),
        "new_ids": [rec.id for rec in result.new_records],
        "elapsed_s": round(elapsed_s, 3),
    }

    logging_bridge.activity({
        "component": "healthjobs_watch.engine",
        "op": "summary",
        "new_total": meta["new_total"],
        "scraped_total": meta["scraped_total"],
        "stored_total": meta["stored_total"],
        "notified": delivered,
        "ingest_only_no_notify": settings.ingest_only_no_notify,
        "elapsed_s": meta["elapsed_s"],
    })
    return meta
