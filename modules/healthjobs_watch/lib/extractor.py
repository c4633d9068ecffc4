from __future__ import annotations

import logging

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from . import logging_bridge
from .config import Settings
from .models import JobRecord
from .parse import parse_listings
from .utils import now_iso

log = logging.getLogger(__name__)


def fetch_listing_html(settings: Settings) -> str:
    """
    Render the search results page and return its HTML.

    Navigation waits for network idle and is bounded by
    `settings.navigation_timeout_ms`; a navigation failure propagates.
    The follow-up wait for a visible listing is best effort: on timeout we
    carry on with whatever the page holds (possibly nothing).
    The browser is closed on every path.
    """
    with sync_playwright() as pw:
        browser = pw.chromium.launch(headless=settings.headless)
        try:
            context = browser.new_context(
                user_agent=settings.user_agent,
                viewport={"width": settings.viewport_width, "height": settings.viewport_height},
            )
            page = context.new_page()

            log.info("Navigating to HealthJobsUK search (headless=%s)", settings.headless)
            page.goto(
                settings.search_url,
                wait_until="networkidle",
                timeout=settings.navigation_timeout_ms,
            )
            log.info("Current URL: %s", page.url)

            try:
                page.wait_for_selector(
                    settings.selectors.item,
                    state="visible",
                    timeout=settings.listing_timeout_ms,
                )
            except PlaywrightTimeoutError:
                log.warning(
                    "No visible listing after %d ms; continuing with current page",
                    settings.listing_timeout_ms,
                )

            count = page.locator(settings.selectors.item).count()
            log.info("Found %d job listings", count)
            return page.content()
        finally:
            browser.close()


def extract_jobs(settings: Settings) -> list[JobRecord]:
    """
    Fetch the results page and map every titled listing to a JobRecord.
    All records of one pass share the same `scraped_at`.
    """
    html = fetch_listing_html(settings)
    records = parse_listings(
        html,
        settings.selectors,
        settings.base_url,
        scraped_at=now_iso(),
    )
    logging_bridge.activity({
        "component": "healthjobs_watch.extractor",
        "op": "extracted",
        "html_bytes": len(html),
        "records": len(records),
    })
    return records
