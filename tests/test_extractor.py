# tests/test_extractor.py
from unittest import mock

import pytest

from modules.healthjobs_watch.lib import extractor


@pytest.fixture
def fake_browser():
    """
    Patch sync_playwright so no Chromium is launched. Yields the mocks for
    the browser and the page so tests can steer navigation and waits.
    """
    with mock.patch.object(extractor, "sync_playwright") as sp:
        pw = sp.return_value.__enter__.return_value
        browser = pw.chromium.launch.return_value
        page = browser.new_context.return_value.new_page.return_value
        page.url = "https://www.healthjobsuk.com/job_list"
        page.content.return_value = "<html><body></body></html>"
        page.locator.return_value.count.return_value = 0
        yield pw, browser, page


def test_fetch_renders_page_with_configured_browser(fake_browser, fresh_settings):
    pw, browser, page = fake_browser
    page.content.return_value = "<ul><li class='hj-job'>x</li></ul>"

    html = extractor.fetch_listing_html(fresh_settings)

    assert html == "<ul><li class='hj-job'>x</li></ul>"
    pw.chromium.launch.assert_called_once_with(headless=fresh_settings.headless)
    browser.new_context.assert_called_once_with(
        user_agent=fresh_settings.user_agent,
        viewport={"width": 1366, "height": 768},
    )
    page.goto.assert_called_once_with(fresh_settings.search_url, wait_until="networkidle", timeout=60_000)
    page.wait_for_selector.assert_called_once_with("li.hj-job", state="visible", timeout=15_000)
    browser.close.assert_called_once()


def test_listing_wait_timeout_is_not_fatal(fake_browser, fresh_settings):
    _, browser, page = fake_browser
    page.wait_for_selector.side_effect = extractor.PlaywrightTimeoutError("Timeout 15000ms exceeded.")
    page.content.return_value = "<p>No jobs matched your search.</p>"

    assert extractor.fetch_listing_html(fresh_settings) == "<p>No jobs matched your search.</p>"
    browser.close.assert_called_once()


def test_navigation_failure_propagates_and_closes_browser(fake_browser, fresh_settings):
    _, browser, page = fake_browser
    page.goto.side_effect = extractor.PlaywrightTimeoutError("page.goto: Timeout 60000ms exceeded.")

    with pytest.raises(extractor.PlaywrightTimeoutError, match="Timeout 60000ms"):
        extractor.fetch_listing_html(fresh_settings)

    page.wait_for_selector.assert_not_called()
    page.content.assert_not_called()
    browser.close.assert_called_once()


def test_extract_jobs_parses_rendered_page(fake_browser, fresh_settings, listing_html, frozen_utc):
    _, _, page = fake_browser
    page.content.return_value = listing_html
    page.locator.return_value.count.return_value = 4

    records = extractor.extract_jobs(fresh_settings)

    assert [r.title for r in records] == [
        "Clinical Fellow in Emergency Medicine",
        "Locum Consultant (A&E)",
        "Trust Grade Doctor",
    ]
    assert {r.scraped_at for r in records} == {"2025-01-01T00:00:00.000Z"}
