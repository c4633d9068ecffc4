"""
HTML -> JobRecord mapping for the HealthJobsUK results page.

Kept separate from the browser driver so it can be exercised against saved
markup without launching Chromium.
"""

from __future__ import annotations

from bs4 import BeautifulSoup
from bs4.element import Tag

from .config import Selectors
from .models import JobRecord
from .utils import slugify_title

SPECIALITY_LABEL = "Speciality:"
SALARY_LABEL = "Salary:"


def parse_listings(html: str, selectors: Selectors, base_url: str, scraped_at: str) -> list[JobRecord]:
    """
    Return one JobRecord per listing element that has a non-empty title.

    Missing optional fields come back as "". Listings are returned in page order.
    """
    soup = BeautifulSoup(html, "html.parser")
    out: list[JobRecord] = []

    for item in soup.select(selectors.item):
        title = _text(item, selectors.title)
        if not title:
            # decorative or malformed entry
            continue

        link_el = item.select_one(selectors.link)
        href = _attr(link_el, "href")

        out.append(
            JobRecord(
                id=derive_id(href, title),
                title=title,
                grade=_text(item, selectors.grade),
                employer=_text(item, selectors.employer),
                location=_text(item, selectors.location),
                speciality=strip_label(_text(item, selectors.speciality), SPECIALITY_LABEL),
                salary=strip_label(_text(item, selectors.salary), SALARY_LABEL),
                link=resolve_link(href, base_url),
                scraped_at=scraped_at,
            )
        )
    return out


def derive_id(href: str, title: str) -> str:
    """
    Detail path without its query string; the title slug when there is none.
    """
    path = href.split("?", 1)[0]
    return path or slugify_title(title)


def resolve_link(href: str, base_url: str) -> str:
    """Prefix site-relative hrefs with the base URL; anything else is kept verbatim."""
    if href.startswith("/"):
        return base_url + href
    return href


def strip_label(text: str, label: str) -> str:
    """'Salary: £40,000' -> '£40,000'"""
    if text.startswith(label):
        text = text[len(label) :]
    return text.strip()


# ---- internals ----


def _text(item: Tag, selector: str) -> str:
    el = item.select_one(selector)
    if el is None:
        return ""
    return el.get_text().strip()


def _attr(el: Tag | None, name: str) -> str:
    if el is None:
        return ""
    value = el.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        value = " ".join(value)
    return str(value)
