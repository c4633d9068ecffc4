from __future__ import annotations

import html
import re
from datetime import datetime, timezone
from typing import Any

_HTML_ESCAPE_QUOTE = True  # keep quotes escaped for href attributes

_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")


def esc(s: str | None) -> str:
    """
    Escape text for Telegram's HTML parse mode. Do NOT wrap or add tags.
    """
    if s is None:
        return ""
    return html.escape(str(s), quote=_HTML_ESCAPE_QUOTE)


def truthy(v: Any) -> bool:
    """
    Normalize common truthy inputs from env/kwargs.
    Accepts bools or strings like: '1', 'true', 'yes', 'on'.
    """
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    if isinstance(v, (int, float)):
        return v != 0
    s = str(v).strip().lower()
    return s in {"1", "true", "yes", "on", "y", "t"}


def now_iso() -> str:
    """
    UTC ISO-8601 timestamp with 'Z' suffix.
    """
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def slugify_title(title: str) -> str:
    """
    'Clinical Fellow (ED) - ST3+' -> 'clinical-fellow-ed-st3-'

    Edge hyphens are kept; two postings with the same title share a slug.
    """
    return _NON_ALNUM_RUN.sub("-", title.lower())
