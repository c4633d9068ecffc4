from __future__ import annotations

from datetime import datetime, tzinfo

from . import utils
from .models import JobRecord


def job_message(rec: JobRecord) -> str:
    """
    Per-posting alert in Telegram HTML:

        🚨 <b>New Emergency Job!</b>

        <b>{title}</b>

        🏥 {employer}
        📍 {location}
        💷 {salary}

        <a href="{link}">View Job</a>
    """
    return (
        "🚨 <b>New Emergency Job!</b>\n\n"
        f"<b>{utils.esc(rec.title)}</b>\n\n"
        f"🏥 {utils.esc(rec.employer)}\n"
        f"📍 {utils.esc(rec.location)}\n"
        f"💷 {utils.esc(rec.salary)}\n\n"
        f'<a href="{utils.esc(rec.link)}">View Job</a>'
    )


def summary_message(new_count: int, total_count: int, elapsed_s: float, checked_at: str) -> str:
    """
    End-of-run status. Both variants carry "<new> new out of <total> scraped".
    """
    counts = f"{new_count} new out of {total_count} scraped"
    if new_count > 0:
        status = f"✅ <b>HealthJobs run completed!</b> 🎉 Found {counts} ({elapsed_s:.1f}s)."
    else:
        status = f"✅ <b>HealthJobs run completed.</b> No new postings: {counts} ({elapsed_s:.1f}s). 🕵️"
    return f"{status}\n\n<i>Checked at: {utils.esc(checked_at)}</i>"


def failure_message(exc: BaseException) -> str:
    detail = str(exc) or type(exc).__name__
    return f"❌ <b>HealthJobs Tracker Failed</b>: {utils.esc(detail)}"


def format_checked_at(when: datetime, tz: tzinfo) -> str:
    """
    en-GB style local time, e.g. '05/03/2025, 2:07 pm'.
    """
    local = when.astimezone(tz)
    hour12 = local.hour % 12 or 12
    meridiem = "am" if local.hour < 12 else "pm"
    return f"{local.day:02d}/{local.month:02d}/{local.year}, {hour12}:{local.minute:02d} {meridiem}"
