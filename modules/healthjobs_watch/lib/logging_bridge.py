from __future__ import annotations

import copy
import logging
from typing import Any

from service import logging_utils

# Keys that should be redacted before a record leaves this module
_REDACT_KEYS = {
    "token",
    "bot_token",
    "telegram_bot_token",
    "apikey",
    "api_key",
    "secret",
    "authorization",
    "auth",
    "bearer",
}


def _redact_record(record: dict[str, Any]) -> dict[str, Any]:
    """
    Shallow-copy record and redact obvious secret-like fields at top level.
    logging_utils applies a deeper pass on top of this.
    """
    redacted = copy.copy(record)
    for k in list(redacted.keys()):
        lk = str(k).lower()
        if lk in _REDACT_KEYS or lk.startswith("telegram_") or lk.endswith("_secret"):
            redacted[k] = "***REDACTED***"
    return redacted


def activity(record: dict[str, Any]) -> None:
    """
    Write an activity record to the JSONL activity log.
    Falls back to stdlib logging if the log file cannot be written.
    """
    payload = _redact_record(record)
    try:
        logging_utils.write_activity_log(payload)
        return
    except (OSError, TypeError, ValueError):
        pass
    logging.getLogger("healthjobs_watch.activity").info(payload)


def error(record: dict[str, Any]) -> None:
    """
    Write an error record to the JSONL error log.
    Falls back to stdlib logging if the log file cannot be written.
    """
    payload = _redact_record(record)
    try:
        logging_utils.write_error_log(payload)
        return
    except (OSError, TypeError, ValueError):
        pass
    logging.getLogger("healthjobs_watch.error").error(payload)
