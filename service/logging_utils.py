# service/logging_utils.py
from __future__ import annotations

import contextlib
import datetime as _dt
import json
import os
import socket
from collections.abc import Iterable
from typing import Any

# ---- Configuration (env-driven, read at call time) --------------------------
#
#   LOG_DIR                 base directory for JSONL logs (default ./local/logs)
#   ACTIVITY_LOG_PREFIX     default "activity"
#   ERROR_LOG_PREFIX        default "error"
#   ACTIVITY_LOG_MAX_BYTES  size-based rotation; <=0 disables (default 0)
#
# Date-based rotation is always on via YYYY-MM-DD filenames.

_REDACTED = "***REDACTED***"

# Case-insensitive substrings; any key containing one is scrubbed.
_DEFAULT_REDACT_KEYS = {
    "password",
    "token",
    "apikey",
    "api_key",
    "secret",
    "authorization",
    "cookie",
    "set-cookie",
}

# Host + process metadata (fixed per-process)
_HOSTNAME = socket.gethostname()
_PID = os.getpid()


# ---- Public API --------------------------------------------------------------


def write_activity_log(record: dict[str, Any]) -> None:
    """
    Persist a single structured activity record (JSON-safe).

    May raise on unrecoverable I/O/serialization errors.
    Never mutates the passed-in dict.
    """
    _write_jsonl(_log_path_for_today(_activity_prefix()), record)


def write_error_log(record: dict[str, Any]) -> None:
    """Persist a single structured error record (JSON-safe), parallel to activity log."""
    _write_jsonl(_log_path_for_today(_error_prefix()), record)


def get_activity_log_path() -> str:
    """Return the current day's activity log path (<prefix>-YYYY-MM-DD.jsonl)."""
    return _log_path_for_today(_activity_prefix())


def get_error_log_path() -> str:
    return _log_path_for_today(_error_prefix())


def redact(record: dict[str, Any], keys: set[str] | None = None) -> dict[str, Any]:
    """
    Produce a redacted deep copy of `record` by scrubbing values whose KEYS
    contain any of the substrings in `keys` (case-insensitive). Does not mutate input.
    """
    return _redact_deep(record, keys or _DEFAULT_REDACT_KEYS)


# ---- Internal helpers --------------------------------------------------------


def _log_dir() -> str:
    return os.getenv("LOG_DIR") or os.path.join(os.getcwd(), "local", "logs")


def _activity_prefix() -> str:
    return os.getenv("ACTIVITY_LOG_PREFIX", "activity")


def _error_prefix() -> str:
    return os.getenv("ERROR_LOG_PREFIX", "error")


def _max_bytes() -> int:
    try:
        return int(os.getenv("ACTIVITY_LOG_MAX_BYTES", "0"))
    except ValueError:
        return 0


def _log_path_for_today(prefix: str) -> str:
    today = _dt.date.today().isoformat()  # YYYY-MM-DD
    return os.path.join(_log_dir(), f"{prefix}-{today}.jsonl")


def _ensure_dir(path: str) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)


def _rotate_file_if_needed(path: str) -> None:
    """
    Size-based rotation only; the date already rotates via the filename.
    """
    max_bytes = _max_bytes()
    if max_bytes <= 0:
        return
    try:
        if os.path.getsize(path) < max_bytes:
            return
    except FileNotFoundError:
        return
    ts = _dt.datetime.now().strftime("%Y%m%d-%H%M%S")
    with contextlib.suppress(FileNotFoundError):
        os.replace(path, f"{path}.{ts}")


def _key_matches(name: str, patterns: Iterable[str]) -> bool:
    n = name.lower()
    return any(pat in n for pat in patterns)


def _scrub_secrets_in_text(value: str) -> str:
    """
    Scrub bearer tokens and Telegram bot tokens embedded in URLs
    ('.../bot123456:ABC.../sendMessage').
    """
    lower = value.lower()
    if "bearer " in lower:
        try:
            scheme, _ = value.split(" ", 1)
        except ValueError:
            return _REDACTED
        return f"{scheme} {_REDACTED}"
    marker = "api.telegram.org/bot"
    idx = lower.find(marker)
    if idx >= 0:
        start = idx + len(marker)
        end = value.find("/", start)
        return value[:start] + _REDACTED + (value[end:] if end >= 0 else "")
    return value


def _redact_deep(value: Any, patterns: Iterable[str]) -> Any:
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            if isinstance(k, str) and _key_matches(k, patterns):
                out[k] = _REDACTED
            else:
                out[k] = _redact_deep(v, patterns)
        return out
    if isinstance(value, list):
        return [_redact_deep(v, patterns) for v in value]
    if isinstance(value, tuple):
        return tuple(_redact_deep(v, patterns) for v in value)
    if isinstance(value, str):
        return _scrub_secrets_in_text(value)
    return value


def _with_metadata(record: dict[str, Any]) -> dict[str, Any]:
    meta = record.get("_meta", {})
    if not isinstance(meta, dict):
        meta = {}
    out = dict(record)
    out["_meta"] = {**meta, "host": _HOSTNAME, "pid": _PID}
    return out


def _write_jsonl(path: str, record: dict[str, Any]) -> None:
    """
    Core writer:
      - makes a deep redacted copy, enriched with host/pid
      - serializes before touching the file
      - rotates by size (optional)
      - appends a single line with O_APPEND
      - retries once on transient OSError
    """
    payload = _with_metadata(_redact_deep(record, _DEFAULT_REDACT_KEYS))
    data = (json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str) + "\n").encode("utf-8")

    flags = os.O_CREAT | os.O_APPEND | os.O_WRONLY

    def _append_once() -> None:
        _ensure_dir(path)
        _rotate_file_if_needed(path)
        fd = os.open(path, flags, 0o644)
        try:
            os.write(fd, data)
        finally:
            os.close(fd)

    try:
        _append_once()
    except OSError:
        _append_once()
