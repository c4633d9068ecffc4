from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping

from .models import JobRecord, RecordStore

log = logging.getLogger(__name__)

# ---- Public API -------------------------------------------------------------


def load(path: str) -> RecordStore:
    """
    Read the persisted records into an insertion-ordered {id: JobRecord}.

    A missing file, invalid JSON, or a top-level value that is not a list all
    mean "first run" and yield an empty store. Entries that are not objects or
    have no id are skipped; a later duplicate id replaces an earlier one.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        log.warning("Ignoring unreadable store %s: %s", path, e)
        return {}

    if not isinstance(data, list):
        log.warning("Ignoring store %s: expected a JSON list, got %s", path, type(data).__name__)
        return {}

    out: RecordStore = {}
    for item in data:
        if not isinstance(item, dict):
            continue
        rec = JobRecord.from_dict(item)
        if not rec.id:
            continue
        out[rec.id] = rec
    return out


def save(path: str, store: Mapping[str, JobRecord]) -> None:
    """
    Overwrite `path` with the whole store as a pretty-printed JSON list.
    Parent directories are created first. Errors propagate to the caller.
    """
    _ensure_dir(path)
    payload = [rec.to_dict() for rec in store.values()]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
        f.write("\n")


def count_records(path: str) -> int:
    """Return number of stored records; 0 if the file is missing/unreadable."""
    return len(load(path))


# ---- Internal utilities -----------------------------------------------------


def _ensure_dir(path: str) -> None:
    d = os.path.dirname(os.path.abspath(path)) or "."
    os.makedirs(d, exist_ok=True)
