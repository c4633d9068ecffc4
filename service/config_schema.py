from __future__ import annotations

import json
import logging
import os
import re
from typing import Any

import yaml

from service.runner import DEFAULT_MODULE

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when the scheduler config is invalid."""


_TRIGGER_FIELDS = ("cron", "interval", "daily_time")
_INTERVAL_INT_FIELDS = ("weeks", "days", "hours", "minutes", "seconds", "jitter")
_DAILY_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")

# Used when no config file is given: check every 30 minutes.
DEFAULT_JOB: dict[str, Any] = {
    "id": "healthjobs-watch",
    "module": DEFAULT_MODULE,
    "trigger": {"interval": {"minutes": 30}},
    "summary": "HealthJobsUK emergency medicine tracker",
}


def load_config(path: str | None = None) -> dict[str, Any]:
    """
    Load the scheduler configuration.

    Resolution order:
      1) Explicit `path` argument (if provided)
      2) os.environ['CONFIG_PATH'] (if set)
      3) Built-in default: one healthjobs_watch job every 30 minutes

    Returns:
        dict with {"timezone": str, "jobs": [...]}; every job has an "id".
    """
    resolved_path = path or os.environ.get("CONFIG_PATH")
    if not resolved_path:
        logger.info("CONFIG_PATH not provided; using default schedule.")
        cfg: dict[str, Any] = {"jobs": [dict(DEFAULT_JOB)]}
    else:
        cfg = _read_any(resolved_path)

    _apply_top_level_defaults(cfg)
    return cfg


def validate(cfg: dict[str, Any]) -> None:
    """
    Validate the configuration. Raise ConfigError on any problem.
    No prints, no sys.exit().
    """
    if not isinstance(cfg, dict):
        raise ConfigError("Config must be a dict.")

    jobs = cfg.get("jobs")
    if not isinstance(jobs, list):
        raise ConfigError("'jobs' must be a list.")

    tz = cfg.get("timezone")
    if tz is not None and not isinstance(tz, str):
        raise ConfigError("'timezone' must be a string if provided.")

    seen_ids: set[str] = set()
    for idx, job in enumerate(jobs):
        if not isinstance(job, dict):
            raise ConfigError(f"Job at index {idx} must be an object/dict.")

        module = job.get("module")
        if not isinstance(module, str) or not module.strip():
            raise ConfigError(f"Job {idx}: 'module' is required and must be a non-empty string.")

        job_id = _derive_job_id(job, idx)
        if job_id in seen_ids:
            raise ConfigError(f"Duplicate job id '{job_id}'.")
        seen_ids.add(job_id)

        trigger = job.get("trigger")
        if not isinstance(trigger, dict):
            raise ConfigError(f"Job '{job_id}': 'trigger' must be an object.")
        present = [k for k in _TRIGGER_FIELDS if trigger.get(k) is not None]
        if len(present) != 1:
            raise ConfigError(f"Job '{job_id}': exactly one trigger required among {', '.join(_TRIGGER_FIELDS)}.")

        kind = present[0]
        value = trigger[kind]
        if kind == "interval":
            if not isinstance(value, dict):
                raise ConfigError(f"Job '{job_id}': interval must be an object of time kwargs.")
            for k, v in value.items():
                if k == "timezone":
                    if not isinstance(v, str) or not v.strip():
                        raise ConfigError(f"Job '{job_id}': 'interval.timezone' must be a non-empty string.")
                elif k in _INTERVAL_INT_FIELDS:
                    _to_int(v, field=f"interval.{k}", job_id=job_id, allow_zero=True)
                else:
                    raise ConfigError(f"Job '{job_id}': interval has unknown field '{k}'.")
        elif kind == "cron" and not isinstance(value, (str, dict)):
            raise ConfigError(f"Job '{job_id}': cron must be a crontab string or an object.")
        elif kind == "daily_time":
            times = value.get("time") if isinstance(value, dict) else value
            for t in [times] if isinstance(times, str) else list(times or []):
                _validate_daily_time(t, job_id)
            if not times:
                raise ConfigError(f"Job '{job_id}': daily_time requires at least one 'HH:MM'.")

        if "kwargs" in job and not isinstance(job["kwargs"], dict):
            raise ConfigError(f"Job '{job_id}': 'kwargs' must be a dict if provided.")
        if "timeout_sec" in job:
            _to_int(job["timeout_sec"], field="timeout_sec", job_id=job_id, allow_zero=False)


def _apply_top_level_defaults(cfg: dict[str, Any]) -> None:
    if "jobs" not in cfg or not isinstance(cfg["jobs"], list):
        cfg["jobs"] = []

    tz = cfg.get("timezone")
    if not isinstance(tz, str) or not tz.strip():
        cfg["timezone"] = os.environ.get("TZ", "Europe/London")

    normalized: list[dict[str, Any]] = []
    for idx, job in enumerate(cfg["jobs"]):
        if not isinstance(job, dict):
            raise ConfigError(f"Job at index {idx} must be an object/dict.")
        job_copy = dict(job)
        job_copy.setdefault("module", DEFAULT_MODULE)
        job_copy["id"] = _derive_job_id(job_copy, idx)
        normalized.append(job_copy)
    cfg["jobs"] = normalized


def _derive_job_id(job: dict[str, Any], idx: int) -> str:
    # id | name | module → id
    for key in ("id", "name", "module"):
        v = job.get(key)
        if isinstance(v, str) and v.strip():
            return v.strip()
    return f"job_{idx}"


def _validate_daily_time(value: Any, job_id: str) -> None:
    if not isinstance(value, str):
        raise ConfigError(f"Job '{job_id}': daily_time entries must be strings like 'HH:MM'.")
    m = _DAILY_TIME_RE.match(value.strip())
    if not m:
        raise ConfigError(f"Job '{job_id}': daily_time {value!r} must match HH:MM (24h).")
    hour, minute = int(m.group(1)), int(m.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ConfigError(f"Job '{job_id}': daily_time {value!r} out of range (00:00..23:59).")


def _to_int(value: Any, *, field: str, job_id: str, allow_zero: bool) -> int:
    try:
        iv = int(value)
    except (TypeError, ValueError) as err:
        raise ConfigError(f"Job '{job_id}': '{field}' must be an integer.") from err
    if iv < 0 or (iv == 0 and not allow_zero):
        raise ConfigError(f"Job '{job_id}': '{field}' must be >= {'0' if allow_zero else '1'} (got {iv}).")
    return iv


def _read_any(path: str) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {path}: {e}") from e

    if path.lower().endswith((".yml", ".yaml")):
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Top-level config in {path} must be a mapping/object.")
    return data
