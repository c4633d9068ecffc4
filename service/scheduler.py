# service/scheduler.py
from __future__ import annotations

import logging
import threading
import time as _time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Any

import pytz
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.combining import OrTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from . import config_schema, runner
from .logging_utils import write_activity_log

LOG = logging.getLogger(__name__)


# ---- Internal structures ----------------------------------------------------


@dataclass(frozen=True)
class JobSpec:
    id: str
    trigger: Any  # apscheduler.triggers.base.BaseTrigger
    module: str
    kwargs: dict[str, Any]
    timeout_sec: int | None
    summary: str | None


# ---- Public controller ------------------------------------------------------


class SchedulerController:
    """
    A small façade around APScheduler so the CLI can manage lifecycle cleanly.
    """

    def __init__(self, scheduler: BackgroundScheduler) -> None:
        self._scheduler = scheduler
        self._stopped_evt = threading.Event()

    def stop(self) -> None:
        if self._scheduler.running:
            LOG.info("Shutting down scheduler...")
            # wait=False -> stop immediately; an in-flight run is allowed to finish.
            self._scheduler.shutdown(wait=False)
        self._stopped_evt.set()

    def join(self, timeout: float | None = None) -> bool:
        """True if stopped before `timeout`."""
        return self._stopped_evt.wait(timeout=timeout)

    def get_job_ids(self) -> Iterable[str]:
        return (job.id for job in self._scheduler.get_jobs())


# ---- Module API -------------------------------------------------------------


def start(config_path: str | None = None) -> SchedulerController:
    """
    Load configuration, build a BackgroundScheduler, add jobs, and start.

    Every job runs with max_instances=1 and coalesce=True: a check never
    overlaps the previous one, and missed fire times collapse into one run.
    """
    cfg = config_schema.load_config(config_path)
    config_schema.validate(cfg)
    tz = _resolve_timezone(cfg)

    scheduler = BackgroundScheduler(
        timezone=tz,
        job_defaults={"coalesce": True, "max_instances": 1},
        executors={"default": ThreadPoolExecutor(2)},
        jobstores={"default": MemoryJobStore()},
    )

    for raw in cfg["jobs"]:
        _add_job(scheduler, _make_job_spec(raw, tz))

    scheduler.start()
    LOG.info("Scheduler started with %d job(s).", len(scheduler.get_jobs()))
    return SchedulerController(scheduler)


# ---- Helpers ----------------------------------------------------------------


def _resolve_timezone(cfg: dict[str, Any]) -> Any:
    tz_name = cfg.get("timezone") or "UTC"
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        LOG.warning("Falling back to UTC timezone (invalid tz '%s')", tz_name)
        return pytz.UTC


def _make_job_spec(raw: dict[str, Any], tz: Any) -> JobSpec:
    return JobSpec(
        id=str(raw["id"]),
        trigger=_build_trigger(raw["trigger"], tz),
        module=str(raw.get("module") or runner.DEFAULT_MODULE),
        kwargs=dict(raw.get("kwargs") or {}),
        timeout_sec=int(raw["timeout_sec"]) if raw.get("timeout_sec") else None,
        summary=raw.get("summary") or raw.get("description"),
    )


def _build_trigger(trig_def: dict[str, Any], tz: Any) -> Any:
    """
    Build an APScheduler trigger from a dict.

    Supported shapes:
      {"interval": {weeks|days|hours|minutes|seconds, jitter?, timezone?}}
      {"cron":     {second?, minute?, hour?, day?, day_of_week?, month?, jitter?, timezone?}}
      {"cron":     "*/30 7-22 * * *"}
      {"daily_time": {"time": "HH:MM[:SS]" | ["..."], "day_of_week"?: "...", "timezone"?: "..."}}
      {"daily_time": "HH:MM"}

    A block-level 'timezone' wins over the scheduler tz.
    """
    if not isinstance(trig_def, dict):
        raise ValueError("trigger spec must be a dict")

    def _tz(z: Any) -> Any:
        if not z:
            return None
        return pytz.timezone(z) if isinstance(z, str) else z

    default_tz = _tz(tz)

    present = [k for k in ("interval", "cron", "daily_time") if trig_def.get(k) is not None]
    if len(present) != 1:
        raise ValueError("exactly one of {'interval','cron','daily_time'} must be provided")
    kind = present[0]

    # ---------- INTERVAL ----------
    if kind == "interval":
        spec = trig_def["interval"]
        if not isinstance(spec, dict):
            raise ValueError("interval must be an object with time fields")
        allowed = {"weeks", "days", "hours", "minutes", "seconds", "jitter", "timezone"}
        unknown = set(spec) - allowed
        if unknown:
            raise ValueError(f"interval has unknown field(s): {sorted(unknown)}")

        iv = {k: int(spec.get(k) or 0) for k in ("weeks", "days", "hours", "minutes", "seconds")}
        if any(v < 0 for v in iv.values()):
            raise ValueError("interval fields must be >= 0")
        if sum(iv.values()) == 0:
            raise ValueError("interval must be greater than 0 (provide at least one nonzero time field)")

        kwargs: dict[str, Any] = {k: v for k, v in iv.items() if v}
        if spec.get("jitter"):
            kwargs["jitter"] = int(spec["jitter"])
        return IntervalTrigger(timezone=_tz(spec.get("timezone")) or default_tz, **kwargs)

    # ---------- CRON ----------
    if kind == "cron":
        cron_spec = trig_def["cron"]
        if isinstance(cron_spec, str):
            fields = cron_spec.strip().split()
            if len(fields) != 5:
                raise ValueError(f"cron string must have 5 fields (got {len(fields)}): {cron_spec!r}")
            return CronTrigger.from_crontab(cron_spec, timezone=default_tz)
        if isinstance(cron_spec, dict):
            allowed = {"second", "minute", "hour", "day", "day_of_week", "month", "timezone", "jitter"}
            unknown = set(cron_spec) - allowed
            if unknown:
                raise ValueError(f"cron has unknown field(s): {sorted(unknown)}")
            return CronTrigger(
                second=cron_spec.get("second", 0),
                minute=cron_spec.get("minute", 0),
                hour=cron_spec.get("hour"),
                day=cron_spec.get("day"),
                day_of_week=cron_spec.get("day_of_week"),
                month=cron_spec.get("month"),
                jitter=cron_spec.get("jitter"),
                timezone=_tz(cron_spec.get("timezone")) or default_tz,
            )
        raise ValueError("cron must be a crontab string or an object")

    # ---------- DAILY TIME ----------
    dtdef = trig_def["daily_time"]
    if isinstance(dtdef, str):
        dtdef = {"time": dtdef}
    if not isinstance(dtdef, dict):
        raise ValueError("daily_time must be a string or an object")
    unknown = set(dtdef) - {"time", "day_of_week", "timezone"}
    if unknown:
        raise ValueError(f"daily_time has unknown field(s): {sorted(unknown)}")

    tzinfo = _tz(dtdef.get("timezone")) or default_tz
    times = dtdef.get("time")
    if not times:
        raise ValueError("daily_time requires 'time'")
    if isinstance(times, str):
        times = [times]

    def _parse_time(s: str) -> tuple[int, int, int]:
        parts = s.split(":")
        if len(parts) not in (2, 3):
            raise ValueError(f"daily_time.time must be 'HH:MM' or 'HH:MM:SS', got {s!r}")
        hh, mm = int(parts[0]), int(parts[1])
        ss = int(parts[2]) if len(parts) == 3 else 0
        time(hh, mm, ss)  # validates ranges
        return hh, mm, ss

    per_time = [
        CronTrigger(second=s, minute=m, hour=h, day_of_week=dtdef.get("day_of_week"), timezone=tzinfo)
        for h, m, s in sorted({_parse_time(str(t)) for t in times})
    ]
    return per_time[0] if len(per_time) == 1 else OrTrigger(per_time)


def _add_job(scheduler: BackgroundScheduler, spec: JobSpec) -> None:
    """
    Register the job with a wrapper that runs the module via
    ``runner.run_module_once()`` and records start/finish + duration.
    A failed run is logged; the scheduler keeps going.
    """

    def _job_wrapper() -> None:
        started = _time.monotonic()
        LOG.info("Job[%s] starting (module=%s)", spec.id, spec.module)
        try:
            runner.run_module_once(
                spec.module,
                kwargs=dict(spec.kwargs),
                trigger_type="scheduled",
                job_context=_build_job_context(spec),
                timeout_sec=spec.timeout_sec,
            )
        except Exception:
            LOG.exception("Job[%s] raised an exception.", spec.id)
            _write_activity(spec, status="error", duration_s=_time.monotonic() - started)
            return

        duration = _time.monotonic() - started
        LOG.info("Job[%s] finished in %.3fs", spec.id, duration)
        _write_activity(spec, status="ok", duration_s=duration)

    scheduler.add_job(
        func=_job_wrapper,
        trigger=spec.trigger,
        id=spec.id,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )

    job = scheduler.get_job(spec.id)
    nrt = getattr(job, "next_run_time", None) if job else None
    LOG.info("Registered job[%s] (module=%s) next_run_time=%s", spec.id, spec.module, nrt)


def _write_activity(spec: JobSpec, status: str, duration_s: float) -> None:
    """Best-effort activity record; never fails the job."""
    try:
        write_activity_log({
            "ts": datetime.now(timezone.utc).isoformat(),
            "source": "scheduler",
            "event": "job_run",
            "fields": {
                "job_id": spec.id,
                "module": spec.module,
                "status": status,
                "duration_ms": int(duration_s * 1000),
                "summary": spec.summary,
            },
        })
    except (OSError, TypeError, ValueError):
        LOG.debug("write_activity_log failed for job[%s]", spec.id, exc_info=True)


def _build_job_context(spec: JobSpec) -> dict:
    return {
        "job_id": spec.id,
        "module": spec.module,
        "now_iso": datetime.now(timezone.utc).isoformat(),
    }
