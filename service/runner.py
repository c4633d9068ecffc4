# service/runner.py
from __future__ import annotations

import importlib
import json
import logging
import os
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime, timezone
from typing import Any

from service.logging_utils import write_activity_log

DEFAULT_MODULE = "modules.healthjobs_watch"

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def now_iso() -> str:
    return datetime.now(timezone.utc).astimezone().isoformat(timespec="seconds")


def _maybe_bool(v: Any) -> Any:
    if isinstance(v, str):
        low = v.strip().lower()
        if low in ("true", "t", "yes", "y"):
            return True
        if low in ("false", "f", "no", "n"):
            return False
    return v


def _maybe_number(v: Any) -> Any:
    if isinstance(v, str):
        s = v.strip()
        if s and (s.isdigit() or (s.startswith("-") and s[1:].isdigit())):
            return int(s)
        try:
            return float(s)
        except ValueError:
            pass
    return v


def _normalize_kwargs_types(kwargs: dict[str, object] | None) -> dict[str, object]:
    """
    Normalize module kwargs:

      • Keys ending with "_env": the string value is an ENV VAR NAME;
        replace it with os.getenv(<name>, "") and drop the suffix
        (e.g. {"chat_id_env": "OTHER_CHAT"} -> {"chat_id": "..."}).

      • All other string values: parse JSON-looking values ({...} / [...]),
        else coerce common bool/number forms. Non-strings pass through.

    This runs right before module.run(**kwargs).
    """
    if not kwargs:
        return {}

    normalized: dict[str, object] = {}
    for k, v in kwargs.items():
        if isinstance(k, str) and k.endswith("_env") and isinstance(v, str):
            normalized[k[: -len("_env")]] = os.getenv(v.strip(), "")
            continue

        if isinstance(v, str):
            s = v.strip()
            if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
                try:
                    normalized[k] = json.loads(s)
                    continue
                except json.JSONDecodeError:
                    pass
            normalized[k] = _maybe_number(_maybe_bool(s))
        else:
            normalized[k] = v

    return normalized


def _resolve_callable(module_path: str) -> Callable[..., Any]:
    """Import module and return its `run` callable."""
    mod = importlib.import_module(module_path)
    if not hasattr(mod, "run") or not callable(mod.run):
        raise AttributeError(f"Module {module_path!r} does not define a callable `run(**kwargs)`.")
    return mod.run  # type: ignore[no-any-return]


def _emit_activity(record: dict[str, Any]) -> None:
    """Write the run record; a logging failure must not mask the run outcome."""
    try:
        write_activity_log(record)
    except (OSError, TypeError, ValueError) as e:
        log.error("Failed to write activity JSONL: %s", e)


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------
def run_module_once(
    module: str = DEFAULT_MODULE,
    kwargs: dict[str, object] | None = None,
    trigger_type: str = "adhoc",
    job_context: dict[str, object] | None = None,  # e.g., {"job_id": "...", "now_iso": "..."}
    timeout_sec: int | None = None,
) -> tuple[Any, str]:
    """
    Execute a module's run(**kwargs) once.

    Returns:
        (module_result, run_id)
    Raises:
        Propagates exceptions from module execution (caller/CLI maps exit codes).
    """
    run_id = uuid.uuid4().hex
    context: dict[str, Any] = {
        "run_id": run_id,
        "module": module,
        "trigger_type": trigger_type,
        "started_at": now_iso(),
    }
    if job_context:
        context.update({k: v for k, v in job_context.items() if k not in context})

    kw = _normalize_kwargs_types(kwargs)
    run_callable = _resolve_callable(module)

    value: Any = None
    exc: BaseException | None = None

    def _invoke() -> Any:
        return run_callable(**kw)

    t0 = datetime.now()
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="runner")
    fut = pool.submit(_invoke)
    try:
        value = fut.result(timeout=timeout_sec) if timeout_sec else fut.result()
    except FutureTimeout as e:
        # On 3.11+ this is the builtin TimeoutError, which the module may raise itself.
        if timeout_sec and not fut.done():
            exc = TimeoutError(f"Module run timed out after {timeout_sec}s")
        else:
            exc = e
    except Exception as e:
        exc = e
    finally:
        # A timed-out worker keeps running; don't block the caller on it.
        pool.shutdown(wait=fut.done())
    duration_ms = int((datetime.now() - t0).total_seconds() * 1000)

    if exc is not None:
        message = str(exc)
    elif isinstance(value, dict):
        message = str(value.get("message", "OK"))
    else:
        message = "OK"

    _emit_activity({
        "ts": now_iso(),
        "run_id": run_id,
        "module": module,
        "trigger_type": trigger_type,
        "ok": exc is None,
        "message": message,
        "exception_type": type(exc).__name__ if exc else None,
        "duration_ms": duration_ms,
        "context": context,
        "kwargs": kw,
        "meta": value if isinstance(value, dict) else {},
    })

    if exc:
        raise exc
    return value, run_id
