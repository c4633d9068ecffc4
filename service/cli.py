# service/cli.py
"""
User-facing command-line entrypoints.

Subcommands
-----------
run [MODULE] [--kwargs k=v ...] [--no-notify]
    - Executes one check via runner.run_module_once(...)
    - Exit codes: 0 ok, 1 run failed (after the failure alert), 2 config error

serve
    - Starts the APScheduler loop via service.scheduler.start()
    - Registers signal handlers for graceful shutdown

show [--limit N] [--data-file PATH]
    - Prints the most recently scraped records from the JSON store

validate-config
    - Loads/validates the scheduler config and returns nonzero on error
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import sys
import threading
import time
from collections.abc import Iterable
from datetime import datetime
from types import SimpleNamespace
from typing import Any

from modules.healthjobs_watch.lib import store as _store
from modules.healthjobs_watch.lib.config import ConfigError as _SettingsError
from service import config_schema as _config_schema
from service import logging_utils as L
from service import runner as _runner
from service import scheduler as _scheduler

LOG = logging.getLogger("service.cli")

EXIT_OK = 0
EXIT_RUN_FAILED = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


# ----------------------------- Logging setup ---------------------------------
def _ensure_logging() -> None:
    """Initialize a reasonable logging setup if none exists yet."""
    root = logging.getLogger()
    if not root.handlers:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
        logging.basicConfig(
            level=getattr(logging, level, logging.INFO),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )


# -------------------------- Utility / glue code ------------------------------
def _parse_kv_pairs(pairs: Iterable[str]) -> dict[str, Any]:
    """
    Parse key=value strings into a dict.
    Values that look like JSON (true/false/null/number/object/array) are parsed;
    anything else stays a raw string.
    """
    out: dict[str, Any] = {}
    for raw in pairs:
        if "=" not in raw:
            raise argparse.ArgumentTypeError(f"--kwargs item must be key=value (got {raw!r})")
        k, v = raw.split("=", 1)
        k = k.strip()
        v = v.strip()
        if not k:
            raise argparse.ArgumentTypeError(f"Invalid key in --kwargs item {raw!r}")
        try:
            out[k] = json.loads(v)
        except json.JSONDecodeError:
            out[k] = v
    return out


def _print_table(rows: list[tuple[str, ...]], headers: tuple[str, ...]) -> None:
    """Very simple fixed-width table printer."""
    widths = [max(len(h), *(len(r[i]) for r in rows)) if rows else len(h) for i, h in enumerate(headers)]
    sep = "+-" + "-+-".join("-" * w for w in widths) + "-+"
    print(sep)
    print("| " + " | ".join(h.ljust(w) for h, w in zip(headers, widths)) + " |")
    print(sep)
    for r in rows:
        print("| " + " | ".join(c.ljust(w) for c, w in zip(r, widths)) + " |")
    print(sep)


def _now_iso() -> str:
    return datetime.now().astimezone().isoformat()


def _default_data_file() -> str:
    return os.getenv("HEALTHJOBS_DATA_FILE") or os.path.join(os.getcwd(), "data", "jobs.json")


# ------------------------------ Subcommands ----------------------------------
def cmd_run(args: argparse.Namespace) -> int:
    start_time = time.monotonic()
    kwargs = _parse_kv_pairs(args.kwargs or [])
    if args.no_notify:
        kwargs["ingest_only_no_notify"] = True

    try:
        meta, run_id = _runner.run_module_once(module=args.module, kwargs=kwargs, trigger_type="adhoc")
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    except _SettingsError as e:
        print(f"CONFIG ERROR: {e}", file=sys.stderr)
        L.write_error_log({"ts": _now_iso(), "where": "cli.run", "module": args.module, "error": repr(e)})
        return EXIT_CONFIG
    except Exception as e:
        print(f"FAILURE: {e}", file=sys.stderr)
        L.write_error_log({
            "ts": _now_iso(),
            "where": "cli.run",
            "module": args.module,
            "error": repr(e),
            "duration_ms": int((time.monotonic() - start_time) * 1000),
        })
        return EXIT_RUN_FAILED

    if isinstance(meta, dict):
        print(f"DONE: {meta.get('new_total', 0)} new out of {meta.get('scraped_total', 0)} scraped (run {run_id}).")
    else:
        print(f"DONE: Module run completed (run {run_id}).")
    return EXIT_OK


def cmd_show(args: argparse.Namespace) -> int:
    path = args.data_file or _default_data_file()
    records = list(_store.load(path).values())
    if not records:
        print(f"No stored jobs in {path}")
        return EXIT_OK

    records.sort(key=lambda r: r.scraped_at, reverse=True)
    rows = [(r.scraped_at, r.title, r.employer, r.link) for r in records[: args.limit]]
    _print_table(rows, headers=("SCRAPED AT", "TITLE", "EMPLOYER", "LINK"))
    print(f"{len(records)} job(s) stored in {path}")
    return EXIT_OK


def cmd_validate_config(args: argparse.Namespace) -> int:
    try:
        cfg = _config_schema.load_config(args.config)
        _config_schema.validate(cfg)
    except _config_schema.ConfigError as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return EXIT_RUN_FAILED
    print(f"OK: configuration is valid ({len(cfg['jobs'])} job(s)).")
    return EXIT_OK


def cmd_serve(args: argparse.Namespace) -> int:
    """
    Run the scheduler until a termination signal is received.
    """
    L.write_activity_log({"ts": _now_iso(), "event": "serve_start"})

    stop_event = threading.Event()
    running = SimpleNamespace(sched=None)

    def _graceful_shutdown(signum=None, frame=None):
        LOG.info("Signal %s received; initiating shutdown...", signum)
        stop_event.set()
        if running.sched is not None:
            running.sched.stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _graceful_shutdown)

    try:
        running.sched = _scheduler.start(config_path=args.config)
        LOG.info("Scheduler started: jobs=%s", list(running.sched.get_job_ids()))

        while not stop_event.is_set():
            time.sleep(0.3)

        running.sched.stop()
        running.sched.join(timeout=10.0)
        L.write_activity_log({"ts": _now_iso(), "event": "serve_stop"})
        return EXIT_OK

    except KeyboardInterrupt:
        _graceful_shutdown("KeyboardInterrupt")
        return EXIT_INTERRUPTED
    except _config_schema.ConfigError as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return EXIT_CONFIG
    except Exception as e:
        LOG.exception("Fatal error in serve: %s", e)
        _graceful_shutdown("UnhandledException")
        return EXIT_RUN_FAILED


# ------------------------------- Argparse ------------------------------------
def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="healthjobs-watch",
        description="HealthJobsUK new-posting tracker",
    )
    p.add_argument(
        "--config",
        help="Path to scheduler config (fallbacks to CONFIG_PATH env or the built-in schedule).",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("run", help="Run one check now.")
    sp.add_argument(
        "module",
        nargs="?",
        default=_runner.DEFAULT_MODULE,
        help=f"Module to run (default: {_runner.DEFAULT_MODULE}).",
    )
    sp.add_argument(
        "--kwargs",
        metavar="k=v",
        nargs="*",
        help="Extra keyword arguments for the module (JSON values supported).",
    )
    sp.add_argument(
        "--no-notify",
        action="store_true",
        help="Scrape and update the store without sending Telegram messages.",
    )
    sp.set_defaults(func=cmd_run)

    sp = sub.add_parser("serve", help="Run checks on the configured schedule.")
    sp.set_defaults(func=cmd_serve)

    sp = sub.add_parser("show", help="Print the most recently scraped stored jobs.")
    sp.add_argument("--limit", type=int, default=15, help="Rows to print (default 15).")
    sp.add_argument("--data-file", help="Store path (default HEALTHJOBS_DATA_FILE or ./data/jobs.json).")
    sp.set_defaults(func=cmd_show)

    sp = sub.add_parser("validate-config", help="Verify scheduler configuration.")
    sp.set_defaults(func=cmd_validate_config)

    return p


# --------------------------------- Main --------------------------------------
def main(argv: Iterable[str] | None = None) -> int:
    _ensure_logging()
    parser = _build_parser()
    args = parser.parse_args(args=list(argv) if argv is not None else None)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
