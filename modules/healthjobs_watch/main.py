from __future__ import annotations

from typing import Any

from .lib.config import Settings
from .lib.engine import run_once as _run_engine
from .lib.logging_bridge import activity as log_activity


def run(**kwargs: Any) -> dict[str, Any]:
    """
    Entry point for the 'healthjobs_watch' module. Callable with no arguments.

    Accepts optional kwargs (from scheduler/runner/CLI) overriding env:
      bot_token, chat_id: str          # default TELEGRAM_BOT_TOKEN / TELEGRAM_CHAT_ID
      data_file: str = "./data/jobs.json"
      search_url, base_url: str
      headless: bool                   # default: CI == "true"
      timezone: str = "Europe/London"

      # Special-run flags:
      skip_network: bool = False
      ingest_only_no_notify: bool = False

    Returns:
      Meta dict from the engine (counts, new ids, summary message).

    Raises:
      ConfigError before anything is launched if credentials are missing.
    """
    settings = Settings.from_env_and_kwargs(kwargs)

    log_activity({
        "component": "healthjobs_watch.main",
        "op": "configured",
        "headless": settings.headless,
        "data_file": settings.data_file,
    })

    return _run_engine(settings)
