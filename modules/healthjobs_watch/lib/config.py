from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pytz
from dotenv import load_dotenv

from .utils import truthy

log = logging.getLogger(__name__)

DEFAULT_SEARCH_URL = (
    "https://www.healthjobsuk.com/job_list?JobSearch_q=&JobSearch_d=534&JobSearch_g="
    "&JobSearch_re=_POST&JobSearch_re_0=1&JobSearch_re_1=1-_-_-&JobSearch_re_2=1-_-_--_-_-"
    "&JobSearch_Submit=Search&_tr=JobSearch&_ts=21248"
)
DEFAULT_BASE_URL = "https://www.healthjobsuk.com"
DEFAULT_TIMEZONE = "Europe/London"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


# -----------------------------
# Exceptions
# -----------------------------
class ConfigError(ValueError):
    """Raised when provided kwargs/env cannot form a valid Settings."""


# -----------------------------
# Models
# -----------------------------
@dataclass(frozen=True)
class Selectors:
    """
    CSS selectors for the HealthJobsUK results page.
    `item` matches one listing; every other selector is relative to it.
    """

    item: str = "li.hj-job"
    link: str = "a"
    title: str = ".hj-jobtitle"
    grade: str = ".hj-grade"
    employer: str = ".hj-employername"
    location: str = ".hj-locationtown"
    speciality: str = ".hj-primaryspeciality"
    salary: str = ".hj-salary"


@dataclass
class Settings:
    """
    Canonical configuration for a 'healthjobs_watch' run.

    Built once by the entry point and handed to every component; nothing
    below this object reads the environment.
    """

    # Telegram destination (both required)
    bot_token: str = field(default="", repr=False)
    chat_id: str = ""

    # Target site
    search_url: str = DEFAULT_SEARCH_URL
    base_url: str = DEFAULT_BASE_URL
    selectors: Selectors = field(default_factory=Selectors)

    # Browser
    headless: bool = False
    navigation_timeout_ms: int = 60_000
    listing_timeout_ms: int = 15_000
    user_agent: str = DEFAULT_USER_AGENT
    viewport_width: int = 1366
    viewport_height: int = 768

    # State + reporting
    data_file: str = "data/jobs.json"
    timezone: str = DEFAULT_TIMEZONE
    notify_timeout_s: float = 15.0

    # Special-run flags
    skip_network: bool = False
    ingest_only_no_notify: bool = False

    # ------------- convenience -------------
    def tzinfo(self) -> Any:
        return pytz.timezone(self.timezone)

    # ------------- constructors -------------
    @classmethod
    def from_env_and_kwargs(
        cls,
        kwargs: Mapping[str, Any] | None,
        env: Mapping[str, str] | None = None,
    ) -> Settings:
        """
        Build Settings from kwargs with validation; kwargs win over env.

        Env (a local .env file is loaded first when `env` is not given):
            TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID   required
            HEADLESS                               explicit override
            CI                                     headless when truthy
            HEALTHJOBS_SEARCH_URL, HEALTHJOBS_BASE_URL
            HEALTHJOBS_DATA_FILE                   default ./data/jobs.json
            HEALTHJOBS_TZ                          explicit timezone (validated)
            TZ                                     used only if it is an IANA name

        Kwargs (all optional):
            bot_token, chat_id, search_url, base_url, data_file, timezone,
            headless, navigation_timeout_ms, listing_timeout_ms,
            notify_timeout_s, skip_network, ingest_only_no_notify
        """
        if env is None:
            load_dotenv()
            env = os.environ
        kw = dict(kwargs or {})

        def _pick(key: str, *env_names: str, default: str = "") -> str:
            if kw.get(key) not in (None, ""):
                return str(kw[key]).strip()
            for name in env_names:
                v = env.get(name)
                if v:
                    return v.strip()
            return default

        if kw.get("headless") is not None:
            headless = truthy(kw["headless"])
        elif env.get("HEADLESS"):
            headless = truthy(env["HEADLESS"])
        else:
            headless = str(env.get("CI", "")).strip().lower() == "true"

        try:
            navigation_timeout_ms = int(_given(kw, "navigation_timeout_ms", 60_000))
            listing_timeout_ms = int(_given(kw, "listing_timeout_ms", 15_000))
            notify_timeout_s = float(_given(kw, "notify_timeout_s", 15.0))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid timeout value: {e}") from e

        settings = cls(
            bot_token=_pick("bot_token", "TELEGRAM_BOT_TOKEN"),
            chat_id=_pick("chat_id", "TELEGRAM_CHAT_ID"),
            search_url=_pick("search_url", "HEALTHJOBS_SEARCH_URL", default=DEFAULT_SEARCH_URL),
            base_url=_pick("base_url", "HEALTHJOBS_BASE_URL", default=DEFAULT_BASE_URL).rstrip("/"),
            headless=headless,
            navigation_timeout_ms=navigation_timeout_ms,
            listing_timeout_ms=listing_timeout_ms,
            data_file=_pick(
                "data_file",
                "HEALTHJOBS_DATA_FILE",
                default=os.path.join(os.getcwd(), "data", "jobs.json"),
            ),
            timezone=_pick("timezone", "HEALTHJOBS_TZ") or _process_timezone(env),
            notify_timeout_s=notify_timeout_s,
            skip_network=truthy(kw.get("skip_network")),
            ingest_only_no_notify=truthy(kw.get("ingest_only_no_notify")),
        )
        _validate_settings(settings)
        return settings


# -----------------------------
# Helpers
# -----------------------------
def _validate_settings(s: Settings) -> None:
    if not s.bot_token.strip() or not s.chat_id.strip():
        raise ConfigError("Missing TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID.")
    if not s.search_url.strip():
        raise ConfigError("'search_url' cannot be empty.")
    if not s.data_file.strip():
        raise ConfigError("'data_file' cannot be empty.")
    if s.navigation_timeout_ms <= 0 or s.listing_timeout_ms <= 0:
        raise ConfigError("Browser timeouts must be >= 1 ms.")
    if s.notify_timeout_s <= 0:
        raise ConfigError("'notify_timeout_s' must be > 0.")
    try:
        pytz.timezone(s.timezone)
    except pytz.UnknownTimeZoneError as e:
        raise ConfigError(f"Unknown timezone: {s.timezone!r}") from e


def _given(kw: Mapping[str, Any], key: str, default: Any) -> Any:
    """kw[key] unless absent, None or ""; an explicit 0 is kept for validation."""
    v = kw.get(key)
    return default if v is None or v == "" else v


def _process_timezone(env: Mapping[str, str]) -> str:
    """
    The process-wide TZ only fills in when nothing explicit was given. It is
    often POSIX-style (':UTC', ':/etc/localtime'), so an unresolvable value
    falls back to the default instead of refusing the run.
    """
    tz = (env.get("TZ") or "").strip()
    if not tz:
        return DEFAULT_TIMEZONE
    try:
        pytz.timezone(tz)
    except pytz.UnknownTimeZoneError:
        log.warning("Ignoring TZ=%r (not an IANA zone); using %s", tz, DEFAULT_TIMEZONE)
        return DEFAULT_TIMEZONE
    return tz
