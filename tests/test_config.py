# tests/test_config.py
import pytest

from modules.healthjobs_watch.lib.config import DEFAULT_SEARCH_URL, ConfigError, Selectors, Settings

CREDS = {"TELEGRAM_BOT_TOKEN": "t0k", "TELEGRAM_CHAT_ID": "99"}


def _settings(kwargs=None, **env):
    return Settings.from_env_and_kwargs(kwargs or {}, env={**CREDS, **env})


@pytest.mark.parametrize(
    "env",
    [
        {},
        {"TELEGRAM_BOT_TOKEN": "t0k"},
        {"TELEGRAM_CHAT_ID": "99"},
        {"TELEGRAM_BOT_TOKEN": "   ", "TELEGRAM_CHAT_ID": "99"},
    ],
)
def test_missing_credentials_fail_fast(env):
    with pytest.raises(ConfigError, match="TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID"):
        Settings.from_env_and_kwargs({}, env=env)


def test_defaults_match_the_healthjobs_site():
    s = _settings()

    assert s.search_url == DEFAULT_SEARCH_URL
    assert s.base_url == "https://www.healthjobsuk.com"
    assert s.selectors == Selectors()
    assert s.selectors.item == "li.hj-job"
    assert s.navigation_timeout_ms == 60_000
    assert s.listing_timeout_ms == 15_000
    assert (s.viewport_width, s.viewport_height) == (1366, 768)
    assert s.timezone == "Europe/London"
    assert s.headless is False
    assert s.data_file.endswith("jobs.json")


@pytest.mark.parametrize(
    "env, expected",
    [
        ({"CI": "true"}, True),
        ({"CI": "TRUE"}, True),
        ({"CI": "1"}, False),
        ({"CI": "false"}, False),
        ({"CI": "true", "HEADLESS": "0"}, False),
        ({"HEADLESS": "yes"}, True),
    ],
)
def test_headless_follows_ci_unless_overridden(env, expected):
    assert _settings(**env).headless is expected


def test_kwargs_win_over_env():
    s = _settings(
        {"chat_id": "kw-chat", "data_file": "/tmp/x.json", "headless": "false", "timezone": "UTC"},
        TELEGRAM_CHAT_ID="env-chat",
        HEALTHJOBS_DATA_FILE="/env/jobs.json",
        CI="true",
        HEALTHJOBS_TZ="Europe/Paris",
    )

    assert s.chat_id == "kw-chat"
    assert s.data_file == "/tmp/x.json"
    assert s.headless is False
    assert s.timezone == "UTC"


def test_env_site_overrides_and_trailing_slash():
    s = _settings(
        HEALTHJOBS_SEARCH_URL="https://staging.example.org/job_list?q=1",
        HEALTHJOBS_BASE_URL="https://staging.example.org/",
        TZ="UTC",
    )

    assert s.search_url == "https://staging.example.org/job_list?q=1"
    assert s.base_url == "https://staging.example.org"
    assert s.timezone == "UTC"


def test_bot_token_is_hidden_from_repr():
    assert "t0k" not in repr(_settings())


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"timezone": "Mars/Olympus"}, "Unknown timezone"),
        ({"navigation_timeout_ms": "soon"}, "Invalid timeout"),
        ({"listing_timeout_ms": -1}, "timeouts"),
        ({"notify_timeout_s": -2}, "notify_timeout_s"),
    ],
)
def test_invalid_values_raise_config_error(kwargs, message):
    with pytest.raises(ConfigError, match=message):
        _settings(kwargs)


def test_special_run_flags_accept_strings():
    s = _settings({"skip_network": "1", "ingest_only_no_notify": "yes"})

    assert s.skip_network is True
    assert s.ingest_only_no_notify is True


@pytest.mark.parametrize("tz", [":UTC", ":/etc/localtime", "GMT0BST,M3.5.0/1,M10.5.0"])
def test_posix_style_process_tz_falls_back_to_london(tz):
    assert _settings(TZ=tz).timezone == "Europe/London"


def test_iana_process_tz_is_used_when_nothing_explicit():
    assert _settings(TZ="Europe/Dublin").timezone == "Europe/Dublin"


@pytest.mark.parametrize(
    "kwargs, env",
    [
        ({"timezone": ":UTC"}, {}),
        ({}, {"HEALTHJOBS_TZ": "Nowhere/Special"}),
    ],
)
def test_explicit_timezone_is_still_validated(kwargs, env):
    with pytest.raises(ConfigError, match="Unknown timezone"):
        _settings(kwargs, **env)


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"navigation_timeout_ms": 0}, "timeouts"),
        ({"listing_timeout_ms": 0}, "timeouts"),
        ({"notify_timeout_s": 0}, "notify_timeout_s"),
    ],
)
def test_zero_timeouts_are_rejected_not_defaulted(kwargs, message):
    with pytest.raises(ConfigError, match=message):
        _settings(kwargs)


def test_blank_timeout_kwargs_use_defaults():
    s = _settings({"navigation_timeout_ms": None, "listing_timeout_ms": ""})

    assert s.navigation_timeout_ms == 60_000
    assert s.listing_timeout_ms == 15_000
