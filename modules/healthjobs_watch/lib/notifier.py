# modules/healthjobs_watch/lib/notifier.py
from __future__ import annotations

import logging

import requests

from . import logging_bridge

LOG = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"


class TelegramNotifier:
    """
    Fire-and-forget Telegram Bot API sender.

    Every send is independent: a failure is logged and reported as False, never
    raised and never retried, so one bad message cannot block the next.
    """

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        *,
        timeout: float = 15.0,
        session: requests.Session | None = None,
    ):
        self._bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = float(timeout)
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{TELEGRAM_API_BASE}/bot{self._bot_token}/sendMessage"

    def send(self, text: str) -> bool:
        """POST one HTML-formatted message. True on a 2xx response."""
        payload = {"chat_id": self.chat_id, "text": text, "parse_mode": "HTML"}
        try:
            resp = self.session.post(self.endpoint, json=payload, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            # The URL embeds the bot token; log the status/type only.
            status = getattr(getattr(e, "response", None), "status_code", None)
            LOG.error("Telegram error: %s (status=%s)", type(e).__name__, status)
            logging_bridge.error({
                "component": "healthjobs_watch.notifier",
                "op": "send",
                "chat_id": self.chat_id,
                "status": status,
                "error": type(e).__name__,
            })
            return False
        return True

    def close(self) -> None:
        try:
            self.session.close()
        except Exception:
            LOG.debug("TelegramNotifier.close() swallow", exc_info=True)
