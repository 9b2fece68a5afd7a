"""Telegram Bot API report notifier.

Uses the Bot API for delivery so dead link reports can be routed to an
operator chat.
"""

from __future__ import annotations

import logging

import httpx

from adapters.report_formatting import format_report
from core.models import AggregateReport

LOGGER = logging.getLogger(__name__)

# Telegram rejects messages longer than this.
MAX_MESSAGE_CHARS = 4096


class TelegramBotNotifier:
    """Notifier adapter that sends reports via the Telegram Bot API."""

    def __init__(self, client: httpx.AsyncClient, bot_token: str, chat_id: str, max_items: int = 20) -> None:
        self._client = client
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._max_items = max_items

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/sendMessage"

    async def send(self, report: AggregateReport) -> None:
        """Send the formatted report; delivery failures are only logged."""

        message = format_report(report, mode="html", max_items=self._max_items)
        payload = {
            "chat_id": self._chat_id,
            "text": message[:MAX_MESSAGE_CHARS],
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        try:
            response = await self._client.post(self._endpoint(), json=payload, timeout=10)
        except httpx.HTTPError as exc:
            LOGGER.warning("Bot API request failed: %s", type(exc).__name__)
            return
        if response.status_code >= 400:
            LOGGER.warning("Bot API error %s: %s", response.status_code, response.text[:200])
            return
        LOGGER.info("Report sent to Telegram chat %s", self._chat_id)
