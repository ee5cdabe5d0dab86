"""Telegram alerts for the lottery operator."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import requests

from soy_operator.utils.logger import get_logger

logger = get_logger(__name__)

MAX_MESSAGE_LENGTH = 4096


class TelegramNotifier:
    """Sends plain-text messages to one chat through the Bot API."""

    def __init__(
        self,
        bot_token: Optional[str],
        chat_id: Optional[str],
        api_url: str = "https://api.telegram.org",
        timeout: float = 10.0,
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "TelegramNotifier":
        section = config.get("telegram", {})
        return cls(
            bot_token=section.get("bot_token"),
            chat_id=section.get("chat_id"),
            api_url=section.get("api_url", "https://api.telegram.org"),
            timeout=float(section.get("timeout", 10)),
        )

    @property
    def enabled(self) -> bool:
        return bool(self._bot_token and self._chat_id)

    async def send(self, message: str) -> bool:
        """Deliver `message`; returns False instead of raising on failure."""
        if not self.enabled:
            logger.warning("Telegram not configured, alert not sent: %s", message)
            return False

        url = f"{self._api_url}/bot{self._bot_token}/sendMessage"
        payload = {"chat_id": self._chat_id, "text": message[:MAX_MESSAGE_LENGTH]}

        try:
            response = await asyncio.to_thread(requests.post, url, json=payload, timeout=self._timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            # the token is part of the URL, keep it out of the log
            logger.error("Failed to send Telegram alert: %s", type(e).__name__)
            return False

        logger.info("Telegram alert sent to chat %s", self._chat_id)
        return True
