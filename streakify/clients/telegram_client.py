import logging
from collections.abc import Mapping
from typing import Any

import httpx


logger = logging.getLogger(__name__)


class TelegramClient:
    """Thin wrapper over the Telegram Bot API."""

    def __init__(
        self,
        token: str | None,
        api_base_url: str = "https://api.telegram.org",
        timeout: float = 20.0,
    ) -> None:
        if not token:
            logger.warning("TELEGRAM_BOT_TOKEN is not set; chat delivery disabled")
        self.token = token or ""
        self.api_url = f"{api_base_url.rstrip('/')}/bot{self.token}"
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    def send_message(self, chat_id: str | int, text: str) -> bool:
        """Send an HTML formatted message; return False on any API failure."""

        if not self.enabled:
            return False

        try:
            response = httpx.post(
                f"{self.api_url}/sendMessage",
                json={"chat_id": chat_id, "text": text, "parse_mode": "HTML"},
                timeout=self.timeout,
            )
            payload: Any = response.json()
        except (httpx.HTTPError, ValueError):
            logger.exception("Error sending Telegram message to chat %s", chat_id)
            return False

        if not isinstance(payload, Mapping) or not payload.get("ok"):
            description = (
                payload.get("description") if isinstance(payload, Mapping) else None
            )
            logger.error("Telegram API error for chat %s: %s", chat_id, description)
            return False

        return True
