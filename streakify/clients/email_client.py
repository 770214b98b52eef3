import logging
from collections.abc import Mapping
from typing import Any

import httpx


logger = logging.getLogger(__name__)


class ResendEmailClient:
    """Send transactional email through the Resend REST API."""

    def __init__(
        self,
        api_key: str | None,
        from_email: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 20.0,
    ) -> None:
        if not api_key:
            logger.warning("RESEND_API_KEY is not set; email delivery disabled")
        self.api_key = api_key or ""
        self.from_email = from_email
        self.api_url = api_url
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def send(self, to: str, subject: str, html: str) -> bool:
        if not self.enabled:
            return False

        try:
            response = httpx.post(
                self.api_url,
                json={
                    "from": self.from_email,
                    "to": [to],
                    "subject": subject,
                    "html": html,
                },
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload: Any = response.json()
        except (httpx.HTTPError, ValueError):
            logger.exception("Error sending email to %s", to)
            return False

        email_id = payload.get("id") if isinstance(payload, Mapping) else None
        logger.info("Email sent to %s (id=%s)", to, email_id)
        return True
