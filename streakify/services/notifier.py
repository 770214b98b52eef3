import logging

from streakify.clients.email_client import ResendEmailClient
from streakify.clients.telegram_client import TelegramClient


logger = logging.getLogger(__name__)


class Notifier:
    """Deliver reminders by email and Telegram; each channel fails on its own."""

    def __init__(
        self,
        email_client: ResendEmailClient,
        telegram_client: TelegramClient,
    ) -> None:
        self.email_client = email_client
        self.telegram_client = telegram_client

    def send_email(self, to: str, subject: str, body: str) -> bool:
        try:
            return self.email_client.send(to=to, subject=subject, html=body)
        except Exception:
            logger.exception("Email delivery to %s failed", to)
            return False

    def send_chat(self, chat_id: str, text: str) -> bool:
        try:
            return self.telegram_client.send_message(chat_id, text)
        except Exception:
            logger.exception("Telegram delivery to chat %s failed", chat_id)
            return False
