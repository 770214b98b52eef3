import logging

from streakify.api.schemas.telegram import TelegramUpdate
from streakify.services.link_codes import LinkCodeRegistry
from streakify.services.notifier import Notifier
from streakify.services.user_directory import UserDirectory


logger = logging.getLogger(__name__)

HELP_TEXT = (
    "🤖 <b>Streakify Bot Commands</b>\n\n"
    "/start CODE - Link your account\n"
    "/status - Check link status\n"
    "/unlink - Unlink your account\n"
    "/help - Show this message"
)


class TelegramBot:
    """Handle commands sent to the bot, including the account link handshake."""

    def __init__(
        self,
        link_codes: LinkCodeRegistry,
        directory: UserDirectory,
        notifier: Notifier,
    ) -> None:
        self.link_codes = link_codes
        self.directory = directory
        self.notifier = notifier

    def handle_update(self, update: TelegramUpdate) -> None:
        message = update.message
        if message is None or not message.text:
            return

        chat_id = str(message.chat.id)
        first_name = message.sender.first_name if message.sender else ""
        text = message.text.strip()
        command, _, argument = text.partition(" ")
        # Group chats address the bot as /command@botname.
        command = command.split("@", 1)[0].lower()

        if command == "/start":
            self._start(chat_id, first_name, argument.strip())
        elif command == "/status":
            self._status(chat_id)
        elif command == "/unlink":
            self._unlink(chat_id)
        elif command == "/help":
            self._reply(chat_id, HELP_TEXT)
        else:
            self._reply(
                chat_id,
                "I don't understand that command.\n\n"
                "Send /help to see available commands.",
            )

    def _start(self, chat_id: str, first_name: str, code: str) -> None:
        if not code:
            self._reply(
                chat_id,
                f"👋 Welcome to <b>Streakify</b>, {first_name}!\n\n"
                "To link your account, use the link code from the website.\n\n"
                "Send: <code>/start YOUR_CODE</code>",
            )
            return

        user_id = self.link_codes.validate(code)
        if user_id is None:
            self._reply(
                chat_id,
                "❌ Invalid or expired link code.\n\n"
                "Please generate a new code from the Streakify website.",
            )
            return

        if not self.directory.bind_chat(user_id, chat_id):
            logger.error("Link code redeemed for unknown user %s", user_id)
            self._reply(chat_id, "❌ Something went wrong. Please try again later.")
            return

        logger.info("Linked Telegram chat %s to user %s", chat_id, user_id)
        self._reply(
            chat_id,
            "✅ <b>Successfully linked!</b>\n\n"
            f"You'll now receive streak reminders here, {first_name}.\n\n"
            "Keep coding and maintain your streak! 🔥",
        )

    def _status(self, chat_id: str) -> None:
        user = self.directory.find_by_chat(chat_id)
        if user is None:
            self._reply(
                chat_id,
                "❌ This chat is not linked to any Streakify account.\n\n"
                "Use <code>/start YOUR_CODE</code> to link.",
            )
            return

        self._reply(
            chat_id,
            "✅ Your account is linked!\n\n"
            f"GitHub: <b>{user.handle}</b>\n\n"
            "You'll receive reminders if you haven't contributed.",
        )

    def _unlink(self, chat_id: str) -> None:
        if self.directory.unbind_chat(chat_id) is None:
            self._reply(chat_id, "❌ This chat is not linked to any account.")
            return

        self._reply(
            chat_id,
            "✅ Account unlinked successfully.\n\n"
            "You won't receive reminders anymore.",
        )

    def _reply(self, chat_id: str, text: str) -> None:
        if not self.notifier.send_chat(chat_id, text):
            logger.warning("Could not reply to Telegram chat %s", chat_id)
