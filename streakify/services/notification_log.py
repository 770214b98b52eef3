import logging
from datetime import date
from enum import StrEnum

from sqlalchemy import func
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker

from streakify.models import NotificationLogEntry


logger = logging.getLogger(__name__)


class NotificationType(StrEnum):
    EMAIL = "email"
    CHAT = "chat"
    STREAK_SAVED = "streak_saved"


class NotificationLog:
    """Append-only audit trail of reminders sent to users."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def append(self, user_id: str, type: NotificationType, day: date) -> None:
        """Record a notification; storage failures are logged, never raised."""

        try:
            with self._session_factory() as db:
                db.add(NotificationLogEntry(user_id=user_id, type=type.value, day=day))
                db.commit()
        except SQLAlchemyError:
            logger.exception("Failed to log %s notification for user %s", type, user_id)

    def count_saved_days(self, user_id: str) -> int:
        with self._session_factory() as db:
            count = db.scalar(
                select(func.count(func.distinct(NotificationLogEntry.day))).where(
                    NotificationLogEntry.user_id == user_id,
                    NotificationLogEntry.type == NotificationType.STREAK_SAVED.value,
                )
            )
            return count or 0

    def history(self, user_id: str, limit: int = 50) -> list[NotificationLogEntry]:
        with self._session_factory() as db:
            return list(
                db.scalars(
                    select(NotificationLogEntry)
                    .where(NotificationLogEntry.user_id == user_id)
                    .order_by(
                        NotificationLogEntry.sent_at.desc(),
                        NotificationLogEntry.id.desc(),
                    )
                    .limit(limit)
                ).all()
            )
