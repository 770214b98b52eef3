from collections.abc import Mapping
from dataclasses import dataclass

from sqlalchemy import delete
from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker

from streakify.clients.github_client import ContributionDay
from streakify.core.errors import ConfigurationError
from streakify.models import ContributionRecord
from streakify.models import User
from streakify.services.local_time import parse_clock_time
from streakify.services.local_time import resolve_timezone


@dataclass(frozen=True)
class UserRecord:
    """Read-only view of a user as seen by the scheduler."""

    id: str
    handle: str
    timezone: str
    check_time: str
    credential: str | None = None
    contact_email: str | None = None
    contact_chat_id: str | None = None


def _to_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.id,
        handle=user.github_username,
        timezone=user.timezone,
        check_time=user.check_time,
        credential=user.github_access_token,
        contact_email=user.email,
        contact_chat_id=user.telegram_chat_id,
    )


class UserDirectory:
    """User lookups and updates backed by the `users` table."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def list_users(self) -> list[UserRecord]:
        with self._session_factory() as db:
            users = db.scalars(select(User).order_by(User.id.asc())).all()
            return [_to_record(user) for user in users]

    def get_user(self, user_id: str) -> UserRecord | None:
        with self._session_factory() as db:
            user = db.get(User, user_id)
            return _to_record(user) if user else None

    def find_by_chat(self, chat_id: str) -> UserRecord | None:
        with self._session_factory() as db:
            user = db.scalar(select(User).where(User.telegram_chat_id == chat_id))
            return _to_record(user) if user else None

    def bind_chat(self, user_id: str, chat_id: str) -> bool:
        with self._session_factory() as db:
            user = db.get(User, user_id)
            if user is None:
                return False
            user.telegram_chat_id = chat_id
            db.commit()
            return True

    def unbind_chat(self, chat_id: str) -> UserRecord | None:
        with self._session_factory() as db:
            user = db.scalar(select(User).where(User.telegram_chat_id == chat_id))
            if user is None:
                return None
            user.telegram_chat_id = None
            db.commit()
            return _to_record(user)

    def save_contributions(self, user_id: str, days: list[ContributionDay]) -> int:
        """Replace stored counts for the given dates with fresh values."""

        if not days:
            return 0

        counts = {day.date: day.count for day in days}
        with self._session_factory() as db:
            db.execute(
                delete(ContributionRecord).where(
                    ContributionRecord.user_id == user_id,
                    ContributionRecord.day.in_(list(counts)),
                )
            )
            for day, count in sorted(counts.items()):
                db.add(
                    ContributionRecord(
                        user_id=user_id, day=day, contribution_count=count
                    )
                )
            db.commit()
        return len(counts)

    def update_settings(
        self, user_id: str, changes: Mapping[str, str | None]
    ) -> UserRecord | None:
        """Apply validated `check_time`, `timezone` and `email` changes.

        Raises:
            ConfigurationError: If a value is malformed or the key is unknown.
        """

        values: dict[str, str | None] = {}
        for key, raw in changes.items():
            if key == "check_time":
                hour, minute = parse_clock_time(raw)
                values["check_time"] = f"{hour:02d}:{minute:02d}"
            elif key == "timezone":
                values["timezone"] = resolve_timezone(raw).key
            elif key == "email":
                values["email"] = raw.strip() if raw and raw.strip() else None
            else:
                raise ConfigurationError(f"unknown setting {key!r}")

        with self._session_factory() as db:
            user = db.get(User, user_id)
            if user is None:
                return None
            for key, value in values.items():
                setattr(user, key, value)
            db.commit()
            return _to_record(user)
