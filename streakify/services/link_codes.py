"""One-time codes used to link a Telegram chat to an account.

A user asks for a code on the website and sends ``/start CODE`` to the bot.
Each user holds at most one live code; codes are single use and expire after
a short TTL.
"""

import logging
import secrets
import string
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC
from datetime import datetime
from datetime import timedelta
from threading import RLock
from typing import Protocol

from sqlalchemy import delete
from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker

from streakify.models import LinkCodeRecord


logger = logging.getLogger(__name__)

CODE_ALPHABET = string.digits + string.ascii_uppercase
CODE_LENGTH = 6
DEFAULT_TTL = timedelta(minutes=10)
MAX_GENERATE_ATTEMPTS = 5


@dataclass(frozen=True)
class LinkCode:
    code: str
    user_id: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class LinkCodeStore(Protocol):
    def get_by_code(self, code: str) -> LinkCode | None: ...

    def get_by_user(self, user_id: str) -> LinkCode | None: ...

    def put(self, link_code: LinkCode) -> None: ...

    def delete(self, code: str) -> None: ...

    def delete_expired(self, now: datetime) -> int: ...


class InMemoryLinkCodeStore:
    """Two maps kept in step: code -> entry and user -> code."""

    def __init__(self) -> None:
        self._by_code: dict[str, LinkCode] = {}
        self._code_by_user: dict[str, str] = {}
        self._lock = RLock()

    def get_by_code(self, code: str) -> LinkCode | None:
        with self._lock:
            return self._by_code.get(code)

    def get_by_user(self, user_id: str) -> LinkCode | None:
        with self._lock:
            code = self._code_by_user.get(user_id)
            return self._by_code.get(code) if code else None

    def put(self, link_code: LinkCode) -> None:
        with self._lock:
            previous = self._code_by_user.pop(link_code.user_id, None)
            if previous is not None:
                self._by_code.pop(previous, None)
            displaced = self._by_code.pop(link_code.code, None)
            if displaced is not None:
                self._code_by_user.pop(displaced.user_id, None)
            self._by_code[link_code.code] = link_code
            self._code_by_user[link_code.user_id] = link_code.code

    def delete(self, code: str) -> None:
        with self._lock:
            entry = self._by_code.pop(code, None)
            if entry is not None and self._code_by_user.get(entry.user_id) == code:
                del self._code_by_user[entry.user_id]

    def delete_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [
                entry.code
                for entry in self._by_code.values()
                if entry.is_expired(now)
            ]
            for code in expired:
                self.delete(code)
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_code)


class SqlLinkCodeStore:
    """Link codes persisted in the `link_codes` table."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get_by_code(self, code: str) -> LinkCode | None:
        with self._session_factory() as db:
            record = db.get(LinkCodeRecord, code)
            return _to_link_code(record) if record else None

    def get_by_user(self, user_id: str) -> LinkCode | None:
        with self._session_factory() as db:
            record = db.scalar(
                select(LinkCodeRecord).where(LinkCodeRecord.user_id == user_id)
            )
            return _to_link_code(record) if record else None

    def put(self, link_code: LinkCode) -> None:
        with self._session_factory() as db:
            db.execute(
                delete(LinkCodeRecord).where(
                    (LinkCodeRecord.user_id == link_code.user_id)
                    | (LinkCodeRecord.code == link_code.code)
                )
            )
            db.add(
                LinkCodeRecord(
                    code=link_code.code,
                    user_id=link_code.user_id,
                    expires_at=link_code.expires_at.astimezone(UTC),
                )
            )
            db.commit()

    def delete(self, code: str) -> None:
        with self._session_factory() as db:
            db.execute(delete(LinkCodeRecord).where(LinkCodeRecord.code == code))
            db.commit()

    def delete_expired(self, now: datetime) -> int:
        with self._session_factory() as db:
            result = db.execute(
                delete(LinkCodeRecord).where(
                    LinkCodeRecord.expires_at < now.astimezone(UTC)
                )
            )
            db.commit()
            return result.rowcount or 0


def _to_link_code(record: LinkCodeRecord) -> LinkCode:
    expires_at = record.expires_at
    # SQLite drops tzinfo on the way back.
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    return LinkCode(code=record.code, user_id=record.user_id, expires_at=expires_at)


def random_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


class LinkCodeRegistry:
    """Issue and redeem single-use link codes."""

    def __init__(
        self,
        store: LinkCodeStore | None = None,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] | None = None,
        code_factory: Callable[[], str] = random_code,
    ) -> None:
        self.store = store if store is not None else InMemoryLinkCodeStore()
        self.ttl = ttl
        self._clock = clock or (lambda: datetime.now(UTC))
        self._code_factory = code_factory
        self._lock = RLock()

    def generate(self, user_id: str) -> str:
        """Replace any live code for `user_id` with a fresh one and return it.

        A drawn code that collides with another user's live code is redrawn.
        """

        with self._lock:
            now = self._clock()
            code = self._code_factory()
            for _ in range(MAX_GENERATE_ATTEMPTS - 1):
                existing = self.store.get_by_code(code)
                if (
                    existing is None
                    or existing.is_expired(now)
                    or existing.user_id == user_id
                ):
                    break
                code = self._code_factory()

            self.store.put(
                LinkCode(code=code, user_id=user_id, expires_at=now + self.ttl)
            )
            return code

    def validate(self, code: str) -> str | None:
        """Redeem `code`; return the owning user id or None if unknown or expired."""

        normalized = code.strip().upper()
        with self._lock:
            entry = self.store.get_by_code(normalized)
            if entry is None:
                return None

            self.store.delete(normalized)
            if entry.is_expired(self._clock()):
                logger.info("Link code for user %s expired", entry.user_id)
                return None

            return entry.user_id

    def purge_expired(self, now: datetime | None = None) -> int:
        with self._lock:
            return self.store.delete_expired(now or self._clock())
