from datetime import date
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from streakify import models  # noqa: F401
from streakify.clients.github_client import ContributionDay
from streakify.db import Base
from streakify.services.contributions import FetchResult
from streakify.services.contributions import FetchSuccess
from streakify.services.notification_log import NotificationType
from streakify.services.user_directory import UserRecord


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeDirectory:
    def __init__(self, users: list[UserRecord]) -> None:
        self.users = users
        self.saved: dict[str, list[ContributionDay]] = {}

    def list_users(self) -> list[UserRecord]:
        return list(self.users)

    def save_contributions(self, user_id: str, days: list[ContributionDay]) -> int:
        self.saved[user_id] = list(days)
        return len(days)


class FakeContributions:
    def __init__(self) -> None:
        self.days_by_handle: dict[str, list[ContributionDay]] = {}
        self.results: dict[str, FetchResult] = {}
        self.calls: list[str] = []

    def set_days(self, handle: str, counts: dict[str, int]) -> None:
        self.days_by_handle[handle] = [
            ContributionDay(date=date.fromisoformat(raw), count=count)
            for raw, count in counts.items()
        ]

    def fetch(self, handle: str, credential: str | None = None) -> FetchResult:
        self.calls.append(handle)
        if handle in self.results:
            return self.results[handle]
        return FetchSuccess(self.days_by_handle.get(handle, []))


class FakeNotifier:
    def __init__(self) -> None:
        self.emails: list[tuple[str, str, str]] = []
        self.chats: list[tuple[str, str]] = []
        self.email_ok = True
        self.chat_ok = True

    def send_email(self, to: str, subject: str, body: str) -> bool:
        self.emails.append((to, subject, body))
        return self.email_ok

    def send_chat(self, chat_id: str, text: str) -> bool:
        self.chats.append((chat_id, text))
        return self.chat_ok


class FakeNotificationLog:
    def __init__(self) -> None:
        self.entries: list[tuple[str, NotificationType, date]] = []

    def append(self, user_id: str, type: NotificationType, day: date) -> None:
        self.entries.append((user_id, type, day))


@pytest.fixture
def session_factory() -> sessionmaker[Session]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture
def fake_notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def fake_contributions() -> FakeContributions:
    return FakeContributions()


@pytest.fixture
def fake_log() -> FakeNotificationLog:
    return FakeNotificationLog()
