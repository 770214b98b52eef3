from datetime import UTC
from datetime import date
from datetime import datetime
from datetime import timedelta

import pytest
from conftest import FakeNotifier
from fastapi.testclient import TestClient
from sqlalchemy import select

from streakify.clients.github_client import ContributionDay
from streakify.core.errors import ConfigurationError
from streakify.core.errors import GitHubAPIError
from streakify.core.errors import InvalidCredentialError
from streakify.main import create_app
from streakify.models import ContributionRecord
from streakify.models import User
from streakify.services.contributions import ContributionSource
from streakify.services.notification_log import NotificationType
from streakify.settings import Settings


def make_settings(**overrides) -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+pysqlite:///:memory:",
        **overrides,
    )


def utc_today() -> date:
    return datetime.now(UTC).date()


@pytest.fixture
def app():
    app = create_app(make_settings())
    with app.state.session_factory() as db:
        db.add(
            User(
                id="user-1",
                github_username="octocat",
                github_access_token="gho_personal",
                timezone="UTC",
            )
        )
        db.commit()
    return app


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


def use_fetch(app, fetch) -> None:
    app.state.services.contributions = ContributionSource(
        graphql_url="https://example.test/graphql",
        default_token=None,
        fetch_days=fetch,
    )


def test_read_root_returns_greeting(client: TestClient) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "Streakify is running"}


def test_health_endpoints_return_ok(client: TestClient) -> None:
    assert client.get("/health/live").json() == {"status": "ok"}

    response = client.get("/health/db")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_app_requires_database_url() -> None:
    with pytest.raises(ConfigurationError):
        create_app(Settings(_env_file=None, database_url=None))


def test_unknown_link_code_backend_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        create_app(make_settings(link_code_backend="redis"))


def test_link_code_for_unknown_user_returns_404(client: TestClient) -> None:
    response = client.post("/users/nobody/telegram/link-code")

    assert response.status_code == 404
    assert response.json() == {"detail": "user not found"}


def test_link_code_then_webhook_links_chat(app, client: TestClient) -> None:
    response = client.post("/users/user-1/telegram/link-code")

    assert response.status_code == 200
    body = response.json()
    code = body["code"]
    assert len(code) == 6
    assert body["expires_in_minutes"] == 10
    assert f"/start {code}" in body["instructions"]

    update = {
        "update_id": 10,
        "message": {
            "message_id": 1,
            "from": {"id": 7, "first_name": "Ada"},
            "chat": {"id": 777, "type": "private"},
            "date": 0,
            "text": f"/start {code}",
        },
    }
    webhook = client.post("/telegram/webhook", json=update)

    assert webhook.status_code == 200
    assert webhook.json() == {"ok": True}
    user = app.state.services.directory.get_user("user-1")
    assert user.contact_chat_id == "777"


def test_database_link_code_backend() -> None:
    app = create_app(make_settings(link_code_backend="database"))
    with app.state.session_factory() as db:
        db.add(User(id="user-2", github_username="hubot", timezone="UTC"))
        db.commit()

    with TestClient(app) as other_client:
        response = other_client.post("/users/user-2/telegram/link-code")
        assert response.status_code == 200

        code = response.json()["code"]
        assert app.state.services.link_codes.validate(code) == "user-2"


def test_stats_endpoint_returns_streaks(app, client: TestClient) -> None:
    today = utc_today()
    tokens: list[str] = []

    def fetch(username: str, token: str, graphql_url: str, timeout: float):
        tokens.append(token)
        return [
            ContributionDay(date=today - timedelta(days=2), count=2),
            ContributionDay(date=today - timedelta(days=1), count=1),
        ]

    use_fetch(app, fetch)
    app.state.services.notification_log.append(
        "user-1", NotificationType.STREAK_SAVED, today - timedelta(days=1)
    )

    response = client.get("/users/user-1/stats")

    assert response.status_code == 200
    body = response.json()
    assert body["username"] == "octocat"
    assert body["date"] == today.isoformat()
    assert body["current_streak"] == 2
    assert body["longest_streak"] == 2
    assert body["saved_days"] == 1
    assert tokens == ["gho_personal"]


def test_stats_maps_fetch_failures(app, client: TestClient) -> None:
    def rejected(username: str, token: str, graphql_url: str, timeout: float):
        raise InvalidCredentialError("GitHub rejected the token")

    use_fetch(app, rejected)
    response = client.get("/users/user-1/stats")
    assert response.status_code == 401
    assert response.json() == {"detail": "GitHub token is invalid"}

    def unavailable(username: str, token: str, graphql_url: str, timeout: float):
        raise GitHubAPIError("GitHub responded with 502")

    use_fetch(app, unavailable)
    response = client.get("/users/user-1/stats")
    assert response.status_code == 502
    assert response.json() == {"detail": "GitHub API request failed"}

    assert client.get("/users/nobody/stats").status_code == 404


def test_today_status_reflects_activity(app, client: TestClient) -> None:
    today = utc_today()

    def fetch(username: str, token: str, graphql_url: str, timeout: float):
        return [ContributionDay(date=today, count=1)]

    use_fetch(app, fetch)

    response = client.get("/users/user-1/contributions/today")

    assert response.status_code == 200
    assert response.json() == {"date": today.isoformat(), "has_contributed": True}


def test_notification_history_lists_entries(app, client: TestClient) -> None:
    log = app.state.services.notification_log
    log.append("user-1", NotificationType.EMAIL, date(2026, 3, 10))
    log.append("user-1", NotificationType.CHAT, date(2026, 3, 10))

    response = client.get("/users/user-1/notifications")

    assert response.status_code == 200
    notifications = response.json()["notifications"]
    assert {item["type"] for item in notifications} == {"email", "chat"}
    assert all(item["day"] == "2026-03-10" for item in notifications)


def test_update_settings_changes_escalation_inputs(app, client: TestClient) -> None:
    response = client.patch(
        "/users/user-1/settings",
        json={
            "check_time": "21:15",
            "timezone": "Asia/Kolkata",
            "email": "ada@example.com",
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "id": "user-1",
        "github_username": "octocat",
        "check_time": "21:15",
        "timezone": "Asia/Kolkata",
        "email": "ada@example.com",
        "telegram_linked": False,
    }
    [user] = app.state.services.directory.list_users()
    assert (user.check_time, user.timezone) == ("21:15", "Asia/Kolkata")


def test_update_settings_rejects_invalid_values(client: TestClient) -> None:
    assert client.patch("/users/user-1/settings", json={}).status_code == 400

    response = client.patch("/users/user-1/settings", json={"check_time": "24:30"})
    assert response.status_code == 422
    assert "24:30" in response.json()["detail"]

    response = client.patch("/users/user-1/settings", json={"timezone": "Nowhere"})
    assert response.status_code == 422

    response = client.patch("/users/nobody/settings", json={"timezone": "UTC"})
    assert response.status_code == 404


def test_contributions_list_and_manual_sync(app, client: TestClient) -> None:
    today = utc_today()
    days = [
        ContributionDay(date=today - timedelta(days=offset), count=offset % 3)
        for offset in range(40)
    ]

    def fetch(username: str, token: str, graphql_url: str, timeout: float):
        return days

    use_fetch(app, fetch)

    listed = client.get("/users/user-1/contributions").json()
    assert len(listed["contributions"]) == 40
    assert listed["contributions"][-1]["date"] == today.isoformat()
    assert listed["total"] == sum(day.count for day in days)

    response = client.post("/users/user-1/contributions/sync")

    assert response.status_code == 200
    assert response.json() == {
        "message": "Contributions synced successfully",
        "synced_days": 30,
    }
    with app.state.session_factory() as db:
        stored = db.scalars(
            select(ContributionRecord.day).where(
                ContributionRecord.user_id == "user-1"
            )
        ).all()
    assert min(stored) == today - timedelta(days=29)
    assert max(stored) == today


def test_send_reminder_emails_the_user(app, client: TestClient) -> None:
    notifier = FakeNotifier()
    app.state.services.notifier = notifier
    use_fetch(app, lambda **kwargs: [])

    assert (
        client.post("/users/user-1/notifications/send-reminder").status_code == 400
    )

    client.patch("/users/user-1/settings", json={"email": "ada@example.com"})
    response = client.post(
        "/users/user-1/notifications/send-reminder", json={"type": "urgent"}
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "sent_to": "ada@example.com",
        "current_streak": 0,
    }
    assert notifier.emails[0][0] == "ada@example.com"
    assert notifier.emails[0][1].startswith("Last call")
    history = client.get("/users/user-1/notifications").json()["notifications"]
    assert [item["type"] for item in history] == ["email"]
