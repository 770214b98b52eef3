from datetime import date

import httpx
import pytest

from streakify.clients.github_client import ContributionDay
from streakify.clients.github_client import fetch_contribution_days
from streakify.core.errors import ContributionsNotFoundError
from streakify.core.errors import GitHubAPIError
from streakify.core.errors import InvalidCredentialError


GRAPHQL_URL = "https://api.github.com/graphql"


def fake_post(status_code: int, payload: object, calls: list[dict] | None = None):
    def _post(url: str, **kwargs) -> httpx.Response:
        if calls is not None:
            calls.append({"url": url, **kwargs})
        return httpx.Response(
            status_code, json=payload, request=httpx.Request("POST", url)
        )

    return _post


def calendar_payload(days: list[dict[str, object]]) -> dict[str, object]:
    return {
        "data": {
            "user": {
                "contributionsCollection": {
                    "contributionCalendar": {"weeks": [{"contributionDays": days}]}
                }
            }
        }
    }


def test_fetch_contribution_days_parses_calendar(monkeypatch) -> None:
    calls: list[dict] = []
    payload = calendar_payload(
        [
            {"date": "2026-03-09", "contributionCount": 2},
            {"date": "2026-03-10", "contributionCount": 0},
            {"date": "not-a-date", "contributionCount": 1},
            {"date": "2026-03-11"},
        ]
    )
    monkeypatch.setattr(
        "streakify.clients.github_client.httpx.post", fake_post(200, payload, calls)
    )

    days = fetch_contribution_days(
        username="octocat",
        token="secret",
        graphql_url=GRAPHQL_URL,
        to_day=date(2026, 3, 10),
    )

    assert days == [
        ContributionDay(date=date(2026, 3, 9), count=2),
        ContributionDay(date=date(2026, 3, 10), count=0),
    ]
    variables = calls[0]["json"]["variables"]
    assert variables["login"] == "octocat"
    assert variables["to"] == "2026-03-11T23:59:59Z"
    assert variables["from"] == "2025-03-12T00:00:00Z"
    assert calls[0]["headers"]["Authorization"] == "Bearer secret"


@pytest.mark.parametrize("status_code", [401, 403])
def test_rejected_token_raises_invalid_credential(monkeypatch, status_code) -> None:
    monkeypatch.setattr(
        "streakify.clients.github_client.httpx.post",
        fake_post(status_code, {"message": "Bad credentials"}),
    )

    with pytest.raises(InvalidCredentialError):
        fetch_contribution_days("octocat", "bad", GRAPHQL_URL)


def test_server_error_raises_github_api_error(monkeypatch) -> None:
    monkeypatch.setattr(
        "streakify.clients.github_client.httpx.post", fake_post(502, {})
    )

    with pytest.raises(GitHubAPIError):
        fetch_contribution_days("octocat", "secret", GRAPHQL_URL)


def test_non_json_body_raises_github_api_error(monkeypatch) -> None:
    def html_post(url: str, **kwargs) -> httpx.Response:
        return httpx.Response(
            200,
            text="<html>bad gateway</html>",
            request=httpx.Request("POST", url),
        )

    monkeypatch.setattr("streakify.clients.github_client.httpx.post", html_post)

    with pytest.raises(GitHubAPIError, match="response is invalid"):
        fetch_contribution_days("octocat", "secret", GRAPHQL_URL)


def test_network_error_raises_github_api_error(monkeypatch) -> None:
    def broken_post(url: str, **kwargs) -> httpx.Response:
        raise httpx.ConnectError("boom", request=httpx.Request("POST", url))

    monkeypatch.setattr("streakify.clients.github_client.httpx.post", broken_post)

    with pytest.raises(GitHubAPIError):
        fetch_contribution_days("octocat", "secret", GRAPHQL_URL)


@pytest.mark.parametrize(
    "payload",
    [
        {"data": {"user": None}},
        {"data": None, "errors": [{"type": "NOT_FOUND", "message": "no user"}]},
    ],
)
def test_unknown_user_raises_not_found(monkeypatch, payload) -> None:
    monkeypatch.setattr(
        "streakify.clients.github_client.httpx.post", fake_post(200, payload)
    )

    with pytest.raises(ContributionsNotFoundError):
        fetch_contribution_days("ghost", "secret", GRAPHQL_URL)


def test_graphql_errors_raise_github_api_error(monkeypatch) -> None:
    monkeypatch.setattr(
        "streakify.clients.github_client.httpx.post",
        fake_post(200, {"errors": [{"type": "RATE_LIMITED"}]}),
    )

    with pytest.raises(GitHubAPIError):
        fetch_contribution_days("octocat", "secret", GRAPHQL_URL)


def test_missing_token_is_rejected_before_request(monkeypatch) -> None:
    calls: list[dict] = []
    monkeypatch.setattr(
        "streakify.clients.github_client.httpx.post", fake_post(200, {}, calls)
    )

    with pytest.raises(InvalidCredentialError):
        fetch_contribution_days("octocat", "", GRAPHQL_URL)
    assert calls == []
