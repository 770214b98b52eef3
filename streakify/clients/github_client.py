from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from datetime import timedelta
from typing import Any

import httpx

from streakify.core.errors import ContributionsNotFoundError
from streakify.core.errors import GitHubAPIError
from streakify.core.errors import InvalidCredentialError


USER_AGENT = "streakify"

CONTRIBUTIONS_QUERY = """
query($login: String!, $from: DateTime!, $to: DateTime!) {
  user(login: $login) {
    contributionsCollection(from: $from, to: $to) {
      contributionCalendar {
        weeks {
          contributionDays {
            date
            contributionCount
          }
        }
      }
    }
  }
}
"""


@dataclass(frozen=True)
class ContributionDay:
    """One calendar date and its contribution count."""

    date: date
    count: int


def _raise_for_status(response: httpx.Response) -> None:
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        if exc.response.status_code in {401, 403}:
            raise InvalidCredentialError("GitHub token is invalid") from exc
        raise GitHubAPIError(
            f"GitHub responded with {exc.response.status_code}"
        ) from exc


def fetch_contribution_days(
    username: str,
    token: str,
    graphql_url: str,
    timeout: float = 20.0,
    to_day: date | None = None,
) -> list[ContributionDay]:
    """Fetch one-year contribution days for a user from GitHub GraphQL API.

    The window ends one day after `to_day` so that users east of UTC see
    their local "today" in the calendar.
    """

    if not token:
        raise InvalidCredentialError("GitHub token is required for GraphQL requests")

    end_day = (to_day or date.today()) + timedelta(days=1)
    start_day = end_day - timedelta(days=364)

    variables = {
        "login": username,
        "from": f"{start_day.isoformat()}T00:00:00Z",
        "to": f"{end_day.isoformat()}T23:59:59Z",
    }
    headers = {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
    }

    try:
        response = httpx.post(
            graphql_url,
            json={"query": CONTRIBUTIONS_QUERY, "variables": variables},
            headers=headers,
            timeout=timeout,
        )
    except httpx.HTTPError as exc:
        raise GitHubAPIError("GitHub GraphQL request failed") from exc
    _raise_for_status(response)

    try:
        payload: Any = response.json()
    except ValueError as exc:
        raise GitHubAPIError("GitHub GraphQL response is invalid") from exc
    if not isinstance(payload, Mapping):
        raise GitHubAPIError("GitHub GraphQL response is invalid")

    errors = payload.get("errors")
    if errors:
        if _is_not_found(errors):
            raise ContributionsNotFoundError(f"GitHub user {username} not found")
        raise GitHubAPIError("GitHub GraphQL returned errors")

    data = payload.get("data")
    if not isinstance(data, Mapping):
        raise GitHubAPIError("GitHub GraphQL data is missing")

    user = data.get("user")
    if not isinstance(user, Mapping):
        raise ContributionsNotFoundError(f"GitHub user {username} not found")

    collection = user.get("contributionsCollection")
    if not isinstance(collection, Mapping):
        raise GitHubAPIError("GitHub contributionsCollection is missing")

    calendar = collection.get("contributionCalendar")
    if not isinstance(calendar, Mapping):
        raise GitHubAPIError("GitHub contributionCalendar is missing")

    weeks = calendar.get("weeks")
    if not isinstance(weeks, list):
        raise GitHubAPIError("GitHub contribution weeks are missing")

    days: list[ContributionDay] = []
    for week in weeks:
        if not isinstance(week, Mapping):
            continue
        contribution_days = week.get("contributionDays")
        if not isinstance(contribution_days, list):
            continue
        for item in contribution_days:
            if not isinstance(item, Mapping):
                continue
            raw_date = item.get("date")
            raw_count = item.get("contributionCount")
            if not isinstance(raw_date, str) or not isinstance(raw_count, int):
                continue
            try:
                parsed_day = date.fromisoformat(raw_date)
            except ValueError:
                continue
            days.append(ContributionDay(date=parsed_day, count=max(0, raw_count)))

    return days


def _is_not_found(errors: Any) -> bool:
    if not isinstance(errors, list):
        return False
    return any(
        isinstance(error, Mapping) and error.get("type") == "NOT_FOUND"
        for error in errors
    )
