import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from streakify.clients.github_client import ContributionDay
from streakify.clients.github_client import fetch_contribution_days
from streakify.core.errors import ConfigurationError
from streakify.core.errors import ContributionsNotFoundError
from streakify.core.errors import InvalidCredentialError
from streakify.core.errors import TransientExternalFailure
from streakify.services.local_time import local_today
from streakify.services.streak_service import has_activity_on


logger = logging.getLogger(__name__)

FetchDays = Callable[..., list[ContributionDay]]


class FailureKind(StrEnum):
    TRANSIENT = "transient"
    INVALID_CREDENTIAL = "invalid_credential"
    CONFIGURATION = "configuration"


@dataclass(frozen=True)
class FetchSuccess:
    days: list[ContributionDay]


@dataclass(frozen=True)
class FetchFailure:
    kind: FailureKind
    detail: str


FetchResult = FetchSuccess | FetchFailure


class ContributionSource:
    """Fetch contribution calendars from GitHub with a shared fallback token."""

    def __init__(
        self,
        graphql_url: str,
        default_token: str | None = None,
        timeout: float = 20.0,
        fetch_days: FetchDays = fetch_contribution_days,
    ) -> None:
        self.graphql_url = graphql_url
        self.default_token = default_token
        self.timeout = timeout
        self._fetch_days = fetch_days

    def fetch(self, handle: str, credential: str | None = None) -> FetchResult:
        token = credential or self.default_token
        if not token:
            return FetchFailure(FailureKind.CONFIGURATION, "no GitHub token available")

        try:
            try:
                days = self._fetch(handle, token)
            except InvalidCredentialError:
                fallback = self.default_token
                if not fallback or fallback == token:
                    raise
                logger.info("Token for %s rejected, retrying with default", handle)
                days = self._fetch(handle, fallback)
        except InvalidCredentialError as exc:
            logger.warning("GitHub rejected the token for %s", handle)
            return FetchFailure(FailureKind.INVALID_CREDENTIAL, str(exc))
        except TransientExternalFailure as exc:
            logger.warning("GitHub request for %s failed: %s", handle, exc)
            return FetchFailure(FailureKind.TRANSIENT, str(exc))

        return FetchSuccess(days)

    def has_acted_today(
        self,
        handle: str,
        credential: str | None,
        timezone_name: str,
        now: datetime | None = None,
    ) -> bool:
        """Return True when the handle has contributions on today's local date.

        Raises:
            ConfigurationError: If the timezone is missing or unknown.
            TransientExternalFailure: If GitHub could not be queried.
        """

        today = local_today(timezone_name, now)
        result = self.fetch(handle, credential)
        if isinstance(result, FetchFailure):
            if result.kind is FailureKind.CONFIGURATION:
                raise ConfigurationError(result.detail)
            raise TransientExternalFailure(result.detail)
        return has_activity_on(result.days, today)

    def _fetch(self, handle: str, token: str) -> list[ContributionDay]:
        try:
            return self._fetch_days(
                username=handle,
                token=token,
                graphql_url=self.graphql_url,
                timeout=self.timeout,
            )
        except ContributionsNotFoundError:
            logger.info("No contribution data for %s, treating as no activity", handle)
            return []
