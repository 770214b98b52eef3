class StreakifyError(Exception):
    """Base class for errors raised by the streak service."""


class TransientExternalFailure(StreakifyError):
    """Raised when an external provider is unreachable or rate limited."""


class GitHubAPIError(TransientExternalFailure):
    """Raised when GitHub requests fail for non-auth reasons."""


class InvalidCredentialError(StreakifyError):
    """Raised when GitHub rejects the provided token."""


class ContributionsNotFoundError(StreakifyError):
    """Raised when GitHub has no contribution data for a handle."""


class ConfigurationError(StreakifyError):
    """Raised when a user or the service is missing required configuration."""
