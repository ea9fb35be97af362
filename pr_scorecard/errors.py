"""
Exception types raised by PR Scorecard.
"""

from typing import Any


class ScorecardError(Exception):
    """Base class for all PR Scorecard errors."""


# --- Metric errors (local to a single record) ---


class MetricError(ScorecardError):
    """A metric could not be computed for one pull request."""


class MissingDataError(MetricError):
    """A field required by a calculator is absent."""


class MissingTimestampError(MissingDataError):
    """A required timestamp is absent."""


class MalformedNodeError(MissingDataError):
    """A raw API node lacks a field required by the canonical record."""


class InvalidTimestampError(MetricError, ValueError):
    """A timestamp could not be parsed as ISO-8601."""


# --- Transport and collection errors ---


class TransportError(ScorecardError):
    """A query could not be completed by the remote API."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class GraphQLError(TransportError):
    """The GraphQL endpoint answered with an ``errors`` list."""

    def __init__(
        self,
        message: str,
        errors: list[dict[str, Any]],
        status: int | None = None,
    ):
        super().__init__(message, status=status)
        self.errors = errors

    @property
    def code(self) -> str | None:
        """Return the error type of the first reported error."""
        if not self.errors:
            return None
        first = self.errors[0]
        return first.get("type") or (first.get("extensions") or {}).get("code")


class RateLimitedError(GraphQLError):
    """The query was rejected with a RATE_LIMITED error."""


class InstallationNotFoundError(ScorecardError):
    """No GitHub App installation is accessible for the requested owner."""

    def __init__(self, owner: str):
        super().__init__(f"No installation for {owner}")
        self.owner = owner


class PartialResultsError(ScorecardError):
    """
    Collection failed after some pull requests were gathered.

    ``partial`` holds exactly the records accumulated before the failure so
    callers can decide whether to continue with incomplete data.
    """

    def __init__(self, message: str, partial: list):
        super().__init__(message)
        self.partial = partial
