"""
GitHub GraphQL query transport.

Every query is admitted through a QuotaGuard and stamped with a freshly
resolved token. RATE_LIMITED responses are retried with exponential backoff;
every other failure propagates immediately.
"""

import asyncio
from typing import Any, Awaitable, Callable

import httpx
from rich.console import Console

from pr_scorecard.auth import DEFAULT_API_URL, AuthProvider
from pr_scorecard.config import is_quiet
from pr_scorecard.errors import GraphQLError, RateLimitedError, TransportError
from pr_scorecard.http_client import _get_async_http_client
from pr_scorecard.quota import QuotaGuard

console = Console(stderr=True)

RATE_LIMITED = "RATE_LIMITED"
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY = 1.0


def graphql_endpoint(base_url: str | None = None) -> str:
    """Return the GraphQL endpoint for a REST API base URL."""
    return f"{(base_url or DEFAULT_API_URL).rstrip('/')}/graphql"


def _error_code(error: dict[str, Any]) -> str | None:
    return error.get("type") or (error.get("extensions") or {}).get("code")


class GraphQLTransport:
    """Send GraphQL queries to GitHub through a quota guard."""

    def __init__(
        self,
        auth: AuthProvider,
        quota: QuotaGuard | None = None,
        base_url: str | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.auth = auth
        self.quota = quota or QuotaGuard()
        self.endpoint = graphql_endpoint(base_url)
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self._sleep = sleep

    async def _post(self, query: str, variables: dict[str, Any], token: str) -> Any:
        headers = {
            "Authorization": f"token {token}",
            "Content-Type": "application/json",
        }
        client = await _get_async_http_client()
        try:
            response = await client.post(
                self.endpoint,
                json={"query": query, "variables": variables},
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"GitHub API returned {e.response.status_code}: {e.response.text}",
                status=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise TransportError(f"GitHub API request failed: {e}") from e

        data = response.json()
        errors = data.get("errors")
        if errors:
            error_class = (
                RateLimitedError if _error_code(errors[0]) == RATE_LIMITED else GraphQLError
            )
            raise error_class(
                f"GitHub API Errors: {errors}",
                errors=errors,
                status=response.status_code,
            )
        return data.get("data", {})

    async def send_once(self, query: str, variables: dict[str, Any]) -> Any:
        """Send a single query without retrying."""
        token = await self.auth.get_token()
        return await self.quota.schedule(lambda: self._post(query, variables, token))

    async def send(self, query: str, variables: dict[str, Any]) -> Any:
        """
        Send a query, retrying RATE_LIMITED responses.

        Args:
            query: GraphQL query document.
            variables: Query variables.

        Returns:
            The ``data`` member of the response.

        Raises:
            RateLimitedError: If every attempt was rate limited.
            GraphQLError: For any other GraphQL error.
            TransportError: For HTTP and connection failures.
        """
        for attempt in range(self.max_attempts):
            try:
                return await self.send_once(query, variables)
            except RateLimitedError:
                if attempt >= self.max_attempts - 1:
                    raise
                delay = self.base_delay * 2**attempt
                if not is_quiet():
                    console.print(
                        f"[yellow]Rate limited by GitHub, retrying in {delay:.0f}s "
                        f"(attempt {attempt + 1}/{self.max_attempts})[/yellow]"
                    )
                await self._sleep(delay)
        raise AssertionError("unreachable")
