"""
Tests for the GraphQL transport.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from pr_scorecard.auth import StaticTokenProvider
from pr_scorecard.errors import GraphQLError, RateLimitedError, TransportError
from pr_scorecard.quota import QuotaGuard
from pr_scorecard.transport import GraphQLTransport, graphql_endpoint

ENDPOINT = "https://api.github.com/graphql"


def _response(status: int, payload) -> httpx.Response:
    return httpx.Response(
        status, json=payload, request=httpx.Request("POST", ENDPOINT)
    )


def _client(*responses):
    client = MagicMock()
    client.post = AsyncMock(side_effect=list(responses))
    return client


class CountingAuth(StaticTokenProvider):
    """Token provider recording how often a token was requested."""

    def __init__(self):
        super().__init__("ghp_token")
        self.calls = 0

    async def get_token(self) -> str:
        self.calls += 1
        return f"{self.token}_{self.calls}"


def _transport(auth=None, sleep=None, **kwargs) -> GraphQLTransport:
    return GraphQLTransport(
        auth or StaticTokenProvider("ghp_token"),
        quota=QuotaGuard(requests_per_window=100),
        sleep=sleep or AsyncMock(),
        **kwargs,
    )


def _rate_limited():
    return _response(
        200, {"errors": [{"type": "RATE_LIMITED", "message": "API rate limit exceeded"}]}
    )


def test_graphql_endpoint():
    assert graphql_endpoint() == ENDPOINT
    assert graphql_endpoint("https://ghe.example.com/api/v3/") == (
        "https://ghe.example.com/api/v3/graphql"
    )


@patch("pr_scorecard.transport._get_async_http_client", new_callable=AsyncMock)
def test_send_returns_data(mock_get_client):
    """Test a successful query returns the data member."""
    client = _client(_response(200, {"data": {"viewer": {"login": "alice"}}}))
    mock_get_client.return_value = client

    data = asyncio.run(_transport().send("query { viewer { login } }", {"a": 1}))

    assert data == {"viewer": {"login": "alice"}}
    args, kwargs = client.post.await_args
    assert args == (ENDPOINT,)
    assert kwargs["json"] == {"query": "query { viewer { login } }", "variables": {"a": 1}}
    assert kwargs["headers"]["Authorization"] == "token ghp_token"


@patch("pr_scorecard.transport._get_async_http_client", new_callable=AsyncMock)
def test_rate_limited_is_retried_with_backoff(mock_get_client):
    """Test RATE_LIMITED responses back off exponentially then succeed."""
    mock_get_client.return_value = _client(
        _rate_limited(), _rate_limited(), _response(200, {"data": {"ok": True}})
    )
    sleep = AsyncMock()
    auth = CountingAuth()

    data = asyncio.run(_transport(auth=auth, sleep=sleep).send("query", {}))

    assert data == {"ok": True}
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]
    # A fresh token is resolved for every attempt
    assert auth.calls == 3


@patch("pr_scorecard.transport._get_async_http_client", new_callable=AsyncMock)
def test_rate_limited_gives_up_after_max_attempts(mock_get_client):
    mock_get_client.return_value = _client(*[_rate_limited() for _ in range(3)])
    sleep = AsyncMock()

    with pytest.raises(RateLimitedError) as exc_info:
        asyncio.run(_transport(sleep=sleep, max_attempts=3).send("query", {}))

    assert exc_info.value.code == "RATE_LIMITED"
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]


@patch("pr_scorecard.transport._get_async_http_client", new_callable=AsyncMock)
def test_other_graphql_errors_are_not_retried(mock_get_client):
    client = _client(
        _response(200, {"errors": [{"type": "NOT_FOUND", "message": "Not found"}]})
    )
    mock_get_client.return_value = client
    sleep = AsyncMock()

    with pytest.raises(GraphQLError) as exc_info:
        asyncio.run(_transport(sleep=sleep).send("query", {}))

    assert not isinstance(exc_info.value, RateLimitedError)
    assert exc_info.value.code == "NOT_FOUND"
    assert client.post.await_count == 1
    sleep.assert_not_awaited()


@patch("pr_scorecard.transport._get_async_http_client", new_callable=AsyncMock)
def test_http_status_errors_carry_status(mock_get_client):
    mock_get_client.return_value = _client(
        _response(403, {"message": "You have exceeded a secondary rate limit"})
    )

    with pytest.raises(TransportError) as exc_info:
        asyncio.run(_transport().send("query", {}))

    assert exc_info.value.status == 403
    assert "secondary rate limit" in str(exc_info.value)


@patch("pr_scorecard.transport._get_async_http_client", new_callable=AsyncMock)
def test_connection_errors_become_transport_errors(mock_get_client):
    client = MagicMock()
    client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))
    mock_get_client.return_value = client

    with pytest.raises(TransportError) as exc_info:
        asyncio.run(_transport().send("query", {}))

    assert exc_info.value.status is None


@patch("pr_scorecard.transport._get_async_http_client", new_callable=AsyncMock)
def test_queries_go_through_quota(mock_get_client):
    """Test each attempt takes one unit from the quota guard."""
    mock_get_client.return_value = _client(
        _rate_limited(), _response(200, {"data": {}})
    )
    transport = _transport()

    asyncio.run(transport.send("query", {}))

    assert transport.quota.remaining == 98
