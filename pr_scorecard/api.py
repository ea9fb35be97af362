"""
External JSON API metric sources.

A source is any HTTP endpoint returning a JSON object; its numeric fields are
merged into the scorecard metrics alongside the pull-request metrics.
"""

from typing import Any, Iterable, Mapping, NamedTuple

import httpx
from rich.console import Console

from pr_scorecard.config import is_quiet
from pr_scorecard.http_client import _get_async_http_client

console = Console(stderr=True)


class ApiSource(NamedTuple):
    """An HTTP endpoint contributing metrics to a scorecard."""

    url: str
    params: Mapping[str, Any] | None = None
    token: str | None = None
    headers: Mapping[str, str] | None = None
    fields: tuple[str, ...] | None = None


async def fetch_api_data(
    url: str,
    params: Mapping[str, Any] | None = None,
    token: str | None = None,
    headers: Mapping[str, str] | None = None,
    fields: Iterable[str] | None = None,
) -> Any:
    """
    GET a JSON document from an external API.

    Args:
        url: Endpoint URL.
        params: Query string parameters.
        token: Bearer token sent in the Authorization header.
        headers: Extra request headers.
        fields: When given and the document is an object, keep only these keys.

    Returns:
        The decoded JSON document.

    Raises:
        httpx.HTTPError: On network failures or non-2xx responses.
        ValueError: If the body is not valid JSON.
    """
    request_headers = {"Accept": "application/json"}
    if token:
        request_headers["Authorization"] = f"Bearer {token}"
    request_headers.update(headers or {})

    client = await _get_async_http_client()
    response = await client.get(url, params=params, headers=request_headers)
    response.raise_for_status()
    data = response.json()
    if fields is not None and isinstance(data, dict):
        wanted = set(fields)
        data = {key: value for key, value in data.items() if key in wanted}
    return data


def numeric_fields(data: Any) -> dict[str, float]:
    """Keep the int and float values of a JSON object; booleans are dropped."""
    if not isinstance(data, dict):
        return {}
    return {
        key: value
        for key, value in data.items()
        if isinstance(value, (int, float)) and not isinstance(value, bool)
    }


async def fetch_api_metrics(sources: Iterable[ApiSource]) -> dict[str, float]:
    """
    Fetch every source in order and merge their numeric fields.

    Later sources override earlier ones on key collisions. A failing source is
    reported and contributes nothing.
    """
    metrics: dict[str, float] = {}
    for source in sources:
        try:
            data = await fetch_api_data(
                source.url,
                params=source.params,
                token=source.token,
                headers=source.headers,
                fields=source.fields,
            )
        except (httpx.HTTPError, ValueError) as e:
            if not is_quiet():
                console.print(
                    f"[yellow]Skipping metrics from {source.url}: {e}[/yellow]"
                )
            continue
        metrics.update(numeric_fields(data))
    return metrics
