"""
End-to-end scorecard: collect pull requests, derive metrics, score them.
"""

import math
from datetime import datetime
from typing import Any, Awaitable, Callable, Mapping, NamedTuple

from rich.console import Console

from pr_scorecard.aggregate import (
    DEFAULT_OUTSIZED_THRESHOLD,
    DEFAULT_STALE_DAYS,
    calculate_metrics,
)
from pr_scorecard.api import ApiSource, fetch_api_metrics
from pr_scorecard.collector import collect_pull_requests
from pr_scorecard.config import is_quiet
from pr_scorecard.errors import PartialResultsError
from pr_scorecard.metrics import MetricRegistry, create_registry
from pr_scorecard.models import PullRequest
from pr_scorecard.scoring import calculate_score, normalize_data

console = Console(stderr=True)


class Stats(NamedTuple):
    """Summary of one per-record metric across a collection."""

    count: int
    mean: float | None
    median: float | None
    p95: float | None


class ScorecardResult(NamedTuple):
    """Metrics, normalized values and weighted scores for a repository."""

    metrics: dict[str, float]
    normalized: dict[str, float]
    scores: dict[str, float]
    overall: float
    pull_request_count: int
    partial: bool = False


def summarize(values: list[float]) -> Stats:
    """Return count, mean, median and 95th percentile (nearest rank)."""
    if not values:
        return Stats(count=0, mean=None, median=None, p95=None)
    ordered = sorted(values)
    count = len(ordered)
    middle = count // 2
    if count % 2 == 0:
        median = (ordered[middle - 1] + ordered[middle]) / 2
    else:
        median = ordered[middle]
    p95_index = min(count - 1, max(0, math.ceil(count * 0.95) - 1))
    return Stats(
        count=count,
        mean=sum(ordered) / count,
        median=median,
        p95=ordered[p95_index],
    )


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)) and not math.isnan(value):
        return float(value)
    return None


def collect_metric_values(
    prs: list[PullRequest], registry: MetricRegistry
) -> dict[str, list[float]]:
    """
    Evaluate every plugin on every record, keeping numeric results.

    Booleans count as 0/1; categorical values are dropped. A plugin that fails
    for a record contributes nothing for that record.
    """
    values: dict[str, list[float]] = {slug: [] for slug in registry.slugs()}
    for pr in prs:
        for slug, value in registry.evaluate(pr).items():
            number = _as_number(value)
            if number is not None:
                values[slug].append(number)
    return values


def summarize_records(
    prs: list[PullRequest], registry: MetricRegistry
) -> dict[str, Stats]:
    """Summarize numeric per-record metrics across the collection."""
    return {
        slug: summarize(values)
        for slug, values in collect_metric_values(prs, registry).items()
        if values
    }


def build_metric_map(
    prs: list[PullRequest],
    registry: MetricRegistry,
    outsized_threshold: int = DEFAULT_OUTSIZED_THRESHOLD,
    stale_days: int = DEFAULT_STALE_DAYS,
    now: datetime | None = None,
) -> dict[str, float]:
    """
    Merge repository aggregates with per-record metric means.

    Per-record metrics appear under their plugin slug; aggregates under their
    field name.
    """
    metrics: dict[str, float] = {}
    for slug, stats in summarize_records(prs, registry).items():
        if stats.mean is not None:
            metrics[slug] = stats.mean
    aggregate = calculate_metrics(
        prs, outsized_threshold=outsized_threshold, stale_days=stale_days, now=now
    )
    metrics.update({key: float(value) for key, value in aggregate.numeric().items()})
    return metrics


def score_pull_requests(
    prs: list[PullRequest],
    ranges: Mapping[str, Mapping[str, float]] | None = None,
    weights: Mapping[str, float] | None = None,
    registry: MetricRegistry | None = None,
    static_metrics: Mapping[str, float] | None = None,
    now: datetime | None = None,
    partial: bool = False,
    api_metrics: Mapping[str, float] | None = None,
) -> ScorecardResult:
    """
    Score an already collected set of pull requests.

    Metrics are merged in order: pull-request metrics, then ``api_metrics``,
    then ``static_metrics``, later sources overriding earlier ones.
    When ``weights`` is given, only metrics named in it are scored; otherwise
    every metric is scored with weight 1.
    """
    registry = registry if registry is not None else create_registry()
    metrics = build_metric_map(prs, registry, now=now)
    metrics.update(api_metrics or {})
    metrics.update(static_metrics or {})

    scored = metrics
    if weights:
        scored = {key: value for key, value in metrics.items() if key in weights}
    normalized = normalize_data(scored, ranges)
    result = calculate_score(normalized, weights)
    return ScorecardResult(
        metrics=metrics,
        normalized=normalized,
        scores=result.scores,
        overall=result.overall,
        pull_request_count=len(prs),
        partial=partial,
    )


async def create_scorecard(
    owner: str,
    repo: str,
    since: str | datetime,
    ranges: Mapping[str, Mapping[str, float]] | None = None,
    weights: Mapping[str, float] | None = None,
    registry: MetricRegistry | None = None,
    static_metrics: Mapping[str, float] | None = None,
    apis: list[ApiSource] | None = None,
    collect: Callable[..., Awaitable[list[PullRequest]]] = collect_pull_requests,
    **collect_kwargs: Any,
) -> ScorecardResult:
    """
    Collect a repository's pull requests and score them.

    A PartialResultsError from the collector is reported and scoring proceeds
    with the partial records; the result is then flagged ``partial``. Other
    collection errors propagate. Each of ``apis`` is fetched after collection;
    a failing source is reported and skipped.
    """
    partial = False
    try:
        prs = await collect(owner, repo, since, **collect_kwargs)
    except PartialResultsError as e:
        if not is_quiet():
            console.print(
                f"[red]Encountered error after {len(e.partial)} PRs: {e}[/red]"
            )
        prs = e.partial
        partial = True

    api_metrics = await fetch_api_metrics(apis or [])

    return score_pull_requests(
        prs,
        ranges=ranges,
        weights=weights,
        registry=registry,
        static_metrics=static_metrics,
        partial=partial,
        api_metrics=api_metrics,
    )
