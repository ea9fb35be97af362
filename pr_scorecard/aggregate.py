"""
Repository-level metrics folded from the full set of pull requests.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, NamedTuple

from pr_scorecard.metrics.ci_metrics import check_suite_duration
from pr_scorecard.models import PullRequest, try_parse_timestamp

DEFAULT_OUTSIZED_THRESHOLD = 1000
DEFAULT_STALE_DAYS = 30

HOTFIX_PATTERN = re.compile(r"hotfix", re.IGNORECASE)


class AggregateMetrics(NamedTuple):
    """Repository statistics over a collection run."""

    pr_count_per_developer: dict[str, int]
    merge_rate: float
    closed_without_merge_rate: float
    average_commits_per_pr: float
    outsized_prs: list[int]
    outsized_pr_ratio: float
    review_coverage: float
    review_counts: dict[int, int]
    build_success_rate: float
    average_ci_duration: float  # seconds
    stale_pr_count: int
    hotfix_frequency: float
    pr_backlog: int

    def numeric(self) -> dict[str, float]:
        """Return the scalar numeric fields, keyed by field name."""
        return {
            key: value
            for key, value in self._asdict().items()
            if isinstance(value, (int, float)) and not isinstance(value, bool)
        }


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def calculate_metrics(
    prs: list[PullRequest],
    outsized_threshold: int = DEFAULT_OUTSIZED_THRESHOLD,
    stale_days: int = DEFAULT_STALE_DAYS,
    now: datetime | None = None,
) -> AggregateMetrics:
    """
    Fold pull requests into repository-level statistics in one pass.

    Args:
        prs: Canonical records, typically ascending by creation.
        outsized_threshold: Lines changed above which a PR is outsized.
        stale_days: Open PRs not updated for longer than this are stale.
        now: Reference time for staleness (default: now in UTC).

    Returns:
        AggregateMetrics. Every ratio is 0 when its denominator is 0.
    """
    current = now or datetime.now(timezone.utc)
    stale_after = timedelta(days=stale_days)

    pr_count_per_developer: dict[str, int] = {}
    review_counts: dict[int, int] = {}
    outsized_prs: list[int] = []
    merged = 0
    closed_without_merge = 0
    commit_count = 0
    reviewed = 0
    suite_count = 0
    suite_success = 0
    ci_duration = 0.0
    stale = 0
    hotfixes = 0
    backlog = 0

    for pr in prs:
        if pr.author:
            pr_count_per_developer[pr.author] = (
                pr_count_per_developer.get(pr.author, 0) + 1
            )
        if pr.merged_at:
            merged += 1
        elif pr.closed_at:
            closed_without_merge += 1
        commit_count += len(pr.commits)

        if pr.lines_changed > outsized_threshold:
            outsized_prs.append(pr.number)

        if pr.reviews:
            reviewed += 1
            review_counts[pr.number] = len(pr.reviews)

        for suite in pr.check_suites:
            suite_count += 1
            if suite.conclusion == "SUCCESS":
                suite_success += 1
            ci_duration += check_suite_duration(suite) or 0.0

        if pr.state == "OPEN":
            backlog += 1
            updated = try_parse_timestamp(pr.updated_at)
            if updated is not None and current - updated > stale_after:
                stale += 1

        if any(HOTFIX_PATTERN.search(label) for label in pr.labels):
            hotfixes += 1

    total = len(prs)
    return AggregateMetrics(
        pr_count_per_developer=pr_count_per_developer,
        merge_rate=_ratio(merged, total),
        closed_without_merge_rate=_ratio(closed_without_merge, total),
        average_commits_per_pr=_ratio(commit_count, total),
        outsized_prs=outsized_prs,
        outsized_pr_ratio=_ratio(len(outsized_prs), total),
        review_coverage=_ratio(reviewed, total),
        review_counts=review_counts,
        build_success_rate=_ratio(suite_success, suite_count),
        average_ci_duration=_ratio(ci_duration, suite_count),
        stale_pr_count=stale,
        hotfix_frequency=_ratio(hotfixes, total),
        pr_backlog=backlog,
    )


def to_dict(metrics: AggregateMetrics) -> dict[str, Any]:
    """Convert to a JSON-friendly dict (review count keys become strings)."""
    data = metrics._asdict()
    data["review_counts"] = {str(k): v for k, v in metrics.review_counts.items()}
    return data
