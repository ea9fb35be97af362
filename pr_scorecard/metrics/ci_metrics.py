"""CI success rate and duration metrics."""

from typing import NamedTuple

from pr_scorecard.metrics.base import MetricPlugin
from pr_scorecard.models import CheckSuite, PullRequest, try_parse_timestamp


class CiMetrics(NamedTuple):
    """CI figures for one pull request."""

    success_rate: float  # portion of check suites concluding SUCCESS
    average_duration: float  # seconds


def check_suite_duration(suite: CheckSuite) -> float | None:
    """Return the suite's duration in seconds, or None if not measurable."""
    started = try_parse_timestamp(suite.started_at)
    completed = try_parse_timestamp(suite.completed_at)
    if started is None or completed is None:
        return None
    return (completed - started).total_seconds()


def calculate_ci_metrics(pr: PullRequest) -> CiMetrics:
    """
    Calculate CI related metrics for a pull request.

    Suites without measurable timestamps still count toward the average's
    denominator. Both values are zero when there are no check suites.
    """
    total = len(pr.check_suites)
    if not total:
        return CiMetrics(success_rate=0.0, average_duration=0.0)

    success = sum(1 for suite in pr.check_suites if suite.conclusion == "SUCCESS")
    duration = sum(check_suite_duration(suite) or 0.0 for suite in pr.check_suites)
    return CiMetrics(success_rate=success / total, average_duration=duration / total)


METRIC = MetricPlugin(
    slug="ci_metrics",
    description="Success rate and duration of CI runs",
    calculate=calculate_ci_metrics,
)
