"""Outsized PR flag."""

from pr_scorecard.metrics.base import MetricPlugin
from pr_scorecard.models import PullRequest

DEFAULT_OUTSIZED_LIMIT = 800


def calculate_outsized_flag(pr: PullRequest, limit: int = DEFAULT_OUTSIZED_LIMIT) -> bool:
    """Return True if additions + deletions exceed ``limit``."""
    return pr.lines_changed > limit


METRIC = MetricPlugin(
    slug="outsized_flag",
    description="Flags PRs that exceed the outsized threshold",
    calculate=calculate_outsized_flag,
)
