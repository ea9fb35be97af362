"""PR size bucket metric."""

from pr_scorecard.metrics.base import MetricPlugin
from pr_scorecard.models import PullRequest

SMALL_MAX_LINES = 50
MEDIUM_MAX_LINES = 400


def calculate_size_bucket(pr: PullRequest) -> str:
    """Categorise pull request size as "S", "M" or "L" by lines changed."""
    lines = pr.lines_changed
    if lines < SMALL_MAX_LINES:
        return "S"
    if lines < MEDIUM_MAX_LINES:
        return "M"
    return "L"


METRIC = MetricPlugin(
    slug="size_bucket",
    description="Categorises pull request size",
    calculate=calculate_size_bucket,
)
