"""Comment density metric."""

from pr_scorecard.errors import MissingDataError
from pr_scorecard.metrics.base import MetricPlugin
from pr_scorecard.models import PullRequest


def calculate_comment_density(pr: PullRequest) -> float:
    """
    Calculate comments per line changed.

    Raises:
        MissingDataError: If the pull request changes no lines.
    """
    lines = pr.lines_changed
    if lines == 0:
        raise MissingDataError("No code changes to calculate comment density")
    return len(pr.comments) / lines


METRIC = MetricPlugin(
    slug="comment_density",
    description="Comments per line changed",
    calculate=calculate_comment_density,
)
