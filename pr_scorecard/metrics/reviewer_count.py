"""Reviewer count metric."""

from pr_scorecard.metrics.base import MetricPlugin
from pr_scorecard.models import PullRequest


def calculate_reviewer_count(pr: PullRequest) -> int:
    """Count distinct review authors (anonymous reviews are not counted)."""
    return len({review.author for review in pr.reviews if review.author})


METRIC = MetricPlugin(
    slug="reviewer_count",
    description="Number of unique reviewers",
    calculate=calculate_reviewer_count,
)
