"""Change request ratio metric."""

from pr_scorecard.errors import MissingDataError
from pr_scorecard.metrics.base import MetricPlugin
from pr_scorecard.models import PullRequest


def calculate_change_request_ratio(pr: PullRequest) -> float:
    """
    Calculate the portion of reviews requesting changes.

    Raises:
        MissingDataError: If there are no reviews.
    """
    if not pr.reviews:
        raise MissingDataError("No reviews to evaluate change request ratio")
    requested = sum(1 for review in pr.reviews if review.state == "CHANGES_REQUESTED")
    return requested / len(pr.reviews)


METRIC = MetricPlugin(
    slug="change_request_ratio",
    description="Ratio of reviews requesting changes",
    calculate=calculate_change_request_ratio,
)
