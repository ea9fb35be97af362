"""Pickup time metric (time to first review)."""

from pr_scorecard.errors import MissingDataError
from pr_scorecard.metrics.base import MetricPlugin
from pr_scorecard.models import (
    PullRequest,
    hours_between,
    parse_timestamp,
    try_parse_timestamp,
)


def calculate_pickup_time(pr: PullRequest) -> float:
    """
    Calculate pickup time in hours between PR creation and first review.

    Reviews without a parsable ``submitted_at`` are ignored.

    Raises:
        MissingTimestampError: If ``created_at`` is missing.
        MissingDataError: If no review has a valid submission timestamp.
    """
    created = parse_timestamp(pr.created_at, "createdAt")
    submitted = [
        t
        for t in (try_parse_timestamp(review.submitted_at) for review in pr.reviews)
        if t is not None
    ]
    if not submitted:
        raise MissingDataError("No valid review submittedAt timestamps")
    return hours_between(created, min(submitted))


METRIC = MetricPlugin(
    slug="pickup_time",
    description="Hours until first review",
    calculate=calculate_pickup_time,
)
