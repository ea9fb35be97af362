"""Cycle time metric."""

from pr_scorecard.errors import MissingTimestampError
from pr_scorecard.metrics.base import MetricPlugin
from pr_scorecard.models import PullRequest, hours_between, parse_timestamp


def calculate_cycle_time(pr: PullRequest) -> float:
    """
    Calculate the cycle time in hours between PR creation and merge.

    Returns:
        Hours from creation to merge rounded to one decimal.

    Raises:
        MissingTimestampError: If ``created_at`` or ``merged_at`` is missing.
        InvalidTimestampError: If either timestamp cannot be parsed.
    """
    if not pr.created_at or not pr.merged_at:
        raise MissingTimestampError("Missing createdAt or mergedAt timestamp")
    created = parse_timestamp(pr.created_at, "createdAt")
    merged = parse_timestamp(pr.merged_at, "mergedAt")
    return hours_between(created, merged)


METRIC = MetricPlugin(
    slug="cycle_time",
    description="Hours from creation to merge",
    calculate=calculate_cycle_time,
)
