"""Idle time metric."""

from datetime import timedelta

from pr_scorecard.errors import MissingTimestampError
from pr_scorecard.metrics.base import MetricPlugin
from pr_scorecard.models import PullRequest, parse_timestamp, try_parse_timestamp

IDLE_THRESHOLD = timedelta(hours=24)


def calculate_idle_time_hours(pr: PullRequest) -> float:
    """
    Sum the time exceeding 24h between consecutive PR activity events.

    Activity events are creation, commit dates, review submissions and the
    terminal event (merge, else close, else last update). Unparsable commit
    and review timestamps are skipped.

    Returns:
        Idle hours rounded to one decimal.

    Raises:
        MissingTimestampError: If the creation or terminal timestamp is missing.
        InvalidTimestampError: If either cannot be parsed.
    """
    start = parse_timestamp(pr.created_at, "createdAt")
    end_value = pr.merged_at or pr.closed_at or pr.updated_at
    if not end_value:
        raise MissingTimestampError("Missing end timestamp")
    end = parse_timestamp(end_value, "end")

    events = [start]
    events.extend(
        t
        for t in (try_parse_timestamp(c.committed_date) for c in pr.commits)
        if t is not None
    )
    events.extend(
        t
        for t in (try_parse_timestamp(r.submitted_at) for r in pr.reviews)
        if t is not None
    )
    events.sort()
    if events[-1] != end:
        events.append(end)

    idle = timedelta(0)
    for previous, current in zip(events, events[1:]):
        gap = current - previous
        if gap > IDLE_THRESHOLD:
            idle += gap - IDLE_THRESHOLD
    return round(idle.total_seconds() / 3600, 1)


METRIC = MetricPlugin(
    slug="idle_time_hours",
    description="Time spent idle beyond one day",
    calculate=calculate_idle_time_hours,
)
