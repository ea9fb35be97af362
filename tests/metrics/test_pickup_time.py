"""Tests for pickup time metric."""

import pytest

from pr_scorecard.errors import MissingDataError, MissingTimestampError
from pr_scorecard.metrics.pickup_time import calculate_pickup_time
from pr_scorecard.models import PullRequest, Review


def _pr(reviews=(), created_at="2024-01-01T00:00:00Z") -> PullRequest:
    return PullRequest(
        id="PR_1",
        number=1,
        title="Fix bug",
        state="OPEN",
        created_at=created_at,
        updated_at="2024-01-05T00:00:00Z",
        reviews=tuple(reviews),
    )


class TestPickupTime:
    """Test pickup time metric."""

    def test_uses_earliest_review(self):
        """Test the first submitted review determines pickup time."""
        pr = _pr(
            [
                Review("R2", "APPROVED", "2024-01-02T00:00:00Z"),
                Review("R1", "COMMENTED", "2024-01-01T06:00:00Z"),
            ]
        )
        assert calculate_pickup_time(pr) == 6.0

    def test_skips_invalid_review_timestamps(self):
        """Test reviews without a valid timestamp are ignored."""
        pr = _pr(
            [
                Review("R1", "PENDING", None),
                Review("R2", "COMMENTED", "not a date"),
                Review("R3", "APPROVED", "2024-01-01T03:00:00Z"),
            ]
        )
        assert calculate_pickup_time(pr) == 3.0

    def test_no_reviews_raises(self):
        """Test a PR without reviews has no pickup time."""
        with pytest.raises(MissingDataError):
            calculate_pickup_time(_pr())

    def test_only_invalid_reviews_raises(self):
        """Test a PR whose reviews all lack timestamps has no pickup time."""
        with pytest.raises(MissingDataError):
            calculate_pickup_time(_pr([Review("R1", "PENDING", None)]))

    def test_missing_created_at_raises(self):
        """Test a missing creation date is reported."""
        pr = _pr([Review("R1", "APPROVED", "2024-01-01T03:00:00Z")], created_at="")
        with pytest.raises(MissingTimestampError):
            calculate_pickup_time(pr)
