"""
Tests for repository-level aggregate metrics.
"""

from datetime import datetime, timezone

from pr_scorecard.aggregate import calculate_metrics, to_dict
from pr_scorecard.models import CheckSuite, Commit, PullRequest, Review

NOW = datetime(2024, 3, 1, tzinfo=timezone.utc)


def _pr(number, **kwargs) -> PullRequest:
    defaults = {
        "id": f"PR_{number}",
        "number": number,
        "title": f"PR {number}",
        "state": "OPEN",
        "created_at": "2024-02-01T00:00:00Z",
        "updated_at": "2024-02-28T00:00:00Z",
    }
    defaults.update(kwargs)
    return PullRequest(**defaults)


def _suite(conclusion, minutes):
    return CheckSuite(
        id="CS",
        status="COMPLETED",
        conclusion=conclusion,
        started_at="2024-02-01T00:00:00Z",
        completed_at=f"2024-02-01T00:{minutes:02d}:00Z",
    )


def test_empty_collection():
    """Test every ratio is zero without records."""
    metrics = calculate_metrics([], now=NOW)
    assert metrics.merge_rate == 0.0
    assert metrics.build_success_rate == 0.0
    assert metrics.average_ci_duration == 0.0
    assert metrics.pr_count_per_developer == {}
    assert metrics.outsized_prs == []
    assert metrics.pr_backlog == 0


def test_aggregates():
    prs = [
        _pr(
            1,
            state="MERGED",
            author="alice",
            merged_at="2024-02-02T00:00:00Z",
            closed_at="2024-02-02T00:00:00Z",
            additions=900,
            deletions=200,
            commits=(Commit("a", "work", None), Commit("b", "more", None)),
            reviews=(Review("R1", "APPROVED", None), Review("R2", "COMMENTED", None)),
            check_suites=(_suite("SUCCESS", 10), _suite("FAILURE", 20)),
            labels=("Hotfix",),
        ),
        _pr(
            2,
            state="CLOSED",
            author="alice",
            closed_at="2024-02-03T00:00:00Z",
            commits=(Commit("c", "try", None),),
        ),
        _pr(3, author="bob", updated_at="2024-01-01T00:00:00Z"),
        _pr(4, additions=10, check_suites=(_suite("SUCCESS", 30),)),
    ]

    metrics = calculate_metrics(prs, now=NOW)

    assert metrics.pr_count_per_developer == {"alice": 2, "bob": 1}
    assert metrics.merge_rate == 0.25
    assert metrics.closed_without_merge_rate == 0.25
    assert metrics.average_commits_per_pr == 0.75
    assert metrics.outsized_prs == [1]
    assert metrics.outsized_pr_ratio == 0.25
    assert metrics.review_coverage == 0.25
    assert metrics.review_counts == {1: 2}
    assert metrics.build_success_rate == 2 / 3
    assert metrics.average_ci_duration == 1200.0
    assert metrics.stale_pr_count == 1
    assert metrics.hotfix_frequency == 0.25
    assert metrics.pr_backlog == 2


def test_custom_thresholds():
    prs = [_pr(1, additions=60), _pr(2, updated_at="2024-02-25T00:00:00Z")]
    metrics = calculate_metrics(prs, outsized_threshold=50, stale_days=3, now=NOW)
    assert metrics.outsized_prs == [1]
    assert metrics.stale_pr_count == 1


def test_numeric_and_to_dict():
    prs = [_pr(1, reviews=(Review("R1", "APPROVED", None),))]
    metrics = calculate_metrics(prs, now=NOW)

    numeric = metrics.numeric()
    assert "review_counts" not in numeric
    assert "outsized_prs" not in numeric
    assert numeric["pr_backlog"] == 1

    data = to_dict(metrics)
    assert data["review_counts"] == {"1": 1}
