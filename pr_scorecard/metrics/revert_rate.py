"""Revert rate metric."""

import re

from pr_scorecard.errors import MissingDataError
from pr_scorecard.metrics.base import MetricPlugin
from pr_scorecard.models import PullRequest

REVERT_PATTERN = re.compile(r"\brevert\b", re.IGNORECASE)


def calculate_revert_rate(pr: PullRequest) -> float:
    """
    Determine the proportion of commits whose headline mentions a revert.

    Raises:
        MissingDataError: If the pull request has no commits.
    """
    if not pr.commits:
        raise MissingDataError("No commits to evaluate revert rate")
    reverts = sum(
        1 for commit in pr.commits if REVERT_PATTERN.search(commit.message_headline)
    )
    return reverts / len(pr.commits)


METRIC = MetricPlugin(
    slug="revert_rate",
    description="Proportion of commits that revert",
    calculate=calculate_revert_rate,
)
