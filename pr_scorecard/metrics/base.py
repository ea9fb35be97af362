"""
Shared metric plugin types.
"""

from typing import Any, Callable, NamedTuple

from pr_scorecard.models import PullRequest


class MetricPlugin(NamedTuple):
    """A calculator deriving one value from one pull request.

    ``calculate`` must be pure: it must not mutate the record and should raise
    a MetricError subclass when the value cannot be derived.
    """

    slug: str
    description: str
    calculate: Callable[[PullRequest], Any]
