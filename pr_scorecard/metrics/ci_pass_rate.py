"""CI pass rate metric."""

from pr_scorecard.metrics.base import MetricPlugin
from pr_scorecard.models import PullRequest


def calculate_ci_pass_rate(pr: PullRequest) -> float:
    """Portion of check suites that completed successfully (0 with no suites)."""
    total = len(pr.check_suites)
    if not total:
        return 0.0
    passed = sum(1 for suite in pr.check_suites if suite.conclusion == "SUCCESS")
    return passed / total


METRIC = MetricPlugin(
    slug="ci_pass_rate",
    description="Portion of CI runs that pass",
    calculate=calculate_ci_pass_rate,
)
