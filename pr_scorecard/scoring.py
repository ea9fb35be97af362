"""
Normalization and weighted scoring of metric values.

Two strategies are provided:

- Range scoring: ``normalize_data`` maps each metric linearly into [0, 1]
  using a configured ``{min, max}`` range, then ``calculate_score`` combines
  the normalized values with per-metric weights.
- Rule scoring: ``score_metrics`` evaluates an ordered list of ScoreRule,
  each reading a named metric or calling an extractor, optionally passing the
  value through a normalizer such as one built by ``create_range_normalizer``.

In both cases the overall score is the weighted mean of the per-metric
results, and 0 when the total weight is 0.
"""

import math
from typing import Any, Callable, Mapping, NamedTuple

DEFAULT_RANGE = {"min": 0.0, "max": 1.0}
DEFAULT_WEIGHT = 1.0


class ScoreResult(NamedTuple):
    """Weighted per-metric scores and their overall weighted mean."""

    scores: dict[str, float]
    overall: float


class ScoreRule(NamedTuple):
    """
    A rule contributing ``weight * value`` to a rule-based score.

    Exactly one of ``metric`` or ``extractor`` is used; ``extractor`` wins
    when both are set.
    """

    weight: float
    metric: str | None = None
    extractor: Callable[[Mapping[str, Any]], Any] | None = None
    normalize: Callable[[float, Mapping[str, Any]], float] | None = None
    key: str | None = None


class RangeRule(NamedTuple):
    """A bucket scoring values strictly below ``max`` with ``score``."""

    max: float
    score: float


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and not math.isnan(value)
    )


def normalize_value(value: float, minimum: float, maximum: float) -> float:
    """Map ``value`` linearly from [minimum, maximum] into [0, 1], clamped."""
    if maximum == minimum:
        return 1.0 if value > maximum else 0.0
    norm = (value - minimum) / (maximum - minimum)
    return min(1.0, max(0.0, norm))


def normalize_data(
    data: Mapping[str, float],
    ranges: Mapping[str, Mapping[str, float]] | None = None,
) -> dict[str, float]:
    """
    Normalize every metric into [0, 1].

    Args:
        data: Raw metric values.
        ranges: ``{metric: {"min": ..., "max": ...}}``. Unknown metrics use
            ``{"min": 0, "max": 1}``.

    Returns:
        Normalized values with the same keys as ``data``.
    """
    ranges = ranges or {}
    result: dict[str, float] = {}
    for key, value in data.items():
        bounds = ranges.get(key, DEFAULT_RANGE)
        result[key] = normalize_value(
            value,
            bounds.get("min", DEFAULT_RANGE["min"]),
            bounds.get("max", DEFAULT_RANGE["max"]),
        )
    return result


def calculate_score(
    normalized: Mapping[str, float],
    weights: Mapping[str, float] | None = None,
) -> ScoreResult:
    """
    Combine normalized metrics with weights.

    Each score is ``normalized * weight`` (default weight 1). The overall score
    is ``sum(scores) / sum(weights)``, or 0 when the weights sum to 0.
    """
    weights = weights or {}
    scores: dict[str, float] = {}
    total_weight = 0.0
    weighted_sum = 0.0
    for key, value in normalized.items():
        weight = weights.get(key, DEFAULT_WEIGHT)
        scores[key] = value * weight
        weighted_sum += scores[key]
        total_weight += weight

    overall = weighted_sum / total_weight if total_weight else 0.0
    return ScoreResult(scores=scores, overall=overall)


def score_metrics(
    metrics: Mapping[str, Any],
    rules: list[ScoreRule],
) -> ScoreResult:
    """
    Score metrics with an ordered list of rules.

    Rules whose value is missing, non-numeric or NaN contribute nothing, not
    even their weight. Results are keyed by the rule's ``key``, else its metric
    name, else ``rule_<index>``.
    """
    scores: dict[str, float] = {}
    total_weight = 0.0
    weighted_sum = 0.0
    for index, rule in enumerate(rules):
        if rule.extractor is not None:
            value = rule.extractor(metrics)
        elif rule.metric is not None:
            value = metrics.get(rule.metric)
        else:
            raise ValueError(f"Score rule {index} needs a metric or an extractor")

        if not _is_number(value):
            continue
        if rule.normalize is not None:
            value = rule.normalize(value, metrics)

        key = rule.key or (rule.metric if rule.extractor is None else None)
        key = key or f"rule_{index}"
        scores[key] = value * rule.weight
        weighted_sum += scores[key]
        total_weight += rule.weight

    overall = weighted_sum / total_weight if total_weight else 0.0
    return ScoreResult(scores=scores, overall=overall)


def create_range_normalizer(
    ranges: list[RangeRule] | list[Mapping[str, float]],
    default_score: float,
) -> Callable[..., float]:
    """
    Build a function mapping numeric values to bucket scores.

    Buckets are checked in ascending ``max`` order; the first bucket with
    ``value < max`` gives the score, otherwise ``default_score`` applies. The
    returned function accepts an optional second argument so it can be used as
    a ScoreRule normalizer.

    Example:
        >>> normalize = create_range_normalizer(
        ...     [RangeRule(4, 100), RangeRule(6, 80), RangeRule(12, 60)], 40
        ... )
        >>> normalize(5)
        80
    """
    ordered = sorted(
        (
            rule if isinstance(rule, RangeRule) else RangeRule(rule["max"], rule["score"])
            for rule in ranges
        ),
        key=lambda rule: rule.max,
    )

    def normalize(value: float, _metrics: Mapping[str, Any] | None = None) -> float:
        for rule in ordered:
            if value < rule.max:
                return rule.score
        return default_score

    return normalize
