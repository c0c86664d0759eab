"""
SurveyLens Backend — Statistics Helpers

Thin numpy/scipy wrappers used by the analyzer and pattern detector.
Every function expects a non-empty sequence; callers guard against empty input.
"""

import math
from collections import Counter
from typing import Any, Iterable

import numpy as np
from scipy import stats

Z_95 = 1.96


def is_numeric(value: Any) -> bool:
    """True for finite ints/floats. Booleans and numeric strings are not coerced."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def numeric_values(values: Iterable[Any]) -> list[float]:
    """Keep only numeric answers, in order."""
    return [float(v) for v in values if is_numeric(v)]


def mean(values: list[float]) -> float:
    return float(np.mean(values))


def median(values: list[float]) -> float:
    return float(np.median(values))


def mode(values: list[float]) -> float:
    """Most frequent value; ties resolve to the smallest value."""
    counts = Counter(values)
    top = max(counts.values())
    return min(v for v, c in counts.items() if c == top)


def population_std(values: list[float]) -> float:
    return float(np.std(values, ddof=0))


def sample_std(values: list[float]) -> float:
    """Sample standard deviation (ddof=1). A single value has zero spread."""
    if len(values) < 2:
        return 0.0
    return float(np.std(values, ddof=1))


def confidence_interval(values: list[float], z: float = Z_95) -> tuple[float, float]:
    """Normal-approximation CI around the mean: mean ± z·σ/√n with population σ."""
    m = mean(values)
    margin = z * (population_std(values) / math.sqrt(len(values)))
    return m - margin, m + margin


def distribution(values: list[float]) -> list[tuple[float, int, float]]:
    """(value, count, percentage) tuples sorted by value ascending."""
    counts = Counter(values)
    total = len(values)
    return [(value, count, count / total * 100) for value, count in sorted(counts.items())]


def two_tailed_p_value(z: float) -> float:
    """Two-tailed p-value for a z statistic under the standard normal."""
    return float(2 * stats.norm.sf(abs(z)))


def welch_t_test(a: list[float], b: list[float]) -> float:
    """p-value of Welch's unequal-variance t-test. Degenerate samples give 1.0."""
    if len(a) < 2 or len(b) < 2:
        return 1.0
    _, p_value = stats.ttest_ind(a, b, equal_var=False)
    if p_value is None or not math.isfinite(p_value):
        return 1.0
    return float(p_value)


def calculate_lift(baseline: float, comparison: float) -> float:
    """Percentage change of comparison over baseline. Zero baseline gives 0."""
    if baseline == 0:
        return 0.0
    return (comparison - baseline) / baseline * 100


def format_signed_percent(value: float) -> str:
    """12.34 -> '+12.3%', -3 -> '-3.0%', 0 -> '0.0%'."""
    if value > 0:
        return f"+{value:.1f}%"
    return f"{value:.1f}%"
