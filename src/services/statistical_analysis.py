"""
Statistical Analysis Utilities

Descriptive statistics used by the check-in statistics dashboard.

Key Features:
- Averages and coefficient of variation (consistency)
- Least-squares slope over an evenly spaced series (trends)
- Pearson correlation with a significance test
- Total helpers: empty or degenerate input returns 0 instead of raising
"""

import logging
from typing import List, Sequence, Tuple
import math

logger = logging.getLogger(__name__)

# Statistical significance threshold (alpha level)
DEFAULT_ALPHA = 0.05


def average(values: Sequence[float]) -> float:
    """Arithmetic mean, 0 for an empty sequence"""
    if not values:
        return 0.0
    return sum(values) / len(values)


def coefficient_of_variation(values: Sequence[float]) -> float:
    """
    Population standard deviation divided by the mean.

    Lower values mean a steadier series. Returns 0 for empty input or a
    zero mean.

    Example:
        >>> round(coefficient_of_variation([1, 2, 3]), 3)
        0.408
    """
    if not values:
        return 0.0
    mean = average(values)
    if mean == 0:
        return 0.0
    variance = sum((value - mean) ** 2 for value in values) / len(values)
    return math.sqrt(variance) / mean


def linear_slope(values: Sequence[float]) -> float:
    """
    Least-squares slope of values against their index (0, 1, 2, ...).

    Returns 0 for fewer than two points.

    Example:
        >>> linear_slope([10, 8, 6, 4])
        -2.0
    """
    n = len(values)
    if n < 2:
        return 0.0

    sum_x = n * (n - 1) / 2
    sum_y = sum(values)
    sum_xy = sum(index * value for index, value in enumerate(values))
    sum_xx = sum(index * index for index in range(n))

    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        return 0.0
    return (n * sum_xy - sum_x * sum_y) / denominator


def simple_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson r without significance testing.

    Returns 0 when the lengths differ, the input is empty, or either
    series has no variation.
    """
    if len(x) != len(y) or not x:
        return 0.0

    n = len(x)
    sum_x = sum(x)
    sum_y = sum(y)
    sum_xy = sum(xi * yi for xi, yi in zip(x, y))
    sum_xx = sum(xi * xi for xi in x)
    sum_yy = sum(yi * yi for yi in y)

    spread = (n * sum_xx - sum_x * sum_x) * (n * sum_yy - sum_y * sum_y)
    if spread <= 0:
        return 0.0

    r = (n * sum_xy - sum_x * sum_y) / math.sqrt(spread)
    return max(-1.0, min(1.0, r))


def pearson_correlation(x: List[float], y: List[float]) -> Tuple[float, float]:
    """
    Calculate Pearson correlation coefficient and p-value.

    This measures linear correlation between two continuous variables
    (e.g., sleep and stress management).

    Args:
        x: First variable values
        y: Second variable values (must be same length as x)

    Returns:
        Tuple of (correlation_coefficient, p_value)
        - correlation_coefficient: r value between -1 and 1
        - p_value: probability of observing this correlation by chance

    Example:
        >>> sleep = [7, 6, 8, 5, 7, 9, 6]
        >>> stress_management = [8, 6, 9, 5, 7, 9, 7]
        >>> r, p = pearson_correlation(sleep, stress_management)

    Raises:
        ValueError: If x and y have different lengths or are too short
    """
    if len(x) != len(y):
        raise ValueError(f"x and y must have same length (x={len(x)}, y={len(y)})")

    if len(x) < 3:
        raise ValueError(f"Need at least 3 data points for correlation (got {len(x)})")

    n = len(x)

    mean_x = sum(x) / n
    mean_y = sum(y) / n

    covariance = sum((x[i] - mean_x) * (y[i] - mean_y) for i in range(n))
    std_x = math.sqrt(sum((xi - mean_x) ** 2 for xi in x))
    std_y = math.sqrt(sum((yi - mean_y) ** 2 for yi in y))

    if std_x == 0 or std_y == 0:
        # No variation in one of the variables
        return 0.0, 1.0

    r = covariance / (std_x * std_y)
    r = max(-1.0, min(1.0, r))

    # t = r * sqrt(n - 2) / sqrt(1 - r^2)
    if abs(r) == 1.0:
        p_value = 0.0
    else:
        t_statistic = r * math.sqrt(n - 2) / math.sqrt(1 - r**2)
        p_value = _t_test_p_value(abs(t_statistic), n - 2)

    return r, p_value


def _t_test_p_value(t: float, df: int) -> float:
    """
    Two-tailed p-value for a t-statistic.

    Args:
        t: Absolute value of t-statistic
        df: Degrees of freedom

    Returns:
        Two-tailed p-value
    """
    if df < 1:
        return 1.0

    # For large df the t-distribution approximates the normal distribution
    if df > 30:
        return min(2 * (1 - _standard_normal_cdf(t)), 1.0)

    x = df / (df + t**2)
    return min(_regularized_beta(df / 2, 0.5, x), 1.0)


def _standard_normal_cdf(z: float) -> float:
    """Cumulative distribution function of the standard normal distribution"""
    return 0.5 * (1 + math.erf(z / math.sqrt(2)))


def _regularized_beta(a: float, b: float, x: float) -> float:
    """Regularized incomplete beta function I_x(a, b)"""
    if x <= 0:
        return 0.0
    if x >= 1:
        return 1.0

    log_front = (
        math.lgamma(a + b) - math.lgamma(a) - math.lgamma(b)
        + a * math.log(x) + b * math.log(1 - x)
    )
    front = math.exp(log_front)

    # The continued fraction converges quickly on this side of the mean
    if x < (a + 1) / (a + b + 2):
        return front * _beta_continued_fraction(a, b, x) / a
    return 1.0 - front * _beta_continued_fraction(b, a, 1 - x) / b


def _beta_continued_fraction(a: float, b: float, x: float, max_iterations: int = 200) -> float:
    """Modified Lentz evaluation of the incomplete beta continued fraction"""
    tiny = 1e-30
    c = 1.0
    d = 1.0 - (a + b) * x / (a + 1)
    d = 1.0 / (d if abs(d) > tiny else tiny)
    result = d

    for m in range(1, max_iterations + 1):
        m2 = 2 * m
        # Even step
        numerator = m * (b - m) * x / ((a + m2 - 1) * (a + m2))
        d = 1.0 + numerator * d
        d = 1.0 / (d if abs(d) > tiny else tiny)
        c = 1.0 + numerator / c
        c = c if abs(c) > tiny else tiny
        result *= d * c

        # Odd step
        numerator = -(a + m) * (a + b + m) * x / ((a + m2) * (a + m2 + 1))
        d = 1.0 + numerator * d
        d = 1.0 / (d if abs(d) > tiny else tiny)
        c = 1.0 + numerator / c
        c = c if abs(c) > tiny else tiny
        delta = d * c
        result *= delta

        if abs(delta - 1.0) < 1e-12:
            break

    return result


def is_statistically_significant(p_value: float, alpha: float = DEFAULT_ALPHA) -> bool:
    """
    Check if p-value meets statistical significance threshold.

    Args:
        p_value: P-value from statistical test
        alpha: Significance threshold (default 0.05)

    Returns:
        True if statistically significant (p < alpha), False otherwise
    """
    return p_value < alpha
