"""
Closed-form power and Monte Carlo error formulas.

Used to check simulated power against theory and to choose the number of
iterations that keeps the Monte Carlo error below a tolerance.
"""

import math

import numpy as np
from scipy.stats import nct
from scipy.stats import t as t_dist


def two_sample_power(effect_size: float, n_total: int, alpha: float = 0.05, treated_fraction: float = 0.5) -> float:
    """Power of the two-sided pooled-variance two-sample t-test.

    Args:
        effect_size: Standardized mean difference (Cohen's d).
        n_total: Total sample size over both groups.
        alpha: Significance level.
        treated_fraction: Share of *n_total* in the second group; group
            sizes are rounded the way ``assign_groups`` rounds them.

    Returns:
        Power as a proportion (0–1).
    """
    n1 = int(round(n_total * treated_fraction))
    n0 = n_total - n1
    df = n_total - 2
    noncentrality = effect_size / math.sqrt(1 / n0 + 1 / n1)
    t_crit = t_dist.ppf(1 - alpha / 2, df)
    return float(nct.sf(t_crit, df, noncentrality) + nct.cdf(-t_crit, df, noncentrality))


def two_sample_sample_size(
    effect_size: float,
    target_power: float = 0.8,
    alpha: float = 0.05,
    treated_fraction: float = 0.5,
    max_n: int = 100_000,
) -> int:
    """Smallest total sample size whose analytical power reaches *target_power*.

    Returns:
        The sample size, or ``-1`` if not reached below *max_n*.
    """
    for n in range(4, max_n + 1):
        if two_sample_power(effect_size, n, alpha, treated_fraction) >= target_power:
            return n
    return -1


def mc_standard_error(power: float, iterations: int) -> float:
    """Binomial Monte Carlo standard error of a power estimate."""
    return float(np.sqrt(power * (1 - power) / iterations))


def required_iterations(power: float, tolerance: float) -> int:
    """Iterations needed for a Monte Carlo error of at most *tolerance*.

    Solves ``sqrt(p (1 - p) / n) <= tolerance`` for ``n``. With
    ``power=0.5`` this is the worst case over all powers.
    """
    if not tolerance > 0:
        raise ValueError(f"tolerance must be positive, got {tolerance}")
    return max(1, math.ceil(power * (1 - power) / tolerance**2))
