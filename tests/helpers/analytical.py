"""
Analytical power formulas used as reference values.

Independent of the package so that simulated power is checked against
theory, not against itself.
"""

import numpy as np
from scipy.stats import nct, norm
from scipy.stats import t as t_dist


def analytical_two_sample_power(effect_size, n_total, alpha=0.05):
    """
    Power of the two-sided pooled two-sample t-test with equal groups
    (the first group gets ``n_total // 2``).

    Args:
        effect_size: Cohen's d
        n_total: total sample size
        alpha: significance level
    """
    n0 = n_total // 2
    n1 = n_total - n0
    df = n_total - 2
    noncentrality = effect_size / np.sqrt(1 / n0 + 1 / n1)
    t_crit = t_dist.ppf(1 - alpha / 2, df)
    return 1 - nct.cdf(t_crit, df, noncentrality) + nct.cdf(-t_crit, df, noncentrality)


def analytical_t_power(beta, n, p, sigma_eps=1.0, vif_j=1.0, alpha=0.05):
    """
    Power of the two-sided t-test for one regression coefficient.

    Uses the inverse-Wishart expectation E[(X'X)^{-1}]_jj = Sigma^{-1}_jj / (n - p - 2)
    for standard-normal predictors.

    Args:
        beta: coefficient of predictor j
        n: sample size
        p: number of predictors
        sigma_eps: residual standard deviation
        vif_j: [Sigma^{-1}]_jj for predictor j
        alpha: significance level
    """
    df = n - p - 1
    n_eff = max(n - p - 2, p + 2)
    noncentrality = beta * np.sqrt(n_eff) / (sigma_eps * np.sqrt(vif_j))
    t_crit = t_dist.ppf(1 - alpha / 2, df)
    return 1 - nct.cdf(t_crit, df, noncentrality) + nct.cdf(-t_crit, df, noncentrality)


def fisher_z_width(rho, n, confidence=0.95):
    """Approximate width of the Fisher-z interval of a correlation at its center."""
    z = np.arctanh(rho)
    half = norm.ppf(0.5 + confidence / 2) / np.sqrt(n - 3)
    return np.tanh(z + half) - np.tanh(z - half)
