"""
Monte Carlo margin-of-error calculations.

Single source of truth for all MC tolerance computations (proportion scale).
"""

import numpy as np

from tests.config import ALLOWED_BIAS, MC_Z


def mc_margin(alpha, n_iter, z=MC_Z):
    """
    MC margin of error for a rejection rate under the null.

    Half-width of an approximate (1 - 2*Phi(-z)) interval for a binomial
    proportion, plus the allowed bias.
    """
    return z * np.sqrt(alpha * (1 - alpha) / n_iter) + ALLOWED_BIAS


def mc_accuracy_margin(true_power, n_iter, z=MC_Z):
    """
    MC margin for a known true power.

    Used by accuracy tests that compare MC estimates to exact analytical power.
    """
    return z * np.sqrt(true_power * (1 - true_power) / n_iter) + ALLOWED_BIAS
