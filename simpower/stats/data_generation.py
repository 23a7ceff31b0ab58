"""
Data generation for the built-in trials.

All randomness comes from the ``numpy.random.Generator`` passed in, so a
trial's data set is fully determined by its seed.
"""

from typing import Optional

import numpy as np
import pandas as pd

from ..core.parameters import RegressionParameters, split_term


def assign_groups(sample_size: int, proportion: float = 0.5, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Return a 0/1 group indicator with exactly ``round(n * proportion)`` ones.

    Without *rng* the zeros come first, as in a fixed allocation; with
    *rng* the order is shuffled, which keeps several binary predictors
    independent of each other.
    """
    n_ones = int(round(sample_size * proportion))
    groups = np.concatenate([np.zeros(sample_size - n_ones, dtype=int), np.ones(n_ones, dtype=int)])
    if rng is not None:
        groups = rng.permutation(groups)
    return groups


def draw_predictors(parameters: RegressionParameters, sample_size: int, rng: np.random.Generator) -> pd.DataFrame:
    """Draw the predictor columns of one data set.

    Returns:
        DataFrame with one column per continuous predictor (multivariate
        normal) followed by one 0/1 column per binary predictor.
    """
    columns = {}

    names = parameters.continuous_names
    if names:
        mean = np.array([parameters.means[name] for name in names], dtype=float)
        X = rng.multivariate_normal(mean, parameters.covariance_matrix, size=sample_size, method="cholesky")
        for j, name in enumerate(names):
            columns[name] = X[:, j]

    for name, share in parameters.groups.items():
        columns[name] = assign_groups(sample_size, share, rng)

    return pd.DataFrame(columns, index=pd.RangeIndex(sample_size))


def linear_predictor(parameters: RegressionParameters, data: pd.DataFrame) -> np.ndarray:
    """Compute ``intercept + sum(coefficient * term)`` for every row."""
    eta = np.full(len(data), float(parameters.intercept))
    for term, coefficient in parameters.coefficients.items():
        values = np.ones(len(data))
        for name in split_term(term):
            values = values * data[name].to_numpy(dtype=float)
        eta += coefficient * values
    return eta


def generate_cluster_ids(sample_size: int, cluster_size: int) -> np.ndarray:
    """Assign consecutive observations to clusters of *cluster_size*.

    Returns:
        1-D integer array like ``[0, 0, 0, 1, 1, 1, ...]`` of length
        *sample_size*; the last cluster is smaller when *sample_size* is
        not a multiple of *cluster_size*.
    """
    return np.arange(sample_size) // cluster_size


def draw_bivariate_normal(correlation: float, sample_size: int, rng: np.random.Generator) -> pd.DataFrame:
    """Standard bivariate normal sample with the given correlation."""
    cov = np.array([[1.0, correlation], [correlation, 1.0]])
    xy = rng.multivariate_normal(np.zeros(2), cov, size=sample_size, method="cholesky")
    return pd.DataFrame({"x": xy[:, 0], "y": xy[:, 1]})
