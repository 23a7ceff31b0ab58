"""
Shared pytest fixtures for SimPower tests.
"""

import contextlib
import io

import numpy as np
import pytest

from tests.config import COMMON_VARIANCE, CONTROL_MEAN, TREATMENT_MEAN


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: long-running Monte Carlo accuracy tests")


@pytest.fixture
def suppress_output():
    """Silence console output of the analysis facade."""
    with contextlib.redirect_stdout(io.StringIO()), contextlib.redirect_stderr(io.StringIO()):
        yield


@pytest.fixture
def two_group_params():
    from simpower import TwoGroupParameters

    return TwoGroupParameters(mean_control=CONTROL_MEAN, mean_treatment=TREATMENT_MEAN, variance=COMMON_VARIANCE)


@pytest.fixture
def two_group_trial(two_group_params):
    """Fast t-test version of the two-group trial."""
    from simpower import TwoGroupTrial

    return TwoGroupTrial(two_group_params, method="ttest")


@pytest.fixture
def regression_params():
    """Correlated continuous predictor, binary group, and their interaction."""
    from simpower import RegressionParameters

    return RegressionParameters(
        coefficients={"x1": 0.3, "treatment": 0.5, "x1:treatment": 0.2},
        means={"x1": 0.0},
        groups={"treatment": 0.5},
    )


def ttest_trial(sample_size, params, seed):
    """Plain trial function: two-sample t-test p-value."""
    from scipy import stats

    rng = np.random.default_rng(seed)
    n0 = sample_size // 2
    a = rng.normal(params["m0"], params["sd"], n0)
    b = rng.normal(params["m1"], params["sd"], sample_size - n0)
    return stats.ttest_ind(a, b).pvalue


@pytest.fixture
def ttest_params():
    return {"m0": CONTROL_MEAN, "m1": TREATMENT_MEAN, "sd": COMMON_VARIANCE**0.5}
