"""
Tests for data generation of the built-in trials.
"""

import numpy as np
import pytest

from simpower import RegressionParameters
from simpower.stats.data_generation import (
    assign_groups,
    draw_bivariate_normal,
    draw_predictors,
    generate_cluster_ids,
    linear_predictor,
)


class TestAssignGroups:
    @pytest.mark.parametrize("n,p,ones", [(100, 0.5, 50), (10, 0.3, 3), (7, 0.5, 4), (1, 0.5, 0)])
    def test_exact_counts(self, n, p, ones):
        groups = assign_groups(n, p)
        assert len(groups) == n
        assert groups.sum() == ones

    def test_fixed_allocation_zeros_first(self):
        np.testing.assert_array_equal(assign_groups(4, 0.5), [0, 0, 1, 1])

    def test_shuffled_with_rng(self):
        groups = assign_groups(1000, 0.5, np.random.default_rng(1))
        assert groups.sum() == 500
        assert not np.array_equal(groups, np.sort(groups))


class TestDrawPredictors:
    def test_columns_and_rows(self, regression_params):
        data = draw_predictors(regression_params, 80, np.random.default_rng(0))
        assert list(data.columns) == ["x1", "treatment"]
        assert len(data) == 80
        assert data["treatment"].sum() == 40

    def test_correlated_predictors(self):
        params = RegressionParameters(
            coefficients={"a": 0.1, "b": 0.1},
            means={"a": 1.0, "b": -1.0},
            covariance=[[1.0, 0.6], [0.6, 1.0]],
        )
        data = draw_predictors(params, 20_000, np.random.default_rng(5))
        assert data["a"].mean() == pytest.approx(1.0, abs=0.05)
        assert data["b"].mean() == pytest.approx(-1.0, abs=0.05)
        assert np.corrcoef(data["a"], data["b"])[0, 1] == pytest.approx(0.6, abs=0.03)

    def test_reproducible(self, regression_params):
        a = draw_predictors(regression_params, 50, np.random.default_rng(3))
        b = draw_predictors(regression_params, 50, np.random.default_rng(3))
        assert a.equals(b)


class TestLinearPredictor:
    def test_interaction_is_product(self, regression_params):
        data = draw_predictors(regression_params, 10, np.random.default_rng(0))
        eta = linear_predictor(regression_params, data)
        x1 = data["x1"].to_numpy()
        t = data["treatment"].to_numpy()
        np.testing.assert_allclose(eta, 0.3 * x1 + 0.5 * t + 0.2 * x1 * t)

    def test_intercept(self):
        params = RegressionParameters(coefficients={"g": 2.0}, intercept=1.5, groups={"g": 0.5})
        data = draw_predictors(params, 4, np.random.default_rng(0))
        eta = linear_predictor(params, data)
        np.testing.assert_allclose(eta, 1.5 + 2.0 * data["g"].to_numpy())


class TestClustersAndCorrelation:
    def test_cluster_ids(self):
        np.testing.assert_array_equal(generate_cluster_ids(7, 3), [0, 0, 0, 1, 1, 1, 2])

    def test_bivariate_normal(self):
        data = draw_bivariate_normal(0.3, 20_000, np.random.default_rng(2))
        assert list(data.columns) == ["x", "y"]
        assert np.corrcoef(data["x"], data["y"])[0, 1] == pytest.approx(0.3, abs=0.03)
