"""
Tests for validation utilities.
"""

import numpy as np
import pytest

from simpower import InvalidParameters
from simpower.utils.validators import (
    _validate_alpha,
    _validate_covariance_matrix,
    _validate_failure_policy,
    _validate_failure_tolerance,
    _validate_iterations,
    _validate_parallel_settings,
    _validate_power,
    _validate_sample_size,
    _validate_sample_size_range,
    _validate_sample_sizes,
    _validate_seed,
    _validate_time_budget,
    _ValidationResult,
)


class TestValidationResult:
    def test_raise_if_invalid(self):
        result = _ValidationResult(False, ["first problem", "second problem"], [])
        with pytest.raises(InvalidParameters, match="first problem"):
            result.raise_if_invalid()

    def test_valid_does_not_raise(self):
        _ValidationResult(True, [], ["just a warning"]).raise_if_invalid()

    def test_merge(self):
        merged = _ValidationResult(True, [], ["w"]).merge(_ValidationResult(False, ["e"], []))
        assert not merged.is_valid
        assert merged.errors == ["e"]
        assert merged.warnings == ["w"]


class TestValidatePower:
    @pytest.mark.parametrize("power", [0, 0.5, 0.8, 1])
    def test_valid(self, power):
        assert _validate_power(power).is_valid

    @pytest.mark.parametrize("power", [-0.1, 1.1, 80, float("nan"), "0.8", True])
    def test_invalid(self, power):
        assert not _validate_power(power).is_valid


class TestValidateAlpha:
    @pytest.mark.parametrize("alpha", [0.005, 0.05, 0.25])
    def test_valid(self, alpha):
        assert _validate_alpha(alpha).is_valid

    @pytest.mark.parametrize("alpha", [0, -0.01, 0.3])
    def test_invalid(self, alpha):
        assert not _validate_alpha(alpha).is_valid


class TestValidateIterations:
    def test_valid(self):
        result = _validate_iterations(1000)
        assert result.is_valid
        assert result.warnings == []

    def test_low_count_warns(self):
        result = _validate_iterations(200)
        assert result.is_valid
        assert any("Low iteration count" in w for w in result.warnings)

    @pytest.mark.parametrize("value", [0, -5, 10.5, "100", True])
    def test_invalid(self, value):
        assert not _validate_iterations(value).is_valid

    def test_numpy_integer(self):
        assert _validate_iterations(np.int64(1500)).is_valid


class TestValidateSampleSizes:
    def test_single(self):
        assert _validate_sample_size(100).is_valid
        assert not _validate_sample_size(3, min_size=4).is_valid
        assert not _validate_sample_size(50.0).is_valid

    def test_sequence(self):
        assert _validate_sample_sizes([100, 120, 140]).is_valid
        assert _validate_sample_sizes(range(100, 301, 20)).is_valid
        assert _validate_sample_sizes(np.array([10, 20])).is_valid

    def test_empty(self):
        assert not _validate_sample_sizes([]).is_valid

    def test_duplicates(self):
        result = _validate_sample_sizes([100, 120, 100])
        assert not result.is_valid
        assert "[100]" in result.errors[0]

    def test_non_positive(self):
        assert not _validate_sample_sizes([0, 10]).is_valid
        assert not _validate_sample_sizes([-10]).is_valid

    def test_not_a_sequence(self):
        assert not _validate_sample_sizes(100).is_valid
        assert not _validate_sample_sizes("100").is_valid

    def test_range(self):
        assert _validate_sample_size_range(100, 300, 20).is_valid
        assert not _validate_sample_size_range(300, 100, 20).is_valid
        assert not _validate_sample_size_range(100, 120, 50).is_valid
        assert not _validate_sample_size_range(100, 300, 0).is_valid


class TestValidateCovariance:
    def test_identity(self):
        assert _validate_covariance_matrix(np.eye(3), 3).is_valid

    def test_not_symmetric(self):
        assert not _validate_covariance_matrix([[1, 0.5], [0.2, 1]]).is_valid

    def test_not_positive_definite(self):
        assert not _validate_covariance_matrix([[1, 1], [1, 1]]).is_valid

    def test_wrong_size(self):
        assert not _validate_covariance_matrix(np.eye(2), 3).is_valid

    def test_non_finite(self):
        assert not _validate_covariance_matrix([[1, np.nan], [np.nan, 1]]).is_valid


class TestValidateRunOptions:
    def test_parallel_all_cpus(self):
        n, result = _validate_parallel_settings(-1)
        assert result.is_valid
        assert n >= 1

    def test_parallel_capped(self):
        n, result = _validate_parallel_settings(10_000)
        assert result.is_valid
        assert result.warnings
        assert n < 10_000

    @pytest.mark.parametrize("value", [0, -2, 1.5, None])
    def test_parallel_invalid(self, value):
        _, result = _validate_parallel_settings(value)
        assert not result.is_valid

    def test_failure_policy(self):
        assert _validate_failure_policy("exclude").is_valid
        assert _validate_failure_policy("abort").is_valid
        assert not _validate_failure_policy("ignore").is_valid

    def test_time_budget(self):
        assert _validate_time_budget(None).is_valid
        assert _validate_time_budget(2.5).is_valid
        assert not _validate_time_budget(0).is_valid

    def test_failure_tolerance(self):
        assert _validate_failure_tolerance(None).is_valid
        assert _validate_failure_tolerance(0.1).is_valid
        assert not _validate_failure_tolerance(1.5).is_valid

    def test_seed(self):
        assert _validate_seed(None).is_valid
        assert _validate_seed(0).is_valid
        assert _validate_seed(2**32 - 1).is_valid
        assert not _validate_seed(2**32).is_valid
        assert not _validate_seed(-1).is_valid
        assert not _validate_seed(1.0).is_valid
