"""
Validation utilities for SimPower.

Every validator returns a ``_ValidationResult`` carrying errors and
warnings; ``raise_if_invalid()`` turns errors into ``InvalidParameters``
so bad configuration is rejected before any trial is dispatched.
"""

import os
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..core.errors import InvalidParameters
from ..core.seeding import MAX_SEED

__all__ = []

FAILURE_POLICIES = ("exclude", "abort")


@dataclass
class _ValidationResult:
    """Outcome of a validation check, carrying errors and warnings.

    Attributes:
        is_valid: ``True`` if no errors were found.
        errors: List of error messages (empty when valid).
        warnings: List of non-fatal warning messages.
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def raise_if_invalid(self):
        """Raise ``InvalidParameters`` if the validation failed."""
        if not self.is_valid:
            error_msg = "Validation failed:\n" + "\n".join(f"• {err}" for err in self.errors)
            raise InvalidParameters(error_msg)

    def merge(self, other: "_ValidationResult") -> "_ValidationResult":
        """Combine two results into one."""
        return _ValidationResult(
            self.is_valid and other.is_valid,
            self.errors + other.errors,
            self.warnings + other.warnings,
        )


class _Validator:
    """Static helpers for type and range checks used by all validators."""

    @staticmethod
    def _check_type(value: Any, expected_types: tuple, name: str) -> Optional[str]:
        """Check if value has expected type (``bool`` never counts as a number)."""
        if isinstance(value, bool) or not isinstance(value, expected_types):
            actual_type = type(value).__name__
            expected = expected_types[0].__name__ if len(expected_types) == 1 else f"one of {[t.__name__ for t in expected_types]}"
            return f"{name} must be {expected}, got {actual_type}"
        return None

    @staticmethod
    def _check_range(
        value: Union[int, float],
        min_val: Optional[float],
        max_val: Optional[float],
        name: str,
        exclusive: bool = False,
    ) -> Optional[str]:
        """Check if value is within range."""
        if min_val is not None and (value <= min_val if exclusive else value < min_val):
            op = ">" if exclusive else ">="
            return f"{name} must be {op} {min_val}, got {value}"
        if max_val is not None and (value >= max_val if exclusive else value > max_val):
            op = "<" if exclusive else "<="
            return f"{name} must be {op} {max_val}, got {value}"
        return None


_validator = _Validator()


def _validate_numeric_parameter(
    value: Any,
    name: str,
    expected_types: tuple = (int, float, np.integer, np.floating),
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
    exclusive: bool = False,
) -> _ValidationResult:
    """Generic validation for numeric parameters."""
    errors: List[str] = []

    type_error = _validator._check_type(value, expected_types, name)
    if type_error:
        return _ValidationResult(False, [type_error], [])

    if not np.isfinite(value):
        return _ValidationResult(False, [f"{name} must be finite, got {value}"], [])

    range_error = _validator._check_range(value, min_val, max_val, name, exclusive)
    if range_error:
        errors.append(range_error)

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_power(power: Any) -> _ValidationResult:
    """Validate target power (a proportion in [0, 1])."""
    return _validate_numeric_parameter(power, "Target power", min_val=0, max_val=1)


def _validate_alpha(alpha: Any) -> _ValidationResult:
    """Validate a significance level in (0, 0.25]."""
    result = _validate_numeric_parameter(alpha, "Alpha", min_val=0, max_val=0.25)
    if result.is_valid and alpha == 0:
        return _ValidationResult(False, ["Alpha must be > 0, got 0"], [])
    return result


def _validate_proportion(value: Any, name: str) -> _ValidationResult:
    """Validate a proportion strictly between 0 and 1."""
    return _validate_numeric_parameter(value, name, min_val=0, max_val=1, exclusive=True)


def _validate_positive(value: Any, name: str) -> _ValidationResult:
    """Validate a strictly positive finite number."""
    return _validate_numeric_parameter(value, name, min_val=0, exclusive=True)


def _validate_iterations(iterations: Any) -> _ValidationResult:
    """Validate the number of trials per sample size.

    Counts below 1000 are accepted with a warning: the Monte Carlo error
    of a power estimate near 0.5 is then above 0.015.
    """
    if isinstance(iterations, bool) or not isinstance(iterations, (int, np.integer)):
        return _ValidationResult(False, [f"iterations must be an integer, got {type(iterations).__name__}"], [])
    if iterations < 1:
        return _ValidationResult(False, [f"iterations must be >= 1, got {iterations}"], [])

    warnings: List[str] = []
    if iterations < 1000:
        warnings.append(f"Low iteration count ({iterations}). Consider using at least 1000 for reliable results.")
    return _ValidationResult(True, [], warnings)


def _validate_sample_size(sample_size: Any, min_size: int = 1) -> _ValidationResult:
    """Validate a single sample size (integer >= *min_size*)."""
    if isinstance(sample_size, bool) or not isinstance(sample_size, (int, np.integer)):
        return _ValidationResult(False, [f"sample_size must be an integer, got {type(sample_size).__name__}"], [])
    if sample_size < min_size:
        return _ValidationResult(False, [f"sample_size must be at least {min_size}, got {sample_size}"], [])
    return _ValidationResult(True, [], [])


def _validate_sample_sizes(sample_sizes: Any, min_size: int = 1) -> _ValidationResult:
    """Validate the sample sizes of a sweep: non-empty, positive, no duplicates."""
    if isinstance(sample_sizes, (str, bytes)) or not isinstance(sample_sizes, (Sequence, np.ndarray, range)):
        return _ValidationResult(False, [f"sample_sizes must be a sequence of integers, got {type(sample_sizes).__name__}"], [])
    if len(sample_sizes) == 0:
        return _ValidationResult(False, ["sample_sizes must not be empty"], [])

    errors: List[str] = []
    for size in sample_sizes:
        errors.extend(_validate_sample_size(size, min_size).errors)

    if not errors:
        counts = Counter(int(s) for s in sample_sizes)
        duplicates = sorted(size for size, count in counts.items() if count > 1)
        if duplicates:
            errors.append(f"sample_sizes must be unique, duplicated: {duplicates}")

    warnings: List[str] = []
    if not errors and len(sample_sizes) > 100:
        warnings.append(f"Large number of sample sizes to test ({len(sample_sizes)}). This may take significant time.")

    return _ValidationResult(len(errors) == 0, errors, warnings)


def _validate_sample_size_range(from_size: Any, to_size: Any, by: Any) -> _ValidationResult:
    """Validate ``from_size``/``to_size``/``by`` range parameters."""
    errors: List[str] = []
    warnings: List[str] = []

    for param, name in [(from_size, "from_size"), (to_size, "to_size"), (by, "by")]:
        if isinstance(param, bool) or not isinstance(param, int) or param <= 0:
            errors.append(f"{name} must be a positive integer, got {param}")

    if errors:
        return _ValidationResult(False, errors, warnings)

    if from_size >= to_size:
        errors.append(f"from_size ({from_size}) must be less than to_size ({to_size})")

    if by > (to_size - from_size) and from_size < to_size:
        errors.append(f"Step size 'by' ({by}) is larger than range ({to_size - from_size}). This will only test one sample size.")

    n_tests = len(range(from_size, to_size + 1, by))
    if n_tests > 100:
        warnings.append(f"Large number of sample sizes to test ({n_tests}). This may take significant time.")

    return _ValidationResult(len(errors) == 0, errors, warnings)


def _validate_covariance_matrix(cov: Any, n_vars: Optional[int] = None, name: str = "Covariance matrix") -> _ValidationResult:
    """Validate a covariance matrix: square, symmetric, positive definite."""
    errors: List[str] = []

    try:
        cov = np.asarray(cov, dtype=float)
    except (TypeError, ValueError):
        return _ValidationResult(False, [f"{name} must be numeric"], [])

    if cov.ndim != 2 or cov.shape[0] != cov.shape[1]:
        return _ValidationResult(False, [f"{name} must be square, got shape {cov.shape}"], [])

    if n_vars is not None and cov.shape[0] != n_vars:
        return _ValidationResult(False, [f"{name} must be {n_vars}x{n_vars}, got {cov.shape[0]}x{cov.shape[1]}"], [])

    if not np.all(np.isfinite(cov)):
        return _ValidationResult(False, [f"{name} must contain only finite values"], [])

    if not np.allclose(cov, cov.T):
        errors.append(f"{name} must be symmetric")
    elif cov.size:
        try:
            eigenvals = np.linalg.eigvalsh(cov)
            if np.any(eigenvals <= 1e-12):
                errors.append(f"{name} must be positive definite (smallest eigenvalue {eigenvals.min():.3g})")
        except np.linalg.LinAlgError:
            errors.append(f"Cannot compute eigenvalues of {name.lower()}")

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_parallel_settings(n_jobs: Any) -> Tuple[int, _ValidationResult]:
    """Validate the number of workers, capping it at the CPU count.

    Args:
        n_jobs: Positive integer, or ``-1`` for all available CPUs.

    Returns:
        ``(effective_n_jobs, ValidationResult)``
    """
    max_cores = os.cpu_count() or 1

    if isinstance(n_jobs, bool) or not isinstance(n_jobs, (int, np.integer)):
        return 1, _ValidationResult(False, [f"n_jobs must be a positive integer or -1, got {n_jobs!r}"], [])
    if n_jobs == -1:
        return max_cores, _ValidationResult(True, [], [])
    if n_jobs <= 0:
        return 1, _ValidationResult(False, [f"n_jobs must be a positive integer or -1, got {n_jobs}"], [])

    warnings: List[str] = []
    if n_jobs > max_cores:
        warnings.append(f"n_jobs ({n_jobs}) exceeds available CPUs ({max_cores}); using {max_cores}")
    return min(int(n_jobs), max_cores), _ValidationResult(True, [], warnings)


def _validate_failure_policy(policy: Any) -> _ValidationResult:
    """Validate the fit-failure policy name."""
    if policy not in FAILURE_POLICIES:
        return _ValidationResult(False, [f"failure_policy must be one of {FAILURE_POLICIES}, got {policy!r}"], [])
    return _ValidationResult(True, [], [])


def _validate_time_budget(budget: Any) -> _ValidationResult:
    """Validate an optional per-sample-size time budget in seconds."""
    if budget is None:
        return _ValidationResult(True, [], [])
    return _validate_positive(budget, "time_budget")


def _validate_failure_tolerance(fraction: Any) -> _ValidationResult:
    """Validate the tolerated fraction of failed trials (0–1, or ``None``)."""
    if fraction is None:
        return _ValidationResult(True, [], [])
    return _validate_numeric_parameter(fraction, "max_failed_fraction", min_val=0, max_val=1)


def _validate_seed(seed: Any) -> _ValidationResult:
    """Validate a run-level seed (non-negative integer below 2**32, or ``None``)."""
    if seed is None:
        return _ValidationResult(True, [], [])
    if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)):
        return _ValidationResult(False, [f"seed must be an integer or None, got {type(seed).__name__}"], [])
    if seed < 0 or seed > MAX_SEED:
        return _ValidationResult(False, [f"seed must be between 0 and {MAX_SEED:,}, got {seed}"], [])
    return _ValidationResult(True, [], [])
