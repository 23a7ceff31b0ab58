"""
Success criteria applied to trial outcomes.

A criterion is a vectorized predicate: it receives a 1-D array holding one
outcome component across trials and returns a boolean array of the same
length. Plain callables with that signature are accepted wherever a
criterion is expected.
"""

from typing import Callable, List, Sequence, Union

import numpy as np

from .errors import InvalidParameters

CriterionLike = Union["Criterion", Callable[[np.ndarray], np.ndarray]]


class Criterion:
    """Base class for threshold criteria."""

    def __call__(self, values: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def describe(self) -> str:
        return type(self).__name__


class PValueBelow(Criterion):
    """Significant when the p-value is strictly below *alpha*."""

    def __init__(self, alpha: float = 0.05):
        if not 0 < alpha < 1:
            raise InvalidParameters(f"alpha must be between 0 and 1, got {alpha}")
        self.alpha = float(alpha)

    def __call__(self, values: np.ndarray) -> np.ndarray:
        return np.asarray(values, dtype=float) < self.alpha

    def describe(self) -> str:
        return f"p < {self.alpha:g}"

    def __repr__(self):
        return f"PValueBelow({self.alpha!r})"


class WidthBelow(Criterion):
    """Precise enough when the interval width is strictly below *width*."""

    def __init__(self, width: float):
        if not width > 0:
            raise InvalidParameters(f"width must be positive, got {width}")
        self.width = float(width)

    def __call__(self, values: np.ndarray) -> np.ndarray:
        return np.asarray(values, dtype=float) < self.width

    def describe(self) -> str:
        return f"width < {self.width:g}"

    def __repr__(self):
        return f"WidthBelow({self.width!r})"


def describe_criterion(criterion) -> str:
    """Human-readable label for a criterion or a per-component list of them."""
    if isinstance(criterion, (list, tuple)):
        return ", ".join(describe_criterion(c) for c in criterion)
    if isinstance(criterion, Criterion):
        return criterion.describe()
    return getattr(criterion, "__name__", repr(criterion))


def resolve_criteria(criterion: Union[CriterionLike, Sequence[CriterionLike]], n_outcomes: int) -> List[CriterionLike]:
    """Expand *criterion* into one criterion per outcome component.

    A single criterion applies to every component; a sequence must match
    the number of components exactly.

    Raises:
        InvalidParameters: On a length mismatch or a non-callable entry.
    """
    if isinstance(criterion, (list, tuple)):
        criteria = list(criterion)
        if len(criteria) != n_outcomes:
            raise InvalidParameters(f"Got {len(criteria)} criteria for {n_outcomes} outcome components")
    else:
        criteria = [criterion] * n_outcomes

    for c in criteria:
        if not callable(c):
            raise InvalidParameters(f"criterion must be callable, got {type(c).__name__}")
    return criteria


def evaluate_criteria(criteria: List[CriterionLike], outcomes: np.ndarray) -> np.ndarray:
    """Apply per-component criteria to an ``(n_trials, n_outcomes)`` array.

    Returns:
        Boolean array of the same shape.
    """
    met = np.empty(outcomes.shape, dtype=bool)
    for j, criterion in enumerate(criteria):
        column = np.asarray(criterion(outcomes[:, j]), dtype=bool)
        if column.shape != (outcomes.shape[0],):
            raise InvalidParameters(f"criterion for component {j} returned shape {column.shape}, expected ({outcomes.shape[0]},)")
        met[:, j] = column
    return met
