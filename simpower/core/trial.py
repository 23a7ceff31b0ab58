"""
Trial functions for SimPower.

A trial is one simulate-fit-extract cycle: generate a data set of exactly
``sample_size`` rows from the bound population parameters, fit the model
to it and return a fixed-length vector of statistics. Trials hold no
state between calls, so any number of them can run in parallel.
"""

import warnings
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .errors import FitFailure, InvalidParameters

# Numerical errors a fitting routine may raise on a degenerate data set
FIT_ERRORS: Tuple[type, ...] = (np.linalg.LinAlgError, ValueError, FloatingPointError, ZeroDivisionError)


@dataclass(frozen=True)
class TrialReport:
    """Everything one trial produced, kept for inspection.

    Attributes:
        sample_size: Number of simulated rows.
        seed: Seed the trial ran with.
        data: The simulated data set.
        fit_result: Raw result of the fitting routine.
        outcome: Extracted statistics.
    """

    sample_size: int
    seed: Optional[int]
    data: Any
    fit_result: Any
    outcome: np.ndarray


class Trial:
    """Base class of a seedable simulate-fit-extract trial.

    Subclasses implement ``simulate``, ``fit`` and ``extract`` and set
    ``outcome_names``. Calling the trial runs one cycle and returns the
    outcome vector; any failure of the fit becomes ``FitFailure``.

    Attributes:
        parameters: Immutable population-parameter bundle.
        outcome_names: Names of the outcome components, in order.
        failure_warnings: Warning categories escalated to ``FitFailure``.
        inspect: Optional ``(data, fit_result, outcome)`` hook called after
            each successful trial, for diagnostics only.
    """

    outcome_names: Tuple[str, ...] = ("p_value",)
    failure_warnings: Tuple[type, ...] = ()

    def __init__(self, parameters: Any = None, inspect: Optional[Callable[[Any, Any, np.ndarray], None]] = None):
        self.parameters = parameters
        self.inspect = inspect

    @property
    def n_outcomes(self) -> int:
        return len(self.outcome_names)

    # ------------------------------------------------------------------
    # To implement
    # ------------------------------------------------------------------

    def simulate(self, sample_size: int, rng: np.random.Generator) -> pd.DataFrame:
        raise NotImplementedError

    def fit(self, data: pd.DataFrame) -> Any:
        raise NotImplementedError

    def extract(self, fit_result: Any) -> Sequence[float]:
        raise NotImplementedError

    def validate(self):
        """Check the parameter bundle; raise ``InvalidParameters`` if unusable."""
        return None

    def min_sample_size(self) -> int:
        """Smallest sample size for which the model is estimable."""
        return 1

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    def __call__(self, sample_size: int, seed: Optional[int] = None) -> np.ndarray:
        return self._run(sample_size, seed).outcome

    def run_once(self, sample_size: int, seed: Optional[int] = None) -> TrialReport:
        """Run a single trial and keep the data set and fit result."""
        return self._run(sample_size, seed)

    def _run(self, sample_size: int, seed: Optional[int]) -> TrialReport:
        rng = np.random.default_rng(seed)

        try:
            data = self.simulate(sample_size, rng)
            with warnings.catch_warnings():
                for category in self.failure_warnings:
                    warnings.simplefilter("error", category)
                fit_result = self.fit(data)
                outcome = np.asarray(self.extract(fit_result), dtype=float).reshape(-1)
        except (FitFailure, InvalidParameters):
            raise
        except FIT_ERRORS + self.failure_warnings as exc:
            raise FitFailure(sample_size, self.parameters, f"{type(exc).__name__}: {exc}") from exc

        if outcome.shape != (self.n_outcomes,):
            raise InvalidParameters(f"{type(self).__name__} returned {outcome.size} statistics, expected {self.n_outcomes}")
        if not np.all(np.isfinite(outcome)):
            raise FitFailure(sample_size, self.parameters, f"non-finite statistic {outcome.tolist()}")

        if self.inspect is not None:
            self.inspect(data, fit_result, outcome)

        return TrialReport(sample_size, seed, data, fit_result, outcome)

    def __repr__(self):
        return f"{type(self).__name__}({self.parameters!r})"


class FunctionTrial(Trial):
    """Adapt a plain ``func(sample_size, parameters, seed)`` to the trial API.

    The function does the whole cycle itself and returns a scalar or a
    fixed-length sequence of statistics. ``FitFailure`` raised inside it is
    passed through; numerical errors are wrapped.

    Args:
        func: The trial body.
        parameters: Parameter bundle handed to *func* on every call.
        outcome_names: Names of the returned components.
        validate: Optional callable checking *parameters*; it should raise
            ``InvalidParameters`` (other exceptions are wrapped).
        min_sample_size: Smallest acceptable sample size.
    """

    def __init__(
        self,
        func: Callable[[int, Any, Optional[int]], Any],
        parameters: Any = None,
        outcome_names: Sequence[str] = ("p_value",),
        validate: Optional[Callable[[Any], None]] = None,
        min_sample_size: int = 1,
        inspect=None,
    ):
        super().__init__(parameters, inspect=inspect)
        if not callable(func):
            raise InvalidParameters(f"func must be callable, got {type(func).__name__}")
        if len(outcome_names) == 0:
            raise InvalidParameters("outcome_names must not be empty")
        self.func = func
        self.outcome_names = tuple(outcome_names)
        self._validate = validate
        self._min_sample_size = min_sample_size

    def validate(self):
        if self._validate is None:
            return
        try:
            self._validate(self.parameters)
        except InvalidParameters:
            raise
        except (TypeError, ValueError) as exc:
            raise InvalidParameters(str(exc)) from exc

    def min_sample_size(self) -> int:
        return self._min_sample_size

    def _run(self, sample_size: int, seed: Optional[int]) -> TrialReport:
        try:
            result = self.func(sample_size, self.parameters, seed)
        except (FitFailure, InvalidParameters):
            raise
        except FIT_ERRORS as exc:
            raise FitFailure(sample_size, self.parameters, f"{type(exc).__name__}: {exc}") from exc

        outcome = np.asarray(result, dtype=float).reshape(-1)
        if outcome.shape != (self.n_outcomes,):
            raise InvalidParameters(f"trial function returned {outcome.size} statistics, expected {self.n_outcomes}")
        if not np.all(np.isfinite(outcome)):
            raise FitFailure(sample_size, self.parameters, f"non-finite statistic {outcome.tolist()}")

        if self.inspect is not None:
            self.inspect(None, result, outcome)
        return TrialReport(sample_size, seed, None, result, outcome)

    def __repr__(self):
        name = getattr(self.func, "__name__", type(self.func).__name__)
        return f"FunctionTrial({name}, {self.parameters!r})"
