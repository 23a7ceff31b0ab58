"""
Linear-model trials for Monte Carlo power analysis.

- ``TwoGroupTrial``: two-group mean comparison, fitted as ``y ~ treatment``
  with statsmodels OLS or, on the fast path, ``scipy.stats.ttest_ind``
  (identical p-values for the pooled-variance test).
- ``LinearRegressionTrial``: several correlated predictors, binary groups
  and interactions, fitted with statsmodels OLS.
- ``PrecisionTrial``: width of the confidence interval of a correlation,
  for precision rather than significance planning.
"""

import math
from typing import Any, Optional, Sequence

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from scipy import stats

from ..core.errors import InvalidParameters
from ..core.parameters import PrecisionParameters, RegressionParameters, TwoGroupParameters
from ..core.trial import Trial
from .data_generation import assign_groups, draw_bivariate_normal, draw_predictors, linear_predictor

STATISTICS = ("p_value", "ci_width")


def _require_type(parameters, expected_type, trial_name):
    if not isinstance(parameters, expected_type):
        raise InvalidParameters(f"{trial_name} needs {expected_type.__name__}, got {type(parameters).__name__}")


def _raise_if_invalid(parameters, expected_type, trial_name):
    _require_type(parameters, expected_type, trial_name)
    parameters.validate().raise_if_invalid()


class TwoGroupTrial(Trial):
    """Compare two normally distributed groups.

    The outcome is ``mean_control + difference * treatment + error`` with
    ``error ~ N(0, variance)``; the first ``n - round(n * treated_fraction)``
    rows form the control group.

    Args:
        parameters: ``TwoGroupParameters``.
        method: ``"ols"`` fits ``y ~ treatment`` with statsmodels;
            ``"ttest"`` uses the much faster pooled-variance t-test.
    """

    outcome_names = ("treatment",)

    def __init__(self, parameters: TwoGroupParameters, method: str = "ols", inspect=None):
        _require_type(parameters, TwoGroupParameters, "TwoGroupTrial")
        super().__init__(parameters, inspect=inspect)
        if method not in ("ols", "ttest"):
            raise InvalidParameters(f"method must be 'ols' or 'ttest', got {method!r}")
        self.method = method

    def validate(self):
        _raise_if_invalid(self.parameters, TwoGroupParameters, "TwoGroupTrial")

    def min_sample_size(self) -> int:
        smaller = min(self.parameters.treated_fraction, 1 - self.parameters.treated_fraction)
        return max(4, math.ceil(2.5 / smaller))

    def simulate(self, sample_size: int, rng: np.random.Generator) -> pd.DataFrame:
        p = self.parameters
        treatment = assign_groups(sample_size, p.treated_fraction)
        y = p.mean_control + p.difference * treatment + rng.normal(0.0, np.sqrt(p.variance), sample_size)
        return pd.DataFrame({"treatment": treatment, "y": y})

    def fit(self, data: pd.DataFrame) -> Any:
        if self.method == "ttest":
            treated = data["treatment"].to_numpy() == 1
            y = data["y"].to_numpy()
            return stats.ttest_ind(y[treated], y[~treated])
        return smf.ols("y ~ treatment", data=data).fit()

    def extract(self, fit_result: Any):
        if self.method == "ttest":
            return [fit_result.pvalue]
        return [fit_result.pvalues["treatment"]]

    def __repr__(self):
        return f"TwoGroupTrial({self.parameters!r}, method={self.method!r})"


class LinearRegressionTrial(Trial):
    """Multiple regression with correlated, binary and interaction terms.

    Data are generated as ``y = linear_predictor + N(0, residual_variance)``
    and the model ``y ~ term1 + term2 + ...`` (all coefficient terms) is
    fitted with OLS.

    Args:
        parameters: ``RegressionParameters``.
        tests: Terms whose statistic is returned (default: every term).
        statistic: ``"p_value"`` or ``"ci_width"`` (width of the
            *confidence* interval of each tested coefficient).
        confidence: Confidence level used for ``"ci_width"``.

    Example:
        >>> params = RegressionParameters(
        ...     coefficients={"x1": 0.3, "treatment": 0.5, "x1:treatment": 0.2},
        ...     means={"x1": 0.0}, groups={"treatment": 0.5})
        >>> trial = LinearRegressionTrial(params, tests=["treatment", "x1:treatment"])
    """

    def __init__(
        self,
        parameters: RegressionParameters,
        tests: Optional[Sequence[str]] = None,
        statistic: str = "p_value",
        confidence: float = 0.95,
        inspect=None,
    ):
        _require_type(parameters, RegressionParameters, type(self).__name__)
        super().__init__(parameters, inspect=inspect)
        if statistic not in STATISTICS:
            raise InvalidParameters(f"statistic must be one of {STATISTICS}, got {statistic!r}")
        self.tests = tuple(tests) if tests is not None else tuple(parameters.coefficients)
        self.statistic = statistic
        self.confidence = confidence
        self.outcome_names = self.tests if statistic == "p_value" else tuple(f"{t}_ci_width" for t in self.tests)

    def validate(self):
        _raise_if_invalid(self.parameters, RegressionParameters, type(self).__name__)
        unknown = [t for t in self.tests if t not in self.parameters.coefficients]
        if unknown:
            raise InvalidParameters(f"Tested terms {unknown} are not model terms. Available: {', '.join(self.parameters.terms)}")
        if not self.tests:
            raise InvalidParameters("tests must name at least one term")
        if not 0 < self.confidence < 1:
            raise InvalidParameters(f"confidence must be between 0 and 1, got {self.confidence}")

    def min_sample_size(self) -> int:
        # intercept + one column per term + 2 residual degrees of freedom
        return len(self.parameters.coefficients) + 3

    @property
    def formula(self) -> str:
        return f"y ~ {self.parameters.formula_rhs}"

    def simulate(self, sample_size: int, rng: np.random.Generator) -> pd.DataFrame:
        data = draw_predictors(self.parameters, sample_size, rng)
        noise = rng.normal(0.0, np.sqrt(self.parameters.residual_variance), sample_size)
        data["y"] = linear_predictor(self.parameters, data) + noise
        return data

    def fit(self, data: pd.DataFrame) -> Any:
        return smf.ols(self.formula, data=data).fit()

    def extract(self, fit_result: Any):
        if self.statistic == "p_value":
            return [fit_result.pvalues[t] for t in self.tests]
        ci = fit_result.conf_int(alpha=1 - self.confidence)
        return [ci.loc[t, 1] - ci.loc[t, 0] for t in self.tests]

    def __repr__(self):
        return f"{type(self).__name__}({self.formula!r}, tests={list(self.tests)}, statistic={self.statistic!r})"


class PrecisionTrial(Trial):
    """Width of the Fisher-z confidence interval of a correlation.

    Pair with ``WidthBelow`` to find the sample size giving a precise
    enough estimate, e.g. ``WidthBelow(0.10)``.
    """

    outcome_names = ("ci_width",)

    def __init__(self, parameters: PrecisionParameters, inspect=None):
        _require_type(parameters, PrecisionParameters, "PrecisionTrial")
        super().__init__(parameters, inspect=inspect)

    def validate(self):
        _raise_if_invalid(self.parameters, PrecisionParameters, "PrecisionTrial")

    def min_sample_size(self) -> int:
        return 4

    def simulate(self, sample_size: int, rng: np.random.Generator) -> pd.DataFrame:
        return draw_bivariate_normal(self.parameters.correlation, sample_size, rng)

    def fit(self, data: pd.DataFrame) -> Any:
        return stats.pearsonr(data["x"].to_numpy(), data["y"].to_numpy())

    def extract(self, fit_result: Any):
        ci = fit_result.confidence_interval(confidence_level=self.parameters.confidence)
        return [ci.high - ci.low]
