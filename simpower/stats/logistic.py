"""
Logistic-regression trials for Monte Carlo power analysis.

The binary outcome is drawn as ``Bernoulli(expit(linear_predictor))`` and
the model is fitted with statsmodels ``Logit``. Perfect separation and
non-convergence, common with small samples or rare outcomes, are reported
as fit failures instead of yielding meaningless p-values.
"""

from typing import Any, Optional, Sequence

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from scipy.special import expit
from statsmodels.tools.sm_exceptions import ConvergenceWarning, PerfectSeparationWarning

from ..core.errors import FitFailure
from .data_generation import draw_predictors, linear_predictor
from .ols import LinearRegressionTrial


class LogisticTrial(LinearRegressionTrial):
    """Logistic regression on the predictors of ``RegressionParameters``.

    ``intercept`` and ``coefficients`` are on the log-odds scale;
    ``residual_variance`` is not used.

    Args:
        parameters: ``RegressionParameters``.
        tests: Terms whose p-value (or interval width) is returned.
        statistic: ``"p_value"`` or ``"ci_width"``.
        confidence: Confidence level used for ``"ci_width"``.
        maxiter: Newton iterations allowed before declaring non-convergence.
    """

    failure_warnings = (ConvergenceWarning, PerfectSeparationWarning)

    def __init__(
        self,
        parameters,
        tests: Optional[Sequence[str]] = None,
        statistic: str = "p_value",
        confidence: float = 0.95,
        maxiter: int = 100,
        inspect=None,
    ):
        super().__init__(parameters, tests=tests, statistic=statistic, confidence=confidence, inspect=inspect)
        self.maxiter = maxiter

    def min_sample_size(self) -> int:
        return 2 * (len(self.parameters.coefficients) + 1) + 2

    def simulate(self, sample_size: int, rng: np.random.Generator) -> pd.DataFrame:
        data = draw_predictors(self.parameters, sample_size, rng)
        data["y"] = rng.binomial(1, expit(linear_predictor(self.parameters, data)))
        return data

    def fit(self, data: pd.DataFrame) -> Any:
        if data["y"].nunique() < 2:
            raise FitFailure(len(data), self.parameters, "outcome has a single category")
        result = smf.logit(self.formula, data=data).fit(disp=0, maxiter=self.maxiter)
        if not result.mle_retvals.get("converged", True):
            raise FitFailure(len(data), self.parameters, "logistic regression did not converge")
        return result
