"""
Linear mixed-model trials for Monte Carlo power analysis.

Clustered data get a normal random intercept per cluster; the model is
fitted with statsmodels ``MixedLM`` (random intercept, REML by default).
Fits that do not converge after the retry strategy become fit failures.
"""

import warnings
from typing import Any, Optional, Sequence

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from ..core.errors import FitFailure, InvalidParameters
from ..core.parameters import MixedModelParameters
from ..core.trial import FIT_ERRORS, Trial
from .data_generation import draw_predictors, generate_cluster_ids, linear_predictor
from .ols import STATISTICS, _require_type

# Optimizers tried in turn: a fresh start with the default optimizer first,
# then a derivative-free one, which copes better with flat likelihoods
_FIT_ATTEMPTS = (
    {"method": "lbfgs", "maxiter": 200},
    {"method": "powell", "maxiter": 500},
)


class MixedModelTrial(Trial):
    """Random-intercept model ``y ~ terms + (1 | cluster)``.

    Args:
        parameters: ``MixedModelParameters``.
        tests: Fixed-effect terms whose statistic is returned.
        statistic: ``"p_value"`` (Wald z-test) or ``"ci_width"``.
        confidence: Confidence level used for ``"ci_width"``.
        reml: Fit by REML (default) or maximum likelihood.
        strict: Also treat statsmodels convergence warnings as failures.
            Off by default; statsmodels also warns when a converged fit
            puts the random-intercept variance on the boundary. A fit
            whose optimizer did not converge is a failure either way.
    """

    def __init__(
        self,
        parameters: MixedModelParameters,
        tests: Optional[Sequence[str]] = None,
        statistic: str = "p_value",
        confidence: float = 0.95,
        reml: bool = True,
        strict: bool = False,
        inspect=None,
    ):
        _require_type(parameters, MixedModelParameters, "MixedModelTrial")
        super().__init__(parameters, inspect=inspect)
        if statistic not in STATISTICS:
            raise InvalidParameters(f"statistic must be one of {STATISTICS}, got {statistic!r}")
        self.tests = tuple(tests) if tests is not None else tuple(parameters.fixed.coefficients)
        self.statistic = statistic
        self.confidence = confidence
        self.reml = reml
        self.strict = strict
        self.failure_warnings = (ConvergenceWarning,) if strict else ()
        self.outcome_names = self.tests if statistic == "p_value" else tuple(f"{t}_ci_width" for t in self.tests)

    def validate(self):
        _require_type(self.parameters, MixedModelParameters, "MixedModelTrial")
        self.parameters.validate().raise_if_invalid()
        if not self.tests:
            raise InvalidParameters("tests must name at least one term")
        unknown = [t for t in self.tests if t not in self.parameters.fixed.coefficients]
        if unknown:
            raise InvalidParameters(f"Tested terms {unknown} are not model terms. Available: {', '.join(self.parameters.fixed.terms)}")

    def min_sample_size(self) -> int:
        # at least three clusters
        return 3 * self.parameters.cluster_size

    @property
    def formula(self) -> str:
        return f"y ~ {self.parameters.fixed.formula_rhs}"

    def simulate(self, sample_size: int, rng: np.random.Generator) -> pd.DataFrame:
        p = self.parameters
        data = draw_predictors(p.fixed, sample_size, rng)
        cluster = generate_cluster_ids(sample_size, p.cluster_size)
        n_clusters = int(cluster[-1]) + 1
        intercepts = rng.normal(0.0, np.sqrt(p.intercept_variance), n_clusters)
        noise = rng.normal(0.0, np.sqrt(p.fixed.residual_variance), sample_size)
        data["cluster"] = cluster
        data["y"] = linear_predictor(p.fixed, data) + intercepts[cluster] + noise
        return data

    def fit(self, data: pd.DataFrame) -> Any:
        model = smf.mixedlm(self.formula, data, groups=data["cluster"])

        last_error: Optional[BaseException] = None
        for attempt in _FIT_ATTEMPTS:
            try:
                with warnings.catch_warnings():
                    warnings.simplefilter("error" if self.strict else "ignore", ConvergenceWarning)
                    result = model.fit(reml=self.reml, **attempt)
            except FIT_ERRORS + self.failure_warnings as exc:
                last_error = exc
                continue
            if result.converged:
                return result
            last_error = None

        reason = f"{type(last_error).__name__}: {last_error}" if last_error is not None else "MixedLM did not converge"
        raise FitFailure(len(data), self.parameters, reason)

    def extract(self, fit_result: Any):
        if self.statistic == "p_value":
            return [fit_result.pvalues[t] for t in self.tests]
        ci = fit_result.conf_int(alpha=1 - self.confidence)
        return [ci.loc[t, 1] - ci.loc[t, 0] for t in self.tests]

    def __repr__(self):
        return f"MixedModelTrial({self.formula!r}, cluster_size={self.parameters.cluster_size}, tests={list(self.tests)})"
