"""
Population-parameter bundles for the built-in trials.

Each bundle is an immutable record of everything one model family needs
to generate a data set. Values usually come from pilot data; the
estimator never looks inside them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np

from ..utils.validators import (
    _validate_covariance_matrix,
    _validate_numeric_parameter,
    _validate_positive,
    _validate_proportion,
    _ValidationResult,
)


@dataclass(frozen=True)
class TwoGroupParameters:
    """Two groups with normally distributed outcomes and a common variance.

    Attributes:
        mean_control: Population mean of the control group.
        mean_treatment: Population mean of the treatment group.
        variance: Common within-group variance.
        treated_fraction: Share of the sample assigned to treatment.
    """

    mean_control: float
    mean_treatment: float
    variance: float
    treated_fraction: float = 0.5

    @property
    def difference(self) -> float:
        return self.mean_treatment - self.mean_control

    @property
    def effect_size(self) -> float:
        """Standardized mean difference (Cohen's d)."""
        return self.difference / np.sqrt(self.variance)

    def validate(self) -> _ValidationResult:
        result = _validate_numeric_parameter(self.mean_control, "mean_control")
        result = result.merge(_validate_numeric_parameter(self.mean_treatment, "mean_treatment"))
        result = result.merge(_validate_positive(self.variance, "variance"))
        return result.merge(_validate_proportion(self.treated_fraction, "treated_fraction"))


def split_term(term: str) -> Tuple[str, ...]:
    """Split an interaction term ``"a:b"`` into its predictor names."""
    return tuple(part.strip() for part in term.split(":"))


@dataclass(frozen=True)
class RegressionParameters:
    """Predictors, coefficients and residual variance of a linear model.

    Continuous predictors are drawn from a multivariate normal with
    ``means`` and ``covariance`` (identity when omitted, ordered as
    ``means``). Binary predictors in ``groups`` are coded 0/1 with the
    given share of ones, assigned exactly. Interaction terms are written
    ``"a:b"`` and enter the model as the product of their predictors.

    Attributes:
        coefficients: Regression coefficient per term.
        intercept: Model intercept.
        means: Mean per continuous predictor.
        covariance: Covariance matrix of the continuous predictors.
        groups: Share of ones per binary predictor.
        residual_variance: Variance of the normal error term.
    """

    coefficients: Mapping[str, float]
    intercept: float = 0.0
    means: Mapping[str, float] = field(default_factory=dict)
    covariance: Optional[Any] = None
    groups: Mapping[str, float] = field(default_factory=dict)
    residual_variance: float = 1.0

    @property
    def continuous_names(self) -> List[str]:
        return list(self.means)

    @property
    def predictor_names(self) -> List[str]:
        return self.continuous_names + list(self.groups)

    @property
    def terms(self) -> List[str]:
        return list(self.coefficients)

    @property
    def covariance_matrix(self) -> np.ndarray:
        if self.covariance is None:
            return np.eye(len(self.means))
        return np.asarray(self.covariance, dtype=float)

    @property
    def formula_rhs(self) -> str:
        """Right-hand side of the fitted model formula."""
        return " + ".join(self.terms)

    def validate(self) -> _ValidationResult:
        errors: List[str] = []
        result = _ValidationResult(True, [], [])

        if not self.coefficients:
            errors.append("coefficients must name at least one term")

        overlap = set(self.means) & set(self.groups)
        if overlap:
            errors.append(f"Predictors declared both continuous and binary: {sorted(overlap)}")

        known = set(self.predictor_names)
        for term, value in self.coefficients.items():
            missing = [name for name in split_term(term) if name not in known]
            if missing:
                errors.append(f"Term '{term}' uses undeclared predictors {missing}")
            result = result.merge(_validate_numeric_parameter(value, f"coefficient of {term}"))

        result = result.merge(_validate_numeric_parameter(self.intercept, "intercept"))
        for name, mean in self.means.items():
            result = result.merge(_validate_numeric_parameter(mean, f"mean of {name}"))
        for name, share in self.groups.items():
            result = result.merge(_validate_proportion(share, f"group share of {name}"))
        if self.means:
            result = result.merge(_validate_covariance_matrix(self.covariance_matrix, len(self.means)))
        elif self.covariance is not None:
            errors.append("covariance given without continuous predictors")
        result = result.merge(_validate_positive(self.residual_variance, "residual_variance"))

        return result.merge(_ValidationResult(len(errors) == 0, errors, []))


@dataclass(frozen=True)
class PrecisionParameters:
    """Bivariate normal population for confidence-interval precision planning.

    Attributes:
        correlation: Population correlation between ``x`` and ``y``.
        confidence: Confidence level of the interval whose width is tracked.
    """

    correlation: float
    confidence: float = 0.95

    def validate(self) -> _ValidationResult:
        result = _validate_numeric_parameter(self.correlation, "correlation", min_val=-1, max_val=1, exclusive=True)
        return result.merge(_validate_proportion(self.confidence, "confidence"))


@dataclass(frozen=True)
class MixedModelParameters:
    """Linear model with a normal random intercept per cluster.

    Observations are split into consecutive clusters of ``cluster_size``
    (the last cluster is smaller when the sample size is not a multiple).

    Attributes:
        fixed: Fixed part of the model.
        cluster_size: Observations per cluster.
        intercept_variance: Variance of the random intercepts.
    """

    fixed: RegressionParameters
    cluster_size: int
    intercept_variance: float

    @property
    def icc(self) -> float:
        """Intraclass correlation of the outcome given the predictors."""
        return self.intercept_variance / (self.intercept_variance + self.fixed.residual_variance)

    def validate(self) -> _ValidationResult:
        result = self.fixed.validate()
        if isinstance(self.cluster_size, bool) or not isinstance(self.cluster_size, (int, np.integer)) or self.cluster_size < 2:
            result = result.merge(_ValidationResult(False, [f"cluster_size must be an integer >= 2, got {self.cluster_size!r}"], []))
        return result.merge(_validate_numeric_parameter(self.intercept_variance, "intercept_variance", min_val=0))


def describe_parameters(parameters: Any) -> Dict[str, Any]:
    """Flat dict view of a parameter bundle, for reports."""
    if hasattr(parameters, "__dataclass_fields__"):
        return {name: getattr(parameters, name) for name in parameters.__dataclass_fields__}
    if isinstance(parameters, Mapping):
        return dict(parameters)
    return {"parameters": parameters}
