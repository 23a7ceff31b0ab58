"""Data generation, built-in trials and analytical formulas."""

from . import analytical as analytical
from . import data_generation as data_generation
from .logistic import LogisticTrial
from .mixed_models import MixedModelTrial
from .ols import LinearRegressionTrial, PrecisionTrial, TwoGroupTrial

__all__ = [
    "analytical",
    "data_generation",
    "TwoGroupTrial",
    "LinearRegressionTrial",
    "PrecisionTrial",
    "LogisticTrial",
    "MixedModelTrial",
]
