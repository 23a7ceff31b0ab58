"""SimPower - reproducible Monte Carlo power analysis.

Estimates statistical power by simulation: a trial simulates one data set,
fits one model and extracts its statistics; the estimator repeats the trial
per candidate sample size and tabulates how often a criterion is met.
Ready-made trials cover two-group comparisons, multiple regression with
interactions, correlation precision, logistic and random-intercept models.

Example:
    >>> from simpower import PowerAnalysis, TwoGroupParameters, TwoGroupTrial
    >>>
    >>> params = TwoGroupParameters(mean_control=17, mean_treatment=23, variance=117)
    >>> analysis = PowerAnalysis(TwoGroupTrial(params)).set_alpha(0.005)
    >>> analysis.find_power(sample_size=100)
    >>>
    >>> analysis.find_sample_size(from_size=100, to_size=300, by=20)
"""

from importlib.metadata import version as _get_version

from .core import (
    BudgetExceeded,
    FitFailure,
    FunctionTrial,
    InvalidParameters,
    MixedModelParameters,
    PowerEstimator,
    PowerRow,
    PrecisionParameters,
    PValueBelow,
    RegressionParameters,
    ResultsTable,
    Trial,
    TrialReport,
    TwoGroupParameters,
    WidthBelow,
    estimate_power,
    monte_carlo_error,
    seed_for,
)
from .model import PowerAnalysis
from .progress import PrintReporter, ProgressReporter, ProgressUpdate, SimulationCancelled, TqdmReporter
from .stats import LinearRegressionTrial, LogisticTrial, MixedModelTrial, PrecisionTrial, TwoGroupTrial
from .stats.analytical import required_iterations

__version__ = _get_version("SimPower")

__all__ = [
    "PowerAnalysis",
    "PowerEstimator",
    "estimate_power",
    "monte_carlo_error",
    "required_iterations",
    "seed_for",
    # Trials
    "Trial",
    "FunctionTrial",
    "TrialReport",
    "TwoGroupTrial",
    "LinearRegressionTrial",
    "PrecisionTrial",
    "LogisticTrial",
    "MixedModelTrial",
    # Parameters and criteria
    "TwoGroupParameters",
    "RegressionParameters",
    "PrecisionParameters",
    "MixedModelParameters",
    "PValueBelow",
    "WidthBelow",
    # Results and errors
    "ResultsTable",
    "PowerRow",
    "InvalidParameters",
    "FitFailure",
    "BudgetExceeded",
    "SimulationCancelled",
    # Progress
    "ProgressReporter",
    "ProgressUpdate",
    "PrintReporter",
    "TqdmReporter",
]
