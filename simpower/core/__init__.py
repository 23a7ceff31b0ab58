"""Core components for the SimPower framework.

Re-exports the building blocks of a power sweep:

- ``InvalidParameters``, ``FitFailure``, ``BudgetExceeded``: error taxonomy.
- ``seed_for``: per-trial seed derivation.
- ``Trial``, ``FunctionTrial``, ``TrialReport``: the trial contract.
- ``PValueBelow``, ``WidthBelow``: success criteria.
- ``PowerEstimator``, ``estimate_power``: the sweep driver.
- ``ResultsTable``, ``PowerRow``: results.
- ``monte_carlo_error``: repeated-estimate study.
"""

from .errors import BudgetExceeded, FitFailure, InvalidParameters
from .seeding import resolve_run_seed, seed_for, spawn_run_seeds
from .parameters import MixedModelParameters, PrecisionParameters, RegressionParameters, TwoGroupParameters
from .criteria import Criterion, PValueBelow, WidthBelow
from .trial import FunctionTrial, Trial, TrialReport
from .results import PowerRow, ResultsProcessor, ResultsTable
from .estimator import PowerEstimator, estimate_power
from .mc_error import monte_carlo_error

__all__ = [
    # Errors
    "InvalidParameters",
    "FitFailure",
    "BudgetExceeded",
    # Seeds
    "seed_for",
    "resolve_run_seed",
    "spawn_run_seeds",
    # Parameters
    "TwoGroupParameters",
    "RegressionParameters",
    "PrecisionParameters",
    "MixedModelParameters",
    # Trials and criteria
    "Trial",
    "FunctionTrial",
    "TrialReport",
    "Criterion",
    "PValueBelow",
    "WidthBelow",
    # Estimation
    "PowerEstimator",
    "estimate_power",
    "monte_carlo_error",
    # Results
    "PowerRow",
    "ResultsProcessor",
    "ResultsTable",
]
