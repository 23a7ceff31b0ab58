"""
Monte Carlo error study.

Repeats the power estimate at a fixed sample size with independent run
seeds and reports how much the estimates scatter for each candidate
number of iterations. The spread should fall like ``1 / sqrt(iterations)``.
"""

from typing import Callable, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..progress import ProgressReporter, SimulationCancelled
from ..utils.validators import _validate_iterations, _validate_numeric_parameter, _validate_sample_size
from .errors import InvalidParameters
from .estimator import PowerEstimator
from .seeding import resolve_run_seed, spawn_run_seeds
from .trial import Trial


def monte_carlo_error(
    trial: Trial,
    sample_size: int,
    iterations: Sequence[int] = (1000, 3000),
    repetitions: int = 30,
    criterion=None,
    seed: Optional[int] = None,
    n_jobs: int = 1,
    outcome: Optional[str] = None,
    failure_policy: str = "exclude",
    progress: Optional[ProgressReporter] = None,
    cancel_check: Optional[Callable[[], bool]] = None,
) -> pd.DataFrame:
    """Standard deviation of repeated power estimates per iteration count.

    Args:
        trial: Trial to repeat.
        sample_size: Fixed sample size.
        iterations: Candidate numbers of iterations.
        repetitions: Independent estimates per candidate (at least 2).
        criterion: Criterion as for ``PowerEstimator``.
        seed: Parent seed; each repetition gets its own derived run seed.
        n_jobs: Workers used inside each estimate.
        outcome: Outcome component to study (default: the first).
        failure_policy: Failure policy of each estimate.

    Returns:
        DataFrame with columns ``iterations``, ``repetitions``,
        ``mean_power``, ``sd_power`` (the Monte Carlo error),
        ``expected_sd`` (binomial approximation at ``mean_power``),
        ``min_power`` and ``max_power``. The individual estimates are kept
        in ``frame.attrs["estimates"]`` keyed by iteration count.
    """
    if isinstance(iterations, int):
        iterations = [iterations]
    if len(iterations) == 0:
        raise InvalidParameters("iterations must name at least one iteration count")
    result = _validate_sample_size(sample_size, trial.min_sample_size())
    for k in iterations:
        result = result.merge(_validate_iterations(k))
    result = result.merge(_validate_numeric_parameter(repetitions, "repetitions", expected_types=(int,), min_val=2))
    result.raise_if_invalid()

    name = outcome if outcome is not None else trial.outcome_names[0]
    if name not in trial.outcome_names:
        raise InvalidParameters(f"Unknown outcome '{name}'. Available: {', '.join(trial.outcome_names)}")

    parent = resolve_run_seed(seed)
    rows: List[Dict] = []
    estimates: Dict[int, List[float]] = {}

    for index, k in enumerate(iterations):
        estimator = PowerEstimator(
            trial,
            iterations=k,
            criterion=criterion,
            n_jobs=n_jobs,
            failure_policy=failure_policy,
            max_failed_fraction=None,
        )
        powers: List[float] = []
        for run_seed in spawn_run_seeds(parent, repetitions, index):
            if cancel_check is not None and cancel_check():
                raise SimulationCancelled("Simulation cancelled by user")
            estimator.seed = run_seed
            table = estimator.run([sample_size], progress=progress)
            if len(table) == 0:
                raise table.aborted[sample_size]
            powers.append(table.powers(name)[0])

        values = np.array(powers)
        mean_power = float(values.mean())
        rows.append(
            {
                "iterations": int(k),
                "repetitions": int(repetitions),
                "mean_power": mean_power,
                "sd_power": float(values.std(ddof=1)),
                "expected_sd": float(np.sqrt(mean_power * (1 - mean_power) / k)),
                "min_power": float(values.min()),
                "max_power": float(values.max()),
            }
        )
        estimates[int(k)] = powers

    frame = pd.DataFrame(rows)
    frame.attrs["estimates"] = estimates
    frame.attrs["seed"] = parent
    frame.attrs["sample_size"] = int(sample_size)
    return frame
