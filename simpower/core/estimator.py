"""
Monte Carlo power estimation for SimPower.

For each sample size the estimator runs ``iterations`` independent trials,
optionally spread over a ``joblib`` worker pool, and records the fraction
of trials whose outcome meets the criterion. Trial seeds are derived from
the run seed and ``(sample_size, iteration_index)``, so a sweep gives the
same numbers whether it runs on one worker or many.
"""

import math
import time
import warnings
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..progress import ProgressReporter, SimulationCancelled
from ..utils.validators import (
    _validate_failure_policy,
    _validate_failure_tolerance,
    _validate_iterations,
    _validate_parallel_settings,
    _validate_sample_sizes,
    _validate_seed,
    _validate_time_budget,
)
from .criteria import PValueBelow, describe_criterion, resolve_criteria
from .errors import BudgetExceeded, FitFailure, InvalidParameters
from .results import PowerRow, ResultsProcessor, ResultsTable, _OutcomeBuffer
from .seeding import resolve_run_seed, seeds_for
from .trial import FunctionTrial, Trial

# Exceptions that carry meaning for the sweep and must never trigger the
# sequential fallback
_SWEEP_ERRORS = (BudgetExceeded, FitFailure, InvalidParameters, SimulationCancelled)


@dataclass
class _BatchResult:
    """Outcomes of a contiguous range of trials run by one worker."""

    start: int
    outcomes: np.ndarray
    failed: np.ndarray
    failure_reasons: Dict[str, int] = field(default_factory=dict)
    first_failure: Optional[FitFailure] = None
    timed_out: bool = False

    @property
    def n_done(self) -> int:
        return int(self.outcomes.shape[0])


def _run_batch(
    trial: Trial,
    sample_size: int,
    run_seed: int,
    start: int,
    stop: int,
    deadline: Optional[float] = None,
    stop_on_failure: bool = False,
) -> _BatchResult:
    """Run trials ``start..stop-1`` of one sample size.

    Runs in a worker process when the sweep is parallel. Stops early when
    the wall-clock *deadline* passes, or at the first failure when
    *stop_on_failure* is set.
    """
    n = stop - start
    outcomes = np.full((n, trial.n_outcomes), np.nan)
    failed = np.zeros(n, dtype=bool)
    reasons: Dict[str, int] = {}
    first_failure = None
    seeds = seeds_for(run_seed, sample_size, start, stop)

    for k in range(n):
        if deadline is not None and time.time() > deadline:
            return _BatchResult(start, outcomes[:k], failed[:k], reasons, first_failure, timed_out=True)

        try:
            outcomes[k] = trial(sample_size, seeds[k])
        except FitFailure as exc:
            failed[k] = True
            reasons[exc.reason] = reasons.get(exc.reason, 0) + 1
            if first_failure is None:
                first_failure = exc
            if stop_on_failure:
                return _BatchResult(start, outcomes[: k + 1], failed[: k + 1], reasons, first_failure)

    return _BatchResult(start, outcomes, failed, reasons, first_failure)


class PowerEstimator:
    """Estimates power over a sweep of sample sizes.

    Args:
        trial: A ``Trial`` (or ``FunctionTrial``) to repeat.
        iterations: Trials per sample size.
        criterion: Criterion applied to every outcome component, or one
            criterion per component. Defaults to ``PValueBelow(0.05)``.
        seed: Run-level seed. ``None`` draws one from OS entropy; it is
            recorded in the table metadata either way.
        n_jobs: Number of worker processes (1 = in-process, -1 = all CPUs).
        failure_policy: ``"exclude"`` drops failed trials from the
            denominator and counts them; ``"abort"`` gives up on a sample
            size at its first failed trial.
        max_failed_fraction: Failure rate above which a warning is issued
            (``"exclude"`` policy only). ``None`` disables the warning.
        time_budget: Wall-clock seconds allowed per sample size.
        batch_size: Trials per dispatched task. Defaults to a size giving
            about eight tasks per worker.
    """

    def __init__(
        self,
        trial: Trial,
        iterations: int = 1000,
        criterion=None,
        seed: Optional[int] = None,
        n_jobs: int = 1,
        failure_policy: str = "exclude",
        max_failed_fraction: Optional[float] = 0.03,
        time_budget: Optional[float] = None,
        batch_size: Optional[int] = None,
    ):
        if not isinstance(trial, Trial):
            raise InvalidParameters(f"trial must be a Trial instance, got {type(trial).__name__}; wrap plain functions in FunctionTrial")

        result = _validate_iterations(iterations)
        result = result.merge(_validate_failure_policy(failure_policy))
        result = result.merge(_validate_failure_tolerance(max_failed_fraction))
        result = result.merge(_validate_time_budget(time_budget))
        result = result.merge(_validate_seed(seed))
        effective_jobs, parallel_result = _validate_parallel_settings(n_jobs)
        result = result.merge(parallel_result)
        if batch_size is not None and (isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1):
            result.is_valid = False
            result.errors.append(f"batch_size must be a positive integer, got {batch_size!r}")
        result.raise_if_invalid()

        for message in result.warnings:
            warnings.warn(message, UserWarning, stacklevel=2)

        self.trial = trial
        self.iterations = int(iterations)
        self.criterion = criterion if criterion is not None else PValueBelow(0.05)
        self.criteria = resolve_criteria(self.criterion, trial.n_outcomes)
        self.seed = seed
        self.n_jobs = effective_jobs
        self.failure_policy = failure_policy
        self.max_failed_fraction = max_failed_fraction
        self.time_budget = time_budget
        self.batch_size = batch_size

        trial.validate()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(
        self,
        sample_sizes: Sequence[int],
        progress: Optional[ProgressReporter] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> ResultsTable:
        """Estimate power at every sample size, in the order given.

        Args:
            sample_sizes: Unique positive integers to sweep.
            progress: Optional ``ProgressReporter`` told about every sample
                size and every returned batch.
            cancel_check: Optional callable polled between batches;
                returning ``True`` raises ``SimulationCancelled``.

        Returns:
            A frozen ``ResultsTable``.

        Raises:
            InvalidParameters: Before any trial runs, if *sample_sizes* is
                unusable.
            SimulationCancelled: If *cancel_check* requested it.
        """
        validation = _validate_sample_sizes(sample_sizes, min_size=self.trial.min_sample_size())
        validation.raise_if_invalid()
        for message in validation.warnings:
            warnings.warn(message, UserWarning, stacklevel=2)

        run_seed = resolve_run_seed(self.seed)
        table = ResultsTable(self.trial.outcome_names, metadata=self._metadata(run_seed))
        processor = ResultsProcessor(self.trial.outcome_names, self.criteria)

        for sample_size in sample_sizes:
            sample_size = int(sample_size)
            if cancel_check is not None and cancel_check():
                raise SimulationCancelled("Simulation cancelled by user")
            if progress is not None:
                progress.begin_sample_size(sample_size, self.iterations)
            try:
                row = self._estimate(sample_size, run_seed, processor, progress, cancel_check)
            except (BudgetExceeded, FitFailure) as exc:
                warnings.warn(f"No power estimate for sample size {sample_size}: {exc}", UserWarning, stacklevel=2)
                table.mark_aborted(sample_size, exc)
                if progress is not None:
                    progress.end_sample_size(aborted=True)
                continue
            table.append(row)
            if progress is not None:
                progress.end_sample_size()

        table.freeze()
        return table

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _metadata(self, run_seed: int) -> Dict[str, Any]:
        return {
            "trial": repr(self.trial),
            "outcomes": list(self.trial.outcome_names),
            "iterations": self.iterations,
            "criterion": describe_criterion(self.criterion),
            "seed": run_seed,
            "n_jobs": self.n_jobs,
            "failure_policy": self.failure_policy,
            "time_budget": self.time_budget,
        }

    def _batches(self, n_jobs: int) -> List[Tuple[int, int]]:
        if self.batch_size is not None:
            size = self.batch_size
        elif n_jobs == 1:
            size = max(1, math.ceil(self.iterations / 100))
        else:
            size = max(1, math.ceil(self.iterations / (n_jobs * 8)))
        return [(start, min(start + size, self.iterations)) for start in range(0, self.iterations, size)]

    def _dispatch(self, sample_size: int, run_seed: int, n_jobs: int, deadline: Optional[float]) -> Iterator[_BatchResult]:
        stop_on_failure = self.failure_policy == "abort"
        batches = self._batches(n_jobs)

        if n_jobs == 1:
            for start, stop in batches:
                yield _run_batch(self.trial, sample_size, run_seed, start, stop, deadline, stop_on_failure)
            return

        from joblib import Parallel, delayed

        parallel = Parallel(n_jobs=n_jobs, backend="loky", verbose=0, return_as="generator")
        yield from parallel(
            delayed(_run_batch)(self.trial, sample_size, run_seed, start, stop, deadline, stop_on_failure) for start, stop in batches
        )

    def _estimate(self, sample_size, run_seed, processor, progress, cancel_check) -> PowerRow:
        if self.n_jobs == 1:
            return self._estimate_with(1, sample_size, run_seed, processor, progress, cancel_check)

        try:
            return self._estimate_with(self.n_jobs, sample_size, run_seed, processor, progress, cancel_check)
        except _SWEEP_ERRORS:
            raise
        except Exception as e:
            # Seeds do not depend on the worker, so the sequential rerun gives the same row
            warnings.warn(f"Parallel execution failed ({e}). Falling back to sequential.", UserWarning, stacklevel=3)
            if progress is not None:
                progress.rewind()
            return self._estimate_with(1, sample_size, run_seed, processor, progress, cancel_check)

    def _estimate_with(self, n_jobs, sample_size, run_seed, processor, progress, cancel_check) -> PowerRow:
        buffer = _OutcomeBuffer(self.iterations, self.trial.n_outcomes)
        reasons: Dict[str, int] = {}
        deadline = time.time() + self.time_budget if self.time_budget is not None else None

        batches = self._dispatch(sample_size, run_seed, n_jobs, deadline)
        try:
            for batch in batches:
                buffer.store(batch.start, batch.outcomes, batch.failed)
                for reason, count in batch.failure_reasons.items():
                    reasons[reason] = reasons.get(reason, 0) + count

                if progress is not None:
                    progress.record_batch(batch.n_done, int(batch.failed.sum()))

                if batch.first_failure is not None and self.failure_policy == "abort":
                    raise batch.first_failure
                if batch.timed_out:
                    raise BudgetExceeded(sample_size, self.time_budget, buffer.n_done)
                if cancel_check is not None and cancel_check():
                    raise SimulationCancelled("Simulation cancelled by user")
        finally:
            batches.close()

        if buffer.n_done < self.iterations:
            raise BudgetExceeded(sample_size, self.time_budget, buffer.n_done)

        n_failed = int(buffer.failed.sum())
        if n_failed == self.iterations:
            raise FitFailure(sample_size, self.trial.parameters, f"all {self.iterations} trials failed ({_format_reasons(reasons)})")

        if n_failed > 0:
            failed_pct = n_failed / self.iterations
            if self.max_failed_fraction is not None and failed_pct > self.max_failed_fraction:
                warnings.warn(
                    f"{n_failed}/{self.iterations} trials failed at sample size {sample_size} "
                    f"({failed_pct:.1%}, threshold {self.max_failed_fraction:.1%}): {_format_reasons(reasons)}",
                    UserWarning,
                    stacklevel=4,
                )

        return processor.calculate_row(sample_size, buffer.outcomes, buffer.failed)


def _format_reasons(reasons: Dict[str, int], limit: int = 3) -> str:
    top = sorted(reasons.items(), key=lambda kv: -kv[1])[:limit]
    return "; ".join(f"{count}x {reason}" for reason, count in top) or "no reason recorded"


def estimate_power(
    sample_sizes: Sequence[int],
    iterations: int,
    trial_fn: Union[Trial, Callable[..., Any]],
    criterion=None,
    parallelism: int = 1,
    seed: Optional[int] = None,
    parameters: Any = None,
    outcome_names: Optional[Sequence[str]] = None,
    failure_policy: str = "exclude",
    max_failed_fraction: Optional[float] = 0.03,
    time_budget: Optional[float] = None,
    progress: Optional[ProgressReporter] = None,
    cancel_check: Optional[Callable[[], bool]] = None,
) -> ResultsTable:
    """Estimate power for each sample size in *sample_sizes*.

    *trial_fn* is either a ``Trial`` or a plain function
    ``func(sample_size, parameters, seed)`` returning one statistic or a
    fixed-length sequence of them (wrapped in ``FunctionTrial`` with
    *parameters* and *outcome_names*).

    Example:
        >>> from scipy import stats
        >>> def trial(n, params, seed):
        ...     rng = np.random.default_rng(seed)
        ...     a = rng.normal(params["m0"], params["sd"], n // 2)
        ...     b = rng.normal(params["m1"], params["sd"], n - n // 2)
        ...     return stats.ttest_ind(a, b).pvalue
        >>> table = estimate_power([100, 200], 1000, trial, PValueBelow(0.005),
        ...                        parameters={"m0": 23, "m1": 17, "sd": 117 ** 0.5}, seed=1)

    Returns:
        A frozen ``ResultsTable`` with one row per sample size, in input
        order, except sample sizes listed in ``table.aborted``.
    """
    if not isinstance(trial_fn, Trial):
        trial_fn = FunctionTrial(trial_fn, parameters, outcome_names=outcome_names or ("p_value",))
    elif parameters is not None or outcome_names is not None:
        raise InvalidParameters("parameters and outcome_names only apply to plain trial functions")

    estimator = PowerEstimator(
        trial_fn,
        iterations=iterations,
        criterion=criterion,
        seed=seed,
        n_jobs=parallelism,
        failure_policy=failure_policy,
        max_failed_fraction=max_failed_fraction,
        time_budget=time_budget,
    )
    return estimator.run(sample_sizes, progress=progress, cancel_check=cancel_check)
