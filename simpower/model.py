"""
SimPower - Monte Carlo Power Analysis.

This module provides the ``PowerAnalysis`` class, the configuration
object that runs power sweeps for a trial.
"""

from typing import Callable, List, Optional, Sequence, Union

from .core import (
    FunctionTrial,
    PowerEstimator,
    PValueBelow,
    ResultsTable,
    Trial,
    TrialReport,
)
from .core import monte_carlo_error as _monte_carlo_error
from .core.criteria import describe_criterion
from .core.parameters import describe_parameters
from .progress import PrintReporter, ProgressReporter
from .utils.formatters import _format_mc_error, _format_results
from .utils.validators import (
    _validate_alpha,
    _validate_failure_policy,
    _validate_failure_tolerance,
    _validate_iterations,
    _validate_parallel_settings,
    _validate_power,
    _validate_sample_size,
    _validate_sample_size_range,
    _validate_seed,
    _validate_time_budget,
)
from .utils.visualization import _create_mc_error_plot, _create_power_plot


class PowerAnalysis:
    """Monte Carlo Power Analysis for a trial.

    Holds the run configuration (seed, target power, alpha, iterations,
    parallelism, failure handling) and runs power estimates for the
    wrapped trial. All ``set_*`` methods validate immediately and return
    ``self`` for method chaining.

    Attributes:
        seed: Run seed for reproducibility (default: 2137). ``None`` draws
            a fresh seed per run, recorded in the results metadata.
        power: Target power as a proportion (default: 0.8).
        alpha: Significance level used by the default criterion (default: 0.05).
        iterations: Trials per sample size (default: 1000).
        parallel: Whether trials are dispatched to worker processes.
        n_cores: Number of worker processes when *parallel* is on.
        failure_policy: ``"exclude"`` or ``"abort"`` (default: ``"exclude"``).
        max_failed_trials: Failure rate above which a warning is issued
            (default: 0.03).
        time_budget: Wall-clock seconds per sample size, or ``None``.

    Example:
        >>> params = TwoGroupParameters(mean_control=17, mean_treatment=23, variance=117)
        >>> analysis = PowerAnalysis(TwoGroupTrial(params))
        >>> analysis.set_alpha(0.005).set_iterations(2000)
        >>> analysis.find_power(sample_size=100)
        >>> analysis.find_sample_size(from_size=100, to_size=300, by=20)
    """

    def __init__(self, trial: Union[Trial, Callable], parameters=None, outcome_names: Optional[Sequence[str]] = None):
        """Initialize the analysis for *trial*.

        Args:
            trial: A ``Trial``, or a plain function
                ``func(sample_size, parameters, seed)`` which is wrapped in
                ``FunctionTrial`` together with *parameters* and
                *outcome_names*.
        """
        if not isinstance(trial, Trial):
            if not callable(trial):
                raise TypeError(f"trial must be a Trial or a callable, got {type(trial).__name__}")
            trial = FunctionTrial(trial, parameters=parameters, outcome_names=outcome_names or ("p_value",))
        trial.validate()
        self.trial = trial

        # Core configuration
        self.seed: Optional[int] = 2137
        self.power = 0.8
        self.alpha = 0.05
        self.iterations = 1000
        self.criterion = None

        # Parallel processing
        import multiprocessing as mp

        self.parallel = False
        self.n_cores = max(1, (mp.cpu_count() or 1) // 2)

        # Failure handling
        self.failure_policy = "exclude"
        self.max_failed_trials: Optional[float] = 0.03
        self.time_budget: Optional[float] = None

    @property
    def outcome_names(self) -> List[str]:
        return list(self.trial.outcome_names)

    # =========================================================================
    # Configuration
    # =========================================================================

    def set_parallel(self, enable: bool = True, n_cores: Optional[int] = None):
        """Enable or disable parallel processing.

        Args:
            enable: ``True`` dispatches trials to ``n_cores`` worker
                processes; ``False`` runs them in-process.
            n_cores: Number of worker processes. ``-1`` uses every CPU;
                defaults to ``cpu_count // 2``.

        Returns:
            self: For method chaining.
        """
        if not enable:
            self.parallel, self.n_cores = False, 1
            return self

        try:
            import joblib  # noqa: F401: availability check only
        except ImportError:
            print("Warning: joblib not available. Install with: pip install joblib")
            print("Warning: Continuing with sequential processing.")
            self.parallel = False
            return self

        effective, result = _validate_parallel_settings(n_cores if n_cores is not None else self.n_cores)
        for warning in result.warnings:
            print(f"Warning: {warning}")
        result.raise_if_invalid()
        self.parallel, self.n_cores = True, effective
        return self

    def set_seed(self, seed: Optional[int] = None):
        """Set the run seed for reproducibility.

        Args:
            seed: Integer in ``[0, 2**32 - 1]``. Pass ``None`` to draw a
                fresh seed for every run.

        Returns:
            self: For method chaining.
        """
        _validate_seed(seed).raise_if_invalid()
        self.seed = seed
        if seed is not None:
            print(f"Seed set to: {seed}")
        else:
            print("Random seeding enabled")
        return self

    def set_power(self, power: float):
        """Set the target power used by ``find_sample_size``.

        Args:
            power: Target power as a proportion (0–1). Default is 0.8.
        """
        _validate_power(power).raise_if_invalid()
        self.power = float(power)
        return self

    def set_alpha(self, alpha: float):
        """Set the significance level of the default p-value criterion.

        Has no effect on outcomes judged by an explicit ``set_criterion``.
        """
        _validate_alpha(alpha).raise_if_invalid()
        self.alpha = float(alpha)
        return self

    def set_iterations(self, iterations: int):
        """Set the number of Monte Carlo trials per sample size.

        More trials shrink the Monte Carlo error roughly as
        ``1 / sqrt(iterations)``.
        """
        result = _validate_iterations(iterations)
        for warning in result.warnings:
            print(f"Warning: {warning}")
        result.raise_if_invalid()
        self.iterations = int(iterations)
        return self

    def set_criterion(self, criterion):
        """Set the success criterion.

        Args:
            criterion: A callable mapping an array of statistics to booleans
                (e.g. ``WidthBelow(0.1)``), a list with one per outcome, or
                ``None`` to go back to ``PValueBelow(alpha)``.
        """
        if criterion is not None and not callable(criterion) and not isinstance(criterion, (list, tuple)):
            raise TypeError(f"criterion must be callable, a list of callables, or None, got {type(criterion).__name__}")
        self.criterion = criterion
        return self

    def set_failure_policy(self, policy: str):
        """Choose how failed fits are handled: ``"exclude"`` or ``"abort"``."""
        _validate_failure_policy(policy).raise_if_invalid()
        self.failure_policy = policy
        return self

    def set_max_failed_trials(self, fraction: Optional[float]):
        """Set the failure rate above which a warning is issued.

        When a fit fails (e.g. a mixed model does not converge) the trial
        is excluded and counted. Raise this for small clustered designs.

        Args:
            fraction: Proportion (0–1), or ``None`` to silence the warning.
        """
        _validate_failure_tolerance(fraction).raise_if_invalid()
        self.max_failed_trials = fraction
        return self

    def set_time_budget(self, seconds: Optional[float]):
        """Limit the wall-clock time spent on each sample size.

        A sample size that runs out of time gets no row; it is listed in
        ``ResultsTable.aborted`` instead.
        """
        _validate_time_budget(seconds).raise_if_invalid()
        self.time_budget = seconds
        return self

    # =========================================================================
    # Analyses
    # =========================================================================

    def find_power(
        self,
        sample_size: int,
        print_results: bool = True,
        return_results: bool = False,
        progress_callback=None,
        cancel_check=None,
    ):
        """
        Estimate power at one sample size.

        Args:
            sample_size: Number of observations per trial.
            print_results: Whether to print results.
            return_results: Return the ``ResultsTable``.
            progress_callback: Progress reporting control:
                - ``None`` (default): auto-use ``PrintReporter`` when
                  *print_results* is ``True``.
                - ``False``: explicitly disable progress.
                - callable: receives a ``ProgressUpdate`` at the start
                  and end of every sample size and as batches return.
            cancel_check: Optional callable returning ``True`` to abort.

        Returns:
            ResultsTable or None
        """
        _validate_sample_size(sample_size, self.trial.min_sample_size()).raise_if_invalid()
        table = self._run([sample_size], print_results, progress_callback, cancel_check)

        if print_results:
            print(f"\n{'=' * 80}")
            print("MONTE CARLO POWER ANALYSIS RESULTS")
            print(f"{'=' * 80}")
            print(_format_results(table))

        return table if return_results else None

    def find_sample_size(
        self,
        from_size: int = 30,
        to_size: int = 200,
        by: int = 5,
        print_results: bool = True,
        return_results: bool = False,
        plot: bool = False,
        progress_callback=None,
        cancel_check=None,
    ):
        """
        Sweep sample sizes and find the first one reaching the target power.

        Args:
            from_size: Minimum sample size to test.
            to_size: Maximum sample size to test (inclusive).
            by: Step size between sample sizes.
            print_results: Whether to print results.
            return_results: Return the ``ResultsTable``.
            plot: Draw the power curve.
            progress_callback: See ``find_power``.
            cancel_check: Optional callable returning ``True`` to abort.

        Returns:
            ResultsTable or None. Use ``table.first_achieved(power)`` for
            the smallest sufficient sample size (``-1`` if not reached).
        """
        validation_result = _validate_sample_size_range(from_size, to_size, by)
        validation_result = validation_result.merge(_validate_sample_size(from_size, self.trial.min_sample_size()))
        for warning in validation_result.warnings:
            print(f"Warning: {warning}")
        validation_result.raise_if_invalid()

        sample_sizes = list(range(from_size, to_size + 1, by))
        table = self._run(sample_sizes, print_results, progress_callback, cancel_check)

        if print_results:
            print(f"\n{'=' * 80}")
            print("SAMPLE SIZE ANALYSIS RESULTS")
            print(f"{'=' * 80}")
            print(_format_results(table, target_power=self.power))

        if plot and len(table):
            _create_power_plot(table, target_power=self.power, title="Power Analysis")

        return table if return_results else None

    def monte_carlo_error(
        self,
        sample_size: int,
        iterations: Sequence[int] = (1000, 3000),
        repetitions: int = 30,
        outcome: Optional[str] = None,
        print_results: bool = True,
        return_results: bool = False,
        plot: bool = False,
        progress_callback=None,
        cancel_check=None,
    ):
        """
        Repeat the power estimate to measure its Monte Carlo error.

        Each candidate iteration count is run *repetitions* times with
        independent seeds derived from the analysis seed.

        Returns:
            pandas.DataFrame or None (see ``simpower.core.monte_carlo_error``).
        """
        counts = [iterations] if isinstance(iterations, int) else list(iterations)
        reporter = self._make_reporter(sum(counts) * repetitions, print_results, progress_callback)

        try:
            frame = _monte_carlo_error(
                self.trial,
                sample_size,
                iterations=counts,
                repetitions=repetitions,
                criterion=self._effective_criterion(),
                seed=self.seed,
                n_jobs=self._n_jobs(),
                outcome=outcome,
                failure_policy=self.failure_policy,
                progress=reporter,
                cancel_check=cancel_check,
            )
        finally:
            if reporter is not None:
                reporter.finish()

        if print_results:
            print(f"\n{'=' * 80}")
            print(f"MONTE CARLO ERROR AT N={sample_size} ({repetitions} repetitions)")
            print(f"{'=' * 80}")
            print(_format_mc_error(frame))

        if plot:
            _create_mc_error_plot(frame)

        return frame if return_results else None

    def inspect(self, sample_size: int, seed: Optional[int] = None, print_results: bool = True) -> TrialReport:
        """Run a single trial and return its data, fit and outcome.

        For looking at what one simulated data set and its fitted model
        look like; not part of any estimate.
        """
        _validate_sample_size(sample_size, self.trial.min_sample_size()).raise_if_invalid()
        report = self.trial.run_once(sample_size, seed=seed if seed is not None else self.seed)
        if print_results:
            summary = getattr(report.fit_result, "summary", None)
            if callable(summary):
                print(summary())
            print("Outcome: " + ", ".join(f"{n}={v:.4g}" for n, v in zip(self.trial.outcome_names, report.outcome)))
        return report

    # =========================================================================
    # Internals
    # =========================================================================

    def _effective_criterion(self):
        return self.criterion if self.criterion is not None else PValueBelow(self.alpha)

    def _n_jobs(self) -> int:
        return self.n_cores if self.parallel else 1

    def _make_reporter(self, total: int, print_results: bool, progress_callback) -> Optional[ProgressReporter]:
        if progress_callback is None:
            effective_cb = PrintReporter() if print_results else None
        elif progress_callback is False:
            effective_cb = None
        else:
            effective_cb = progress_callback
        return ProgressReporter(total, effective_cb) if effective_cb is not None else None

    def _run(self, sample_sizes: List[int], print_results: bool, progress_callback, cancel_check) -> ResultsTable:
        estimator = PowerEstimator(
            self.trial,
            iterations=self.iterations,
            criterion=self._effective_criterion(),
            seed=self.seed,
            n_jobs=self._n_jobs(),
            failure_policy=self.failure_policy,
            max_failed_fraction=self.max_failed_trials,
            time_budget=self.time_budget,
        )

        reporter = self._make_reporter(self.iterations * len(sample_sizes), print_results, progress_callback)
        try:
            table = estimator.run(sample_sizes, progress=reporter, cancel_check=cancel_check)
        finally:
            if reporter is not None:
                reporter.finish()
        return table

    def describe(self) -> dict:
        """Current configuration as a plain dict."""
        return {
            "trial": repr(self.trial),
            "parameters": describe_parameters(self.trial.parameters),
            "criterion": describe_criterion(self._effective_criterion()),
            "seed": self.seed,
            "power": self.power,
            "alpha": self.alpha,
            "iterations": self.iterations,
            "n_jobs": self._n_jobs(),
            "failure_policy": self.failure_policy,
            "max_failed_trials": self.max_failed_trials,
            "time_budget": self.time_budget,
        }

    def __repr__(self):
        return f"PowerAnalysis({self.trial!r})"
