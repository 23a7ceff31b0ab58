"""
Integration tests for the power estimator: reproducibility, failure
policies, time budget, cancellation and parameter validation.
"""

import time
import warnings

import numpy as np
import pytest

from simpower import (
    BudgetExceeded,
    FitFailure,
    FunctionTrial,
    InvalidParameters,
    PowerEstimator,
    PValueBelow,
    SimulationCancelled,
    WidthBelow,
    estimate_power,
    seed_for,
)
from simpower.progress import ProgressReporter
from tests.config import N_ITER_CHECK, SEED
from tests.conftest import ttest_trial


def _fails_every_fifth(sample_size, params, seed):
    """Fails deterministically for seeds divisible by 5."""
    if seed % 5 == 0:
        raise FitFailure(sample_size, params, "seed divisible by five")
    return np.random.default_rng(seed).uniform()


def _always_fails(sample_size, params, seed):
    raise np.linalg.LinAlgError("Singular matrix")


def _slow(sample_size, params, seed):
    time.sleep(0.01)
    return 0.5


class TestReproducibility:
    def test_same_seed_same_table(self, ttest_params):
        kwargs = dict(parameters=ttest_params, seed=SEED)
        a = estimate_power([60, 100], N_ITER_CHECK, ttest_trial, **kwargs)
        b = estimate_power([60, 100], N_ITER_CHECK, ttest_trial, **kwargs)
        assert a.powers() == b.powers()

    def test_sample_size_order_does_not_change_rows(self, ttest_params):
        a = estimate_power([60, 100], N_ITER_CHECK, ttest_trial, parameters=ttest_params, seed=SEED)
        b = estimate_power([100, 60], N_ITER_CHECK, ttest_trial, parameters=ttest_params, seed=SEED)
        assert b.sample_sizes == [100, 60]
        assert a.row(60).powers == b.row(60).powers
        assert a.row(100).powers == b.row(100).powers

    def test_trial_receives_derived_seeds(self):
        seen = []

        def record(sample_size, params, seed):
            seen.append((sample_size, seed))
            return 0.01

        estimate_power([10], 5, record, seed=SEED)
        assert seen == [(10, seed_for(SEED, 10, i)) for i in range(5)]

    def test_missing_seed_recorded(self, ttest_params):
        table = estimate_power([60], 10, ttest_trial, parameters=ttest_params)
        assert isinstance(table.metadata["seed"], int)

    def test_batch_size_does_not_change_results(self, two_group_trial):
        a = PowerEstimator(two_group_trial, iterations=60, seed=SEED, batch_size=7).run([40])
        b = PowerEstimator(two_group_trial, iterations=60, seed=SEED, batch_size=60).run([40])
        assert a.powers() == b.powers()


class TestTable:
    def test_rows_in_input_order_and_frozen(self, ttest_params):
        table = estimate_power([100, 60, 80], N_ITER_CHECK, ttest_trial, parameters=ttest_params, seed=1)
        assert table.sample_sizes == [100, 60, 80]
        assert table.frozen
        for row in table:
            assert 0.0 <= row.powers["p_value"] <= 1.0
            assert row.n_valid == N_ITER_CHECK

    def test_metadata(self, ttest_params):
        table = estimate_power([60], 10, ttest_trial, PValueBelow(0.005), parameters=ttest_params, seed=3)
        meta = table.metadata
        assert meta["seed"] == 3
        assert meta["iterations"] == 10
        assert meta["criterion"] == "p < 0.005"
        assert meta["failure_policy"] == "exclude"

    def test_multiple_outcomes_with_own_criteria(self):
        def two_stats(sample_size, params, seed):
            return 0.001, 0.5

        table = estimate_power(
            [20], 10, two_stats, [PValueBelow(0.05), WidthBelow(0.1)], outcome_names=("p", "width"), seed=1
        )
        assert table[0].powers == {"p": 1.0, "width": 0.0}

    def test_degenerate_powers(self):
        table = estimate_power([10], 20, lambda n, p, s: 0.0, seed=1)
        assert table.powers() == [1.0]
        assert table[0].mc_errors["p_value"] == 0.0

    def test_single_iteration(self):
        table = estimate_power([10], 1, lambda n, p, s: 0.5, seed=1)
        assert table.powers() == [0.0]


class TestFailurePolicies:
    def test_exclude_counts_failures(self):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            table = estimate_power([30], 200, _fails_every_fifth, seed=SEED, max_failed_fraction=None)
        expected_failed = sum(seed_for(SEED, 30, i) % 5 == 0 for i in range(200))
        row = table[0]
        assert row.n_failed == expected_failed
        assert row.n_valid == 200 - expected_failed
        assert row.n_failed + row.n_valid == row.iterations

    def test_high_failure_rate_warns(self):
        with pytest.warns(UserWarning, match="trials failed"):
            estimate_power([30], 200, _fails_every_fifth, seed=SEED, max_failed_fraction=0.03)

    def test_all_failed_aborts_row(self):
        with pytest.warns(UserWarning, match="No power estimate"):
            table = estimate_power([30, 40], 10, _always_fails, seed=SEED)
        assert len(table) == 0
        assert set(table.aborted) == {30, 40}
        assert isinstance(table.aborted[30], FitFailure)
        assert "LinAlgError" in str(table.aborted[30])

    def test_abort_policy_stops_sample_size(self):
        with pytest.warns(UserWarning, match="No power estimate"):
            table = estimate_power([30], 200, _fails_every_fifth, seed=SEED, failure_policy="abort")
        assert len(table) == 0
        assert isinstance(table.aborted[30], FitFailure)
        assert table.aborted[30].reason == "seed divisible by five"

    def test_abort_policy_without_failures(self, ttest_params):
        table = estimate_power([60], 20, ttest_trial, parameters=ttest_params, seed=SEED, failure_policy="abort")
        assert table[0].n_failed == 0


class TestBudgetAndCancellation:
    def test_time_budget_exceeded(self):
        with pytest.warns(UserWarning, match="Time budget"):
            table = estimate_power([10, 20], 500, _slow, seed=1, time_budget=0.05)
        assert len(table) == 0
        assert isinstance(table.aborted[10], BudgetExceeded)
        assert table.aborted[10].completed < 500

    def test_generous_budget(self):
        table = estimate_power([10], 5, lambda n, p, s: 0.01, seed=1, time_budget=60)
        assert table.powers() == [1.0]

    def test_cancel_check(self, ttest_params):
        with pytest.raises(SimulationCancelled):
            estimate_power([60, 80], 50, ttest_trial, parameters=ttest_params, seed=1, cancel_check=lambda: True)

    def test_progress_follows_sample_sizes(self, ttest_params):
        updates = []
        reporter = ProgressReporter(2 * 40, updates.append, update_every=10)
        estimate_power([60, 80], 40, ttest_trial, parameters=ttest_params, seed=1, progress=reporter)

        events = [(u.status, u.sample_size) for u in updates if u.status != "running"]
        assert events == [("started", 60), ("done", 60), ("started", 80), ("done", 80)]
        assert [u.done for u in updates if u.status == "running"] == [10, 20, 30, 10, 20, 30]
        assert reporter.completed == 80

    def test_progress_reports_failures(self):
        updates = []
        reporter = ProgressReporter(200, updates.append)
        table = estimate_power([30], 200, _fails_every_fifth, seed=SEED, max_failed_fraction=None, progress=reporter)
        assert updates[-1].status == "done"
        assert updates[-1].failed == table[0].n_failed

    def test_progress_marks_aborted_sample_size(self):
        updates = []
        reporter = ProgressReporter(20, updates.append)
        with pytest.warns(UserWarning, match="No power estimate"):
            estimate_power([30, 40], 10, _always_fails, seed=SEED, progress=reporter)
        assert [u.status for u in updates if u.status != "running"] == ["started", "aborted", "started", "aborted"]
        assert reporter.completed == 20


class TestValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"iterations": 0},
            {"iterations": 2.5},
            {"seed": -1},
            {"failure_policy": "retry"},
            {"time_budget": 0},
            {"max_failed_fraction": 2},
            {"parallelism": 0},
        ],
    )
    def test_invalid_options(self, kwargs):
        calls = []

        def trial(n, p, s):
            calls.append(n)
            return 0.01

        options = {"iterations": 10, **kwargs}
        iterations = options.pop("iterations")
        with pytest.raises(InvalidParameters):
            estimate_power([20], iterations, trial, **options)
        assert calls == []

    @pytest.mark.parametrize("sample_sizes", [[], [0, 10], [10, 10], [10.5], "100"])
    def test_invalid_sample_sizes(self, sample_sizes):
        calls = []

        def trial(n, p, s):
            calls.append(n)
            return 0.01

        with pytest.raises(InvalidParameters):
            estimate_power(sample_sizes, 10, trial, seed=1)
        assert calls == []

    def test_below_trial_minimum(self, two_group_trial):
        with pytest.raises(InvalidParameters, match="at least"):
            PowerEstimator(two_group_trial, iterations=10).run([3])

    def test_parameters_checked_before_dispatch(self):
        def check(params):
            raise InvalidParameters("variance must be positive")

        trial = FunctionTrial(ttest_trial, {"m0": 0, "m1": 1, "sd": -1}, validate=check)
        with pytest.raises(InvalidParameters, match="variance"):
            PowerEstimator(trial, iterations=10)

    def test_wrong_outcome_count(self):
        with pytest.raises(InvalidParameters, match="expected 2"):
            estimate_power([10], 5, lambda n, p, s: 0.5, outcome_names=("a", "b"), seed=1)

    def test_criteria_count_mismatch(self):
        with pytest.raises(InvalidParameters):
            estimate_power([10], 5, lambda n, p, s: 0.5, [PValueBelow(), PValueBelow()], seed=1)

    def test_low_iterations_warns(self):
        with pytest.warns(UserWarning, match="Low iteration count"):
            estimate_power([10], 5, lambda n, p, s: 0.5, seed=1)
