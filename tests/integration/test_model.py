"""
Integration tests for the PowerAnalysis facade.
"""

import numpy as np
import pandas as pd
import pytest

from simpower import (
    InvalidParameters,
    PowerAnalysis,
    PrecisionParameters,
    PrecisionTrial,
    ResultsTable,
    TrialReport,
    WidthBelow,
)
from tests.config import N_ITER_CHECK, SEED
from tests.conftest import ttest_trial


@pytest.fixture
def analysis(two_group_trial, suppress_output):
    return PowerAnalysis(two_group_trial).set_iterations(N_ITER_CHECK).set_seed(SEED)


class TestConfiguration:
    def test_defaults(self, two_group_trial):
        a = PowerAnalysis(two_group_trial)
        assert a.seed == 2137
        assert a.power == 0.8
        assert a.alpha == 0.05
        assert a.iterations == 1000
        assert a.parallel is False
        assert a.failure_policy == "exclude"
        assert a.max_failed_trials == 0.03
        assert a.time_budget is None

    def test_chaining(self, analysis):
        result = analysis.set_power(0.9).set_alpha(0.01).set_failure_policy("abort").set_time_budget(30)
        assert result is analysis
        assert (analysis.power, analysis.alpha, analysis.failure_policy, analysis.time_budget) == (0.9, 0.01, "abort", 30)

    @pytest.mark.parametrize(
        "setter,value",
        [
            ("set_power", 80),
            ("set_alpha", 0.5),
            ("set_iterations", 0),
            ("set_seed", -3),
            ("set_failure_policy", "skip"),
            ("set_max_failed_trials", 1.5),
            ("set_time_budget", -1),
        ],
    )
    def test_invalid_settings(self, analysis, setter, value):
        with pytest.raises(InvalidParameters):
            getattr(analysis, setter)(value)

    def test_set_parallel(self, analysis):
        analysis.set_parallel(True, n_cores=2)
        assert analysis.parallel is True
        assert 1 <= analysis.n_cores <= 2
        analysis.set_parallel(False)
        assert analysis.parallel is False
        assert analysis.n_cores == 1

    def test_set_criterion_type(self, analysis):
        with pytest.raises(TypeError):
            analysis.set_criterion(0.05)

    def test_plain_function(self, ttest_params, suppress_output):
        a = PowerAnalysis(ttest_trial, parameters=ttest_params).set_iterations(N_ITER_CHECK)
        table = a.find_power(100, print_results=False, return_results=True)
        assert table.outcome_names == ("p_value",)

    def test_describe(self, analysis):
        info = analysis.describe()
        assert info["criterion"] == "p < 0.05"
        assert info["parameters"]["variance"] == 117.0


class TestFindPower:
    def test_returns_table(self, analysis):
        table = analysis.find_power(100, print_results=False, return_results=True)
        assert isinstance(table, ResultsTable)
        assert table.sample_sizes == [100]
        assert table.metadata["seed"] == SEED

    def test_returns_none_by_default(self, analysis):
        assert analysis.find_power(100, print_results=False) is None

    def test_alpha_drives_default_criterion(self, analysis):
        loose = analysis.set_alpha(0.05).find_power(100, print_results=False, return_results=True)
        strict = analysis.set_alpha(0.005).find_power(100, print_results=False, return_results=True)
        assert strict.powers()[0] <= loose.powers()[0]
        assert strict.metadata["criterion"] == "p < 0.005"

    def test_reproducible(self, analysis):
        a = analysis.find_power(80, print_results=False, return_results=True)
        b = analysis.find_power(80, print_results=False, return_results=True)
        assert a.powers() == b.powers()

    def test_prints_results(self, two_group_trial, capsys):
        PowerAnalysis(two_group_trial).set_iterations(N_ITER_CHECK).find_power(100, progress_callback=False)
        out = capsys.readouterr().out
        assert "MONTE CARLO POWER ANALYSIS RESULTS" in out
        assert "treatment" in out

    def test_progress_callback(self, analysis):
        updates = []
        analysis.find_power(100, print_results=False, progress_callback=updates.append)
        assert (updates[0].status, updates[0].sample_size) == ("started", 100)
        assert [u.status for u in updates[-2:]] == ["done", "finished"]
        assert updates[-1].completed == updates[-1].total == N_ITER_CHECK

    def test_sample_size_below_minimum(self, analysis):
        with pytest.raises(InvalidParameters):
            analysis.find_power(2, print_results=False)


class TestFindSampleSize:
    def test_sweep(self, analysis):
        table = analysis.find_sample_size(40, 200, 40, print_results=False, return_results=True)
        assert table.sample_sizes == [40, 80, 120, 160, 200]

    def test_invalid_range(self, analysis):
        with pytest.raises(InvalidParameters):
            analysis.find_sample_size(200, 100, 10, print_results=False)

    def test_summary_mentions_target(self, two_group_trial, capsys):
        PowerAnalysis(two_group_trial).set_iterations(N_ITER_CHECK).find_sample_size(
            100, 300, 100, progress_callback=False
        )
        out = capsys.readouterr().out
        assert "SAMPLE SIZE ANALYSIS RESULTS" in out
        assert "target power 80%" in out

    def test_precision_planning(self, suppress_output):
        trial = PrecisionTrial(PrecisionParameters(0.3))
        a = PowerAnalysis(trial).set_iterations(N_ITER_CHECK).set_criterion(WidthBelow(0.3))
        table = a.find_sample_size(50, 250, 100, print_results=False, return_results=True)
        # width at n=50 is about 0.51, at n=250 about 0.23
        assert table.powers()[0] == 0.0
        assert table.powers()[-1] > 0.9


class TestMonteCarloErrorAndInspect:
    def test_monte_carlo_error(self, analysis):
        frame = analysis.monte_carlo_error(100, iterations=(50, 200), repetitions=5, print_results=False, return_results=True)
        assert isinstance(frame, pd.DataFrame)
        assert frame["iterations"].tolist() == [50, 200]
        assert (frame["sd_power"] >= 0).all()
        assert len(frame.attrs["estimates"][50]) == 5

    def test_inspect(self, analysis):
        report = analysis.inspect(60, seed=1, print_results=False)
        assert isinstance(report, TrialReport)
        assert len(report.data) == 60
        assert 0 <= report.outcome[0] <= 1

    def test_inspect_prints_fit_summary(self, two_group_params, capsys):
        from simpower import TwoGroupTrial

        PowerAnalysis(TwoGroupTrial(two_group_params)).inspect(60, seed=1)
        out = capsys.readouterr().out
        assert "OLS Regression Results" in out
        assert "treatment=" in out
