"""
Results processing for SimPower.

Turns the outcome buffer of one sample size into a ``PowerRow`` and
collects rows into an append-only ``ResultsTable``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence

import numpy as np
import pandas as pd

from .criteria import evaluate_criteria


@dataclass(frozen=True)
class PowerRow:
    """Power estimates for one sample size.

    Attributes:
        sample_size: Sample size the trials were run at.
        powers: Empirical power (0–1) per outcome name.
        mc_errors: Binomial Monte Carlo standard error per outcome name.
        n_valid: Trials that produced a usable outcome (the denominator).
        n_failed: Trials excluded because the fit failed.
        iterations: Trials requested for this sample size.
    """

    sample_size: int
    powers: Dict[str, float]
    mc_errors: Dict[str, float]
    n_valid: int
    n_failed: int
    iterations: int

    @property
    def complete(self) -> bool:
        """``True`` when every requested trial contributed to the estimate."""
        return self.n_valid == self.iterations

    def as_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {"sample_size": self.sample_size}
        for name, power in self.powers.items():
            record[f"power_{name}"] = power
        for name, err in self.mc_errors.items():
            record[f"mc_error_{name}"] = err
        record["n_valid"] = self.n_valid
        record["n_failed"] = self.n_failed
        record["iterations"] = self.iterations
        return record


class ResultsTable:
    """Append-only table of ``PowerRow`` objects, one per sample size.

    Sample sizes whose row could not be computed (time budget exceeded,
    fit failure under the ``"abort"`` policy, or every trial failing) are
    listed in ``aborted`` together with the exception that caused it. The
    table is frozen once the run that produced it has completed.

    Args:
        outcome_names: Names of the outcome components (power columns).
        metadata: Run configuration (seed, iterations, criterion, ...).
    """

    def __init__(self, outcome_names: Sequence[str], metadata: Optional[Dict[str, Any]] = None):
        self.outcome_names = tuple(outcome_names)
        self.metadata: Dict[str, Any] = dict(metadata or {})
        self._rows: List[PowerRow] = []
        self._aborted: Dict[int, Exception] = {}
        self._frozen = False

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def append(self, row: PowerRow):
        """Append a row; rejects duplicates and writes after ``freeze()``."""
        self._check_writable(row.sample_size)
        if tuple(row.powers) != self.outcome_names:
            raise ValueError(f"Row outcomes {tuple(row.powers)} do not match table outcomes {self.outcome_names}")
        self._rows.append(row)

    def mark_aborted(self, sample_size: int, error: Exception):
        """Record that *sample_size* has no row, and why."""
        self._check_writable(sample_size)
        self._aborted[int(sample_size)] = error

    def freeze(self):
        self._frozen = True

    def _check_writable(self, sample_size: int):
        if self._frozen:
            raise RuntimeError("ResultsTable is frozen; the run that produced it has completed")
        if sample_size in self.sample_sizes or sample_size in self._aborted:
            raise ValueError(f"Sample size {sample_size} already recorded in this table")

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def rows(self) -> List[PowerRow]:
        return list(self._rows)

    @property
    def aborted(self) -> Dict[int, Exception]:
        return dict(self._aborted)

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def sample_sizes(self) -> List[int]:
        return [row.sample_size for row in self._rows]

    @property
    def incomplete(self) -> List[int]:
        """Sample sizes whose power rests on fewer than ``iterations`` valid trials."""
        return [row.sample_size for row in self._rows if not row.complete]

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[PowerRow]:
        return iter(self._rows)

    def __getitem__(self, index: int) -> PowerRow:
        return self._rows[index]

    def row(self, sample_size: int) -> PowerRow:
        for r in self._rows:
            if r.sample_size == sample_size:
                return r
        raise KeyError(sample_size)

    def powers(self, outcome: Optional[str] = None) -> List[float]:
        """Power values for one outcome (default: the first) in row order."""
        name = self._resolve_outcome(outcome)
        return [row.powers[name] for row in self._rows]

    def first_achieved(self, target_power: float, outcome: Optional[str] = None) -> int:
        """First sample size (in row order) reaching *target_power*, or ``-1``."""
        name = self._resolve_outcome(outcome)
        for row in self._rows:
            if row.powers[name] >= target_power:
                return row.sample_size
        return -1

    def records(self) -> List[Dict[str, Any]]:
        return [row.as_record() for row in self._rows]

    def to_frame(self) -> pd.DataFrame:
        """Rows as a ``pandas.DataFrame`` (one row per sample size)."""
        columns = (
            ["sample_size"]
            + [f"power_{n}" for n in self.outcome_names]
            + [f"mc_error_{n}" for n in self.outcome_names]
            + ["n_valid", "n_failed", "iterations"]
        )
        return pd.DataFrame(self.records(), columns=columns)

    def _resolve_outcome(self, outcome: Optional[str]) -> str:
        if outcome is None:
            return self.outcome_names[0]
        if outcome not in self.outcome_names:
            raise KeyError(f"Unknown outcome '{outcome}'. Available: {', '.join(self.outcome_names)}")
        return outcome

    def __repr__(self):
        return f"ResultsTable(outcomes={self.outcome_names}, rows={len(self)}, aborted={sorted(self._aborted)})"


class ResultsProcessor:
    """Converts an outcome buffer into power estimates.

    Args:
        outcome_names: Names of the outcome components.
        criteria: One criterion per component.
    """

    def __init__(self, outcome_names: Sequence[str], criteria: List[Any]):
        self.outcome_names = tuple(outcome_names)
        self.criteria = criteria

    def calculate_row(self, sample_size: int, outcomes: np.ndarray, failed: np.ndarray) -> PowerRow:
        """Compute one ``PowerRow``.

        Args:
            sample_size: Sample size of the trials.
            outcomes: ``(iterations, n_outcomes)`` buffer; rows of failed
                trials are ignored.
            failed: Boolean mask of length ``iterations``.

        Raises:
            ValueError: If no trial produced a usable outcome.
        """
        iterations = outcomes.shape[0]
        valid = outcomes[~failed]
        n_valid = valid.shape[0]
        if n_valid == 0:
            raise ValueError(f"No valid trials at sample size {sample_size}")

        met = evaluate_criteria(self.criteria, valid)
        proportions = met.mean(axis=0)

        powers = {name: float(p) for name, p in zip(self.outcome_names, proportions)}
        mc_errors = {name: float(np.sqrt(p * (1 - p) / n_valid)) for name, p in zip(self.outcome_names, proportions)}

        return PowerRow(
            sample_size=int(sample_size),
            powers=powers,
            mc_errors=mc_errors,
            n_valid=int(n_valid),
            n_failed=int(iterations - n_valid),
            iterations=int(iterations),
        )


@dataclass
class _OutcomeBuffer:
    """Pre-sized storage for the outcomes of one sample size."""

    iterations: int
    n_outcomes: int
    outcomes: np.ndarray = field(init=False)
    failed: np.ndarray = field(init=False)
    done: np.ndarray = field(init=False)

    def __post_init__(self):
        self.outcomes = np.full((self.iterations, self.n_outcomes), np.nan)
        self.failed = np.zeros(self.iterations, dtype=bool)
        self.done = np.zeros(self.iterations, dtype=bool)

    def store(self, start: int, outcomes: np.ndarray, failed: np.ndarray):
        stop = start + outcomes.shape[0]
        self.outcomes[start:stop] = outcomes
        self.failed[start:stop] = failed
        self.done[start:stop] = True

    @property
    def n_done(self) -> int:
        return int(self.done.sum())
