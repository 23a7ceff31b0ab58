"""
Error taxonomy for SimPower.

- ``InvalidParameters``: configuration rejected before any trial runs.
- ``FitFailure``: one trial's fitting routine produced no usable result.
- ``BudgetExceeded``: a sample size's trials did not finish in time.
"""

from typing import Any, Optional


class InvalidParameters(ValueError):
    """Raised when parameters fail validation before any work is dispatched."""

    pass


class FitFailure(RuntimeError):
    """Raised when a single trial's model fit cannot produce a usable statistic.

    Attributes:
        sample_size: Sample size of the failed trial.
        parameters: Parameter bundle the trial was simulating from.
        reason: Short description of what went wrong.
    """

    def __init__(self, sample_size: int, parameters: Any = None, reason: str = "fit failed"):
        self.sample_size = sample_size
        self.parameters = parameters
        self.reason = reason
        super().__init__(f"Fit failed at sample size {sample_size}: {reason}")

    def __reduce__(self):
        # Keep the exception picklable across worker processes
        return (type(self), (self.sample_size, self.parameters, self.reason))


class BudgetExceeded(TimeoutError):
    """Raised when the trials for one sample size exceed the wall-clock budget.

    Attributes:
        sample_size: Sample size whose trials were cut short.
        budget: Budget in seconds.
        completed: Number of trials that finished before the deadline.
    """

    def __init__(self, sample_size: int, budget: float, completed: Optional[int] = None):
        self.sample_size = sample_size
        self.budget = budget
        self.completed = completed
        done = f" after {completed} trials" if completed is not None else ""
        super().__init__(f"Time budget of {budget:g}s exceeded at sample size {sample_size}{done}")

    def __reduce__(self):
        return (type(self), (self.sample_size, self.budget, self.completed))
