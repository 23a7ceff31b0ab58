"""
Progress reporting for SimPower sweeps.

The estimator tells a ``ProgressReporter`` when it starts a sample size,
when a batch of trials comes back (with its failure count) and when the
sample size ends with or without a row. The reporter turns that into
``ProgressUpdate`` snapshots for a user callback, throttled per sample
size.
"""

import sys
from dataclasses import dataclass
from typing import Callable, Optional, TextIO


class SimulationCancelled(Exception):
    """Raised when a sweep is cancelled through ``cancel_check``."""

    pass


# Event kinds carried by ``ProgressUpdate.status``
STARTED = "started"
RUNNING = "running"
DONE = "done"
ABORTED = "aborted"
FINISHED = "finished"


@dataclass(frozen=True)
class ProgressUpdate:
    """Snapshot of a run, passed to progress callbacks.

    Attributes:
        status: ``"started"``, ``"running"``, ``"done"``, ``"aborted"`` or
            ``"finished"`` (end of the whole run).
        sample_size: Sample size currently estimated (``None`` once finished).
        done: Trials finished at this sample size, failed ones included.
        failed: Failed trials at this sample size.
        iterations: Trials requested per sample size.
        completed: Trials finished in the whole run.
        total: Trials planned for the whole run.
    """

    status: str
    sample_size: Optional[int]
    done: int
    failed: int
    iterations: int
    completed: int
    total: int

    @property
    def fraction(self) -> float:
        """Share of the whole run completed, in [0, 1]."""
        if self.total <= 0:
            return 1.0
        return min(1.0, self.completed / self.total)


class ProgressReporter:
    """Counts trials per sample size and forwards throttled updates.

    A ``"running"`` update is sent each time the trials done at the
    current sample size pass another multiple of *update_every*; the
    start and end of every sample size are always sent.

    Args:
        total: Trials planned for the whole run.
        callback: Called as ``callback(update)`` with a ``ProgressUpdate``.
        update_every: Trials between running updates. Defaults to a
            twentieth of the iterations of the sample size.
    """

    def __init__(self, total: int, callback: Callable[[ProgressUpdate], None], update_every: Optional[int] = None):
        self.total = int(total)
        self._callback = callback
        self._update_every = update_every
        self._completed = 0
        self._sample_size: Optional[int] = None
        self._iterations = 0
        self._done = 0
        self._failed = 0

    @property
    def completed(self) -> int:
        return self._completed

    def begin_sample_size(self, sample_size: int, iterations: int):
        self._sample_size = sample_size
        self._iterations = iterations
        self._done = 0
        self._failed = 0
        self._emit(STARTED)

    def record_batch(self, n_done: int, n_failed: int = 0):
        """Account for a returned batch of *n_done* trials, *n_failed* of them failed."""
        step = self._update_every or max(1, self._iterations // 20)
        before = self._done
        self._done += n_done
        self._failed += n_failed
        self._completed = min(self.total, self._completed + n_done)
        if self._done // step > before // step and self._done < self._iterations:
            self._emit(RUNNING)

    def rewind(self):
        """Forget the trials of the current sample size before it is rerun."""
        self._completed -= min(self._done, self._completed)
        self._done = 0
        self._failed = 0

    def end_sample_size(self, aborted: bool = False):
        if aborted:
            # Trials never run at this size still count towards the run
            self._completed = min(self.total, self._completed + self._iterations - self._done)
        self._emit(ABORTED if aborted else DONE)

    def finish(self):
        """Send the final update of the run."""
        self._completed = self.total
        self._sample_size = None
        self._emit(FINISHED)

    def _emit(self, status: str):
        self._callback(
            ProgressUpdate(status, self._sample_size, self._done, self._failed, self._iterations, self._completed, self.total)
        )


class PrintReporter:
    """Console reporter, one rewritten line per sample size.

    Prints ``N=120: 450/1000 trials, 3 failed | run 23.4%`` and ends the
    line with ``[done]`` or ``[aborted]`` when the sample size is over.

    Args:
        stream: Output stream (default: ``sys.stderr`` at call time).
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def __call__(self, update: ProgressUpdate):
        stream = self.stream if self.stream is not None else sys.stderr
        if update.status == FINISHED:
            stream.flush()
            return

        line = f"\rN={update.sample_size}: {update.done}/{update.iterations} trials"
        if update.failed:
            line += f", {update.failed} failed"
        line += f" | run {update.fraction:6.1%}"
        if update.status in (DONE, ABORTED):
            line += f" [{update.status}]\n"
        stream.write(line)
        stream.flush()


class TqdmReporter:
    """Optional tqdm progress bar over the whole run (imported lazily).

    The postfix shows the current sample size and its failure count.

    Usage::

        from simpower.progress import TqdmReporter
        analysis.find_sample_size(100, 300, 20, progress_callback=TqdmReporter())
    """

    def __init__(self, **tqdm_kwargs):
        self._tqdm_kwargs = tqdm_kwargs
        self._bar = None

    def __call__(self, update: ProgressUpdate):
        try:
            from tqdm import tqdm
        except ImportError:
            raise ImportError("tqdm required for TqdmReporter: pip install simpower[progress]") from None

        if self._bar is None:
            self._bar = tqdm(total=update.total, unit="trial", **self._tqdm_kwargs)

        delta = update.completed - self._bar.n
        if delta > 0:
            self._bar.update(delta)
        if update.sample_size is not None:
            self._bar.set_postfix(N=update.sample_size, failed=update.failed, refresh=False)

        if update.status == FINISHED:
            self._bar.close()
            self._bar = None
