"""
Seed derivation for reproducible Monte Carlo sweeps.

Every logical trial is identified by ``(sample_size, iteration_index)``.
Its seed is derived from the run-level seed with ``numpy.random.SeedSequence``
so that the seed a trial receives never depends on which worker runs it
or in which order trials complete.
"""

from typing import List, Optional

import numpy as np

MAX_SEED = 2**32 - 1


def seed_for(run_seed: int, sample_size: int, iteration_index: int) -> int:
    """Return the deterministic seed of one logical trial.

    Args:
        run_seed: Run-level seed (non-negative integer).
        sample_size: Sample size of the trial.
        iteration_index: Zero-based index of the trial within its sample size.

    Returns:
        A 32-bit unsigned integer, distinct for distinct
        ``(sample_size, iteration_index)`` pairs with overwhelming probability.
    """
    ss = np.random.SeedSequence(run_seed, spawn_key=(int(sample_size), int(iteration_index)))
    return int(ss.generate_state(1, dtype=np.uint32)[0])


def seeds_for(run_seed: int, sample_size: int, start: int, stop: int) -> List[int]:
    """List form of :func:`seed_for` for the index range ``[start, stop)``."""
    return [seed_for(run_seed, sample_size, i) for i in range(start, stop)]


def resolve_run_seed(seed: Optional[int]) -> int:
    """Return *seed* unchanged, or draw a fresh run seed from OS entropy."""
    if seed is not None:
        return int(seed)
    return int(np.random.SeedSequence().generate_state(1, dtype=np.uint32)[0])


def spawn_run_seeds(seed: Optional[int], n: int, *key: int) -> List[int]:
    """Derive *n* independent run seeds, e.g. for repeated estimates.

    Args:
        seed: Parent seed (``None`` for fresh entropy).
        n: Number of run seeds to produce.
        *key: Extra integers distinguishing this family of runs.
    """
    parent = resolve_run_seed(seed)
    return [
        int(np.random.SeedSequence(parent, spawn_key=(*key, i)).generate_state(1, dtype=np.uint32)[0])
        for i in range(n)
    ]
