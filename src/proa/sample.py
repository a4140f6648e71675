# pyright: strict
"""Deterministic sample source used to seed the flock.

Samples are addressed by an explicit counter instead of drawn from a shared
generator, so the same index always yields the same float and two runs that
read the same indices start from identical agents.
"""

from collections.abc import Callable
from functools import partial

import numpy as np

from proa import constants

type SampleSource = Callable[[int], float]

AGENT_SAMPLE_STRIDE = 4
"""Samples consumed per agent: position x, position y, velocity x, velocity y."""


def sample(index: int, seed: int = constants.seed) -> float:
    """Returns a float in [0, 1) that depends only on `index` and `seed`.

    Every `(seed, index)` pair seeds its own generator, so indices can be read in any order.
    """
    if index < 0:
        raise ValueError(f"sample index must be non-negative, got {index}")
    rng = np.random.default_rng((seed, index))
    return float(rng.random())


def seeded(seed: int) -> SampleSource:
    return partial(sample, seed=seed)


def agent_sample_indices(i: int) -> tuple[int, int, int, int]:
    """Indices of the samples agent `i` is built from.

    Agent `i` owns the disjoint slice `4i .. 4i+3`, read as
    `(position.x, position.y, velocity.x, velocity.y)`.
    """
    base = i * AGENT_SAMPLE_STRIDE
    return base, base + 1, base + 2, base + 3
