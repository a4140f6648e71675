# pyright: strict
import logging
from collections.abc import Callable
from concurrent.futures import Executor, ProcessPoolExecutor
from dataclasses import replace

import numpy as np

from proa.batch import run_batch_simulation, run_multiprocess_simulations
from proa.boids import FlockParams
from proa.simulation_impl_fish import (
    SimulationImplFish,
    SimulationRecorderFish,
    generate_fish_state,
)

logger = logging.getLogger(__name__)


def run_factor_comparison(
    *,
    seed: int,
    cohesion_vals: np.ndarray,
    alignment_vals: np.ndarray,
    create_initial_state: Callable[
        [
            float,  # Cohesion
            float,  # Alignment
            int,  # Seed
        ],
        SimulationImplFish,
    ],
    runs_per_config: int,
    steps_per_run: int,
    executor_factory: Callable[[], Executor] = ProcessPoolExecutor,
) -> np.ndarray:
    """Averages dispersion, polarization and milling over a grid of cohesion and alignment factors.

    Returns:
        An array of shape (len(cohesion_vals), len(alignment_vals), 3).
        The first half of every run is discarded as a transient.
    """
    seed *= len(cohesion_vals) * len(alignment_vals) * runs_per_config
    statistics = np.zeros((len(cohesion_vals), len(alignment_vals), 3))

    def run(seed: int, coh: float, ali: float):
        run_batch_simulation(
            create_initial_state(coh, ali, seed),
            rec := SimulationRecorderFish(skip_first_n=steps_per_run // 2),
            steps=steps_per_run,
        )
        return rec.dispersion, rec.polarization, rec.milling

    for (_, i, j), result in run_multiprocess_simulations(
        fn=run,
        args={
            (i, *ij): (seed + i, *args)
            for i, (ij, args) in enumerate(
                ((i_coh, i_ali), (coh, ali))
                for i_coh, coh in enumerate(cohesion_vals)
                for i_ali, ali in enumerate(alignment_vals)
                for _ in range(runs_per_config)
            )
        },
        executor_factory=executor_factory,
    ).items():
        statistics[i, j, :] += result

    statistics /= runs_per_config
    logger.info(
        "compared %d cohesion x %d alignment factors over %d runs each",
        len(cohesion_vals),
        len(alignment_vals),
        runs_per_config,
    )
    return statistics


def default_initial_state(coh: float, ali: float, seed: int) -> SimulationImplFish:
    """A default flock with the two factors under comparison replaced."""
    return generate_fish_state(
        flock_params=replace(FlockParams(), cohesion_factor=coh, alignment_factor=ali),
        seed=seed,
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    statistics = run_factor_comparison(
        seed=0,
        cohesion_vals=np.array([0.0, 0.0005, 0.005]),
        alignment_vals=np.array([0.0, 0.01, 0.05]),
        create_initial_state=default_initial_state,
        runs_per_config=4,
        steps_per_run=60 * 60,
    )
    logger.info("dispersion, polarization, milling per cohesion x alignment:\n%s", statistics)
