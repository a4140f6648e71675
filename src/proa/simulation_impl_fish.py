# pyright:strict
import math
from copy import copy
from dataclasses import dataclass

import numpy as np

from proa import constants
from proa.boids import Flock, FlockParams, generate_initial_conditions, normalize_or_zero
from proa.chain import Chain, ChainAnimator, ChainParams, bend_angles, link_lengths
from proa.sample import SampleSource, seeded
from proa.simulation_framework import SimulationRecorder


@dataclass(kw_only=True, slots=True)
class SimulationImplFish:
    """A flock of fish, each with a spine trailing its head.

    Every step moves the flock by one fixed frame, then drags the spines after the new heads.
    """

    # Constants
    c_dt: float = constants.dt
    """Length of one frame, in seconds."""

    # Variables
    time: float = 0.0
    """Absolute time of the simulation, a whole number of frames unless the state is an interpolation."""
    flock: Flock
    animator: ChainAnimator

    _dirty: bool = False
    """If true, this state has been snapshotted and its flock and chains are referenced in another state.

    In this case, safely updating the state requires copying them and resetting the _dirty flag.
    """

    def __post_init__(self):
        if self.c_dt <= 0:
            raise ValueError(f"frame length must be positive, got {self.c_dt}")

    def _undirty(self):
        if not self._dirty:
            return
        self.flock = self.flock.copy()
        self.animator = self.animator.copy()
        self._dirty = False

    def step(self) -> None:
        self._undirty()
        self.flock.update(self.c_dt)
        self.animator.update(self.flock.position, self.flock.velocity, self.c_dt)
        self.time += self.c_dt

    def snapshot(self):
        self._dirty = True
        return copy(self)

    def interpolate(self, other: "SimulationImplFish", t: float):
        ret = self.snapshot()
        ret.time = (1 - t) * self.time + t * other.time
        if t == 0:
            return ret
        ret.flock = Flock(
            params=self.flock.params,
            position=(1 - t) * self.flock.position + t * other.flock.position,
            velocity=(1 - t) * self.flock.velocity + t * other.flock.velocity,
        )
        ret.animator = ChainAnimator(
            params=self.animator.params,
            chains=[
                Chain(a.size, (1 - t) * a.position + t * b.position)
                for a, b in zip(self.animator.chains, other.animator.chains)
            ],
        )
        return ret


def generate_fish_state(
    *,
    flock_params: FlockParams = FlockParams(),
    chain_params: ChainParams = ChainParams(),
    seed: int = constants.seed,
    sample: SampleSource | None = None,
    dt: float = constants.dt,
) -> SimulationImplFish:
    """Builds a flock from the sample source and lays a spine behind every fish.

    `sample` takes precedence over `seed` when both are given.
    """
    flock = Flock(
        params=flock_params,
        **generate_initial_conditions(
            params=flock_params,
            sample=sample if sample is not None else seeded(seed),
        ),
    )
    animator = ChainAnimator(params=chain_params)
    animator.update(flock.position, flock.velocity, 0.0)
    return SimulationImplFish(c_dt=dt, flock=flock, animator=animator)


@dataclass
class SimulationRecorderFish(SimulationRecorder[SimulationImplFish]):
    # Config
    skip_first_n: int = 0

    # Statistics
    total_samples: int = 0
    total_dispersion: float = 0
    total_polarization: float = 0
    total_milling: float = 0
    max_link_error: float = 0
    """Largest deviation of any link from the configured separation."""
    min_bend_angle: float = math.pi
    """Smallest angle seen at any inner joint."""

    def record(self, state: SimulationImplFish):
        self.total_samples += 1
        if self.total_samples <= self.skip_first_n:
            return

        u = state.flock.position
        v = state.flock.velocity
        if u.shape[0] > 0:
            # Barycenter positon and velocity
            b = np.mean(u, axis=0)
            bv = np.mean(v, axis=0)

            relative_pos = np.arctan2(u[:, 1] - b[1], u[:, 0] - b[0])
            relative_heading = np.arctan2(v[:, 1] - bv[1], v[:, 0] - bv[0])

            self.total_dispersion += float(np.sqrt(np.mean(np.sum(np.square(u - b), axis=1))))
            self.total_polarization += float(
                np.linalg.norm(np.sum(normalize_or_zero(v), axis=0)) / u.shape[0]
            )
            self.total_milling += float(
                np.abs(np.mean(np.sin(relative_heading - relative_pos)))
            )

        separation = state.animator.params.link_separation
        for chain in state.animator.chains:
            if chain.position.shape[0] > 1:
                self.max_link_error = max(
                    self.max_link_error,
                    float(np.max(np.abs(link_lengths(chain.position) - separation))),
                )
            if chain.position.shape[0] > 2:
                self.min_bend_angle = min(
                    self.min_bend_angle, float(np.min(bend_angles(chain.position)))
                )

    @property
    def samples(self) -> float:
        return self.total_samples - self.skip_first_n

    @property
    def results_available(self) -> bool:
        return self.samples > 0

    @property
    def dispersion(self) -> float:
        return self.total_dispersion / self.samples

    @property
    def polarization(self) -> float:
        return self.total_polarization / self.samples

    @property
    def milling(self) -> float:
        return self.total_milling / self.samples
