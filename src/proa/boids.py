# pyright: strict
"""Boid flocking: separation, cohesion and alignment with soft world bounds."""

import logging
from dataclasses import dataclass
from typing import NamedTuple, TypedDict

import numpy as np
from numba import njit  # type: ignore

from proa import constants
from proa.sample import SampleSource, agent_sample_indices, sample

logger = logging.getLogger(__name__)


@dataclass(kw_only=True, frozen=True, slots=True)
class FlockParams:
    count: int = constants.boid_count
    """Number of agents."""
    bounds: tuple[float, float] = constants.bounds
    """Half extents of the world rectangle centred on the origin."""
    min_speed: float = constants.min_speed
    max_speed: float = constants.max_speed
    margin: tuple[float, float] | None = None
    """Width of the band along each edge where agents turn back. `None` follows the bounds, see `edge_margin`."""
    turn_factor: float = constants.turn_factor
    """Velocity added per frame while inside the margin band."""
    separation_factor: float = constants.separation_factor
    cohesion_factor: float = constants.cohesion_factor
    alignment_factor: float = constants.alignment_factor
    view_radius_squared: float = constants.view_radius_squared
    """Neighbours closer than this (squared) contribute to cohesion and alignment."""
    separation_radius_squared: float = constants.separation_radius_squared
    """Neighbours closer than this (squared) push the agent away."""

    def __post_init__(self):
        if self.count < 0:
            raise ValueError(f"agent count must be non-negative, got {self.count}")
        if self.max_speed <= 0 or not 0 <= self.min_speed <= self.max_speed:
            raise ValueError(
                f"expected 0 <= min_speed <= max_speed and max_speed > 0, "
                f"got min_speed={self.min_speed}, max_speed={self.max_speed}"
            )
        if self.view_radius_squared < 0 or self.separation_radius_squared < 0:
            raise ValueError("interaction radii must be non-negative")
        if self.margin is not None and min(self.margin) < 0:
            raise ValueError(f"margin must be non-negative, got {self.margin}")

    @property
    def edge_margin(self) -> tuple[float, float]:
        """The margin in effect: the explicit one, or a fixed fraction of the bounds."""
        if self.margin is not None:
            return self.margin
        return (
            self.bounds[0] * constants.margin_fraction,
            self.bounds[1] * constants.margin_fraction,
        )


class Agent(NamedTuple):
    position: np.ndarray
    velocity: np.ndarray


@njit
def _velocity_changes(
    position: np.ndarray,
    velocity: np.ndarray,
    separation_factor: float,
    cohesion_factor: float,
    alignment_factor: float,
    view_radius_squared: float,
    separation_radius_squared: float,
) -> np.ndarray:
    """Scans every ordered pair of agents and returns the velocity change of each.

    Nothing is written to `velocity`, so every agent sees its neighbours as they were at the start of the frame.
    """
    n = position.shape[0]
    changes = np.zeros((n, 2))
    for i in range(n):
        x = position[i, 0]
        y = position[i, 1]
        separation_x = 0.0
        separation_y = 0.0
        center_x = 0.0
        center_y = 0.0
        heading_x = 0.0
        heading_y = 0.0
        neighbours = 0
        for j in range(n):
            if i == j:
                continue
            dx = x - position[j, 0]
            dy = y - position[j, 1]
            distance_sq = dx * dx + dy * dy
            if distance_sq <= separation_radius_squared:
                separation_x += dx
                separation_y += dy
            if distance_sq <= view_radius_squared:
                center_x += position[j, 0]
                center_y += position[j, 1]
                heading_x += velocity[j, 0]
                heading_y += velocity[j, 1]
                neighbours += 1

        change_x = separation_x * separation_factor
        change_y = separation_y * separation_factor
        if neighbours > 0:
            change_x += (center_x / neighbours - x) * cohesion_factor
            change_y += (center_y / neighbours - y) * cohesion_factor
            change_x += (heading_x / neighbours - velocity[i, 0]) * alignment_factor
            change_y += (heading_y / neighbours - velocity[i, 1]) * alignment_factor
        changes[i, 0] = change_x
        changes[i, 1] = change_y
    return changes


@dataclass(kw_only=True, slots=True)
class Flock:
    params: FlockParams

    position: np.ndarray
    """Position of every agent, shape (N, 2)."""
    velocity: np.ndarray
    """Velocity of every agent, shape (N, 2)."""

    def __post_init__(self):
        # Always take a private float64 copy, callers keep their arrays
        self.position = np.array(self.position, dtype=np.float64)
        self.velocity = np.array(self.velocity, dtype=np.float64)
        expected = (self.params.count, 2)
        if self.position.shape != expected or self.velocity.shape != expected:
            raise ValueError(
                f"expected position and velocity of shape {expected}, "
                f"got {self.position.shape} and {self.velocity.shape}"
            )

    @property
    def agents(self) -> tuple[Agent, ...]:
        return tuple(
            Agent(p.copy(), v.copy()) for p, v in zip(self.position, self.velocity)
        )

    @property
    def speed(self) -> np.ndarray:
        return np.sqrt(np.sum(np.square(self.velocity), axis=1))

    def update(self, dt: float) -> None:
        self._boid_forces()
        self._avoid_bounds()
        self._apply_velocity(dt)

    def copy(self) -> "Flock":
        return Flock(params=self.params, position=self.position, velocity=self.velocity)

    def _boid_forces(self):
        p = self.params
        changes = _velocity_changes(
            self.position,
            self.velocity,
            p.separation_factor,
            p.cohesion_factor,
            p.alignment_factor,
            p.view_radius_squared,
            p.separation_radius_squared,
        )
        self.velocity += changes

    def _avoid_bounds(self):
        p = self.params
        bounds = np.asarray(p.bounds, dtype=np.float64)
        margin = np.asarray(p.edge_margin, dtype=np.float64)
        # The band edge itself counts as inside the band
        self.velocity += np.where(self.position <= -bounds + margin, p.turn_factor, 0.0)
        self.velocity -= np.where(self.position >= bounds - margin, p.turn_factor, 0.0)

    def _apply_velocity(self, dt: float):
        p = self.params
        speed_sq = np.sum(np.square(self.velocity), axis=1)

        # A stalled agent has no heading, it restarts along +X
        stalled = speed_sq == 0.0
        self.velocity[stalled] = (1.0, 0.0)
        speed_sq[stalled] = 1.0

        scale = np.ones_like(speed_sq)
        too_fast = speed_sq > p.max_speed**2
        too_slow = speed_sq < p.min_speed**2
        scale[too_fast] = p.max_speed / np.sqrt(speed_sq[too_fast])
        scale[too_slow] = p.min_speed / np.sqrt(speed_sq[too_slow])
        self.velocity *= scale[:, np.newaxis]

        self.position += self.velocity * dt


class _KwargsInitialConditions(TypedDict):
    position: np.ndarray
    velocity: np.ndarray


def normalize_or_zero(v: np.ndarray) -> np.ndarray:
    """Normalizes vectors along the last axis, zero-length vectors stay zero."""
    length = np.sqrt(np.sum(np.square(v), axis=-1, keepdims=True))
    safe = np.where(length > 0.0, length, 1.0)
    return np.where(length > 0.0, v / safe, 0.0)


def generate_initial_conditions(
    *,
    params: FlockParams,
    sample: SampleSource = sample,
) -> _KwargsInitialConditions:
    """Places agents from the sample source.

    Agent `i` reads the samples at `agent_sample_indices(i)`.
    Each pair is normalized into a direction (zero if both samples are zero),
    then stretched over the full bounds for the position and over the full speed range for the velocity.
    """
    draws = np.array(
        [[sample(k) for k in agent_sample_indices(i)] for i in range(params.count)],
        dtype=np.float64,
    ).reshape(params.count, 4)
    bounds = np.asarray(params.bounds, dtype=np.float64)
    position = normalize_or_zero(draws[:, 0:2]) * 2.0 * bounds - bounds
    velocity = normalize_or_zero(draws[:, 2:4]) * 2.0 * params.max_speed - params.max_speed
    logger.debug("placed %d agents inside bounds %s", params.count, params.bounds)
    return {"position": position, "velocity": velocity}
