# pyright: strict
"""Follow-the-leader spines that trail every agent of a flock.

Each chain is pulled joint by joint towards a target just ahead of its agent.
Links keep a fixed length and consecutive links never fold tighter than a minimum angle.
"""

import math
from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np
from numba import njit  # type: ignore

from proa import constants


@dataclass(kw_only=True, frozen=True, slots=True)
class ChainParams:
    link_separation: float = constants.link_separation
    """Distance between consecutive joints."""
    race_ahead_speed: float = constants.race_ahead_speed
    """Offset of the head target per second, added to both axes."""
    min_joint_angle: float = constants.min_joint_angle
    """Smallest angle allowed between the two links meeting at a joint."""
    joint_sizes: tuple[float, ...] = constants.joint_sizes
    """Body half-width at every joint, head first. Also fixes the number of joints."""

    def __post_init__(self):
        if self.link_separation <= 0:
            raise ValueError(
                f"link separation must be positive, got {self.link_separation}"
            )
        if not 0 <= self.min_joint_angle <= math.pi:
            raise ValueError(
                f"min joint angle must lie in [0, pi], got {self.min_joint_angle}"
            )
        if len(self.joint_sizes) == 0:
            raise ValueError("a chain needs at least one joint")

    @property
    def segments(self) -> int:
        return len(self.joint_sizes)


class Joint(NamedTuple):
    position: np.ndarray
    size: float


@dataclass(slots=True)
class Chain:
    size: np.ndarray
    """Half-width of every joint, shape (S,). Only read by renderers."""
    position: np.ndarray
    """Position of every joint, shape (S, 2). Index 0 is closest to the head."""

    @classmethod
    def straight(cls, params: ChainParams) -> "Chain":
        """A chain lying along +X, starting at the origin."""
        offsets = np.arange(params.segments, dtype=np.float64) * params.link_separation
        position = np.zeros((params.segments, 2))
        position[:, 0] = offsets
        return cls(np.array(params.joint_sizes, dtype=np.float64), position)

    def joints(self) -> list[Joint]:
        return [Joint(p.copy(), float(s)) for p, s in zip(self.position, self.size)]

    def copy(self) -> "Chain":
        return Chain(self.size, self.position.copy())


@njit
def _normalize_or_x(x: float, y: float) -> tuple[float, float]:
    length = math.sqrt(x * x + y * y)
    if length > 0.0:
        rcp = 1.0 / length
        if math.isfinite(rcp):
            return x * rcp, y * rcp
    return 1.0, 0.0


@njit
def _follow(
    position: np.ndarray,
    head_x: float,
    head_y: float,
    velocity_x: float,
    velocity_y: float,
    link_separation: float,
    race_ahead: float,
    min_joint_angle: float,
) -> None:
    """Drags the joints in `position` after the head, in place."""
    n = position.shape[0]
    dir_x, dir_y = _normalize_or_x(velocity_x, velocity_y)
    target_x = head_x + dir_x * link_separation + race_ahead
    target_y = head_y + dir_y * link_separation + race_ahead

    for i in range(n):
        offset_x = target_x - position[i, 0]
        offset_y = target_y - position[i, 1]
        distance = math.sqrt(offset_x * offset_x + offset_y * offset_y)
        if distance > 0.0:
            position[i, 0] = target_x - offset_x / distance * link_separation
            position[i, 1] = target_y - offset_y / distance * link_separation
        target_x = position[i, 0]
        target_y = position[i, 1]

        if i < n - 2:
            anchor_x = position[i + 1, 0]
            anchor_y = position[i + 1, 1]
            u_x, u_y = _normalize_or_x(position[i, 0] - anchor_x, position[i, 1] - anchor_y)
            w_x, w_y = _normalize_or_x(
                position[i + 2, 0] - anchor_x, position[i + 2, 1] - anchor_y
            )
            angle = math.atan2(u_x * w_y - u_y * w_x, u_x * w_x + u_y * w_y)
            if abs(angle) < min_joint_angle:
                rotation = math.copysign(min_joint_angle, angle)
                c = math.cos(rotation)
                s = math.sin(rotation)
                position[i + 2, 0] = anchor_x + (u_x * c - u_y * s) * link_separation
                position[i + 2, 1] = anchor_y + (u_x * s + u_y * c) * link_separation

    _open_bends(position, min_joint_angle)


@njit
def _open_bends(position: np.ndarray, min_joint_angle: float) -> None:
    """Swings the tail around every joint that is still bent too tightly, in place.

    Re-placing a joint during the follow pass can close the angle the pass before it opened,
    when the head pushes back into the body. Rotating the whole tail about the joint keeps
    every link length and every angle further down the tail.
    """
    n = position.shape[0]
    for i in range(n - 2):
        anchor_x = position[i + 1, 0]
        anchor_y = position[i + 1, 1]
        u_x, u_y = _normalize_or_x(position[i, 0] - anchor_x, position[i, 1] - anchor_y)
        w_x, w_y = _normalize_or_x(position[i + 2, 0] - anchor_x, position[i + 2, 1] - anchor_y)
        angle = math.atan2(u_x * w_y - u_y * w_x, u_x * w_x + u_y * w_y)
        if abs(angle) >= min_joint_angle:
            continue
        rotation = math.copysign(min_joint_angle, angle) - angle
        c = math.cos(rotation)
        s = math.sin(rotation)
        for k in range(i + 2, n):
            dx = position[k, 0] - anchor_x
            dy = position[k, 1] - anchor_y
            position[k, 0] = anchor_x + dx * c - dy * s
            position[k, 1] = anchor_y + dx * s + dy * c


@dataclass(kw_only=True, slots=True)
class ChainAnimator:
    params: ChainParams = field(default_factory=ChainParams)
    chains: list[Chain] = field(default_factory=list[Chain])
    """One chain per agent. Grows with the agent count, never shrinks."""

    def update(self, position: np.ndarray, velocity: np.ndarray, dt: float) -> None:
        """Re-targets every chain from its agent's head position and velocity.

        Args:
            position: Head positions, shape (N, 2).
            velocity: Head velocities, shape (N, 2).
            dt: Frame time in seconds, scales the race-ahead offset.
        """
        if position.shape != velocity.shape or position.ndim != 2 or position.shape[1] != 2:
            raise ValueError(
                f"expected matching (N, 2) head arrays, got {position.shape} and {velocity.shape}"
            )
        while len(self.chains) < position.shape[0]:
            self.chains.append(Chain.straight(self.params))

        p = self.params
        race_ahead = p.race_ahead_speed * dt
        for head, heading, chain in zip(position, velocity, self.chains):
            _follow(
                chain.position,
                float(head[0]),
                float(head[1]),
                float(heading[0]),
                float(heading[1]),
                p.link_separation,
                race_ahead,
                p.min_joint_angle,
            )

    def copy(self) -> "ChainAnimator":
        return ChainAnimator(params=self.params, chains=[c.copy() for c in self.chains])


def link_lengths(position: np.ndarray) -> np.ndarray:
    """Distances between consecutive joints of one chain, shape (S-1,)."""
    return np.sqrt(np.sum(np.square(np.diff(position, axis=0)), axis=1))


def bend_angles(position: np.ndarray) -> np.ndarray:
    """Unsigned angle at every inner joint between its two links, shape (S-2,)."""
    u = position[:-2] - position[1:-1]
    w = position[2:] - position[1:-1]
    cross = u[:, 0] * w[:, 1] - u[:, 1] * w[:, 0]
    dot = np.sum(u * w, axis=1)
    return np.abs(np.arctan2(cross, dot))
