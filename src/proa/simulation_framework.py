# pyright: strict
"""A high level description of the simulation logic.

Defined separately to make things more readable.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Protocol, Self

import numpy as np

if TYPE_CHECKING:
    from proa.render_environment import RenderEnvironment


class SimulationImpl(Protocol):
    """Implements the simulation logic. Driven by an external simulation loop.

    A step covers one fixed frame.
    `.snapshot()` and `.interpolate()` get called every displayed frame, so they should avoid copying.
    """

    @property
    def time(self) -> float:
        """The absolute time of the simulation at this instant, in seconds."""
        ...

    def step(self) -> None:
        """Advances the simulation by one frame."""
        ...

    def snapshot(self) -> Self:
        """Returns a copy of the current simulation state."""
        ...

    def interpolate(self, other: Self, t: float) -> Self:
        """Returns a linear interpolation between two states.

        Args:
            other: An object acquired by piping the current object through an arbitrary chain of `.snapshot()` and `.step()` calls.
            t: A number between 0 and 1. 0 means return an object equivalent to `self`, and 1 means return an object equivalent to `other`.

        Returns:
            An object between `self` and `other` according to `t`.
            It may share arrays with `self` or `other`,
            so it isn't safe to call `.step()` on it without first creating a `.snapshot()`.
        """
        ...


def generate_colorspace(n: int) -> np.ndarray:
    """Returns `n` evenly spaced colours around the hue wheel, shape (n, 3), as 0-255 ints."""
    hue = np.linspace(0.0, 6.0, n, endpoint=False)
    sector = hue.astype(np.int64)
    rising = ((hue - sector) * 255).astype(np.int64)
    falling = 255 - rising
    full = np.full(n, 255)
    empty = np.zeros(n, dtype=np.int64)
    # Green -> cyan -> blue -> magenta -> red -> yellow
    red = np.choose(sector, [empty, empty, rising, full, full, falling])
    green = np.choose(sector, [full, falling, empty, empty, rising, full])
    blue = np.choose(sector, [rising, full, full, falling, empty, empty])
    return np.stack([red, green, blue], axis=1)


class SimulationRenderer[T: SimulationImpl](ABC):
    """Renders the simulation inside a pygame window."""

    @abstractmethod
    def draw(self, e: "RenderEnvironment", state: T) -> None: ...


class SimulationRecorder[T: SimulationImpl](ABC):
    """Records the statistics of a simulation."""

    @abstractmethod
    def record(self, state: T) -> None: ...
