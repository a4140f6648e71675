# pyright: strict
import math
from dataclasses import dataclass

import numpy as np
import pygame

from proa.boids import normalize_or_zero
from proa.render_environment import RenderEnvironment
from proa.simulation_framework import SimulationRenderer, generate_colorspace
from proa.simulation_impl_fish import SimulationImplFish

PECTORAL_FINS: tuple[tuple[int, float], ...] = ((3, 0.8), (7, 0.95))
"""Joint index and scale of every pair of pectoral fins."""
FIN_RADII: tuple[float, float] = (18.0, 8.0)
FIN_OFFSET: float = 20.0
"""Distance of a pectoral fin from the spine."""
FIN_SWEEP: float = 0.85
"""How far pectoral fins are swept back, in radians."""
CAUDAL_RADII: tuple[float, float] = (6.0, 24.0)


def joint_headings(position: np.ndarray) -> np.ndarray:
    """Unit direction from every joint towards the joint ahead of it, shape (S, 2).

    The head joint borrows the heading of the joint behind it. Degenerate headings face +X.
    """
    heading = np.zeros_like(position)
    heading[1:] = position[:-1] - position[1:]
    if position.shape[0] > 1:
        heading[0] = heading[1]
    heading = normalize_or_zero(heading)
    heading[np.all(heading == 0.0, axis=1)] = (1.0, 0.0)
    return heading


def body_outline(position: np.ndarray, size: np.ndarray) -> np.ndarray:
    """Polygon around a spine, each joint pushed out by its size on both sides, shape (2S, 2)."""
    heading = joint_headings(position)
    normal = np.stack([-heading[:, 1], heading[:, 0]], axis=1)
    left = position + normal * size[:, np.newaxis]
    right = position - normal * size[:, np.newaxis]
    return np.concatenate([left, right[::-1]])


def ellipse_polygon(
    center: np.ndarray,
    angle: float,
    radii: tuple[float, float],
    n: int = 16,
) -> np.ndarray:
    t = np.linspace(0.0, 2 * np.pi, n, endpoint=False)
    local = np.stack([radii[0] * np.cos(t), radii[1] * np.sin(t)], axis=1)
    c, s = math.cos(angle), math.sin(angle)
    rotation = np.array([[c, -s], [s, c]])
    return local @ rotation.T + center


@dataclass
class SimulationRendererFish(SimulationRenderer[SimulationImplFish]):
    fin_color: tuple[int, int, int] = (225, 230, 220)
    bounds_color: tuple[int, int, int] = (40, 90, 40)
    show_spine: bool = False
    """Draw every joint on top of the body."""

    def draw(self, e: RenderEnvironment, state: SimulationImplFish) -> None:
        bx, by = state.flock.params.bounds
        corners = np.array([[-bx, -by], [bx, -by], [bx, by], [-bx, by]])
        pygame.draw.polygon(e.screen, self.bounds_color, e.w2s_many(corners).tolist(), 1)

        chains = state.animator.chains
        for chain, color in zip(chains, generate_colorspace(len(chains))):
            heading = joint_headings(chain.position)
            for index, scale in PECTORAL_FINS:
                if index >= chain.position.shape[0]:
                    continue
                for side in (1.0, -1.0):
                    normal = side * np.array([-heading[index, 1], heading[index, 0]])
                    fin = ellipse_polygon(
                        chain.position[index] + normal * FIN_OFFSET,
                        math.atan2(normal[1], normal[0]) - FIN_SWEEP * side,
                        (FIN_RADII[0] * scale, FIN_RADII[1] * scale),
                    )
                    pygame.draw.polygon(e.screen, self.fin_color, e.w2s_many(fin).tolist())

            tail = heading[-1]
            caudal = ellipse_polygon(
                chain.position[-1], math.atan2(tail[1], tail[0]) + np.pi / 2, CAUDAL_RADII
            )
            pygame.draw.polygon(e.screen, self.fin_color, e.w2s_many(caudal).tolist())

            outline = body_outline(chain.position, chain.size)
            pygame.draw.polygon(
                e.screen, tuple(int(c) for c in color), e.w2s_many(outline).tolist()
            )

            if self.show_spine:
                for joint in e.w2s_many(chain.position):
                    pygame.draw.circle(e.screen, (255, 255, 255), joint.tolist(), 3)
