from dataclasses import dataclass

import numpy as np
from pygame import Surface
from pygame.freetype import Font


@dataclass
class RenderEnvironment:
    """Screen surface plus the camera that maps world coordinates onto it."""

    screen: Surface

    left: float
    top: float
    scale: float
    """World units per screen unit (lower value = higher zoom)."""

    mouse: tuple[int, int]
    mouse_rel: tuple[int, int]

    font_ui: Font

    def w2s(self, xy: tuple[float, float]) -> tuple[float, float]:
        return (xy[0] - self.left) / self.scale, (xy[1] - self.top) / self.scale

    def w2s_many(self, points: np.ndarray) -> np.ndarray:
        """`w2s` over an (N, 2) array of world points."""
        return (points - np.array([self.left, self.top])) / self.scale

    def s2w(self, xy: tuple[float, float]) -> tuple[float, float]:
        return self.left + xy[0] * self.scale, self.top + xy[1] * self.scale

    def rescale(self, new_scale: float, center: tuple[float, float]):
        """Zooms while keeping the world point under screen point `center` in place."""
        center_world = self.s2w(center)
        self.scale = new_scale
        self.left = center_world[0] - center[0] * new_scale
        self.top = center_world[1] - center[1] * new_scale

    def recenter(self, center: tuple[float, float]):
        """Moves the camera so world point `center` sits in the middle of the screen."""
        self.left = center[0] - self.screen.get_width() / 2 * self.scale
        self.top = center[1] - self.screen.get_height() / 2 * self.scale

    def fit(self, half_extents: tuple[float, float], padding: float = 1.1):
        """Zooms so a rectangle centred on the origin fills the screen."""
        self.scale = padding * max(
            2 * half_extents[0] / self.screen.get_width(),
            2 * half_extents[1] / self.screen.get_height(),
        )
        self.recenter((0.0, 0.0))
