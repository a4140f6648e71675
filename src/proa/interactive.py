import logging
import sys
from contextlib import contextmanager
from fractions import Fraction

import pygame
import pygame.freetype

from proa import constants
from proa.render_environment import RenderEnvironment
from proa.render_fish import SimulationRendererFish
from proa.simulation_framework import SimulationImpl, SimulationRenderer
from proa.simulation_impl_fish import generate_fish_state

logger = logging.getLogger(__name__)

WATER_COLOR = (0, 25, 0)
MAX_FRAME_TIME = 0.1
"""Frames slower than this, in seconds, are dropped instead of simulated."""


@contextmanager
def _with_pygame():
    pygame.init()
    try:
        yield
    finally:
        pygame.quit()


def _draw_hud(e: RenderEnvironment, lines: list[str]):
    """Stacks lines of text in the bottom left corner, last line lowest."""
    size = 20
    line_height = 24
    w_pad = line_height - size
    fgcolor = (255, 255, 255)
    bgcolor = (0, 0, 0, 180)

    h_last = e.screen.get_height()
    for text in reversed(lines):
        s_text, _ = e.font_ui.render(text, fgcolor=fgcolor, size=size)
        s_bg = pygame.Surface((s_text.get_width() + w_pad, line_height))
        s_bg.set_alpha(bgcolor[3])
        s_bg.fill(bgcolor[:3])
        e.screen.blit(s_bg, (0, h_last - line_height))
        e.screen.blit(
            s_text,
            (w_pad / 2, h_last - (line_height + s_text.get_height()) / 2),
        )
        h_last -= line_height


def run_interactive_simulation[T: SimulationImpl](
    impl: T,
    renderer: SimulationRenderer[T],
    *,
    fit: tuple[float, float] = constants.bounds,
    size: tuple[int, int] = (540, 960),
) -> None:
    """Opens a window and plays the simulation in real time.

    `impl` is stepped in place on the calling thread whenever the display clock passes its clock.
    The drawn state is interpolated between the last two simulated frames.

    Keys: space pauses, `,` and `.` halve and double the playback speed, `/` resets it, escape quits.
    The mouse wheel zooms, the middle button resets the zoom and dragging with the left button pans.
    """
    state_prev = impl.snapshot()
    state_next = state_prev

    with _with_pygame():
        screen = pygame.display.set_mode(size, pygame.DOUBLEBUF)
        pygame.display.set_caption("proa")
        clock = pygame.time.Clock()
        running = True

        t = state_prev.time
        dt = None
        timescale = Fraction(1)
        paused = False

        mouse = pygame.mouse.get_pos()
        e = RenderEnvironment(
            screen=screen,
            left=0.0,
            top=0.0,
            scale=1.0,
            mouse=mouse,
            mouse_rel=(0, 0),
            font_ui=pygame.freetype.Font(None, 20),
        )
        e.fit(fit)
        home_scale = e.scale

        while running:
            for event in pygame.event.get():
                match event.type:
                    case pygame.QUIT:
                        running = False
                    case pygame.MOUSEWHEEL:
                        e.rescale(
                            e.scale
                            * 2 ** (event.precise_y * (1 if event.flipped else -1)),
                            e.mouse,
                        )
                    case pygame.MOUSEBUTTONDOWN:
                        match event.button:
                            case pygame.BUTTON_MIDDLE:
                                e.rescale(home_scale, e.mouse)
                    case pygame.KEYDOWN:
                        match event.key:
                            case pygame.K_ESCAPE:
                                running = False
                            case pygame.K_SPACE:
                                paused = not paused
                            case pygame.K_COMMA:
                                timescale /= 2
                            case pygame.K_PERIOD:
                                timescale *= 2
                            case pygame.K_SLASH:
                                timescale = Fraction(1)

            mouse = pygame.mouse.get_pos()
            e.mouse_rel = (mouse[0] - e.mouse[0], mouse[1] - e.mouse[1])
            e.mouse = mouse

            if pygame.mouse.get_pressed()[0]:
                e.left -= e.mouse_rel[0] * e.scale
                e.top -= e.mouse_rel[1] * e.scale

            if dt is not None and not paused:
                if dt > MAX_FRAME_TIME:
                    # Catching up would only make the next frame slower too
                    logger.debug("dropping a %.3fs frame", dt)
                    dt = 0
                t += float(dt * timescale)
            while state_next.time < t:
                state_prev = state_next
                impl.step()
                state_next = impl.snapshot()
            t_prev, t_next = state_prev.time, state_next.time
            t_lerp = (t - t_prev) / (t_next - t_prev) if t_prev != t_next else 0
            state_lerp = state_prev.interpolate(state_next, t_lerp)

            screen.fill(WATER_COLOR)
            renderer.draw(e, state_lerp)
            _draw_hud(
                e,
                [
                    f"{timescale}x{' (paused)' if paused else ''}",
                    f"{t:0.2f}s",
                ],
            )

            pygame.display.flip()
            dt = clock.tick(60) / 1000


def main() -> None:
    logging.basicConfig(
        level=logging.INFO, format="[%(levelname)s] %(message)s", stream=sys.stdout
    )
    state = generate_fish_state()
    logger.info(
        "swimming %d fish with %d joints each",
        state.flock.params.count,
        state.animator.params.segments,
    )
    run_interactive_simulation(state, SimulationRendererFish(), fit=state.flock.params.bounds)


if __name__ == "__main__":
    main()
