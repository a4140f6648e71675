# pyright: strict
import numpy as np
from matplotlib.figure import Figure

STATISTICS = ("Dispersion", "Polarization", "Milling")


def plot_factor_comparison(
    statistics: np.ndarray,
    cohesion_vals: np.ndarray,
    alignment_vals: np.ndarray,
) -> Figure:
    """One heatmap per statistic of `run_factor_comparison`, cohesion down and alignment across."""
    fig = Figure(figsize=(4 * len(STATISTICS), 3.5), layout="constrained")
    axes = fig.subplots(1, len(STATISTICS))  # type: ignore
    for k, (ax, name) in enumerate(zip(axes, STATISTICS)):
        image = ax.imshow(statistics[:, :, k], origin="lower", aspect="auto")
        ax.set_title(name)
        ax.set_xlabel("alignment factor")
        ax.set_ylabel("cohesion factor")
        ax.set_xticks(range(len(alignment_vals)), [f"{a:g}" for a in alignment_vals])
        ax.set_yticks(range(len(cohesion_vals)), [f"{c:g}" for c in cohesion_vals])
        fig.colorbar(image, ax=ax)
    return fig


def plot_trails(positions: np.ndarray, bounds: tuple[float, float]) -> Figure:
    """Draws the path of every agent.

    Args:
        positions: Agent positions over time, shape (frames, N, 2).
        bounds: Half extents of the world, drawn as a rectangle.
    """
    fig = Figure(figsize=(4, 4 * bounds[1] / bounds[0]), layout="constrained")
    ax = fig.add_subplot()
    bx, by = bounds
    ax.plot([-bx, bx, bx, -bx, -bx], [-by, -by, by, by, -by], color="grey", linewidth=1)
    for i in range(positions.shape[1]):
        ax.plot(positions[:, i, 0], positions[:, i, 1], linewidth=1)
    ax.set_aspect("equal")
    return fig
