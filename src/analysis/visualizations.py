"""
Compatibility and assignment visualization.

Renders:
- The species × habitat compatibility matrix as an annotated heat map, with
  pairs below the score floor hatched out and proposed assignments outlined
- A side-by-side comparison of optimizer runs (total score, assignment
  count, solutions explored)

Usage:
    from src.habitat.catalogue import load_catalogue
    from src.assignment.optimizer import run_exhaustive
    from src.analysis.visualizations import plot_compatibility_matrix

    catalogue = load_catalogue("config/sample_catalogue.yaml")
    result = run_exhaustive(catalogue.habitats, catalogue.species)
    fig = plot_compatibility_matrix(catalogue.habitats, catalogue.species, result)
    fig.savefig("compatibility.png", dpi=150, bbox_inches="tight")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import matplotlib.pyplot as plt
import matplotlib.patches as mpatches
import numpy as np

from src.assignment.compatibility import compute_compatibility_matrix

if TYPE_CHECKING:
    from matplotlib.figure import Figure
    from matplotlib.axes import Axes

    from src.assignment.optimizer import OptimizationResult
    from src.habitat.models import Habitat, Species


# ── Styling constants ────────────────────────────────────────────

HEATMAP_CMAP = "YlGn"
ASSIGNED_EDGE_COLOR = "#e6550d"
BELOW_FLOOR_COLOR = "#bdbdbd"
STRATEGY_COLORS: dict[str, str] = {
    "backtracking": "#3182bd",
    "greedy": "#31a354",
}


def _habitat_label(h: Habitat) -> str:
    return f"{h.name or h.id}\n({h.zone_type}, {h.area_sqkm:g} km²)"


def _species_label(s: Species) -> str:
    return f"{s.common_name or s.id} [{s.conservation_status}]"


def plot_compatibility_matrix(
    habitats: list[Habitat],
    species: list[Species],
    result: OptimizationResult | None = None,
    min_score: float | None = None,
    title: str = "Species × Habitat Compatibility",
    figsize: tuple[float, float] | None = None,
) -> Figure:
    """Render the compatibility matrix as a heat map.

    Args:
        habitats: Habitats (columns).
        species: Species (rows).
        result: Optional optimizer run; its assignments are outlined.
        min_score: Optional score floor; cells below it are hatched.
        title: Figure title.
        figsize: Figure size; scaled to the matrix when omitted.

    Returns:
        matplotlib Figure.
    """
    matrix = compute_compatibility_matrix(habitats, species)
    n_s, n_h = matrix.shape
    if figsize is None:
        figsize = (max(6.0, 1.8 * n_h + 3), max(4.0, 0.55 * n_s + 2))

    fig, ax = plt.subplots(figsize=figsize)
    im = ax.imshow(matrix, cmap=HEATMAP_CMAP, vmin=0.0, vmax=1.0, aspect="auto")
    fig.colorbar(im, ax=ax, fraction=0.046, pad=0.04, label="Compatibility")

    ax.set_xticks(range(n_h))
    ax.set_xticklabels([_habitat_label(h) for h in habitats], fontsize=8)
    ax.set_yticks(range(n_s))
    ax.set_yticklabels([_species_label(s) for s in species], fontsize=8)

    for s_idx in range(n_s):
        for h_idx in range(n_h):
            value = matrix[s_idx, h_idx]
            ax.text(
                h_idx,
                s_idx,
                f"{value:.2f}",
                ha="center",
                va="center",
                fontsize=8,
                color="white" if value > 0.7 else "black",
            )
            if min_score is not None and value < min_score:
                ax.add_patch(
                    mpatches.Rectangle(
                        (h_idx - 0.5, s_idx - 0.5),
                        1,
                        1,
                        fill=False,
                        hatch="//",
                        edgecolor=BELOW_FLOOR_COLOR,
                        linewidth=0,
                    )
                )

    if result is not None:
        _outline_assignments(ax, habitats, species, result)

    ax.set_title(title, fontsize=12, fontweight="bold")
    fig.tight_layout()
    return fig


def _outline_assignments(
    ax: Axes,
    habitats: list[Habitat],
    species: list[Species],
    result: OptimizationResult,
) -> None:
    h_idx = {h.id: i for i, h in reversed(list(enumerate(habitats)))}
    s_idx = {s.id: i for i, s in reversed(list(enumerate(species)))}
    for a in result.assignments:
        if a.habitat_id not in h_idx or a.species_id not in s_idx:
            continue
        ax.add_patch(
            mpatches.Rectangle(
                (h_idx[a.habitat_id] - 0.5, s_idx[a.species_id] - 0.5),
                1,
                1,
                fill=False,
                edgecolor=ASSIGNED_EDGE_COLOR,
                linewidth=2.0,
            )
        )
    handle = mpatches.Patch(
        facecolor="none",
        edgecolor=ASSIGNED_EDGE_COLOR,
        linewidth=2.0,
        label=f"Proposed ({result.strategy})",
    )
    ax.legend(handles=[handle], loc="upper left", bbox_to_anchor=(1.25, 1.0), fontsize=8)


# ── Strategy comparison ──────────────────────────────────────────


def plot_strategy_comparison(results: list[OptimizationResult]) -> Figure:
    """Render a three-panel comparison: total score, assignments, work done."""
    fig, axes = plt.subplots(1, 3, figsize=(14, 4))
    names = [r.strategy or f"run {i}" for i, r in enumerate(results)]
    colors = [STRATEGY_COLORS.get(n, "#999999") for n in names]

    panels = [
        ("Total compatibility", [r.total_compatibility for r in results], ".2f"),
        ("Assignments", [len(r.assignments) for r in results], "d"),
        ("Solutions explored", [r.diagnostics.solutions_explored for r in results], "d"),
    ]
    for ax, (label, values, fmt) in zip(axes, panels):
        bars = ax.bar(names, values, color=colors, edgecolor="white", linewidth=0.5)
        ax.set_title(label, fontsize=11, fontweight="bold")
        if label == "Solutions explored" and max(values, default=0) > 0:
            ax.set_yscale("log")
        for bar, v in zip(bars, values):
            ax.text(
                bar.get_x() + bar.get_width() / 2,
                bar.get_height(),
                format(v, fmt),
                ha="center",
                va="bottom",
                fontsize=9,
                fontweight="bold",
            )

    times = np.array([r.diagnostics.time_elapsed_ms for r in results])
    fig.suptitle(
        f"Optimizer comparison — total solve time {times.sum():.1f} ms",
        fontsize=13,
        fontweight="bold",
        y=1.03,
    )
    fig.tight_layout()
    return fig
