"""Matplotlib rendering of a generated city."""

from pathlib import Path
from typing import Union

import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection
from matplotlib.patches import Polygon as PolygonPatch

from .core.city import CityLayout

RAINBOW = [
    "#ef4444",
    "#f97316",
    "#f59e0b",
    "#84cc16",
    "#10b981",
    "#06b6d4",
    "#3b82f6",
    "#8b5cf6",
    "#d946ef",
    "#f43f5e",
]


def plot_layout(
    layout: CityLayout,
    ax=None,
    show_streets: bool = True,
    show_lots: bool = True,
    show_parcels: bool = True,
):
    """
    Draw streets, lots and parcels onto a matplotlib axis.

    Args:
        layout: Generated city
        ax: Target axis; a new 10x10 inch figure is created when omitted

    Returns:
        The axis drawn on
    """
    if ax is None:
        _, ax = plt.subplots(figsize=(10, 10))

    if show_parcels:
        for i, parcel in enumerate(layout.parcels):
            ax.add_patch(
                PolygonPatch(parcel, closed=True, facecolor=RAINBOW[i % len(RAINBOW)], alpha=0.6, linewidth=0.3)
            )

    if show_lots:
        for lot in layout.built_lots:
            ax.add_patch(PolygonPatch(lot, closed=True, fill=False, edgecolor="#d946ef", linewidth=0.6))

    if show_streets and layout.edges:
        coords = {v.id: (v.x, v.y) for v in layout.vertices}
        segments = [[coords[e.from_node], coords[e.to_node]] for e in layout.edges]
        ax.add_collection(LineCollection(segments, colors="#222222", linewidths=0.8))

    ax.autoscale_view()
    ax.set_aspect("equal")
    ax.axis("off")
    ax.set_title(f"City {layout.seed} - {len(layout.blocks)} blocks, {len(layout.parcels)} parcels")
    return ax


def save_layout_png(layout: CityLayout, path: Union[str, Path], dpi: int = 150) -> Path:
    """Render a layout to a PNG file and return its path."""
    fig, ax = plt.subplots(figsize=(10, 10))
    plot_layout(layout, ax=ax)
    path = Path(path)
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    return path
