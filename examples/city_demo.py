#!/usr/bin/env python3
"""
Demo script stepping a street graph by hand and then running the full city
pipeline.
"""

import matplotlib.pyplot as plt

from py_citygen import CityGenerator, CityOptions, GrowthGraph, GrowthOptions
from py_citygen.core import SplitDirection
from py_citygen.visualize import plot_layout


def grow_streets(seed: str):
    """Grow a bare street graph and collect snapshots while it grows."""
    options = GrowthOptions(
        min_distance=1.0,
        probability=0.2,
        split_direction=SplitDirection.RANDOM,
        grid_cell_size=1.0,
    )
    graph = GrowthGraph(options, seed=seed)
    graph.add_boundary()
    graph.start(0, 0, 4)

    snapshots = []
    while not graph.completed and graph.steps < 5000:
        graph.update(25)
        segments = graph.draw()
        if segments:
            snapshots.append(segments)

    print(f"Streets grown in {graph.steps} steps, {len(graph.get_edges())} edges")
    faces = graph.extract_faces()
    print(f"Found {len(faces)} blocks")
    return graph, snapshots


def main():
    seed = "city_demo"
    graph, snapshots = grow_streets(seed)

    fig, axes = plt.subplots(1, 2, figsize=(16, 8))

    # Snapshot halfway through growth
    if snapshots:
        frame = snapshots[len(snapshots) // 2]
        for segment in frame:
            color = "#ef4444" if segment.active else "#222222"
            axes[0].plot(
                [segment.start[0], segment.end[0]],
                [segment.start[1], segment.end[1]],
                color=color,
                linewidth=0.8,
            )
        axes[0].set_aspect("equal")
        axes[0].set_title("Growth in progress")

    layout = CityGenerator(CityOptions(), seed=seed).run()
    plot_layout(layout, ax=axes[1])

    plt.tight_layout()
    plt.savefig("city_demo.png", dpi=150)
    print("Saved city_demo.png")


if __name__ == "__main__":
    main()
