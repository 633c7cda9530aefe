"""
Planar face extraction by wedge traversal.

Given the vertices and undirected edges of a finished planar straight-line
graph, every face is recovered in two phases:

1. Wedges. Around each vertex the incident edges are sorted by polar angle
   and each angularly consecutive pair (wrapping) becomes a wedge
   ``(prev, pivot, next)``.
2. Grouping. Wedge ``(u, v, w)`` is continued by the unique wedge keyed
   ``(v, w)``. Following these links from any unused wedge walks one face
   boundary and returns to the starting wedge. Every wedge belongs to
   exactly one face.

The face with the largest absolute area is the unbounded exterior and is
removed from the result.
"""

import math
import time
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import structlog

from .geometry import Point, signed_area

logger = structlog.get_logger()


@dataclass
class Wedge:
    """Enter ``pivot`` from ``prev``, turn, leave towards ``next``."""

    prev: int
    pivot: int
    next: int
    used: bool = False

    @property
    def key(self) -> Tuple[int, int]:
        return (self.prev, self.pivot)


@dataclass
class Region:
    """A face boundary as a cycle of vertex ids with its points and signed area."""

    path: List[int]
    points: List[Point] = field(repr=False)
    signed_area: float

    @property
    def area(self) -> float:
        return abs(self.signed_area)


class RegionExtractor:
    """Recovers the faces of a planar graph from its rotation system."""

    def __init__(self, vertices: Sequence[Point], edges: Sequence[Tuple[int, int]]):
        """
        Args:
            vertices: Vertex coordinates, indexed by vertex id
            edges: Undirected edges as (u, v) vertex id pairs

        Raises:
            ValueError: If an edge references an unknown vertex
        """
        self.vertices = [(float(p[0]), float(p[1])) for p in vertices]
        self.edges = [(int(u), int(v)) for u, v in edges]
        n = len(self.vertices)
        for u, v in self.edges:
            if not (0 <= u < n and 0 <= v < n):
                raise ValueError(f"Edge ({u}, {v}) references a vertex outside 0..{n - 1}")

        self.wedges: List[Wedge] = []
        self.regions: List[List[int]] = []
        self.errors: List[str] = []

    def run_phase_one(self) -> List[Wedge]:
        """Build the wedge list from the angular order of edges around each vertex."""
        adjacency: Dict[int, List[int]] = {i: [] for i in range(len(self.vertices))}
        seen = set()
        for u, v in self.edges:
            if u == v:
                continue
            undirected = (min(u, v), max(u, v))
            if undirected in seen:
                continue
            seen.add(undirected)
            adjacency[u].append(v)
            adjacency[v].append(u)

        self.wedges = []
        for u, neighbors in adjacency.items():
            ux, uy = self.vertices[u]
            ordered = sorted(
                neighbors,
                key=lambda v: math.atan2(self.vertices[v][1] - uy, self.vertices[v][0] - ux),
            )
            m = len(ordered)
            for i in range(m):
                self.wedges.append(Wedge(prev=ordered[i], pivot=u, next=ordered[(i + 1) % m]))

        logger.debug("Wedges found", wedges=len(self.wedges), edges=len(seen))
        return self.wedges

    def run_phase_two(self) -> List[List[int]]:
        """Group wedges into closed face walks."""
        wedge_map = {w.key: w for w in self.wedges}
        self.regions = []

        for start in self.wedges:
            if start.used:
                continue

            region = []
            current = start
            closed = False
            while True:
                current.used = True
                region.append(current.pivot)

                next_key = (current.pivot, current.next)
                following = wedge_map.get(next_key)
                if following is None or (following.used and following is not start):
                    message = f"Broken topology: no unused wedge keyed {next_key}"
                    self.errors.append(message)
                    logger.warning("Broken topology, face dropped", key=next_key, walked=len(region))
                    break
                if following is start:
                    closed = True
                    break
                current = following

            if closed:
                self.regions.append(region)

        logger.debug("Faces grouped", faces=len(self.regions), errors=len(self.errors))
        return self.regions

    def solve(self) -> List[Region]:
        """
        Extract every bounded face.

        Returns:
            Regions in discovery order, exterior face removed. Empty when
            fewer than two faces exist.
        """
        started = time.perf_counter()
        self.run_phase_one()
        self.run_phase_two()

        regions = []
        for path in self.regions:
            points = [self.vertices[i] for i in path]
            regions.append(Region(path=path, points=points, signed_area=signed_area(points)))

        if len(regions) <= 1:
            return []

        outer = max(range(len(regions)), key=lambda i: regions[i].area)
        del regions[outer]

        logger.info(
            "Regions extracted",
            regions=len(regions),
            wedges=len(self.wedges),
            elapsed_ms=round((time.perf_counter() - started) * 1000, 3),
        )
        return regions


def extract_regions(vertices: Sequence[Point], edges: Sequence[Tuple[int, int]]) -> List[Region]:
    """Bounded faces of the planar graph given by ``vertices`` and ``edges``."""
    return RegionExtractor(vertices, edges).solve()
