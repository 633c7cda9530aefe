"""
Street-network growth simulation.

A GrowthGraph owns a node registry and an arena of lines. Lines start at
seed nodes and grow one fixed step per tick. Each tick a growing line either
hits another line (both end up sharing a new node and the other line is cut
in two), leaves the allowed radius, splits into branches, twists by a small
noise-driven angle, or simply keeps growing. When no line is active the
episode is complete and the finished planar graph is handed to the
completion callback.

Lines and nodes are referenced by integer index. Indices are stable for the
lifetime of one episode; ``reset()`` replaces the storage instead of
clearing it in place.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple, Union

import structlog
from noise import pnoise3
from pydantic import BaseModel, Field, model_validator

from .alea_prng import AleaPRNG
from .geometry import (
    Point,
    angles_over_circle,
    dedup_points,
    rotate,
    segment_intersection,
    vertex_centroid,
)
from .region_extractor import Region, RegionExtractor
from .spatial_grid import UniformGrid
from ..utils.random import Seed, create_prng

logger = structlog.get_logger()


class GraphConfigurationError(ValueError):
    """Invalid boundary, seed or line configuration handed to a GrowthGraph."""


class SplitDirection(str, Enum):
    """Which side new branches are rotated towards when a line splits."""

    RANDOM = "random"
    CLOCKWISE = "clockwise"
    COUNTERCLOCKWISE = "counterclockwise"
    BOTH = "both"


class LineState(str, Enum):
    """Per-line growth states and the transitions reported by a tick."""

    ACTIVE = "active"
    SPLIT_PENDING = "split_pending"
    TWIST_PENDING = "twist_pending"
    INTERSECTED = "intersected"
    BOUNDARY_REACHED = "boundary_reached"
    CLOSED = "closed"


class GrowthOptions(BaseModel):
    """Options for one growth episode."""

    min_distance: float = Field(
        default=1.0, ge=0, description="Minimum growth distance between splits"
    )
    min_twist_distance: float = Field(
        default=1.0, ge=0, description="Minimum growth distance between twists"
    )
    min_angle: float = Field(
        default=math.pi / 2 - 1, ge=0, le=math.pi, description="Lower bound of the split angle cone (radians)"
    )
    max_angle: float = Field(
        default=math.pi / 2 + 1, ge=0, le=math.pi, description="Upper bound of the split angle cone (radians)"
    )
    probability: float = Field(
        default=0.995, ge=0, le=1, description="Per-step split trial threshold"
    )
    split_direction: SplitDirection = Field(
        default=SplitDirection.RANDOM, description="Side new branches turn towards"
    )
    noise_scale: float = Field(
        default=1.0, ge=0, description="Spatial frequency of the twist noise"
    )
    step_length: float = Field(default=0.1, gt=0, description="Tip advance per tick")
    radius: float = Field(default=10.0, gt=0, description="Distance from center that closes a line")
    center: Tuple[float, float] = Field(default=(0.0, 0.0), description="Center of the radius check")
    max_twist_angle: float = Field(
        default=0.02 * math.pi, ge=0, description="Largest rotation applied by a single twist"
    )
    grid_cell_size: Optional[float] = Field(
        default=None, gt=0, description="Spatial grid cell size; None scans every line"
    )

    @model_validator(mode="after")
    def _check_angle_cone(self):
        if self.min_angle > self.max_angle:
            raise ValueError(
                f"min_angle ({self.min_angle}) must not exceed max_angle ({self.max_angle})"
            )
        return self


class Vertex(NamedTuple):
    """A registered node."""

    id: int
    x: float
    y: float


class Segment(NamedTuple):
    """A finished edge between two node indices."""

    id: int
    from_node: int
    to_node: int


class LiveSegment(NamedTuple):
    """A line as drawn during the simulation."""

    start: Point
    end: Point
    active: bool


class GrowthResult(NamedTuple):
    """Payload of the episode-complete callback."""

    graph: "GrowthGraph"
    vertices: List[Vertex]
    edges: List[Segment]


@dataclass
class GrowingLine:
    """
    A line in the arena.

    While active, ``end`` is the moving tip and ``end_node`` is None. Closing
    binds the tip to a node and the line never changes again, except for
    being cut in two by a later intersection.
    """

    id: int
    start_node: int
    start: Point
    end: Point
    direction: Point
    end_node: Optional[int] = None
    state: LineState = LineState.ACTIVE
    closed_by: Optional[LineState] = None
    parent: Optional[int] = None
    steps_since_split: int = 0
    steps_since_twist: int = 0

    @property
    def active(self) -> bool:
        return self.state is LineState.ACTIVE


class GrowthGraph:
    """Grows a planar street graph from seed nodes inside a boundary."""

    def __init__(
        self,
        options: Optional[GrowthOptions] = None,
        prng: Optional[AleaPRNG] = None,
        seed: Optional[Seed] = None,
        boundary: Optional[Sequence[Point]] = None,
        seeds: Optional[Sequence[Point]] = None,
        lines_per_seed: int = 1,
        on_complete: Optional[Callable[[GrowthResult], None]] = None,
    ):
        """
        Initialize a growth graph.

        Args:
            options: Growth options, defaults to ``GrowthOptions()``
            prng: Random source; built from ``seed`` when omitted
            seed: Seed for a fresh AleaPRNG when ``prng`` is not given
            boundary: Optional closed boundary polygon (at least 3 vertices)
            seeds: Optional seed points; an explicitly empty list is an error
            lines_per_seed: Lines started at each seed point
            on_complete: Called once with a GrowthResult when no line is active

        Raises:
            GraphConfigurationError: For a degenerate boundary or empty seed list
        """
        self.options = options or GrowthOptions()
        self.prng = prng if prng is not None else create_prng(seed)
        self.on_complete = on_complete
        self._init_storage()

        if boundary is not None:
            self.add_boundary_from_points(boundary)
        if seeds is not None:
            if len(seeds) == 0:
                raise GraphConfigurationError("Seed list is empty")
            for x, y in seeds:
                self.start(x, y, lines_per_seed)

    def _init_storage(self):
        self.nodes: List[Point] = []
        self.lines: List[GrowingLine] = []
        self.grid = UniformGrid(self.options.grid_cell_size) if self.options.grid_cell_size else None
        self.center: Point = tuple(self.options.center)
        self.radius: float = self.options.radius
        self.steps = 0
        self.completed = False
        self._active_count = 0

    def reset(
        self,
        options: Optional[GrowthOptions] = None,
        prng: Optional[AleaPRNG] = None,
        seed: Optional[Seed] = None,
    ) -> None:
        """Start a new episode, discarding every node and line."""
        if options is not None:
            self.options = options
        if prng is not None:
            self.prng = prng
        elif seed is not None:
            self.prng = create_prng(seed)
        self._init_storage()

    # Registry

    def add_node(self, point: Point) -> int:
        node_id = len(self.nodes)
        self.nodes.append((float(point[0]), float(point[1])))
        return node_id

    def _index(self, line: GrowingLine) -> None:
        if self.grid is not None:
            self.grid.update(line.id, line.start, line.end)

    def _new_line(self, start_node: int, direction: Point, parent: Optional[int] = None) -> GrowingLine:
        length = math.hypot(direction[0], direction[1])
        if length == 0:
            raise GraphConfigurationError("Line direction must be non-zero")
        start = self.nodes[start_node]
        line = GrowingLine(
            id=len(self.lines),
            start_node=start_node,
            start=start,
            end=start,
            direction=(direction[0] / length, direction[1] / length),
            parent=parent,
        )
        self.lines.append(line)
        self._active_count += 1
        self._index(line)
        return line

    def _add_closed_line(
        self, start_node: int, end_node: int, closed_by: LineState, parent: Optional[int] = None
    ) -> GrowingLine:
        start = self.nodes[start_node]
        end = self.nodes[end_node]
        line = GrowingLine(
            id=len(self.lines),
            start_node=start_node,
            start=start,
            end=end,
            direction=(end[0] - start[0], end[1] - start[1]),
            end_node=end_node,
            state=LineState.CLOSED,
            closed_by=closed_by,
            parent=parent,
        )
        self.lines.append(line)
        self._index(line)
        return line

    def _close(self, line: GrowingLine, node: int, reason: LineState) -> None:
        line.end_node = node
        line.end = self.nodes[node]
        line.state = LineState.CLOSED
        line.closed_by = reason
        self._active_count -= 1
        self._index(line)

    def _restart(self, line: GrowingLine, node: int) -> None:
        line.start_node = node
        line.start = self.nodes[node]
        line.end = line.start
        self._index(line)

    # Seeding

    def start(
        self,
        x: float,
        y: float,
        num_lines: int = 1,
        directions: Optional[Sequence[Union[float, Point]]] = None,
    ) -> int:
        """
        Register a seed node and start growing lines from it.

        Args:
            x, y: Seed position
            num_lines: Number of lines, used when ``directions`` is None
            directions: Explicit angles (radians) or direction vectors

        Returns:
            Index of the seed node
        """
        if directions is None:
            if num_lines < 1:
                raise GraphConfigurationError(f"num_lines must be at least 1, got {num_lines}")
            directions = angles_over_circle(num_lines, self.prng)
        elif len(directions) == 0:
            raise GraphConfigurationError("Direction list is empty")

        node = self.add_node((x, y))
        for direction in directions:
            if isinstance(direction, (int, float)):
                direction = (math.cos(direction), math.sin(direction))
            self._new_line(node, direction)

        logger.debug("Seed started", node=node, x=x, y=y, lines=len(directions))
        return node

    def add_boundary(self, radius: Optional[float] = None, sides: int = 36) -> List[int]:
        """
        Register a closed regular polygon around ``self.center``.

        Vertices lie on the circle of ``radius`` (defaults to the graph
        radius), walking clockwise from angle 0.
        """
        if sides < 3:
            raise GraphConfigurationError(f"Boundary needs at least 3 sides, got {sides}")
        r = radius if radius is not None else self.radius
        cx, cy = self.center
        points = [
            (cx + r * math.cos(-2 * math.pi * i / sides), cy + r * math.sin(-2 * math.pi * i / sides))
            for i in range(sides)
        ]
        self.radius = max(self.radius, r)
        return self._add_boundary_polygon(points)

    def add_boundary_from_points(self, points: Sequence[Point]) -> List[int]:
        """
        Register an arbitrary closed boundary polygon.

        The radius check is tightened to the circle around the vertex
        centroid that encloses the polygon, so lines meet the polygon first.

        Raises:
            GraphConfigurationError: If fewer than 3 distinct vertices remain
        """
        pts = dedup_points([(float(p[0]), float(p[1])) for p in points])
        if len(pts) < 3:
            raise GraphConfigurationError(
                f"Boundary needs at least 3 distinct vertices, got {len(pts)}"
            )
        center = vertex_centroid(pts)
        self.center = center
        self.radius = max(math.hypot(p[0] - center[0], p[1] - center[1]) for p in pts) * (1 + 1e-9)
        return self._add_boundary_polygon(pts)

    def _add_boundary_polygon(self, points: Sequence[Point]) -> List[int]:
        node_ids = [self.add_node(p) for p in points]
        for i, node in enumerate(node_ids):
            self._add_closed_line(node, node_ids[(i + 1) % len(node_ids)], LineState.CLOSED)
        logger.debug("Boundary added", vertices=len(node_ids), radius=self.radius)
        return node_ids

    # Simulation

    def update(self, n: int = 1) -> None:
        """Advance the simulation by ``n`` ticks."""
        for _ in range(n):
            # Lines created during this tick start growing on the next one
            count = len(self.lines)
            for i in range(count):
                self._grow(self.lines[i])
            self.steps += 1

            if not self.completed and self.lines and self._active_count == 0:
                self._complete()

    def run(self, max_steps: Optional[int] = None) -> bool:
        """
        Update until the episode completes or ``max_steps`` ticks have run.

        Returns:
            True if the episode completed
        """
        if max_steps is None:
            from ..config import settings

            max_steps = settings.max_steps

        for _ in range(max_steps):
            if self.completed:
                break
            self.update()

        if not self.completed:
            logger.warning("Growth stopped before completion", steps=self.steps, active=self._active_count)
        return self.completed

    def _complete(self) -> None:
        self.completed = True
        vertices = self.get_vertices()
        edges = self.get_edges()
        logger.info(
            "Growth episode complete", steps=self.steps, nodes=len(vertices), edges=len(edges)
        )
        if self.on_complete is not None:
            self.on_complete(GrowthResult(self, vertices, edges))

    def _grow(self, line: GrowingLine) -> LineState:
        """Run one tick for a single line and report the transition taken."""
        if not line.active:
            return LineState.CLOSED

        options = self.options
        step = options.step_length

        line.steps_since_split += 1
        line.steps_since_twist += 1
        line.end = (line.end[0] + line.direction[0] * step, line.end[1] + line.direction[1] * step)
        self._index(line)

        hit = self._nearest_intersection(line)
        if hit is not None:
            other_id, point = hit
            node = self.add_node(point)
            self._close(line, node, LineState.INTERSECTED)

            # Cut the other line at the shared node: the first piece is closed,
            # the remainder keeps its end (and keeps growing if active)
            other = self.lines[other_id]
            self._add_closed_line(other.start_node, node, LineState.INTERSECTED, parent=other.id)
            other.start_node = node
            other.start = self.nodes[node]
            self._index(other)
            return LineState.INTERSECTED

        if math.hypot(line.end[0] - self.center[0], line.end[1] - self.center[1]) > self.radius:
            node = self.add_node(line.end)
            self._close(line, node, LineState.BOUNDARY_REACHED)
            return LineState.BOUNDARY_REACHED

        if (
            line.steps_since_split * step > options.min_distance
            and self.prng.random() < options.probability
        ):
            self._split(line)
            return LineState.SPLIT_PENDING
        elif line.steps_since_twist * step > options.min_twist_distance:
            self._twist(line)
            return LineState.TWIST_PENDING

        return LineState.ACTIVE

    def _nearest_intersection(self, line: GrowingLine) -> Optional[Tuple[int, Point]]:
        if self.grid is not None:
            candidates = sorted(self.grid.query(line.start, line.end))
        else:
            candidates = range(len(self.lines))

        best = None
        best_distance = math.inf
        for other_id in candidates:
            if other_id == line.id:
                continue
            other = self.lines[other_id]
            hit = segment_intersection(
                line.start, line.end, other.start, other.end, include_endpoints=False
            )
            if hit is not None and hit.distance < best_distance:
                best = (other_id, hit.point)
                best_distance = hit.distance
        return best

    def _split(self, line: GrowingLine) -> None:
        node = self.add_node(line.end)
        old = self._add_closed_line(line.start_node, node, LineState.SPLIT_PENDING, parent=line.id)
        self._restart(line, node)
        line.steps_since_split = 0

        policy = self.options.split_direction
        if policy is SplitDirection.RANDOM:
            s = self.prng.sign()
        elif policy is SplitDirection.CLOCKWISE:
            s = -1
        else:
            s = 1
        angle = self.prng.random_in_range(self.options.min_angle, self.options.max_angle)

        self._new_line(node, rotate(line.direction, angle * s), parent=old.id)
        if policy is SplitDirection.BOTH or (
            policy is SplitDirection.RANDOM and self.prng.random() > 0.5
        ):
            self._new_line(node, rotate(line.direction, angle * s + math.pi), parent=old.id)

    def _twist(self, line: GrowingLine) -> None:
        node = self.add_node(line.end)
        self._add_closed_line(line.start_node, node, LineState.TWIST_PENDING, parent=line.id)
        self._restart(line, node)
        line.steps_since_twist = 0

        s = self.options.noise_scale
        n = pnoise3(line.end[0] * s, line.end[1] * s, 0.0)
        angle = math.atan2(line.direction[1], line.direction[0])
        angle += (n + 1) / 2 * self.options.max_twist_angle
        line.direction = (math.cos(angle), math.sin(angle))

    # Output

    @property
    def active_lines(self) -> List[GrowingLine]:
        return [line for line in self.lines if line.active]

    def are_active_lines(self) -> bool:
        return self._active_count > 0

    def draw(self) -> List[LiveSegment]:
        """Current lines for incremental display; empty once growth has stopped."""
        if not self.are_active_lines():
            return []
        return [LiveSegment(line.start, line.end, line.active) for line in self.lines]

    def get_vertices(self) -> List[Vertex]:
        return [Vertex(i, x, y) for i, (x, y) in enumerate(self.nodes)]

    def get_edges(self) -> List[Segment]:
        return [
            Segment(line.id, line.start_node, line.end_node)
            for line in self.lines
            if not line.active
        ]

    def extract_faces(self) -> List[Region]:
        """
        Bounded faces of the current graph.

        Faces whose walk revisits a vertex (a dangling street inside a
        block) are dropped.
        """
        edges = [(e.from_node, e.to_node) for e in self.get_edges()]
        extractor = RegionExtractor(self.nodes, edges)
        regions = extractor.solve()

        faces = [r for r in regions if len(r.path) >= 3 and len(set(r.path)) == len(r.path)]
        if len(faces) != len(regions):
            logger.debug("Dropped degenerate faces", dropped=len(regions) - len(faces))
        return faces
