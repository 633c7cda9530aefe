"""
City generation pipeline.

Streets grow inside a circular boundary from a few random seeds. When the
street graph completes, its bounded faces become blocks, each block is
inset into a lot, and every usable lot gets its own smaller growth graph
(straight streets, near-right-angle splits) whose faces become parcels.

Every sub-graph owns its node registry and a PRNG seeded from the city seed
and the block index, so sub-graphs never share state and the whole city is
reproducible from one seed.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import structlog
from pydantic import BaseModel, Field, model_validator

from .geometry import Point, minimum_bounding_box, random_point_in_polygon
from .growth_graph import GrowthGraph, GrowthOptions, GrowthResult, Segment, Vertex
from .polygon_inset import DEFAULT_MITER_LIMIT, offset_polygon
from .region_extractor import Region
from ..utils.random import Seed, create_prng, derive_seed

logger = structlog.get_logger()


def _default_street_options() -> GrowthOptions:
    return GrowthOptions(
        min_distance=1.68,
        min_twist_distance=2.0,
        min_angle=1.42,
        max_angle=1.66,
        probability=0.13,
        noise_scale=1.0,
        grid_cell_size=1.0,
    )


class CityOptions(BaseModel):
    """City pipeline configuration."""

    seeds: int = Field(default=3, ge=1, le=50, description="Number of street seed points")
    lines_per_seed: int = Field(default=5, ge=1, le=20, description="Streets started per seed")
    seed_spread: float = Field(
        default=5.0, ge=0, description="Seeds are placed uniformly in [-spread, spread]^2"
    )
    radius: float = Field(default=10.0, gt=0, description="City boundary radius")
    boundary_sides: int = Field(default=36, ge=3, description="Sides of the boundary polygon")
    streets: GrowthOptions = Field(
        default_factory=_default_street_options, description="Street growth options"
    )

    block_offset: float = Field(default=0.2, ge=0, description="Street margin removed from blocks")
    miter_limit: float = Field(default=DEFAULT_MITER_LIMIT, gt=0, description="Inset miter limit")
    min_lot_size: float = Field(
        default=0.0, ge=0, description="Lots whose bounding box is thinner than this are dropped"
    )

    subdivide: bool = Field(default=True, description="Grow parcel streets inside each lot")
    lot_lines: Tuple[int, int] = Field(default=(2, 5), description="Line count range per lot seed")
    lot_split_angle: Tuple[float, float] = Field(
        default=(1.45, 1.55), description="Split angle cone inside lots (radians)"
    )
    lot_probability: float = Field(default=0.1, ge=0, le=1, description="Split probability inside lots")
    lot_distance_factor: float = Field(
        default=0.2, gt=0, description="Lot split distance as a fraction of lot size"
    )
    parcel_offset: float = Field(default=0.0, ge=0, description="Inset applied to parcels")

    @model_validator(mode="after")
    def _check_ranges(self):
        if self.lot_lines[0] < 1 or self.lot_lines[0] > self.lot_lines[1]:
            raise ValueError(f"Invalid lot_lines range {self.lot_lines}")
        if self.lot_split_angle[0] > self.lot_split_angle[1]:
            raise ValueError(f"Invalid lot_split_angle range {self.lot_split_angle}")
        # Seeds must land inside the boundary polygon
        inner_radius = self.radius * math.cos(math.pi / self.boundary_sides)
        if self.seed_spread * math.sqrt(2) >= inner_radius:
            raise ValueError(
                f"seed_spread {self.seed_spread} places seeds outside the boundary of radius {self.radius}"
            )
        return self


@dataclass
class CityLayout:
    """Finished (or partial) city: street graph, blocks, lots and parcels."""

    seed: str
    vertices: List[Vertex] = field(default_factory=list)
    edges: List[Segment] = field(default_factory=list)
    blocks: List[Region] = field(default_factory=list)
    lots: List[Optional[List[Point]]] = field(default_factory=list)
    parcels: List[List[Point]] = field(default_factory=list)
    complete: bool = False

    @property
    def built_lots(self) -> List[List[Point]]:
        return [lot for lot in self.lots if lot is not None]


class CityGenerator:
    """Drives the street graph and the per-lot sub-graphs tick by tick."""

    def __init__(self, options: Optional[CityOptions] = None, seed: Optional[Seed] = None):
        """
        Args:
            options: Pipeline options, defaults to ``CityOptions()``
            seed: City seed, defaults to ``settings.default_seed``
        """
        if seed is None:
            from ..config import settings

            seed = settings.default_seed
        self.options = options or CityOptions()
        self.seed = str(seed)
        self.reset()

    def reset(self, seed: Optional[Seed] = None) -> None:
        """Discard everything and seed a new street graph."""
        if seed is not None:
            self.seed = str(seed)

        self.prng = create_prng(self.seed)
        self.block_graphs: List[GrowthGraph] = []
        self.blocks: List[Region] = []
        self.lots: List[Optional[List[Point]]] = []
        self.parcels: List[List[Point]] = []
        self.steps = 0

        street_options = self.options.streets.model_copy(update={"radius": self.options.radius})
        self.graph = GrowthGraph(street_options, prng=self.prng, on_complete=self._on_streets_complete)
        self.graph.add_boundary(self.options.radius, self.options.boundary_sides)

        r = self.options.seed_spread
        for _ in range(self.options.seeds):
            x = self.prng.random_in_range(-r, r)
            y = self.prng.random_in_range(-r, r)
            self.graph.start(x, y, self.options.lines_per_seed)

        logger.info("City reset", seed=self.seed, seeds=self.options.seeds)

    @property
    def is_complete(self) -> bool:
        return self.graph.completed and not self.block_graphs

    def step(self, n: int = 1) -> None:
        """Advance the street graph and every pending lot graph by ``n`` ticks."""
        for _ in range(n):
            if not self.graph.completed:
                self.graph.update()
            for block_graph in list(self.block_graphs):
                block_graph.update()
            self.block_graphs = [g for g in self.block_graphs if not g.completed]
            self.steps += 1

    def run(self, max_steps: Optional[int] = None) -> CityLayout:
        """
        Step until everything completes or ``max_steps`` ticks have run.

        Returns:
            The layout, flagged incomplete if the step limit was hit
        """
        if max_steps is None:
            from ..config import settings

            max_steps = settings.max_steps

        while not self.is_complete and self.steps < max_steps:
            self.step()

        if not self.is_complete:
            logger.warning(
                "City generation hit step limit",
                steps=self.steps,
                pending_blocks=len(self.block_graphs),
            )
        return self.layout()

    def layout(self) -> CityLayout:
        return CityLayout(
            seed=self.seed,
            vertices=self.graph.get_vertices(),
            edges=self.graph.get_edges(),
            blocks=list(self.blocks),
            lots=list(self.lots),
            parcels=list(self.parcels),
            complete=self.is_complete,
        )

    def _on_streets_complete(self, result: GrowthResult) -> None:
        faces = result.graph.extract_faces()
        vertex_pool = result.graph.nodes

        for index, face in enumerate(faces):
            lot = offset_polygon(face.path, vertex_pool, self.options.block_offset, self.options.miter_limit)
            size = 0.0
            if lot is not None:
                bb = minimum_bounding_box(lot)
                size = min(bb.width, bb.height)
                if size <= self.options.min_lot_size:
                    lot = None

            self.blocks.append(face)
            self.lots.append(lot)

            if lot is not None and self.options.subdivide:
                self._spawn_block_graph(index, lot, size)

        logger.info(
            "Blocks extracted",
            blocks=len(self.blocks),
            lots=sum(1 for lot in self.lots if lot is not None),
            block_graphs=len(self.block_graphs),
        )

    def _spawn_block_graph(self, index: int, lot: List[Point], size: float) -> None:
        prng = create_prng(derive_seed(self.seed, "block", index))
        streets = self.options.streets
        low, high = self.options.lot_split_angle
        options = GrowthOptions(
            min_distance=max(0.1, size * self.options.lot_distance_factor),
            min_twist_distance=1000.0,
            min_angle=low,
            max_angle=high,
            probability=self.options.lot_probability,
            noise_scale=0.0,
            step_length=streets.step_length,
            grid_cell_size=streets.grid_cell_size,
        )

        graph = GrowthGraph(options, prng=prng, on_complete=self._on_block_complete)
        graph.add_boundary_from_points(lot)
        try:
            x, y = random_point_in_polygon(lot, prng)
        except ValueError:
            logger.debug("Lot cannot be sampled, skipping subdivision", block=index)
            return

        graph.start(x, y, prng.int_random_in_range(*self.options.lot_lines))
        self.block_graphs.append(graph)

    def _on_block_complete(self, result: GrowthResult) -> None:
        faces = result.graph.extract_faces()
        added = 0
        for face in faces:
            if self.options.parcel_offset > 0:
                parcel = offset_polygon(face.path, result.graph.nodes, self.options.parcel_offset)
                if parcel is None:
                    continue
            else:
                parcel = list(face.points)
            self.parcels.append(parcel)
            added += 1
        logger.debug("Lot subdivided", parcels=added)
