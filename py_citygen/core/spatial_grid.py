"""Uniform spatial hash mapping segment bounding boxes to grid buckets."""

import math
from collections import defaultdict
from typing import Dict, Set, Tuple

from .geometry import Point

CellRange = Tuple[int, int, int, int]


class UniformGrid:
    """
    Buckets segment ids by the grid cells their bounding box overlaps.

    Used by the growth graph to keep per-step intersection candidates
    bounded instead of scanning every segment.
    """

    def __init__(self, cell_size: float):
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self.cell_size = cell_size
        self._buckets: Dict[Tuple[int, int], Set[int]] = defaultdict(set)
        self._ranges: Dict[int, CellRange] = {}

    def __len__(self) -> int:
        return len(self._ranges)

    def __contains__(self, item_id: int) -> bool:
        return item_id in self._ranges

    def _cell_range(self, start: Point, end: Point) -> CellRange:
        cs = self.cell_size
        return (
            math.floor(min(start[0], end[0]) / cs),
            math.floor(max(start[0], end[0]) / cs),
            math.floor(min(start[1], end[1]) / cs),
            math.floor(max(start[1], end[1]) / cs),
        )

    def insert(self, item_id: int, start: Point, end: Point) -> None:
        """Index (or re-index) a segment under every cell its bounding box touches."""
        cell_range = self._cell_range(start, end)
        if self._ranges.get(item_id) == cell_range:
            return
        self.remove(item_id)
        i0, i1, j0, j1 = cell_range
        for i in range(i0, i1 + 1):
            for j in range(j0, j1 + 1):
                self._buckets[(i, j)].add(item_id)
        self._ranges[item_id] = cell_range

    update = insert

    def remove(self, item_id: int) -> None:
        cell_range = self._ranges.pop(item_id, None)
        if cell_range is None:
            return
        i0, i1, j0, j1 = cell_range
        for i in range(i0, i1 + 1):
            for j in range(j0, j1 + 1):
                bucket = self._buckets.get((i, j))
                if bucket is None:
                    continue
                bucket.discard(item_id)
                if not bucket:
                    del self._buckets[(i, j)]

    def query(self, start: Point, end: Point) -> Set[int]:
        """Ids of all segments sharing at least one cell with the box of start-end."""
        i0, i1, j0, j1 = self._cell_range(start, end)
        found: Set[int] = set()
        for i in range(i0, i1 + 1):
            for j in range(j0, j1 + 1):
                bucket = self._buckets.get((i, j))
                if bucket:
                    found |= bucket
        return found

    def clear(self) -> None:
        self._buckets = defaultdict(set)
        self._ranges = {}
