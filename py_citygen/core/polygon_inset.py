"""
Polygon inset (deflation) for turning city blocks into buildable lots.

Each edge is moved inward along its normal and consecutive offset edges are
intersected to find the new corners. Corners sharper than the miter limit
become a two-point bevel. Narrow regions can fold the result over itself,
so crossings are cut away afterwards, keeping the counter-clockwise loop.

All functions here are pure; a result of None means "this region cannot be
built" and is never an error.
"""

import math
from typing import Mapping, Optional, Sequence, Union, List

import structlog

from .geometry import (
    Point,
    closest_point_on_polygon,
    dedup_points,
    filter_collinear,
    interior_crossing,
    line_intersection,
    point_in_polygon,
    polygon_perimeter,
    signed_area,
    vertex_centroid,
)

logger = structlog.get_logger()

AREA_EPSILON = 1e-8
DEFAULT_MITER_LIMIT = 4.0


def shrink_polygon(
    points: Sequence[Point], offset: float, miter_limit: float = DEFAULT_MITER_LIMIT
) -> Optional[List[Point]]:
    """
    Inset a polygon by ``offset``.

    Args:
        points: Polygon vertices in either winding (at least 3)
        offset: Inward distance
        miter_limit: Corners moving further than ``offset * miter_limit``
            from their original vertex are beveled

    Returns:
        Inset polygon in the input's winding, or None when the polygon is
        too small, too thin, or collapses
    """
    if len(points) < 3:
        return None

    poly = [(float(p[0]), float(p[1])) for p in points]
    area = signed_area(poly)
    if abs(area) < AREA_EPSILON:
        return None

    ccw = area > 0
    if not ccw:
        poly.reverse()
    abs_area = abs(area)

    if not is_inset_feasible(poly, offset, abs_area):
        logger.debug("Inset infeasible", area=abs_area, offset=offset, vertices=len(poly))
        return None

    n = len(poly)

    # Offset edges; zero-length edges have no normal
    offset_edges = []
    for i in range(n):
        a = poly[i]
        b = poly[(i + 1) % n]
        dx = b[0] - a[0]
        dy = b[1] - a[1]
        length = math.hypot(dx, dy)
        if length < 1e-12:
            offset_edges.append(None)
            continue
        nx = -dy / length * offset
        ny = dx / length * offset
        offset_edges.append(((a[0] + nx, a[1] + ny), (b[0] + nx, b[1] + ny)))

    # Corner i sits between offset edge i-1 and offset edge i
    raw: List[Point] = []
    for i in range(n):
        prev_edge = offset_edges[i - 1]
        edge = offset_edges[i]

        if prev_edge is None or edge is None:
            if prev_edge is not None:
                raw.append(prev_edge[1])
            elif edge is not None:
                raw.append(edge[0])
            continue

        pt = line_intersection(prev_edge[0], prev_edge[1], edge[0], edge[1])
        if pt is None:
            raw.append(((prev_edge[1][0] + edge[0][0]) / 2, (prev_edge[1][1] + edge[0][1]) / 2))
            continue

        orig = poly[i]
        if math.hypot(pt[0] - orig[0], pt[1] - orig[1]) > offset * miter_limit:
            raw.append(prev_edge[1])
            raw.append(edge[0])
        else:
            raw.append(pt)

    if len(raw) < 3:
        return None

    result = resolve_self_intersections(raw)
    if result is None or len(result) < 3:
        return None

    result = dedup_points(result)
    if len(result) < 3:
        return None

    # Pull escaped corners back onto the original outline
    for i, p in enumerate(result):
        if not point_in_polygon(p, poly):
            result[i] = closest_point_on_polygon(p, poly)

    new_area = signed_area(result)
    if new_area <= 0 or new_area >= abs_area:
        logger.debug(
            "Polygon invalid after inset, discarding",
            area=round(abs_area, 4),
            new_area=round(new_area, 4),
            vertices=n,
        )
        return None

    if not ccw:
        result.reverse()
    return result


def is_inset_feasible(poly: Sequence[Point], offset: float, area: Optional[float] = None) -> bool:
    """
    Cheap rejection before offsetting a counter-clockwise polygon.

    Fails when ``offset`` reaches the approximate inradius ``2 * area /
    perimeter`` or the vertex centroid's distance to any edge line.
    """
    if area is None:
        area = abs(signed_area(poly))
    perimeter = polygon_perimeter(poly)
    if perimeter <= 0 or offset >= 2 * area / perimeter:
        return False

    cx, cy = vertex_centroid(poly)
    n = len(poly)
    for i in range(n):
        a = poly[i]
        b = poly[(i + 1) % n]
        dx = b[0] - a[0]
        dy = b[1] - a[1]
        length = math.hypot(dx, dy)
        if length < 1e-10:
            continue
        # Positive means inward for a CCW polygon
        dist = ((cx - a[0]) * -dy + (cy - a[1]) * dx) / length
        if offset >= dist:
            return False
    return True


def resolve_self_intersections(
    points: Sequence[Point], max_iterations: Optional[int] = None
) -> Optional[List[Point]]:
    """
    Cut crossings out of a closed polygon.

    At the first crossing found the polygon splits into two loops; the one
    with positive (CCW) area is kept, the larger if both are. Repeats until
    no crossing remains.

    Args:
        points: Polygon vertices, expected counter-clockwise
        max_iterations: Cut limit, defaults to twice the vertex count

    Returns:
        Simple polygon, the unchanged input when already simple, or None if
        both loops are inverted, fewer than 3 vertices remain, or the limit
        is exhausted
    """
    pts = list(points)
    limit = 2 * len(pts) if max_iterations is None else max_iterations

    for _ in range(limit):
        if len(pts) < 3:
            return None

        crossing = _first_crossing(pts)
        if crossing is None:
            return pts

        i, j, hit = crossing
        loop_a = [hit] + pts[i + 1 : j + 1]
        loop_b = [hit] + pts[j + 1 :] + pts[: i + 1]
        area_a = signed_area(loop_a)
        area_b = signed_area(loop_b)

        if area_a > 0 and area_b > 0:
            pts = loop_a if area_a >= area_b else loop_b
        elif area_a > 0:
            pts = loop_a
        elif area_b > 0:
            pts = loop_b
        else:
            return None

    if len(pts) >= 3 and _first_crossing(pts) is None:
        return pts
    logger.debug("Self-intersection repair exhausted", limit=limit, vertices=len(pts))
    return None


def _first_crossing(pts: Sequence[Point]):
    n = len(pts)
    for i in range(n):
        a = pts[i]
        b = pts[(i + 1) % n]
        for j in range(i + 2, n):
            if (j + 1) % n == i:
                continue
            hit = interior_crossing(a, b, pts[j], pts[(j + 1) % n])
            if hit is not None:
                return i, j, hit
    return None


def clean_path(points: Sequence[Point]) -> List[Point]:
    """Drop duplicate and collinear vertices from a polygon outline."""
    return filter_collinear(dedup_points([(float(p[0]), float(p[1])) for p in points]))


def offset_polygon(
    indices: Sequence[int],
    vertex_pool: Union[Sequence[Point], Mapping[int, Point]],
    offset: float,
    miter_limit: float = DEFAULT_MITER_LIMIT,
) -> Optional[List[Point]]:
    """
    Inset the polygon given as vertex ids into ``vertex_pool``.

    Missing ids are skipped; duplicate and collinear vertices are removed
    before insetting.
    """
    if not indices or len(indices) < 3:
        return None

    path = []
    for idx in indices:
        try:
            path.append(vertex_pool[idx])
        except (KeyError, IndexError):
            continue

    path = clean_path(path)
    if len(path) < 3:
        return None
    return shrink_polygon(path, offset, miter_limit)
