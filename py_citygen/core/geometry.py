"""
2D geometry utilities for the city generator.

Pure functions over ``(x, y)`` tuples: segment intersection, shoelace area,
collinearity and duplicate filtering, point containment, minimum-area
bounding boxes and area-weighted polygon sampling. Nothing here keeps state
between calls.
"""

import math
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import structlog
from scipy.spatial import ConvexHull, QhullError

logger = structlog.get_logger()

Point = Tuple[float, float]

# Determinant threshold below which two lines count as parallel
PARALLEL_EPSILON = 1e-10


class SegmentHit(NamedTuple):
    """Intersection point and its parameter along the first segment."""

    point: Point
    distance: float


class BoundingBox(NamedTuple):
    """Oriented bounding box: center, extents along its axes, rotation in radians."""

    cx: float
    cy: float
    width: float
    height: float
    angle: float


def segment_intersection(
    start1: Point,
    end1: Point,
    start2: Point,
    end2: Point,
    include_endpoints: bool = True,
    eps: float = PARALLEL_EPSILON,
) -> Optional[SegmentHit]:
    """
    Intersect two finite segments.

    Solves the parametric system ``start1 + ua * (end1 - start1) ==
    start2 + ub * (end2 - start2)``.

    Args:
        start1, end1: First segment
        start2, end2: Second segment
        include_endpoints: Accept hits at ``ua`` or ``ub`` equal to 0 or 1
        eps: Absolute determinant threshold for parallel lines

    Returns:
        SegmentHit with the point and ``ua`` (parametric distance along the
        first segment), or None for parallel or non-overlapping segments
    """
    x1, y1 = start1
    x2, y2 = end1
    x3, y3 = start2
    x4, y4 = end2

    denominator = (y4 - y3) * (x2 - x1) - (x4 - x3) * (y2 - y1)
    if abs(denominator) < eps:
        return None

    ua = ((x4 - x3) * (y1 - y3) - (y4 - y3) * (x1 - x3)) / denominator
    ub = ((x2 - x1) * (y1 - y3) - (y2 - y1) * (x1 - x3)) / denominator

    if include_endpoints:
        if ua < 0 or ua > 1 or ub < 0 or ub > 1:
            return None
    else:
        if ua <= 0 or ua >= 1 or ub <= 0 or ub >= 1:
            return None

    return SegmentHit((x1 + ua * (x2 - x1), y1 + ua * (y2 - y1)), ua)


def interior_crossing(
    a: Point, b: Point, c: Point, d: Point, tolerance: float = 1e-6
) -> Optional[Point]:
    """Crossing point of segments ab and cd strictly inside both (endpoints excluded)."""
    abx, aby = b[0] - a[0], b[1] - a[1]
    cdx, cdy = d[0] - c[0], d[1] - c[1]
    den = abx * cdy - aby * cdx
    if abs(den) < PARALLEL_EPSILON:
        return None
    t = ((c[0] - a[0]) * cdy - (c[1] - a[1]) * cdx) / den
    u = ((c[0] - a[0]) * aby - (c[1] - a[1]) * abx) / den
    if tolerance < t < 1 - tolerance and tolerance < u < 1 - tolerance:
        return (a[0] + t * abx, a[1] + t * aby)
    return None


def line_intersection(p1: Point, p2: Point, p3: Point, p4: Point) -> Optional[Point]:
    """Intersect the infinite lines p1->p2 and p3->p4. None when parallel."""
    d1x, d1y = p2[0] - p1[0], p2[1] - p1[1]
    d2x, d2y = p4[0] - p3[0], p4[1] - p3[1]

    denom = d1x * d2y - d1y * d2x
    if abs(denom) < PARALLEL_EPSILON:
        return None

    t = ((p3[0] - p1[0]) * d2y - (p3[1] - p1[1]) * d2x) / denom
    return (p1[0] + t * d1x, p1[1] + t * d1y)


def signed_area(points: Sequence[Point]) -> float:
    """Shoelace area. Positive for counter-clockwise winding."""
    area = 0.0
    n = len(points)
    for i in range(n):
        j = (i + 1) % n
        area += points[i][0] * points[j][1]
        area -= points[j][0] * points[i][1]
    return area / 2


def polygon_area(points: Sequence[Point]) -> float:
    """Unsigned polygon area."""
    return abs(signed_area(points))


def polygon_perimeter(points: Sequence[Point]) -> float:
    """Length of the closed polygon boundary."""
    n = len(points)
    return sum(
        math.hypot(points[(i + 1) % n][0] - points[i][0], points[(i + 1) % n][1] - points[i][1])
        for i in range(n)
    )


def vertex_centroid(points: Sequence[Point]) -> Point:
    """Mean of the polygon vertices."""
    n = len(points)
    return (sum(p[0] for p in points) / n, sum(p[1] for p in points) / n)


def polygon_centroid(points: Sequence[Point]) -> Point:
    """
    Area centroid of a polygon.

    Falls back to the vertex mean for fewer than three points or a
    zero-area polygon.
    """
    if len(points) < 3:
        return vertex_centroid(points)

    n = len(points)
    area = 0.0
    cx = 0.0
    cy = 0.0

    for i in range(n):
        j = (i + 1) % n
        a = points[i][0] * points[j][1] - points[j][0] * points[i][1]
        area += a
        cx += (points[i][0] + points[j][0]) * a
        cy += (points[i][1] + points[j][1]) * a

    if abs(area) < 1e-10:
        return vertex_centroid(points)

    area *= 0.5
    return (cx / (6.0 * area), cy / (6.0 * area))


def filter_collinear(points: Sequence[Point], eps: float = 1e-8) -> List[Point]:
    """Drop vertices whose neighbours are collinear with them (zero-area corners)."""
    out = []
    n = len(points)
    for i in range(n):
        prev = points[(i - 1 + n) % n]
        curr = points[i]
        nxt = points[(i + 1) % n]
        cross = (curr[0] - prev[0]) * (nxt[1] - curr[1]) - (curr[1] - prev[1]) * (nxt[0] - curr[0])
        if abs(cross) > eps:
            out.append(curr)
    return out


def dedup_points(points: Sequence[Point], eps: float = 1e-8) -> List[Point]:
    """Drop consecutive near-duplicates, including a closing duplicate of the first point."""
    if not points:
        return []
    out = [points[0]]
    for p in points[1:]:
        if _dist2(p, out[-1]) > eps:
            out.append(p)
    if len(out) > 2 and _dist2(out[-1], out[0]) < eps:
        out.pop()
    return out


def point_in_polygon(pt: Point, poly: Sequence[Point]) -> bool:
    """Ray-casting containment test."""
    inside = False
    j = len(poly) - 1
    for i in range(len(poly)):
        xi, yi = poly[i]
        xj, yj = poly[j]
        if (yi > pt[1]) != (yj > pt[1]) and pt[0] < (xj - xi) * (pt[1] - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def closest_point_on_polygon(pt: Point, poly: Sequence[Point]) -> Optional[Point]:
    """Project a point onto the nearest edge of the polygon."""
    best_dist = math.inf
    best = None
    n = len(poly)
    for i in range(n):
        a = poly[i]
        b = poly[(i + 1) % n]
        dx = b[0] - a[0]
        dy = b[1] - a[1]
        len_sq = dx * dx + dy * dy
        if len_sq < 1e-12:
            continue
        t = max(0.0, min(1.0, ((pt[0] - a[0]) * dx + (pt[1] - a[1]) * dy) / len_sq))
        q = (a[0] + t * dx, a[1] + t * dy)
        d = _dist2(pt, q)
        if d < best_dist:
            best_dist = d
            best = q
    return best


def is_simple_polygon(points: Sequence[Point]) -> bool:
    """True when no two non-adjacent edges of the closed polygon touch or cross."""
    n = len(points)
    if n < 3:
        return False
    for i in range(n):
        a, b = points[i], points[(i + 1) % n]
        for j in range(i + 2, n):
            if i == 0 and j == n - 1:
                continue
            c, d = points[j], points[(j + 1) % n]
            if segment_intersection(a, b, c, d, include_endpoints=True) is not None:
                return False
    return True


def minimum_bounding_box(points: Sequence[Point]) -> BoundingBox:
    """
    Minimum-area oriented bounding box.

    Each convex hull edge direction is tried in turn; the box of least area
    wins. Degenerate input (collinear or fewer than three distinct points)
    falls back to the polygon's own edge directions.
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    if len(pts) == 0:
        return BoundingBox(0.0, 0.0, 0.0, 0.0, 0.0)
    if len(pts) < 2:
        return BoundingBox(float(pts[0, 0]), float(pts[0, 1]), 0.0, 0.0, 0.0)

    try:
        ring = pts[ConvexHull(pts).vertices]
    except (QhullError, ValueError):
        ring = pts

    edges = np.roll(ring, -1, axis=0) - ring
    lengths = np.hypot(edges[:, 0], edges[:, 1])

    best = None
    best_area = math.inf
    for (ex, ey), el in zip(edges, lengths):
        if el < 1e-10:
            continue
        u = np.array([ex / el, ey / el])
        v = np.array([-u[1], u[0]])

        proj_u = pts @ u
        proj_v = pts @ v
        w = proj_u.max() - proj_u.min()
        h = proj_v.max() - proj_v.min()

        if w * h < best_area:
            best_area = w * h
            mid_u = (proj_u.min() + proj_u.max()) / 2
            mid_v = (proj_v.min() + proj_v.max()) / 2
            center = mid_u * u + mid_v * v
            best = BoundingBox(
                float(center[0]), float(center[1]), float(w), float(h), float(math.atan2(u[1], u[0]))
            )

    if best is None:
        cx, cy = pts.mean(axis=0)
        return BoundingBox(float(cx), float(cy), 0.0, 0.0, 0.0)
    return best


def triangulate_polygon(points: Sequence[Point]) -> List[Tuple[int, int, int]]:
    """
    Ear-clipping triangulation of a simple polygon.

    Returns index triples into ``points``, wound counter-clockwise. If no ear
    can be found (collinear leftovers), the remainder is fanned.
    """
    n = len(points)
    if n < 3:
        return []

    idx = list(range(n))
    if signed_area(points) < 0:
        idx.reverse()

    triangles = []
    while len(idx) > 3:
        m = len(idx)
        for k in range(m):
            i_prev, i, i_next = idx[k - 1], idx[k], idx[(k + 1) % m]
            a, b, c = points[i_prev], points[i], points[i_next]
            if _cross(a, b, c) <= 1e-12:
                continue
            if any(
                _point_in_triangle(points[j], a, b, c)
                for j in idx
                if j not in (i_prev, i, i_next)
            ):
                continue
            triangles.append((i_prev, i, i_next))
            del idx[k]
            break
        else:
            logger.debug("Ear clipping stalled, fanning remainder", remaining=len(idx))
            triangles.extend((idx[0], idx[k], idx[k + 1]) for k in range(1, len(idx) - 1))
            return triangles

    triangles.append((idx[0], idx[1], idx[2]))
    return triangles


class PolygonSampler:
    """
    Area-weighted uniform sampling of points inside a simple polygon.

    The polygon is triangulated once; each sample picks a triangle with
    probability proportional to its area, then a uniform point inside it.
    """

    def __init__(self, points: Sequence[Point]):
        self.points = [(float(p[0]), float(p[1])) for p in points]
        self.triangles: List[Tuple[Point, Point, Point]] = []

        areas = []
        for i, j, k in triangulate_polygon(self.points):
            a, b, c = self.points[i], self.points[j], self.points[k]
            area = abs(_cross(a, b, c)) * 0.5
            if area <= 0:
                continue
            self.triangles.append((a, b, c))
            areas.append(area)

        if not areas:
            raise ValueError("Polygon has no positive-area triangles to sample from")

        self.cumulative_areas = np.cumsum(areas)
        self.total_area = float(self.cumulative_areas[-1])

    def sample(self, prng) -> Point:
        """Draw one point using the given AleaPRNG."""
        r = prng.random() * self.total_area
        index = min(int(np.searchsorted(self.cumulative_areas, r)), len(self.triangles) - 1)
        a, b, c = self.triangles[index]

        # P = (1 - sqrt(r1)) A + sqrt(r1) (1 - r2) B + sqrt(r1) r2 C
        sqrt_r1 = math.sqrt(prng.random())
        r2 = prng.random()
        wa = 1 - sqrt_r1
        wb = sqrt_r1 * (1 - r2)
        wc = sqrt_r1 * r2
        return (
            wa * a[0] + wb * b[0] + wc * c[0],
            wa * a[1] + wb * b[1] + wc * c[1],
        )


def random_point_in_polygon(points: Sequence[Point], prng) -> Point:
    """Single area-weighted random point inside ``points``."""
    return PolygonSampler(points).sample(prng)


def order_segments(segments: Iterable[Tuple[int, int]]) -> List[int]:
    """
    Order unordered directed segments ``[(0, 1), (4, 2), (1, 4), ...]`` into a
    vertex loop ``[0, 1, 4, 2, ...]``.

    Raises:
        ValueError: If the segments do not form a single closed loop
    """
    segments = list(segments)
    if not segments:
        return []

    following = {start: end for start, end in segments}
    path = []
    current = segments[0][0]
    for _ in range(len(segments)):
        path.append(current)
        current = following.get(current)
        if current is None:
            raise ValueError("Segments do not form a closed loop")
    if current != path[0] or len(set(path)) != len(path):
        raise ValueError("Segments do not form a closed loop")
    return path


def angles_over_circle(n: int, prng) -> List[float]:
    """One random angle inside each of ``n`` equal sectors of the circle."""
    step = 2 * math.pi / n
    return [i * step + prng.random() * step for i in range(n)]


def rotate(vector: Point, angle: float) -> Point:
    """Rotate a vector counter-clockwise by ``angle`` radians."""
    c = math.cos(angle)
    s = math.sin(angle)
    return (vector[0] * c - vector[1] * s, vector[0] * s + vector[1] * c)


def _cross(a: Point, b: Point, c: Point) -> float:
    return (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])


def _point_in_triangle(p: Point, a: Point, b: Point, c: Point) -> bool:
    return _cross(a, b, p) >= 0 and _cross(b, c, p) >= 0 and _cross(c, a, p) >= 0


def _dist2(a: Point, b: Point) -> float:
    return (a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2
