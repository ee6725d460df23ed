"""
Polygon helpers shared by the sampler, the clipper and the pipeline.

Polygons are plain sequences of Point with an implicit closing edge from the
last vertex back to the first. Functions here never mutate their input.
"""

import math
from typing import Iterable, List, Sequence

import numpy as np

from .errors import InvalidGeometry
from .primitives import Bounds, Point


def as_polygon(coords: Iterable) -> List[Point]:
    """
    Convert boundary input into a list of Points.

    Accepts Points, (x, y) pairs or an (N, 2) array. A repeated closing vertex
    and consecutive exact duplicates are dropped.

    Raises:
        InvalidGeometry: if fewer than 3 distinct vertices remain
    """
    points = []
    for item in coords:
        p = item if isinstance(item, Point) else Point(float(item[0]), float(item[1]))
        if points and points[-1] == p:
            continue
        points.append(p)

    if len(points) > 1 and points[0] == points[-1]:
        points.pop()

    if len(points) < 3:
        raise InvalidGeometry(f"Polygon needs at least 3 distinct vertices, got {len(points)}")
    return points


def as_array(polygon: Sequence[Point]) -> np.ndarray:
    """(N, 2) float64 array of the vertex coordinates."""
    return np.array([(p.x, p.y) for p in polygon], dtype=np.float64).reshape(-1, 2)


def signed_area(polygon: Sequence[Point]) -> float:
    """Shoelace area: positive for counter-clockwise winding."""
    if len(polygon) < 3:
        return 0.0
    xy = as_array(polygon)
    x = xy[:, 0]
    y = xy[:, 1]
    return float(0.5 * (np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y)))


def polygon_area(polygon: Sequence[Point]) -> float:
    return abs(signed_area(polygon))


def ensure_ccw(polygon: Sequence[Point]) -> List[Point]:
    """Return the polygon with counter-clockwise winding."""
    if signed_area(polygon) < 0.0:
        return list(reversed(polygon))
    return list(polygon)


def polygon_bounds(points: Sequence[Point]) -> Bounds:
    xy = as_array(points)
    mins = xy.min(axis=0)
    maxs = xy.max(axis=0)
    return Bounds(float(mins[0]), float(mins[1]), float(maxs[0]), float(maxs[1]))


def polygon_centroid(polygon: Sequence[Point]) -> Point:
    """Area centroid, falling back to the vertex mean for degenerate input."""
    xy = as_array(polygon)
    if len(xy) < 3:
        mean = xy.mean(axis=0)
        return Point(float(mean[0]), float(mean[1]))

    x = xy[:, 0]
    y = xy[:, 1]
    xn = np.roll(x, -1)
    yn = np.roll(y, -1)
    cross = x * yn - xn * y
    area = cross.sum() * 0.5

    if abs(area) < 1e-12:
        mean = xy.mean(axis=0)
        return Point(float(mean[0]), float(mean[1]))

    cx = ((x + xn) * cross).sum() / (6.0 * area)
    cy = ((y + yn) * cross).sum() / (6.0 * area)
    return Point(float(cx), float(cy))


def point_in_polygon(point: Point, polygon: Sequence[Point]) -> bool:
    """Ray casting with the odd-crossing rule."""
    inside = False
    n = len(polygon)
    j = n - 1
    for i in range(n):
        pi = polygon[i]
        pj = polygon[j]
        if (pi.y > point.y) != (pj.y > point.y):
            x_cross = (pj.x - pi.x) * (point.y - pi.y) / (pj.y - pi.y) + pi.x
            if point.x < x_cross:
                inside = not inside
        j = i
    return inside


def nearest_point_on_segment(point: Point, a: Point, b: Point) -> Point:
    abx = b.x - a.x
    aby = b.y - a.y
    ab2 = abx * abx + aby * aby
    if ab2 == 0.0:
        return a
    t = ((point.x - a.x) * abx + (point.y - a.y) * aby) / ab2
    t = min(1.0, max(0.0, t))
    return Point(a.x + abx * t, a.y + aby * t)


def nearest_point_on_polygon(point: Point, polygon: Sequence[Point]) -> Point:
    """Perpendicular projection of point onto the closest boundary segment."""
    best = polygon[0]
    best_d2 = float("inf")
    n = len(polygon)
    for i in range(n):
        q = nearest_point_on_segment(point, polygon[i], polygon[(i + 1) % n])
        d2 = q.distance_squared(point)
        if d2 < best_d2:
            best_d2 = d2
            best = q
    return best


def is_convex(polygon: Sequence[Point], epsilon: float = 1e-12) -> bool:
    """True if every turn has the same sign (collinear runs are allowed)."""
    n = len(polygon)
    if n < 3:
        return False
    sign = 0
    for i in range(n):
        a = polygon[i]
        b = polygon[(i + 1) % n]
        c = polygon[(i + 2) % n]
        cross = (b.x - a.x) * (c.y - b.y) - (b.y - a.y) * (c.x - b.x)
        if abs(cross) <= epsilon:
            continue
        current = 1 if cross > 0 else -1
        if sign == 0:
            sign = current
        elif current != sign:
            return False
    return sign != 0


def _cross(ox: float, oy: float, ax: float, ay: float, bx: float, by: float) -> float:
    return (ax - ox) * (by - oy) - (ay - oy) * (bx - ox)


def _on_segment(a: Point, b: Point, p: Point, epsilon: float) -> bool:
    return (
        min(a.x, b.x) - epsilon <= p.x <= max(a.x, b.x) + epsilon
        and min(a.y, b.y) - epsilon <= p.y <= max(a.y, b.y) + epsilon
    )


def segments_intersect(a1: Point, a2: Point, b1: Point, b2: Point, epsilon: float = 1e-12) -> bool:
    """Proper crossing, or touching/overlap when an endpoint lies on the other segment."""
    d1 = _cross(a1.x, a1.y, a2.x, a2.y, b1.x, b1.y)
    d2 = _cross(a1.x, a1.y, a2.x, a2.y, b2.x, b2.y)
    d3 = _cross(b1.x, b1.y, b2.x, b2.y, a1.x, a1.y)
    d4 = _cross(b1.x, b1.y, b2.x, b2.y, a2.x, a2.y)

    if ((d1 > 0 > d2) or (d1 < 0 < d2)) and ((d3 > 0 > d4) or (d3 < 0 < d4)):
        return True

    if abs(d1) < epsilon and _on_segment(a1, a2, b1, epsilon):
        return True
    if abs(d2) < epsilon and _on_segment(a1, a2, b2, epsilon):
        return True
    if abs(d3) < epsilon and _on_segment(b1, b2, a1, epsilon):
        return True
    if abs(d4) < epsilon and _on_segment(b1, b2, a2, epsilon):
        return True
    return False


def is_simple(polygon: Sequence[Point]) -> bool:
    """O(n^2) scan for crossings between non-adjacent edges."""
    n = len(polygon)
    if n < 4:
        return True
    for i in range(n):
        a1 = polygon[i]
        a2 = polygon[(i + 1) % n]
        for j in range(i + 2, n):
            # first and last edges share vertex 0
            if i == 0 and j == n - 1:
                continue
            if segments_intersect(a1, a2, polygon[j], polygon[(j + 1) % n]):
                return False
    return True


def _close(a: Point, b: Point, epsilon: float) -> bool:
    return abs(a.x - b.x) < epsilon and abs(a.y - b.y) < epsilon


def _drop_duplicates(polygon: List[Point], epsilon: float) -> List[Point]:
    """Keep the first vertex of every run of near-duplicates, including the wrap-around."""
    kept: List[Point] = []
    for p in polygon:
        if kept and _close(kept[-1], p, epsilon):
            continue
        kept.append(p)
    while len(kept) > 1 and _close(kept[-1], kept[0], epsilon):
        kept.pop()
    return kept


def _drop_collinear(polygon: List[Point], epsilon: float) -> List[Point]:
    """Drop vertices whose turn angle has |sin| <= epsilon, independent of scale."""
    n = len(polygon)
    kept = []
    for i in range(n):
        prev = polygon[i - 1]
        cur = polygon[i]
        nxt = polygon[(i + 1) % n]
        ux = cur.x - prev.x
        uy = cur.y - prev.y
        vx = nxt.x - cur.x
        vy = nxt.y - cur.y
        if abs(ux * vy - uy * vx) > epsilon * math.hypot(ux, uy) * math.hypot(vx, vy):
            kept.append(cur)
    return kept


def clean_polygon(
    polygon: Sequence[Point],
    duplicate_epsilon: float = 1e-4,
    collinear_epsilon: float = 1e-4,
) -> List[Point]:
    """
    Remove consecutive near-duplicate vertices and nearly-collinear vertices.

    duplicate_epsilon is a distance. collinear_epsilon bounds the sine of the
    turn angle at a vertex, so the collinear test does not depend on scale.

    Both passes repeat until nothing changes, so cleaning a cleaned polygon is
    a no-op. Returns an empty list when fewer than 3 vertices survive.
    """
    current = list(polygon)
    while True:
        if len(current) < 3:
            return []
        deduped = _drop_duplicates(current, duplicate_epsilon)
        if len(deduped) < 3:
            return []
        result = _drop_collinear(deduped, collinear_epsilon)
        if len(result) == len(current):
            return result
        current = result
