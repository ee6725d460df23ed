"""Value types for the fracture geometry: points, edges and triangles."""

from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Tuple

from .errors import InvalidGeometry


@dataclass(frozen=True)
class Point:
    """An immutable 2D point.

    Equality is exact coordinate equality, and hashing follows it, so points
    can be used as dictionary keys. Only points that come straight from the
    input (sites, boundary vertices) should ever be used as keys; computed
    coordinates such as circumcenters are never looked up by value.
    """
    x: float
    y: float

    def __iter__(self):
        yield self.x
        yield self.y

    def __repr__(self) -> str:
        return f"Point({self.x:.4f}, {self.y:.4f})"

    def distance_squared(self, other: "Point") -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def midpoint(self, other: "Point") -> "Point":
        return Point((self.x + other.x) / 2.0, (self.y + other.y) / 2.0)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


# A site is an input point acting as the generator of one Voronoi cell.
Site = Point


class Bounds(NamedTuple):
    """Axis-aligned bounding box."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def diagonal(self) -> float:
        return (self.width ** 2 + self.height ** 2) ** 0.5

    def union(self, other: "Bounds") -> "Bounds":
        return Bounds(
            min(self.min_x, other.min_x),
            min(self.min_y, other.min_y),
            max(self.max_x, other.max_x),
            max(self.max_y, other.max_y),
        )

    def expanded(self, margin: float) -> "Bounds":
        return Bounds(
            self.min_x - margin,
            self.min_y - margin,
            self.max_x + margin,
            self.max_y + margin,
        )

    def corners(self) -> List[Point]:
        """Corners in counter-clockwise order, starting bottom-left."""
        return [
            Point(self.min_x, self.min_y),
            Point(self.max_x, self.min_y),
            Point(self.max_x, self.max_y),
            Point(self.min_x, self.max_y),
        ]


def orientation(a: Point, b: Point, c: Point) -> float:
    """Twice the signed area of triangle abc (positive when counter-clockwise)."""
    return (b.x - a.x) * (c.y - a.y) - (b.y - a.y) * (c.x - a.x)


class Edge:
    """An undirected segment between two points.

    Edge(a, b) == Edge(b, a), with a matching hash, so edges can be counted
    in a dict to find the boundary of a group of triangles.
    """

    __slots__ = ("p1", "p2")

    def __init__(self, p1: Point, p2: Point):
        self.p1 = p1
        self.p2 = p2

    def __eq__(self, other) -> bool:
        if not isinstance(other, Edge):
            return NotImplemented
        return (self.p1 == other.p1 and self.p2 == other.p2) or (
            self.p1 == other.p2 and self.p2 == other.p1
        )

    def __hash__(self) -> int:
        return hash(frozenset((self.p1, self.p2)))

    def __repr__(self) -> str:
        return f"Edge({self.p1!r}, {self.p2!r})"

    def __iter__(self):
        yield self.p1
        yield self.p2


class Triangle:
    """
    A triangle over three distinct points.

    The circumcircle is computed once at construction. For collinear (but
    distinct) vertices the circumcircle does not exist: `circumcenter` is None
    and no point is ever reported inside it.
    """

    def __init__(self, a: Point, b: Point, c: Point):
        if a == b or b == c or c == a:
            raise InvalidGeometry(f"Triangle vertices must be distinct: {a}, {b}, {c}")
        self.a = a
        self.b = b
        self.c = c
        self._circle = _circumcircle(a, b, c)

    def __repr__(self) -> str:
        return f"Triangle({self.a!r}, {self.b!r}, {self.c!r})"

    @property
    def vertices(self) -> Tuple[Point, Point, Point]:
        return (self.a, self.b, self.c)

    @property
    def edges(self) -> Tuple[Edge, Edge, Edge]:
        return (Edge(self.a, self.b), Edge(self.b, self.c), Edge(self.c, self.a))

    @property
    def circumcenter(self) -> Optional[Point]:
        if self._circle is None:
            return None
        return Point(self._circle[0], self._circle[1])

    @property
    def circumradius_squared(self) -> Optional[float]:
        if self._circle is None:
            return None
        return self._circle[2]

    def signed_area(self) -> float:
        return orientation(self.a, self.b, self.c) / 2.0

    def contains_in_circumcircle(self, p: Point) -> bool:
        """True if p lies inside or exactly on the circumcircle."""
        if self._circle is None:
            return False
        cx, cy, r2 = self._circle
        dx = p.x - cx
        dy = p.y - cy
        return dx * dx + dy * dy <= r2

    def contains_vertex(self, p: Point) -> bool:
        return p == self.a or p == self.b or p == self.c


def _circumcircle(a: Point, b: Point, c: Point) -> Optional[Tuple[float, float, float]]:
    """Circumcenter and squared radius, or None when the points are collinear."""
    d = 2.0 * (a.x * (b.y - c.y) + b.x * (c.y - a.y) + c.x * (a.y - b.y))
    if d == 0.0:
        return None

    a2 = a.x * a.x + a.y * a.y
    b2 = b.x * b.x + b.y * b.y
    c2 = c.x * c.x + c.y * c.y

    ux = (a2 * (b.y - c.y) + b2 * (c.y - a.y) + c2 * (a.y - b.y)) / d
    uy = (a2 * (c.x - b.x) + b2 * (a.x - c.x) + c2 * (b.x - a.x)) / d
    r2 = (a.x - ux) ** 2 + (a.y - uy) ** 2
    return (ux, uy, r2)
