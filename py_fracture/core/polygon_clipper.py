"""
Polygon clipping for Voronoi cells.

Three clipping paths are provided:

1. Half-plane clip: keep the part of a polygon on one side of a line. Used to
   cut a large rectangle down to a site's Voronoi cell, one perpendicular
   bisector at a time.
2. Convex clip (Sutherland-Hodgman): half-plane clip against every edge of a
   convex clip polygon. Exact only when the clip polygon is convex.
3. Boolean intersection: coordinates are scaled onto an integer grid and
   intersected with shapely's snap-rounding overlay, then scaled back. This
   handles concave boundaries where Sutherland-Hodgman breaks down.

Every result goes through cleanup (near-duplicate and collinear vertices),
CCW normalisation, self-intersection repair and a minimum-area filter.
Degenerate pieces are dropped, never raised to the caller.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
import shapely
import structlog
from shapely.errors import GEOSException
from shapely.geometry import Polygon

from ..config import FractureSettings, settings as default_settings
from .errors import ClipperFailure, DegenerateCell
from .polygon_utils import (
    as_array,
    clean_polygon,
    ensure_ccw,
    is_convex,
    is_simple,
    polygon_area,
    polygon_bounds,
)
from .primitives import Point

logger = structlog.get_logger()


@dataclass
class ClipOutcome:
    """Polygons produced by clipping one cell, plus what happened on the way."""
    polygons: List[List[Point]] = field(default_factory=list)
    dropped: int = 0  # degenerate pieces discarded
    repaired: int = 0  # self-intersecting pieces split by repair
    used_fallback: bool = False  # Boolean engine failed, Sutherland-Hodgman used


class PolygonClipper:
    """Clipping operations that never raise on malformed geometry."""

    def __init__(self, settings: Optional[FractureSettings] = None):
        self.settings = settings or default_settings
        self.scale = self.settings.clipper_scale

    # Half-plane and convex clipping

    def clip_half_plane(self, subject: Sequence[Point], midpoint: Point,
                        normal: Tuple[float, float]) -> List[Point]:
        """
        Keep the part of subject where (p - midpoint) . normal <= 0.

        Args:
            subject: Polygon to clip
            midpoint: Any point on the clip line
            normal: Line normal pointing towards the discarded side

        Returns:
            The clipped polygon, empty if nothing remains
        """
        output: List[Point] = []
        n = len(subject)
        if n == 0:
            return output

        nx, ny = normal
        for i in range(n):
            current = subject[i]
            nxt = subject[(i + 1) % n]
            d_current = (current.x - midpoint.x) * nx + (current.y - midpoint.y) * ny
            d_next = (nxt.x - midpoint.x) * nx + (nxt.y - midpoint.y) * ny
            current_inside = d_current <= 0
            next_inside = d_next <= 0

            if current_inside and next_inside:
                output.append(nxt)
            elif current_inside:
                output.append(_crossing(current, nxt, d_current, d_next))
            elif next_inside:
                output.append(_crossing(current, nxt, d_current, d_next))
                output.append(nxt)

        return output

    def clip_convex(self, subject: Sequence[Point], clip_polygon: Sequence[Point]) -> List[Point]:
        """Sutherland-Hodgman clip of subject against a convex polygon."""
        clip_polygon = ensure_ccw(clip_polygon)
        output = list(subject)
        n = len(clip_polygon)
        for i in range(n):
            a = clip_polygon[i]
            b = clip_polygon[(i + 1) % n]
            # outward normal of a CCW edge
            output = self.clip_half_plane(output, a, (b.y - a.y, a.x - b.x))
            if not output:
                break
        return output

    # Integer-grid Boolean operations

    def _to_shape(self, polygon: Sequence[Point]) -> Polygon:
        return Polygon(np.rint(as_array(polygon) * self.scale))

    def _from_shape(self, shape: Polygon) -> List[Point]:
        coords = np.asarray(shape.exterior.coords)[:-1] / self.scale
        return [Point(float(x), float(y)) for x, y in coords]

    def _polygon_parts(self, geometry) -> List[Polygon]:
        """Every non-empty Polygon in a (possibly nested) geometry."""
        if geometry is None or geometry.is_empty:
            return []
        if isinstance(geometry, Polygon):
            return [geometry]
        parts = []
        for part in shapely.get_parts(geometry):
            if part.geom_type in ("Polygon", "MultiPolygon", "GeometryCollection"):
                parts.extend(self._polygon_parts(part))
        return parts

    def intersect(self, subject: Sequence[Point], clip: Sequence[Point]) -> List[List[Point]]:
        """
        Intersection of two simple polygons on the integer grid.

        Returns:
            Raw polygons (not yet cleaned or filtered), empty when the
            polygons do not overlap

        Raises:
            ClipperFailure: if an input cannot be built, or the overlay raises
                for both the raw and the made-valid inputs
        """
        try:
            subject_shape = self._to_shape(subject)
            clip_shape = self._to_shape(clip)
        except (ValueError, GEOSException) as exc:
            raise ClipperFailure(f"Cannot build clip input: {exc}") from exc

        try:
            result = shapely.intersection(subject_shape, clip_shape, grid_size=1.0)
        except GEOSException as first_error:
            logger.debug("Intersection failed, retrying with repaired inputs",
                         error=str(first_error))
            try:
                result = shapely.intersection(
                    shapely.make_valid(subject_shape),
                    shapely.make_valid(clip_shape),
                    grid_size=1.0,
                )
            except GEOSException as exc:
                raise ClipperFailure(f"Intersection failed: {exc}") from exc

        polygons = [self._from_shape(part) for part in self._polygon_parts(result)]
        return [p for p in polygons if len(p) >= 3]

    def repair(self, polygon: Sequence[Point]) -> List[List[Point]]:
        """
        Split a self-intersecting polygon into simple pieces.

        The path is rebuilt on the integer grid as the union of itself, which
        turns a bowtie into its two lobes. Best effort: an empty list means
        the repair did not produce anything usable.
        """
        try:
            repaired = shapely.make_valid(self._to_shape(polygon))
        except (ValueError, GEOSException) as exc:
            logger.debug("Self-intersection repair failed", error=str(exc))
            return []
        return [self._from_shape(part) for part in self._polygon_parts(repaired)]

    # Cleanup and filtering

    def finalize_polygon(self, polygon: Sequence[Point]) -> List[Point]:
        """
        Clean, orient CCW and validate one polygon.

        Raises:
            DegenerateCell: fewer than 3 vertices survive cleanup, or the area
                is below settings.min_fragment_area
        """
        cleaned = clean_polygon(
            polygon,
            duplicate_epsilon=self.settings.duplicate_epsilon,
            collinear_epsilon=self.settings.collinear_epsilon,
        )
        if len(cleaned) < 3:
            raise DegenerateCell(f"{len(cleaned)} vertices after cleanup")

        cleaned = ensure_ccw(cleaned)
        area = polygon_area(cleaned)
        if area < self.settings.min_fragment_area:
            raise DegenerateCell(f"area {area:.3g} below minimum")
        return cleaned

    def _finish(self, raw_polygons: Sequence[Sequence[Point]]) -> ClipOutcome:
        outcome = ClipOutcome()
        for raw in raw_polygons:
            candidates = [raw]
            cleaned = clean_polygon(
                raw,
                duplicate_epsilon=self.settings.duplicate_epsilon,
                collinear_epsilon=self.settings.collinear_epsilon,
            )
            # Repair before the area filter: a symmetric bowtie has zero signed area
            if len(cleaned) >= 3 and not is_simple(cleaned):
                pieces = self.repair(cleaned)
                if pieces:
                    outcome.repaired += 1
                    candidates = pieces

            for candidate in candidates:
                try:
                    outcome.polygons.append(self.finalize_polygon(candidate))
                except DegenerateCell:
                    outcome.dropped += 1
        return outcome

    def clip_to_boundary(self, cell: Sequence[Point], boundary: Sequence[Point],
                         boundary_is_convex: Optional[bool] = None) -> ClipOutcome:
        """
        Clip a bounded cell against the fracture boundary.

        The Boolean intersection is tried first. If it fails, the cell is
        Sutherland-Hodgman clipped against the boundary when the boundary is
        convex, or against the boundary's bounding rectangle otherwise.

        Args:
            cell: Bounded Voronoi cell
            boundary: Simple boundary polygon, concave allowed
            boundary_is_convex: Precomputed convexity, detected if omitted

        Returns:
            ClipOutcome with zero or more simple CCW polygons
        """
        if len(cell) < 3:
            return ClipOutcome(dropped=1)

        cell = ensure_ccw(cell)
        boundary = ensure_ccw(boundary)

        try:
            raw = self.intersect(cell, boundary)
            used_fallback = False
        except ClipperFailure as exc:
            if boundary_is_convex is None:
                boundary_is_convex = is_convex(boundary)
            clip_polygon = boundary if boundary_is_convex else polygon_bounds(boundary).corners()
            logger.debug("Falling back to Sutherland-Hodgman", error=str(exc),
                         convex_boundary=boundary_is_convex)
            raw = [self.clip_convex(cell, clip_polygon)]
            used_fallback = True

        outcome = self._finish(raw)
        outcome.used_fallback = used_fallback
        return outcome


def _crossing(a: Point, b: Point, d_a: float, d_b: float) -> Point:
    """Point where segment ab crosses the zero level of the signed distances."""
    t = d_a / (d_a - d_b)
    return Point(a.x + (b.x - a.x) * t, a.y + (b.y - a.y) * t)
