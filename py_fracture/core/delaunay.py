"""Bowyer-Watson Delaunay triangulation."""

from typing import Dict, List, Optional, Sequence

import structlog

from ..config import FractureSettings, settings as default_settings
from .errors import InvalidGeometry
from .polygon_utils import polygon_bounds
from .primitives import Edge, Point, Triangle, orientation

logger = structlog.get_logger()


class DelaunayTriangulator:
    """
    Incremental Delaunay triangulation (Bowyer-Watson).

    Sites are inserted one at a time, in input order, into a triangulation
    seeded with a super-triangle that encloses all of them. For each site the
    triangles whose circumcircle contains it are removed and the hole they
    leave is re-triangulated as a fan around the new site. Triangles that
    still touch the super-triangle are dropped at the end.

    Collinear input never produces a zero-area triangle: such a triangle is
    simply not created, which costs the affected site some adjacency but
    never raises.
    """

    def __init__(self, settings: Optional[FractureSettings] = None):
        self.settings = settings or default_settings

    def super_triangle(self, sites: Sequence[Point]) -> Triangle:
        """A triangle comfortably enclosing every site."""
        bounds = polygon_bounds(sites)
        extent = max(bounds.width, bounds.height, 1e-9)
        mid_x = (bounds.min_x + bounds.max_x) / 2.0
        mid_y = (bounds.min_y + bounds.max_y) / 2.0
        margin = extent * self.settings.super_triangle_scale

        return Triangle(
            Point(mid_x - margin, mid_y - extent),
            Point(mid_x + margin, mid_y - extent),
            Point(mid_x, mid_y + margin),
        )

    def triangulate(self, sites: Sequence[Point]) -> List[Triangle]:
        """
        Triangulate the sites.

        Args:
            sites: Distinct input points

        Returns:
            Triangles covering the convex hull of the sites, in no particular
            order. Empty for fewer than 3 sites or all-collinear input.
        """
        if len(sites) < 3:
            logger.debug("Triangulation skipped", sites=len(sites))
            return []

        bounds = polygon_bounds(sites)
        extent = max(bounds.width, bounds.height)
        min_doubled_area = self.settings.degenerate_area_ratio * extent * extent

        seed_triangle = self.super_triangle(sites)
        super_vertices = set(seed_triangle.vertices)
        triangles: List[Triangle] = [seed_triangle]
        skipped = 0

        for site in sites:
            bad = [t for t in triangles if t.contains_in_circumcircle(site)]
            if not bad:
                continue

            # Edges used by exactly one bad triangle bound the hole
            edge_count: Dict[Edge, int] = {}
            for triangle in bad:
                for edge in triangle.edges:
                    edge_count[edge] = edge_count.get(edge, 0) + 1

            bad_ids = {id(t) for t in bad}
            triangles = [t for t in triangles if id(t) not in bad_ids]

            for edge, count in edge_count.items():
                if count != 1:
                    continue
                if abs(orientation(edge.p1, edge.p2, site)) <= min_doubled_area:
                    skipped += 1
                    continue
                try:
                    triangles.append(Triangle(edge.p1, edge.p2, site))
                except InvalidGeometry:
                    skipped += 1

        result = [
            t for t in triangles
            if not any(v in super_vertices for v in t.vertices)
        ]

        logger.debug("Triangulation complete", sites=len(sites),
                     triangles=len(result), skipped_degenerate=skipped)
        return result
