"""Voronoi cells as the dual of a Delaunay triangulation."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from .primitives import Point, Triangle

logger = structlog.get_logger()


@dataclass(frozen=True)
class VoronoiCell:
    """A site and the ordered vertices of its cell.

    Vertices run counter-clockwise around the site. A cell may be empty, and
    the raw cell of a convex-hull site is incomplete because its true
    boundary runs off to infinity.
    """
    site: Point
    vertices: Tuple[Point, ...] = ()

    @property
    def is_empty(self) -> bool:
        return len(self.vertices) < 3

    def __len__(self) -> int:
        return len(self.vertices)


class VoronoiBuilder:
    """
    Derives per-site data from a Delaunay triangulation.

    Every lookup is keyed by an original site Point, never by a computed
    coordinate, so float equality only ever compares input values.
    """

    def circumcenters(self, triangles: Sequence[Triangle]) -> List[Optional[Point]]:
        """One circumcenter per triangle (None for collinear triangles)."""
        return [t.circumcenter for t in triangles]

    def build(self, triangles: Sequence[Triangle],
              sites: Optional[Sequence[Point]] = None) -> List[VoronoiCell]:
        """
        Build the raw Voronoi cell of every site.

        Args:
            triangles: Delaunay triangles
            sites: Sites to emit cells for, in this order. Defaults to every
                triangle vertex in first-seen order. Sites without triangles
                get an empty cell.

        Returns:
            One VoronoiCell per site
        """
        centers_by_site: Dict[Point, List[Point]] = {}
        for triangle, center in zip(triangles, self.circumcenters(triangles)):
            if center is None:
                continue
            for vertex in triangle.vertices:
                centers_by_site.setdefault(vertex, []).append(center)

        if sites is None:
            sites = list(centers_by_site)

        cells = [
            VoronoiCell(site, tuple(self._sort_around(site, centers_by_site.get(site, []))))
            for site in sites
        ]

        logger.debug("Voronoi cells built", cells=len(cells),
                     empty=sum(1 for c in cells if c.is_empty))
        return cells

    def neighbors(self, triangles: Sequence[Triangle],
                  sites: Optional[Sequence[Point]] = None) -> Dict[Point, List[Point]]:
        """
        Delaunay neighbours of each site.

        Two sites are neighbours iff some triangle has both as vertices.
        Neighbour lists keep first-seen order so results are deterministic.
        """
        adjacency: Dict[Point, Dict[Point, None]] = {}
        if sites is not None:
            for site in sites:
                adjacency[site] = {}

        for triangle in triangles:
            a, b, c = triangle.vertices
            for p, q in ((a, b), (b, c), (c, a)):
                adjacency.setdefault(p, {})[q] = None
                adjacency.setdefault(q, {})[p] = None

        return {site: list(others) for site, others in adjacency.items()}

    @staticmethod
    def _sort_around(site: Point, centers: List[Point]) -> List[Point]:
        """Order points counter-clockwise by angle around the site."""
        if not centers:
            return []
        xy = np.array([(c.x, c.y) for c in centers], dtype=np.float64)
        angles = np.arctan2(xy[:, 1] - site.y, xy[:, 0] - site.x)
        order = np.argsort(angles, kind="stable")
        return [centers[i] for i in order]
