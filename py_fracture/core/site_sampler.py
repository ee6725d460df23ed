"""Interior site generation for a boundary polygon."""

from typing import List, Optional, Sequence

import structlog

from ..config import FractureSettings, settings as default_settings
from .alea_prng import AleaPRNG
from .polygon_utils import nearest_point_on_polygon, point_in_polygon, polygon_bounds
from .primitives import Bounds, Point

logger = structlog.get_logger()


class SiteSampler:
    """
    Places Voronoi sites inside a polygon by rejection sampling.

    Candidates are drawn uniformly in the bounding box and kept only if they
    fall inside the polygon. With jitter enabled an accepted point is pushed by
    a random vector of length <= jitter; if that lands outside the polygon the
    point is clamped onto the nearest boundary edge instead of being thrown
    away. Points closer than the dedup distance to an earlier site are
    rejected so the triangulator never sees near-coincident input.

    The same seed, jitter and polygon always give the same sites.
    """

    def __init__(self, seed: int, jitter: float = 0.0,
                 settings: Optional[FractureSettings] = None):
        if jitter < 0:
            raise ValueError(f"jitter must be >= 0, got {jitter}")
        self.seed = seed
        self.jitter = jitter
        self.settings = settings or default_settings
        self._prng = AleaPRNG(seed)

    def dedup_epsilon(self, bounds: Bounds) -> float:
        return max(
            self.settings.dedup_floor,
            min(bounds.width, bounds.height) * self.settings.dedup_ratio,
        )

    def max_attempts(self, count: int) -> int:
        return max(self.settings.min_sample_attempts, count * self.settings.attempts_per_site)

    def sample(self, polygon: Sequence[Point], count: int,
               bounds: Optional[Bounds] = None) -> List[Point]:
        """
        Place up to `count` sites inside the polygon.

        Args:
            polygon: Simple boundary polygon (any winding)
            count: Target number of sites
            bounds: Bounding box of the polygon, computed if omitted

        Returns:
            The placed sites in placement order. Fewer than `count` is a
            valid outcome when the attempt budget runs out.
        """
        if count <= 0:
            return []

        bounds = bounds or polygon_bounds(polygon)
        epsilon = self.dedup_epsilon(bounds)
        threshold = epsilon * epsilon
        attempts = self.max_attempts(count)

        sites: List[Point] = []
        while len(sites) < count and attempts > 0:
            attempts -= 1

            candidate = Point(
                self._prng.uniform(bounds.min_x, bounds.max_x),
                self._prng.uniform(bounds.min_y, bounds.max_y),
            )
            if not point_in_polygon(candidate, polygon):
                continue

            if self.jitter > 0:
                candidate = self._jitter(candidate, polygon)

            if any(site.distance_squared(candidate) <= threshold for site in sites):
                continue

            sites.append(candidate)

        if len(sites) < count:
            logger.warning("Fewer sites placed than requested",
                           requested=count, placed=len(sites), seed=self.seed)
        else:
            logger.debug("Sites placed", count=len(sites), seed=self.seed)

        return sites

    def _jitter(self, point: Point, polygon: Sequence[Point]) -> Point:
        dx, dy = self._prng.unit_disc(self.jitter)
        moved = Point(point.x + dx, point.y + dy)
        if point_in_polygon(moved, polygon):
            return moved
        return nearest_point_on_polygon(moved, polygon)
