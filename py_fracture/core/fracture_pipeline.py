"""
Fracture pipeline: boundary polygon + options -> fragments.

Orchestrates the geometry core for one call:

1. Normalise the boundary to counter-clockwise winding
2. Place sites (SiteSampler) or take the caller's sites
3. Delaunay-triangulate the sites
4. Collect each site's Delaunay neighbours
5. Bound each site's cell by clipping a large rectangle against the
   perpendicular bisector to every neighbour
6. Clip each bounded cell against the boundary, with cleanup, repair and
   degeneracy filtering

Steps 1-4 are `prepare`, steps 5-6 are `process_site`. The per-site step
only reads the immutable FractureContext, so it can be chunked by the caller
or fanned out across threads.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import structlog

from ..config import FractureSettings, settings as default_settings
from .delaunay import DelaunayTriangulator
from .errors import InsufficientSites
from .polygon_clipper import PolygonClipper
from .polygon_utils import (
    as_polygon,
    ensure_ccw,
    is_convex,
    nearest_point_on_polygon,
    point_in_polygon,
    polygon_area,
    polygon_bounds,
    polygon_centroid,
)
from .primitives import Bounds, Point, Triangle
from .site_sampler import SiteSampler
from .voronoi_builder import VoronoiBuilder, VoronoiCell

logger = structlog.get_logger()


class FractureStatus(Enum):
    """Outcome of a fracture call."""
    COMPLETE = "complete"
    PARTIAL = "partial"  # at least 3 sites, but fewer than requested
    INSUFFICIENT_SITES = "insufficient_sites"
    NO_FRAGMENTS = "no_fragments"


@dataclass
class FractureOptions:
    """Per-call fracture parameters."""
    site_count: int = 8
    jitter: float = 0.2
    seed: int = 12345
    max_workers: int = 1
    recursion_depth: int = 0
    recursion_site_count: int = 6

    def __post_init__(self):
        if self.site_count < 1:
            raise ValueError(f"site_count must be positive, got {self.site_count}")
        if self.jitter < 0:
            raise ValueError(f"jitter must be >= 0, got {self.jitter}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.recursion_depth < 0:
            raise ValueError(f"recursion_depth must be >= 0, got {self.recursion_depth}")
        if self.recursion_site_count < 1:
            raise ValueError(f"recursion_site_count must be positive, got {self.recursion_site_count}")


@dataclass(frozen=True)
class Fragment:
    """One output polygon and the site that generated it."""
    site: Point
    polygon: Tuple[Point, ...]
    depth: int = 0

    @property
    def area(self) -> float:
        return polygon_area(self.polygon)

    @property
    def centroid(self) -> Point:
        return polygon_centroid(self.polygon)

    def as_pair(self) -> Tuple[Point, List[Point]]:
        return (self.site, list(self.polygon))


@dataclass
class FractureStats:
    """Timings (milliseconds) and aggregate counters for a fracture call."""
    site_generation_ms: float = 0.0
    triangulation_ms: float = 0.0
    clipping_ms: float = 0.0
    total_ms: float = 0.0

    requested_sites: int = 0
    placed_sites: int = 0
    triangles: int = 0
    cells_processed: int = 0
    fragments: int = 0
    degenerate_dropped: int = 0
    repaired_splits: int = 0
    clipper_fallbacks: int = 0
    fallback_neighbor_sites: int = 0

    def merge(self, other: "FractureStats") -> None:
        """Add another call's timings and counters to this one."""
        for f in fields(self):
            setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))


@dataclass(frozen=True, eq=False)
class FractureContext:
    """
    Everything the per-site step needs, computed once per call.

    Never mutated after `prepare` returns, so any number of threads may read
    it at once. The neighbour map is a read-only view. Contexts compare and
    hash by identity.
    """
    boundary: Tuple[Point, ...]
    boundary_is_convex: bool
    sites: Tuple[Point, ...]
    triangles: Tuple[Triangle, ...]
    neighbors: Mapping[Point, Tuple[Point, ...]]
    voronoi_cells: Tuple[VoronoiCell, ...]
    clip_rect: Bounds
    requested_sites: int
    depth: int = 0

    @property
    def has_enough_sites(self) -> bool:
        return len(self.sites) >= 3


@dataclass
class SiteFragments:
    """Result of processing one site."""
    index: int
    site: Point
    fragments: List[Fragment] = field(default_factory=list)
    dropped: int = 0
    repaired: int = 0
    used_fallback: bool = False
    neighbor_fallback: bool = False


@dataclass
class FractureResult:
    """Fragments of one fracture call plus status and statistics."""
    fragments: List[Fragment]
    sites: List[Point]
    status: FractureStatus
    stats: FractureStats

    @property
    def pairs(self) -> List[Tuple[Point, List[Point]]]:
        """(site, polygon) pairs, one per fragment."""
        return [fragment.as_pair() for fragment in self.fragments]

    def by_site(self) -> Dict[Point, List[Fragment]]:
        grouped: Dict[Point, List[Fragment]] = {}
        for fragment in self.fragments:
            grouped.setdefault(fragment.site, []).append(fragment)
        return grouped

    def raise_for_status(self) -> None:
        """Raise InsufficientSites if the call could not fracture at all."""
        if self.status == FractureStatus.INSUFFICIENT_SITES:
            raise InsufficientSites(self.stats.placed_sites, self.stats.requested_sites)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


def _child_seed(seed: int, depth: int, index: int) -> int:
    """Seed for re-fracturing fragment `index` at recursion level `depth`."""
    return ((seed * 31 + depth) ^ (0x9E3779B1 * (index + 1))) & 0xFFFFFFFF


def _unique_sites(sites: Iterable) -> List[Point]:
    unique: Dict[Point, None] = {}
    for item in sites:
        p = item if isinstance(item, Point) else Point(float(item[0]), float(item[1]))
        unique.setdefault(p, None)
    return list(unique)


class FracturePipeline:
    """Runs the geometry core for one boundary at a time. Holds no per-call state."""

    def __init__(self, settings: Optional[FractureSettings] = None):
        self.settings = settings or default_settings
        self.triangulator = DelaunayTriangulator(self.settings)
        self.voronoi = VoronoiBuilder()
        self.clipper = PolygonClipper(self.settings)

    def prepare(
        self,
        boundary: Iterable,
        options: Optional[FractureOptions] = None,
        sites: Optional[Iterable] = None,
        stats: Optional[FractureStats] = None,
        depth: int = 0,
    ) -> FractureContext:
        """
        Normalise the boundary, place sites, triangulate and find neighbours.

        Args:
            boundary: Simple polygon as Points, (x, y) pairs or an (N, 2) array
            options: Fracture parameters, defaults if omitted
            sites: Use these sites instead of sampling. Exact duplicates are
                removed, as are sites outside the boundary
            stats: Filled with timings and counters if given
            depth: Recursion level stamped on the fragments

        Returns:
            Immutable context for `process_site`

        Raises:
            InvalidGeometry: if the boundary has fewer than 3 distinct vertices
        """
        options = options or FractureOptions()
        stats = stats if stats is not None else FractureStats()

        ccw_boundary = ensure_ccw(as_polygon(boundary))
        boundary_bounds = polygon_bounds(ccw_boundary)

        start = time.perf_counter()
        if sites is not None:
            given = _unique_sites(sites)
            requested = len(given)
            placed = self._sites_in_boundary(given, ccw_boundary)
            if len(placed) < requested:
                logger.warning("Discarded explicit sites outside the boundary",
                               discarded=requested - len(placed), kept=len(placed))
        else:
            sampler = SiteSampler(options.seed, options.jitter, self.settings)
            placed = sampler.sample(ccw_boundary, options.site_count, boundary_bounds)
            requested = options.site_count
        stats.site_generation_ms += _elapsed_ms(start)
        stats.requested_sites += requested
        stats.placed_sites += len(placed)

        start = time.perf_counter()
        triangles = self.triangulator.triangulate(placed)
        neighbors = self.voronoi.neighbors(triangles, placed)
        cells = self.voronoi.build(triangles, placed)
        stats.triangulation_ms += _elapsed_ms(start)
        stats.triangles += len(triangles)

        rect_bounds = boundary_bounds
        if placed:
            rect_bounds = rect_bounds.union(polygon_bounds(placed))
        margin = self.settings.clip_margin_factor * rect_bounds.diagonal + 1.0

        return FractureContext(
            boundary=tuple(ccw_boundary),
            boundary_is_convex=is_convex(ccw_boundary),
            sites=tuple(placed),
            triangles=tuple(triangles),
            neighbors=MappingProxyType({site: tuple(others) for site, others in neighbors.items()}),
            voronoi_cells=tuple(cells),
            clip_rect=rect_bounds.expanded(margin),
            requested_sites=requested,
            depth=depth,
        )

    def _sites_in_boundary(self, sites: Sequence[Point], boundary: Sequence[Point]) -> List[Point]:
        """Sites strictly inside the boundary or within duplicate_epsilon of it."""
        tolerance = self.settings.duplicate_epsilon
        return [
            p for p in sites
            if point_in_polygon(p, boundary)
            or nearest_point_on_polygon(p, boundary).distance_squared(p) <= tolerance * tolerance
        ]

    def bounded_cell(self, context: FractureContext, index: int) -> Tuple[List[Point], bool]:
        """
        Cell of site `index`, bounded by the clip rectangle.

        Returns:
            (cell polygon, whether every other site had to stand in for the
            missing Delaunay neighbours)
        """
        site = context.sites[index]
        neighbors: Sequence[Point] = context.neighbors.get(site, ())
        neighbor_fallback = False
        if not neighbors:
            neighbors = [other for other in context.sites if other != site]
            neighbor_fallback = True

        cell = context.clip_rect.corners()
        for other in neighbors:
            # Bisector normal points from the site towards the neighbour
            normal = (other.x - site.x, other.y - site.y)
            cell = self.clipper.clip_half_plane(cell, site.midpoint(other), normal)
            if not cell:
                break
        return cell, neighbor_fallback

    def process_site(self, context: FractureContext, index: int) -> SiteFragments:
        """Bound and clip the cell of one site. Never raises for degenerate cells."""
        site = context.sites[index]
        cell, neighbor_fallback = self.bounded_cell(context, index)
        result = SiteFragments(index=index, site=site, neighbor_fallback=neighbor_fallback)

        outcome = self.clipper.clip_to_boundary(cell, context.boundary, context.boundary_is_convex)
        result.fragments = [
            Fragment(site=site, polygon=tuple(polygon), depth=context.depth)
            for polygon in outcome.polygons
        ]
        result.dropped = outcome.dropped
        result.repaired = outcome.repaired
        result.used_fallback = outcome.used_fallback

        logger.debug("Site processed", index=index, fragments=len(result.fragments),
                     dropped=result.dropped, fallback=result.used_fallback)
        return result

    def iter_site_fragments(self, context: FractureContext) -> Iterator[SiteFragments]:
        """Process sites lazily, in site order."""
        for index in range(len(context.sites)):
            yield self.process_site(context, index)

    def _process_all(self, context: FractureContext, max_workers: int) -> List[SiteFragments]:
        if max_workers > 1 and len(context.sites) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                # map keeps submission order
                return list(executor.map(
                    lambda index: self.process_site(context, index),
                    range(len(context.sites)),
                ))
        return list(self.iter_site_fragments(context))

    def run(
        self,
        boundary: Iterable,
        options: Optional[FractureOptions] = None,
        sites: Optional[Iterable] = None,
        depth: int = 0,
    ) -> FractureResult:
        """
        Fracture a boundary polygon into fragments.

        Args:
            boundary: Simple polygon, any winding, concave allowed
            options: Fracture parameters, defaults if omitted
            sites: Use these sites instead of sampling
            depth: Recursion level stamped on the fragments

        Returns:
            FractureResult; fewer than 3 sites gives status
            INSUFFICIENT_SITES and no fragments rather than an exception

        Raises:
            InvalidGeometry: if the boundary has fewer than 3 distinct vertices
        """
        options = options or FractureOptions()
        stats = FractureStats()
        total_start = time.perf_counter()

        context = self.prepare(boundary, options, sites=sites, stats=stats, depth=depth)

        if not context.has_enough_sites:
            stats.total_ms = _elapsed_ms(total_start)
            logger.warning("Insufficient sites, nothing to fracture",
                           placed=len(context.sites), requested=context.requested_sites)
            return FractureResult(
                fragments=[],
                sites=list(context.sites),
                status=FractureStatus.INSUFFICIENT_SITES,
                stats=stats,
            )

        clip_start = time.perf_counter()
        fragments: List[Fragment] = []
        for site_result in self._process_all(context, options.max_workers):
            fragments.extend(site_result.fragments)
            stats.cells_processed += 1
            stats.degenerate_dropped += site_result.dropped
            stats.repaired_splits += site_result.repaired
            stats.clipper_fallbacks += int(site_result.used_fallback)
            stats.fallback_neighbor_sites += int(site_result.neighbor_fallback)
        stats.clipping_ms = _elapsed_ms(clip_start)
        stats.fragments = len(fragments)
        stats.total_ms = _elapsed_ms(total_start)

        if not fragments:
            status = FractureStatus.NO_FRAGMENTS
        elif len(context.sites) < context.requested_sites:
            status = FractureStatus.PARTIAL
        else:
            status = FractureStatus.COMPLETE

        if stats.clipper_fallbacks:
            logger.warning("Boolean clip failed for some cells, used convex fallback",
                           cells=stats.clipper_fallbacks)

        logger.info("Fracture complete",
                    status=status.value,
                    sites=len(context.sites),
                    triangles=stats.triangles,
                    fragments=stats.fragments,
                    dropped=stats.degenerate_dropped,
                    depth=depth,
                    total_ms=round(stats.total_ms, 2))

        return FractureResult(
            fragments=fragments,
            sites=list(context.sites),
            status=status,
            stats=stats,
        )

    def run_recursive(
        self,
        boundary: Iterable,
        options: Optional[FractureOptions] = None,
        sites: Optional[Iterable] = None,
    ) -> FractureResult:
        """
        Fracture, then re-fracture every fragment up to options.recursion_depth levels.

        Child calls use options.recursion_site_count sites and a seed derived
        from the parent seed, the level and the fragment index, so the whole
        tree is reproducible. A fragment whose re-fracture yields nothing is
        kept unchanged.
        """
        options = options or FractureOptions()
        result = self.run(boundary, options, sites=sites)
        if options.recursion_depth == 0 or not result.fragments:
            return result

        stats = replace(result.stats)
        fragments: List[Fragment] = []
        for index, fragment in enumerate(result.fragments):
            fragments.extend(self._refracture(fragment, options, index,
                                              options.recursion_depth, stats))
        stats.fragments = len(fragments)

        logger.info("Recursive fracture complete", levels=options.recursion_depth,
                    top_level_fragments=len(result.fragments), fragments=len(fragments))
        return replace(result, fragments=fragments, stats=stats)

    def _refracture(self, fragment: Fragment, options: FractureOptions, index: int,
                    remaining: int, stats: FractureStats) -> List[Fragment]:
        if remaining == 0:
            return [fragment]

        child_depth = fragment.depth + 1
        child_options = replace(
            options,
            site_count=options.recursion_site_count,
            seed=_child_seed(options.seed, child_depth, index),
            recursion_depth=remaining - 1,
        )
        child = self.run(fragment.polygon, child_options, depth=child_depth)

        child_stats = replace(child.stats, fragments=0)
        stats.merge(child_stats)

        if not child.fragments:
            return [fragment]

        fragments: List[Fragment] = []
        for child_index, child_fragment in enumerate(child.fragments):
            fragments.extend(self._refracture(child_fragment, child_options, child_index,
                                              remaining - 1, stats))
        return fragments


def fracture(
    boundary: Iterable,
    sites: Optional[Iterable] = None,
    settings: Optional[FractureSettings] = None,
    **options,
) -> FractureResult:
    """
    Fracture a boundary in one call.

    Keyword arguments are FractureOptions fields. Recurses when
    recursion_depth > 0.

    Example:
        result = fracture([(0, 0), (10, 0), (10, 10), (0, 10)], site_count=12, seed=7)
        total = sum(f.area for f in result.fragments)  # ~100.0
    """
    pipeline = FracturePipeline(settings)
    fracture_options = FractureOptions(**options)
    if fracture_options.recursion_depth > 0:
        return pipeline.run_recursive(boundary, fracture_options, sites=sites)
    return pipeline.run(boundary, fracture_options, sites=sites)
