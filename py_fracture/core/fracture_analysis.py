"""
Checks and summaries for fracture results.

Used by tests and by hosts that want to verify that a fracture covered its
boundary without holes or overlaps before handing fragments on.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import structlog

from ..config import settings as default_settings
from .fracture_pipeline import Fragment, FractureResult
from .polygon_utils import (
    as_polygon,
    is_simple,
    point_in_polygon,
    polygon_area,
    signed_area,
)

logger = structlog.get_logger()


@dataclass
class FractureReport:
    """Area bookkeeping for one fracture result."""
    boundary_area: float
    fragment_area: float
    coverage: float  # fragment_area / boundary_area
    fragment_count: int
    site_count: int
    fragments_per_site: float
    sites_without_fragments: int
    min_fragment_area: float
    max_fragment_area: float

    def covers(self, tolerance: float = 1e-3) -> bool:
        """True if fragment areas sum to the boundary area within a relative tolerance."""
        return abs(self.coverage - 1.0) <= tolerance


def analyze_fracture(result: FractureResult, boundary) -> FractureReport:
    """
    Summarise how well a result partitions its boundary.

    Args:
        result: Output of FracturePipeline.run
        boundary: The boundary passed to run

    Returns:
        FractureReport
    """
    boundary_area = polygon_area(as_polygon(boundary))
    areas = [fragment.area for fragment in result.fragments]
    fragment_area = sum(areas)
    covered_sites = {fragment.site for fragment in result.fragments}

    report = FractureReport(
        boundary_area=boundary_area,
        fragment_area=fragment_area,
        coverage=fragment_area / boundary_area if boundary_area > 0 else 0.0,
        fragment_count=len(result.fragments),
        site_count=len(result.sites),
        fragments_per_site=len(result.fragments) / len(result.sites) if result.sites else 0.0,
        sites_without_fragments=sum(1 for site in result.sites if site not in covered_sites),
        min_fragment_area=min(areas) if areas else 0.0,
        max_fragment_area=max(areas) if areas else 0.0,
    )

    logger.debug("Fracture analysed", coverage=round(report.coverage, 6),
                 fragments=report.fragment_count)
    return report


def validate_fragments(fragments: Sequence[Fragment],
                       min_area: Optional[float] = None) -> List[str]:
    """
    Check fragments against the output guarantees.

    Args:
        fragments: Fragments to check
        min_area: Smallest acceptable area, defaults to settings.min_fragment_area

    Returns:
        Human-readable issues; empty when every fragment is valid
    """
    if min_area is None:
        min_area = default_settings.min_fragment_area

    issues = []
    per_site = {}
    for fragment in fragments:
        per_site[fragment.site] = per_site.get(fragment.site, 0) + 1

    for i, fragment in enumerate(fragments):
        polygon = fragment.polygon
        if len(polygon) < 3:
            issues.append(f"Fragment {i} has only {len(polygon)} vertices")
            continue

        area = signed_area(polygon)
        if area <= 0:
            issues.append(f"Fragment {i} is not counter-clockwise (signed area {area:.6g})")
        if abs(area) < min_area:
            issues.append(f"Fragment {i} area {abs(area):.3g} is below {min_area:.3g}")
        if not is_simple(polygon):
            issues.append(f"Fragment {i} outline self-intersects")

        # A site split across several fragments lies in at most one of them
        if per_site[fragment.site] == 1 and not point_in_polygon(fragment.site, polygon):
            issues.append(f"Fragment {i} does not contain its site {fragment.site}")

    return issues
