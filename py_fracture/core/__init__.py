"""Geometry core: sites, Delaunay, Voronoi, clipping and the fracture pipeline."""

from .alea_prng import AleaPRNG
from .delaunay import DelaunayTriangulator
from .errors import (
    ClipperFailure,
    DegenerateCell,
    FractureError,
    InsufficientSites,
    InvalidGeometry,
)
from .fracture_analysis import FractureReport, analyze_fracture, validate_fragments
from .fracture_pipeline import (
    FractureContext,
    FractureOptions,
    FracturePipeline,
    FractureResult,
    FractureStats,
    FractureStatus,
    Fragment,
    SiteFragments,
    fracture,
)
from .polygon_clipper import ClipOutcome, PolygonClipper
from .primitives import Bounds, Edge, Point, Site, Triangle, orientation
from .site_sampler import SiteSampler
from .voronoi_builder import VoronoiBuilder, VoronoiCell

__all__ = ['AleaPRNG', 'Bounds', 'ClipOutcome', 'ClipperFailure', 'DegenerateCell',
           'DelaunayTriangulator', 'Edge', 'FractureContext', 'FractureError',
           'FractureOptions', 'FracturePipeline', 'FractureReport', 'FractureResult',
           'FractureStats', 'FractureStatus', 'Fragment', 'InsufficientSites',
           'InvalidGeometry', 'Point', 'PolygonClipper', 'Site', 'SiteFragments',
           'SiteSampler', 'Triangle', 'VoronoiBuilder', 'VoronoiCell',
           'analyze_fracture', 'fracture', 'orientation', 'validate_fragments']
