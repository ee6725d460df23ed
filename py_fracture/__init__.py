"""
Voronoi fracture of 2D polygons.
"""

from .core import FractureOptions, FracturePipeline, FractureResult, Fragment, Point, fracture

__version__ = "0.1.0"

__all__ = ['FractureOptions', 'FracturePipeline', 'FractureResult', 'Fragment', 'Point', 'fracture']
