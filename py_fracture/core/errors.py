"""
Error taxonomy for the fracture core.

Everything here is recoverable at the pipeline level. Only InvalidGeometry
escapes to callers (bad boundary input or a Triangle built from coincident
points); the others are caught where they are raised and turned into counts
or a structured result.
"""


class FractureError(Exception):
    """Base class for all fracture errors."""


class InvalidGeometry(FractureError, ValueError):
    """Input geometry cannot be used (too few vertices, coincident points)."""


class InsufficientSites(FractureError):
    """Fewer than 3 sites could be placed inside the boundary."""

    def __init__(self, placed: int, requested: int):
        self.placed = placed
        self.requested = requested
        super().__init__(
            f"Only {placed} of {requested} sites could be placed; at least 3 are required"
        )


class DegenerateCell(FractureError):
    """A clipped cell collapsed below 3 vertices or near-zero area."""


class ClipperFailure(FractureError):
    """The integer Boolean intersection could not be computed."""
