"""Tests for half-plane, convex and Boolean clipping."""

import pytest

from py_fracture.config import FractureSettings
from py_fracture.core.errors import ClipperFailure, DegenerateCell
from py_fracture.core.polygon_clipper import ClipOutcome, PolygonClipper
from py_fracture.core.polygon_utils import as_polygon, is_simple, polygon_area, signed_area
from py_fracture.core.primitives import Point


@pytest.fixture
def clipper():
    return PolygonClipper()


@pytest.fixture
def square():
    return as_polygon([(0, 0), (10, 0), (10, 10), (0, 10)])


@pytest.fixture
def l_shape():
    return as_polygon([(0, 0), (10, 0), (10, 4), (4, 4), (4, 10), (0, 10)])


@pytest.fixture
def u_shape():
    return as_polygon([(0, 0), (10, 0), (10, 10), (7, 10), (7, 3), (3, 3), (3, 10), (0, 10)])


def rect(x0, y0, x1, y1):
    return [Point(x0, y0), Point(x1, y0), Point(x1, y1), Point(x0, y1)]


class TestHalfPlaneClip:
    """Test clipping against a single line."""

    def test_keeps_non_positive_side(self, clipper, square):
        """The half on the normal's negative side is kept."""
        result = clipper.clip_half_plane(square, Point(5, 5), (1.0, 0.0))
        assert polygon_area(result) == pytest.approx(50.0)
        assert all(p.x <= 5.0 for p in result)

    def test_fully_outside(self, clipper, square):
        """A line with the whole square on its positive side removes it."""
        assert clipper.clip_half_plane(square, Point(-1, 0), (1.0, 0.0)) == []

    def test_fully_inside(self, clipper, square):
        """A far line keeps every vertex."""
        result = clipper.clip_half_plane(square, Point(20, 0), (1.0, 0.0))
        assert set(result) == set(square)

    def test_diagonal_line(self, clipper, square):
        """A diagonal cut halves the square and keeps CCW order."""
        result = clipper.clip_half_plane(square, Point(5, 5), (1.0, 1.0))
        assert polygon_area(result) == pytest.approx(50.0)
        assert signed_area(result) > 0

    def test_empty_subject(self, clipper):
        """An empty subject stays empty."""
        assert clipper.clip_half_plane([], Point(0, 0), (1.0, 0.0)) == []


class TestConvexClip:
    """Test Sutherland-Hodgman clipping."""

    def test_overlapping_squares(self, clipper, square):
        """Overlapping squares clip to their shared quarter."""
        result = clipper.clip_convex(square, rect(5, 5, 15, 15))
        assert polygon_area(result) == pytest.approx(25.0)

    def test_clockwise_clip_polygon(self, clipper, square):
        """A clockwise clip polygon is normalised first."""
        result = clipper.clip_convex(square, list(reversed(rect(5, 5, 15, 15))))
        assert polygon_area(result) == pytest.approx(25.0)

    def test_disjoint(self, clipper, square):
        """Disjoint squares clip to nothing."""
        assert clipper.clip_convex(square, rect(20, 20, 30, 30)) == []


class TestIntersect:
    """Test the integer-grid Boolean intersection."""

    def test_concave_clip(self, clipper, l_shape):
        """A concave clip polygon is handled exactly."""
        polygons = clipper.intersect(rect(2, 2, 8, 8), l_shape)
        assert len(polygons) == 1
        assert polygon_area(polygons[0]) == pytest.approx(20.0)

    def test_split_into_pieces(self, clipper, u_shape):
        """A band across a U yields two pieces."""
        polygons = clipper.intersect(rect(-1, 5, 11, 8), u_shape)
        assert len(polygons) == 2
        assert sorted(polygon_area(p) for p in polygons) == pytest.approx([9.0, 9.0])

    def test_rounds_to_grid(self, clipper, square):
        """Coordinates come back snapped to the integer grid."""
        polygons = clipper.intersect(rect(0.00001, 0, 5, 5), square)
        xs = {p.x for p in polygons[0]}
        assert xs == {0.0, 5.0}

    def test_disjoint_is_empty(self, clipper, square):
        """Polygons that do not overlap give an empty result, not a failure."""
        assert clipper.intersect(rect(20, 20, 30, 30), square) == []

    def test_touching_edge_is_empty(self, clipper, square):
        """A shared edge has no area, so no polygon comes back."""
        assert clipper.intersect(rect(10, 0, 20, 10), square) == []

    def test_cell_inside_notch_is_empty(self, clipper, l_shape):
        """A cell that lies in the notch of a concave boundary yields nothing."""
        assert clipper.intersect(rect(5, 5, 9, 9), l_shape) == []

    def test_degenerate_input_raises(self, clipper, square):
        """A two-point subject cannot be intersected."""
        with pytest.raises(ClipperFailure):
            clipper.intersect([Point(0, 0), Point(1, 1)], square)


class TestRepairAndFinalize:
    """Test self-intersection repair and degeneracy filtering."""

    def test_repair_splits_bowtie(self, clipper):
        """A bowtie is split into its two lobes."""
        bowtie = [Point(0, 0), Point(2, 2), Point(2, 0), Point(0, 2)]
        pieces = clipper.repair(bowtie)
        assert len(pieces) == 2
        assert sum(polygon_area(p) for p in pieces) == pytest.approx(2.0)

    def test_finalize_orients_ccw(self, clipper, square):
        """finalize_polygon turns a clockwise square CCW."""
        result = clipper.finalize_polygon(list(reversed(square)))
        assert signed_area(result) == pytest.approx(100.0)

    def test_finalize_rejects_sliver(self, clipper):
        """Collinear vertices collapse and are rejected."""
        with pytest.raises(DegenerateCell):
            clipper.finalize_polygon([Point(0, 0), Point(5, 0), Point(10, 0)])

    def test_finalize_rejects_tiny_area(self):
        """Polygons under min_fragment_area are rejected."""
        clipper = PolygonClipper(FractureSettings(min_fragment_area=1.0))
        with pytest.raises(DegenerateCell):
            clipper.finalize_polygon(rect(0, 0, 0.5, 0.5))


class TestClipToBoundary:
    """Test the full cell-to-boundary clip."""

    def test_convex_boundary(self, clipper, square):
        """A cell overlapping a square clips to one piece."""
        outcome = clipper.clip_to_boundary(rect(-5, -5, 5, 5), square)
        assert isinstance(outcome, ClipOutcome)
        assert len(outcome.polygons) == 1
        assert polygon_area(outcome.polygons[0]) == pytest.approx(25.0)
        assert not outcome.used_fallback

    def test_concave_boundary_multiple_pieces(self, clipper, u_shape):
        """A cell across a U yields two simple CCW pieces."""
        outcome = clipper.clip_to_boundary(list(reversed(rect(-1, 5, 11, 8))), u_shape)
        assert len(outcome.polygons) == 2
        for polygon in outcome.polygons:
            assert signed_area(polygon) > 0
            assert is_simple(polygon)

    def test_fallback_against_convex_boundary(self, clipper, square, monkeypatch):
        """When the Boolean engine fails a convex boundary is clipped exactly."""
        def failing(subject, clip):
            raise ClipperFailure("boom")

        monkeypatch.setattr(clipper, "intersect", failing)
        outcome = clipper.clip_to_boundary(rect(-5, -5, 5, 5), square)
        assert outcome.used_fallback
        assert polygon_area(outcome.polygons[0]) == pytest.approx(25.0)

    def test_fallback_against_concave_boundary_uses_bounds(self, clipper, l_shape, monkeypatch):
        """When the Boolean engine fails a concave boundary falls back to its bounds."""
        def failing(subject, clip):
            raise ClipperFailure("boom")

        monkeypatch.setattr(clipper, "intersect", failing)
        outcome = clipper.clip_to_boundary(rect(2, 2, 8, 8), l_shape, boundary_is_convex=False)
        assert outcome.used_fallback
        # bounding rectangle of the L contains the whole cell
        assert polygon_area(outcome.polygons[0]) == pytest.approx(36.0)

    def test_self_intersecting_result_is_repaired(self, clipper, square, monkeypatch):
        """A bowtie result is repaired into two fragments."""
        bowtie = [Point(0, 0), Point(2, 2), Point(2, 0), Point(0, 2)]
        monkeypatch.setattr(clipper, "intersect", lambda subject, clip: [bowtie])

        outcome = clipper.clip_to_boundary(rect(0, 0, 3, 3), square)
        assert outcome.repaired == 1
        assert len(outcome.polygons) == 2
        assert sum(polygon_area(p) for p in outcome.polygons) == pytest.approx(2.0)
        assert all(signed_area(p) > 0 for p in outcome.polygons)

    def test_degenerate_cell_dropped(self, clipper, square):
        """A two-point cell is counted as dropped."""
        outcome = clipper.clip_to_boundary([Point(0, 0), Point(1, 1)], square)
        assert outcome.polygons == []
        assert outcome.dropped == 1

    def test_disjoint_cell_yields_nothing(self, clipper, square):
        """A cell outside the boundary yields nothing without falling back."""
        outcome = clipper.clip_to_boundary(rect(20, 20, 30, 30), square)
        assert outcome.polygons == []
        assert not outcome.used_fallback
        assert outcome.dropped == 0

    def test_notch_cell_does_not_fall_back_to_bounds(self, clipper, l_shape):
        """A cell in the notch of an L is dropped instead of clipped to the bounding box."""
        outcome = clipper.clip_to_boundary(rect(5, 5, 12, 12), l_shape, boundary_is_convex=False)
        assert outcome.polygons == []
        assert not outcome.used_fallback
