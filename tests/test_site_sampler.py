"""Tests for interior site placement."""

import math

import pytest

from py_fracture.config import FractureSettings
from py_fracture.core.polygon_utils import (
    as_polygon,
    nearest_point_on_polygon,
    point_in_polygon,
    polygon_bounds,
)
from py_fracture.core.site_sampler import SiteSampler


@pytest.fixture
def square():
    return as_polygon([(0, 0), (10, 0), (10, 10), (0, 10)])


@pytest.fixture
def l_shape():
    return as_polygon([(0, 0), (10, 0), (10, 4), (4, 4), (4, 10), (0, 10)])


class TestSiteSampler:
    """Test rejection sampling of sites."""

    def test_places_requested_count(self, square):
        """A roomy square gets every requested site."""
        sites = SiteSampler(seed=1).sample(square, 20)
        assert len(sites) == 20

    def test_sites_inside_polygon(self, l_shape):
        """Sites land inside a concave boundary."""
        sites = SiteSampler(seed=3).sample(l_shape, 30)
        assert len(sites) == 30
        assert all(point_in_polygon(site, l_shape) for site in sites)

    def test_deterministic(self, l_shape):
        """Same seed and parameters give identical sites."""
        a = SiteSampler(seed=99, jitter=0.5).sample(l_shape, 15)
        b = SiteSampler(seed=99, jitter=0.5).sample(l_shape, 15)
        assert a == b

    def test_different_seeds(self, square):
        """Different seeds place different sites."""
        a = SiteSampler(seed=1).sample(square, 10)
        b = SiteSampler(seed=2).sample(square, 10)
        assert a != b

    def test_jitter_keeps_sites_in_polygon(self, l_shape):
        """Jittered sites outside the polygon are clamped onto its boundary."""
        sites = SiteSampler(seed=5, jitter=3.0).sample(l_shape, 25)
        assert len(sites) == 25
        for site in sites:
            if point_in_polygon(site, l_shape):
                continue
            nearest = nearest_point_on_polygon(site, l_shape)
            assert math.sqrt(nearest.distance_squared(site)) < 1e-9

    def test_sites_are_separated(self, square):
        """No two sites are within the dedup epsilon."""
        sampler = SiteSampler(seed=11)
        sites = sampler.sample(square, 50)
        epsilon = sampler.dedup_epsilon(polygon_bounds(square))
        for i, a in enumerate(sites):
            for b in sites[i + 1:]:
                assert a.distance_squared(b) > epsilon * epsilon

    def test_attempt_budget_limits_placement(self, l_shape):
        """Running out of attempts returns fewer sites instead of raising."""
        tight = FractureSettings(min_sample_attempts=1, attempts_per_site=1)
        sites = SiteSampler(seed=4, settings=tight).sample(l_shape, 50)
        assert len(sites) < 50

    def test_zero_count(self, square):
        """Asking for no sites returns none."""
        assert SiteSampler(seed=1).sample(square, 0) == []

    def test_negative_jitter_rejected(self):
        """Negative jitter is rejected."""
        with pytest.raises(ValueError):
            SiteSampler(seed=1, jitter=-0.1)

    def test_budget_and_epsilon(self, square):
        """Attempt budget and dedup epsilon follow the settings."""
        sampler = SiteSampler(seed=1)
        assert sampler.max_attempts(1) == 200
        assert sampler.max_attempts(10) == 1000
        assert sampler.dedup_epsilon(polygon_bounds(square)) == pytest.approx(1e-3)
