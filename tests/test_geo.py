"""
Unit Tests for Geo Module (src/geo)

Tests region/bounding-box conversions, zoom resolution and viewport fitting.
"""

import math

import pytest

from src.geo.regions import (
    EXPANSION_FACTOR,
    MIN_DELTA,
    BoundingBox,
    Region,
    bounding_box_to_region,
    normalize_region,
    region_from_points,
    region_to_bounding_box,
)
from src.geo.viewport import (
    EdgePadding,
    bounds_for_zoom,
    fit_region_to_coordinates,
    fit_zoom,
    is_zoom_level_changed,
    lat_to_y,
    lng_to_x,
    resolve_region_zoom,
    resolve_zoom,
    x_to_lng,
    y_to_lat,
)
from src.tools.errors import EmptyInputError


# ==============================================================================
# Region <-> Bounding Box
# ==============================================================================

class TestRegionToBoundingBox:
    """Test bbox derivation from regions."""

    def test_basic_box(self):
        """Test west/south/east/north from centre and deltas."""
        bbox = region_to_bounding_box(Region(10.0, 20.0, 2.0, 3.0))
        assert bbox == BoundingBox(west=17.0, south=8.0, east=23.0, north=12.0)

    def test_negative_longitude_delta_wraps(self):
        """A negative delta signals an antimeridian wrap and gains 360 degrees."""
        bbox = region_to_bounding_box(Region(0.0, 170.0, 5.0, -350.0))
        assert bbox.west == pytest.approx(160.0)
        assert bbox.east == pytest.approx(180.0)
        assert bbox.west < bbox.east

    def test_zero_deltas_are_lifted(self):
        """Test that zero deltas still produce a non-empty box."""
        bbox = region_to_bounding_box(Region(51.5, -0.12, 0.0, 0.0))
        assert bbox.west < bbox.east
        assert bbox.south < bbox.north
        assert bbox.width == pytest.approx(2 * MIN_DELTA)

    def test_non_finite_deltas_do_not_raise(self):
        """Test that NaN and inf deltas are normalised instead of raising."""
        bbox = region_to_bounding_box(Region(0.0, 0.0, float("nan"), float("inf")))
        assert all(math.isfinite(edge) for edge in bbox.as_wsen())
        assert bbox.west < bbox.east

    def test_normalize_keeps_valid_region(self):
        """Test that a well-formed region passes normalisation unchanged."""
        region = Region(51.5, -0.12, 0.3, 0.4)
        assert normalize_region(region) == region


class TestBoundingBoxToRegion:
    """Test the spherical-midpoint inverse."""

    def test_symmetric_box_centre(self):
        """Test the centre of a box symmetric about the origin."""
        region = bounding_box_to_region(BoundingBox(-10.0, -10.0, 10.0, 10.0))
        assert region.latitude == pytest.approx(0.0, abs=1e-9)
        assert region.longitude == pytest.approx(0.0, abs=1e-9)

    def test_deltas_are_full_spans(self):
        """Test that region deltas are the full box spans."""
        region = bounding_box_to_region(BoundingBox(-10.0, -5.0, 10.0, 5.0))
        assert region.latitude_delta == pytest.approx(10.0)
        assert region.longitude_delta == pytest.approx(20.0)

    @pytest.mark.parametrize(
        "region",
        [
            Region(51.5117, -0.1240, 0.01, 0.01),
            Region(-33.8688, 151.2093, 0.02, 0.03),
            Region(0.0, 0.0, 15.0, 25.0),
        ],
    )
    def test_round_trip_recovers_centre(self, region):
        """Test region to box to region recovers the centre."""
        back = bounding_box_to_region(region_to_bounding_box(region))
        assert back.latitude == pytest.approx(region.latitude, abs=1e-4)
        assert back.longitude == pytest.approx(region.longitude, abs=1e-4)

    def test_high_latitude_midpoint_is_spherical(self):
        """Near the pole the great-circle midpoint sits poleward of the flat average."""
        region = bounding_box_to_region(BoundingBox(-60.0, 70.0, 60.0, 80.0))
        assert region.latitude > 75.0


class TestRegionFromPoints:
    """Test enclosing-region computation."""

    def test_single_point_has_zero_deltas(self):
        """Test that a single point yields a zero-delta region."""
        region = region_from_points([(-1.2, 54.1)])
        assert region.latitude == pytest.approx(54.1)
        assert region.longitude == pytest.approx(-1.2)
        assert region.latitude_delta == 0.0
        assert region.longitude_delta == 0.0

    def test_expansion_factor(self):
        """Test that point spans are doubled into region deltas."""
        region = region_from_points([(0.0, 0.0), (2.0, 4.0)])
        assert region.longitude == pytest.approx(1.0)
        assert region.latitude == pytest.approx(2.0)
        assert region.longitude_delta == pytest.approx(2.0 * EXPANSION_FACTOR)
        assert region.latitude_delta == pytest.approx(4.0 * EXPANSION_FACTOR)

    def test_empty_input_raises(self):
        """Test EmptyInputError on no points."""
        with pytest.raises(EmptyInputError):
            region_from_points([])

    def test_empty_input_is_value_error(self):
        """Test that empty input is also catchable as ValueError."""
        with pytest.raises(ValueError):
            region_from_points(iter(()))


# ==============================================================================
# Zoom Resolver
# ==============================================================================

class TestMercator:
    """Test projection helpers."""

    @pytest.mark.parametrize("lng", [-180.0, -45.5, 0.0, 139.7671])
    def test_longitude_round_trip(self, lng):
        """Test longitude to Mercator x and back."""
        assert x_to_lng(lng_to_x(lng)) == pytest.approx(lng)

    @pytest.mark.parametrize("lat", [-60.0, 0.0, 35.6812, 51.5117])
    def test_latitude_round_trip(self, lat):
        """Test latitude to Mercator y and back."""
        assert y_to_lat(lat_to_y(lat)) == pytest.approx(lat)

    def test_north_is_up(self):
        """Test that Mercator y grows southwards."""
        assert lat_to_y(60.0) < lat_to_y(0.0) < lat_to_y(-60.0)


class TestResolveZoom:
    """Test zoom resolution for bbox + pixel viewport."""

    @pytest.mark.parametrize("size", [(375, 812), (1024, 768), (10, 10), (4000, 3000)])
    def test_world_scale_returns_min_zoom(self, size):
        """Test that world-scale regions resolve to min zoom at any pixel size."""
        bbox = region_to_bounding_box(Region(20.0, 0.0, 10.0, 50.0))
        assert resolve_zoom(bbox, size[0], size[1], min_zoom=2, max_zoom=18) == 2

    def test_threshold_is_inclusive(self):
        """Test that a delta exactly at the world-scale threshold counts as world scale."""
        bbox = region_to_bounding_box(Region(0.0, 0.0, 10.0, 40.0))
        assert resolve_zoom(bbox, 375, 812, min_zoom=3) == 3

    def test_city_view(self, london_region):
        """Test zoom for a city-sized region on a phone screen."""
        _, zoom = resolve_region_zoom(london_region, 375, 812)
        assert zoom == 12

    def test_halving_delta_adds_one_zoom(self, london_region):
        """Test that halving the region adds exactly one zoom level."""
        closer = Region(
            london_region.latitude, london_region.longitude,
            london_region.latitude_delta / 2, london_region.longitude_delta / 2,
        )
        _, zoom_far = resolve_region_zoom(london_region, 375, 812)
        _, zoom_near = resolve_region_zoom(closer, 375, 812)
        assert zoom_near == zoom_far + 1

    def test_tiny_box_clamps_to_max_zoom(self):
        """Test clamping of very small boxes to max zoom."""
        bbox = BoundingBox(0.0, 0.0, 1e-9, 1e-9)
        assert resolve_zoom(bbox, 375, 812, min_zoom=0, max_zoom=16) == 16

    @pytest.mark.parametrize("delta", [1e-6, 0.001, 0.1, 1.0, 10.0, 39.9, 45.0, 120.0])
    def test_always_within_bounds(self, delta):
        """Test that resolved zoom stays within min/max for any delta."""
        bbox = region_to_bounding_box(Region(10.0, 10.0, delta, delta))
        zoom = resolve_zoom(bbox, 375, 812, min_zoom=1, max_zoom=15)
        assert 1 <= zoom <= 15

    def test_fit_zoom_inverts_bounds_for_zoom(self):
        """Test that fitting the box visible at a zoom gives that zoom back."""
        bbox = bounds_for_zoom((-0.124, 51.5117), 10, 512, 512)
        assert fit_zoom(bbox, 512, 512) == pytest.approx(10.0, abs=1e-6)

    def test_zoom_level_changed(self, london_region):
        """Test detecting integer zoom changes between regions."""
        closer = Region(london_region.latitude, london_region.longitude, 0.025, 0.025)
        assert is_zoom_level_changed(london_region, closer, 375, 812)
        assert not is_zoom_level_changed(london_region, london_region, 375, 812)

    def test_world_scale_regions_share_zoom(self):
        """Test that two world-scale regions never report a zoom change."""
        a = Region(0.0, 0.0, 30.0, 45.0)
        b = Region(10.0, 50.0, 60.0, 70.0)
        assert not is_zoom_level_changed(a, b, 375, 812)


# ==============================================================================
# Viewport Fitting
# ==============================================================================

class TestBoundsForZoom:
    """Test bbox visible around a centre at a zoom."""

    def test_width_matches_tile_math(self):
        """Test the visible longitude span at a given zoom."""
        bbox = bounds_for_zoom((0.0, 0.0), 10, 512, 512)
        assert bbox.width == pytest.approx(360.0 * 512 / (256 * 2 ** 10))

    def test_centred(self):
        """Test that the visible box is centred on the given coordinate."""
        bbox = bounds_for_zoom((139.7671, 35.6812), 12, 400, 300)
        assert (bbox.west + bbox.east) / 2 == pytest.approx(139.7671)
        assert bbox.south < 35.6812 < bbox.north


class TestFitRegion:
    """Test framing coordinates with edge padding."""

    def test_padding_expands_linearly(self):
        """Test margins grow in proportion to padding pixels."""
        region = fit_region_to_coordinates(
            [(0.0, 0.0), (1.0, 1.0)], 300, 300, EdgePadding(50, 50, 50, 50)
        )
        bbox = region_to_bounding_box(region)
        # 1 degree spread over the 200 unpadded pixels -> 0.25 degree margins
        assert bbox.west == pytest.approx(-0.25)
        assert bbox.east == pytest.approx(1.25)
        assert bbox.south == pytest.approx(-0.25)
        assert bbox.north == pytest.approx(1.25)

    def test_asymmetric_padding_shifts_centre(self):
        """Test that left-only padding moves the centre west."""
        region = fit_region_to_coordinates(
            [(0.0, 0.0), (1.0, 1.0)], 300, 300, EdgePadding(top=0, right=0, bottom=0, left=100)
        )
        assert region.longitude < 0.5
        assert region.latitude == pytest.approx(0.5)

    def test_no_padding_is_tight(self):
        """Test that zero padding frames the coordinates exactly."""
        region = fit_region_to_coordinates(
            [(10.0, 20.0), (12.0, 21.0)], 300, 300, EdgePadding.from_value(None)
        )
        bbox = region_to_bounding_box(region)
        assert bbox.as_wsen() == pytest.approx((10.0, 20.0, 12.0, 21.0))

    def test_single_coordinate_has_extent(self):
        """Test that a single coordinate still gets a non-zero region."""
        region = fit_region_to_coordinates([(5.0, 5.0)], 300, 300)
        assert region.longitude_delta > 0
        assert region.latitude_delta > 0

    def test_empty_coordinates_raise(self):
        """Test EmptyInputError when there is nothing to frame."""
        with pytest.raises(EmptyInputError):
            fit_region_to_coordinates([], 300, 300)

    def test_none_means_no_padding(self):
        """Test that padding None frames as tightly as explicit zero padding."""
        coords = [(10.0, 20.0), (12.0, 21.0)]
        assert fit_region_to_coordinates(coords, 300, 300) == fit_region_to_coordinates(
            coords, 300, 300, EdgePadding.from_value(0)
        )


class TestEdgePadding:
    """Test padding construction."""

    def test_scalar(self):
        """Test padding from a single number."""
        assert EdgePadding.from_value(12) == EdgePadding(12, 12, 12, 12)

    def test_mapping_defaults_missing_sides_to_zero(self):
        """Test padding from a partial mapping."""
        pad = EdgePadding.from_value({"top": 10, "left": 4})
        assert pad == EdgePadding(top=10, right=0, bottom=0, left=4)
