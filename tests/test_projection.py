"""Tests for ``slippyglobe.projection`` — cells, mercator rows, sphere math."""

from __future__ import annotations

import math

import pytest

from slippyglobe.models import Projection
from slippyglobe.projection import (
    cell_bounds,
    find_cell,
    grid_size,
    mercator_y_scale,
    mercator_y_scale_array,
    mercator_y_scale_clamped,
    mercator_y_scale_invert,
    polar_to_world,
    polar_to_world_array,
    world_to_polar,
)
from slippyglobe.tile_grid import generate_level

PROJECTIONS = [Projection.EQUIRECTANGULAR, Projection.MERCATOR]


def _web_mercator_lat(y: int, level: int) -> float:
    """Latitude of the top edge of web-mercator tile row *y*."""
    n = 2 ** level
    return math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * y / n))))


# ═══════════════════════════════════════════════════════════════════
# Cell bounds
# ═══════════════════════════════════════════════════════════════════

class TestCellBounds:
    @pytest.mark.parametrize("projection", PROJECTIONS)
    def test_level_zero_covers_sphere(self, projection):
        b = cell_bounds(0, 0, 0, projection)
        assert b.lat0 == pytest.approx(-90)
        assert b.lat1 == pytest.approx(90)
        assert (b.lng0, b.lng1) == (-180, 180)

    def test_equirectangular_rows_are_even(self):
        b = cell_bounds(3, 1, 2, Projection.EQUIRECTANGULAR)
        assert (b.lat0, b.lat1) == (0, 45)
        assert (b.lng0, b.lng1) == (90, 180)

    def test_mercator_level_one_splits_at_equator(self):
        north = cell_bounds(0, 0, 1, "mercator")
        south = cell_bounds(0, 1, 1, "mercator")
        assert north.lat0 == pytest.approx(0, abs=1e-12)
        assert north.lat1 == 90
        assert south.lat0 == -90
        assert south.lat1 == pytest.approx(0, abs=1e-12)

    @pytest.mark.parametrize("level", [2, 3, 5])
    def test_mercator_interior_boundaries_match_web_tiles(self, level):
        n = 2 ** level
        for y in range(1, n):
            b = cell_bounds(0, y, level, Projection.MERCATOR)
            assert b.lat1 == pytest.approx(_web_mercator_lat(y, level), abs=1e-9)

    @pytest.mark.parametrize("level", [1, 3, 6])
    def test_mercator_polar_rows_clamped_to_poles(self, level):
        n = 2 ** level
        assert cell_bounds(0, 0, level, "mercator").lat1 == 90
        assert cell_bounds(0, n - 1, level, "mercator").lat0 == -90

    def test_mercator_rows_span_more_latitude_near_equator(self):
        spans = [cell_bounds(0, y, 3, "mercator").lat_len for y in range(8)]
        assert spans[1] < spans[2] < spans[3]
        # symmetric about the equator
        for y in range(4):
            assert spans[y] == pytest.approx(spans[7 - y])
        # the polar row is stretched past mercator's ~85.05° edge
        assert spans[0] > 85.0511 - cell_bounds(0, 0, 3, "mercator").lat0

    def test_out_of_grid_raises(self):
        with pytest.raises(ValueError):
            cell_bounds(4, 0, 2)
        with pytest.raises(ValueError):
            cell_bounds(0, -1, 2)

    def test_negative_level_raises(self):
        with pytest.raises(ValueError, match="level"):
            grid_size(-1)

    def test_unknown_projection_raises(self):
        with pytest.raises(ValueError, match="Unknown projection"):
            cell_bounds(0, 0, 0, "gnomonic")


# ═══════════════════════════════════════════════════════════════════
# Partition of the sphere
# ═══════════════════════════════════════════════════════════════════

class TestPartition:
    @pytest.mark.parametrize("projection", PROJECTIONS)
    @pytest.mark.parametrize("level", range(0, 7))
    def test_columns_and_rows_cover_sphere(self, projection, level):
        n = 2 ** level
        tiles = generate_level(level, projection)
        by_key = {(t.x, t.y): t for t in tiles}

        for x in (0, n - 1):
            column = [by_key[(x, y)] for y in range(n)]
            assert sum(t.lat_len for t in column) == pytest.approx(180)
            # rows are contiguous, north to south
            for upper, lower in zip(column, column[1:]):
                assert upper.bounds.lat0 == pytest.approx(lower.bounds.lat1)
            assert column[0].bounds.lat1 == pytest.approx(90)
            assert column[-1].bounds.lat0 == pytest.approx(-90)

        for y in (0, n - 1):
            row = [by_key[(x, y)] for x in range(n)]
            assert sum(t.lng_len for t in row) == pytest.approx(360)
            assert row[0].bounds.lng0 == pytest.approx(-180)
            assert row[-1].bounds.lng1 == pytest.approx(180)


# ═══════════════════════════════════════════════════════════════════
# find_cell
# ═══════════════════════════════════════════════════════════════════

class TestFindCell:
    @pytest.mark.parametrize("projection", PROJECTIONS)
    @pytest.mark.parametrize("level", range(0, 7))
    def test_centroid_maps_back_to_its_cell(self, projection, level):
        for tile in generate_level(level, projection):
            assert find_cell(level, projection, tile.lng, tile.lat) == (tile.x, tile.y)

    def test_clamps_to_grid(self):
        assert find_cell(3, "mercator", 180, 0) == (7, 4)
        assert find_cell(3, "mercator", -200, 90) == (0, 0)
        assert find_cell(3, "mercator", 0, -90) == (4, 7)
        assert find_cell(3, "equirectangular", 0, -90) == (4, 7)

    def test_mercator_high_latitude_lands_in_polar_row(self):
        # Beyond mercator's ~85.05° limit everything belongs to row 0
        assert find_cell(5, "mercator", 0, 88)[1] == 0
        assert find_cell(5, "mercator", 0, -88)[1] == 31


# ═══════════════════════════════════════════════════════════════════
# Mercator scale
# ═══════════════════════════════════════════════════════════════════

class TestMercatorScale:
    def test_equator_is_fixed_point(self):
        assert mercator_y_scale(0.5) == pytest.approx(0.5)
        assert mercator_y_scale_invert(0.5) == pytest.approx(0.5)

    def test_inverse(self):
        for m in [0.05, 0.2, 0.4, 0.6, 0.8, 0.95]:
            assert mercator_y_scale(mercator_y_scale_invert(m)) == pytest.approx(m)

    def test_poles_are_finite(self):
        assert math.isfinite(mercator_y_scale(0.0))
        assert math.isfinite(mercator_y_scale(1.0))
        assert mercator_y_scale(0.0) < 0
        assert mercator_y_scale(1.0) > 1

    def test_array_matches_scalar(self):
        rel = [0.0, 0.03, 0.25, 0.5, 0.8, 1.0]
        raw = mercator_y_scale_array(rel)
        clamped = mercator_y_scale_array(rel, clamp=True)
        for r, a, c in zip(rel, raw, clamped):
            assert a == pytest.approx(mercator_y_scale(r))
            assert c == pytest.approx(mercator_y_scale_clamped(r))
        assert clamped.min() >= 0 and clamped.max() <= 1


# ═══════════════════════════════════════════════════════════════════
# Sphere ↔ Cartesian
# ═══════════════════════════════════════════════════════════════════

class TestPolarWorld:
    def test_axes(self):
        assert polar_to_world(0, 0, 1) == pytest.approx((0, 0, 1), abs=1e-12)
        assert polar_to_world(0, 90, 1) == pytest.approx((1, 0, 0), abs=1e-12)
        assert polar_to_world(90, 0, 2) == pytest.approx((0, 2, 0), abs=1e-12)

    def test_round_trip(self):
        for lat in range(-85, 90, 17):
            for lng in range(-175, 180, 25):
                x, y, z = polar_to_world(lat, lng, 3.5)
                lat2, lng2, r = world_to_polar(x, y, z)
                assert lat2 == pytest.approx(lat, abs=1e-9)
                assert lng2 == pytest.approx(lng, abs=1e-9)
                assert r == pytest.approx(3.5)

    def test_longitude_normalised(self):
        for lng in (-179.5, -170, -91, 179.5):
            _, lng2, _ = world_to_polar(*polar_to_world(10, lng))
            assert -180 <= lng2 <= 180
            assert lng2 == pytest.approx(lng)

    def test_origin_raises(self):
        with pytest.raises(ValueError):
            world_to_polar(0, 0, 0)

    def test_array_matches_scalar(self):
        lats = [0, 45, -30]
        lngs = [10, -120, 170]
        arr = polar_to_world_array(lats, lngs, 2.0)
        assert arr.shape == (3, 3)
        for row, lat, lng in zip(arr, lats, lngs):
            assert tuple(row) == pytest.approx(polar_to_world(lat, lng, 2.0))
