"""Tests for ``slippyglobe.spatial_index`` — volumetric, planar and on-demand."""

from __future__ import annotations

import math

import pytest

from slippyglobe.projection import find_cell, polar_to_world
from slippyglobe.spatial_index import (
    ON_DEMAND,
    PLANAR,
    VOLUMETRIC,
    OnDemandIndex,
    PlanarIndex,
    VolumetricIndex,
    build_index,
    index_kind_for_level,
    surface_window,
)
from slippyglobe.tile_grid import generate_level


def _dist(a, b) -> float:
    return math.sqrt(sum((p - q) ** 2 for p, q in zip(a, b)))


# ═══════════════════════════════════════════════════════════════════
# Volumetric
# ═══════════════════════════════════════════════════════════════════

class TestVolumetricIndex:
    @pytest.fixture
    def index(self):
        return VolumetricIndex(generate_level(3), 2.0)

    def test_centroids_on_sphere(self, index):
        for tile in index.tiles:
            assert _dist(tile.centroid, (0, 0, 0)) == pytest.approx(2.0)

    def test_tiny_radius_finds_own_tile(self, index):
        tile = index.tiles[17]
        assert index.find_within_radius(tile.centroid, 1e-6) == [tile]

    def test_large_radius_finds_everything(self, index):
        assert len(index.find_within_radius((0, 0, 0), 2.5)) == 64

    def test_non_positive_radius_finds_nothing(self, index):
        assert index.find_within_radius((0, 0, 2), 0) == []
        assert index.find_within_radius((0, 0, 2), -1) == []

    def test_matches_brute_force(self, index):
        point = polar_to_world(20, 30, 2.4)
        found = {t.key for t in index.find_within_radius(point, 1.5)}
        expected = {t.key for t in index.tiles if _dist(t.centroid, point) <= 1.5}
        assert found == expected
        assert 0 < len(found) < 64

    def test_search_radius_scales_with_altitude(self, index):
        camera = polar_to_world(0, 0, 3.0)
        assert index.search_radius(camera) == pytest.approx(3.0)
        found = index.candidates(camera)
        assert 0 < len(found) < 64
        assert all(_dist(t.centroid, camera) <= 3.0 + 1e-9 for t in found)


# ═══════════════════════════════════════════════════════════════════
# Planar
# ═══════════════════════════════════════════════════════════════════

class TestPlanarIndex:
    def test_box_query_matches_brute_force(self):
        index = PlanarIndex(generate_level(4), 1.0)
        found = {t.key for t in index.find_within_radius(10, 5, 30, 20)}
        expected = {
            t.key for t in index.tiles
            if abs(t.lng - 10) <= 30 and abs(t.lat - 5) <= 20
        }
        assert found == expected
        assert found

    def test_candidates_use_surface_window(self):
        index = PlanarIndex(generate_level(5), 1.0, surface_degrees=90)
        camera = polar_to_world(0, 0, 1.1)
        found = index.candidates(camera)
        assert found
        assert all(abs(t.lat) <= 9 and abs(t.lng) <= 9 for t in found)


# ═══════════════════════════════════════════════════════════════════
# On-demand
# ═══════════════════════════════════════════════════════════════════

class TestOnDemandIndex:
    @pytest.fixture
    def index(self):
        return OnDemandIndex(10, "mercator", 1.0)

    def test_starts_empty(self, index):
        assert index.tiles == []
        assert len(index) == 0

    def test_window_generates_and_memoises(self, index):
        first = index.find_in_cells(0, 0, 2, 2)
        assert len(first) == 9
        assert len(index) == 9
        again = index.find_in_cells(0, 0, 2, 2)
        assert [a is b for a, b in zip(first, again)] == [True] * 9
        assert len(index) == 9

    def test_overlapping_window_generates_only_missing(self, index):
        first = {(t.x, t.y): t for t in index.find_in_cells(0, 0, 2, 2)}
        # middle cell (2, 2) is known, so cells are filled one by one
        second = index.find_in_cells(1, 1, 3, 3)
        assert len(second) == 9
        assert len(index) == 9 + 5
        for tile in second:
            if (tile.x, tile.y) in first:
                assert tile is first[(tile.x, tile.y)]

    def test_unexplored_window_generated_in_one_pass(self, index):
        index.find_in_cells(0, 0, 2, 2)
        index.find_in_cells(10, 10, 12, 12)
        assert len(index) == 18
        assert index.get(11, 11) is not None
        assert index.get(5, 5) is None

    def test_partially_known_window_reuses_known_tiles(self, index):
        known = index.find_in_cells(3, 3, 3, 3)[0]
        found = index.find_in_cells(0, 0, 4, 4)  # middle (2, 2) unknown
        assert len(found) == 25
        assert len(index) == 25
        assert known in found

    def test_candidates_cover_camera_subpoint(self, index):
        camera = polar_to_world(10, 20, 1.01)
        found = index.candidates(camera)
        assert found
        cell = find_cell(10, "mercator", 20, 10)
        assert cell in {(t.x, t.y) for t in found}
        lng, lat, r_lng, r_lat = surface_window(camera, 1.0, 90)
        for tile in found:
            assert tile.level == 10
            # each generated tile touches the search window
            b = tile.bounds
            assert b.lng1 >= lng - r_lng - 1e-9 and b.lng0 <= lng + r_lng + 1e-9
            assert b.lat1 >= lat - r_lat - 1e-9 and b.lat0 <= lat + r_lat + 1e-9

    def test_non_positive_window_finds_nothing(self, index):
        assert index.find_within_radius(0, 0, 0) == []
        assert len(index) == 0


class TestSurfaceWindow:
    def test_longitude_widened_at_high_latitude(self):
        camera = polar_to_world(60, 30, 1.1)
        lng, lat, r_lng, r_lat = surface_window(camera, 1.0, 90)
        assert (lng, lat) == (pytest.approx(30), pytest.approx(60))
        assert r_lat == pytest.approx(9)
        assert r_lng == pytest.approx(18)


# ═══════════════════════════════════════════════════════════════════
# Strategy policy
# ═══════════════════════════════════════════════════════════════════

class TestIndexPolicy:
    def test_kind_for_level(self):
        assert index_kind_for_level(0) == VOLUMETRIC
        assert index_kind_for_level(7) == VOLUMETRIC
        assert index_kind_for_level(8) == ON_DEMAND
        assert index_kind_for_level(8, 7, 9) == PLANAR
        assert index_kind_for_level(10, 7, 9) == ON_DEMAND

    def test_build_index_classes(self):
        assert isinstance(build_index(2, "mercator", 1.0), VolumetricIndex)
        assert isinstance(
            build_index(3, "mercator", 1.0, max_volumetric_level=2, max_planar_level=3),
            PlanarIndex,
        )
        assert isinstance(build_index(12, "mercator", 1.0), OnDemandIndex)

    def test_build_index_forwards_factors(self):
        index = build_index(1, "mercator", 1.0, camera_factor=5.0)
        assert index.camera_factor == 5.0
        index = build_index(9, "mercator", 1.0, surface_degrees=45.0)
        assert index.surface_degrees == 45.0
