"""Tests for the visualize module (rendering to PNG)."""

import tempfile
from pathlib import Path

import pytest

pytest.importorskip("matplotlib")

from slippyglobe.globe import SlippyMapGlobe
from slippyglobe.projection import polar_to_world
from slippyglobe.tile_grid import generate_level
from slippyglobe.visibility import cone_view
from slippyglobe.visualize import _ensure_mpl, draw_tiles, render_coverage_png


@pytest.fixture
def tmp_dir():
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


class TestRenderCoverage:
    def test_renders_level(self, tmp_dir):
        out = render_coverage_png(generate_level(3), tmp_dir / "level3.png", title="Level 3")
        assert out.exists()
        assert out.stat().st_size > 0

    def test_renders_with_camera(self, tmp_dir):
        camera = polar_to_world(20, 40, 1.6)
        globe = SlippyMapGlobe(1.0, tile_source=lambda x, y, level: "tex")
        globe.on_camera_update(cone_view(camera, 60, globe_radius=1.0))
        out = render_coverage_png(
            globe.tiles(),
            tmp_dir / "nested" / "coverage.png",
            camera_position=camera,
            dpi=50,
        )
        assert out.exists()
        assert out.stat().st_size > 0


class TestDrawTiles:
    def test_one_patch_per_tile(self):
        plt, _, _ = _ensure_mpl()
        fig, ax = plt.subplots()
        assert draw_tiles(ax, generate_level(2)) == 16
        assert len(ax.patches) == 16
        plt.close(fig)
