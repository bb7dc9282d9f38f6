#!/usr/bin/env python3
"""Demo: fly a camera towards the globe and back, rendering tile coverage.

Tiles are fetched from a fake source whose futures resolve one camera
update late, so the coverage maps show tiles in every lifecycle state.

Usage:
    python scripts/demo_zoom.py [--lat LAT] [--lng LNG] [--out DIR]
"""

from __future__ import annotations

import argparse
import logging
import sys
from concurrent.futures import Future
from pathlib import Path

# Ensure src/ is on the path when running as a script
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from slippyglobe.globe import SlippyMapGlobe
from slippyglobe.io import save_json, tiles_payload
from slippyglobe.projection import polar_to_world
from slippyglobe.source import url_fetcher
from slippyglobe.visibility import cone_view
from slippyglobe.visualize import render_coverage_png

ALTITUDES = [4.0, 2.0, 1.0, 0.5, 0.25, 0.5, 2.0]


class DelayedLoader:
    """URL loader whose futures resolve on the next :meth:`tick`."""

    def __init__(self) -> None:
        self.pending = []

    def __call__(self, url: str) -> Future:
        future: Future = Future()
        self.pending.append((url, future))
        return future

    def tick(self) -> int:
        ready, self.pending = self.pending, []
        for url, future in ready:
            future.set_result(f"texture:{url}")
        return len(ready)


def main() -> None:
    parser = argparse.ArgumentParser(description="Zoom sequence demo")
    parser.add_argument("--lat", type=float, default=48.0, help="Camera latitude")
    parser.add_argument("--lng", type=float, default=11.0, help="Camera longitude")
    parser.add_argument("--fov", type=float, default=50.0, help="Field of view (degrees)")
    parser.add_argument("--out", type=str, default="exports", help="Output directory")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)

    loader = DelayedLoader()
    globe = SlippyMapGlobe(
        1.0,
        tile_source=url_fetcher("https://tile.example.org/{z}/{x}/{y}.png", loader),
    )

    for step, altitude in enumerate(ALTITUDES):
        landed = loader.tick()
        camera = polar_to_world(args.lat, args.lng, 1.0 + altitude)
        globe.on_camera_update(cone_view(camera, args.fov, globe_radius=1.0))

        stats = globe.stats()[globe.level]
        print(
            f"step {step}: altitude={altitude:g} level={globe.level} "
            f"landed={landed} resident={stats.resident} loading={stats.loading}"
        )
        render_coverage_png(
            globe.tiles(),
            out_dir / f"zoom_{step:02d}_level{globe.level}.png",
            camera_position=camera,
            title=f"altitude {altitude:g}, level {globe.level}",
        )

    save_json(
        tiles_payload(globe.resident_tiles(), level=globe.level),
        out_dir / "zoom_final_tiles.json",
    )
    print(f"Done. Output in {out_dir}/")


if __name__ == "__main__":
    main()
