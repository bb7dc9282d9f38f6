"""slippyglobe command-line interface."""

from __future__ import annotations

import argparse
import json
import logging
from typing import List, Optional

from .config import GlobeConfig
from .io import load_config, save_json, tiles_payload
from .lod import select_level
from .models import Projection
from .projection import find_cell, polar_to_world
from .tile_grid import generate_level


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="slippyglobe CLI")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    sub = parser.add_subparsers(dest="command", required=True)

    projections = [p.value for p in Projection]

    tiles = sub.add_parser("tiles", help="List the tiles of a level as JSON")
    tiles.add_argument("--level", type=int, required=True)
    tiles.add_argument("--projection", choices=projections, default="mercator")
    tiles.add_argument("--out", dest="output_path")

    cell = sub.add_parser("find-cell", help="Find the tile containing a point")
    cell.add_argument("--level", type=int, required=True)
    cell.add_argument("--lng", type=float, required=True)
    cell.add_argument("--lat", type=float, required=True)
    cell.add_argument("--projection", choices=projections, default="mercator")

    select = sub.add_parser("select-level", help="Zoom level for a camera altitude")
    select.add_argument("--altitude", type=float, required=True,
                        help="Camera height above the surface, in globe radii")
    select.add_argument("--config", dest="config_path")

    for name, help_text in (
        ("simulate", "Run a zoom sequence against a fake tile source"),
        ("render", "Render tile coverage for a camera to PNG"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--config", dest="config_path")
        cmd.add_argument("--radius", type=float, default=1.0)
        cmd.add_argument("--lat", type=float, default=0.0)
        cmd.add_argument("--lng", type=float, default=0.0)
        cmd.add_argument("--fov", type=float, default=60.0)

    simulate = sub.choices["simulate"]
    simulate.add_argument("--altitudes", type=float, nargs="+", required=True)

    render = sub.choices["render"]
    render.add_argument("--altitude", type=float, required=True)
    render.add_argument("--out", dest="output_path", required=True)
    render.add_argument("--dpi", type=int, default=150)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING - 10 * min(args.verbose, 2),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "tiles":
        payload = tiles_payload(
            generate_level(args.level, args.projection),
            level=args.level,
            projection=args.projection,
        )
        if args.output_path:
            save_json(payload, args.output_path)
            print(f"Saved {payload['metadata']['tile_count']} tiles to {args.output_path}")
        else:
            print(json.dumps(payload, indent=2))

    elif args.command == "find-cell":
        x, y = find_cell(args.level, args.projection, args.lng, args.lat)
        print(json.dumps({"x": x, "y": y, "level": args.level}))

    elif args.command == "select-level":
        config = _load(args.config_path)
        print(select_level(args.altitude, config.thresholds, config.min_level, config.max_level))

    elif args.command == "simulate":
        _cmd_simulate(args)

    elif args.command == "render":
        _cmd_render(args)


def _load(config_path: Optional[str]) -> GlobeConfig:
    return load_config(config_path) if config_path else GlobeConfig()


def _fly_to(globe, args, altitude: float) -> None:
    from .visibility import cone_view

    camera = polar_to_world(args.lat, args.lng, args.radius * (1 + altitude))
    globe.on_camera_update(cone_view(camera, args.fov, globe_radius=args.radius))


def _fake_source(x: int, y: int, level: int) -> str:
    return f"{level}/{x}/{y}"


def _cmd_simulate(args) -> None:
    from .globe import SlippyMapGlobe

    globe = SlippyMapGlobe(args.radius, tile_source=_fake_source, config=_load(args.config_path))
    for altitude in args.altitudes:
        _fly_to(globe, args, altitude)
        stats = globe.stats()
        resident = sum(s.resident for s in stats.values())
        print(
            f"altitude={altitude:g} level={globe.level} "
            f"active_resident={stats[globe.level].resident} total_resident={resident}"
        )


def _cmd_render(args) -> None:
    from .globe import SlippyMapGlobe
    from .visualize import render_coverage_png

    globe = SlippyMapGlobe(args.radius, tile_source=_fake_source, config=_load(args.config_path))
    _fly_to(globe, args, args.altitude)
    out = render_coverage_png(
        globe.tiles(),
        args.output_path,
        camera_position=globe.view.camera_position,
        title=f"level {globe.level}, altitude {args.altitude:g}",
        dpi=args.dpi,
    )
    print(f"Saved {out}")


if __name__ == "__main__":
    main()
