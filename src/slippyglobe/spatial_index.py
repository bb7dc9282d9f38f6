"""Spatial indexes — narrow a level's tiles to those near the camera.

Three strategies answer the same question ("which tiles have their
centroid within a search radius of this point?") at different cost:

- :class:`VolumetricIndex` — KD-tree over 3-D tile centroids; exact
  Euclidean queries.  Needs the full level materialised, so only used
  on coarse levels.
- :class:`PlanarIndex` — KD-tree over ``(lng, lat)`` centroids for
  moderately sized levels.  Planar distance is a fair stand-in for
  surface distance once tiles are small.
- :class:`OnDemandIndex` — nothing is materialised up front; tiles
  inside a geographic window around the camera's sub-point are
  generated and memoised as they are first needed.

The strategy for a level is chosen once, by :func:`build_index`.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

from .models import Projection, Tile
from .projection import find_cell, polar_to_world_array, world_to_polar
from .tile_grid import generate_level, generate_range

logger = logging.getLogger(__name__)

Point3 = Tuple[float, float, float]

VOLUMETRIC = "volumetric"
PLANAR = "planar"
ON_DEMAND = "on_demand"


def _ensure_kdtree():
    """Lazy-import scipy's KD-tree; raise a helpful error if missing."""
    try:
        from scipy.spatial import cKDTree
    except ImportError as exc:
        raise RuntimeError(
            "scipy is required for tile indexing. "
            "Install with `pip install scipy`."
        ) from exc
    return cKDTree


def surface_window(
    camera_local: Sequence[float],
    globe_radius: float,
    surface_degrees: float,
) -> Tuple[float, float, float, float]:
    """Geographic search window under the camera.

    Returns ``(lng, lat, radius_lng, radius_lat)``: the camera's
    sub-point and the half-extents of the window in degrees.  The
    latitude half-extent grows with altitude; the longitude half-extent
    is widened by ``1 / cos(lat)`` because meridians converge.
    """
    lat, lng, r = world_to_polar(*camera_local)
    radius_lat = (r / globe_radius - 1) * surface_degrees
    cos_lat = max(math.cos(math.radians(lat)), 1e-9)
    return lng, lat, radius_lat / cos_lat, radius_lat


# ═══════════════════════════════════════════════════════════════════
# Volumetric (3-D) index
# ═══════════════════════════════════════════════════════════════════

class VolumetricIndex:
    """KD-tree over the Cartesian centroids of every tile on a level."""

    kind = VOLUMETRIC

    def __init__(
        self,
        tiles: Sequence[Tile],
        globe_radius: float,
        *,
        camera_factor: float = 3.0,
    ) -> None:
        self._tiles: List[Tile] = list(tiles)
        self.globe_radius = globe_radius
        self.camera_factor = camera_factor

        centroids = polar_to_world_array(
            [t.lat for t in self._tiles],
            [t.lng for t in self._tiles],
            globe_radius,
        )
        for tile, c in zip(self._tiles, centroids):
            tile.centroid = (float(c[0]), float(c[1]), float(c[2]))
        self._tree = _ensure_kdtree()(centroids)

    @property
    def tiles(self) -> List[Tile]:
        return self._tiles

    def find_within_radius(self, point: Sequence[float], radius: float) -> List[Tile]:
        """Tiles whose centroid is within Euclidean *radius* of *point*."""
        if radius <= 0 or not self._tiles:
            return []
        hits = self._tree.query_ball_point(list(point), r=radius)
        return [self._tiles[i] for i in sorted(hits)]

    def search_radius(self, camera_local: Sequence[float]) -> float:
        """Search radius proportional to the camera's altitude above the surface."""
        dist = math.sqrt(sum(c * c for c in camera_local))
        return (dist - self.globe_radius) * self.camera_factor

    def candidates(self, camera_local: Sequence[float]) -> List[Tile]:
        return self.find_within_radius(camera_local, self.search_radius(camera_local))


# ═══════════════════════════════════════════════════════════════════
# Planar (lng, lat) index
# ═══════════════════════════════════════════════════════════════════

class PlanarIndex:
    """KD-tree over ``(lng, lat)`` tile centroids."""

    kind = PLANAR

    def __init__(
        self,
        tiles: Sequence[Tile],
        globe_radius: float,
        *,
        surface_degrees: float = 90.0,
    ) -> None:
        import numpy as np

        self._tiles: List[Tile] = list(tiles)
        self.globe_radius = globe_radius
        self.surface_degrees = surface_degrees
        coords = np.array([(t.lng, t.lat) for t in self._tiles], dtype=float).reshape(-1, 2)
        self._coords = coords
        self._tree = _ensure_kdtree()(coords)

    @property
    def tiles(self) -> List[Tile]:
        return self._tiles

    def find_within_radius(
        self,
        lng: float,
        lat: float,
        radius_lng: float,
        radius_lat: Optional[float] = None,
    ) -> List[Tile]:
        """Tiles whose centroid lies in the box ``lng ± radius_lng``, ``lat ± radius_lat``."""
        if radius_lat is None:
            radius_lat = radius_lng
        if radius_lng <= 0 or radius_lat <= 0 or not self._tiles:
            return []
        hits = self._tree.query_ball_point([lng, lat], r=max(radius_lng, radius_lat), p=math.inf)
        found: List[Tile] = []
        for i in sorted(hits):
            t_lng, t_lat = self._coords[i]
            if abs(t_lng - lng) <= radius_lng and abs(t_lat - lat) <= radius_lat:
                found.append(self._tiles[i])
        return found

    def candidates(self, camera_local: Sequence[float]) -> List[Tile]:
        lng, lat, radius_lng, radius_lat = surface_window(
            camera_local, self.globe_radius, self.surface_degrees
        )
        return self.find_within_radius(lng, lat, radius_lng, radius_lat)


# ═══════════════════════════════════════════════════════════════════
# On-demand (sparse row/column) index
# ═══════════════════════════════════════════════════════════════════

class OnDemandIndex:
    """Sparse ``(x, y) → Tile`` memo filled from a search window.

    Used on levels whose full grid is too large to hold.  Tiles are
    generated the first time a camera window covers them and kept for
    the life of the level.
    """

    kind = ON_DEMAND

    def __init__(
        self,
        level: int,
        projection: Projection | str,
        globe_radius: float,
        *,
        surface_degrees: float = 90.0,
    ) -> None:
        self.level = level
        self.projection = Projection.coerce(projection)
        self.globe_radius = globe_radius
        self.surface_degrees = surface_degrees
        self._record: Dict[Tuple[int, int], Tile] = {}
        self._tiles: List[Tile] = []

    @property
    def tiles(self) -> List[Tile]:
        """Tiles generated so far, in generation order."""
        return self._tiles

    def __len__(self) -> int:
        return len(self._record)

    def get(self, x: int, y: int) -> Optional[Tile]:
        return self._record.get((x, y))

    def _remember(self, tile: Tile) -> Tile:
        known = self._record.get((tile.x, tile.y))
        if known is not None:
            return known
        self._record[(tile.x, tile.y)] = tile
        self._tiles.append(tile)
        return tile

    def find_in_cells(self, x0: int, y0: int, x1: int, y1: int) -> List[Tile]:
        """Tiles in the cell rectangle, generating those not yet seen."""
        if x1 < x0 or y1 < y0:
            return []

        middle = (round((x0 + x1) / 2), round((y0 + y1) / 2))
        if middle not in self._record:
            # Window mostly unexplored: generate it in one pass
            fresh = generate_range(self.level, self.projection, x0, y0, x1, y1)
            logger.debug(
                "Level %d: generated %d tiles for window (%d,%d)-(%d,%d)",
                self.level, len(fresh), x0, y0, x1, y1,
            )
            return [self._remember(t) for t in fresh]

        selected: List[Tile] = []
        for x in range(x0, x1 + 1):
            for y in range(y0, y1 + 1):
                tile = self._record.get((x, y))
                if tile is None:
                    tile = self._remember(
                        generate_range(self.level, self.projection, x, y, x, y)[0]
                    )
                selected.append(tile)
        return selected

    def find_within_radius(
        self,
        lng: float,
        lat: float,
        radius_lng: float,
        radius_lat: Optional[float] = None,
    ) -> List[Tile]:
        """Tiles covering the box ``lng ± radius_lng``, ``lat ± radius_lat``."""
        if radius_lat is None:
            radius_lat = radius_lng
        if radius_lng <= 0 or radius_lat <= 0:
            return []
        # Row 0 is the north pole, so the window's top edge is lat + radius
        x0, y0 = find_cell(self.level, self.projection, lng - radius_lng, lat + radius_lat)
        x1, y1 = find_cell(self.level, self.projection, lng + radius_lng, lat - radius_lat)
        return self.find_in_cells(x0, y0, x1, y1)

    def candidates(self, camera_local: Sequence[float]) -> List[Tile]:
        lng, lat, radius_lng, radius_lat = surface_window(
            camera_local, self.globe_radius, self.surface_degrees
        )
        return self.find_within_radius(lng, lat, radius_lng, radius_lat)


# ═══════════════════════════════════════════════════════════════════
# Strategy policy
# ═══════════════════════════════════════════════════════════════════

def index_kind_for_level(
    level: int,
    max_volumetric_level: int = 7,
    max_planar_level: Optional[int] = None,
) -> str:
    """Pick the index strategy for *level*.

    Levels up to *max_volumetric_level* are volumetric, levels up to
    *max_planar_level* (when set) planar, and everything finer is
    generated on demand.
    """
    if level <= max_volumetric_level:
        return VOLUMETRIC
    if max_planar_level is not None and level <= max_planar_level:
        return PLANAR
    return ON_DEMAND


def build_index(
    level: int,
    projection: Projection | str,
    globe_radius: float,
    *,
    max_volumetric_level: int = 7,
    max_planar_level: Optional[int] = None,
    camera_factor: float = 3.0,
    surface_degrees: float = 90.0,
):
    """Build the index for *level* using the strategy from :func:`index_kind_for_level`."""
    kind = index_kind_for_level(level, max_volumetric_level, max_planar_level)
    logger.debug("Level %d: building %s index", level, kind)
    if kind == VOLUMETRIC:
        return VolumetricIndex(
            generate_level(level, projection), globe_radius, camera_factor=camera_factor,
        )
    if kind == PLANAR:
        return PlanarIndex(
            generate_level(level, projection), globe_radius, surface_degrees=surface_degrees,
        )
    return OnDemandIndex(level, projection, globe_radius, surface_degrees=surface_degrees)
