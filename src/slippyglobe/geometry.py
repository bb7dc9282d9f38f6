"""Tile geometry parameters for the rendering integration.

The renderer builds each tile as a patch of a sphere.  This module only
computes the numbers that patch needs; no mesh is built here.

- :func:`tile_extent` — angular size, segment counts and sphere-segment
  start angles, after applying the cosmetic tile margin.
- :func:`mercator_v_remap` — reproject texture ``v`` coordinates so a
  mercator tile image lands on the right latitudes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .models import Projection, Tile
from .projection import mercator_y_scale_array


@dataclass(frozen=True)
class TileExtent:
    """Sphere-segment parameters for one tile.

    Angles follow the usual sphere-geometry convention: *phi* runs
    around the polar axis, *theta* down from the north pole, both in
    radians.  *v_range* is the linear latitude fraction (0 = north
    pole) covered by the tile's top and bottom edges, set only for
    mercator tiles.
    """

    width_deg: float
    height_deg: float
    width_segments: int
    height_segments: int
    phi_start: float
    phi_length: float
    theta_start: float
    theta_length: float
    v_range: Optional[Tuple[float, float]] = None


def tile_extent(
    tile: Tile,
    *,
    margin: float = 0.0,
    curvature_resolution: float = 5.0,
    projection: Projection | str = Projection.MERCATOR,
) -> TileExtent:
    """Compute the sphere segment that renders *tile*."""
    if not 0 <= margin < 1:
        raise ValueError("margin must be in [0, 1)")
    if curvature_resolution <= 0:
        raise ValueError("curvature_resolution must be > 0")

    width = tile.lng_len * (1 - margin)
    height = tile.lat_len * (1 - margin)

    v_range = None
    if Projection.coerce(projection) is Projection.MERCATOR:
        top = tile.lat + tile.lat_len / 2
        bottom = tile.lat - tile.lat_len / 2
        v_range = (0.5 - top / 180, 0.5 - bottom / 180)

    return TileExtent(
        width_deg=width,
        height_deg=height,
        width_segments=max(1, math.ceil(width / curvature_resolution)),
        height_segments=max(1, math.ceil(height / curvature_resolution)),
        phi_start=math.radians(90 - width / 2) + math.radians(tile.lng),
        phi_length=math.radians(width),
        theta_start=math.radians(90 - height / 2) + math.radians(-tile.lat),
        theta_length=math.radians(height),
        v_range=v_range,
    )


def mercator_v_remap(vs, y0: float = 0.0, y1: float = 1.0):
    """Remap texture ``v`` coordinates of a tile spanning ``[y0, y1]``.

    *vs* are the mesh's ``v`` values (1 at the top edge, 0 at the
    bottom), laid out linearly in latitude.  *y0* / *y1* are the linear
    latitude fractions of the top and bottom edges (see
    :attr:`TileExtent.v_range`).  Returns a new array of ``v`` values
    that sample a mercator-projected image of the same tile.
    """
    import numpy as np

    v = np.clip(np.asarray(vs, dtype=float), 0.0, 1.0)
    rel_y = y1 + (y0 - y1) * v
    merc = mercator_y_scale_array(rel_y, clamp=True)

    m0, m1 = mercator_y_scale_array([y0, y1], clamp=True)
    if m1 == m0:
        return np.full_like(v, 0.5)
    return np.clip(1 - (merc - m0) / (m1 - m0), 0.0, 1.0)
