"""Tile grid generator — enumerate the tiles of a zoom level.

Both generators are pure: they build fresh :class:`Tile` records on
every call.  Caching belongs to :class:`~slippyglobe.level_store.LevelStore`.
"""

from __future__ import annotations

from typing import List, Optional

from .models import Projection, Tile
from .projection import _row_span, grid_size


def generate_level(level: int, projection: Projection | str = Projection.MERCATOR) -> List[Tile]:
    """Every tile of *level*, column-major (``x`` outer, ``y`` inner)."""
    return generate_range(level, projection)


def generate_range(
    level: int,
    projection: Projection | str = Projection.MERCATOR,
    x0: int = 0,
    y0: int = 0,
    x1: Optional[int] = None,
    y1: Optional[int] = None,
) -> List[Tile]:
    """Tiles of *level* with ``x0 <= x <= x1`` and ``y0 <= y <= y1``.

    The rectangle is clamped to the grid; *x1*/*y1* default to the last
    column/row.  An empty rectangle yields an empty list.
    """
    projection = Projection.coerce(projection)
    size = grid_size(level)
    lng_len = 360 / size

    x0 = max(0, x0)
    y0 = max(0, y0)
    x1 = size - 1 if x1 is None else min(size - 1, x1)
    y1 = size - 1 if y1 is None else min(size - 1, y1)

    # Row geometry is shared by every column
    rows = []
    for y in range(y0, y1 + 1):
        start, end = _row_span(y, size, projection)
        lat_len = (end - start) * 180 / size
        rows.append((y, 90 - (start * 180 / size + lat_len / 2), lat_len))

    tiles: List[Tile] = []
    for x in range(x0, x1 + 1):
        lng = -180 + (x + 0.5) * lng_len
        for y, lat, lat_len in rows:
            tiles.append(Tile(
                x=x,
                y=y,
                level=level,
                lat=lat,
                lng=lng,
                lat_len=lat_len,
                lng_len=lng_len,
            ))
    return tiles


def level_tile_count(level: int) -> int:
    """Number of tiles a fully materialised *level* holds."""
    size = grid_size(level)
    return size * size
