"""Projection math — grid cells ↔ geographic bounds ↔ 3-D globe space.

All angles are degrees at the interface.  Rows are numbered from the
north pole (``y = 0``) southwards, columns from the antimeridian
(``x = 0`` starts at -180°) eastwards.

Under :attr:`Projection.MERCATOR` the row boundaries are evenly spaced
in web-mercator *y* rather than in latitude, so rows span more latitude
near the equator than towards the poles.  Mercator never reaches the
poles, so the first and last rows are stretched to end exactly at ±90°.

Functions
---------
- :func:`cell_bounds` — ``(x, y, level)`` → :class:`CellBounds`
- :func:`find_cell` — ``(lng, lat)`` → ``(x, y)`` on a level
- :func:`polar_to_world` / :func:`world_to_polar` — sphere ↔ Cartesian
- :func:`polar_to_world_array` — vectorised :func:`polar_to_world`
"""

from __future__ import annotations

import math
from typing import Tuple

from .models import CellBounds, Projection

# Latitude used in place of ±90° when evaluating the forward mercator
# transform, which is infinite at the poles.
_POLE_EPSILON = 1e-12


# ═══════════════════════════════════════════════════════════════════
# Mercator row scale
# ═══════════════════════════════════════════════════════════════════

def mercator_y_scale(rel_y: float) -> float:
    """Map a linear latitude fraction to a mercator row fraction.

    *rel_y* is ``(90 - lat) / 180``: 0 at the north pole, 1 at the
    south pole.  The result is 0 at mercator's northern edge (≈85.05°)
    and 1 at its southern edge; values beyond those edges fall outside
    ``[0, 1]``.
    """
    phi = (0.5 - rel_y) * math.pi
    limit = math.pi / 2 - _POLE_EPSILON
    phi = max(-limit, min(limit, phi))
    merc = math.log(math.tan(math.pi / 4 + phi / 2))
    return 1 - (merc / math.pi + 1) / 2


def mercator_y_scale_invert(merc_y: float) -> float:
    """Inverse of :func:`mercator_y_scale`."""
    phi = 2 * math.atan(math.exp((2 * (1 - merc_y) - 1) * math.pi)) - math.pi / 2
    return 0.5 - phi / math.pi


def mercator_y_scale_clamped(rel_y: float) -> float:
    return max(0.0, min(1.0, mercator_y_scale(rel_y)))


def mercator_y_scale_array(rel_y, clamp: bool = False):
    """Vectorised :func:`mercator_y_scale`; limited to ``[0, 1]`` if *clamp*."""
    import numpy as np

    limit = math.pi / 2 - _POLE_EPSILON
    phi = np.clip((0.5 - np.asarray(rel_y, dtype=float)) * math.pi, -limit, limit)
    merc = np.log(np.tan(math.pi / 4 + phi / 2))
    scaled = 1 - (merc / math.pi + 1) / 2
    return np.clip(scaled, 0.0, 1.0) if clamp else scaled


# ═══════════════════════════════════════════════════════════════════
# Grid cells
# ═══════════════════════════════════════════════════════════════════

def grid_size(level: int) -> int:
    """Number of columns (and rows) on *level*."""
    if level < 0:
        raise ValueError("level must be >= 0")
    return 2 ** level


def _row_span(y: int, size: int, projection: Projection) -> Tuple[float, float]:
    """Start/end of row *y* in linear row units (``0 … size``)."""
    if projection is Projection.EQUIRECTANGULAR:
        return float(y), float(y + 1)
    start = 0.0 if y == 0 else mercator_y_scale_invert(y / size) * size
    end = float(size) if y + 1 == size else mercator_y_scale_invert((y + 1) / size) * size
    return start, end


def cell_bounds(
    x: int,
    y: int,
    level: int,
    projection: Projection | str = Projection.MERCATOR,
) -> CellBounds:
    """Geographic bounds of cell ``(x, y)`` on *level*."""
    projection = Projection.coerce(projection)
    size = grid_size(level)
    if not (0 <= x < size and 0 <= y < size):
        raise ValueError(f"Cell ({x}, {y}) outside the {size}x{size} grid of level {level}")

    lng_len = 360 / size
    start, end = _row_span(y, size, projection)
    return CellBounds(
        lat0=90 - end * 180 / size,
        lat1=90 - start * 180 / size,
        lng0=-180 + x * lng_len,
        lng1=-180 + (x + 1) * lng_len,
    )


def find_cell(
    level: int,
    projection: Projection | str,
    lng: float,
    lat: float,
) -> Tuple[int, int]:
    """Return the ``(x, y)`` cell containing ``(lng, lat)``, clamped to the grid."""
    projection = Projection.coerce(projection)
    size = grid_size(level)
    x = max(0, min(size - 1, math.floor((lng + 180) * size / 360)))

    rel_y = (90 - lat) / 180
    if projection is Projection.MERCATOR:
        rel_y = mercator_y_scale_clamped(rel_y)
    y = max(0, min(size - 1, math.floor(rel_y * size)))
    return x, y


# ═══════════════════════════════════════════════════════════════════
# Sphere ↔ Cartesian
# ═══════════════════════════════════════════════════════════════════

def polar_to_world(lat: float, lng: float, radius: float = 1.0) -> Tuple[float, float, float]:
    """Point on a sphere of *radius* at ``(lat, lng)``.

    *y* is the polar axis; ``lng = 0`` lies on +z and ``lng = 90`` on +x.
    """
    phi = math.radians(90 - lat)
    theta = math.radians(90 - lng)
    return (
        radius * math.sin(phi) * math.cos(theta),
        radius * math.cos(phi),
        radius * math.sin(phi) * math.sin(theta),
    )


def world_to_polar(x: float, y: float, z: float) -> Tuple[float, float, float]:
    """Return ``(lat, lng, r)`` for a Cartesian point; *lng* in ``[-180, 180]``."""
    r = math.sqrt(x * x + y * y + z * z)
    if r == 0:
        raise ValueError("Cannot convert the origin to polar coordinates")
    phi = math.acos(max(-1.0, min(1.0, y / r)))
    theta = math.atan2(z, x)
    lng = 90 - math.degrees(theta)
    if theta < -math.pi / 2:
        lng -= 360
    return 90 - math.degrees(phi), lng, r


def polar_to_world_array(lats, lngs, radius: float = 1.0):
    """Vectorised :func:`polar_to_world`; returns an ``(N, 3)`` array."""
    import numpy as np

    phi = np.radians(90 - np.asarray(lats, dtype=float))
    theta = np.radians(90 - np.asarray(lngs, dtype=float))
    return np.column_stack([
        radius * np.sin(phi) * np.cos(theta),
        radius * np.cos(phi),
        radius * np.sin(phi) * np.sin(theta),
    ])
