"""Visibility filtering — which tiles on the active level need fetching.

The rendering integration describes the camera once per update as a
:class:`ViewState`: the camera position in the globe's local frame, a
``point_visible`` predicate over world-space points (typically a
frustum test) and the local → world transform that feeds it.  The
filter never holds on to a view between updates.

A tile is in view when any of its *hull points* (centre plus four
corners, projected onto the globe) passes the predicate.  Hull points
are computed once per tile and cached on it.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from .models import Tile, TileState
from .projection import polar_to_world_array

logger = logging.getLogger(__name__)

Point3 = Tuple[float, float, float]
PointPredicate = Callable[[Sequence[float]], bool]
PointTransform = Callable[[Sequence[float]], Sequence[float]]


@dataclass(frozen=True)
class ViewState:
    """Snapshot of the camera for one selection pass."""

    camera_position: Point3
    point_visible: Optional[PointPredicate] = None
    local_to_world: Optional[PointTransform] = None

    @classmethod
    def from_world(
        cls,
        camera_world: Sequence[float],
        world_to_local: PointTransform,
        point_visible: Optional[PointPredicate] = None,
        local_to_world: Optional[PointTransform] = None,
    ) -> ViewState:
        """Build a view from a world-space camera position."""
        local = world_to_local(camera_world)
        return cls(
            camera_position=(float(local[0]), float(local[1]), float(local[2])),
            point_visible=point_visible,
            local_to_world=local_to_world,
        )

    @property
    def distance_to_center(self) -> float:
        x, y, z = self.camera_position
        return math.sqrt(x * x + y * y + z * z)

    @property
    def has_predicate(self) -> bool:
        return self.point_visible is not None

    def sees(self, point_local: Sequence[float]) -> bool:
        """Apply the predicate to a point given in the globe's local frame."""
        if self.point_visible is None:
            return True
        point = self.local_to_world(point_local) if self.local_to_world else point_local
        return bool(self.point_visible(point))


# ═══════════════════════════════════════════════════════════════════
# Hull points
# ═══════════════════════════════════════════════════════════════════

def hull_points(tile: Tile, radius: float):
    """``(5, 3)`` array: the tile's centre and corners on a sphere of *radius*.

    Cached on ``tile.hull`` after the first call.
    """
    if tile.hull is None:
        b = tile.bounds
        lats = [tile.lat, b.lat0, b.lat1, b.lat0, b.lat1]
        lngs = [tile.lng, b.lng0, b.lng0, b.lng1, b.lng1]
        tile.hull = polar_to_world_array(lats, lngs, radius)
    return tile.hull


def tile_in_view(tile: Tile, view: ViewState, radius: float) -> bool:
    """True if any hull point of *tile* passes the view's predicate."""
    if not view.has_predicate:
        return True
    return any(view.sees(p) for p in hull_points(tile, radius))


# ═══════════════════════════════════════════════════════════════════
# Selection
# ═══════════════════════════════════════════════════════════════════

def select_tiles_to_fetch(
    index,
    view: Optional[ViewState],
    *,
    level: int,
    radius: float,
    max_level_render_all_tiles: int,
) -> List[Tile]:
    """Unfetched tiles on *level* that should be fetched now.

    With a camera, the spatial *index* first narrows the level to tiles
    near it, then the view predicate keeps those in view.  Without a
    predicate every candidate counts as visible, but only up to
    *max_level_render_all_tiles*: beyond it nothing is selected rather
    than materialising a huge grid blind.
    """
    if (view is None or not view.has_predicate) and level > max_level_render_all_tiles:
        logger.debug("Level %d: no visibility test available, skipping selection", level)
        return []

    pool = index.candidates(view.camera_position) if view is not None else index.tiles
    unfetched = [t for t in pool if t.state is TileState.UNFETCHED]
    if view is None:
        selected = unfetched
    else:
        selected = [t for t in unfetched if tile_in_view(t, view, radius)]

    if logger.isEnabledFor(logging.DEBUG):
        counts = Counter(t.state for t in pool)
        logger.debug(
            "Level %d: %d candidates near camera, %d unfetched, %d selected, "
            "%d resident, %d loading",
            level, len(pool), len(unfetched), len(selected),
            counts[TileState.RESIDENT], counts[TileState.LOADING],
        )
    return selected


# ═══════════════════════════════════════════════════════════════════
# Reference predicate
# ═══════════════════════════════════════════════════════════════════

def cone_view(
    camera_position: Sequence[float],
    fov_deg: float = 60.0,
    *,
    target: Sequence[float] = (0.0, 0.0, 0.0),
    globe_radius: Optional[float] = None,
) -> ViewState:
    """A :class:`ViewState` seeing points inside a viewing cone.

    The cone has its apex at *camera_position*, axis towards *target*
    and full opening angle *fov_deg*.  When *globe_radius* is given,
    points on the far side of the globe's horizon are rejected too.
    Local and world frames coincide.
    """
    import numpy as np

    cam = np.asarray(camera_position, dtype=float)
    axis = np.asarray(target, dtype=float) - cam
    norm = np.linalg.norm(axis)
    if norm == 0:
        raise ValueError("camera_position and target must differ")
    axis = axis / norm
    cos_half = math.cos(math.radians(fov_deg / 2))
    # Points within this distance of the camera are on its side of the horizon
    horizon = None
    if globe_radius is not None:
        d = float(np.linalg.norm(cam))
        horizon = math.sqrt(max(d * d - globe_radius * globe_radius, 0.0))

    def point_visible(point: Sequence[float]) -> bool:
        ray = np.asarray(point, dtype=float) - cam
        dist = float(np.linalg.norm(ray))
        if dist == 0:
            return True
        if horizon is not None and dist > horizon + 1e-9:
            return False
        return float(ray @ axis) / dist >= cos_half

    return ViewState(
        camera_position=(float(cam[0]), float(cam[1]), float(cam[2])),
        point_visible=point_visible,
    )
