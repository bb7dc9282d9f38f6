"""Slippy-map globe — the selection engine's public face.

:class:`SlippyMapGlobe` ties the pieces together.  On every camera
update it

1. picks the zoom level from the camera's altitude (:mod:`.lod`),
2. builds or fetches the cached level (:mod:`.level_store`),
3. narrows the level to tiles near and in view of the camera
   (:mod:`.spatial_index`, :mod:`.visibility`),
4. starts fetches for those tiles and reconciles level transitions
   (:mod:`.lifecycle`).

It produces decisions only.  Resources come from the tile source and
go to the :class:`~slippyglobe.lifecycle.RenderHooks`.

Usage
-----
>>> globe = SlippyMapGlobe(100.0, tile_source=fetch, hooks=renderer_hooks)
>>> globe.on_camera_update(ViewState.from_world(cam_pos, to_local, in_frustum))
>>> globe.level
4
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Any, Dict, List, Optional

from .config import GlobeConfig
from .geometry import TileExtent, tile_extent
from .level_store import LevelStore
from .lifecycle import FetchFn, LevelStats, RenderHooks, TileLifecycleManager
from .lod import camera_altitude, select_level
from .models import Projection, Tile
from .visibility import ViewState, select_tiles_to_fetch

logger = logging.getLogger(__name__)


class SlippyMapGlobe:
    """Tile LOD and visibility selection for a globe of *radius*.

    Parameters
    ----------
    radius : float
        Globe radius in the local frame's units.
    tile_source : callable, optional
        ``fetch(x, y, level)`` returning a future, an awaitable or the
        resource.  Nothing is fetched until one is set.
    config : GlobeConfig, optional
        Tunables; defaults to :class:`GlobeConfig()`.
    hooks : RenderHooks, optional
        Rendering callbacks; defaults to no-ops.
    **options
        Overrides applied on top of *config* (e.g. ``max_level=12``).
    """

    def __init__(
        self,
        radius: float,
        *,
        tile_source: Optional[FetchFn] = None,
        config: Optional[GlobeConfig] = None,
        hooks: Optional[RenderHooks] = None,
        **options: Any,
    ) -> None:
        if radius <= 0:
            raise ValueError("radius must be > 0")
        config = config or GlobeConfig()
        if options:
            config = replace(config, **options)

        self._radius = radius
        self.config = config
        self._store = LevelStore(radius, config)
        self._manager = TileLifecycleManager(hooks)
        self._fetch_fn = tile_source
        self._view: Optional[ViewState] = None
        self._level: Optional[int] = None
        self._activate(config.min_level)

    # ── properties ──────────────────────────────────────────────────

    @property
    def radius(self) -> float:
        return self._radius

    @property
    def projection(self) -> Projection:
        return self.config.projection

    @property
    def tile_source(self) -> Optional[FetchFn]:
        return self._fetch_fn

    @property
    def view(self) -> Optional[ViewState]:
        """The view from the last camera update, if any."""
        return self._view

    @property
    def store(self) -> LevelStore:
        return self._store

    @property
    def manager(self) -> TileLifecycleManager:
        return self._manager

    @property
    def thresholds(self) -> List[Optional[float]]:
        return self.config.thresholds

    @thresholds.setter
    def thresholds(self, thresholds: List[Optional[float]]) -> None:
        self._reconfigure(thresholds=list(thresholds))

    @property
    def min_level(self) -> int:
        return self.config.min_level

    @min_level.setter
    def min_level(self, level: int) -> None:
        self._reconfigure(min_level=level)

    @property
    def max_level(self) -> int:
        return self.config.max_level

    @max_level.setter
    def max_level(self, level: int) -> None:
        self._reconfigure(max_level=level)

    @property
    def tile_margin(self) -> float:
        return self.config.tile_margin

    @tile_margin.setter
    def tile_margin(self, margin: float) -> None:
        self._reconfigure(tile_margin=margin)

    @property
    def curvature_resolution(self) -> float:
        return self.config.curvature_resolution

    @curvature_resolution.setter
    def curvature_resolution(self, degrees: float) -> None:
        self._reconfigure(curvature_resolution=degrees)

    def _reconfigure(self, **changes: Any) -> None:
        # replace() re-validates; the store shares the same config object
        updated = replace(self.config, **changes)
        for key, value in changes.items():
            setattr(self.config, key, getattr(updated, key))

    # ── level ───────────────────────────────────────────────────────

    @property
    def level(self) -> Optional[int]:
        """Active zoom level."""
        return self._level

    @level.setter
    def level(self, level: int) -> None:
        self.set_level(level)

    def set_level(self, level: int) -> None:
        """Make *level* active; a no-op if it already is."""
        if self._activate(level):
            self.fetch_needed_tiles()

    def _activate(self, level: int) -> bool:
        if level < 0:
            raise ValueError("level must be >= 0")
        self._store.get(level)
        prev, self._level = self._level, level
        if prev is None:
            self._manager.hooks.set_backdrop_visible(level > 0)
        if prev is None or prev == level:
            self._manager.active_level = level
            return False
        self._manager.apply_level_transition(self._store, prev, level)
        return True

    # ── camera ──────────────────────────────────────────────────────

    def on_camera_update(self, view: Optional[ViewState]) -> None:
        """Re-select the level and fetch newly needed tiles for *view*.

        A missing or degenerate view (camera at the globe centre, or a
        non-finite position) is ignored.
        """
        if view is None:
            return
        distance = view.distance_to_center
        if distance == 0 or not math.isfinite(distance):
            logger.debug("Ignoring degenerate camera at %s", view.camera_position)
            return

        self._view = view
        if self._fetch_fn is None:
            return

        altitude = camera_altitude(distance, self._radius)
        self._activate(select_level(
            altitude, self.config.thresholds, self.config.min_level, self.config.max_level,
        ))
        self.fetch_needed_tiles()

    def fetch_needed_tiles(self) -> int:
        """Start fetches for visible, unfetched tiles on the active level.

        Returns the number of fetches started.
        """
        if self._fetch_fn is None or self._level is None:
            return 0
        entry = self._store.peek(self._level)
        if entry is None:
            return 0

        tiles = select_tiles_to_fetch(
            entry.index,
            self._view,
            level=self._level,
            radius=self._radius,
            max_level_render_all_tiles=self.config.max_level_render_all_tiles,
        )
        started = sum(1 for tile in tiles if self._manager.start_fetch(tile, self._fetch_fn))
        if started:
            logger.debug("Level %d: started %d fetches", self._level, started)
        return started

    # ── tile source ─────────────────────────────────────────────────

    def set_tile_source(self, fetch_fn: Optional[FetchFn]) -> None:
        """Replace the tile source, dropping every tile fetched from the old one."""
        self.clear_all_tiles()
        self._fetch_fn = fetch_fn
        if fetch_fn is None:
            return
        if self._view is not None:
            self.on_camera_update(self._view)
        elif self._level is not None:
            self._store.get(self._level)
            self.fetch_needed_tiles()

    def clear_all_tiles(self) -> None:
        """Evict every tile on every level and forget all cached levels."""
        evicted = self._manager.evict_all(self._store.all_tiles())
        self._store.clear()
        logger.info("Cleared all tiles (%d evicted)", evicted)

    # ── inspection ──────────────────────────────────────────────────

    def tiles(self, level: Optional[int] = None) -> List[Tile]:
        """Tiles held for *level* (default: the active level)."""
        level = self._level if level is None else level
        return self._store.tiles(level) if level is not None else []

    def resident_tiles(self, level: Optional[int] = None) -> List[Tile]:
        return [t for t in self.tiles(level) if t.is_resident]

    def stats(self) -> Dict[int, LevelStats]:
        """Per-level tile counts for every cached level."""
        return {
            level: LevelStats.from_tiles(level, self._store.tiles(level))
            for level in self._store.levels()
        }

    def tile_extent(self, tile: Tile) -> TileExtent:
        """Sphere-segment parameters the renderer should use for *tile*."""
        return tile_extent(
            tile,
            margin=self.config.tile_margin,
            curvature_resolution=self.config.curvature_resolution,
            projection=self.config.projection,
        )

    def __repr__(self) -> str:
        return (
            f"SlippyMapGlobe(radius={self._radius}, level={self._level}, "
            f"levels_cached={len(self._store)}, projection={self.projection.value})"
        )
