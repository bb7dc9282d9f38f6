"""Tile lifecycle — fetch initiation, completion races and eviction.

State machine per tile (see :class:`~slippyglobe.models.TileState`)::

    UNFETCHED ──start_fetch──▶ LOADING ──success──▶ RESIDENT
        ▲                        │  │                   │
        │◀────────failure────────┘  │evict              │evict (release)
        │                           ▼                   │
        │◀──────completion────── DISCARDED              │
        └◀──────────────────────────────────────────────┘

Only ``UNFETCHED`` tiles may start a fetch, so there is at most one
fetch in flight per tile.  A completion is applied only if its fetch
token still matches the tile and the tile was not discarded meanwhile;
otherwise it is dropped and the tile returns to ``UNFETCHED``.

Completions arrive via ``add_done_callback`` and must be delivered on
the thread that drives camera updates.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Protocol, runtime_checkable

from .level_store import LevelStore
from .models import Tile, TileState

logger = logging.getLogger(__name__)

FetchFn = Callable[[int, int, int], Any]
"""Signature of a tile source: ``(x, y, level) → future | awaitable | resource``."""


# ═══════════════════════════════════════════════════════════════════
# Render hooks
# ═══════════════════════════════════════════════════════════════════

@runtime_checkable
class RenderHooks(Protocol):
    """Callbacks into the rendering integration.

    The core never inspects resources; it only hands them to these
    hooks.
    """

    def attach_resource(self, tile: Tile, resource: Any) -> None:
        """Show *resource* as the tile's surface."""
        ...

    def release_resource(self, tile: Tile, resource: Any) -> None:
        """Remove and free *resource*."""
        ...

    def set_depth_write(self, tile: Tile, enabled: bool) -> None:
        """Bring a resident tile to front (``True``) or push it to background."""
        ...

    def set_backdrop_visible(self, visible: bool) -> None:
        """Toggle the opaque sphere drawn just under the tiles."""
        ...


class NullRenderHooks:
    """:class:`RenderHooks` that does nothing, for headless use."""

    def attach_resource(self, tile: Tile, resource: Any) -> None:
        pass

    def release_resource(self, tile: Tile, resource: Any) -> None:
        pass

    def set_depth_write(self, tile: Tile, enabled: bool) -> None:
        pass

    def set_backdrop_visible(self, visible: bool) -> None:
        pass


# ═══════════════════════════════════════════════════════════════════
# Statistics
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LevelStats:
    """Tile counts for one level."""

    level: int
    total: int
    resident: int
    loading: int
    discarded: int

    @classmethod
    def from_tiles(cls, level: int, tiles: Iterable[Tile]) -> LevelStats:
        counts = {state: 0 for state in TileState}
        total = 0
        for tile in tiles:
            counts[tile.state] += 1
            total += 1
        return cls(
            level=level,
            total=total,
            resident=counts[TileState.RESIDENT],
            loading=counts[TileState.LOADING],
            discarded=counts[TileState.DISCARDED],
        )


# ═══════════════════════════════════════════════════════════════════
# Manager
# ═══════════════════════════════════════════════════════════════════

class TileLifecycleManager:
    """Drives tile fetches and level-transition bookkeeping."""

    def __init__(self, hooks: Optional[RenderHooks] = None) -> None:
        self.hooks: RenderHooks = hooks if hooks is not None else NullRenderHooks()
        self.active_level: Optional[int] = None
        self._last_token = 0

    # ── fetching ────────────────────────────────────────────────────

    def start_fetch(self, tile: Tile, fetch_fn: FetchFn) -> bool:
        """Begin fetching *tile*; return False if it is not ``UNFETCHED``."""
        if tile.state is not TileState.UNFETCHED:
            return False

        self._last_token += 1
        token = self._last_token
        tile.fetch_token = token
        tile.state = TileState.LOADING

        try:
            pending = fetch_fn(tile.x, tile.y, tile.level)
        except Exception as exc:
            self.fail(tile, token, exc)
            return False

        if hasattr(pending, "add_done_callback"):
            pending.add_done_callback(lambda fut: self._on_done(tile, token, fut))
        elif inspect.isawaitable(pending):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as exc:
                if inspect.iscoroutine(pending):
                    pending.close()
                self.fail(tile, token, exc)
                return False
            future = asyncio.ensure_future(pending, loop=loop)
            future.add_done_callback(lambda fut: self._on_done(tile, token, fut))
        else:
            self.complete(tile, token, pending)
        return True

    def _on_done(self, tile: Tile, token: int, future) -> None:
        if future.cancelled():
            self.fail(tile, token, "fetch cancelled")
            return
        exc = future.exception()
        if exc is not None:
            self.fail(tile, token, exc)
            return
        self.complete(tile, token, future.result())

    def complete(self, tile: Tile, token: int, resource: Any) -> bool:
        """Apply a successful fetch; return False if it was stale."""
        if token != tile.fetch_token:
            logger.debug("Dropping completion for %s: superseded fetch", tile.key)
            return False
        if tile.state is TileState.DISCARDED:
            logger.debug("Dropping completion for %s: tile discarded", tile.key)
            tile.state = TileState.UNFETCHED
            return False
        if tile.state is not TileState.LOADING:
            return False

        tile.resource = resource
        tile.state = TileState.RESIDENT
        self.hooks.attach_resource(tile, resource)
        if self.active_level is not None and tile.level < self.active_level:
            # Landed after the camera zoomed past its level
            self.hooks.set_depth_write(tile, False)
        return True

    def fail(self, tile: Tile, token: int, error: Any) -> None:
        """Record a failed fetch; the tile becomes eligible for a retry."""
        if token != tile.fetch_token or not tile.in_flight:
            return
        if tile.state is TileState.LOADING:
            logger.warning("Fetch failed for tile %s: %s", tile.key, error)
        tile.state = TileState.UNFETCHED

    # ── eviction ────────────────────────────────────────────────────

    def evict(self, tile: Tile) -> None:
        """Release a resident tile, or discard an in-flight one."""
        if tile.state is TileState.RESIDENT:
            resource, tile.resource = tile.resource, None
            tile.state = TileState.UNFETCHED
            self.hooks.release_resource(tile, resource)
        elif tile.state is TileState.LOADING:
            tile.state = TileState.DISCARDED

    def evict_all(self, tiles: Iterable[Tile]) -> int:
        """Evict every tile in *tiles*; return how many were affected."""
        count = 0
        for tile in tiles:
            if tile.state in (TileState.RESIDENT, TileState.LOADING):
                self.evict(tile)
                count += 1
        return count

    # ── level transitions ───────────────────────────────────────────

    def apply_level_transition(
        self,
        store: LevelStore,
        prev_level: Optional[int],
        level: int,
    ) -> None:
        """Reorder and evict tiles for a change of active level.

        The new level comes to front.  Zooming in keeps the previous
        level resident behind it; zooming out evicts every level finer
        than the new one.
        """
        self.active_level = level
        if prev_level is None or prev_level == level:
            return

        self.hooks.set_backdrop_visible(level > 0)

        for tile in store.tiles(level):
            if tile.is_resident:
                self.hooks.set_depth_write(tile, True)

        if prev_level < level:
            for tile in store.tiles(prev_level):
                if tile.is_resident:
                    self.hooks.set_depth_write(tile, False)
        else:
            evicted = 0
            for finer in store.levels():
                if finer > level:
                    evicted += self.evict_all(store.tiles(finer))
            logger.debug("Evicted %d tiles above level %d", evicted, level)

        logger.info("Active level %d -> %d", prev_level, level)
