"""Level store — lazily built, cached tile sets and indexes per zoom level."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from .config import GlobeConfig
from .models import Tile
from .spatial_index import build_index

logger = logging.getLogger(__name__)


@dataclass
class LevelEntry:
    """One cached level: its spatial index, which also owns its tiles."""

    level: int
    index: object

    @property
    def kind(self) -> str:
        return self.index.kind

    @property
    def tiles(self) -> List[Tile]:
        return self.index.tiles


class LevelStore:
    """Mapping ``level → LevelEntry``, populated on first access.

    A level is built once and kept until :meth:`clear`.
    """

    def __init__(self, radius: float, config: Optional[GlobeConfig] = None) -> None:
        if radius <= 0:
            raise ValueError("radius must be > 0")
        self.radius = radius
        self.config = config or GlobeConfig()
        self._levels: Dict[int, LevelEntry] = {}

    def __contains__(self, level: int) -> bool:
        return level in self._levels

    def __len__(self) -> int:
        return len(self._levels)

    def get(self, level: int) -> LevelEntry:
        """Return the entry for *level*, building it if needed."""
        entry = self._levels.get(level)
        if entry is None:
            cfg = self.config
            index = build_index(
                level,
                cfg.projection,
                self.radius,
                max_volumetric_level=cfg.max_level_volumetric_index,
                max_planar_level=cfg.max_level_planar_index,
                camera_factor=cfg.search_radius_camera_factor,
                surface_degrees=cfg.search_radius_surface_degrees,
            )
            entry = self._levels[level] = LevelEntry(level=level, index=index)
            logger.debug(
                "Built level %d (%s index, %d tiles)", level, entry.kind, len(entry.tiles)
            )
        return entry

    def peek(self, level: int) -> Optional[LevelEntry]:
        """Return the entry for *level* without building it."""
        return self._levels.get(level)

    def tiles(self, level: int) -> List[Tile]:
        """Tiles held for *level*; empty if the level was never built."""
        entry = self._levels.get(level)
        return entry.tiles if entry is not None else []

    def levels(self) -> List[int]:
        return sorted(self._levels)

    def all_tiles(self) -> Iterator[Tile]:
        for level in self.levels():
            yield from self._levels[level].tiles

    def clear(self) -> None:
        self._levels.clear()
