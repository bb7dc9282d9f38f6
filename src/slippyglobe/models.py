"""Core records — tiles, projections and per-tile lifecycle state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple


class Projection(str, Enum):
    """Latitude row layout of a tile grid."""

    EQUIRECTANGULAR = "equirectangular"
    MERCATOR = "mercator"

    @classmethod
    def coerce(cls, value: "Projection | str | bool") -> "Projection":
        """Accept an enum member, its string value, or a ``mercator`` flag."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.MERCATOR if value else cls.EQUIRECTANGULAR
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown projection: {value!r}") from None


class TileState(str, Enum):
    """Fetch state of a single tile.

    ``UNFETCHED → LOADING → RESIDENT``.  A tile evicted while its fetch
    is in flight moves to ``DISCARDED`` until the completion arrives,
    after which it returns to ``UNFETCHED``.
    """

    UNFETCHED = "unfetched"
    LOADING = "loading"
    RESIDENT = "resident"
    DISCARDED = "discarded"


@dataclass(frozen=True)
class CellBounds:
    """Geographic extent of a grid cell, in degrees.

    ``lat0`` is the southern edge and ``lat1`` the northern edge.
    """

    lat0: float
    lat1: float
    lng0: float
    lng1: float

    @property
    def lat(self) -> float:
        return (self.lat0 + self.lat1) / 2

    @property
    def lng(self) -> float:
        return (self.lng0 + self.lng1) / 2

    @property
    def lat_len(self) -> float:
        return self.lat1 - self.lat0

    @property
    def lng_len(self) -> float:
        return self.lng1 - self.lng0


@dataclass(eq=False)
class Tile:
    """One slippy-map tile on the globe.

    The geographic fields (*x*, *y*, *level*, *lat*, *lng*, *lat_len*,
    *lng_len*) are fixed once generated.  *state*, *fetch_token*,
    *resource* and *hull* are the only fields that change afterwards.

    Tiles compare by identity: two generations of the same ``(x, y,
    level)`` are distinct records.
    """

    x: int
    y: int
    level: int
    lat: float
    lng: float
    lat_len: float
    lng_len: float
    state: TileState = TileState.UNFETCHED
    fetch_token: int = 0
    resource: Optional[Any] = None
    hull: Optional[Any] = field(default=None, repr=False)
    centroid: Optional[Tuple[float, float, float]] = field(default=None, repr=False)

    @property
    def key(self) -> Tuple[int, int, int]:
        return (self.x, self.y, self.level)

    @property
    def bounds(self) -> CellBounds:
        return CellBounds(
            lat0=self.lat - self.lat_len / 2,
            lat1=self.lat + self.lat_len / 2,
            lng0=self.lng - self.lng_len / 2,
            lng1=self.lng + self.lng_len / 2,
        )

    @property
    def is_resident(self) -> bool:
        return self.state is TileState.RESIDENT

    @property
    def in_flight(self) -> bool:
        """True while a fetch started for this tile has not completed."""
        return self.state in (TileState.LOADING, TileState.DISCARDED)

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "level": self.level,
            "lat": self.lat,
            "lng": self.lng,
            "lat_len": self.lat_len,
            "lng_len": self.lng_len,
            "state": self.state.value,
        }
