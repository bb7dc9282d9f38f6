"""Globe configuration — tunables for level selection, indexing and fetching.

:class:`GlobeConfig` collects every constant the selection engine uses.
Dicts (e.g. parsed JSON) are validated with ``jsonschema`` against
:data:`CONFIG_SCHEMA` before a config is built from them.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

import jsonschema

from .lod import default_thresholds
from .models import Projection


class ConfigError(ValueError):
    """Raised for an invalid globe configuration."""


CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "slippyglobe configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "min_level": {"type": "integer", "minimum": 0},
        "max_level": {"type": "integer", "minimum": 0},
        "projection": {"enum": [p.value for p in Projection]},
        "thresholds": {
            "type": "array",
            "items": {"type": ["number", "null"], "minimum": 0},
        },
        "tile_margin": {"type": "number", "minimum": 0, "exclusiveMaximum": 1},
        "curvature_resolution": {"type": "number", "exclusiveMinimum": 0},
        "max_level_render_all_tiles": {"type": "integer", "minimum": -1},
        "max_level_volumetric_index": {"type": "integer", "minimum": -1},
        "max_level_planar_index": {"type": ["integer", "null"], "minimum": -1},
        "search_radius_camera_factor": {"type": "number", "exclusiveMinimum": 0},
        "search_radius_surface_degrees": {"type": "number", "exclusiveMinimum": 0},
    },
}


@dataclass
class GlobeConfig:
    """Tunables for a :class:`~slippyglobe.globe.SlippyMapGlobe`.

    Attributes
    ----------
    min_level, max_level : int
        Bounds for the selected zoom level.
    projection : Projection
        Row layout of the tile source.  Standard web tile servers are
        mercator.
    thresholds : list of float
        Descending altitude cutoffs (globe radii); index = level.
    tile_margin : float
        Fraction trimmed off each tile's angular extent when rendered.
    curvature_resolution : float
        Degrees per mesh segment when the renderer builds tile geometry.
    max_level_render_all_tiles : int
        Deepest level on which every tile is fetched when there is no
        camera to test visibility against.
    max_level_volumetric_index : int
        Deepest level that gets a 3-D centroid index.
    max_level_planar_index : int or None
        Deepest level that gets a ``(lng, lat)`` index; finer levels
        generate tiles on demand.
    search_radius_camera_factor : float
        Volumetric search radius, in units of camera altitude.
    search_radius_surface_degrees : float
        On-demand search half-window, in degrees per globe radius of
        camera altitude.
    """

    min_level: int = 0
    max_level: int = 17
    projection: Projection = Projection.MERCATOR
    thresholds: List[Optional[float]] = field(default_factory=default_thresholds)
    tile_margin: float = 0.0
    curvature_resolution: float = 5.0
    max_level_render_all_tiles: int = 6
    max_level_volumetric_index: int = 7
    max_level_planar_index: Optional[int] = None
    search_radius_camera_factor: float = 3.0
    search_radius_surface_degrees: float = 90.0

    def __post_init__(self) -> None:
        self.projection = Projection.coerce(self.projection)
        self.thresholds = list(self.thresholds)
        for error in self.validate():
            raise ConfigError(error)

    @property
    def mercator(self) -> bool:
        return self.projection is Projection.MERCATOR

    def validate(self) -> List[str]:
        """Return a list of problems with this config (empty = valid)."""
        errors: List[str] = []
        if self.min_level < 0:
            errors.append("min_level must be >= 0")
        if self.max_level < self.min_level:
            errors.append(
                f"max_level ({self.max_level}) must be >= min_level ({self.min_level})"
            )
        if not 0 <= self.tile_margin < 1:
            errors.append("tile_margin must be in [0, 1)")
        if self.curvature_resolution <= 0:
            errors.append("curvature_resolution must be > 0")
        if any(t is not None and t < 0 for t in self.thresholds):
            errors.append("thresholds must be non-negative")
        return errors

    # ── serialisation ───────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["projection"] = self.projection.value
        return data

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> GlobeConfig:
        """Build a config from a plain dict, filling omitted keys with defaults."""
        try:
            jsonschema.validate(instance=payload, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as exc:
            path = ".".join(str(p) for p in exc.absolute_path) or "<root>"
            raise ConfigError(f"{path}: {exc.message}") from exc
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in payload.items() if k in known})
