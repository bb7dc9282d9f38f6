"""slippyglobe — slippy-map tile selection for 3-D globes.

Decides which zoom level is active, which tiles of it the camera needs,
and when fetched tiles are kept, pushed back or released.

Public API is organised into layers:

- **Core** — tile records, projection math, grid generation
- **Selection** — spatial indexes, level store, LOD, visibility
- **Lifecycle** — fetch state machine and the globe facade
- **Outer** — configuration, tile sources, I/O, rendering (matplotlib)
"""

# ── Core ────────────────────────────────────────────────────────────
from .models import CellBounds, Projection, Tile, TileState
from .projection import (
    cell_bounds,
    find_cell,
    grid_size,
    polar_to_world,
    polar_to_world_array,
    world_to_polar,
)
from .tile_grid import generate_level, generate_range, level_tile_count

# ── Selection ───────────────────────────────────────────────────────
from .spatial_index import (
    OnDemandIndex,
    PlanarIndex,
    VolumetricIndex,
    build_index,
    index_kind_for_level,
)
from .level_store import LevelEntry, LevelStore
from .lod import camera_altitude, default_thresholds, select_level
from .visibility import ViewState, cone_view, hull_points, select_tiles_to_fetch

# ── Lifecycle ───────────────────────────────────────────────────────
from .lifecycle import (
    LevelStats,
    NullRenderHooks,
    RenderHooks,
    TileLifecycleManager,
)
from .globe import SlippyMapGlobe

# ── Outer ───────────────────────────────────────────────────────────
from .config import CONFIG_SCHEMA, ConfigError, GlobeConfig
from .geometry import TileExtent, mercator_v_remap, tile_extent
from .source import tile_url, url_fetcher
from .io import load_config, save_config, load_json, save_json, tiles_payload

__all__ = [
    # Core
    "CellBounds",
    "Projection",
    "Tile",
    "TileState",
    "cell_bounds",
    "find_cell",
    "grid_size",
    "polar_to_world",
    "polar_to_world_array",
    "world_to_polar",
    "generate_level",
    "generate_range",
    "level_tile_count",
    # Selection
    "OnDemandIndex",
    "PlanarIndex",
    "VolumetricIndex",
    "build_index",
    "index_kind_for_level",
    "LevelEntry",
    "LevelStore",
    "camera_altitude",
    "default_thresholds",
    "select_level",
    "ViewState",
    "cone_view",
    "hull_points",
    "select_tiles_to_fetch",
    # Lifecycle
    "LevelStats",
    "NullRenderHooks",
    "RenderHooks",
    "TileLifecycleManager",
    "SlippyMapGlobe",
    # Outer
    "CONFIG_SCHEMA",
    "ConfigError",
    "GlobeConfig",
    "TileExtent",
    "mercator_v_remap",
    "tile_extent",
    "tile_url",
    "url_fetcher",
    "load_config",
    "save_config",
    "load_json",
    "save_json",
    "tiles_payload",
]
