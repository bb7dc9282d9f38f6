"""Coverage plots — a level's tiles on an equirectangular canvas.

Each tile is drawn as a rectangle coloured by its lifecycle state,
which makes the effect of the camera, the search window and the
visibility test easy to inspect.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple, Union

from .models import Tile, TileState
from .projection import world_to_polar

_STATE_COLORS = {
    TileState.UNFETCHED: "#d9d9d9",
    TileState.LOADING: "#f5a623",
    TileState.RESIDENT: "#3cb44b",
    TileState.DISCARDED: "#e6194b",
}
_CAMERA_COLOR = "#4363d8"


def _ensure_mpl():
    """Lazy-import matplotlib; raise helpful error if missing."""
    try:
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        from matplotlib.patches import Patch, Rectangle
        return plt, Patch, Rectangle
    except ImportError as exc:
        raise RuntimeError(
            "matplotlib is required for visualisation. "
            "Install with `pip install matplotlib`."
        ) from exc


def draw_tiles(
    ax,
    tiles: Iterable[Tile],
    *,
    edge_color: str = "#2b2b2b",
    linewidth: float = 0.3,
) -> int:
    """Draw *tiles* on *ax*; return how many were drawn."""
    _, _, Rectangle = _ensure_mpl()
    count = 0
    for tile in tiles:
        b = tile.bounds
        ax.add_patch(Rectangle(
            (b.lng0, b.lat0),
            b.lng_len,
            b.lat_len,
            facecolor=_STATE_COLORS[tile.state],
            edgecolor=edge_color,
            linewidth=linewidth,
        ))
        count += 1
    return count


def render_coverage_png(
    tiles: Iterable[Tile],
    path: Union[str, Path],
    *,
    camera_position: Optional[Sequence[float]] = None,
    title: Optional[str] = None,
    figsize: Tuple[float, float] = (10.0, 5.0),
    dpi: int = 150,
) -> Path:
    """Render *tiles* as a lng/lat coverage map and save it to *path*.

    If *camera_position* (globe-local frame) is given, its sub-point is
    marked.
    """
    plt, Patch, _ = _ensure_mpl()

    fig, ax = plt.subplots(figsize=figsize)
    drawn = draw_tiles(ax, tiles)

    if camera_position is not None:
        lat, lng, _ = world_to_polar(*camera_position)
        ax.plot([lng], [lat], marker="x", color=_CAMERA_COLOR, markersize=8)

    ax.set_xlim(-180, 180)
    ax.set_ylim(-90, 90)
    ax.set_aspect("equal")
    ax.set_xlabel("longitude (°)")
    ax.set_ylabel("latitude (°)")
    ax.set_title(title or f"{drawn} tiles")
    ax.legend(
        handles=[Patch(color=c, label=s.value) for s, c in _STATE_COLORS.items()],
        loc="lower left",
        fontsize="small",
    )

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    return out
