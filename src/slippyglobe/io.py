from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, Union

from .config import GlobeConfig
from .models import Tile


PathLike = Union[str, Path]


def load_config(path: PathLike) -> GlobeConfig:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return GlobeConfig.from_dict(data)


def save_config(config: GlobeConfig, path: PathLike) -> None:
    Path(path).write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")


def tiles_payload(tiles: Iterable[Tile], **metadata: Any) -> Dict[str, Any]:
    """JSON-ready listing of *tiles* with optional metadata."""
    entries = [t.to_dict() for t in tiles]
    return {"metadata": {"tile_count": len(entries), **metadata}, "tiles": entries}


def save_json(payload: Dict[str, Any], path: PathLike, indent: int = 2) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(payload, indent=indent), encoding="utf-8")
    return out


def load_json(path: PathLike) -> Dict[str, Any]:
    return json.loads(Path(path).read_text(encoding="utf-8"))
