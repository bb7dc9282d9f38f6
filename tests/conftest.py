"""Shared test doubles: recording render hooks and a hand-resolved tile source."""

from __future__ import annotations

from concurrent.futures import Future
from typing import Dict, List, Optional, Tuple

import pytest

Key = Tuple[int, int, int]


class RecordingHooks:
    """Render hooks that record every call."""

    def __init__(self) -> None:
        self.attached: List[Key] = []
        self.released: List[Key] = []
        self.depth: List[Tuple[Key, bool]] = []
        self.backdrop: List[bool] = []

    def attach_resource(self, tile, resource) -> None:
        self.attached.append(tile.key)

    def release_resource(self, tile, resource) -> None:
        self.released.append(tile.key)

    def set_depth_write(self, tile, enabled: bool) -> None:
        self.depth.append((tile.key, enabled))

    def set_backdrop_visible(self, visible: bool) -> None:
        self.backdrop.append(visible)


class FutureSource:
    """Tile source handing out futures that tests resolve explicitly."""

    def __init__(self) -> None:
        self.calls: List[Key] = []
        self.pending: Dict[Key, Future] = {}

    def __call__(self, x: int, y: int, level: int) -> Future:
        key = (x, y, level)
        self.calls.append(key)
        future: Future = Future()
        self.pending[key] = future
        return future

    def keys(self, level: Optional[int] = None) -> List[Key]:
        return [k for k in self.pending if level is None or k[2] == level]

    def resolve(self, level: Optional[int] = None) -> int:
        """Resolve pending fetches (optionally only one level); return count."""
        keys = self.keys(level)
        for key in keys:
            self.pending.pop(key).set_result(f"texture-{key}")
        return len(keys)

    def reject(self, level: Optional[int] = None) -> int:
        keys = self.keys(level)
        for key in keys:
            self.pending.pop(key).set_exception(IOError(f"404 for {key}"))
        return len(keys)


@pytest.fixture
def hooks() -> RecordingHooks:
    return RecordingHooks()


@pytest.fixture
def source() -> FutureSource:
    return FutureSource()
