"""Tile sources built from URL templates."""

from __future__ import annotations

from typing import Any, Callable

from .lifecycle import FetchFn


def tile_url(template: str, x: int, y: int, level: int) -> str:
    """Fill ``{x}``, ``{y}`` and ``{z}`` (or ``{level}``) in *template*.

    >>> tile_url("https://tile.example.org/{z}/{x}/{y}.png", 3, 5, 4)
    'https://tile.example.org/4/3/5.png'
    """
    return template.format(x=x, y=y, z=level, level=level)


def url_fetcher(template: str, loader: Callable[[str], Any]) -> FetchFn:
    """Fetch function that passes each tile's URL to *loader*.

    *loader* receives the URL and returns whatever a fetch function may
    return: a future, an awaitable or the resource itself.
    """
    def fetch(x: int, y: int, level: int) -> Any:
        return loader(tile_url(template, x, y, level))

    fetch.template = template  # type: ignore[attr-defined]
    return fetch
