"""Level-of-detail selection from camera altitude."""

from __future__ import annotations

import math
from typing import List, Optional, Sequence


def default_thresholds(count: int = 30, start: float = 8.0) -> List[float]:
    """Altitude cutoffs halving per level: ``start / 2**i``, in globe radii."""
    return [start / 2 ** i for i in range(count)]


def camera_altitude(distance_to_center: float, radius: float) -> float:
    """Camera height above the surface, in globe radii."""
    if radius <= 0:
        raise ValueError("radius must be > 0")
    return (distance_to_center - radius) / radius


def select_level(
    camera_distance: float,
    thresholds: Sequence[Optional[float]],
    min_level: int = 0,
    max_level: Optional[int] = None,
) -> int:
    """Zoom level for a camera *camera_distance* radii above the surface.

    The level is the index of the first threshold ``<= camera_distance``,
    or ``len(thresholds)`` when none qualifies, clamped to
    ``[min_level, max_level]``.  Empty (``None`` / ``0``) entries never
    match.  A camera at or below the surface gets *min_level*.
    """
    if max_level is None:
        max_level = len(thresholds)
    if camera_distance <= 0 or math.isnan(camera_distance):
        return min_level

    idx = len(thresholds)
    for i, t in enumerate(thresholds):
        if t and t <= camera_distance:
            idx = i
            break
    return min(max_level, max(min_level, idx))
