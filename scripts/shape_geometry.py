"""
shape_geometry.py

Outer-ring repair for polygon coordinates in GeoJSON list form.

A ring is treated as self-intersecting when it revisits a vertex before
its closing point. Such rings are replaced by the convex hull of their
points, which is always a simple ring. Rings with arbitrary edge crossings
but no revisited vertex are left alone.

Only the outer ring survives: holes are dropped.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import numpy as np
import shapely

logger = logging.getLogger(__name__)


def _key(point: Sequence[Any]) -> tuple:
    return tuple(point)


def is_closed(ring: Sequence[Sequence[Any]]) -> bool:
    return len(ring) > 1 and _key(ring[0]) == _key(ring[-1])


def has_repeated_vertex(ring: Sequence[Sequence[Any]]) -> bool:
    """True if any point other than the final one occurs twice."""
    seen = set()
    for point in ring[:-1]:
        key = _key(point)
        if key in seen:
            return True
        seen.add(key)
    return False


def close_ring(ring: list[list[float]]) -> list[list[float]]:
    if ring and not is_closed(ring):
        ring.append(list(ring[0]))
    return ring


def polygon_for_points(points: Sequence[Sequence[Any]]) -> list[list[float]]:
    """Simple closed ring through the given points (their convex hull)."""
    coords = np.asarray([p[:2] for p in points], dtype=float)
    hull = shapely.convex_hull(shapely.multipoints(coords))

    if isinstance(hull, shapely.Polygon) and not hull.is_empty:
        return [list(xy) for xy in hull.exterior.coords]

    # Collinear or single point set: keep distinct points in order.
    logger.warning("Degenerate hull (%s) for %d points", hull.geom_type, len(points))
    distinct = []
    seen = set()
    for point in points:
        key = _key(point)
        if key not in seen:
            seen.add(key)
            distinct.append(list(point))
    return close_ring(distinct)


def fix_if_self_intersecting(rings: list[list[list[float]]]) -> list[list[list[float]]]:
    """Return ``[outer]`` for the given polygon rings, repairing the outer ring.

    An outer ring without a revisited vertex is returned as the very same
    list object, so its coordinates are untouched.
    """
    outer = rings[0]
    if not has_repeated_vertex(outer):
        return [outer]
    return [close_ring(polygon_for_points(outer[:-1] if is_closed(outer) else outer))]


def outer_ring_polygon(polygon_rings: list[list[list[float]]]) -> list[list[list[float]]]:
    """Drop holes and repair what is left."""
    return fix_if_self_intersecting([polygon_rings[0]])
