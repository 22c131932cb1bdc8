"""Bounds calculation activity.

Computes the axis-aligned bounding box of a geometry by flattening its
coordinate tree to ``(lng, lat)`` positions, walking exactly the nesting
depth of the geometry kind, and taking the componentwise min/max.

A geometry with no positions has no bounding box: ``compute_bounds``
returns ``None`` and callers must leave the feature out of the index.
A ``NaN`` or infinite box is never produced.
"""

from __future__ import annotations

from geojson_chunker.models.bounds import BoundingBox
from geojson_chunker.models.geometry import Geometry, GeometryError


def compute_bounds(geometry: Geometry | dict[str, object] | None) -> BoundingBox | None:
    """Compute the bounding box of *geometry*.

    Args:
        geometry: A ``Geometry`` or a raw GeoJSON geometry dict.

    Returns:
        The bounding box, or ``None`` when the geometry is missing,
        malformed, or has no positions.
    """
    if geometry is None:
        return None
    if not isinstance(geometry, Geometry):
        try:
            geometry = Geometry.from_dict(geometry)
        except GeometryError:
            return None

    min_lng = min_lat = float("inf")
    max_lng = max_lat = float("-inf")
    found = False
    try:
        for position in geometry.iter_positions():
            lng, lat = position[0], position[1]
            min_lng = min(min_lng, lng)
            min_lat = min(min_lat, lat)
            max_lng = max(max_lng, lng)
            max_lat = max(max_lat, lat)
            found = True
    except GeometryError:
        return None

    if not found:
        return None
    return BoundingBox(float(min_lng), float(min_lat), float(max_lng), float(max_lat))
