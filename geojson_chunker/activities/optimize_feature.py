"""Feature optimisation activity.

Reduces a parsed GeoJSON Feature to the compact form written to chunks:

- every coordinate component rounded to 5 decimal places (~1.1 m) with
  halves rounded toward positive infinity (the rule of ``Math.round``);
  altitude values are dropped
- properties restricted to a fixed allow-list of WDPA fields, renamed to
  their short output keys; a field is copied only when present and not
  null or empty, never defaulted
- a stable identifier: the source ``id``, or ``<region>_<ordinal>``

The transform is lossy on purpose: chunks are intermediate artefacts for
rendering, not archival copies.
"""

from __future__ import annotations

import math
from typing import Any

from geojson_chunker.core.constants import COORDINATE_SCALE, PROPERTY_ALLOW_LIST
from geojson_chunker.models.feature import OptimizedFeature
from geojson_chunker.models.geometry import Geometry, Position


def optimize_feature(
    feature: dict[str, Any],
    *,
    region: str = "",
    ordinal: int = 0,
) -> OptimizedFeature | None:
    """Reduce a source feature to an ``OptimizedFeature``.

    Args:
        feature: A parsed GeoJSON Feature dict.
        region: Region code, used for the fallback identifier.
        ordinal: 1-based position of the feature within the region, used
            for the fallback identifier.

    Returns:
        The optimized feature, or ``None`` when the feature has no geometry.

    Raises:
        GeometryError: If the geometry type is unsupported or its
            coordinates do not match the declared nesting.
    """
    raw_geometry = feature.get("geometry")
    if not raw_geometry:
        return None

    geometry = Geometry.from_dict(raw_geometry).map_positions(round_position)
    return OptimizedFeature(
        geometry=geometry,
        properties=reduce_properties(feature.get("properties")),
        id=_stable_id(feature.get("id"), region, ordinal),
    )


def round_coordinate(value: float) -> float:
    """Round one coordinate component to ``COORDINATE_PRECISION`` decimals.

    Idempotent: rounding an already-rounded value returns it unchanged.
    """
    return math.floor(value * COORDINATE_SCALE + 0.5) / COORDINATE_SCALE


def round_position(position: Position) -> Position:
    return [round_coordinate(position[0]), round_coordinate(position[1])]


def reduce_properties(properties: object) -> dict[str, object]:
    """Copy the allow-listed properties under their output keys.

    Source keys are matched exactly first, then case-insensitively.
    """
    if not isinstance(properties, dict):
        return {}

    by_upper = {str(key).upper(): value for key, value in properties.items()}
    reduced: dict[str, object] = {}
    for source_key, output_key in PROPERTY_ALLOW_LIST:
        value = properties.get(source_key)
        if value is None:
            value = by_upper.get(source_key)
        if value is None or value == "":
            continue
        reduced[output_key] = value
    return reduced


def _stable_id(raw_id: object, region: str, ordinal: int) -> str | int | float:
    if isinstance(raw_id, str) and raw_id:
        return raw_id
    if isinstance(raw_id, int | float) and not isinstance(raw_id, bool):
        return raw_id
    return f"{region}_{ordinal}"
