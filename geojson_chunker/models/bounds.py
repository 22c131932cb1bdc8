"""Axis-aligned bounding box in decimal degrees (WGS 84).

A ``BoundingBox`` is only ever constructed for a geometry with at least one
position; construction rejects NaN/Infinity and inverted ranges so an
invalid box can never reach the spatial index.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from geojson_chunker.core.exceptions import ValidationError


class BoundsError(ValidationError):
    """Raised when bounding-box values are non-finite or inverted."""

    default_stage = "compute_bounds"
    default_code = "BOUNDS_INVALID"


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Bounding box ``(min_lng, min_lat, max_lng, max_lat)``.

    Attributes:
        min_lng: Western edge in degrees.
        min_lat: Southern edge in degrees.
        max_lng: Eastern edge in degrees.
        max_lat: Northern edge in degrees.
    """

    min_lng: float
    min_lat: float
    max_lng: float
    max_lat: float

    def __post_init__(self) -> None:
        values = (self.min_lng, self.min_lat, self.max_lng, self.max_lat)
        if not all(math.isfinite(v) for v in values):
            msg = f"Bounding box values must be finite, got {values}"
            raise BoundsError(msg)
        if self.min_lng > self.max_lng or self.min_lat > self.max_lat:
            msg = f"Bounding box minimum exceeds maximum: {values}"
            raise BoundsError(msg)

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> BoundingBox:
        """Build from ``[min_lng, min_lat, max_lng, max_lat]``.

        Raises:
            BoundsError: If there are not exactly four numeric values.
        """
        if len(values) != 4:
            msg = f"Bounding box needs 4 values, got {len(values)}"
            raise BoundsError(msg)
        try:
            min_lng, min_lat, max_lng, max_lat = (float(v) for v in values)
        except (TypeError, ValueError) as exc:
            msg = f"Bounding box values must be numeric, got {list(values)!r}"
            raise BoundsError(msg) from exc
        return cls(min_lng, min_lat, max_lng, max_lat)

    def intersects(self, other: BoundingBox) -> bool:
        """Whether the two boxes overlap. Touching edges and corners count."""
        return not (
            other.min_lng > self.max_lng
            or other.max_lng < self.min_lng
            or other.min_lat > self.max_lat
            or other.max_lat < self.min_lat
        )

    def to_tuple(self) -> tuple[float, float, float, float]:
        return (self.min_lng, self.min_lat, self.max_lng, self.max_lat)

    def to_dict(self) -> dict[str, float]:
        """Serialise with the camel-case keys used by map clients."""
        return {
            "minLng": self.min_lng,
            "minLat": self.min_lat,
            "maxLng": self.max_lng,
            "maxLat": self.max_lat,
        }
