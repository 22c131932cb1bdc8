"""Data model for an optimized feature.

An ``OptimizedFeature`` is the reduced form of a source GeoJSON Feature:
coordinates rounded to 5 decimals, properties restricted to the fixed
allow-list, and a stable identifier. It is the output of the
``optimize_feature`` activity and the unit the chunk writer batches.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from geojson_chunker.models.geometry import Geometry


@dataclass(frozen=True, slots=True)
class OptimizedFeature:
    """A reduced feature ready to be written to a chunk.

    Attributes:
        geometry: Geometry with rounded coordinates.
        properties: Allow-listed properties (absent fields are omitted).
        id: Source identifier, or ``"<region>_<ordinal>"`` when absent.
    """

    geometry: Geometry
    properties: dict[str, object] = field(default_factory=dict)
    id: str | int | float = ""

    def to_dict(self) -> dict[str, object]:
        """Serialise to a GeoJSON Feature dict."""
        return {
            "type": "Feature",
            "geometry": self.geometry.to_dict(),
            "properties": dict(self.properties),
            "id": self.id,
        }

