"""Data model for one spatial index entry.

One entry exists per indexed feature: it locates the feature by region,
chunk and position within the chunk, and records its bounding box. Entries
are derived from chunk files and held in memory only.
"""

from __future__ import annotations

from dataclasses import dataclass

from geojson_chunker.models.bounds import BoundingBox


@dataclass(frozen=True, slots=True)
class SpatialIndexEntry:
    """Location and extent of one feature.

    Attributes:
        region: Region code.
        chunk_index: Zero-based chunk the feature lives in.
        feature_index: Zero-based position within the chunk's features array.
        bounds: The feature's bounding box.
    """

    region: str
    chunk_index: int
    feature_index: int
    bounds: BoundingBox

    def to_dict(self) -> dict[str, object]:
        return {
            "region": self.region,
            "chunk": self.chunk_index,
            "feature": self.feature_index,
            "bounds": self.bounds.to_dict(),
        }
