"""Pydantic model of a chunk document.

A chunk is a complete, independently parseable GeoJSON FeatureCollection
holding a contiguous slice of one region's optimized features, plus a
``metadata`` block identifying the region and the chunk's position::

    {"type": "FeatureCollection",
     "features": [...],
     "metadata": {"region": "af", "chunk": 0, "count": 50}}

Chunks are serialised compactly and deterministically so re-running a
region over unchanged input reproduces byte-identical files.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class ChunkMetadata(BaseModel):
    """Self-describing block embedded in every chunk.

    Attributes:
        region: Region code the chunk belongs to.
        chunk: Zero-based chunk index within the region.
        count: Number of features in the chunk.
    """

    region: str
    chunk: int = Field(ge=0)
    count: int = Field(ge=0)


class ChunkDocument(BaseModel):
    """Top-level chunk document (a GeoJSON FeatureCollection)."""

    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: list[dict[str, Any]] = Field(default_factory=list)
    metadata: ChunkMetadata

    def to_json(self) -> str:
        """Serialise to compact JSON."""
        return self.model_dump_json()
