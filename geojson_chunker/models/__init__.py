"""Data models and schemas.

Defines the data structures used throughout the pipeline:
- Geometry: Tagged GeoJSON geometry with its nesting depth resolved
- OptimizedFeature: Reduced feature written to chunks
- BoundingBox: Axis-aligned extent in decimal degrees
- SpatialIndexEntry: Location and extent of one chunked feature
- ChunkDocument: The chunk file schema
- RegionSummary / ProcessingReport: Per-region and per-run outcomes
- RegionInspection: Raw-file profile
"""

from geojson_chunker.models.bounds import BoundingBox, BoundsError
from geojson_chunker.models.chunk import ChunkDocument, ChunkMetadata
from geojson_chunker.models.feature import OptimizedFeature
from geojson_chunker.models.geometry import Geometry, GeometryError, GeometryKind
from geojson_chunker.models.index_entry import SpatialIndexEntry
from geojson_chunker.models.inspection import RegionInspection
from geojson_chunker.models.summary import ChunkStat, ProcessingReport, RegionSummary, SkipCounts

__all__ = [
    "BoundingBox",
    "BoundsError",
    "ChunkDocument",
    "ChunkMetadata",
    "ChunkStat",
    "Geometry",
    "GeometryError",
    "GeometryKind",
    "OptimizedFeature",
    "ProcessingReport",
    "RegionInspection",
    "RegionSummary",
    "SkipCounts",
    "SpatialIndexEntry",
]
