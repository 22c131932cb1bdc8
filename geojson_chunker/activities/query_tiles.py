"""Tile query activity.

Answers "which features of region R intersect this box at zoom Z" from
the chunk files on disk:

1. The region's spatial index is built on first use and cached for the
   lifetime of the engine.
2. Index entries are filtered by bounding-box intersection (touching edges
   count as intersecting).
3. Each referenced chunk is loaded once per query and the entry's feature
   is taken from it.
4. A zoom-dependent simplification factor,
   ``max(0, max_zoom - zoom) / max_zoom``, is passed with each geometry to
   the simplification hook. The default hook returns the geometry
   unchanged; point reduction can be plugged in without changing the
   engine.

A chunk that disappears (or shrinks) after the index was built makes the
index stale: the cached index is discarded and ``StaleIndexError`` is
raised. The caller may retry; the next query rebuilds the index.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from geojson_chunker.activities.build_index import ChunkNotFoundError, build_index, load_chunk
from geojson_chunker.core.constants import DEFAULT_MAX_ZOOM, ChunkLayout
from geojson_chunker.core.exceptions import TransientError, ValidationError
from geojson_chunker.models.bounds import BoundingBox, BoundsError
from geojson_chunker.models.chunk import ChunkDocument
from geojson_chunker.models.index_entry import SpatialIndexEntry
from geojson_chunker.utils.chunk_paths import RegionCodeError, chunk_path, validate_region_code

logger = logging.getLogger("geojson_chunker.activities.query_tiles")

Simplifier = Callable[[dict[str, Any], float], dict[str, Any]]


class QueryValidationError(ValidationError):
    """Raised when query region, bounds or zoom are invalid."""

    default_stage = "query_tiles"
    default_code = "QUERY_INVALID"


class StaleIndexError(TransientError):
    """Raised when the cached index references chunk data that no longer exists."""

    default_stage = "query_tiles"
    default_code = "INDEX_STALE"


def passthrough_simplifier(geometry: dict[str, Any], factor: float) -> dict[str, Any]:
    """Default simplification hook: returns *geometry* unchanged."""
    return geometry


class TileQueryEngine:
    """Bounding-box and zoom queries over a directory of chunk files.

    Args:
        chunk_dir: Root directory of the chunk files.
        layout: Flat or nested chunk file arrangement.
        max_zoom: Zoom level at which the simplification factor is 0.
        simplifier: ``(geometry, factor) -> geometry`` hook.
    """

    def __init__(
        self,
        chunk_dir: Path | str,
        *,
        layout: ChunkLayout = ChunkLayout.FLAT,
        max_zoom: int = DEFAULT_MAX_ZOOM,
        simplifier: Simplifier | None = None,
    ) -> None:
        if max_zoom <= 0:
            msg = f"max_zoom must be > 0, got {max_zoom}"
            raise ValueError(msg)
        self.chunk_dir = Path(chunk_dir)
        self.layout = layout
        self.max_zoom = max_zoom
        self.simplifier: Simplifier = simplifier or passthrough_simplifier
        self._indexes: dict[str, list[SpatialIndexEntry]] = {}

    def index_for(self, region: str) -> list[SpatialIndexEntry]:
        """Return the region's index, building it on first use."""
        entries = self._indexes.get(region)
        if entries is None:
            entries = build_index(region, self.chunk_dir, layout=self.layout)
            self._indexes[region] = entries
        return entries

    def invalidate(self, region: str | None = None) -> None:
        """Discard the cached index of *region*, or of every region."""
        if region is None:
            self._indexes.clear()
        else:
            self._indexes.pop(region, None)

    def simplification_factor(self, zoom: int) -> float:
        """``max(0, max_zoom - zoom) / max_zoom``: 1.0 at zoom 0, 0.0 at ``max_zoom`` and above."""
        return max(0, self.max_zoom - zoom) / self.max_zoom

    def query(
        self,
        region: str,
        bounds: BoundingBox | Sequence[float],
        zoom: int,
    ) -> list[dict[str, Any]]:
        """Return the region's features whose bounds intersect *bounds*.

        Args:
            region: Region code.
            bounds: Query box, as a ``BoundingBox`` or
                ``[min_lng, min_lat, max_lng, max_lat]``.
            zoom: Tile zoom level (>= 0).

        Returns:
            Feature dicts in index order (chunk order, then position within
            the chunk), with simplified geometry.

        Raises:
            QueryValidationError: If the region, bounds or zoom are invalid.
            StaleIndexError: If a chunk referenced by the index is missing.
            ChunkReadError: If a chunk cannot be read or parsed.
        """
        query_box = _coerce_bounds(bounds)
        if isinstance(zoom, bool) or not isinstance(zoom, int) or zoom < 0:
            msg = f"zoom must be a non-negative integer, got {zoom!r}"
            raise QueryValidationError(msg)
        try:
            validate_region_code(region)
        except RegionCodeError as exc:
            raise QueryValidationError(f"Invalid query region: {exc.message}") from exc

        factor = self.simplification_factor(zoom)
        matches = [entry for entry in self.index_for(region) if entry.bounds.intersects(query_box)]

        chunks: dict[int, ChunkDocument] = {}
        results: list[dict[str, Any]] = []
        for entry in matches:
            document = chunks.get(entry.chunk_index)
            if document is None:
                document = self._load_indexed_chunk(region, entry.chunk_index)
                chunks[entry.chunk_index] = document
            if entry.feature_index >= len(document.features):
                self.invalidate(region)
                msg = (
                    f"Index entry {entry.feature_index} is past the end of "
                    f"chunk {entry.chunk_index} of region {region}"
                )
                raise StaleIndexError(msg)

            feature = dict(document.features[entry.feature_index])
            feature["geometry"] = self.simplifier(feature["geometry"], factor)
            results.append(feature)

        logger.debug(
            "Tile query | region=%s | bounds=%s | zoom=%d | factor=%.3f | chunks=%d | features=%d",
            region,
            query_box.to_tuple(),
            zoom,
            factor,
            len(chunks),
            len(results),
        )
        return results

    def _load_indexed_chunk(self, region: str, chunk_index: int) -> ChunkDocument:
        path = chunk_path(self.chunk_dir, region, chunk_index, self.layout)
        try:
            return load_chunk(path)
        except ChunkNotFoundError as exc:
            self.invalidate(region)
            logger.warning(
                "Stale spatial index discarded | region=%s | chunk=%d | path=%s",
                region,
                chunk_index,
                path,
            )
            msg = f"Chunk {chunk_index} of region {region} is missing; index discarded"
            raise StaleIndexError(msg) from exc


def _coerce_bounds(bounds: BoundingBox | Sequence[float]) -> BoundingBox:
    if isinstance(bounds, BoundingBox):
        return bounds
    try:
        return BoundingBox.from_sequence(bounds)
    except (BoundsError, TypeError) as exc:
        msg = f"Invalid query bounds {bounds!r}: {exc}"
        raise QueryValidationError(msg) from exc
