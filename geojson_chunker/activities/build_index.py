"""Spatial index building activity.

Reads a region's chunk files in ascending index order, starting at 0 and
stopping at the first missing index, and produces one
``SpatialIndexEntry`` per feature that has a valid bounding box.

Chunk files are numbered contiguously by the chunk writer, so a gap marks
the end of the region rather than an error. Features whose geometry has
no positions are left out of the index.

The index is O(total features) in time and space, held in memory only,
and can be rebuilt from the chunk files at any time.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from geojson_chunker.activities.compute_bounds import compute_bounds
from geojson_chunker.core.constants import ChunkLayout
from geojson_chunker.core.exceptions import ContractError, PermanentError
from geojson_chunker.models.chunk import ChunkDocument
from geojson_chunker.models.index_entry import SpatialIndexEntry
from geojson_chunker.utils.chunk_paths import chunk_path

logger = logging.getLogger("geojson_chunker.activities.build_index")


class ChunkNotFoundError(PermanentError):
    """Raised when a chunk file does not exist."""

    default_stage = "build_index"
    default_code = "CHUNK_NOT_FOUND"


class ChunkReadError(ContractError):
    """Raised when a chunk file cannot be read or does not match the schema."""

    default_stage = "build_index"
    default_code = "CHUNK_READ_FAILED"


def load_chunk(path: Path | str) -> ChunkDocument:
    """Read and validate one chunk file.

    Raises:
        ChunkNotFoundError: If the file does not exist.
        ChunkReadError: If the file cannot be read or is not a valid chunk.
    """
    path = Path(path)
    try:
        content = path.read_bytes()
    except FileNotFoundError as exc:
        msg = f"Chunk file not found: {path}"
        raise ChunkNotFoundError(msg) from exc
    except OSError as exc:
        msg = f"Cannot read chunk file {path}: {exc}"
        raise ChunkReadError(msg) from exc

    try:
        return ChunkDocument.model_validate_json(content)
    except PydanticValidationError as exc:
        msg = f"Invalid chunk document {path}: {exc.error_count()} validation error(s)"
        raise ChunkReadError(msg) from exc


def iter_region_chunks(
    region: str,
    chunk_dir: Path | str,
    *,
    layout: ChunkLayout = ChunkLayout.FLAT,
) -> Iterator[tuple[int, ChunkDocument]]:
    """Yield ``(chunk_index, document)`` for a region's contiguous chunks.

    Raises:
        ChunkReadError: If a chunk is unreadable or its metadata names a
            different region or index.
    """
    chunk_index = 0
    while True:
        path = chunk_path(chunk_dir, region, chunk_index, layout)
        if not path.is_file():
            return
        document = load_chunk(path)
        if document.metadata.region != region or document.metadata.chunk != chunk_index:
            msg = (
                f"Chunk {path} metadata names region={document.metadata.region!r} "
                f"chunk={document.metadata.chunk}, expected region={region!r} chunk={chunk_index}"
            )
            raise ChunkReadError(msg)
        yield chunk_index, document
        chunk_index += 1


def build_index(
    region: str,
    chunk_dir: Path | str,
    *,
    layout: ChunkLayout = ChunkLayout.FLAT,
) -> list[SpatialIndexEntry]:
    """Build the spatial index entries of a region.

    Args:
        region: Region code.
        chunk_dir: Root directory of the chunk files.
        layout: Flat or nested chunk file arrangement.

    Returns:
        Entries in chunk order, then feature order within each chunk.
        Empty when the region has no chunks.

    Raises:
        ChunkReadError: If a chunk is unreadable or inconsistent.
    """
    entries: list[SpatialIndexEntry] = []
    chunk_count = 0
    skipped = 0
    for chunk_index, document in iter_region_chunks(region, chunk_dir, layout=layout):
        chunk_count += 1
        for feature_index, feature in enumerate(document.features):
            bounds = compute_bounds(feature.get("geometry"))
            if bounds is None:
                skipped += 1
                continue
            entries.append(
                SpatialIndexEntry(
                    region=region,
                    chunk_index=chunk_index,
                    feature_index=feature_index,
                    bounds=bounds,
                )
            )

    logger.info(
        "Spatial index built | region=%s | chunks=%d | entries=%d | unindexed=%d",
        region,
        chunk_count,
        len(entries),
        skipped,
    )
    return entries
