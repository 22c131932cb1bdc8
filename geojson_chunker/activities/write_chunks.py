"""Chunk writing activity.

Accumulates optimized features in memory and writes them out as chunk
documents once a threshold is reached, releasing the batch immediately so
memory stays bounded by one chunk.

Thresholds:
- ``features_per_chunk``: flush when the batch holds this many features.
- ``max_chunk_bytes``: flush when the estimated serialized size of the
  batch reaches this many bytes (``0`` disables it). A single feature
  larger than the limit still becomes its own chunk.

Engineering constraints:
- Chunk indices start at 0 and increase by one per chunk, in input order.
- The file name is a pure function of region, index and layout
  (see ``utils.chunk_paths``).
- Writes are atomic: the document is serialized completely, written to a
  temporary file in the target directory, then moved into place. A chunk
  file is never left half-written.
- A write failure is fatal for the region. It is not retried; the batch
  being flushed is lost and the region must be re-run from scratch.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from geojson_chunker.core.constants import DEFAULT_FEATURES_PER_CHUNK, ChunkLayout
from geojson_chunker.core.exceptions import PermanentError
from geojson_chunker.models.chunk import ChunkDocument, ChunkMetadata
from geojson_chunker.models.feature import OptimizedFeature
from geojson_chunker.models.summary import ChunkStat
from geojson_chunker.utils.chunk_paths import chunk_path, validate_region_code

logger = logging.getLogger("geojson_chunker.activities.write_chunks")

# Bytes of the FeatureCollection envelope and the separating comma per
# feature, added to the per-feature estimate of the batch size.
_ENVELOPE_BYTES = 96
_SEPARATOR_BYTES = 1


class ChunkWriteError(PermanentError):
    """Raised when a chunk file cannot be written."""

    default_stage = "write_chunks"
    default_code = "CHUNK_WRITE_FAILED"


class ChunkWriter:
    """Batches optimized features of one region into chunk files.

    Args:
        region: Region code; part of every chunk's name and metadata.
        output_dir: Root directory for chunks.
        features_per_chunk: Feature-count threshold.
        max_chunk_bytes: Byte threshold (``0`` disables it).
        layout: Flat or nested chunk file arrangement.
    """

    def __init__(
        self,
        region: str,
        output_dir: Path | str,
        *,
        features_per_chunk: int = DEFAULT_FEATURES_PER_CHUNK,
        max_chunk_bytes: int = 0,
        layout: ChunkLayout = ChunkLayout.FLAT,
    ) -> None:
        if features_per_chunk <= 0:
            msg = f"features_per_chunk must be > 0, got {features_per_chunk}"
            raise ValueError(msg)
        if max_chunk_bytes < 0:
            msg = f"max_chunk_bytes must be >= 0, got {max_chunk_bytes}"
            raise ValueError(msg)
        self.region = validate_region_code(region)
        self.output_dir = Path(output_dir)
        self.features_per_chunk = features_per_chunk
        self.max_chunk_bytes = max_chunk_bytes
        self.layout = layout
        self.chunk_index = 0
        self.written: list[ChunkStat] = []
        self._batch: list[dict[str, object]] = []
        self._batch_bytes = _ENVELOPE_BYTES

    @property
    def pending(self) -> int:
        """Features held in memory, not yet written."""
        return len(self._batch)

    @property
    def feature_count(self) -> int:
        """Features written so far."""
        return sum(stat.feature_count for stat in self.written)

    @property
    def total_written_bytes(self) -> int:
        return sum(stat.size_bytes for stat in self.written)

    def add_feature(self, feature: OptimizedFeature) -> ChunkStat | None:
        """Append a feature, flushing the batch when a threshold is reached.

        Returns:
            The ``ChunkStat`` of the chunk written by this call, if any.

        Raises:
            ChunkWriteError: If a flush fails.
        """
        payload = feature.to_dict()
        self._batch.append(payload)
        if self.max_chunk_bytes:
            self._batch_bytes += _estimate_bytes(payload) + _SEPARATOR_BYTES

        if len(self._batch) >= self.features_per_chunk or (
            self.max_chunk_bytes and self._batch_bytes >= self.max_chunk_bytes
        ):
            return self.flush()
        return None

    def flush(self) -> ChunkStat | None:
        """Write the current batch as the next chunk (no-op when empty).

        Raises:
            ChunkWriteError: If the chunk cannot be written.
        """
        if not self._batch:
            return None

        batch = self._batch
        self._batch = []
        self._batch_bytes = _ENVELOPE_BYTES

        document = ChunkDocument(
            features=batch,
            metadata=ChunkMetadata(region=self.region, chunk=self.chunk_index, count=len(batch)),
        )
        content = document.to_json().encode("utf-8")
        path = chunk_path(self.output_dir, self.region, self.chunk_index, self.layout)
        _write_atomic(path, content)

        stat = ChunkStat(
            chunk_index=self.chunk_index,
            size_bytes=len(content),
            feature_count=len(batch),
        )
        self.written.append(stat)
        logger.debug(
            "Chunk written | region=%s | chunk=%d | features=%d | bytes=%d | path=%s",
            self.region,
            self.chunk_index,
            len(batch),
            len(content),
            path,
        )
        self.chunk_index += 1
        return stat

    def finish(self) -> list[ChunkStat]:
        """Flush the remainder as the final chunk and return all chunk stats.

        Raises:
            ChunkWriteError: If the final flush fails.
        """
        self.flush()
        return list(self.written)


def _estimate_bytes(payload: dict[str, object]) -> int:
    return len(json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))


def _write_atomic(path: Path, content: bytes) -> None:
    """Write *content* to *path* via a temporary file and ``os.replace``.

    Raises:
        ChunkWriteError: On any filesystem error.
    """
    tmp_name = ""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name:
            Path(tmp_name).unlink(missing_ok=True)
        msg = f"Failed to write chunk {path}: {exc}"
        raise ChunkWriteError(msg) from exc
