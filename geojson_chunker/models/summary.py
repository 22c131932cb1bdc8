"""Pydantic models for per-region and per-run processing summaries.

A ``RegionSummary`` is produced by the region pipeline once a region has
been streamed (or skipped). It is the read-only record consumed by report
renderers: how large the input was, how many features and chunks came
out, how many bytes were written, how long it took, and which chunks
were the largest.

A ``ProcessingReport`` aggregates the summaries of one run.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime

from pydantic import BaseModel, Field

STATUS_COMPLETED = "completed"
STATUS_MISSING_INPUT = "missing_input"
STATUS_FAILED = "failed"


class ChunkStat(BaseModel):
    """Size record of one written chunk."""

    chunk_index: int
    size_bytes: int
    feature_count: int


class SkipCounts(BaseModel):
    """Objects seen in the features array that did not become output features.

    Attributes:
        malformed: Delimited objects that failed to parse as JSON.
        not_feature: Parsed objects whose ``type`` is not ``"Feature"``.
        oversized: Objects discarded by the feature size ceiling.
        no_geometry: Features without a geometry.
        invalid_geometry: Features whose geometry is malformed.
    """

    malformed: int = 0
    not_feature: int = 0
    oversized: int = 0
    no_geometry: int = 0
    invalid_geometry: int = 0

    @property
    def total(self) -> int:
        return (
            self.malformed
            + self.not_feature
            + self.oversized
            + self.no_geometry
            + self.invalid_geometry
        )


class RegionSummary(BaseModel):
    """Outcome of processing one region.

    Attributes:
        region: Region code.
        input_path: Input GeoJSON path as configured.
        raw_size_bytes: Size of the input file (0 when missing).
        feature_count: Features written to chunks.
        chunk_count: Chunk files written.
        total_written_bytes: Sum of all chunk sizes in bytes.
        processing_duration_ms: Wall-clock time spent on the region.
        largest_chunks: Top-N chunks by size, largest first.
        lines_read: Input lines consumed.
        skipped: Counts of objects that did not become features.
        status: ``completed``, ``missing_input`` or ``failed``.
        errors: Structured error payloads (``PipelineError.to_error_dict``).
    """

    region: str
    input_path: str = ""
    raw_size_bytes: int = 0
    feature_count: int = 0
    chunk_count: int = 0
    total_written_bytes: int = 0
    processing_duration_ms: float = 0.0
    largest_chunks: list[ChunkStat] = Field(default_factory=list)
    lines_read: int = 0
    skipped: SkipCounts = Field(default_factory=SkipCounts)
    status: str = STATUS_COMPLETED
    errors: list[dict[str, object]] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.status == STATUS_COMPLETED


class ProcessingReport(BaseModel):
    """All region summaries of one run, with totals."""

    correlation_id: str = ""
    started_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    finished_at: str = ""
    regions: list[RegionSummary] = Field(default_factory=list)

    @property
    def total_features(self) -> int:
        return sum(r.feature_count for r in self.regions)

    @property
    def total_chunks(self) -> int:
        return sum(r.chunk_count for r in self.regions)

    @property
    def total_written_bytes(self) -> int:
        return sum(r.total_written_bytes for r in self.regions)

    @property
    def total_duration_ms(self) -> float:
        return sum(r.processing_duration_ms for r in self.regions)

    def add(self, summary: RegionSummary) -> None:
        self.regions.append(summary)

    def finalize(self) -> None:
        self.finished_at = datetime.now(UTC).isoformat()

    def to_json(self, *, indent: int = 2) -> str:
        """Serialise the report, totals included."""
        payload = self.model_dump()
        payload["totals"] = {
            "features": self.total_features,
            "chunks": self.total_chunks,
            "written_bytes": self.total_written_bytes,
            "duration_ms": self.total_duration_ms,
        }
        return json.dumps(payload, indent=indent)
