"""Region pipeline orchestrator.

Drives one region end-to-end:

1. Stream the input file line by line through the feature extractor
2. Optimize each emitted feature (rounding, property allow-list, id)
3. Batch optimized features into chunk files
4. Return a ``RegionSummary`` with counts, sizes, timing and skips

``process_all_regions`` runs every configured region in order and
collects the summaries into a ``ProcessingReport``. A region whose input
file is missing is recorded with status ``missing_input``; a region that
fails with a pipeline error (a chunk write, an unusable region code) is
recorded as ``failed``. Neither stops the run.

Regions are processed sequentially and each pipeline instance owns its
extractor, writer and counters for its own duration only.
"""

from __future__ import annotations

import logging
import time
import uuid
from pathlib import Path
from typing import Any

from geojson_chunker.activities.extract_features import ExtractorState, StreamingFeatureExtractor
from geojson_chunker.activities.optimize_feature import optimize_feature
from geojson_chunker.activities.write_chunks import ChunkWriter
from geojson_chunker.core.config import PipelineConfig
from geojson_chunker.core.exceptions import PipelineError
from geojson_chunker.models.geometry import GeometryError
from geojson_chunker.models.summary import (
    STATUS_FAILED,
    STATUS_MISSING_INPUT,
    ProcessingReport,
    RegionSummary,
    SkipCounts,
)

logger = logging.getLogger("geojson_chunker.orchestrators.region_pipeline")


class RegionPipeline:
    """Streams one region's GeoJSON file into chunk files.

    Args:
        region: Region code.
        input_path: Raw GeoJSON FeatureCollection.
        config: Pipeline configuration.
    """

    def __init__(
        self,
        region: str,
        input_path: Path | str,
        config: PipelineConfig,
    ) -> None:
        self.region = region
        self.input_path = Path(input_path)
        self.config = config
        self.features_seen = 0
        self.no_geometry = 0
        self.invalid_geometry = 0

    def run(self) -> RegionSummary:
        """Process the region and return its summary.

        Raises:
            ChunkWriteError: If a chunk cannot be written.
        """
        started = time.perf_counter()
        if not self.input_path.is_file():
            logger.warning(
                "Input file not found, region skipped | region=%s | path=%s",
                self.region,
                self.input_path,
            )
            return RegionSummary(
                region=self.region,
                input_path=str(self.input_path),
                status=STATUS_MISSING_INPUT,
            )

        raw_size = self.input_path.stat().st_size
        features_per_chunk = self.config.features_per_chunk_for(self.region)
        logger.info(
            "Region started | region=%s | path=%s | bytes=%d | features_per_chunk=%d",
            self.region,
            self.input_path,
            raw_size,
            features_per_chunk,
        )

        extractor = StreamingFeatureExtractor(
            max_feature_chars=self.config.max_feature_chars,
            string_aware=self.config.string_aware_scanning,
            source=self.region,
        )
        writer = ChunkWriter(
            self.region,
            self.config.output_path,
            features_per_chunk=features_per_chunk,
            max_chunk_bytes=self.config.max_chunk_bytes,
            layout=self.config.chunk_layout,
        )

        every = self.config.progress_every_lines
        with self.input_path.open(encoding="utf-8", errors="replace") as handle:
            for line in handle:
                for feature in extractor.feed_line(line):
                    self._process_feature(feature, writer)
                if extractor.stats.lines_read % every == 0:
                    logger.debug(
                        "Progress | region=%s | lines=%d | features=%d | chunks=%d",
                        self.region,
                        extractor.stats.lines_read,
                        writer.feature_count + writer.pending,
                        writer.chunk_index,
                    )
        extractor.finish()
        stats = writer.finish()

        if extractor.state is ExtractorState.PREAMBLE:
            logger.warning(
                "No features array found | region=%s | lines=%d",
                self.region,
                extractor.stats.lines_read,
            )

        largest = sorted(stats, key=lambda s: (-s.size_bytes, s.chunk_index))
        summary = RegionSummary(
            region=self.region,
            input_path=str(self.input_path),
            raw_size_bytes=raw_size,
            feature_count=writer.feature_count,
            chunk_count=len(stats),
            total_written_bytes=writer.total_written_bytes,
            processing_duration_ms=(time.perf_counter() - started) * 1000,
            largest_chunks=largest[: self.config.largest_chunks_reported],
            lines_read=extractor.stats.lines_read,
            skipped=SkipCounts(
                malformed=extractor.stats.malformed,
                not_feature=extractor.stats.not_feature,
                oversized=extractor.stats.oversized,
                no_geometry=self.no_geometry,
                invalid_geometry=self.invalid_geometry,
            ),
        )
        logger.info(
            "Region completed | region=%s | features=%d | chunks=%d | bytes=%d | skipped=%d | duration_ms=%.1f",
            self.region,
            summary.feature_count,
            summary.chunk_count,
            summary.total_written_bytes,
            summary.skipped.total,
            summary.processing_duration_ms,
        )
        return summary

    def _process_feature(self, feature: dict[str, Any], writer: ChunkWriter) -> None:
        self.features_seen += 1
        try:
            optimized = optimize_feature(feature, region=self.region, ordinal=self.features_seen)
        except GeometryError as exc:
            self.invalid_geometry += 1
            logger.debug(
                "Invalid geometry skipped | region=%s | feature=%d | error=%s",
                self.region,
                self.features_seen,
                exc,
            )
            return
        if optimized is None:
            self.no_geometry += 1
            return
        writer.add_feature(optimized)


def process_region(
    region: str,
    input_path: Path | str,
    config: PipelineConfig,
) -> RegionSummary:
    """Run the pipeline for one region.

    Raises:
        ChunkWriteError: If a chunk cannot be written.
    """
    return RegionPipeline(region, input_path, config).run()


def process_all_regions(config: PipelineConfig, *, correlation_id: str = "") -> ProcessingReport:
    """Process every configured region in order.

    A region that fails with a ``PipelineError`` is recorded with its
    structured error and the run moves on to the next region. Every
    recorded error carries the run's *correlation_id* (a random hex id
    when none is given).
    """
    report = ProcessingReport(correlation_id=correlation_id or uuid.uuid4().hex)
    logger.info(
        "Run started | correlation_id=%s | regions=%s | output_dir=%s | layout=%s",
        report.correlation_id,
        ",".join(config.region_files),
        config.output_dir,
        config.chunk_layout.value,
    )

    for region, input_path in config.region_files.items():
        try:
            summary = process_region(region, input_path, config)
        except PipelineError as exc:
            exc.correlation_id = exc.correlation_id or report.correlation_id
            logger.error(
                "Region failed | region=%s | code=%s | error=%s | correlation_id=%s",
                region,
                exc.code,
                exc.message,
                exc.correlation_id,
            )
            summary = RegionSummary(
                region=region,
                input_path=str(input_path),
                status=STATUS_FAILED,
                errors=[exc.to_error_dict()],
            )
        report.add(summary)

    report.finalize()
    logger.info(
        "Run completed | correlation_id=%s | regions=%d | features=%d | chunks=%d | bytes=%d",
        report.correlation_id,
        len(report.regions),
        report.total_features,
        report.total_chunks,
        report.total_written_bytes,
    )
    return report
