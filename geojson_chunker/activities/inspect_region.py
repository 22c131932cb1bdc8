"""Region inspection activity.

Profiles a raw region file in one streaming pass, without writing
anything: line and feature counts, a geometry-type histogram, property
names seen in the preamble and in features, distinct ``WDPAID`` values,
an ``IUCN_CAT`` histogram, and per-feature coordinate counts.

Uses the same ``StreamingFeatureExtractor`` as the region pipeline, so
the profile sees exactly the features a real run would.
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Any

from geojson_chunker.activities.extract_features import StreamingFeatureExtractor
from geojson_chunker.core.config import PipelineConfig
from geojson_chunker.core.constants import PREAMBLE_PROPERTY_SAMPLE_LIMIT
from geojson_chunker.core.exceptions import InputFileNotFoundError
from geojson_chunker.models.geometry import Geometry, GeometryError
from geojson_chunker.models.inspection import PROPERTY_SAMPLE_REPORTED, RegionInspection

logger = logging.getLogger("geojson_chunker.activities.inspect_region")


def inspect_region(
    region: str,
    input_path: Path | str,
    *,
    config: PipelineConfig | None = None,
) -> RegionInspection:
    """Stream *input_path* once and return its profile.

    Args:
        region: Region code.
        input_path: Raw GeoJSON FeatureCollection.
        config: Scanning settings (size ceiling, string-aware mode).

    Raises:
        InputFileNotFoundError: If *input_path* does not exist.
    """
    config = config or PipelineConfig()
    path = Path(input_path)
    if not path.is_file():
        msg = f"Input file for region {region} not found: {path}"
        raise InputFileNotFoundError(msg)

    size_bytes = path.stat().st_size
    logger.info("Inspection started | region=%s | path=%s | bytes=%d", region, path, size_bytes)

    extractor = StreamingFeatureExtractor(
        max_feature_chars=config.max_feature_chars,
        string_aware=config.string_aware_scanning,
        source=region,
    )
    geometry_types: Counter[str] = Counter()
    iucn_categories: Counter[str] = Counter()
    wdpaids: set[str] = set()
    feature_properties: dict[str, None] = {}
    feature_count = 0
    total_coordinates = 0
    max_coordinates = 0

    with path.open(encoding="utf-8", errors="replace") as handle:
        for feature in extractor.iter_features(handle):
            feature_count += 1
            raw_geometry = feature.get("geometry")
            if isinstance(raw_geometry, dict) and raw_geometry.get("type"):
                geometry_types[str(raw_geometry["type"])] += 1

            properties = feature.get("properties")
            if isinstance(properties, dict):
                _profile_properties(properties, feature_properties, wdpaids, iucn_categories)

            coordinates = _count_coordinates(raw_geometry)
            total_coordinates += coordinates
            max_coordinates = max(max_coordinates, coordinates)

    sample = list(dict.fromkeys([*extractor.property_sample, *feature_properties]))
    stats = extractor.stats
    inspection = RegionInspection(
        region=region,
        input_path=str(path),
        size_bytes=size_bytes,
        total_lines=stats.lines_read,
        feature_count=feature_count,
        geometry_types=dict(geometry_types),
        sample_properties=sample[:PROPERTY_SAMPLE_REPORTED],
        unique_wdpaids=len(wdpaids),
        iucn_categories=dict(iucn_categories),
        avg_coordinates_per_feature=round(total_coordinates / feature_count) if feature_count else 0,
        max_coordinates_per_feature=max_coordinates,
        skipped_malformed=stats.malformed,
        skipped_oversized=stats.oversized,
    )

    logger.info(
        "Inspection completed | region=%s | lines=%d | features=%d | types=%s",
        region,
        inspection.total_lines,
        inspection.feature_count,
        inspection.geometry_types,
    )
    return inspection


def _profile_properties(
    properties: dict[str, Any],
    sample: dict[str, None],
    wdpaids: set[str],
    iucn_categories: Counter[str],
) -> None:
    for key in properties:
        if len(sample) >= PREAMBLE_PROPERTY_SAMPLE_LIMIT:
            break
        sample.setdefault(str(key), None)

    wdpaid = properties.get("WDPAID")
    if wdpaid not in (None, ""):
        wdpaids.add(str(wdpaid))

    iucn = properties.get("IUCN_CAT")
    if iucn not in (None, ""):
        iucn_categories[str(iucn)] += 1


def _count_coordinates(raw_geometry: object) -> int:
    """Position count of a geometry; 0 when it is missing or malformed."""
    if not raw_geometry:
        return 0
    try:
        return Geometry.from_dict(raw_geometry).coordinate_count()
    except GeometryError:
        return 0
