"""Pydantic model for a region inspection profile.

Produced by the ``inspect_region`` activity: a read-only profile of a raw
region file that helps pick chunk sizes before the real run.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

PROPERTY_SAMPLE_REPORTED = 20


class RegionInspection(BaseModel):
    """Profile of one region's raw GeoJSON file.

    Attributes:
        region: Region code.
        input_path: Input GeoJSON path.
        size_bytes: Input file size.
        total_lines: Lines in the file.
        feature_count: Objects with ``type: "Feature"`` in the features array.
        geometry_types: Histogram of geometry types.
        sample_properties: Property names seen in the preamble and features.
        unique_wdpaids: Number of distinct ``WDPAID`` values.
        iucn_categories: Histogram of ``IUCN_CAT`` values.
        avg_coordinates_per_feature: Rounded mean position count per feature.
        max_coordinates_per_feature: Largest position count of any feature.
        skipped_malformed: Delimited objects that failed to parse.
        skipped_oversized: Objects discarded by the size ceiling.
    """

    region: str
    input_path: str = ""
    size_bytes: int = 0
    total_lines: int = 0
    feature_count: int = 0
    geometry_types: dict[str, int] = Field(default_factory=dict)
    sample_properties: list[str] = Field(default_factory=list)
    unique_wdpaids: int = 0
    iucn_categories: dict[str, int] = Field(default_factory=dict)
    avg_coordinates_per_feature: int = 0
    max_coordinates_per_feature: int = 0
    skipped_malformed: int = 0
    skipped_oversized: int = 0
