"""Shared pipeline constants, single source of truth.

Centralises the property allow-list, numeric limits, chunk layouts and the
default region table that would otherwise be duplicated across the
extractor, optimizer, writer and query engine.
"""

from __future__ import annotations

from enum import StrEnum

# ---------------------------------------------------------------------------
# Feature optimisation
# ---------------------------------------------------------------------------

COORDINATE_PRECISION: int = 5
"""Decimal places kept for every coordinate component (~1.1 m)."""

COORDINATE_SCALE: int = 10**COORDINATE_PRECISION

PROPERTY_ALLOW_LIST: tuple[tuple[str, str], ...] = (
    ("NAME", "name"),
    ("DESIG", "designation"),
    ("DESIG_ENG", "designation_en"),
    ("IUCN_CAT", "iucn_category"),
    ("ISO3", "country"),
    ("REP_AREA", "area"),
    ("WDPAID", "wdpaid"),
    ("MARINE", "marine"),
)
"""``(source key, output key)`` pairs. Source keys match case-insensitively."""

# ---------------------------------------------------------------------------
# Streaming limits
# ---------------------------------------------------------------------------

DEFAULT_MAX_FEATURE_CHARS: int = 10_000_000
"""Hard ceiling on the text of a single feature before it is discarded."""

PREAMBLE_PROPERTY_SAMPLE_LIMIT: int = 50

DEFAULT_PROGRESS_EVERY_LINES: int = 50_000

# ---------------------------------------------------------------------------
# Chunking
# ---------------------------------------------------------------------------

DEFAULT_FEATURES_PER_CHUNK: int = 50

LARGE_REGION_FEATURES_PER_CHUNK: int = 25
"""Smaller batches for the regions whose features are the most complex."""

LARGE_REGIONS: tuple[str, ...] = ("as", "na", "eu")

DEFAULT_LARGEST_CHUNKS_REPORTED: int = 5

DEFAULT_OUTPUT_DIR: str = "./data/chunks"


class ChunkLayout(StrEnum):
    """On-disk arrangement of a region's chunk files."""

    FLAT = "flat"
    """``<output>/<region>_chunk_<n>.json``"""

    NESTED = "nested"
    """``<output>/<region>/chunk_<n>.json``"""


# ---------------------------------------------------------------------------
# Querying
# ---------------------------------------------------------------------------

DEFAULT_MAX_ZOOM: int = 14

# ---------------------------------------------------------------------------
# Regions
# ---------------------------------------------------------------------------

DEFAULT_REGION_FILES: dict[str, str] = {
    "af": "./data/raw/wdpa_af.geojson",  # Africa
    "as": "./data/raw/wdpa_as.geojson",  # Asia & Pacific
    "eu": "./data/raw/wdpa_eu.geojson",  # Europe
    "na": "./data/raw/wdpa_na.geojson",  # North America
    "wa": "./data/raw/wdpa_wa.geojson",  # West Asia
    "sa": "./data/raw/wdpa_sa.geojson",  # Latin America & Caribbean
}
