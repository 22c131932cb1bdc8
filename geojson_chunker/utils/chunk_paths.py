"""Deterministic chunk file paths.

A chunk's path is a pure function of the output root, the region code, the
chunk index and the layout, so later chunks can be located without a
manifest:

    flat:    {output}/{region}_chunk_{n}.json
    nested:  {output}/{region}/chunk_{n}.json

Region codes are restricted to ``A-Z``, ``a-z``, ``0-9``, ``_`` and ``-``
so they can never escape the output root.
"""

from __future__ import annotations

import re
from pathlib import Path

from geojson_chunker.core.constants import ChunkLayout
from geojson_chunker.core.exceptions import ValidationError

CHUNK_SUFFIX = ".json"

_REGION_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


class RegionCodeError(ValidationError):
    """Raised when a region code cannot be used as a path segment."""

    default_stage = "chunk_paths"
    default_code = "REGION_INVALID"


def validate_region_code(region: str) -> str:
    """Return *region* unchanged if it is a safe path segment.

    Raises:
        RegionCodeError: If the code is empty or contains other characters.
    """
    if not _REGION_RE.match(region):
        msg = f"Region code {region!r} must match {_REGION_RE.pattern}"
        raise RegionCodeError(msg)
    return region


def chunk_filename(region: str, chunk_index: int, layout: ChunkLayout) -> str:
    """File name of a chunk (without directory).

    Raises:
        ValueError: If *chunk_index* is negative.
    """
    if chunk_index < 0:
        msg = f"Chunk index must be >= 0, got {chunk_index}"
        raise ValueError(msg)
    validate_region_code(region)
    if layout is ChunkLayout.NESTED:
        return f"chunk_{chunk_index}{CHUNK_SUFFIX}"
    return f"{region}_chunk_{chunk_index}{CHUNK_SUFFIX}"


def region_chunk_dir(output_dir: Path | str, region: str, layout: ChunkLayout) -> Path:
    """Directory holding a region's chunks."""
    validate_region_code(region)
    root = Path(output_dir)
    if layout is ChunkLayout.NESTED:
        return root / region
    return root


def chunk_path(
    output_dir: Path | str,
    region: str,
    chunk_index: int,
    layout: ChunkLayout = ChunkLayout.FLAT,
) -> Path:
    """Full path of a chunk file."""
    return region_chunk_dir(output_dir, region, layout) / chunk_filename(
        region, chunk_index, layout
    )
