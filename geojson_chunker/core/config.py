"""Pipeline configuration loaded from environment variables or YAML.

All configuration values have sensible defaults matching the historical
WDPA processing runs. Environment variables override scalar settings;
the region table and per-region chunk sizes come from a YAML file named
by ``REGIONS_FILE`` (or passed directly to ``from_yaml``).

Fail-fast validation:
    ``from_env()`` and ``from_yaml()`` raise ``ConfigValidationError`` if
    any value is out of its valid range, so bad configuration is caught
    before the first region is streamed.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from geojson_chunker.core.constants import (
    DEFAULT_FEATURES_PER_CHUNK,
    DEFAULT_LARGEST_CHUNKS_REPORTED,
    DEFAULT_MAX_FEATURE_CHARS,
    DEFAULT_MAX_ZOOM,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_PROGRESS_EVERY_LINES,
    DEFAULT_REGION_FILES,
    LARGE_REGION_FEATURES_PER_CHUNK,
    LARGE_REGIONS,
    ChunkLayout,
)
from geojson_chunker.core.exceptions import PipelineError
from geojson_chunker.utils.chunk_paths import RegionCodeError, validate_region_code

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


class ConfigValidationError(PipelineError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


def _default_region_overrides() -> dict[str, int]:
    return {code: LARGE_REGION_FEATURES_PER_CHUNK for code in LARGE_REGIONS}


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Immutable pipeline configuration.

    Loaded once per run and threaded through the region pipeline and the
    tile query engine.

    Attributes:
        region_files: Region code to input GeoJSON path.
        output_dir: Root directory for chunk files.
        features_per_chunk: Default feature-count threshold per chunk.
        region_features_per_chunk: Per-region overrides of ``features_per_chunk``.
        max_chunk_bytes: Byte threshold per chunk (``0`` disables it).
        max_feature_chars: Ceiling on a single feature's text before it is dropped.
        chunk_layout: ``flat`` or ``nested`` chunk file arrangement.
        string_aware_scanning: Ignore braces inside JSON string literals.
        max_zoom: Zoom level at which no simplification is applied.
        largest_chunks_reported: How many largest chunks each summary lists.
        progress_every_lines: Interval of progress log lines while streaming.
    """

    region_files: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_REGION_FILES))
    output_dir: str = DEFAULT_OUTPUT_DIR
    features_per_chunk: int = DEFAULT_FEATURES_PER_CHUNK
    region_features_per_chunk: dict[str, int] = field(default_factory=_default_region_overrides)
    max_chunk_bytes: int = 0
    max_feature_chars: int = DEFAULT_MAX_FEATURE_CHARS
    chunk_layout: ChunkLayout = ChunkLayout.FLAT
    string_aware_scanning: bool = False
    max_zoom: int = DEFAULT_MAX_ZOOM
    largest_chunks_reported: int = DEFAULT_LARGEST_CHUNKS_REPORTED
    progress_every_lines: int = DEFAULT_PROGRESS_EVERY_LINES

    def features_per_chunk_for(self, region: str) -> int:
        """Return the feature-count threshold for *region*."""
        return self.region_features_per_chunk.get(region, self.features_per_chunk)

    @property
    def output_path(self) -> Path:
        return Path(self.output_dir)

    @classmethod
    def from_env(cls) -> PipelineConfig:
        """Load and validate configuration from environment variables.

        When ``REGIONS_FILE`` is set, the YAML file supplies the base
        values and the scalar environment variables override them.

        Raises:
            ConfigValidationError: If a value is out of range or the
                regions file cannot be read.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``FEATURES_PER_CHUNK=abc``).
        """
        regions_file = os.getenv("REGIONS_FILE", "")
        base = _read_yaml(regions_file) if regions_file else {}
        values = _values_from_mapping(base)

        env_overrides: dict[str, Any] = {}
        if "CHUNK_OUTPUT_DIR" in os.environ:
            env_overrides["output_dir"] = os.environ["CHUNK_OUTPUT_DIR"]
        if "FEATURES_PER_CHUNK" in os.environ:
            env_overrides["features_per_chunk"] = int(os.environ["FEATURES_PER_CHUNK"])
        if "MAX_CHUNK_BYTES" in os.environ:
            env_overrides["max_chunk_bytes"] = int(os.environ["MAX_CHUNK_BYTES"])
        if "MAX_FEATURE_CHARS" in os.environ:
            env_overrides["max_feature_chars"] = int(os.environ["MAX_FEATURE_CHARS"])
        if "CHUNK_LAYOUT" in os.environ:
            env_overrides["chunk_layout"] = _parse_layout(os.environ["CHUNK_LAYOUT"])
        if "STRING_AWARE_SCANNING" in os.environ:
            env_overrides["string_aware_scanning"] = _parse_bool(
                "STRING_AWARE_SCANNING", os.environ["STRING_AWARE_SCANNING"]
            )
        if "MAX_ZOOM" in os.environ:
            env_overrides["max_zoom"] = int(os.environ["MAX_ZOOM"])
        if "LARGEST_CHUNKS_REPORTED" in os.environ:
            env_overrides["largest_chunks_reported"] = int(os.environ["LARGEST_CHUNKS_REPORTED"])
        if "PROGRESS_EVERY_LINES" in os.environ:
            env_overrides["progress_every_lines"] = int(os.environ["PROGRESS_EVERY_LINES"])

        values.update(env_overrides)
        config = cls(**values)
        _validate(config)
        return config

    @classmethod
    def from_yaml(cls, path: Path | str) -> PipelineConfig:
        """Load and validate configuration from a YAML file.

        Expected layout::

            regions:
              af: ./data/raw/wdpa_af.geojson
            output:
              dir: ./data/chunks
              features_per_chunk: 50
              max_chunk_bytes: 0
              layout: flat
              region_features_per_chunk: {as: 25}
              largest_chunks_reported: 5
            scanning:
              max_feature_chars: 10000000
              string_aware: false
              progress_every_lines: 50000
            query:
              max_zoom: 14

        Missing sections fall back to the defaults.

        Raises:
            ConfigValidationError: If the file is unreadable, malformed,
                or any value is out of range.
        """
        config = cls(**_values_from_mapping(_read_yaml(path)))
        _validate(config)
        return config


# ---------------------------------------------------------------------------
# YAML helpers
# ---------------------------------------------------------------------------


def _read_yaml(path: Path | str) -> dict[str, Any]:
    """Read a YAML mapping, raising ``ConfigValidationError`` on failure."""
    import yaml

    try:
        raw = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigValidationError("REGIONS_FILE", str(path), f"cannot be read ({exc})") from exc
    except yaml.YAMLError as exc:
        raise ConfigValidationError("REGIONS_FILE", str(path), f"is not valid YAML ({exc})") from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigValidationError("REGIONS_FILE", str(path), "must contain a mapping")
    return raw


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigValidationError(name, value, "must be a mapping")
    return value


def _values_from_mapping(data: dict[str, Any]) -> dict[str, Any]:
    """Translate the YAML document layout into ``PipelineConfig`` kwargs."""
    values: dict[str, Any] = {}

    regions = data.get("regions")
    if regions is not None:
        if not isinstance(regions, dict):
            raise ConfigValidationError("regions", regions, "must be a mapping of code to path")
        values["region_files"] = {str(k): str(v) for k, v in regions.items()}

    output = _section(data, "output")
    if "dir" in output:
        values["output_dir"] = str(output["dir"])
    if "features_per_chunk" in output:
        values["features_per_chunk"] = int(output["features_per_chunk"])
    if "max_chunk_bytes" in output:
        values["max_chunk_bytes"] = int(output["max_chunk_bytes"])
    if "layout" in output:
        values["chunk_layout"] = _parse_layout(str(output["layout"]))
    if "region_features_per_chunk" in output:
        overrides = output["region_features_per_chunk"] or {}
        if not isinstance(overrides, dict):
            raise ConfigValidationError(
                "region_features_per_chunk", overrides, "must be a mapping of code to int"
            )
        values["region_features_per_chunk"] = {str(k): int(v) for k, v in overrides.items()}
    if "largest_chunks_reported" in output:
        values["largest_chunks_reported"] = int(output["largest_chunks_reported"])

    scanning = _section(data, "scanning")
    if "max_feature_chars" in scanning:
        values["max_feature_chars"] = int(scanning["max_feature_chars"])
    if "string_aware" in scanning:
        values["string_aware_scanning"] = _parse_bool("string_aware", scanning["string_aware"])
    if "progress_every_lines" in scanning:
        values["progress_every_lines"] = int(scanning["progress_every_lines"])

    query = _section(data, "query")
    if "max_zoom" in query:
        values["max_zoom"] = int(query["max_zoom"])

    return values


def _parse_layout(raw: str) -> ChunkLayout:
    try:
        return ChunkLayout(raw.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(layout.value for layout in ChunkLayout)
        raise ConfigValidationError("CHUNK_LAYOUT", raw, f"must be one of: {allowed}") from exc


def _parse_bool(key: str, raw: object) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigValidationError(key, raw, "must be a boolean (true/false)")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _validate(config: PipelineConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if config.features_per_chunk <= 0:
        raise ConfigValidationError(
            "FEATURES_PER_CHUNK",
            config.features_per_chunk,
            "must be > 0",
        )

    for region, size in config.region_features_per_chunk.items():
        if size <= 0:
            raise ConfigValidationError(
                f"region_features_per_chunk.{region}",
                size,
                "must be > 0",
            )

    if config.max_chunk_bytes < 0:
        raise ConfigValidationError(
            "MAX_CHUNK_BYTES",
            config.max_chunk_bytes,
            "must be >= 0 (0 disables the byte threshold)",
        )

    if config.max_feature_chars <= 0:
        raise ConfigValidationError(
            "MAX_FEATURE_CHARS",
            config.max_feature_chars,
            "must be > 0",
        )

    if config.max_zoom <= 0:
        raise ConfigValidationError(
            "MAX_ZOOM",
            config.max_zoom,
            "must be > 0",
        )

    if config.largest_chunks_reported < 0:
        raise ConfigValidationError(
            "LARGEST_CHUNKS_REPORTED",
            config.largest_chunks_reported,
            "must be >= 0",
        )

    if config.progress_every_lines <= 0:
        raise ConfigValidationError(
            "PROGRESS_EVERY_LINES",
            config.progress_every_lines,
            "must be > 0",
        )

    if not config.output_dir:
        raise ConfigValidationError(
            "CHUNK_OUTPUT_DIR",
            config.output_dir,
            "must not be empty",
        )

    seen_paths: dict[str, str] = {}
    for region, input_path in config.region_files.items():
        if not region.strip():
            raise ConfigValidationError("regions", region, "region code must not be empty")
        try:
            validate_region_code(region)
        except RegionCodeError as exc:
            raise ConfigValidationError(f"regions.{region}", region, exc.message) from exc
        if not input_path.strip():
            raise ConfigValidationError(f"regions.{region}", input_path, "must not be empty")
        normalised = os.path.normpath(input_path)
        if normalised in seen_paths:
            raise ConfigValidationError(
                f"regions.{region}",
                input_path,
                f"duplicates the input file of region '{seen_paths[normalised]}'",
            )
        seen_paths[normalised] = region
