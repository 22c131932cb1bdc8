"""Shared pytest fixtures for the GeoJSON chunker test suite."""

from collections.abc import Callable, Iterable
from pathlib import Path

import pytest

from geojson_chunker.core.config import PipelineConfig

# ---------------------------------------------------------------------------
# Path fixtures
# ---------------------------------------------------------------------------

TESTS_DIR = Path(__file__).parent
DATA_DIR = TESTS_DIR / "data"


@pytest.fixture()
def data_dir() -> Path:
    """Return the path to the test data directory."""
    return DATA_DIR


@pytest.fixture()
def sample_af_geojson(data_dir: Path) -> Path:
    """Path to a five-feature WDPA-style dump, one feature per line.

    Features: Polygon (no id), MultiPolygon (no id), Point with altitude
    (id ``marker-3``), a feature with null geometry, Polygon (no id).
    """
    return data_dir / "wdpa_af_sample.geojson"


@pytest.fixture()
def chunk_dir(tmp_path: Path) -> Path:
    """Empty output directory for chunk files."""
    path = tmp_path / "chunks"
    path.mkdir()
    return path


# ---------------------------------------------------------------------------
# Input builders
# ---------------------------------------------------------------------------


@pytest.fixture()
def write_geojson(tmp_path: Path) -> Callable[[str, Iterable[str]], Path]:
    """Return a helper that writes raw lines to ``tmp_path/<name>``."""

    def _write(name: str, lines: Iterable[str]) -> Path:
        path = tmp_path / name
        path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def make_config(chunk_dir: Path) -> Callable[..., PipelineConfig]:
    """Return a helper building a ``PipelineConfig`` that writes to ``chunk_dir``."""

    def _make(region_files: dict[str, str] | None = None, **overrides: object) -> PipelineConfig:
        overrides.setdefault("output_dir", str(chunk_dir))
        overrides.setdefault("region_features_per_chunk", {})
        return PipelineConfig(region_files=region_files or {}, **overrides)  # type: ignore[arg-type]

    return _make
