"""Tests for the tile query engine.

Covers:
- Bounding-box filtering (touching boxes match)
- Zoom-dependent simplification factor and the simplifier hook
- One chunk read per query
- Stale index detection and rebuild
- Query validation
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from geojson_chunker.activities.build_index import load_chunk
from geojson_chunker.activities.optimize_feature import optimize_feature
from geojson_chunker.activities.query_tiles import (
    QueryValidationError,
    StaleIndexError,
    TileQueryEngine,
    passthrough_simplifier,
)
from geojson_chunker.activities.write_chunks import ChunkWriter
from geojson_chunker.core.constants import ChunkLayout
from geojson_chunker.models.bounds import BoundingBox


def _box_feature(name: str, min_lng: float, min_lat: float, max_lng: float, max_lat: float) -> dict[str, Any]:
    ring = [[min_lng, min_lat], [max_lng, min_lat], [max_lng, max_lat], [min_lng, max_lat], [min_lng, min_lat]]
    return {
        "type": "Feature",
        "id": name,
        "properties": {"NAME": name},
        "geometry": {"type": "Polygon", "coordinates": [ring]},
    }


@pytest.fixture()
def populated_dir(chunk_dir: Path) -> Path:
    """Region ``af`` with three features in two chunks: A, C | D."""
    writer = ChunkWriter("af", chunk_dir, features_per_chunk=2)
    for raw in (
        _box_feature("A", 0, 0, 10, 10),
        _box_feature("C", 30, 30, 40, 40),
        _box_feature("D", 5, 5, 6, 6),
    ):
        feature = optimize_feature(raw, region="af")
        assert feature is not None
        writer.add_feature(feature)
    writer.finish()
    return chunk_dir


def _names(features: list[dict[str, Any]]) -> list[str]:
    return [f["properties"]["name"] for f in features]


class TestQueryFiltering:
    """Only features whose bounds intersect the query are returned."""

    def test_touching_query_box_matches(self, populated_dir: Path) -> None:
        engine = TileQueryEngine(populated_dir)
        assert _names(engine.query("af", [10, 10, 20, 20], 14)) == ["A"]

    def test_separated_query_box_misses(self, populated_dir: Path) -> None:
        engine = TileQueryEngine(populated_dir)
        assert engine.query("af", [10.01, 10.01, 20, 20], 14) == []

    def test_results_in_index_order(self, populated_dir: Path) -> None:
        engine = TileQueryEngine(populated_dir)
        assert _names(engine.query("af", BoundingBox(-180, -90, 180, 90), 3)) == ["A", "C", "D"]

    def test_unknown_region_is_empty(self, populated_dir: Path) -> None:
        engine = TileQueryEngine(populated_dir)
        assert engine.query("sa", [-180, -90, 180, 90], 5) == []

    def test_returned_features_are_complete(self, populated_dir: Path) -> None:
        engine = TileQueryEngine(populated_dir)
        (feature,) = engine.query("af", [35, 35, 36, 36], 14)
        assert feature["type"] == "Feature"
        assert feature["id"] == "C"
        assert feature["geometry"]["type"] == "Polygon"

    def test_nested_layout(self, chunk_dir: Path) -> None:
        writer = ChunkWriter("eu", chunk_dir, layout=ChunkLayout.NESTED)
        feature = optimize_feature(_box_feature("E", 1, 1, 2, 2), region="eu")
        assert feature is not None
        writer.add_feature(feature)
        writer.finish()
        engine = TileQueryEngine(chunk_dir, layout=ChunkLayout.NESTED)
        assert _names(engine.query("eu", [0, 0, 3, 3], 10)) == ["E"]


class TestSimplification:
    """Simplification factor policy and hook."""

    @pytest.mark.parametrize(
        ("zoom", "expected"),
        [(0, 1.0), (7, 0.5), (14, 0.0), (20, 0.0)],
    )
    def test_factor(self, zoom: int, expected: float) -> None:
        assert TileQueryEngine("unused").simplification_factor(zoom) == expected

    def test_factor_with_custom_max_zoom(self) -> None:
        assert TileQueryEngine("unused", max_zoom=10).simplification_factor(5) == 0.5

    def test_default_hook_is_passthrough(self) -> None:
        geometry = {"type": "Point", "coordinates": [1.0, 2.0]}
        assert passthrough_simplifier(geometry, 0.75) is geometry

    def test_hook_receives_factor(self, populated_dir: Path) -> None:
        calls: list[float] = []

        def simplifier(geometry: dict[str, Any], factor: float) -> dict[str, Any]:
            calls.append(factor)
            return {"type": "Point", "coordinates": geometry["coordinates"][0][0]}

        engine = TileQueryEngine(populated_dir, simplifier=simplifier)
        features = engine.query("af", [0, 0, 10, 10], 7)
        assert calls == [0.5, 0.5]
        assert [f["geometry"]["type"] for f in features] == ["Point", "Point"]

    def test_invalid_max_zoom(self) -> None:
        with pytest.raises(ValueError, match="max_zoom"):
            TileQueryEngine("unused", max_zoom=0)


class TestIndexCaching:
    """The index is built once and reused until invalidated."""

    def test_index_cached(self, populated_dir: Path) -> None:
        engine = TileQueryEngine(populated_dir)
        assert engine.index_for("af") is engine.index_for("af")

    def test_invalidate_forces_rebuild(self, populated_dir: Path) -> None:
        engine = TileQueryEngine(populated_dir)
        first = engine.index_for("af")
        engine.invalidate("af")
        assert engine.index_for("af") is not first

    def test_invalidate_all(self, populated_dir: Path) -> None:
        engine = TileQueryEngine(populated_dir)
        first = engine.index_for("af")
        engine.invalidate()
        assert engine.index_for("af") is not first

    def test_each_chunk_read_once_per_query(self, populated_dir: Path) -> None:
        engine = TileQueryEngine(populated_dir)
        engine.index_for("af")
        with patch("geojson_chunker.activities.query_tiles.load_chunk", wraps=load_chunk) as spy:
            features = engine.query("af", [0, 0, 40, 40], 14)
        assert len(features) == 3
        assert spy.call_count == 2


class TestStaleIndex:
    """A chunk missing at query time fails the query and drops the index."""

    def test_missing_chunk_raises_stale_index(self, populated_dir: Path) -> None:
        engine = TileQueryEngine(populated_dir)
        engine.index_for("af")
        (populated_dir / "af_chunk_1.json").unlink()
        with pytest.raises(StaleIndexError) as exc_info:
            engine.query("af", [0, 0, 10, 10], 14)
        assert exc_info.value.retryable is True
        assert exc_info.value.code == "INDEX_STALE"

    def test_next_query_rebuilds(self, populated_dir: Path) -> None:
        engine = TileQueryEngine(populated_dir)
        engine.index_for("af")
        (populated_dir / "af_chunk_1.json").unlink()
        with pytest.raises(StaleIndexError):
            engine.query("af", [0, 0, 10, 10], 14)
        assert _names(engine.query("af", [0, 0, 10, 10], 14)) == ["A"]

    def test_unaffected_query_still_succeeds(self, populated_dir: Path) -> None:
        engine = TileQueryEngine(populated_dir)
        engine.index_for("af")
        (populated_dir / "af_chunk_1.json").unlink()
        assert _names(engine.query("af", [30, 30, 40, 40], 14)) == ["C"]


class TestQueryValidation:
    """Invalid bounds and zoom levels are rejected."""

    def test_negative_zoom(self, populated_dir: Path) -> None:
        with pytest.raises(QueryValidationError, match="zoom"):
            TileQueryEngine(populated_dir).query("af", [0, 0, 1, 1], -1)

    def test_inverted_bounds(self, populated_dir: Path) -> None:
        with pytest.raises(QueryValidationError, match="Invalid query bounds"):
            TileQueryEngine(populated_dir).query("af", [10, 10, 0, 0], 5)

    def test_wrong_arity(self, populated_dir: Path) -> None:
        with pytest.raises(QueryValidationError):
            TileQueryEngine(populated_dir).query("af", [0, 0, 1], 5)

    @pytest.mark.parametrize("region", ["../af", "west asia", ""])
    def test_unsafe_region(self, populated_dir: Path, region: str) -> None:
        with pytest.raises(QueryValidationError, match="Invalid query region"):
            TileQueryEngine(populated_dir).query(region, [0, 0, 1, 1], 5)

    def test_error_code(self, populated_dir: Path) -> None:
        with pytest.raises(QueryValidationError) as exc_info:
            TileQueryEngine(populated_dir).query("af", [0, 0, 1, 1], -3)
        assert exc_info.value.code == "QUERY_INVALID"
        assert exc_info.value.category == "validation"
