"""Tests for the streaming feature extractor.

Covers:
- One-feature-per-line and pretty-printed FeatureCollections
- Features on the same line as the ``"features": [`` marker
- Malformed and non-Feature objects are counted and skipped
- The per-feature size ceiling
- End-of-array detection and unterminated objects
- Brace characters inside strings (default vs string-aware scanning)
"""

from __future__ import annotations

import json
import logging

import pytest

from geojson_chunker.activities.extract_features import (
    ExtractorState,
    StreamingFeatureExtractor,
)


def _point_feature(name: str, lng: float = 1.0, lat: float = 2.0) -> dict[str, object]:
    return {
        "type": "Feature",
        "properties": {"NAME": name},
        "geometry": {"type": "Point", "coordinates": [lng, lat]},
    }


def _collection_lines(features: list[dict[str, object]]) -> list[str]:
    """Render a FeatureCollection with one feature per line, GDAL style."""
    lines = ["{", '"type": "FeatureCollection",', '"features": [']
    for i, feature in enumerate(features):
        suffix = "," if i < len(features) - 1 else ""
        lines.append(json.dumps(feature) + suffix)
    lines.extend(["]", "}"])
    return lines


def _extract(
    lines: list[str], **kwargs: object
) -> tuple[list[dict[str, object]], StreamingFeatureExtractor]:
    extractor = StreamingFeatureExtractor(**kwargs)  # type: ignore[arg-type]
    features = list(extractor.iter_features(lines))
    return features, extractor


# ===========================================================================
# Delimiting
# ===========================================================================


class TestDelimiting:
    """Feature objects are delimited by brace depth."""

    def test_one_feature_per_line(self) -> None:
        source = [_point_feature(n) for n in ("a", "b", "c")]
        features, extractor = _extract(_collection_lines(source))
        assert features == source
        assert extractor.stats.features_emitted == 3
        assert extractor.state is ExtractorState.DONE

    def test_pretty_printed_features_span_lines(self) -> None:
        source = {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "properties": {"NAME": "Ring"},
                    "geometry": {
                        "type": "Polygon",
                        "coordinates": [[[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 0.0]]],
                    },
                },
                _point_feature("second"),
            ],
        }
        lines = json.dumps(source, indent=2).splitlines()
        features, extractor = _extract(lines)
        assert features == source["features"]
        assert extractor.state is ExtractorState.DONE

    def test_document_order_preserved(self) -> None:
        source = [_point_feature(f"f{i}", lng=float(i)) for i in range(20)]
        features, _ = _extract(_collection_lines(source))
        assert [f["properties"]["NAME"] for f in features] == [f"f{i}" for i in range(20)]

    def test_features_on_marker_line(self) -> None:
        line = json.dumps(
            {"type": "FeatureCollection", "features": [_point_feature("x"), _point_feature("y")]}
        )
        features, _ = _extract([line])
        assert [f["properties"]["NAME"] for f in features] == ["x", "y"]

    def test_crlf_line_endings(self) -> None:
        lines = [f"{line}\r\n" for line in _collection_lines([_point_feature("a")])]
        features, _ = _extract(lines)
        assert len(features) == 1

    def test_preamble_is_not_parsed(self) -> None:
        lines = [
            "{",
            '"type": "FeatureCollection",',
            '"crs": { "type": "name", "properties": { "name": "CRS84" } },',
            '"features": [',
            json.dumps(_point_feature("only")),
            "]",
            "}",
        ]
        features, extractor = _extract(lines)
        assert len(features) == 1
        assert extractor.stats.not_feature == 0

    def test_preamble_property_sample(self) -> None:
        lines = ["{", '"type": "FeatureCollection",', '"name": "WDPA",', '"features": [', "]", "}"]
        _, extractor = _extract(lines)
        assert extractor.property_sample == ["type", "name"]

    def test_no_features_array(self) -> None:
        features, extractor = _extract(["{", '"type": "FeatureCollection"', "}"])
        assert features == []
        assert extractor.state is ExtractorState.PREAMBLE


# ===========================================================================
# Tolerance
# ===========================================================================


class TestTolerance:
    """Bad objects are skipped without stopping the stream."""

    def test_malformed_object_skipped(self) -> None:
        lines = [
            '"features": [',
            json.dumps(_point_feature("first")) + ",",
            '{"type": "Feature", "geometry": nope},',
            json.dumps(_point_feature("third")),
            "]",
        ]
        features, extractor = _extract(lines)
        assert [f["properties"]["NAME"] for f in features] == ["first", "third"]
        assert extractor.stats.malformed == 1

    def test_non_feature_object_skipped(self) -> None:
        lines = ['"features": [', '{"type": "Other", "value": 1},', json.dumps(_point_feature("a")), "]"]
        features, extractor = _extract(lines)
        assert len(features) == 1
        assert extractor.stats.not_feature == 1

    def test_unterminated_object_counted_at_end(self) -> None:
        lines = ['"features": [', json.dumps(_point_feature("a")) + ",", '{"type": "Feature",']
        features, extractor = _extract(lines)
        assert len(features) == 1
        assert extractor.stats.malformed == 1
        assert extractor.depth == 0

    def test_lines_after_array_end_ignored(self) -> None:
        lines = [
            '"features": [',
            json.dumps(_point_feature("in")),
            "],",
            '"extra": [',
            json.dumps(_point_feature("out")),
            "]",
        ]
        features, extractor = _extract(lines)
        assert [f["properties"]["NAME"] for f in features] == ["in"]
        assert extractor.stats.lines_read == 6


# ===========================================================================
# Size ceiling
# ===========================================================================


class TestSizeCeiling:
    """Objects larger than ``max_feature_chars`` are discarded."""

    def test_single_line_oversized_feature_dropped(self) -> None:
        big = _point_feature("x" * 500)
        lines = _collection_lines([_point_feature("a"), big, _point_feature("b")])
        features, extractor = _extract(lines, max_feature_chars=200)
        assert [f["properties"]["NAME"] for f in features] == ["a", "b"]
        assert extractor.stats.oversized == 1

    def test_multi_line_oversized_feature_dropped(self) -> None:
        lines = [
            '"features": [',
            '{"type": "Feature", "properties": {"NAME": "big"},',
            '"geometry": {"type": "Point", "coordinates": [1, 2]},',
            f'"padding": "{"x" * 300}"',
            "},",
            json.dumps(_point_feature("after")),
            "]",
        ]
        features, extractor = _extract(lines, max_feature_chars=200)
        assert [f["properties"]["NAME"] for f in features] == ["after"]
        assert extractor.stats.oversized == 1
        assert extractor.buffered_chars == 0

    def test_oversized_feature_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        lines = _collection_lines([_point_feature("x" * 500)])
        logger_name = "geojson_chunker.activities.extract_features"
        with caplog.at_level(logging.WARNING, logger=logger_name):
            _extract(lines, max_feature_chars=100, source="af")
        assert "Oversized feature discarded" in caplog.text
        assert "source=af" in caplog.text

    def test_invalid_ceiling_rejected(self) -> None:
        with pytest.raises(ValueError, match="max_feature_chars"):
            StreamingFeatureExtractor(max_feature_chars=0)


# ===========================================================================
# Braces inside strings
# ===========================================================================


class TestBracesInStrings:
    """Default scanning counts quoted braces; string-aware scanning does not."""

    LINE = (
        '{"type": "Feature", "properties": {"NAME": "a } b"}, '
        '"geometry": {"type": "Point", "coordinates": [1, 2]}}'
    )

    def test_default_mode_misdelimits(self) -> None:
        features, extractor = _extract(['"features": [', self.LINE, "]"])
        assert features == []
        assert extractor.stats.malformed == 1
        assert extractor.stats.not_feature == 1

    def test_string_aware_mode_delimits_correctly(self) -> None:
        features, extractor = _extract(['"features": [', self.LINE, "]"], string_aware=True)
        assert len(features) == 1
        assert features[0]["properties"] == {"NAME": "a } b"}
        assert extractor.stats.malformed == 0

    def test_string_aware_mode_handles_escaped_quotes(self) -> None:
        feature = _point_feature('say "{hi}" twice')
        lines = _collection_lines([feature, _point_feature("next")])
        features, _ = _extract(lines, string_aware=True)
        assert features == [feature, _point_feature("next")]

    def test_string_aware_mode_pretty_printed(self) -> None:
        source = {"type": "FeatureCollection", "features": [_point_feature("{open"), _point_feature("close}")]}
        features, _ = _extract(json.dumps(source, indent=2).splitlines(), string_aware=True)
        assert features == source["features"]
