"""Tests for the tagged geometry model."""

from __future__ import annotations

import pytest

from geojson_chunker.models.geometry import Geometry, GeometryError, GeometryKind


class TestGeometryKind:
    """Kinds resolve from GeoJSON type names and carry nesting depth."""

    def test_depths(self) -> None:
        assert GeometryKind.POINT.depth == 0
        assert GeometryKind.MULTI_POINT.depth == 1
        assert GeometryKind.LINE_STRING.depth == 1
        assert GeometryKind.MULTI_LINE_STRING.depth == 2
        assert GeometryKind.POLYGON.depth == 2
        assert GeometryKind.MULTI_POLYGON.depth == 3

    def test_from_type_name(self) -> None:
        assert GeometryKind.from_type_name("MultiPolygon") is GeometryKind.MULTI_POLYGON

    def test_type_names_are_case_sensitive(self) -> None:
        with pytest.raises(GeometryError):
            GeometryKind.from_type_name("polygon")

    def test_missing_type_rejected(self) -> None:
        with pytest.raises(GeometryError):
            GeometryKind.from_type_name(None)


class TestGeometryFromDict:
    """Outer structure is validated on parse."""

    def test_parses_polygon(self) -> None:
        geometry = Geometry.from_dict({"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [0, 0]]]})
        assert geometry.kind is GeometryKind.POLYGON
        assert geometry.type_name == "Polygon"

    def test_non_mapping_rejected(self) -> None:
        with pytest.raises(GeometryError, match="must be an object"):
            Geometry.from_dict([1, 2])

    def test_coordinates_must_be_list(self) -> None:
        with pytest.raises(GeometryError, match="must be an array"):
            Geometry.from_dict({"type": "Point", "coordinates": "1,2"})

    def test_to_dict(self) -> None:
        raw = {"type": "LineString", "coordinates": [[0.0, 0.0], [1.0, 1.0]]}
        assert Geometry.from_dict(raw).to_dict() == raw


class TestPositionWalks:
    """Walks descend exactly the kind's depth."""

    def test_point_positions(self) -> None:
        geometry = Geometry.from_dict({"type": "Point", "coordinates": [1.5, 2.5]})
        assert list(geometry.iter_positions()) == [[1.5, 2.5]]

    def test_multipolygon_positions_in_order(self) -> None:
        geometry = Geometry.from_dict(
            {
                "type": "MultiPolygon",
                "coordinates": [[[[0, 0], [1, 0], [0, 0]]], [[[5, 5], [6, 5], [5, 5]]]],
            }
        )
        assert list(geometry.iter_positions()) == [[0, 0], [1, 0], [0, 0], [5, 5], [6, 5], [5, 5]]
        assert geometry.coordinate_count() == 6

    def test_empty_coordinates_have_no_positions(self) -> None:
        geometry = Geometry.from_dict({"type": "Polygon", "coordinates": []})
        assert list(geometry.iter_positions()) == []
        assert geometry.coordinate_count() == 0

    def test_empty_point_has_no_positions(self) -> None:
        geometry = Geometry.from_dict({"type": "Point", "coordinates": []})
        assert geometry.coordinate_count() == 0

    def test_short_position_rejected(self) -> None:
        geometry = Geometry.from_dict({"type": "LineString", "coordinates": [[1.0]]})
        with pytest.raises(GeometryError, match="at least 2"):
            list(geometry.iter_positions())

    def test_boolean_component_rejected(self) -> None:
        geometry = Geometry.from_dict({"type": "Point", "coordinates": [True, 1.0]})
        with pytest.raises(GeometryError, match="numeric"):
            geometry.coordinate_count()

    def test_map_positions_returns_new_geometry(self) -> None:
        geometry = Geometry.from_dict({"type": "MultiPoint", "coordinates": [[1.0, 2.0], [3.0, 4.0]]})
        swapped = geometry.map_positions(lambda p: [p[1], p[0]])
        assert swapped.coordinates == [[2.0, 1.0], [4.0, 3.0]]
        assert geometry.coordinates == [[1.0, 2.0], [3.0, 4.0]]
