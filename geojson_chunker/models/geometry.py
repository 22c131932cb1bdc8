"""Tagged geometry model for GeoJSON coordinate trees.

A ``Geometry`` pairs a ``GeometryKind`` with its raw coordinate tree. The
kind is resolved once, when the geometry is parsed from its dict, and
carries the nesting depth of its coordinate tree:

- ``Point``                          -> depth 0 (a single position)
- ``LineString`` / ``MultiPoint``    -> depth 1 (a list of positions)
- ``Polygon`` / ``MultiLineString``  -> depth 2 (a list of rings)
- ``MultiPolygon``                   -> depth 3 (a list of polygons)

Every walk over the tree (rounding, flattening, counting) descends exactly
that many levels, so nested arrays are never type-sniffed at runtime.
Positions carry ``(longitude, latitude)`` and an optional altitude which
is ignored by all walks.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from geojson_chunker.core.exceptions import ValidationError

Position = list[float]


class GeometryError(ValidationError):
    """Raised when a geometry's type or coordinate nesting is malformed."""

    default_stage = "optimize_feature"
    default_code = "GEOMETRY_INVALID"


class GeometryKind(Enum):
    """Supported GeoJSON geometry types with their coordinate nesting depth."""

    POINT = ("Point", 0)
    MULTI_POINT = ("MultiPoint", 1)
    LINE_STRING = ("LineString", 1)
    MULTI_LINE_STRING = ("MultiLineString", 2)
    POLYGON = ("Polygon", 2)
    MULTI_POLYGON = ("MultiPolygon", 3)

    def __init__(self, type_name: str, depth: int) -> None:
        self.type_name = type_name
        self.depth = depth

    @classmethod
    def from_type_name(cls, type_name: object) -> GeometryKind:
        """Resolve a GeoJSON ``type`` string.

        Raises:
            GeometryError: If the type is missing or unsupported.
        """
        for kind in cls:
            if kind.type_name == type_name:
                return kind
        msg = f"Unsupported geometry type: {type_name!r}"
        raise GeometryError(msg)


@dataclass(frozen=True, slots=True)
class Geometry:
    """A GeoJSON geometry with its kind resolved.

    Attributes:
        kind: The geometry kind, fixing the coordinate nesting depth.
        coordinates: The raw nested coordinate tree.
    """

    kind: GeometryKind
    coordinates: list[Any]

    @classmethod
    def from_dict(cls, data: object) -> Geometry:
        """Parse a GeoJSON geometry dict.

        Only the outer structure is checked here; positions are validated
        lazily by the walks that visit them.

        Raises:
            GeometryError: If *data* is not a geometry mapping, the type is
                unsupported, or the coordinates are not a list.
        """
        if not isinstance(data, dict):
            msg = f"Geometry must be an object, got {type(data).__name__}"
            raise GeometryError(msg)
        kind = GeometryKind.from_type_name(data.get("type"))
        coordinates = data.get("coordinates")
        if not isinstance(coordinates, list):
            msg = f"{kind.type_name} coordinates must be an array, got {type(coordinates).__name__}"
            raise GeometryError(msg)
        return cls(kind=kind, coordinates=coordinates)

    @property
    def type_name(self) -> str:
        return self.kind.type_name

    def iter_positions(self) -> Iterator[Position]:
        """Yield every position in document order.

        Raises:
            GeometryError: If the nesting does not match the kind or a
                position is not a pair of finite numbers.
        """
        return walk_positions(self.coordinates, self.kind.depth)

    def map_positions(self, fn: Callable[[Position], Position]) -> Geometry:
        """Return a new geometry with *fn* applied to every position."""
        mapped = _map_level(self.coordinates, self.kind.depth, fn)
        return Geometry(kind=self.kind, coordinates=mapped)

    def coordinate_count(self) -> int:
        """Number of positions in the geometry."""
        return sum(1 for _ in self.iter_positions())

    def to_dict(self) -> dict[str, object]:
        return {"type": self.kind.type_name, "coordinates": self.coordinates}


# ---------------------------------------------------------------------------
# Tree walks
# ---------------------------------------------------------------------------


def walk_positions(coordinates: object, depth: int) -> Iterator[Position]:
    """Yield the positions of a coordinate tree of known *depth*.

    An empty list at any level contributes no positions.
    """
    if depth == 0:
        if isinstance(coordinates, list) and not coordinates:
            return
        yield _check_position(coordinates)
        return
    if not isinstance(coordinates, list):
        msg = f"Expected an array at nesting depth {depth}, got {type(coordinates).__name__}"
        raise GeometryError(msg)
    for child in coordinates:
        yield from walk_positions(child, depth - 1)


def _map_level(
    coordinates: object,
    depth: int,
    fn: Callable[[Position], Position],
) -> list[Any]:
    if depth == 0:
        if isinstance(coordinates, list) and not coordinates:
            return []
        return fn(_check_position(coordinates))
    if not isinstance(coordinates, list):
        msg = f"Expected an array at nesting depth {depth}, got {type(coordinates).__name__}"
        raise GeometryError(msg)
    return [_map_level(child, depth - 1, fn) for child in coordinates]


def _check_position(value: object) -> Position:
    if not isinstance(value, list) or len(value) < 2:
        msg = f"Position must be an array of at least 2 numbers, got {value!r}"
        raise GeometryError(msg)
    for component in value[:2]:
        if isinstance(component, bool) or not isinstance(component, int | float):
            msg = f"Position components must be numeric, got {value!r}"
            raise GeometryError(msg)
        if not math.isfinite(component):
            msg = f"Position components must be finite, got {value!r}"
            raise GeometryError(msg)
    return value
