"""Outline normalization: turn a tile's geographic outline into local points."""
from __future__ import annotations

import math
from typing import Any, Callable, List, Mapping, Sequence

from skyverse_terrain.core.errors import FetchErrorKind, ShapeError
from skyverse_terrain.core.models import ProjectedPoint, TileRecord

GeoTransform = Callable[[float, float, float], Any]


def _first_ring(coordinates: Any) -> Sequence[Any]:
    if not isinstance(coordinates, (list, tuple)) or not coordinates:
        raise ShapeError(FetchErrorKind.UNSUPPORTED_OUTLINE_TYPE, "outline has no coordinate rings")
    ring = coordinates[0]
    if not isinstance(ring, (list, tuple)):
        raise ShapeError(FetchErrorKind.UNSUPPORTED_OUTLINE_TYPE, "outline ring is not an array")
    return ring


def extract_ring(outline: Any) -> Sequence[Any]:
    """
    Return the outer ring of an outline, honoring both accepted envelopes:

      {"type": "Feature", "geometry": {"coordinates": [[...]]}}  -> geometry ring
      {"coordinates": [[...]]} (any other type)                -> top-level ring

    Holes and additional rings are ignored.
    """
    if outline is None:
        raise ShapeError(FetchErrorKind.MISSING_OUTLINE, "tile record has no outline")
    if not isinstance(outline, Mapping):
        raise ShapeError(FetchErrorKind.UNSUPPORTED_OUTLINE_TYPE, f"outline is a {type(outline).__name__}")

    if outline.get("type") == "Feature":
        geometry = outline.get("geometry")
        if not isinstance(geometry, Mapping):
            raise ShapeError(FetchErrorKind.UNSUPPORTED_OUTLINE_TYPE, "Feature outline has no geometry")
        return _first_ring(geometry.get("coordinates"))

    return _first_ring(outline.get("coordinates"))


def _parse_vertex(vertex: Any, index: int) -> tuple[float, float]:
    if not isinstance(vertex, (list, tuple)) or len(vertex) < 2:
        raise ShapeError(
            FetchErrorKind.COORDINATE_PARSE_ERROR,
            f"vertex {index} ({vertex!r}) is not a [lat, lng] pair",
        )
    try:
        lat, lng = float(vertex[0]), float(vertex[1])
    except (TypeError, ValueError) as e:
        raise ShapeError(
            FetchErrorKind.COORDINATE_PARSE_ERROR,
            f"vertex {index} ({vertex!r}) is not a [lat, lng] pair: {e}",
        ) from e
    # float() also accepts "nan", "inf" and overflowing exponents
    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise ShapeError(FetchErrorKind.COORDINATE_PARSE_ERROR, f"vertex {index} ({vertex!r}) is not finite")
    return lat, lng


def normalize_outline(record: TileRecord, transform: GeoTransform) -> List[ProjectedPoint]:
    """
    Project every vertex of ``record.outline`` through ``transform(lat, lng, alt)``.

    Altitude is always 0 (the service never reports one). Output order
    matches ring order. All vertices are parsed before any is projected, so a
    bad vertex fails the whole outline.
    """
    ring = extract_ring(record.outline)
    parsed = [_parse_vertex(v, i) for i, v in enumerate(ring)]

    points: List[ProjectedPoint] = []
    for lat, lng in parsed:
        local = transform(lat, lng, 0.0)
        if isinstance(local, ProjectedPoint):
            points.append(local)
        else:
            x, y, z = local
            points.append(ProjectedPoint(float(x), float(y), float(z)))
    return points
