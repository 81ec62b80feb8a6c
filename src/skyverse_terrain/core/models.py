"""Tile lookup data: queries, response records, projected points and fetch outcomes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, Field

from skyverse_terrain.core.errors import FetchErrorKind


class TileQuery(BaseModel):
    model_config = {"frozen": True}

    latitude: float
    longitude: float

    def query_string(self) -> str:
        return f"lat={self.latitude}&lng={self.longitude}"


class TileRecord(BaseModel):
    """One entry of the tile lookup response. Unknown fields are kept."""

    model_config = {"extra": "allow", "populate_by_name": True}

    tileset_url: str = Field(alias="tilesetUrl")

    # Either {"type": "Polygon", "coordinates": [[[lat, lng], ...]]}
    # or {"type": "Feature", "geometry": {"coordinates": [[[lat, lng], ...]]}}
    outline: Optional[Any] = None


@dataclass(frozen=True)
class ProjectedPoint:
    x: float
    y: float
    z: float = 0.0

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


@dataclass(frozen=True)
class FetchOutcome:
    """Result of one fetch cycle, as delivered to completion listeners."""

    success: bool
    record: Optional[TileRecord] = None
    error: Optional[FetchErrorKind] = None
    message: str = ""
    display_resource: Any = None
    outline_handle: Any = None
