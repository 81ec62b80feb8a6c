"""Error kinds and exceptions raised during a tile fetch cycle."""
from __future__ import annotations

from enum import Enum


class FetchErrorKind(str, Enum):
    """Why a fetch cycle ended without updating the session."""

    NO_GEOREFERENCE = "NoGeoreference"
    CONNECTION_ERROR = "ConnectionError"
    INVALID_CREDENTIALS = "InvalidCredentials"
    ENDPOINT_NOT_FOUND = "EndpointNotFound"
    NO_TILES_FOUND = "NoTilesFound"
    REQUEST_FAILED = "RequestFailed"
    MISSING_OUTLINE = "MissingOutline"
    UNSUPPORTED_OUTLINE_TYPE = "UnsupportedOutlineType"
    COORDINATE_PARSE_ERROR = "CoordinateParseError"
    SESSION_UNLOADED = "SessionUnloaded"


class TerrainError(Exception):
    def __init__(self, kind: FetchErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind


class FetchError(TerrainError):
    """Request-side failure: georeference, transport or response envelope."""


class ShapeError(TerrainError):
    """The selected tile's outline could not be turned into points."""


class TransportError(Exception):
    """No HTTP response was received (refused, reset, timed out)."""
