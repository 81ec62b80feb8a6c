"""Collaborator seams: HTTP transport, georeference and the rendering engine.

The core only talks to these abstract types. Concrete implementations live in
``providers.http``, ``geo.georeference`` and ``engine.memory``; a game-engine
host supplies its own.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from skyverse_terrain.core.models import ProjectedPoint

Vec3 = Tuple[float, float, float]


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    body: str


class Transport(ABC):
    """Issues one GET and returns the raw response, or raises TransportError."""

    @abstractmethod
    def fetch(self, url: str, headers: Dict[str, str]) -> TransportResponse:
        raise NotImplementedError


class Georeference(ABC):
    """Bidirectional geographic <-> local coordinate transformer."""

    @abstractmethod
    def geo_to_local(self, lat: float, lng: float, alt: float) -> Vec3:
        raise NotImplementedError

    @abstractmethod
    def local_to_geo(self, x: float, y: float, z: float) -> Vec3:
        """Returns (lat, lng, alt)."""
        raise NotImplementedError


class DisplayResource(ABC):
    """Handle to a streamed 3D tileset owned by the engine."""

    @abstractmethod
    def set_occlusion_culling(self, enabled: bool) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_maximum_screen_space_error(self, value: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def add_tag(self, tag: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_georeference(self, georeference: Georeference) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_source_from_url(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_url(self, url: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_hidden(self, hidden: bool) -> None:
        raise NotImplementedError

    @abstractmethod
    def refresh(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def subscribe_loaded(self, callback: Callable[["DisplayResource"], None]) -> None:
        raise NotImplementedError

    @abstractmethod
    def destroy(self) -> None:
        raise NotImplementedError


class OutlineShapeHandle(ABC):
    """Handle to a cartographic polygon used to cut the world terrain."""

    @abstractmethod
    def add_tag(self, tag: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_points(self, points: Sequence[ProjectedPoint]) -> None:
        raise NotImplementedError

    @abstractmethod
    def destroy(self) -> None:
        raise NotImplementedError


class OverlayRegistry(ABC):
    """World-scoped polygon overlay the terrain uses to avoid occluding tilesets."""

    @abstractmethod
    def members(self) -> List[OutlineShapeHandle]:
        raise NotImplementedError

    @abstractmethod
    def add(self, handle: OutlineShapeHandle) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove(self, handle: OutlineShapeHandle) -> None:
        raise NotImplementedError

    @abstractmethod
    def refresh(self) -> None:
        """Re-render the world terrain so overlay changes take effect."""
        raise NotImplementedError


class RenderingEngine(ABC):
    @abstractmethod
    def create_display_resource(self) -> DisplayResource:
        raise NotImplementedError

    @abstractmethod
    def create_outline_handle(self) -> OutlineShapeHandle:
        raise NotImplementedError

    @abstractmethod
    def find_overlay_registry(self) -> Optional[OverlayRegistry]:
        """
        Return the world terrain's polygon overlay, creating and attaching one
        if the terrain has none. Returns None when there is no world terrain.
        """
        raise NotImplementedError
