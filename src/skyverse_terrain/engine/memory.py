"""In-process stand-in for the 3D-tiles engine.

Keeps every handle as plain Python state so the request pipeline runs
end-to-end without a renderer (CLI, tests). Also records each command it
receives in ``log`` for inspection.
"""
from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple

from skyverse_terrain.contracts.engine_contract import (
    DisplayResource,
    Georeference,
    OutlineShapeHandle,
    OverlayRegistry,
    RenderingEngine,
)
from skyverse_terrain.core.models import ProjectedPoint

_ids = itertools.count(1)

Command = Tuple[str, Any]


@dataclass(eq=False)
class MemoryDisplayResource(DisplayResource):
    id: int = field(default_factory=lambda: next(_ids))
    tags: List[str] = field(default_factory=list)
    occlusion_culling: bool = True
    maximum_screen_space_error: float = 16.0
    georeference: Optional[Georeference] = None
    source: str = "ion"
    url: str = ""
    hidden: bool = False
    refresh_count: int = 0
    destroyed: bool = False
    log: List[Command] = field(default_factory=list, repr=False)
    _loaded: List[Callable[[DisplayResource], None]] = field(default_factory=list, repr=False)

    def set_occlusion_culling(self, enabled: bool) -> None:
        self.occlusion_culling = enabled
        self.log.append(("occlusion_culling", enabled))

    def set_maximum_screen_space_error(self, value: float) -> None:
        self.maximum_screen_space_error = value
        self.log.append(("maximum_screen_space_error", value))

    def add_tag(self, tag: str) -> None:
        if tag not in self.tags:
            self.tags.append(tag)

    def set_georeference(self, georeference: Georeference) -> None:
        self.georeference = georeference
        self.log.append(("georeference", georeference))

    def set_source_from_url(self) -> None:
        self.source = "url"
        self.log.append(("source", "url"))

    def set_url(self, url: str) -> None:
        self.url = url
        self.log.append(("url", url))

    def set_hidden(self, hidden: bool) -> None:
        self.hidden = hidden
        self.log.append(("hidden", hidden))

    def refresh(self) -> None:
        self.refresh_count += 1
        self.log.append(("refresh", None))

    def subscribe_loaded(self, callback: Callable[[DisplayResource], None]) -> None:
        self._loaded.append(callback)

    @property
    def loaded_subscriber_count(self) -> int:
        return len(self._loaded)

    def finish_loading(self) -> None:
        """Simulate the engine reporting that the tileset finished loading."""
        for cb in list(self._loaded):
            cb(self)

    def destroy(self) -> None:
        self.destroyed = True
        self._loaded.clear()
        self.log.append(("destroy", None))


@dataclass(eq=False)
class MemoryOutlineShape(OutlineShapeHandle):
    id: int = field(default_factory=lambda: next(_ids))
    tags: List[str] = field(default_factory=list)
    points: List[ProjectedPoint] = field(default_factory=list)
    destroyed: bool = False

    def add_tag(self, tag: str) -> None:
        if tag not in self.tags:
            self.tags.append(tag)

    def set_points(self, points: Sequence[ProjectedPoint]) -> None:
        self.points = list(points)

    def destroy(self) -> None:
        self.destroyed = True


@dataclass(eq=False)
class MemoryOverlayRegistry(OverlayRegistry):
    polygons: List[OutlineShapeHandle] = field(default_factory=list)
    refresh_count: int = 0

    def members(self) -> List[OutlineShapeHandle]:
        return list(self.polygons)

    def add(self, handle: OutlineShapeHandle) -> None:
        self.polygons.append(handle)

    def remove(self, handle: OutlineShapeHandle) -> None:
        self.polygons = [p for p in self.polygons if p is not handle]

    def refresh(self) -> None:
        self.refresh_count += 1


@dataclass
class MemoryEngine(RenderingEngine):
    """
    ``has_world_terrain`` models whether the level contains a world terrain
    tileset; without one there is no overlay to register outlines in.
    """

    has_world_terrain: bool = True
    overlay: Optional[MemoryOverlayRegistry] = None
    display_resources: List[MemoryDisplayResource] = field(default_factory=list)
    outline_handles: List[MemoryOutlineShape] = field(default_factory=list)

    def create_display_resource(self) -> MemoryDisplayResource:
        r = MemoryDisplayResource()
        self.display_resources.append(r)
        return r

    def create_outline_handle(self) -> MemoryOutlineShape:
        h = MemoryOutlineShape()
        self.outline_handles.append(h)
        return h

    def find_overlay_registry(self) -> Optional[MemoryOverlayRegistry]:
        if not self.has_world_terrain:
            return None
        if self.overlay is None:
            self.overlay = MemoryOverlayRegistry()
        return self.overlay

    # ---- inspection helpers ----

    def live_display_resources(self) -> List[MemoryDisplayResource]:
        return [r for r in self.display_resources if not r.destroyed]

    def live_outline_handles(self) -> List[MemoryOutlineShape]:
        return [h for h in self.outline_handles if not h.destroyed]
