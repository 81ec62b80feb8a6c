from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from skyverse_terrain.contracts.engine_contract import (
    DisplayResource,
    Georeference,
    OutlineShapeHandle,
    OverlayRegistry,
    RenderingEngine,
)

log = logging.getLogger(__name__)

FetchCompletedListener = Callable[[bool, Optional[DisplayResource], Optional[OutlineShapeHandle]], None]
ResourceLoadedListener = Callable[[DisplayResource], None]


@dataclass
class TerrainSession:
    """
    Host-owned state for one terrain placement.

    Holds at most one DisplayResource and one OutlineShapeHandle. Both are
    created lazily by the first successful fetch, updated in place by later
    ones, and only released by ``overlay.unload``.

    The georeference and overlay registry are supplied by the host and never
    destroyed here. When ``overlay_registry`` is None it is looked up from the
    engine on first use.
    """

    engine: RenderingEngine
    georeference: Optional[Georeference] = None
    overlay_registry: Optional[OverlayRegistry] = None

    # Also create and cut an outline polygon (raises tileset detail to 16 SSE)
    spawn_outline: bool = True
    # Add the outline to the terrain overlay as soon as it is built
    auto_register_polygon: bool = True

    display_visible: bool = True
    overlay_visible: bool = True

    display_resource: Optional[DisplayResource] = None
    outline_handle: Optional[OutlineShapeHandle] = None
    loaded_listener_bound: bool = False

    # Bumped on unload/close; completions issued under an older value are dropped
    generation: int = 0
    closed: bool = False

    _fetch_completed: List[FetchCompletedListener] = field(default_factory=list, repr=False)
    _resource_loaded: List[ResourceLoadedListener] = field(default_factory=list, repr=False)

    # ---- events ----

    def add_fetch_completed_listener(self, cb: FetchCompletedListener) -> None:
        if cb not in self._fetch_completed:
            self._fetch_completed.append(cb)

    def remove_fetch_completed_listener(self, cb: FetchCompletedListener) -> None:
        if cb in self._fetch_completed:
            self._fetch_completed.remove(cb)

    def add_resource_loaded_listener(self, cb: ResourceLoadedListener) -> None:
        if cb not in self._resource_loaded:
            self._resource_loaded.append(cb)

    def remove_resource_loaded_listener(self, cb: ResourceLoadedListener) -> None:
        if cb in self._resource_loaded:
            self._resource_loaded.remove(cb)

    def emit_fetch_completed(self, success: bool) -> None:
        for cb in list(self._fetch_completed):
            try:
                cb(success, self.display_resource, self.outline_handle)
            except Exception:
                log.exception("fetch-completed listener %r failed", cb)

    def forward_resource_loaded(self, resource: DisplayResource) -> None:
        # Engine may still fire for a resource this session already released
        if resource is not self.display_resource:
            log.debug("Ignoring load event from a released display resource")
            return
        for cb in list(self._resource_loaded):
            try:
                cb(resource)
            except Exception:
                log.exception("resource-loaded listener %r failed", cb)

    # ---- lifecycle ----

    def resolve_overlay_registry(self) -> Optional[OverlayRegistry]:
        if self.overlay_registry is None:
            self.overlay_registry = self.engine.find_overlay_registry()
        return self.overlay_registry

    def is_current(self, generation: int) -> bool:
        return not self.closed and generation == self.generation

    def close(self) -> None:
        """Release owned handles and reject any completion still in flight."""
        from skyverse_terrain.core.overlay import unload

        unload(self)
        self.closed = True
