"""Overlay registration: own the session's tileset/outline handles and keep the
terrain overlay membership in sync with them.

Every function here is idempotent and safe to call repeatedly.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from skyverse_terrain.contracts.engine_contract import (
    DisplayResource,
    Georeference,
    OutlineShapeHandle,
    OverlayRegistry,
)
from skyverse_terrain.core.models import ProjectedPoint
from skyverse_terrain.core.session import TerrainSession

log = logging.getLogger(__name__)

RESOURCE_TAG = "skyverse"

# Tileset detail when only the tileset is shown vs. when an outline cuts the terrain
BASE_SCREEN_SPACE_ERROR = 32.0
OUTLINE_SCREEN_SPACE_ERROR = 16.0


# ---------------------------------------------------------------------------
# Display resource
# ---------------------------------------------------------------------------

def ensure_display_resource(
    session: TerrainSession,
    max_screen_space_error: float = BASE_SCREEN_SPACE_ERROR,
) -> DisplayResource:
    resource = session.display_resource
    if resource is None:
        resource = session.engine.create_display_resource()
        resource.add_tag(RESOURCE_TAG)
        resource.set_occlusion_culling(False)
        resource.set_maximum_screen_space_error(max_screen_space_error)
        session.display_resource = resource
        log.debug("Created display resource (sse=%.1f)", max_screen_space_error)

    if not session.loaded_listener_bound:
        resource.subscribe_loaded(session.forward_resource_loaded)
        session.loaded_listener_bound = True

    return resource


def update_display_resource(resource: DisplayResource, georeference: Georeference, url: str) -> None:
    resource.set_georeference(georeference)
    resource.set_source_from_url()
    resource.set_url(url)
    log.info("Display resource url: %s", url)


def set_display_visible(session: TerrainSession, visible: bool) -> None:
    resource = session.display_resource
    if resource is None:
        log.warning("No display resource to change visibility of")
        return
    resource.set_hidden(not visible)
    resource.refresh()
    session.display_visible = visible
    log.info("Display resource visible=%s", visible)


# ---------------------------------------------------------------------------
# Outline handle + overlay membership
# ---------------------------------------------------------------------------

def ensure_outline_handle(session: TerrainSession, points: Sequence[ProjectedPoint]) -> OutlineShapeHandle:
    handle = session.outline_handle
    if handle is None:
        handle = session.engine.create_outline_handle()
        handle.add_tag(RESOURCE_TAG)
        session.outline_handle = handle
        log.debug("Created outline handle")
    handle.set_points(list(points))
    return handle


def _is_member(registry: OverlayRegistry, handle: OutlineShapeHandle) -> bool:
    for member in registry.members():
        if member is handle:
            return True
    return False


def register_in_overlay(registry: OverlayRegistry, handle: OutlineShapeHandle) -> bool:
    """Add ``handle`` to the overlay. Returns False if it was already there."""
    if _is_member(registry, handle):
        log.info("Outline already registered in overlay")
        return False
    registry.add(handle)
    registry.refresh()
    return True


def unregister_from_overlay(registry: OverlayRegistry, handle: OutlineShapeHandle) -> bool:
    """Remove ``handle`` from the overlay. Returns False if it was not there."""
    if not _is_member(registry, handle):
        log.info("Outline not registered in overlay, nothing to remove")
        return False
    registry.remove(handle)
    registry.refresh()
    return True


def set_overlay_visible(session: TerrainSession, visible: bool) -> None:
    handle = session.outline_handle
    if handle is None:
        log.warning("No outline polygon found")
        return

    registry = session.resolve_overlay_registry()
    if registry is None:
        log.warning("No world terrain overlay to toggle outline in")
        return

    if visible:
        register_in_overlay(registry, handle)
    else:
        unregister_from_overlay(registry, handle)
    session.overlay_visible = visible


# ---------------------------------------------------------------------------
# Teardown
# ---------------------------------------------------------------------------

def unload(session: TerrainSession) -> None:
    """
    Destroy the session's tileset and outline and clear both references.

    Also invalidates any fetch still in flight for this session. Safe to call
    when nothing is loaded.
    """
    session.generation += 1

    resource: Optional[DisplayResource] = session.display_resource
    handle: Optional[OutlineShapeHandle] = session.outline_handle
    if resource is None and handle is None:
        return

    if resource is not None:
        resource.destroy()
        session.display_resource = None
        session.loaded_listener_bound = False

    if handle is not None:
        registry = session.overlay_registry
        if registry is not None:
            unregister_from_overlay(registry, handle)
        handle.destroy()
        session.outline_handle = None

    log.info("Unloaded tileset")
