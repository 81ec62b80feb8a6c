from __future__ import annotations

import logging

from skyverse_terrain.core.models import ProjectedPoint
from skyverse_terrain.core.overlay import (
    BASE_SCREEN_SPACE_ERROR,
    OUTLINE_SCREEN_SPACE_ERROR,
    RESOURCE_TAG,
    ensure_display_resource,
    ensure_outline_handle,
    register_in_overlay,
    set_display_visible,
    set_overlay_visible,
    unload,
    unregister_from_overlay,
    update_display_resource,
)
from skyverse_terrain.engine.memory import MemoryOutlineShape, MemoryOverlayRegistry

PTS = [ProjectedPoint(1.0, 2.0), ProjectedPoint(3.0, 4.0)]


def test_register_twice_is_same_as_once():
    registry = MemoryOverlayRegistry()
    h = MemoryOutlineShape()

    assert register_in_overlay(registry, h) is True
    assert register_in_overlay(registry, h) is False

    assert registry.members() == [h]
    assert registry.refresh_count == 1


def test_register_keeps_insertion_order_of_distinct_handles():
    registry = MemoryOverlayRegistry()
    a, b = MemoryOutlineShape(), MemoryOutlineShape()
    register_in_overlay(registry, a)
    register_in_overlay(registry, b)
    register_in_overlay(registry, a)
    assert registry.members() == [a, b]


def test_unregister_absent_handle_is_noop():
    registry = MemoryOverlayRegistry()
    present, absent = MemoryOutlineShape(), MemoryOutlineShape()
    register_in_overlay(registry, present)

    assert unregister_from_overlay(registry, absent) is False
    assert registry.members() == [present]
    assert registry.refresh_count == 1

    assert unregister_from_overlay(registry, present) is True
    assert registry.members() == []
    assert registry.refresh_count == 2


def test_duplicate_registration_is_logged(caplog):
    registry = MemoryOverlayRegistry()
    h = MemoryOutlineShape()
    register_in_overlay(registry, h)
    with caplog.at_level(logging.INFO, logger="skyverse_terrain.core.overlay"):
        register_in_overlay(registry, h)
    assert "already registered" in caplog.text


def test_ensure_display_resource_creates_once_with_defaults(session, engine):
    r1 = ensure_display_resource(session)
    r2 = ensure_display_resource(session, OUTLINE_SCREEN_SPACE_ERROR)

    assert r1 is r2
    assert engine.display_resources == [r1]
    assert r1.occlusion_culling is False
    assert r1.maximum_screen_space_error == BASE_SCREEN_SPACE_ERROR
    assert RESOURCE_TAG in r1.tags
    assert r1.loaded_subscriber_count == 1
    assert session.loaded_listener_bound is True


def test_ensure_display_resource_outline_budget(session):
    r = ensure_display_resource(session, OUTLINE_SCREEN_SPACE_ERROR)
    assert r.maximum_screen_space_error == 16.0


def test_load_event_is_forwarded_once(session):
    loaded = []
    session.add_resource_loaded_listener(loaded.append)

    r = ensure_display_resource(session)
    ensure_display_resource(session)
    r.finish_loading()

    assert loaded == [r]


def test_update_display_resource(session, georeference):
    r = ensure_display_resource(session)
    update_display_resource(r, georeference, "http://x/tileset.json")
    assert r.georeference is georeference
    assert r.source == "url"
    assert r.url == "http://x/tileset.json"
    assert [c[0] for c in r.log[-3:]] == ["georeference", "source", "url"]


def test_ensure_outline_handle_updates_in_place(session, engine):
    h1 = ensure_outline_handle(session, PTS)
    h2 = ensure_outline_handle(session, PTS[:1])

    assert h1 is h2
    assert engine.outline_handles == [h1]
    assert h1.points == PTS[:1]
    assert RESOURCE_TAG in h1.tags


def test_set_overlay_visible_toggles_membership(session, engine):
    h = ensure_outline_handle(session, PTS)

    set_overlay_visible(session, True)
    set_overlay_visible(session, True)
    assert engine.overlay.members() == [h]
    assert session.overlay_visible is True

    set_overlay_visible(session, False)
    set_overlay_visible(session, False)
    assert engine.overlay.members() == []
    assert session.overlay_visible is False


def test_set_overlay_visible_without_outline_warns(session, caplog):
    with caplog.at_level(logging.WARNING):
        set_overlay_visible(session, False)
    assert "No outline polygon" in caplog.text
    assert session.overlay_visible is True


def test_set_display_visible(session):
    r = ensure_display_resource(session)
    set_display_visible(session, False)
    assert r.hidden is True
    assert r.refresh_count == 1
    assert session.display_visible is False

    set_display_visible(session, True)
    assert r.hidden is False
    assert session.display_visible is True


def test_set_display_visible_without_resource_is_noop(session):
    set_display_visible(session, False)
    assert session.display_visible is True


def test_unload_clears_state_and_overlay(session, engine):
    r = ensure_display_resource(session)
    h = ensure_outline_handle(session, PTS)
    set_overlay_visible(session, True)

    unload(session)

    assert session.display_resource is None
    assert session.outline_handle is None
    assert session.loaded_listener_bound is False
    assert r.destroyed and h.destroyed
    assert h not in engine.overlay.members()


def test_unload_with_nothing_loaded_is_noop(session, engine):
    unload(session)
    unload(session)
    assert session.display_resource is None
    assert session.outline_handle is None
    assert engine.overlay is None


def test_unload_invalidates_in_flight_generation(session):
    g = session.generation
    unload(session)
    assert not session.is_current(g)
    assert session.is_current(session.generation)


def test_close_rejects_everything(session):
    ensure_display_resource(session)
    session.close()
    assert session.display_resource is None
    assert not session.is_current(session.generation)
