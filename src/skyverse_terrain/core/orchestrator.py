"""Tile request orchestration: query -> fetch -> select tile -> update session."""
from __future__ import annotations

import json
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Dict, Optional

from pydantic import ValidationError

from skyverse_terrain.config import Settings
from skyverse_terrain.contracts.engine_contract import Transport, TransportResponse
from skyverse_terrain.core.dispatch import Dispatcher, MainThreadDispatcher
from skyverse_terrain.core.errors import FetchError, FetchErrorKind, TerrainError, TransportError
from skyverse_terrain.core.models import FetchOutcome, TileQuery, TileRecord
from skyverse_terrain.core.outline import normalize_outline
from skyverse_terrain.core.overlay import (
    BASE_SCREEN_SPACE_ERROR,
    OUTLINE_SCREEN_SPACE_ERROR,
    ensure_display_resource,
    ensure_outline_handle,
    register_in_overlay,
    update_display_resource,
)
from skyverse_terrain.core.session import TerrainSession

log = logging.getLogger(__name__)


def interpret_response(status_code: int, body: str) -> TileRecord:
    """Map a raw tile-lookup response to the selected (first) tile record."""
    if status_code == 401:
        raise FetchError(FetchErrorKind.INVALID_CREDENTIALS, "Invalid credentials")
    if status_code == 404:
        raise FetchError(FetchErrorKind.ENDPOINT_NOT_FOUND, "Endpoint not found")
    if status_code != 200:
        raise FetchError(FetchErrorKind.REQUEST_FAILED, f"Request failed with status {status_code}")

    try:
        tiles: Any = json.loads(body)
    except ValueError as e:
        raise FetchError(FetchErrorKind.REQUEST_FAILED, f"Response is not JSON: {e}") from e

    if not isinstance(tiles, list):
        raise FetchError(FetchErrorKind.REQUEST_FAILED, "Response is not an array of tiles")
    if not tiles:
        raise FetchError(FetchErrorKind.NO_TILES_FOUND, "No tiles found")

    try:
        return TileRecord.model_validate(tiles[0])
    except ValidationError as e:
        raise FetchError(FetchErrorKind.REQUEST_FAILED, f"Malformed tile record: {e}") from e


class TileRequestOrchestrator:
    """
    Issues tile lookups for terrain sessions.

    ``request_tile`` returns immediately with a Future. The HTTP call runs on
    ``executor``; its completion is handed to ``dispatcher`` so that session
    and engine state are only touched on the owning thread. Requests are
    fire-once: no retries, no coalescing, last completion wins.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Transport,
        executor: Optional[Executor] = None,
        dispatcher: Optional[Dispatcher] = None,
    ):
        self.settings = settings
        self.transport = transport
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="skyverse-fetch")
        self.dispatcher = dispatcher or MainThreadDispatcher()

    # ---------- request building ----------

    def build_url(self, query: TileQuery) -> str:
        return f"{self.settings.endpoint}{query.query_string()}"

    def build_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            self.settings.api_key_header: self.settings.api_key,
        }

    # ---------- public API ----------

    def request_tile(self, session: TerrainSession, query: TileQuery) -> "Future[FetchOutcome]":
        result: "Future[FetchOutcome]" = Future()

        if session.georeference is None:
            log.error("No georeference attached to terrain session")
            self._finish(session, result, self._failure(session, FetchErrorKind.NO_GEOREFERENCE, "No georeference"))
            return result

        url = self.build_url(query)
        headers = self.build_headers()
        generation = session.generation
        log.debug("Full URL: %s", url)

        def _fetch() -> None:
            response: Optional[TransportResponse] = None
            error: Optional[TerrainError] = None
            try:
                response = self.transport.fetch(url, headers)
            except TransportError as e:
                log.error("Connection failed: %s", e)
                error = FetchError(FetchErrorKind.CONNECTION_ERROR, str(e))
            except Exception as e:
                log.exception("Request failed")
                error = FetchError(FetchErrorKind.REQUEST_FAILED, f"{type(e).__name__}: {e}")
            self.dispatcher.dispatch(lambda: self._complete(session, generation, response, error, result))

        self.executor.submit(_fetch)
        return result

    def request_tile_at_location(self, session: TerrainSession, x: float, y: float, z: float) -> "Future[FetchOutcome]":
        """Request the tile under a local-space position (e.g. the host actor's location)."""
        if session.georeference is None:
            log.error("No georeference attached to terrain session")
            result: "Future[FetchOutcome]" = Future()
            self._finish(session, result, self._failure(session, FetchErrorKind.NO_GEOREFERENCE, "No georeference"))
            return result

        lat, lng, _alt = session.georeference.local_to_geo(x, y, z)
        return self.request_tile(session, TileQuery(latitude=lat, longitude=lng))

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self.executor.shutdown(wait=wait)

    # ---------- completion (owning thread) ----------

    def _complete(
        self,
        session: TerrainSession,
        generation: int,
        response: Optional[TransportResponse],
        error: Optional[TerrainError],
        result: "Future[FetchOutcome]",
    ) -> None:
        if not session.is_current(generation):
            log.warning("Dropping tile response for a session that was unloaded while fetching")
            result.set_result(FetchOutcome(success=False, error=FetchErrorKind.SESSION_UNLOADED, message="Session unloaded"))
            return

        try:
            if error is not None:
                raise error
            if response is None:
                raise FetchError(FetchErrorKind.REQUEST_FAILED, "No response received")
            outcome = self._apply(session, response)
        except TerrainError as e:
            log.error("Tile request failed (%s): %s", e.kind.value, e)
            outcome = self._failure(session, e.kind, str(e))
        except Exception as e:
            log.exception("Applying tile response failed")
            outcome = self._failure(session, FetchErrorKind.REQUEST_FAILED, f"{type(e).__name__}: {e}")

        self._finish(session, result, outcome)

    def _apply(self, session: TerrainSession, response: TransportResponse) -> FetchOutcome:
        record = interpret_response(response.status_code, response.body)

        georeference = session.georeference
        if georeference is None:
            raise FetchError(FetchErrorKind.NO_GEOREFERENCE, "Georeference detached while fetching")

        # Normalize before touching any handle so a bad outline leaves the session as it was
        points = normalize_outline(record, georeference.geo_to_local) if session.spawn_outline else None

        sse = OUTLINE_SCREEN_SPACE_ERROR if session.spawn_outline else BASE_SCREEN_SPACE_ERROR
        resource = ensure_display_resource(session, sse)
        update_display_resource(resource, georeference, record.tileset_url)

        if points is not None:
            handle = ensure_outline_handle(session, points)
            if session.auto_register_polygon:
                registry = session.resolve_overlay_registry()
                if registry is None:
                    log.warning("No world terrain found, outline not added to overlay")
                else:
                    register_in_overlay(registry, handle)
                    session.overlay_visible = True

        return FetchOutcome(
            success=True,
            record=record,
            display_resource=session.display_resource,
            outline_handle=session.outline_handle,
        )

    @staticmethod
    def _failure(session: TerrainSession, kind: FetchErrorKind, message: str) -> FetchOutcome:
        return FetchOutcome(
            success=False,
            error=kind,
            message=message,
            display_resource=session.display_resource,
            outline_handle=session.outline_handle,
        )

    @staticmethod
    def _finish(session: TerrainSession, result: "Future[FetchOutcome]", outcome: FetchOutcome) -> None:
        session.emit_fetch_completed(outcome.success)
        result.set_result(outcome)
