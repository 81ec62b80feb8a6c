import sys
from concurrent.futures import Executor, Future
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

# Ensure `src/` is importable without an editable install.
SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(SRC_ROOT))

from skyverse_terrain.config import Settings  # noqa: E402
from skyverse_terrain.contracts.engine_contract import (  # noqa: E402
    Georeference,
    Transport,
    TransportResponse,
)
from skyverse_terrain.core.dispatch import InlineDispatcher  # noqa: E402
from skyverse_terrain.core.errors import TransportError  # noqa: E402
from skyverse_terrain.core.orchestrator import TileRequestOrchestrator  # noqa: E402
from skyverse_terrain.core.session import TerrainSession  # noqa: E402
from skyverse_terrain.engine.memory import MemoryEngine  # noqa: E402


class IdentityGeoreference(Georeference):
    def geo_to_local(self, lat, lng, alt):
        return (lat, lng, alt)

    def local_to_geo(self, x, y, z):
        return (x, y, z)


class StubTransport(Transport):
    """Replays queued responses; a queued exception is raised instead."""

    def __init__(self) -> None:
        self.queue: List[object] = []
        self.calls: List[Tuple[str, Dict[str, str]]] = []

    def reply(self, status_code: int, body: str) -> "StubTransport":
        self.queue.append(TransportResponse(status_code=status_code, body=body))
        return self

    def fail(self, exc: Exception) -> "StubTransport":
        self.queue.append(exc)
        return self

    def fetch(self, url, headers):
        self.calls.append((url, dict(headers)))
        item = self.queue.pop(0) if self.queue else TransportError("no stubbed response")
        if isinstance(item, Exception):
            raise item
        return item


class ImmediateExecutor(Executor):
    """Runs submitted work synchronously on the calling thread."""

    def submit(self, fn, /, *args, **kwargs):
        f: Future = Future()
        try:
            f.set_result(fn(*args, **kwargs))
        except BaseException as e:  # pragma: no cover - surfaced through the future
            f.set_exception(e)
        return f


@pytest.fixture
def engine() -> MemoryEngine:
    return MemoryEngine()


@pytest.fixture
def georeference() -> IdentityGeoreference:
    return IdentityGeoreference()


@pytest.fixture
def session(engine, georeference) -> TerrainSession:
    return TerrainSession(engine=engine, georeference=georeference)


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key="secret-key", endpoint="https://tiles.example.com/v1/tiles?")


@pytest.fixture
def transport() -> StubTransport:
    return StubTransport()


@pytest.fixture
def orchestrator(settings, transport) -> TileRequestOrchestrator:
    return TileRequestOrchestrator(
        settings,
        transport,
        executor=ImmediateExecutor(),
        dispatcher=InlineDispatcher(),
    )
