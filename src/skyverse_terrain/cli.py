from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.table import Table

from skyverse_terrain.config import load_settings
from skyverse_terrain.core.dispatch import MainThreadDispatcher
from skyverse_terrain.core.models import FetchOutcome, TileQuery
from skyverse_terrain.core.orchestrator import TileRequestOrchestrator
from skyverse_terrain.core.outline import extract_ring
from skyverse_terrain.core.session import TerrainSession
from skyverse_terrain.engine.memory import MemoryEngine
from skyverse_terrain.geo.georeference import LocalTangentGeoreference
from skyverse_terrain.providers.http import HTTPTransport


def _save_json(path: Path, obj) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2), encoding="utf-8")


def _outcome_dict(outcome: FetchOutcome, engine: MemoryEngine) -> Dict[str, Any]:
    handle = outcome.outline_handle
    return {
        "success": outcome.success,
        "error": outcome.error.value if outcome.error else None,
        "message": outcome.message,
        "tileset_url": outcome.record.tileset_url if outcome.record else None,
        "outline_points": [list(p.as_tuple()) for p in handle.points] if handle is not None else [],
        "overlay_members": len(engine.overlay.polygons) if engine.overlay is not None else 0,
    }


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Look up the Skyverse tileset at a coordinate")
    ap.add_argument("--lat", type=float, required=True)
    ap.add_argument("--lng", type=float, required=True)
    ap.add_argument("--endpoint", default=None, help="Overrides SKYVERSE_ENDPOINT")
    ap.add_argument("--api-key", default=None, help="Overrides SKYVERSE_API_KEY")
    ap.add_argument("--origin-lat", type=float, default=None, help="Georeference origin (default: --lat)")
    ap.add_argument("--origin-lng", type=float, default=None, help="Georeference origin (default: --lng)")
    ap.add_argument("--unit-scale", type=float, default=100.0, help="Local units per metre")
    ap.add_argument("--left-handed", action="store_true", help="+y points south")
    ap.add_argument("--no-outline", action="store_true", help="Only resolve the tileset url")
    ap.add_argument("--no-register", action="store_true", help="Build the outline but keep it out of the overlay")
    ap.add_argument("--timeout", type=float, default=60.0)
    ap.add_argument("--save", default=None, help="Write the outcome as JSON to this path")
    ap.add_argument("--debug", action="store_true")
    args = ap.parse_args(argv)

    settings = load_settings(endpoint=args.endpoint, api_key=args.api_key)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [skyverse] %(levelname)s %(message)s",
    )

    console = Console()
    if not settings.endpoint:
        console.print("[red]No endpoint configured. Set SKYVERSE_ENDPOINT or pass --endpoint.[/red]")
        return 2

    georeference = LocalTangentGeoreference(
        origin_lat=args.origin_lat if args.origin_lat is not None else args.lat,
        origin_lng=args.origin_lng if args.origin_lng is not None else args.lng,
        unit_scale=args.unit_scale,
        left_handed=args.left_handed,
    )
    engine = MemoryEngine()
    session = TerrainSession(
        engine=engine,
        georeference=georeference,
        spawn_outline=not args.no_outline,
        auto_register_polygon=not args.no_register,
    )

    transport = HTTPTransport.from_settings(settings)
    dispatcher = MainThreadDispatcher()
    orchestrator = TileRequestOrchestrator(settings, transport, dispatcher=dispatcher)
    try:
        future = orchestrator.request_tile(session, TileQuery(latitude=args.lat, longitude=args.lng))
        if not dispatcher.pump_until(future, timeout_s=args.timeout):
            console.print("[red]Timed out waiting for the tile service.[/red]")
            return 1
        outcome = future.result()
    finally:
        orchestrator.shutdown(wait=False)
        transport.close()

    if not outcome.success:
        console.print(f"[red]Request failed:[/red] {outcome.error.value if outcome.error else '?'} {outcome.message}")
    else:
        console.print(f"Tileset: [bold]{outcome.record.tileset_url}[/bold]")

        handle = outcome.outline_handle
        if handle is not None:
            ring = extract_ring(outcome.record.outline)
            table = Table(title=f"Outline @ {args.lat:.5f}, {args.lng:.5f}")
            table.add_column("#")
            table.add_column("Lat")
            table.add_column("Lng")
            table.add_column("x")
            table.add_column("y")
            table.add_column("z")
            for i, (vertex, p) in enumerate(zip(ring, handle.points)):
                table.add_row(
                    str(i),
                    str(vertex[0]),
                    str(vertex[1]),
                    f"{p.x:.2f}",
                    f"{p.y:.2f}",
                    f"{p.z:.2f}",
                )
            console.print(table)

            members = len(engine.overlay.polygons) if engine.overlay is not None else 0
            console.print(f"Overlay polygons: {members}")

    if args.save:
        path = Path(args.save)
        _save_json(path, _outcome_dict(outcome, engine))
        console.print(f"Saved: {path.resolve()}")

    return 0 if outcome.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
