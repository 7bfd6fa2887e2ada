"""worldmap-persist diagnostics CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from . import __version__
from .config import WorldMapSettings, get_settings
from .controller import SessionPersistenceController
from .errors import DeserializeError, FileReadError, WorldMapLocationError
from .status import LoggingStatusSink
from .storage import MapFileStore
from .tracking import SceneLoadError, SceneLoader, SimulatedTrackingSession, unarchive_world_map

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging for worldmap-persist."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def load_settings() -> WorldMapSettings:
    try:
        return get_settings()
    except WorldMapLocationError as exc:
        logger.critical("Cannot resolve world map location: %s", exc)
        print(f"World map location unavailable: {exc}")
        raise SystemExit(1)


def load_store(settings: WorldMapSettings) -> MapFileStore:
    return MapFileStore(settings.world_map_path)


def cmd_info(args: argparse.Namespace) -> None:
    settings = load_settings()
    store = load_store(settings)
    info = store.info()
    payload: dict[str, object] = {
        "path": info.path,
        "exists": info.exists,
        "size": info.size,
        "modified_at": info.modified_at.isoformat() if info.modified_at else None,
        "valid": False,
        "anchor_count": None,
        "feature_point_count": None,
        "error": None,
    }
    if info.exists:
        try:
            world_map = unarchive_world_map(store.read())
        except (FileReadError, DeserializeError) as exc:
            payload["error"] = str(exc)
        else:
            payload.update(
                {
                    "valid": True,
                    "anchor_count": len(world_map.anchors),
                    "feature_point_count": len(world_map.feature_points),
                    "center": world_map.center.tolist(),
                    "extent": world_map.extent.tolist(),
                }
            )

    if args.json:
        print(json.dumps(payload, indent=2))
    else:
        state = "valid" if payload["valid"] else ("missing" if not info.exists else "invalid")
        print(f"{info.path} [{state}] anchors={payload['anchor_count']} size={info.size}")


def cmd_anchors(args: argparse.Namespace) -> None:
    settings = load_settings()
    store = load_store(settings)
    try:
        world_map = unarchive_world_map(store.read())
    except (FileReadError, DeserializeError) as exc:
        print(f"World map unavailable: {exc}")
        raise SystemExit(1)
    print(json.dumps([anchor.to_dict() for anchor in world_map.anchors], indent=2))


async def _run_demo(controller: SessionPersistenceController, taps: list[tuple[float, float]]) -> dict[str, object]:
    controller.activate()
    placed = [anchor for anchor in (controller.place_anchor(tap) for tap in taps) if anchor is not None]
    result = await controller.save_current_map()
    restored = controller.load_and_resume() if result.ok else False
    return {
        "placed": [anchor.to_dict() for anchor in placed],
        "missed_taps": len(taps) - len(placed),
        "saved": result.ok,
        "saved_bytes": result.size,
        "error": str(result.error) if result.error else None,
        "resumed": restored,
        "restored": [anchor.to_dict() for anchor in controller.session.anchors] if restored else [],
        "state": controller.state.value,
    }


def cmd_demo(args: argparse.Namespace) -> None:
    settings = load_settings()
    try:
        scene = SceneLoader(args.scene or settings.scene_path).load()
    except SceneLoadError as exc:
        print(f"Scene unavailable: {exc}")
        raise SystemExit(1)

    session = SimulatedTrackingSession(scene)
    status = LoggingStatusSink()
    controller = SessionPersistenceController.from_settings(session, settings, status)
    taps = [tuple(tap) for tap in args.tap] if args.tap else [
        (scene.camera.viewport[0] / 2.0, scene.camera.viewport[1] / 2.0)
    ]

    payload = asyncio.run(_run_demo(controller, taps))
    controller.deactivate()
    payload["status_messages"] = status.messages
    print(json.dumps(payload, indent=2))
    if not payload["saved"]:
        raise SystemExit(1)


def cmd_clear(args: argparse.Namespace) -> None:
    settings = load_settings()
    store = load_store(settings)
    removed = store.clear()
    print(f"Removed {store.path}" if removed else f"No world map at {store.path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="worldmap-persist diagnostics")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="cmd")

    p_info = sub.add_parser("info", help="Describe the persisted world map file")
    p_info.add_argument("--json", action="store_true", help="Output JSON")
    p_info.set_defaults(func=cmd_info)

    p_anchors = sub.add_parser("anchors", help="List anchors stored in the world map")
    p_anchors.set_defaults(func=cmd_anchors)

    p_demo = sub.add_parser(
        "demo",
        help="Place anchors in a simulated session, save, and resume from the saved map",
    )
    p_demo.add_argument(
        "--tap",
        nargs=2,
        type=float,
        action="append",
        metavar=("X", "Y"),
        help="Screen location to anchor; may be repeated",
    )
    p_demo.add_argument("--scene", default=None, help="YAML scene description")
    p_demo.set_defaults(func=cmd_demo)

    p_clear = sub.add_parser("clear", help="Delete the persisted world map")
    p_clear.set_defaults(func=cmd_clear)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    configure_logging(load_settings().log_level)
    args.func(args)


if __name__ == "__main__":
    main(sys.argv[1:])
