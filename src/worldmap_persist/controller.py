"""Session persistence controller.

Owns one tracking session and the single persisted world-map file. All
methods are meant to be called from one asyncio event loop; the snapshot
callback, which the subsystem may fire from any thread, is handed back to that
loop before the file or the status surface is touched.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass

from .config import WorldMapSettings
from .errors import (
    DeserializeError,
    FileReadError,
    FileWriteError,
    PersistenceError,
    SaveInProgressError,
    SerializeError,
    SubsystemError,
)
from .status import LoggingStatusSink, StatusMessages, StatusSink
from .storage import MapFileStore
from .tracking import (
    Anchor,
    HitTestType,
    PlaneDetection,
    RunOptions,
    TrackingConfiguration,
    TrackingSession,
    WorldMap,
    archive_world_map,
    unarchive_world_map,
)

logger = logging.getLogger(__name__)

HIT_TEST_TYPES = (HitTestType.FEATURE_POINT, HitTestType.ESTIMATED_HORIZONTAL_PLANE)


class SessionState(enum.Enum):
    STOPPED = "stopped"
    RUNNING_FRESH = "running_fresh"
    RUNNING_RESUMED = "running_resumed"
    PAUSED = "paused"

    @property
    def is_running(self) -> bool:
        return self in (SessionState.RUNNING_FRESH, SessionState.RUNNING_RESUMED)


@dataclass(slots=True)
class SaveResult:
    """Outcome of one save attempt."""

    error: PersistenceError | None = None
    anchor_count: int = 0
    size: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


class SessionPersistenceController:
    """Runs a tracking session and saves or restores its world map."""

    def __init__(
        self,
        session: TrackingSession,
        store: MapFileStore,
        status: StatusSink | None = None,
        *,
        plane_detection: PlaneDetection = PlaneDetection.HORIZONTAL,
        show_feature_points: bool = True,
    ) -> None:
        self._session = session
        self._store = store
        self._status = status or LoggingStatusSink()
        self._plane_detection = plane_detection
        self._show_feature_points = show_feature_points
        self._state = SessionState.STOPPED
        self._save_in_flight = False

    @classmethod
    def from_settings(
        cls,
        session: TrackingSession,
        settings: WorldMapSettings,
        status: StatusSink | None = None,
    ) -> "SessionPersistenceController":
        return cls(
            session,
            MapFileStore(settings.world_map_path),
            status,
            plane_detection=PlaneDetection.from_setting(settings.plane_detection),
            show_feature_points=settings.show_feature_points,
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> TrackingSession:
        return self._session

    @property
    def store(self) -> MapFileStore:
        return self._store

    @property
    def save_in_progress(self) -> bool:
        return self._save_in_flight

    # Session lifecycle

    def start_session(self, initial_map: WorldMap | None = None) -> None:
        """(Re)start tracking, optionally resuming from ``initial_map``.

        Existing tracking state and anchors are always discarded. A paused
        session may only restart fresh, so a map supplied while paused is
        dropped.
        """

        if initial_map is not None and self._state is SessionState.PAUSED:
            logger.warning("Ignoring saved world map while paused; starting fresh")
            initial_map = None

        configuration = TrackingConfiguration(
            plane_detection=self._plane_detection,
            initial_world_map=initial_map,
            show_feature_points=self._show_feature_points,
        )
        if initial_map is not None:
            self._status.set_text(StatusMessages.FOUND_SAVED_MAP)
        else:
            self._status.set_text(StatusMessages.START_MAPPING)

        self._session.run(
            configuration,
            RunOptions.RESET_TRACKING | RunOptions.REMOVE_EXISTING_ANCHORS,
        )
        self._state = (
            SessionState.RUNNING_RESUMED if initial_map is not None else SessionState.RUNNING_FRESH
        )
        logger.info(
            "Tracking session started",
            extra={
                "resumed": initial_map is not None,
                "saved_anchors": len(initial_map.anchors) if initial_map is not None else 0,
            },
        )

    def pause_session(self) -> None:
        if not self._state.is_running:
            return
        self._session.pause()
        self._state = SessionState.PAUSED
        logger.info("Tracking session paused")

    def activate(self) -> None:
        """Start a fresh session when the owning surface becomes visible."""

        self.start_session()

    def deactivate(self) -> None:
        self.pause_session()

    def reset(self) -> None:
        self.start_session()

    # User input

    def place_anchor(self, location: tuple[float, float]) -> Anchor | None:
        """Anchor the nearest surface or feature point under ``location``."""

        if not self._state.is_running:
            return None
        results = self._session.hit_test(location, HIT_TEST_TYPES)
        if not results:
            logger.debug("No hit test result", extra={"location": tuple(location)})
            return None

        hit = results[0]
        anchor = Anchor(transform=hit.world_transform)
        self._session.add(anchor)
        logger.info(
            "Anchor placed",
            extra={
                "anchor_id": anchor.identifier,
                "hit_type": hit.type.value,
                "position": anchor.transform.position.tolist(),
            },
        )
        return anchor

    # Persistence

    async def _request_world_map(self) -> WorldMap:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[WorldMap] = loop.create_future()

        def _resolve(world_map: WorldMap | None, error: Exception | None) -> None:
            if future.done():
                return
            if error is not None:
                failure = SubsystemError(f"Tracking session failed to produce a world map: {error}")
                failure.__cause__ = error
                future.set_exception(failure)
            elif world_map is None:
                future.set_exception(SubsystemError("Tracking session returned no world map"))
            else:
                future.set_result(world_map)

        def _completion(world_map: WorldMap | None, error: Exception | None) -> None:
            try:
                loop.call_soon_threadsafe(_resolve, world_map, error)
            except RuntimeError as exc:
                logger.debug("Dropping world map result for a closed event loop: %s", exc)

        try:
            self._session.get_current_world_map(_completion)
        except Exception as exc:
            raise SubsystemError(f"World map request failed: {exc}") from exc
        return await future

    async def save_current_map(self) -> SaveResult:
        """Capture the current world map and persist it.

        Failures are reported on the status surface and returned, never
        raised. The previous file is left untouched on any failure. Overlapping
        calls are rejected with :class:`SaveInProgressError`.
        """

        if self._save_in_flight:
            logger.warning("World map save rejected; another save is in progress")
            self._status.set_text(StatusMessages.SAVE_IN_PROGRESS)
            return SaveResult(error=SaveInProgressError("A world map save is already in progress"))

        self._save_in_flight = True
        try:
            try:
                world_map = await self._request_world_map()
            except SubsystemError as exc:
                logger.error("Error getting current world map: %s", exc)
                self._status.set_text(StatusMessages.SNAPSHOT_FAILED)
                return SaveResult(error=exc)

            try:
                data = archive_world_map(world_map)
                self._store.write(data)
            except (SerializeError, FileWriteError) as exc:
                logger.error("Error saving world map: %s", exc)
                self._status.set_text(StatusMessages.SAVE_FAILED)
                return SaveResult(error=exc)

            self._status.set_text(StatusMessages.MAP_SAVED)
            logger.info(
                "World map saved",
                extra={"path": str(self._store.path), "anchor_count": len(world_map.anchors), "size": len(data)},
            )
            return SaveResult(anchor_count=len(world_map.anchors), size=len(data))
        finally:
            self._save_in_flight = False

    def load_persisted_map(self) -> WorldMap | None:
        """Read and decode the persisted map, or return ``None`` on any failure."""

        try:
            data = self._store.read()
        except FileReadError as exc:
            logger.warning("Error retrieving world map data: %s", exc)
            self._status.set_text(StatusMessages.READ_FAILED)
            return None

        try:
            return unarchive_world_map(data)
        except DeserializeError as exc:
            logger.warning("Persisted world map is invalid: %s", exc)
            self._status.set_text(StatusMessages.INVALID_MAP)
            return None

    def load_and_resume(self) -> bool:
        """Restart the session from the persisted map, if one can be loaded.

        Returns True only when the session is now running from the saved map.
        A paused session cannot resume from a map, so nothing is loaded.
        """

        if self._state is SessionState.PAUSED:
            logger.warning("Cannot resume from a saved world map while paused")
            return False
        world_map = self.load_persisted_map()
        if world_map is None:
            return False
        self.start_session(world_map)
        return self._state is SessionState.RUNNING_RESUMED


__all__ = ["HIT_TEST_TYPES", "SaveResult", "SessionPersistenceController", "SessionState"]
