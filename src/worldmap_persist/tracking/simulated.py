"""In-process stand-in for a device tracking session."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .models import Anchor, HitTestResult, HitTestType, Pose, WorldMap
from .protocols import RunOptions, TrackingConfiguration, WorldMapCompletion
from .scene import SceneDescription, default_scene

logger = logging.getLogger(__name__)

_WORLD_UP = np.array([0.0, 1.0, 0.0])


class WorldMapUnavailableError(RuntimeError):
    """Raised by the simulated session when no world map can be produced."""


@dataclass(slots=True)
class RunRecord:
    configuration: TrackingConfiguration
    options: RunOptions


def _normalize(vector: np.ndarray) -> np.ndarray:
    norm = float(np.linalg.norm(vector))
    if norm == 0.0:
        raise ValueError("Cannot normalize a zero-length vector")
    return vector / norm


def look_at(position: Sequence[float], target: Sequence[float]) -> Pose:
    """Camera pose at ``position`` whose -Z axis faces ``target``."""

    eye = np.asarray(position, dtype=float)
    forward = _normalize(np.asarray(target, dtype=float) - eye)
    z_axis = -forward
    up = _WORLD_UP
    if abs(float(np.dot(up, z_axis))) > 0.999:
        up = np.array([0.0, 0.0, -1.0])
    x_axis = _normalize(np.cross(up, z_axis))
    y_axis = np.cross(z_axis, x_axis)

    matrix = np.eye(4)
    matrix[:3, 0] = x_axis
    matrix[:3, 1] = y_axis
    matrix[:3, 2] = z_axis
    matrix[:3, 3] = eye
    return Pose(matrix)


class SimulatedTrackingSession:
    """Tracking session backed by a static scene description.

    Hit tests cast rays from a fixed camera into the scene's planes and feature
    points. World-map requests complete on a background thread, like the device
    API they stand in for.
    """

    def __init__(
        self,
        scene: SceneDescription | None = None,
        *,
        snapshot_latency: float = 0.0,
    ) -> None:
        self._scene = scene or default_scene()
        self._camera = look_at(self._scene.camera.position, self._scene.camera.target)
        self._scene_points = np.array(self._scene.feature_points, dtype=float).reshape(-1, 3)
        self._lock = threading.Lock()
        self._running = False
        self._configuration: TrackingConfiguration | None = None
        self._anchors: list[Anchor] = []
        self._mapped_points = np.empty((0, 3))
        self._pending_errors: list[Exception] = []
        self.snapshot_latency = snapshot_latency
        self.runs: list[RunRecord] = []
        self.pause_count = 0

    @property
    def scene(self) -> SceneDescription:
        return self._scene

    @property
    def camera(self) -> Pose:
        return self._camera

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def configuration(self) -> TrackingConfiguration | None:
        return self._configuration

    @property
    def anchors(self) -> tuple[Anchor, ...]:
        with self._lock:
            return tuple(self._anchors)

    def inject_snapshot_error(self, error: Exception) -> None:
        """Make the next world-map request fail with ``error``."""

        with self._lock:
            self._pending_errors.append(error)

    def run(self, configuration: TrackingConfiguration, options: RunOptions = RunOptions.NONE) -> None:
        with self._lock:
            if RunOptions.RESET_TRACKING in options:
                self._mapped_points = np.empty((0, 3))
            if RunOptions.REMOVE_EXISTING_ANCHORS in options:
                self._anchors = []

            points = [self._mapped_points, self._scene_points]
            initial = configuration.initial_world_map
            if initial is not None:
                existing = {anchor.identifier for anchor in self._anchors}
                self._anchors.extend(
                    anchor for anchor in initial.anchors if anchor.identifier not in existing
                )
                points.append(initial.feature_points)
            merged = np.vstack(points)
            self._mapped_points = np.unique(merged, axis=0) if len(merged) else merged

            self._configuration = configuration
            self._running = True
            self.runs.append(RunRecord(configuration=configuration, options=options))

        logger.debug(
            "Simulated session running",
            extra={
                "resumed": initial is not None,
                "anchors": len(self._anchors),
                "feature_points": len(self._mapped_points),
            },
        )

    def pause(self) -> None:
        with self._lock:
            self._running = False
            self.pause_count += 1

    def add(self, anchor: Anchor) -> None:
        with self._lock:
            self._anchors.append(anchor)

    def _ray(self, point: tuple[float, float]) -> tuple[np.ndarray, np.ndarray]:
        camera = self._scene.camera
        width, height = camera.viewport
        tan_h = np.tan(np.radians(camera.field_of_view) / 2.0)
        tan_v = tan_h * height / width
        x_ndc = 2.0 * float(point[0]) / width - 1.0
        y_ndc = 1.0 - 2.0 * float(point[1]) / height
        direction = self._camera.rotation @ np.array([x_ndc * tan_h, y_ndc * tan_v, -1.0])
        return self._camera.position, _normalize(direction)

    def hit_test(
        self, point: tuple[float, float], types: Sequence[HitTestType]
    ) -> list[HitTestResult]:
        """Intersect the ray through ``point`` with the scene, nearest result first."""

        if not self._running:
            return []

        origin, direction = self._ray(point)
        results: list[HitTestResult] = []

        if HitTestType.FEATURE_POINT in types:
            with self._lock:
                points = self._mapped_points.copy()
            tolerance = self._scene.feature_point_tolerance
            for feature in points:
                offset = feature - origin
                along = float(np.dot(offset, direction))
                if along <= 0.0:
                    continue
                miss = float(np.linalg.norm(offset - along * direction))
                if miss <= tolerance:
                    results.append(
                        HitTestResult(
                            type=HitTestType.FEATURE_POINT,
                            distance=along,
                            world_transform=Pose.from_position(feature),
                        )
                    )

        if HitTestType.ESTIMATED_HORIZONTAL_PLANE in types and abs(direction[1]) > 1e-9:
            for plane in self._scene.planes:
                cx, cy, cz = plane.center
                distance = (cy - origin[1]) / direction[1]
                if distance <= 0.0:
                    continue
                hit = origin + distance * direction
                if abs(hit[0] - cx) <= plane.extent[0] / 2.0 and abs(hit[2] - cz) <= plane.extent[1] / 2.0:
                    results.append(
                        HitTestResult(
                            type=HitTestType.ESTIMATED_HORIZONTAL_PLANE,
                            distance=float(distance),
                            world_transform=Pose.from_position(hit),
                        )
                    )

        results.sort(key=lambda result: result.distance)
        return results

    def _capture(self) -> WorldMap:
        with self._lock:
            if self._pending_errors:
                raise self._pending_errors.pop(0)
            if not self._running:
                raise WorldMapUnavailableError("Tracking session is not running")
            if not len(self._mapped_points) and not self._anchors:
                raise WorldMapUnavailableError("Not enough features mapped to produce a world map")
            return WorldMap.capture(self._anchors, self._mapped_points)

    def _deliver_world_map(self, completion: WorldMapCompletion) -> None:
        if self.snapshot_latency:
            time.sleep(self.snapshot_latency)
        try:
            world_map = self._capture()
        except Exception as exc:
            completion(None, exc)
            return
        completion(world_map, None)

    def get_current_world_map(self, completion: WorldMapCompletion) -> None:
        thread = threading.Thread(
            target=self._deliver_world_map,
            args=(completion,),
            name="world-map-snapshot",
            daemon=True,
        )
        thread.start()


__all__ = ["RunRecord", "SimulatedTrackingSession", "WorldMapUnavailableError", "look_at"]
