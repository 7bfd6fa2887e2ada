from __future__ import annotations

import threading

import numpy as np
import pytest

from worldmap_persist.tracking import (
    Anchor,
    HitTestType,
    Pose,
    RunOptions,
    SceneDescription,
    SimulatedTrackingSession,
    TrackingConfiguration,
    WorldMap,
    WorldMapUnavailableError,
)
from worldmap_persist.tracking.simulated import look_at

ALL_TYPES = (HitTestType.FEATURE_POINT, HitTestType.ESTIMATED_HORIZONTAL_PLANE)
RESET = RunOptions.RESET_TRACKING | RunOptions.REMOVE_EXISTING_ANCHORS


def _scene(feature_points=None) -> SceneDescription:
    return SceneDescription.model_validate(
        {
            "camera": {
                "position": [0, 1.5, 0],
                "target": [0, 0, -2],
                "viewport": [400, 800],
                "field_of_view": 60,
            },
            "planes": [{"id": "floor", "center": [0, 0, -2], "extent": [4, 4]}],
            "feature_points": feature_points or [],
        }
    )


def _request(session: SimulatedTrackingSession):
    done = threading.Event()
    outcome: dict[str, object] = {}

    def _completion(world_map, error):
        outcome.update(world_map=world_map, error=error, thread=threading.current_thread().name)
        done.set()

    session.get_current_world_map(_completion)
    assert done.wait(timeout=5)
    return outcome


def test_look_at_faces_target() -> None:
    pose = look_at([0, 1.5, 0], [0, 0, -2])

    forward = -pose.rotation[:, 2]
    np.testing.assert_allclose(forward, [0.0, -0.6, -0.8], atol=1e-9)
    np.testing.assert_allclose(pose.position, [0.0, 1.5, 0.0])


def test_look_at_straight_down() -> None:
    pose = look_at([0, 2, 0], [0, 0, 0])

    np.testing.assert_allclose(-pose.rotation[:, 2], [0.0, -1.0, 0.0], atol=1e-9)


def test_camera_follows_scene_viewpoint() -> None:
    session = SimulatedTrackingSession(_scene())

    np.testing.assert_allclose(session.camera.position, [0.0, 1.5, 0.0])
    np.testing.assert_allclose(-session.camera.rotation[:, 2], [0.0, -0.6, -0.8], atol=1e-9)


def test_center_tap_hits_floor_at_target() -> None:
    session = SimulatedTrackingSession(_scene())
    session.run(TrackingConfiguration(), RESET)

    results = session.hit_test((200, 400), ALL_TYPES)

    assert results[0].type is HitTestType.ESTIMATED_HORIZONTAL_PLANE
    assert results[0].distance == pytest.approx(2.5)
    np.testing.assert_allclose(results[0].world_transform.position, [0.0, 0.0, -2.0], atol=1e-9)


def test_nearest_feature_point_wins() -> None:
    session = SimulatedTrackingSession(_scene([[0.0, 0.75, -1.0]]))
    session.run(TrackingConfiguration(), RESET)

    results = session.hit_test((200, 400), ALL_TYPES)

    assert [result.type for result in results] == [
        HitTestType.FEATURE_POINT,
        HitTestType.ESTIMATED_HORIZONTAL_PLANE,
    ]
    np.testing.assert_allclose(results[0].world_transform.position, [0.0, 0.75, -1.0])


def test_hit_test_respects_requested_types() -> None:
    session = SimulatedTrackingSession(_scene([[0.0, 0.75, -1.0]]))
    session.run(TrackingConfiguration(), RESET)

    results = session.hit_test((200, 400), [HitTestType.ESTIMATED_HORIZONTAL_PLANE])

    assert [result.type for result in results] == [HitTestType.ESTIMATED_HORIZONTAL_PLANE]


def test_tap_above_horizon_misses() -> None:
    session = SimulatedTrackingSession(_scene([[0.0, 0.75, -1.0]]))
    session.run(TrackingConfiguration(), RESET)

    assert session.hit_test((200, 0), ALL_TYPES) == []


def test_hit_test_requires_running_session() -> None:
    session = SimulatedTrackingSession(_scene())

    assert session.hit_test((200, 400), ALL_TYPES) == []


def test_run_with_initial_map_restores_anchors() -> None:
    anchor = Anchor(transform=Pose.from_position([0.3, 0.0, -1.0]))
    world_map = WorldMap.capture([anchor], [[5.0, 0.0, -5.0]])
    session = SimulatedTrackingSession(_scene())
    session.run(TrackingConfiguration(), RESET)
    session.add(Anchor(transform=Pose.identity()))

    configuration = TrackingConfiguration(initial_world_map=world_map)
    session.run(configuration, RESET)

    assert session.configuration is configuration
    assert [item.identifier for item in session.anchors] == [anchor.identifier]


def test_world_map_delivered_on_worker_thread() -> None:
    session = SimulatedTrackingSession(_scene([[0.0, 0.75, -1.0]]))
    session.run(TrackingConfiguration(), RESET)
    session.add(Anchor(transform=Pose.from_position([0.0, 0.0, -2.0])))

    outcome = _request(session)

    assert outcome["error"] is None
    assert outcome["thread"] == "world-map-snapshot"
    world_map = outcome["world_map"]
    assert isinstance(world_map, WorldMap)
    assert len(world_map.anchors) == 1
    assert len(world_map.feature_points) == 1


def test_world_map_unavailable_when_paused() -> None:
    session = SimulatedTrackingSession(_scene([[0.0, 0.75, -1.0]]))
    session.run(TrackingConfiguration(), RESET)
    session.pause()

    outcome = _request(session)

    assert outcome["world_map"] is None
    assert isinstance(outcome["error"], WorldMapUnavailableError)


def test_world_map_unavailable_without_features() -> None:
    session = SimulatedTrackingSession(_scene())
    session.run(TrackingConfiguration(), RESET)

    outcome = _request(session)

    assert isinstance(outcome["error"], WorldMapUnavailableError)


def test_injected_error_fails_next_request_only() -> None:
    session = SimulatedTrackingSession(_scene([[0.0, 0.75, -1.0]]))
    session.run(TrackingConfiguration(), RESET)
    session.inject_snapshot_error(RuntimeError("tracking limited"))

    assert isinstance(_request(session)["error"], RuntimeError)
    assert _request(session)["error"] is None
