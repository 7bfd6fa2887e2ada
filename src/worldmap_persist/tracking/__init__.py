"""Tracking subsystem interfaces, value types and the simulated session."""

from .archive import archive_world_map, unarchive_world_map
from .models import Anchor, HitTestResult, HitTestType, Pose, WorldMap
from .protocols import PlaneDetection, RunOptions, TrackingConfiguration, TrackingSession
from .scene import SceneDescription, SceneLoadError, SceneLoader, default_scene
from .simulated import SimulatedTrackingSession, WorldMapUnavailableError

__all__ = [
    "Anchor",
    "HitTestResult",
    "HitTestType",
    "PlaneDetection",
    "Pose",
    "RunOptions",
    "SceneDescription",
    "SceneLoadError",
    "SceneLoader",
    "SimulatedTrackingSession",
    "TrackingConfiguration",
    "TrackingSession",
    "WorldMap",
    "WorldMapUnavailableError",
    "archive_world_map",
    "default_scene",
    "unarchive_world_map",
]
