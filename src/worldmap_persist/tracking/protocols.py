"""Capability interfaces for the external AR tracking subsystem."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

from .models import Anchor, HitTestResult, HitTestType, WorldMap


class PlaneDetection(enum.Flag):
    NONE = 0
    HORIZONTAL = enum.auto()
    VERTICAL = enum.auto()

    @classmethod
    def from_setting(cls, value: str) -> "PlaneDetection":
        """Translate the ``WORLDMAP_PLANE_DETECTION`` setting into flags."""

        mapping = {
            "none": cls.NONE,
            "horizontal": cls.HORIZONTAL,
            "vertical": cls.VERTICAL,
            "both": cls.HORIZONTAL | cls.VERTICAL,
        }
        try:
            return mapping[value.strip().lower()]
        except KeyError as exc:
            raise ValueError(f"Unknown plane detection mode '{value}'") from exc


class RunOptions(enum.Flag):
    NONE = 0
    RESET_TRACKING = enum.auto()
    REMOVE_EXISTING_ANCHORS = enum.auto()


@dataclass(slots=True)
class TrackingConfiguration:
    """World-tracking configuration handed to ``TrackingSession.run``."""

    plane_detection: PlaneDetection = PlaneDetection.HORIZONTAL
    initial_world_map: WorldMap | None = None
    show_feature_points: bool = True


WorldMapCompletion = Callable[[WorldMap | None, Exception | None], None]


class TrackingSession(Protocol):
    """Protocol for the minimal tracking-session API used by the controller."""

    @property
    def anchors(self) -> tuple[Anchor, ...]:
        ...

    def run(self, configuration: TrackingConfiguration, options: RunOptions = RunOptions.NONE) -> None:
        ...

    def pause(self) -> None:
        ...

    def add(self, anchor: Anchor) -> None:
        ...

    def hit_test(
        self, point: tuple[float, float], types: Sequence[HitTestType]
    ) -> list[HitTestResult]:
        ...

    def get_current_world_map(self, completion: WorldMapCompletion) -> None:
        """Request a snapshot; ``completion`` fires exactly once, possibly on another thread."""
        ...


__all__ = [
    "PlaneDetection",
    "RunOptions",
    "TrackingConfiguration",
    "TrackingSession",
    "WorldMapCompletion",
]
