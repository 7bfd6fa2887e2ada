"""Value objects exchanged with the tracking subsystem."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Sequence
from uuid import uuid4

import numpy as np


def _quaternion_to_matrix(quaternion: Sequence[float]) -> np.ndarray:
    x, y, z, w = (float(value) for value in quaternion)
    norm = np.sqrt(x * x + y * y + z * z + w * w)
    if norm == 0.0:
        raise ValueError("Orientation quaternion must be non-zero")
    x, y, z, w = x / norm, y / norm, z / norm, w / norm
    return np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
            [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
            [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
        ]
    )


def _matrix_to_quaternion(rotation: np.ndarray) -> np.ndarray:
    trace = float(np.trace(rotation))
    if trace > 0.0:
        s = np.sqrt(trace + 1.0) * 2.0
        w = 0.25 * s
        x = (rotation[2, 1] - rotation[1, 2]) / s
        y = (rotation[0, 2] - rotation[2, 0]) / s
        z = (rotation[1, 0] - rotation[0, 1]) / s
    elif rotation[0, 0] > rotation[1, 1] and rotation[0, 0] > rotation[2, 2]:
        s = np.sqrt(1.0 + rotation[0, 0] - rotation[1, 1] - rotation[2, 2]) * 2.0
        w = (rotation[2, 1] - rotation[1, 2]) / s
        x = 0.25 * s
        y = (rotation[0, 1] + rotation[1, 0]) / s
        z = (rotation[0, 2] + rotation[2, 0]) / s
    elif rotation[1, 1] > rotation[2, 2]:
        s = np.sqrt(1.0 + rotation[1, 1] - rotation[0, 0] - rotation[2, 2]) * 2.0
        w = (rotation[0, 2] - rotation[2, 0]) / s
        x = (rotation[0, 1] + rotation[1, 0]) / s
        y = 0.25 * s
        z = (rotation[1, 2] + rotation[2, 1]) / s
    else:
        s = np.sqrt(1.0 + rotation[2, 2] - rotation[0, 0] - rotation[1, 1]) * 2.0
        w = (rotation[1, 0] - rotation[0, 1]) / s
        x = (rotation[0, 2] + rotation[2, 0]) / s
        y = (rotation[1, 2] + rotation[2, 1]) / s
        z = 0.25 * s
    return np.array([x, y, z, w])


def _frozen_array(values, shape: tuple[int, ...] | None = None) -> np.ndarray:
    array = np.array(values, dtype=float)
    if shape is not None and array.shape != shape:
        raise ValueError(f"Expected array of shape {shape}, got {array.shape}")
    array.setflags(write=False)
    return array


@dataclass(frozen=True, slots=True, eq=False)
class Pose:
    """Rigid transform in the session's world frame as a 4x4 homogeneous matrix."""

    matrix: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "matrix", _frozen_array(self.matrix, (4, 4)))

    def __reduce__(self):
        return (Pose, (self.matrix.tolist(),))

    @classmethod
    def identity(cls) -> "Pose":
        return cls(np.eye(4))

    @classmethod
    def from_position(
        cls,
        position: Sequence[float],
        orientation: Sequence[float] = (0.0, 0.0, 0.0, 1.0),
    ) -> "Pose":
        """Build a pose from a position and an ``[x, y, z, w]`` quaternion."""

        matrix = np.eye(4)
        matrix[:3, :3] = _quaternion_to_matrix(orientation)
        matrix[:3, 3] = np.asarray(position, dtype=float)
        return cls(matrix)

    @property
    def position(self) -> np.ndarray:
        return self.matrix[:3, 3].copy()

    @property
    def rotation(self) -> np.ndarray:
        return self.matrix[:3, :3].copy()

    @property
    def orientation(self) -> np.ndarray:
        """Orientation as an ``[x, y, z, w]`` quaternion."""

        return _matrix_to_quaternion(self.matrix[:3, :3])

    def isclose(self, other: "Pose", *, atol: float = 1e-6) -> bool:
        return bool(np.allclose(self.matrix, other.matrix, atol=atol))

    def to_dict(self) -> dict[str, list[float]]:
        return {
            "position": self.position.tolist(),
            "orientation": self.orientation.tolist(),
        }


@dataclass(frozen=True, slots=True, eq=False)
class Anchor:
    """User-placed point of interest fixed in the world frame."""

    transform: Pose
    identifier: str = field(default_factory=lambda: uuid4().hex)
    name: str | None = None

    def __reduce__(self):
        return (Anchor, (self.transform, self.identifier, self.name))

    def matches(self, other: "Anchor", *, atol: float = 1e-6) -> bool:
        """Return True when both anchors share identity and pose."""

        return self.identifier == other.identifier and self.transform.isclose(other.transform, atol=atol)

    def to_dict(self) -> dict[str, object]:
        return {"identifier": self.identifier, "name": self.name, **self.transform.to_dict()}


@dataclass(frozen=True, slots=True, eq=False)
class WorldMap:
    """Snapshot of the mapped feature points and anchors of a session.

    Instances are immutable; request a fresh one from the session for every save.
    """

    anchors: tuple[Anchor, ...]
    feature_points: np.ndarray
    center: np.ndarray
    extent: np.ndarray

    def __post_init__(self) -> None:
        points = np.array(self.feature_points, dtype=float).reshape(-1, 3)
        points.setflags(write=False)
        object.__setattr__(self, "anchors", tuple(self.anchors))
        object.__setattr__(self, "feature_points", points)
        object.__setattr__(self, "center", _frozen_array(self.center, (3,)))
        object.__setattr__(self, "extent", _frozen_array(self.extent, (3,)))
        for anchor in self.anchors:
            if not isinstance(anchor, Anchor):
                raise TypeError(f"World map anchors must be Anchor instances, got {type(anchor)!r}")

    def __reduce__(self):
        return (
            WorldMap,
            (
                self.anchors,
                self.feature_points.tolist(),
                self.center.tolist(),
                self.extent.tolist(),
            ),
        )

    @classmethod
    def capture(cls, anchors: Iterable[Anchor], feature_points: Iterable[Sequence[float]]) -> "WorldMap":
        """Build a snapshot, deriving center and extent from the feature-point bounds."""

        points = np.array(list(feature_points), dtype=float).reshape(-1, 3)
        if points.size:
            low, high = points.min(axis=0), points.max(axis=0)
            center, extent = (low + high) / 2.0, high - low
        else:
            center, extent = np.zeros(3), np.zeros(3)
        return cls(tuple(anchors), points, center, extent)

    def anchor(self, identifier: str) -> Anchor | None:
        for candidate in self.anchors:
            if candidate.identifier == identifier:
                return candidate
        return None


class HitTestType(enum.Enum):
    """Kinds of scene geometry a hit test may intersect."""

    FEATURE_POINT = "featurePoint"
    ESTIMATED_HORIZONTAL_PLANE = "estimatedHorizontalPlane"


@dataclass(frozen=True, slots=True)
class HitTestResult:
    type: HitTestType
    distance: float
    world_transform: Pose


__all__ = ["Anchor", "HitTestResult", "HitTestType", "Pose", "WorldMap"]
