"""Scene descriptions for the simulated tracking subsystem."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator


class SceneLoadError(RuntimeError):
    """Raised when a scene file cannot be parsed."""


def _vector(value: Any, size: int, label: str) -> list[float]:
    if not isinstance(value, (list, tuple)) or len(value) != size:
        raise ValueError(f"{label} must be a sequence of {size} numbers")
    return [float(item) for item in value]


class CameraModel(BaseModel):
    """Fixed viewpoint used to turn screen locations into rays."""

    position: list[float] = Field(default_factory=lambda: [0.0, 1.5, 0.0])
    target: list[float] = Field(default_factory=lambda: [0.0, 0.0, -2.0])
    viewport: list[float] = Field(
        default_factory=lambda: [390.0, 844.0],
        description="Screen width and height in points.",
    )
    field_of_view: float = Field(default=60.0, description="Horizontal field of view in degrees.")

    @field_validator("position", "target", mode="before")
    @classmethod
    def _point(cls, value: Any) -> list[float]:
        return _vector(value, 3, "Camera position and target")

    @field_validator("viewport", mode="before")
    @classmethod
    def _viewport(cls, value: Any) -> list[float]:
        width, height = _vector(value, 2, "Camera viewport")
        if width <= 0 or height <= 0:
            raise ValueError("Camera viewport must be positive")
        return [width, height]

    @field_validator("field_of_view")
    @classmethod
    def _fov(cls, value: float) -> float:
        if not 0.0 < value < 180.0:
            raise ValueError("Camera field_of_view must be between 0 and 180 degrees")
        return value


class PlaneModel(BaseModel):
    """Horizontal surface the subsystem can estimate."""

    id: str = Field(..., description="Stable identifier for the plane.")
    center: list[float] = Field(..., description="Plane center; y is the plane height.")
    extent: list[float] = Field(..., description="Size along x and z.")

    @field_validator("id")
    @classmethod
    def _normalize_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Plane id must not be empty")
        return normalized

    @field_validator("center", mode="before")
    @classmethod
    def _center(cls, value: Any) -> list[float]:
        return _vector(value, 3, "Plane center")

    @field_validator("extent", mode="before")
    @classmethod
    def _extent(cls, value: Any) -> list[float]:
        extent = _vector(value, 2, "Plane extent")
        if min(extent) <= 0:
            raise ValueError("Plane extent must be positive")
        return extent


class SceneDescription(BaseModel):
    """Geometry visible to the simulated session."""

    camera: CameraModel = Field(default_factory=CameraModel)
    planes: list[PlaneModel] = Field(default_factory=list)
    feature_points: list[list[float]] = Field(default_factory=list)
    feature_point_tolerance: float = Field(
        default=0.05,
        description="Maximum ray-to-point distance in meters for a feature point hit.",
    )

    @field_validator("planes", "feature_points", mode="before")
    @classmethod
    def _ensure_list(cls, value: Any):  # type: ignore[override]
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return list(value)
        raise TypeError("Planes and feature_points must be sequences")

    @field_validator("feature_points")
    @classmethod
    def _points(cls, value: list[list[float]]) -> list[list[float]]:
        return [_vector(point, 3, "Feature point") for point in value]

    @field_validator("feature_point_tolerance")
    @classmethod
    def _tolerance(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("feature_point_tolerance must be positive")
        return value


def default_scene() -> SceneDescription:
    """A floor and a table top in front of the camera, with scattered feature points."""

    return SceneDescription(
        planes=[
            PlaneModel(id="floor", center=[0.0, 0.0, -2.0], extent=[4.0, 4.0]),
            PlaneModel(id="table", center=[0.6, 0.75, -1.5], extent=[0.8, 0.6]),
        ],
        feature_points=[
            [-0.4, 0.9, -1.8],
            [0.2, 1.1, -2.5],
            [0.9, 0.4, -1.2],
            [-1.0, 0.2, -2.2],
        ],
    )


class SceneLoader:
    """Loads a scene description from a YAML file on disk."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = Path(path) if path is not None else None

    @property
    def path(self) -> Path | None:
        return self._path

    def load(self) -> SceneDescription:
        """Return the scene at ``path``, or the built-in scene when no path is set."""

        if self._path is None:
            return default_scene()

        try:
            document = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise SceneLoadError(f"Failed to read scene file {self._path}: {exc}") from exc
        except yaml.YAMLError as exc:  # pragma: no cover - library type
            raise SceneLoadError(f"Failed to parse YAML in {self._path}: {exc}") from exc

        if document is None:
            return SceneDescription()

        try:
            return SceneDescription.model_validate(document)
        except ValidationError as exc:
            raise SceneLoadError(f"Scene validation error in {self._path}: {exc}") from exc


__all__ = [
    "CameraModel",
    "PlaneModel",
    "SceneDescription",
    "SceneLoadError",
    "SceneLoader",
    "default_scene",
]
