"""Configuration management for worldmap-persist."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import WorldMapLocationError

_PLANE_DETECTION_MODES = {"none", "horizontal", "vertical", "both"}


class WorldMapSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    world_map_path: Path = Field(
        default=Path("./storage/worldMap"), validation_alias="WORLDMAP_PATH"
    )
    log_level: str = Field(default="INFO", validation_alias="WORLDMAP_LOG_LEVEL")
    plane_detection: str = Field(default="horizontal", validation_alias="WORLDMAP_PLANE_DETECTION")
    show_feature_points: bool = Field(default=True, validation_alias="WORLDMAP_SHOW_FEATURE_POINTS")
    scene_path: Path | None = Field(default=None, validation_alias="WORLDMAP_SCENE_PATH")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "WORLDMAP_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("plane_detection")
    @classmethod
    def _normalize_plane_detection(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in _PLANE_DETECTION_MODES:
            raise ValueError(
                "WORLDMAP_PLANE_DETECTION must be one of none, horizontal, vertical, both"
            )
        return normalized

    @field_validator("scene_path", mode="before")
    @classmethod
    def _empty_scene_path(cls, value):
        if value is None or value == "":
            return None
        return value


def resolve_world_map_path(path: Path) -> Path:
    """Resolve the persisted map location, creating its directory.

    Failure here means the deployment is broken; callers treat it as fatal.
    """

    candidate = Path(path).expanduser().resolve()
    if candidate.exists() and candidate.is_dir():
        raise WorldMapLocationError(f"World map path {candidate} is a directory")
    try:
        candidate.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise WorldMapLocationError(
            f"Cannot create world map directory {candidate.parent}: {exc}"
        ) from exc
    return candidate


@lru_cache(maxsize=1)
def get_settings() -> WorldMapSettings:
    """Return cached settings instance."""

    settings = WorldMapSettings()
    settings.world_map_path = resolve_world_map_path(settings.world_map_path)
    if settings.scene_path is not None:
        settings.scene_path = settings.scene_path.expanduser().resolve()
    return settings


__all__ = ["WorldMapSettings", "get_settings", "resolve_world_map_path"]
