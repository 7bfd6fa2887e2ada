from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from worldmap_persist.config import WorldMapSettings, get_settings, resolve_world_map_path
from worldmap_persist.errors import WorldMapLocationError
from worldmap_persist.tracking import PlaneDetection


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    for name in (
        "WORLDMAP_PATH",
        "WORLDMAP_LOG_LEVEL",
        "WORLDMAP_PLANE_DETECTION",
        "WORLDMAP_SHOW_FEATURE_POINTS",
        "WORLDMAP_SCENE_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("WORLDMAP_PATH", str(tmp_path / "maps" / "worldMap"))
    monkeypatch.setenv("WORLDMAP_LOG_LEVEL", " debug ")
    monkeypatch.setenv("WORLDMAP_PLANE_DETECTION", "Both")
    monkeypatch.setenv("WORLDMAP_SHOW_FEATURE_POINTS", "false")

    settings = get_settings()

    assert settings.world_map_path == (tmp_path / "maps" / "worldMap").resolve()
    assert settings.world_map_path.parent.is_dir()
    assert settings.log_level == "DEBUG"
    assert settings.plane_detection == "both"
    assert settings.show_feature_points is False
    assert settings.scene_path is None
    assert PlaneDetection.from_setting(settings.plane_detection) == (
        PlaneDetection.HORIZONTAL | PlaneDetection.VERTICAL
    )


def test_default_path_is_relative_storage(tmp_path: Path) -> None:
    settings = get_settings()

    assert settings.world_map_path == (tmp_path / "storage" / "worldMap").resolve()
    assert settings.plane_detection == "horizontal"


def test_invalid_log_level_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORLDMAP_LOG_LEVEL", "chatty")

    with pytest.raises(ValidationError):
        WorldMapSettings()


def test_invalid_plane_detection_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORLDMAP_PLANE_DETECTION", "diagonal")

    with pytest.raises(ValidationError):
        WorldMapSettings()


def test_directory_location_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(WorldMapLocationError):
        resolve_world_map_path(tmp_path)


def test_unwritable_parent_is_fatal(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(WorldMapLocationError):
        resolve_world_map_path(blocker / "worldMap")
