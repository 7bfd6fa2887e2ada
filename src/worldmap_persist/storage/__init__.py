"""Storage abstractions for persisted world maps."""

from .map_file import MapFileInfo, MapFileStore

__all__ = ["MapFileInfo", "MapFileStore"]
