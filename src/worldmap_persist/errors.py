"""Error types raised while persisting and restoring world maps."""

from __future__ import annotations


class PersistenceError(RuntimeError):
    """Base class for recoverable save/load failures."""


class FileReadError(PersistenceError):
    """Raised when the persisted map file is missing or unreadable."""


class DeserializeError(PersistenceError):
    """Raised when persisted bytes do not decode into a world map."""


class SerializeError(PersistenceError):
    """Raised when a world map cannot be encoded."""


class FileWriteError(PersistenceError):
    """Raised when encoded map data cannot be written to disk."""


class SubsystemError(PersistenceError):
    """Raised when the tracking session fails to produce a world map."""


class SaveInProgressError(PersistenceError):
    """Raised when a save is requested while another one is still pending."""


class WorldMapLocationError(RuntimeError):
    """Raised when the persisted map location cannot be resolved at startup."""


__all__ = [
    "PersistenceError",
    "FileReadError",
    "DeserializeError",
    "SerializeError",
    "FileWriteError",
    "SubsystemError",
    "SaveInProgressError",
    "WorldMapLocationError",
]
