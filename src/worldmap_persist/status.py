"""Status surface shown to the user."""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class StatusMessages:
    FOUND_SAVED_MAP = "Found saved world map."
    START_MAPPING = "Move camera around to map your surrounding space."
    MAP_SAVED = "World map is saved."
    SNAPSHOT_FAILED = "Error getting current world map"
    SAVE_FAILED = "Error saving world map."
    SAVE_IN_PROGRESS = "Save already in progress."
    READ_FAILED = "Error retrieving world map data."
    INVALID_MAP = "Saved world map is invalid."


class StatusSink(Protocol):
    """Single human-readable text sink."""

    def set_text(self, text: str) -> None:
        ...


class LoggingStatusSink:
    """Status sink that logs each message and keeps the history."""

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level
        self.messages: list[str] = []

    @property
    def text(self) -> str | None:
        return self.messages[-1] if self.messages else None

    def set_text(self, text: str) -> None:
        self.messages.append(text)
        logger.log(self._level, "Status: %s", text)


__all__ = ["LoggingStatusSink", "StatusMessages", "StatusSink"]
