"""Binary archiving of world maps.

Maps are stored as a pickle stream and decoded with an allow-listed unpickler,
so only the tracking value types can be reconstructed from disk.
"""

from __future__ import annotations

import io
import pickle

from ..errors import DeserializeError, SerializeError
from .models import Anchor, Pose, WorldMap

ARCHIVE_PROTOCOL = 4

_ALLOWED_CLASSES = {
    (cls.__module__, cls.__qualname__): cls for cls in (Pose, Anchor, WorldMap)
}


class _SecureUnpickler(pickle.Unpickler):
    def find_class(self, module: str, name: str):
        try:
            return _ALLOWED_CLASSES[(module, name)]
        except KeyError:
            raise pickle.UnpicklingError(f"Refusing to load {module}.{name} from a world map archive")


def archive_world_map(world_map: WorldMap) -> bytes:
    """Encode a world map into a single byte buffer."""

    if not isinstance(world_map, WorldMap):
        raise SerializeError(f"Expected WorldMap, got {type(world_map).__name__}")
    try:
        return pickle.dumps(world_map, protocol=ARCHIVE_PROTOCOL)
    except (pickle.PicklingError, TypeError, AttributeError, RecursionError) as exc:
        raise SerializeError(f"Failed to archive world map: {exc}") from exc


def unarchive_world_map(data: bytes) -> WorldMap:
    """Decode bytes produced by :func:`archive_world_map`."""

    if not data:
        raise DeserializeError("World map archive is empty")
    try:
        obj = _SecureUnpickler(io.BytesIO(data)).load()
    except Exception as exc:
        raise DeserializeError(f"Failed to unarchive world map: {exc}") from exc
    if not isinstance(obj, WorldMap):
        raise DeserializeError(f"Archive holds {type(obj).__name__}, expected WorldMap")
    return obj


__all__ = ["ARCHIVE_PROTOCOL", "archive_world_map", "unarchive_world_map"]
