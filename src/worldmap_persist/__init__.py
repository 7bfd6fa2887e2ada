"""Save and restore AR world-map state across tracking sessions."""

__version__ = "0.1.0"

from .controller import SaveResult, SessionPersistenceController, SessionState  # noqa: E402
from .errors import (  # noqa: E402
    DeserializeError,
    FileReadError,
    FileWriteError,
    PersistenceError,
    SaveInProgressError,
    SerializeError,
    SubsystemError,
    WorldMapLocationError,
)

__all__ = [
    "__version__",
    "DeserializeError",
    "FileReadError",
    "FileWriteError",
    "PersistenceError",
    "SaveInProgressError",
    "SaveResult",
    "SerializeError",
    "SessionPersistenceController",
    "SessionState",
    "SubsystemError",
    "WorldMapLocationError",
]
