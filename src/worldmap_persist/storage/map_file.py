"""Single-file persistence for archived world maps."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from ..errors import FileReadError, FileWriteError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MapFileInfo:
    path: str
    exists: bool
    size: int | None
    modified_at: datetime | None


class MapFileStore:
    """Owns the one persisted world-map file.

    Writes go to a sibling temporary file that is fsynced and then moved over
    the target with ``os.replace``, so readers see either the old or the new
    contents, never a partial file.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def info(self) -> MapFileInfo:
        try:
            stat = self._path.stat()
        except FileNotFoundError:
            return MapFileInfo(path=str(self._path), exists=False, size=None, modified_at=None)
        return MapFileInfo(
            path=str(self._path),
            exists=True,
            size=stat.st_size,
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )

    def read(self) -> bytes:
        """Return the full file contents."""

        try:
            return self._path.read_bytes()
        except OSError as exc:
            raise FileReadError(f"Cannot read world map file {self._path}: {exc}") from exc

    def write(self, data: bytes) -> None:
        """Atomically replace the file with ``data``."""

        tmp_name: str | None = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="wb",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as exc:
            raise FileWriteError(f"Cannot write world map file {self._path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except FileNotFoundError:
                    pass

        logger.debug("World map file written", extra={"path": str(self._path), "size": len(data)})

    def clear(self) -> bool:
        """Delete the persisted file; return whether one existed."""

        try:
            self._path.unlink()
        except FileNotFoundError:
            return False
        return True


__all__ = ["MapFileInfo", "MapFileStore"]
