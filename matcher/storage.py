"""Named-blob storage backends for persisted player data."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

logger = logging.getLogger(__name__)


class BlobStorage(Protocol):
    def read(self, name: str) -> Optional[bytes]: ...

    def write(self, name: str, data: bytes) -> None: ...


class MemoryBlobStorage:
    """Keeps blobs in a dict; handy for tests and throwaway sessions."""

    def __init__(self, blobs: Optional[Dict[str, bytes]] = None) -> None:
        self.blobs: Dict[str, bytes] = dict(blobs or {})

    def read(self, name: str) -> Optional[bytes]:
        return self.blobs.get(name)

    def write(self, name: str, data: bytes) -> None:
        self.blobs[name] = bytes(data)


class FileBlobStorage:
    """Stores each blob as a file inside ``directory``."""

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)

    def path_for(self, name: str) -> Path:
        if not name or Path(name).name != name:
            raise ValueError(f"Blob name must be a plain file name, got {name!r}.")
        return self.directory / name

    def read(self, name: str) -> Optional[bytes]:
        path = self.path_for(name)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def write(self, name: str, data: bytes) -> None:
        path = self.path_for(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        try:
            tmp.write_bytes(data)
            tmp.replace(path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
        logger.debug("Wrote %d bytes to %s", len(data), path)
