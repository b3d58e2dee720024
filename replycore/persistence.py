"""Single-slot snapshot persistence for the template collection."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

SLOT_NAME = "templates"


class PersistencePort(Protocol):
    def load(self) -> Optional[bytes]:
        ...

    def save(self, data: bytes) -> None:
        ...


class FilePersistence:
    """Stores the snapshot as `<directory>/<slot>.json`.

    Writes go to a temp file in the same directory and are renamed over the
    target so a crash never leaves a half-written snapshot behind.
    """

    def __init__(self, directory: Path, slot: str = SLOT_NAME) -> None:
        self.directory = Path(directory)
        self.path = self.directory / f"{slot}.json"

    def load(self) -> Optional[bytes]:
        if not self.path.exists():
            return None
        return self.path.read_bytes()

    def save(self, data: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.stem}_", suffix=".tmp", dir=self.directory)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise
