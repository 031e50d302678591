"""
Local Cache File

A single JSON document mirroring the last known state of the four
collections. It is read once when the Entity Store starts, so the UI has
something to show before the first fetch lands, and overwritten in full
after every sync.
"""

import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from expense_app.models.snapshot import CacheSnapshot


class CacheError(Exception):
    """The cache file could not be read or written."""
    pass


class LocalCache:
    """Full-document JSON cache of a CacheSnapshot."""

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> CacheSnapshot:
        """
        Read and decode the whole cache file.

        Raises:
            CacheError: If the file is missing, unreadable or malformed
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise CacheError(f"Cannot read cache file {self._path}: {e}") from e

        try:
            return CacheSnapshot.model_validate_json(raw)
        except ValidationError as e:
            raise CacheError(f"Malformed cache file {self._path}: {e}") from e

    def save(self, snapshot: CacheSnapshot) -> None:
        """
        Overwrite the cache file with the given snapshot.

        Writes to a temporary file first and swaps it in, so a crash
        never leaves a half-written cache behind.
        """
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", delete=False, dir=self._path.parent, encoding="utf-8"
            ) as tmp:
                tmp.write(snapshot.model_dump_json(indent=2))
                tmp.flush()
            os.replace(tmp.name, self._path)
        except OSError as e:
            raise CacheError(f"Cannot write cache file {self._path}: {e}") from e

    def clear(self) -> None:
        """Remove the cache file if it exists."""
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            raise CacheError(f"Cannot remove cache file {self._path}: {e}") from e
