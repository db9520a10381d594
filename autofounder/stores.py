"""
Durable key-value stores for published decks.
No locking: last writer for a key wins. Deck keys derive from unique ids, so
unrelated decks never collide. Any backend may refuse a write (quota, blocked).
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

from autofounder.config import Settings
from autofounder.errors import StoreError, StoreQuotaError, StoreUnavailableError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Process-local store with an optional byte quota (like browser storage)."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._data: Dict[str, str] = {}

    def _size_with(self, key: str, value: str) -> int:
        total = sum(len(k) + len(v) for k, v in self._data.items() if k != key)
        return total + len(key) + len(value)

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None and self._size_with(key, value) > self.quota_bytes:
            raise StoreQuotaError(f"Writing {key} would exceed the {self.quota_bytes}-byte quota")
        self._data[key] = value


class FileStore:
    """One file per key under a directory; shared by every process on the host."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / (re.sub(r"[^A-Za-z0-9_\-]", "_", key) + ".json")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StoreError(f"Could not read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(self.directory), suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(value)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreError(f"Could not write {path}: {e}") from e


class UnavailableStore:
    """Storage is blocked (private browsing, disabled by config): every call fails."""

    def get(self, key: str) -> Optional[str]:
        raise StoreUnavailableError("storage is unavailable")

    def set(self, key: str, value: str) -> None:
        raise StoreUnavailableError("storage is unavailable")


def build_store(settings: Settings) -> KeyValueStore:
    if settings.store_backend == "file":
        logger.info("Deck store: files under %s", settings.store_dir)
        return FileStore(settings.store_dir)
    if settings.store_backend == "none":
        logger.info("Deck store disabled; decks travel inline in the viewer URL.")
        return UnavailableStore()
    return MemoryStore(settings.store_quota_bytes)
