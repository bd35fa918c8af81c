# ABOUTME: Declares the key-value storage port used to persist event logs and insight caches.
# ABOUTME: Ships an in-memory backend for tests and a JSON-file backend for local use.

from __future__ import annotations

import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote, unquote

from .errors import StorageError

EVENTS_KEY_PREFIX = "behavior:events:"
INSIGHTS_KEY_PREFIX = "behavior:insights:"


def events_key(user_id: str) -> str:
    return f"{EVENTS_KEY_PREFIX}{user_id}"


def insights_key(user_id: str) -> str:
    return f"{INSIGHTS_KEY_PREFIX}{user_id}"


class KeyValueStorage(ABC):
    """Minimal string key-value port; implementations raise StorageError on I/O failure."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def keys(self) -> List[str]:
        ...


class InMemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._data)


class JsonFileStorage(KeyValueStorage):
    """
    Stores each key as one UTF-8 file under ``root``.

    Keys are percent-encoded into file names. Writes land in a temporary file
    that is then renamed over the target, so readers never see a torn value.
    """

    suffix = ".json"

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{quote(key, safe='')}{self.suffix}"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".tmp-", suffix=self.suffix)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete {path}: {exc}") from exc

    def keys(self) -> List[str]:
        if not self.root.exists():
            return []
        return sorted(
            unquote(path.name[: -len(self.suffix)])
            for path in self.root.glob(f"*{self.suffix}")
            if not path.name.startswith(".tmp-")
        )
