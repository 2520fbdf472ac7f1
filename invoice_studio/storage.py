# invoice_studio/storage.py
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Reading from or writing to the local cache failed."""


class KeyValueStore(ABC):
    """Port for the local cache that keeps data between sessions."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """
        Return the bytes stored under ``key`` or None when nothing is there.
        Raises PersistenceError if the backend cannot be read.
        """
        pass

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """
        Store ``value`` under ``key``, overwriting any prior value.
        Raises PersistenceError if the write does not go through.
        """
        pass


class InMemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)


class JsonFileStore(KeyValueStore):
    """
    Keeps every entry in one JSON object on disk, values stored as UTF-8
    text. Mirrors what browser local storage gives a page: a small flat
    string map that survives restarts.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PersistenceError(f"cannot read cache file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"cache file {self.path} does not hold an object")
        return data

    def get(self, key: str) -> Optional[bytes]:
        value = self._read_all().get(key)
        if value is None:
            return None
        return str(value).encode("utf-8")

    def set(self, key: str, value: bytes) -> None:
        try:
            data = self._read_all()
        except PersistenceError:
            logger.warning("Cache file %s unreadable, starting a fresh one", self.path)
            data = {}

        try:
            data[key] = value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PersistenceError(f"value for {key!r} is not UTF-8 text") from e

        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            raise PersistenceError(f"cannot write cache file {self.path}: {e}") from e
