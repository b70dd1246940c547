# src/core/store/kv.py
"""JSON-file backed key/value store.

Example:
    >>> store = KeyValueStore("users", "data/users.json")
    >>> store.load()
    >>> store.set("628123", {"warnings": 1})
    >>> store.save_if_dirty()
"""

import json
import logging
import os
from collections.abc import ItemsView, KeysView, ValuesView
from typing import Any

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Named key/value map persisted to a single JSON file.

    Mutations mark the store dirty; save_if_dirty() is what the autosave job
    calls, so unchanged stores never touch the disk.
    """

    def __init__(self, name: str, file_path: str) -> None:
        self.name = name
        self.file_path = file_path
        self._data: dict[str, Any] = {}
        self._dirty = False

    @property
    def dirty(self) -> bool:
        return self._dirty

    def load(self) -> None:
        """Load data from disk, starting empty if the file is missing or corrupt."""
        if not os.path.exists(self.file_path):
            self._data = {}
            self._dirty = False
            return
        try:
            with open(self.file_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Error loading %s store: %s", self.name, e)
            data = {}
        self._data = data if isinstance(data, dict) else {}
        self._dirty = False
        logger.debug("Loaded %s store (%d entries)", self.name, len(self._data))

    def save(self) -> bool:
        """Write the store to disk via a temp file and rename.

        Returns:
            True on success.
        """
        try:
            directory = os.path.dirname(self.file_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            tmp_path = f"{self.file_path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.file_path)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Error saving %s store: %s", self.name, e)
            return False
        self._dirty = False
        return True

    def save_if_dirty(self) -> bool:
        if not self._dirty:
            return False
        return self.save()

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._dirty = True

    def has(self, key: str) -> bool:
        return key in self._data

    def delete(self, key: str) -> bool:
        if key not in self._data:
            return False
        del self._data[key]
        self._dirty = True
        return True

    def clear(self) -> None:
        self._data.clear()
        self._dirty = True

    def keys(self) -> KeysView[str]:
        return self._data.keys()

    def values(self) -> ValuesView[Any]:
        return self._data.values()

    def items(self) -> ItemsView[str, Any]:
        return self._data.items()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data
