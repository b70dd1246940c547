# src/core/store/messages.py
"""Bounded cache of recent inbound messages, persisted as JSON."""

import json
import logging
import os
from collections import OrderedDict
from typing import Any

from src.core.messaging.content import message_key

logger = logging.getLogger(__name__)


class MessageStore:
    """Recent inbound messages keyed by "<remoteJid>_<id>".

    Oldest entries are evicted once the store holds more than limit messages.
    """

    def __init__(self, session_path: str, limit: int = 1000) -> None:
        self.file_path = os.path.join(session_path, "store", "messages.json")
        self.limit = limit
        self._messages: OrderedDict[str, dict[str, Any]] = OrderedDict()
        self._dirty = False

    def add(self, event: dict[str, Any]) -> str | None:
        """Store a message event.

        Returns:
            The store key, or None if the event has no usable key.
        """
        key = message_key(event)
        if key is None:
            return None
        self._messages.pop(key, None)
        self._messages[key] = event
        while len(self._messages) > self.limit:
            self._messages.popitem(last=False)
        self._dirty = True
        return key

    def get(self, key: str) -> dict[str, Any] | None:
        return self._messages.get(key)

    def load(self) -> int:
        """Load messages from disk. A missing or corrupt file loads nothing."""
        if not os.path.exists(self.file_path):
            return 0
        try:
            with open(self.file_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Error loading message store: %s", e)
            return 0
        if not isinstance(data, dict):
            logger.error("Ignoring message store with unexpected shape")
            return 0

        self._messages = OrderedDict(
            (key, value) for key, value in data.items() if isinstance(value, dict)
        )
        while len(self._messages) > self.limit:
            self._messages.popitem(last=False)
        self._dirty = False
        logger.info("Loaded %d messages from store", len(self._messages))
        return len(self._messages)

    def save(self) -> bool:
        """Write all messages to disk atomically."""
        try:
            os.makedirs(os.path.dirname(self.file_path), exist_ok=True)
            tmp_path = f"{self.file_path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._messages, f, ensure_ascii=False)
            os.replace(tmp_path, self.file_path)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Error saving message store: %s", e)
            return False
        self._dirty = False
        return True

    def save_if_dirty(self) -> bool:
        if not self._dirty:
            return False
        return self.save()

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, key: object) -> bool:
        return key in self._messages
