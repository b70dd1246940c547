"""Persistence for message history and bot data.

This module provides:
- MessageStore: Bounded cache of recent inbound messages
- KeyValueStore: JSON-file backed key/value map
- BackgroundJobs: Scheduled autosave of registered stores
"""

from src.core.store.jobs import BackgroundJobs
from src.core.store.kv import KeyValueStore
from src.core.store.messages import MessageStore

__all__ = [
    "MessageStore",
    "KeyValueStore",
    "BackgroundJobs",
]
