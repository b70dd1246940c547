# src/core/store/jobs.py
"""Periodic persistence jobs on an APScheduler AsyncIOScheduler."""

import logging
from typing import Any, Protocol, runtime_checkable

from apscheduler.schedulers.asyncio import AsyncIOScheduler

logger = logging.getLogger(__name__)


@runtime_checkable
class Flushable(Protocol):
    """Anything that can write pending changes to disk."""

    def save_if_dirty(self) -> bool: ...

    def save(self) -> bool: ...


class BackgroundJobs:
    """Autosaves registered stores every interval seconds.

    Registered with the lifecycle manager: start() schedules the jobs,
    shutdown() stops the scheduler and does a final save of every store.
    """

    def __init__(self, interval: float = 20.0, scheduler: Any = None) -> None:
        self.interval = interval
        self._stores: dict[str, Flushable] = {}
        self._scheduler = scheduler or AsyncIOScheduler(
            job_defaults={
                "coalesce": True,  # Combine missed runs into one
                "max_instances": 1,
            },
        )

    def add_store(self, name: str, store: Flushable) -> None:
        """Register a store for autosave."""
        self._stores[name] = store
        logger.debug("Registered store for autosave: %s", name)

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        """Schedule the autosave job and start the scheduler."""
        if self._scheduler.running:
            return
        self._scheduler.add_job(
            self.flush,
            "interval",
            seconds=self.interval,
            id="autosave",
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            "Autosave scheduled every %ss for %d stores", self.interval, len(self._stores)
        )

    def flush(self) -> int:
        """Save every dirty store.

        Returns:
            Number of stores written.
        """
        saved = 0
        for name, store in self._stores.items():
            try:
                if store.save_if_dirty():
                    saved += 1
                    logger.debug("Autosaved %s", name)
            except Exception as e:
                logger.error("Error autosaving %s: %s", name, e)
        return saved

    def shutdown(self) -> None:
        """Stop the scheduler and write every store one last time."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self.flush()
        logger.info("Background jobs stopped")
