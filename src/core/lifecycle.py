# src/core/lifecycle.py
"""Lifecycle management for long-lived components.

Provides a centralized manager for startup and shutdown of the bot's
components (background jobs, send queue, transport, etc.).

Example:
    >>> from src.core.lifecycle import LifecycleManager
    >>>
    >>> lm = LifecycleManager()
    >>> lm.register("jobs", jobs)
    >>> lm.register("transport", transport)
    >>> await lm.startup()
    >>> # ... application runs ...
    >>> await lm.shutdown()
"""

import inspect
import logging
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class LifecycleComponent(Protocol):
    """Protocol for components with lifecycle management."""

    def shutdown(self) -> Any:
        """Shutdown the component and release resources."""
        ...


async def _call(method: Any) -> None:
    result = method()
    if inspect.isawaitable(result):
        await result


class LifecycleManager:
    """Manages startup and shutdown of registered components.

    Component methods may be plain functions or coroutines.
    """

    def __init__(self) -> None:
        self._components: list[tuple[str, Any]] = []
        self._running: list[tuple[str, Any]] = []
        self._started = False

    def register(self, name: str, component: Any) -> None:
        """Register a component. Must have start()/startup() and shutdown()."""
        self._components.append((name, component))
        logger.debug("Registered lifecycle component: %s", name)

    async def startup(self) -> None:
        """Start all registered components in order.

        Skips if already started. Components can implement either
        start() or startup() methods. If a component fails to start, the
        ones already started stay registered for shutdown() and the error
        propagates.
        """
        if self._started:
            logger.debug("Lifecycle manager already started")
            return

        for name, component in self._components:
            logger.info("Starting %s", name)
            if hasattr(component, "start"):
                await _call(component.start)
            elif hasattr(component, "startup"):
                await _call(component.startup)
            self._running.append((name, component))

        self._started = True
        logger.info(
            "All lifecycle components started (%d total)", len(self._components)
        )

    async def shutdown(self) -> None:
        """Shutdown all registered components in reverse order.

        Components are shutdown in reverse registration order to handle
        dependencies properly. One failing component does not stop the rest.
        """
        if not self._running:
            logger.debug("Lifecycle manager not started, skipping shutdown")
            return

        for name, component in reversed(self._running):
            logger.info("Stopping %s", name)
            try:
                if hasattr(component, "shutdown"):
                    await _call(component.shutdown)
            except Exception as e:
                logger.error("Error shutting down %s: %s", name, e)

        self._running.clear()
        self._started = False
        logger.info("All lifecycle components stopped")

    @property
    def is_started(self) -> bool:
        """Check if the manager has started all components.

        Returns:
            True if startup() has been called and completed.
        """
        return self._started

    @property
    def component_count(self) -> int:
        return len(self._components)
