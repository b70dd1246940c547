# src/core/commands/cooldown.py
"""Per-command, per-chat cooldown tracking.

Entries expire lazily: a baseline older than its window is treated as absent.
check() also sweeps every expired entry at most once per sweep interval, so
the table only holds windows that are still running.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass

SWEEP_INTERVAL = 60.0


@dataclass(frozen=True)
class CooldownResult:
    """Outcome of a cooldown check.

    Attributes:
        allowed: True if the invocation may proceed.
        seconds_remaining: Time left in the window when denied, else 0.0.
    """

    allowed: bool
    seconds_remaining: float = 0.0


class CooldownTracker:
    """Rate limiter keyed by (command name, chat key).

    Only accepted invocations set the baseline. Denied calls never extend the
    window.

    Example:
        >>> tracker = CooldownTracker()
        >>> tracker.check("ping", "123@s.whatsapp.net", 5).allowed
        True
        >>> tracker.check("ping", "123@s.whatsapp.net", 5).allowed
        False
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = SWEEP_INTERVAL,
    ) -> None:
        """Initialize the tracker.

        Args:
            clock: Monotonic time source in seconds (injectable for tests).
            sweep_interval: Minimum seconds between sweeps of expired entries.
        """
        self._clock = clock
        self.sweep_interval = sweep_interval
        self._last_sweep = clock()
        # (command, chat) -> (accepted_at, window_seconds)
        self._entries: dict[tuple[str, str], tuple[float, float]] = {}

    def check(self, command_name: str, chat_key: str, window_seconds: float) -> CooldownResult:
        """Check and record an invocation.

        Args:
            command_name: Canonical command name.
            chat_key: Chat (or user) identifier the cooldown applies to.
            window_seconds: Cooldown window. Values <= 0 disable the check.

        Returns:
            CooldownResult. When allowed, the current time becomes the new
            baseline for this (command, chat) pair.
        """
        if not window_seconds or window_seconds <= 0:
            return CooldownResult(allowed=True)

        now = self._clock()
        if now - self._last_sweep >= self.sweep_interval:
            self.purge_expired()

        key = (command_name.lower(), chat_key)
        entry = self._entries.get(key)
        if entry is not None:
            accepted_at, _ = entry
            elapsed = now - accepted_at
            if elapsed < window_seconds:
                return CooldownResult(
                    allowed=False, seconds_remaining=window_seconds - elapsed
                )

        self._entries[key] = (now, float(window_seconds))
        return CooldownResult(allowed=True)

    def purge_expired(self) -> int:
        """Drop every entry whose window has elapsed.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        self._last_sweep = now
        expired = [
            key
            for key, (accepted_at, window) in self._entries.items()
            if now - accepted_at >= window
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def reset(self, command_name: str | None = None) -> None:
        """Forget recorded invocations, for one command or all of them."""
        if command_name is None:
            self._entries.clear()
            return
        name = command_name.lower()
        for key in [k for k in self._entries if k[0] == name]:
            del self._entries[key]

    def __len__(self) -> int:
        self.purge_expired()
        return len(self._entries)
