# tests/conftest.py
"""Shared pytest fixtures for all test modules.

Provides common fixtures for:
- A controllable monotonic clock
- Message event builders
- Bot settings and a mocked bot facade
- Temporary data directories
"""

import os
import tempfile
from collections.abc import Callable, Generator
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.commands.registry import CommandRegistry
from src.interfaces.whatsapp.facade import MessageStats

OWNER = "628111"
PRIVATE_CHAT = "628999@s.whatsapp.net"
GROUP_CHAT = "120363000@g.us"


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_event(
    text: str | None = None,
    chat: str = PRIVATE_CHAT,
    participant: str | None = None,
    message_id: str = "MSG1",
    push_name: str = "Tester",
    from_me: bool = False,
) -> dict[str, Any]:
    """Build an inbound message event in the Baileys shape."""
    key: dict[str, Any] = {"remoteJid": chat, "id": message_id, "fromMe": from_me}
    if participant:
        key["participant"] = participant
    message = {"conversation": text} if text is not None else {"imageMessage": {}}
    return {
        "key": key,
        "message": message,
        "pushName": push_name,
        "messageTimestamp": 1700000000,
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def event_factory() -> Callable[..., dict[str, Any]]:
    return make_event


@pytest.fixture
def registry() -> CommandRegistry:
    return CommandRegistry()


@pytest.fixture
def bot_settings() -> SimpleNamespace:
    """Settings stand-in with the fields the core reads."""
    return SimpleNamespace(
        prefix="!",
        owners=[OWNER],
        private_mode=False,
        handler_timeout=5.0,
        bot_name="TerraBot",
        enable_read_receipts=True,
        enable_typing_indicator=False,
        typing_timeout=0.0,
        debug_message=False,
    )


@pytest.fixture
def mock_bot(bot_settings: SimpleNamespace, registry: CommandRegistry) -> MagicMock:
    """Bot facade mock with awaitable send methods."""
    bot = MagicMock()
    bot.settings = bot_settings
    bot.registry = registry
    bot.reply = AsyncMock(return_value={"key": {"id": "SENT1"}})
    bot.send_message = AsyncMock()
    bot.get_user_name = AsyncMock(return_value="Tester")
    bot.transport = MagicMock()
    bot.transport.read_messages = AsyncMock()
    bot.groups = None
    bot.stats = MessageStats()
    return bot


@pytest.fixture
def temp_data_dir() -> Generator[str, None, None]:
    """Create a temporary data directory.

    Yields:
        Path to temporary directory.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def temp_config_file(temp_data_dir: str) -> str:
    return os.path.join(temp_data_dir, "config.json")
