"""Tests for the bot facade used by command handlers."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import PRIVATE_CHAT, make_event

from src.core.errors import TransportError
from src.core.messaging.queue import SendQueue
from src.interfaces.whatsapp.facade import Bot, build_vcard, format_uptime


@pytest.fixture
def transport() -> MagicMock:
    mock = MagicMock()
    mock.is_connected = True
    mock.send_message = AsyncMock(return_value={"key": {"id": "OUT1"}})
    mock.send_presence = AsyncMock()
    return mock


@pytest.fixture
def bot(transport: MagicMock, bot_settings: SimpleNamespace) -> Bot:
    return Bot(transport, SendQueue(min_interval_ms=0), bot_settings)


class TestSending:
    """Test queued sends through the facade."""

    @pytest.mark.asyncio
    async def test_text_wrapped_and_counted(self, bot: Bot, transport: MagicMock) -> None:
        """Test a plain string becomes a text message and bumps the counter."""
        result = await bot.send_message(PRIVATE_CHAT, "hello")

        assert result == {"key": {"id": "OUT1"}}
        transport.send_message.assert_awaited_once_with(PRIVATE_CHAT, {"text": "hello"})
        assert bot.stats.sent == 1

    @pytest.mark.asyncio
    async def test_disconnected_raises(self, bot: Bot, transport: MagicMock) -> None:
        """Test sending while disconnected fails fast."""
        transport.is_connected = False

        with pytest.raises(TransportError, match="not connected"):
            await bot.send_message(PRIVATE_CHAT, "hello")
        transport.send_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, bot: Bot, transport: MagicMock) -> None:
        """Test a failed send reaches the caller and is not counted."""
        transport.send_message.side_effect = TransportError("socket closed")

        with pytest.raises(TransportError):
            await bot.send_message(PRIVATE_CHAT, "hello")
        assert bot.stats.sent == 0

    @pytest.mark.asyncio
    async def test_typing_indicator_wraps_text(
        self, bot: Bot, transport: MagicMock, bot_settings: SimpleNamespace
    ) -> None:
        """Test presence goes recording then paused before the text is sent."""
        bot_settings.enable_typing_indicator = True
        calls: list[str] = []
        transport.send_presence.side_effect = lambda chat, state: calls.append(state)
        transport.send_message.side_effect = lambda chat, content, **kw: calls.append("send")

        await bot.send_message(PRIVATE_CHAT, "hi")

        assert calls == ["recording", "paused", "send"]

    @pytest.mark.asyncio
    async def test_no_typing_for_media(
        self, bot: Bot, transport: MagicMock, bot_settings: SimpleNamespace
    ) -> None:
        """Test non-text content skips the typing indicator."""
        bot_settings.enable_typing_indicator = True

        await bot.send_image(PRIVATE_CHAT, b"\x89PNG", caption="pic")

        transport.send_presence.assert_not_called()
        content = transport.send_message.await_args.args[1]
        assert content == {"image": b"\x89PNG", "caption": "pic"}

    @pytest.mark.asyncio
    async def test_reply_quotes_event(self, bot: Bot, transport: MagicMock) -> None:
        """Test replies go to the event's chat and quote it."""
        event = make_event("!ping")

        await bot.reply(event, "pong")

        transport.send_message.assert_awaited_once_with(
            PRIVATE_CHAT, {"text": "pong"}, quoted=event
        )

    @pytest.mark.asyncio
    async def test_reply_invalid_event(self, bot: Bot) -> None:
        """Test replying to an event without a chat fails."""
        with pytest.raises(TransportError, match="Invalid message object"):
            await bot.reply({"message": {}}, "pong")

    @pytest.mark.asyncio
    async def test_react(self, bot: Bot, transport: MagicMock) -> None:
        """Test reactions reference the original message key."""
        event = make_event("nice")

        await bot.react(event, "👍")

        content = transport.send_message.await_args.args[1]
        assert content == {"react": {"text": "👍", "key": event["key"]}}

    @pytest.mark.asyncio
    async def test_send_location_requires_coordinates(self, bot: Bot) -> None:
        """Test missing coordinates are rejected before queueing."""
        with pytest.raises(ValueError):
            await bot.send_location(PRIVATE_CHAT, None, 106.8)

    @pytest.mark.asyncio
    async def test_send_document_guesses_mimetype(self, bot: Bot, transport: MagicMock) -> None:
        """Test the document mimetype is derived from the file name."""
        await bot.send_document(PRIVATE_CHAT, b"%PDF", "report.pdf")

        content = transport.send_message.await_args.args[1]
        assert content["mimetype"] == "application/pdf"
        assert content["fileName"] == "report.pdf"

    @pytest.mark.asyncio
    async def test_send_multiple_contacts(self, bot: Bot, transport: MagicMock) -> None:
        """Test several contact cards share one message."""
        await bot.send_contact(
            PRIVATE_CHAT, [{"name": "Ann", "number": "62811"}, "62822"]
        )

        content = transport.send_message.await_args.args[1]
        assert content["contacts"]["displayName"] == "2 contacts"
        assert len(content["contacts"]["contacts"]) == 2


class TestInfo:
    """Test helpers and runtime info."""

    def test_vcard(self) -> None:
        """Test vCard layout for a named contact."""
        card = build_vcard({"name": "Ann", "number": "62811", "org": "Terra"})
        assert card["displayName"] == "Ann"
        assert card["vcard"] == (
            "BEGIN:VCARD\nVERSION:3.0\nFN:Ann\nORG:Terra\n"
            "TEL;type=CELL;type=VOICE;waid=62811:+62811\nEND:VCARD"
        )

    def test_vcard_bare_number(self) -> None:
        """Test a bare number card has no organization line."""
        card = build_vcard("62822")
        assert "ORG:" not in card["vcard"]
        assert card["displayName"] == "62822"

    def test_format_uptime(self) -> None:
        """Test uptime formatting across units."""
        assert format_uptime(0) == "0d 0h 0m 0s"
        assert format_uptime(90061.7) == "1d 1h 1m 1s"

    def test_get_stats(self, bot: Bot) -> None:
        """Test the stats snapshot shape."""
        bot.stats.received = 3
        bot.reconnect_count = 2

        stats = bot.get_stats()

        assert stats["messages"] == {"sent": 0, "received": 3}
        assert stats["is_connected"] is True
        assert stats["reconnect_count"] == 2
        assert stats["formatted_uptime"].endswith("s")

    @pytest.mark.asyncio
    async def test_get_user_name(self, bot: Bot) -> None:
        """Test push name first, then contacts, then the phone number."""
        assert await bot.get_user_name(make_event("x", push_name="Alice")) == "Alice"

        nameless = make_event("x", push_name="")
        assert await bot.get_user_name(nameless) == "628999"

        bot.contacts = MagicMock()
        bot.contacts.get_name = AsyncMock(return_value="Saved Name")
        assert await bot.get_user_name(nameless) == "Saved Name"

        assert await bot.get_user_name({"key": {}}) == "Unknown User"
