# src/interfaces/whatsapp/facade.py
"""Bot facade handed to command handlers.

Every outbound message goes through the send queue, so handlers never need
to think about pacing. Media helpers accept bytes, a file path or an http(s)
URL as the media source.
"""

import asyncio
import logging
import mimetypes
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from src.core.errors import TransportError
from src.core.messaging.content import chat_of, phone_number, sender_of
from src.core.messaging.queue import SendQueue
from src.utils.media import MediaSource, get_buffer

logger = logging.getLogger(__name__)

Contact = str | Mapping[str, str]


@dataclass
class MessageStats:
    """Message counters."""

    sent: int = 0
    received: int = 0


def format_uptime(seconds: float) -> str:
    """Format a duration as "{d}d {h}h {m}m {s}s"."""
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    return f"{days}d {hours}h {minutes}m {secs}s"


def build_vcard(contact: Contact) -> dict[str, str]:
    """Build a WhatsApp contact card.

    Args:
        contact: A bare phone number, or a mapping with name, number and
            optional org.
    """
    if isinstance(contact, str):
        name = number = contact
        org = None
    else:
        name = contact["name"]
        number = contact["number"]
        org = contact.get("org", "")

    lines = ["BEGIN:VCARD", "VERSION:3.0", f"FN:{name}"]
    if org is not None:
        lines.append(f"ORG:{org}")
    lines.append(f"TEL;type=CELL;type=VOICE;waid={number}:+{number}")
    lines.append("END:VCARD")
    return {"displayName": name, "vcard": "\n".join(lines)}


class Bot:
    """High-level messaging API over the transport.

    Args:
        transport: Connected WhatsApp transport.
        send_queue: Queue all sends are serialized through.
        settings: Live bot settings.
        registry: Command registry (exposed for help and debug commands).
        contacts: ContactManager.
        groups: GroupManager.
        store: MessageStore of recent inbound messages.
        kv: Named key/value stores.
        loader: CommandLoader used by the reload command.
        reactions: ReactionTracker of recent reactions (used by debug).
    """

    def __init__(
        self,
        transport: Any,
        send_queue: SendQueue,
        settings: Any,
        registry: Any = None,
        contacts: Any = None,
        groups: Any = None,
        store: Any = None,
        kv: Mapping[str, Any] | None = None,
        loader: Any = None,
        reactions: Any = None,
    ) -> None:
        self.transport = transport
        self.send_queue = send_queue
        self.settings = settings
        self.registry = registry
        self.contacts = contacts
        self.groups = groups
        self.store = store
        self.kv = dict(kv or {})
        self.loader = loader
        self.reactions = reactions
        self.logger = logger
        self.stats = MessageStats()
        self.started_at = time.monotonic()
        self.reconnect_count = 0

    @property
    def is_connected(self) -> bool:
        return bool(getattr(self.transport, "is_connected", False))

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send_message(
        self, chat: str, content: str | dict[str, Any], **options: Any
    ) -> Any:
        """Send a message through the send queue.

        Args:
            chat: Destination chat JID.
            content: Text, or a message content dict ({"text": ...},
                {"image": ..., "caption": ...}, ...).
            **options: Transport send options such as quoted.

        Returns:
            Whatever the transport returns for the sent message.

        Raises:
            TransportError: If the transport is not connected or sending fails.
        """
        if not self.is_connected:
            raise TransportError("Bot is not connected")

        message = {"text": content} if isinstance(content, str) else dict(content)

        async def task() -> Any:
            text = message.get("text")
            if self.settings.enable_typing_indicator and text:
                await self._simulate_typing(chat, text)
            sent = await self.transport.send_message(chat, message, **options)
            self.stats.sent += 1
            return sent

        try:
            return await self.send_queue.enqueue(task)
        except Exception as e:
            logger.error("Error sending message to %s: %s", chat, e)
            raise

    async def _simulate_typing(self, chat: str, text: str) -> None:
        # "recording" shows the microphone indicator
        await self.transport.send_presence(chat, "recording")
        delay = min(self.settings.typing_timeout, max(0.5, len(text) * 0.03))
        await asyncio.sleep(delay)
        await self.transport.send_presence(chat, "paused")

    async def reply(
        self, event: dict[str, Any], content: str | dict[str, Any], **options: Any
    ) -> Any:
        """Reply to an inbound message, quoting it."""
        chat = chat_of(event) if event else None
        if not chat:
            raise TransportError("Invalid message object")
        return await self.send_message(chat, content, **{**options, "quoted": event})

    async def send_image(
        self, chat: str, image: MediaSource, caption: str = "", **options: Any
    ) -> Any:
        buffer = await get_buffer(image)
        return await self.send_message(chat, {"image": buffer, "caption": caption}, **options)

    async def send_video(
        self,
        chat: str,
        video: MediaSource,
        caption: str = "",
        gif_playback: bool = False,
        **options: Any,
    ) -> Any:
        buffer = await get_buffer(video)
        content: dict[str, Any] = {"video": buffer, "caption": caption}
        if gif_playback:
            content["gifPlayback"] = True
        return await self.send_message(chat, content, **options)

    async def send_audio(
        self, chat: str, audio: MediaSource, ptt: bool = False, **options: Any
    ) -> Any:
        """Send audio; ptt=True sends it as a voice note."""
        buffer = await get_buffer(audio)
        mimetype = "audio/mpeg"
        if isinstance(audio, str):
            mimetype = mimetypes.guess_type(audio)[0] or mimetype
        return await self.send_message(
            chat, {"audio": buffer, "ptt": ptt, "mimetype": mimetype}, **options
        )

    async def send_sticker(self, chat: str, sticker: MediaSource, **options: Any) -> Any:
        buffer = await get_buffer(sticker)
        return await self.send_message(chat, {"sticker": buffer}, **options)

    async def send_document(
        self,
        chat: str,
        document: MediaSource,
        filename: str,
        caption: str = "",
        mimetype: str | None = None,
        **options: Any,
    ) -> Any:
        buffer = await get_buffer(document)
        mimetype = mimetype or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        content = {
            "document": buffer,
            "mimetype": mimetype,
            "fileName": filename,
            "caption": caption,
        }
        return await self.send_message(chat, content, **options)

    async def send_location(
        self, chat: str, latitude: float, longitude: float, caption: str = "", **options: Any
    ) -> Any:
        if latitude is None or longitude is None:
            raise ValueError("Invalid coordinates")
        content = {
            "location": {"degreesLatitude": latitude, "degreesLongitude": longitude},
            "caption": caption,
        }
        return await self.send_message(chat, content, **options)

    async def send_contact(
        self, chat: str, contacts: Contact | Iterable[Contact], **options: Any
    ) -> Any:
        """Send one or more contact cards."""
        if isinstance(contacts, (str, Mapping)):
            contacts = [contacts]
        cards = [build_vcard(contact) for contact in contacts]
        if not cards:
            raise ValueError("No contacts to send")
        display_name = f"{len(cards)} contacts" if len(cards) > 1 else cards[0]["displayName"]
        content = {"contacts": {"displayName": display_name, "contacts": cards}}
        return await self.send_message(chat, content, **options)

    async def react(self, event: dict[str, Any], emoji: str) -> Any:
        """React to a message with an emoji (empty string removes it)."""
        chat = chat_of(event)
        if not chat:
            raise TransportError("Invalid message object")
        return await self.send_message(chat, {"react": {"text": emoji, "key": event["key"]}})

    # ------------------------------------------------------------------
    # Info
    # ------------------------------------------------------------------

    def uptime(self) -> float:
        return time.monotonic() - self.started_at

    def get_stats(self) -> dict[str, Any]:
        """Get runtime statistics."""
        uptime = self.uptime()
        return {
            "uptime": uptime,
            "formatted_uptime": format_uptime(uptime),
            "messages": {"sent": self.stats.sent, "received": self.stats.received},
            "is_connected": self.is_connected,
            "reconnect_count": self.reconnect_count,
        }

    async def get_user_name(self, event: dict[str, Any]) -> str:
        """Get the sender's display name, falling back to the phone number."""
        if event.get("pushName"):
            return event["pushName"]
        sender = sender_of(event)
        if not sender:
            return "Unknown User"
        if self.contacts is not None:
            return await self.contacts.get_name(sender)
        return phone_number(sender)
