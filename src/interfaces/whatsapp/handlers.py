# src/interfaces/whatsapp/handlers.py
"""Inbound WhatsApp event handlers.

Handles:
- messages.upsert: store, read receipt, private-mode gate, command dispatch
- messages.reaction: reaction bookkeeping

Each message in a batch is handled on its own; one failing message never
stops the rest of the batch.
"""

import json
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any

from src.core.commands.dispatcher import Dispatcher, DispatchOutcome
from src.core.commands.permissions import is_owner
from src.core.messaging.content import (
    chat_of,
    extract_text,
    is_from_me,
    is_group_jid,
    sender_of,
)
from src.utils.logging import bind_event_context, clear_event_context

logger = logging.getLogger(__name__)


class MessageHandler:
    """Entry point for messages.upsert batches."""

    def __init__(
        self,
        bot: Any,
        dispatcher: Dispatcher,
        settings: Any,
        store: Any = None,
    ) -> None:
        self.bot = bot
        self.dispatcher = dispatcher
        self.settings = settings
        self.store = store

    async def on_messages_upsert(self, update: dict[str, Any]) -> list[DispatchOutcome | None]:
        """Handle a batch of new messages.

        Only "notify" batches (messages arriving live) are processed; history
        syncs and appends are ignored.

        Returns:
            One entry per message: the dispatch outcome, or None if the
            message was skipped or failed before dispatch.
        """
        if not update or update.get("type") != "notify":
            return []

        outcomes: list[DispatchOutcome | None] = []
        for event in update.get("messages") or ():
            bind_event_context(chat_of(event), (event.get("key") or {}).get("id"))
            try:
                outcomes.append(await self.handle_message(event))
            except Exception:
                logger.exception("Error handling message")
                outcomes.append(None)
            finally:
                clear_event_context()
        return outcomes

    async def handle_message(self, event: dict[str, Any]) -> DispatchOutcome | None:
        """Handle one inbound message."""
        if not event or not event.get("message"):
            return None

        self.bot.stats.received += 1
        if self.store is not None:
            self.store.add(event)

        if self.settings.enable_read_receipts and not is_from_me(event):
            await self._mark_read(event)

        if self.settings.debug_message:
            logger.debug("Raw message: %s", json.dumps(event.get("message"), default=str))

        text = extract_text(event)
        if not text:
            return None

        chat = chat_of(event) or ""
        is_group = is_group_jid(chat)
        name = await self._sender_name(event)
        logger.info(
            "Message from %s %s: %s", name, "(group)" if is_group else "(private)", text
        )

        if self.settings.private_mode and not await self._is_privileged(event):
            logger.debug("Ignoring message from %s (private mode)", name)
            return None

        return await self.dispatcher.dispatch(event)

    async def _mark_read(self, event: dict[str, Any]) -> None:
        try:
            await self.bot.transport.read_messages([event["key"]])
        except Exception as e:
            logger.debug("Could not send read receipt: %s", e)

    async def _sender_name(self, event: dict[str, Any]) -> str:
        try:
            return await self.bot.get_user_name(event)
        except Exception as e:
            logger.debug("Couldn't get sender name: %s", e)
            return (sender_of(event) or "unknown").split("@", 1)[0]

    async def _is_privileged(self, event: dict[str, Any]) -> bool:
        """Owners always pass the private-mode gate; group admins pass in groups."""
        sender = sender_of(event)
        if is_owner(sender, self.settings.owners):
            return True

        chat = chat_of(event)
        if not is_group_jid(chat) or self.bot.groups is None:
            return False
        try:
            return await self.bot.groups.is_user_admin(chat, sender)
        except Exception as e:
            logger.error("Error checking admin status: %s", e)
            return False


@dataclass
class Reaction:
    """A reaction seen on a message."""

    emoji: str
    sender: str
    message_id: str
    chat_id: str
    from_me: bool
    timestamp: float


class ReactionTracker:
    """Remembers the latest reaction of each sender on each message.

    At most limit reactions are kept; the oldest are evicted first. An empty
    emoji means the sender removed their reaction.
    """

    def __init__(self, limit: int = 1000) -> None:
        self.limit = limit
        self._reactions: OrderedDict[tuple[str, str], Reaction] = OrderedDict()

    def on_reactions(self, reactions: list[dict[str, Any]]) -> int:
        """Record a messages.reaction batch.

        Returns:
            Number of reactions recorded or removed.
        """
        recorded = 0
        for item in reactions or ():
            reaction = (item or {}).get("reaction") or {}
            key = reaction.get("key") or (item or {}).get("key")
            if not key or not key.get("id"):
                continue
            sender = key.get("participant") or key.get("remoteJid") or ""
            entry = Reaction(
                emoji=reaction.get("text") or "",
                sender=sender,
                message_id=key["id"],
                chat_id=key.get("remoteJid") or "",
                from_me=bool(key.get("fromMe")),
                timestamp=time.time(),
            )
            slot = (entry.message_id, sender)
            self._reactions.pop(slot, None)
            if entry.emoji:
                self._reactions[slot] = entry
                while len(self._reactions) > self.limit:
                    self._reactions.popitem(last=False)
            logger.debug(
                "Reaction received: %s from %s for message %s",
                entry.emoji,
                sender,
                entry.message_id,
            )
            recorded += 1
        return recorded

    def for_message(self, message_id: str) -> list[Reaction]:
        return [r for (mid, _), r in self._reactions.items() if mid == message_id]

    def __len__(self) -> int:
        return len(self._reactions)
