# src/core/commands/dispatcher.py
"""Command dispatch for inbound message events.

The dispatcher turns one inbound event into at most one handler invocation:

    extract content -> prefix check -> resolve -> cooldown -> build context
    -> permission -> execute

Every step that rejects the event ends the pipeline. Unknown commands are
ignored silently, denials get a single explanatory reply, and handler
failures get a single generic reply. dispatch() never raises.
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any

from src.core.commands.cooldown import CooldownTracker
from src.core.commands.models import CommandContext
from src.core.commands.parser import parse_command
from src.core.commands.permissions import evaluate, is_group_admin, is_owner
from src.core.commands.registry import CommandRegistry
from src.core.messaging.content import chat_of, extract_text, is_group_jid, sender_of

logger = logging.getLogger(__name__)

COOLDOWN_MESSAGE = (
    "⏳ Please wait {remaining:.1f} more seconds before using this command again."
)
ERROR_MESSAGE = "❌ An error occurred while executing this command."
TIMEOUT_MESSAGE = "⌛ Command timed out."


class DispatchOutcome(str, Enum):
    """Terminal state of one dispatch."""

    IGNORED_NO_CONTENT = "ignored_no_content"
    IGNORED_NOT_PREFIXED = "ignored_not_prefixed"
    IGNORED_UNKNOWN = "ignored_unknown"
    COOLDOWN_DENIED = "cooldown_denied"
    PERMISSION_DENIED = "permission_denied"
    EXECUTED = "executed"
    HANDLER_FAILED = "handler_failed"
    HANDLER_TIMEOUT = "handler_timeout"


class Dispatcher:
    """Routes prefixed messages to registered command handlers.

    Args:
        registry: Command registry to resolve tokens against.
        cooldowns: Cooldown tracker shared by all commands.
        bot: Bot facade passed to handlers and used for replies.
        settings: Live settings; prefix and owners are read on every dispatch
            so owner config changes apply immediately.
        groups: Group metadata source (GroupManager). Optional.
        handler_timeout: Seconds a handler may run before being cancelled.
            Defaults to settings.handler_timeout; None or 0 disables it.
            Only this deadline yields HANDLER_TIMEOUT. A TimeoutError the
            handler raises itself is reported as HANDLER_FAILED.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        cooldowns: CooldownTracker,
        bot: Any,
        settings: Any,
        groups: Any = None,
        handler_timeout: float | None = None,
    ) -> None:
        self.registry = registry
        self.cooldowns = cooldowns
        self.bot = bot
        self.settings = settings
        self.groups = groups
        if handler_timeout is None:
            handler_timeout = getattr(settings, "handler_timeout", None)
        self.handler_timeout = handler_timeout or None

    async def dispatch(self, event: dict[str, Any]) -> DispatchOutcome:
        """Process one inbound message event.

        Args:
            event: Inbound message event.

        Returns:
            The terminal DispatchOutcome.
        """
        try:
            return await self._dispatch(event)
        except Exception:
            logger.exception("Unexpected error while dispatching message")
            return DispatchOutcome.HANDLER_FAILED

    async def _dispatch(self, event: dict[str, Any]) -> DispatchOutcome:
        text = extract_text(event)
        if not text:
            return DispatchOutcome.IGNORED_NO_CONTENT

        prefix = self.settings.prefix
        parsed = parse_command(text, prefix)
        if parsed is None:
            return DispatchOutcome.IGNORED_NOT_PREFIXED

        command = self.registry.resolve(parsed.name)
        if command is None:
            logger.debug("Unknown command: %s", parsed.name)
            return DispatchOutcome.IGNORED_UNKNOWN

        chat_id = chat_of(event) or ""
        sender = sender_of(event) or ""

        cooldown = self.cooldowns.check(command.name, chat_id, command.cooldown)
        if not cooldown.allowed:
            logger.info(
                "Cooldown active for %s in %s (%.1fs left)",
                command.name,
                chat_id,
                cooldown.seconds_remaining,
            )
            await self._notify(
                event, COOLDOWN_MESSAGE.format(remaining=cooldown.seconds_remaining)
            )
            return DispatchOutcome.COOLDOWN_DENIED

        context = await self.build_context(event, command, chat_id, sender, prefix)

        permission = evaluate(command, context)
        if not permission.allowed:
            logger.info(
                "Permission denied for %s: %s (sender=%s)",
                command.name,
                permission.reason,
                sender,
            )
            await self._notify(event, permission.message)
            return DispatchOutcome.PERMISSION_DENIED

        return await self._execute(event, parsed.args, context)

    async def build_context(
        self,
        event: dict[str, Any],
        command: Any,
        chat_id: str,
        sender: str,
        prefix: str,
    ) -> CommandContext:
        """Build the per-invocation context.

        Group metadata is fetched only for group chats. A failed fetch leaves
        group_metadata as None and is_admin False.
        """
        is_group = is_group_jid(chat_id)
        metadata = None
        if is_group and self.groups is not None:
            try:
                metadata = await self.groups.get_group_metadata(chat_id)
            except Exception as e:
                logger.warning("Group metadata unavailable for %s: %s", chat_id, e)
                metadata = None

        return CommandContext(
            is_group=is_group,
            is_owner=is_owner(sender, self.settings.owners),
            is_admin=is_group_admin(sender, metadata) if is_group else False,
            is_private=not is_group,
            sender=sender,
            chat_id=chat_id,
            push_name=event.get("pushName") or "",
            command=command,
            prefix=prefix,
            group_metadata=metadata,
            transport=getattr(self.bot, "transport", None),
        )

    async def _execute(
        self, event: dict[str, Any], args: list[str], context: CommandContext
    ) -> DispatchOutcome:
        command = context.command
        logger.info(
            "Executing command %s (sender=%s, chat=%s)",
            command.name,
            context.sender,
            context.chat_id,
        )
        deadline = asyncio.timeout(self.handler_timeout)
        try:
            async with deadline:
                call = command.handler(self.bot, event, args, context)
                if inspect.isawaitable(call):
                    await call
        except TimeoutError:
            # A TimeoutError raised inside the handler is a handler failure
            if not deadline.expired():
                return await self._handler_failed(event, context)
            logger.error(
                "Command %s timed out after %ss (sender=%s, chat=%s)",
                command.name,
                self.handler_timeout,
                context.sender,
                context.chat_id,
            )
            await self._notify(event, TIMEOUT_MESSAGE)
            return DispatchOutcome.HANDLER_TIMEOUT
        except Exception:
            return await self._handler_failed(event, context)
        return DispatchOutcome.EXECUTED

    async def _handler_failed(
        self, event: dict[str, Any], context: CommandContext
    ) -> DispatchOutcome:
        logger.exception(
            "Error executing command %s (sender=%s, chat=%s)",
            context.command.name,
            context.sender,
            context.chat_id,
        )
        await self._notify(event, ERROR_MESSAGE)
        return DispatchOutcome.HANDLER_FAILED

    async def _notify(self, event: dict[str, Any], text: str | None) -> None:
        """Reply to the event, logging instead of raising on failure."""
        if not text:
            return
        try:
            await self.bot.reply(event, text)
        except Exception as e:
            logger.error("Failed to send reply: %s", e)
