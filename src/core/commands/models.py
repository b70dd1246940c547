# src/core/commands/models.py
"""Command data models.

This module defines the Command dataclass which represents a registered bot
command, and CommandContext, the read-only bundle of resolved flags handed
to a handler on every invocation.
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any

from src.core.errors import CommandValidationError

DEFAULT_CATEGORY = "general"
OWNER_CATEGORY = "owner"

# (bot, event, args, context) -> awaitable
CommandHandler = Callable[[Any, dict[str, Any], list[str], "CommandContext"], Awaitable[Any]]

# Definition keys accepted in both camelCase and snake_case
_FLAG_KEYS = {
    "owner_only": ("owner_only", "ownerOnly"),
    "group_only": ("group_only", "groupOnly"),
    "private_only": ("private_only", "privateOnly"),
    "admin_only": ("admin_only", "adminOnly"),
}


@dataclass(frozen=True)
class Command:
    """A registered bot command.

    Commands are immutable once built. Hot-reload replaces the whole object
    in the registry instead of mutating it.

    Attributes:
        name: Unique command name (lowercase normalized).
        handler: Async callable invoked as handler(bot, event, args, context).
        aliases: Additional tokens resolving to this command (lowercase).
        description: One-line description shown by help.
        usage: Usage string; "{prefix}" is substituted when displayed.
        examples: Example invocations; "{prefix}" is substituted when displayed.
        category: Classification label, "general" by default.
        cooldown: Per-chat cooldown window in seconds, 0 for none.
        owner_only: Only bot owners may run the command.
        group_only: Only usable in group chats.
        private_only: Only usable in private chats.
        admin_only: In groups, only group admins may run the command.
        source: Module path the command was loaded from, if any.

    Example:
        >>> async def ping(bot, event, args, context):
        ...     await bot.reply(event, "pong")
        >>> cmd = Command(name="ping", handler=ping, aliases=("p",))
    """

    name: str
    handler: CommandHandler
    aliases: tuple[str, ...] = ()
    description: str = ""
    usage: str = ""
    examples: tuple[str, ...] = ()
    category: str = DEFAULT_CATEGORY
    cooldown: int = 0
    owner_only: bool = False
    group_only: bool = False
    private_only: bool = False
    admin_only: bool = False
    source: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise CommandValidationError("Command is missing a name")
        if not callable(self.handler):
            raise CommandValidationError(
                f"Command '{self.name}' is missing an execute handler"
            )
        if self.cooldown < 0:
            raise CommandValidationError(
                f"Command '{self.name}' has a negative cooldown"
            )
        object.__setattr__(self, "name", self.name.strip().lower())
        object.__setattr__(
            self,
            "aliases",
            tuple(
                dict.fromkeys(
                    alias.strip().lower()
                    for alias in self.aliases
                    if isinstance(alias, str) and alias.strip()
                )
            ),
        )
        object.__setattr__(self, "category", (self.category or DEFAULT_CATEGORY).lower())

    @classmethod
    def from_definition(
        cls,
        definition: Mapping[str, Any] | ModuleType,
        category: str | None = None,
        source: str | None = None,
    ) -> "Command":
        """Build a Command from a definition mapping or module.

        Category resolution: an explicit category in the definition wins,
        then the directory category, then "general". Commands that end up in
        the "owner" category are owner-only unless the definition says
        otherwise.

        Args:
            definition: Mapping or module exposing name, execute and optional
                aliases, description, usage, examples, cooldown, category and
                access flags (camelCase or snake_case).
            category: Category derived from the definition's location.
            source: Module path the definition came from.

        Returns:
            The validated Command.

        Raises:
            CommandValidationError: If name or execute is missing.
        """
        if isinstance(definition, ModuleType):
            data: Mapping[str, Any] = vars(definition)
        else:
            data = definition

        name = data.get("name")
        handler = data.get("execute")
        if not name or not isinstance(name, str):
            raise CommandValidationError(f"Command in {source or 'definition'} is missing a name")
        if handler is None or not callable(handler):
            raise CommandValidationError(
                f"Command '{name}' in {source or 'definition'} is missing an execute handler"
            )

        resolved_category = data.get("category") or category or DEFAULT_CATEGORY

        flags: dict[str, bool] = {}
        for flag, keys in _FLAG_KEYS.items():
            for key in keys:
                if key in data:
                    flags[flag] = bool(data[key])
                    break

        if str(resolved_category).lower() == OWNER_CATEGORY and "owner_only" not in flags:
            flags["owner_only"] = True

        aliases = data.get("aliases") or ()
        if isinstance(aliases, str):
            aliases = (aliases,)

        try:
            cooldown = int(data.get("cooldown") or 0)
        except (TypeError, ValueError) as e:
            raise CommandValidationError(f"Command '{name}' has an invalid cooldown") from e

        return cls(
            name=name,
            handler=handler,
            aliases=tuple(aliases),
            description=data.get("description") or "",
            usage=data.get("usage") or "",
            examples=tuple(data.get("examples") or ()),
            category=str(resolved_category),
            cooldown=cooldown,
            source=source,
            **flags,
        )

    @property
    def tokens(self) -> tuple[str, ...]:
        """All tokens claimed by this command: its name followed by aliases."""
        return (self.name, *self.aliases)


@dataclass(frozen=True)
class CommandContext:
    """Per-invocation execution context, read-only to handlers.

    Attributes:
        is_group: The chat is a group chat.
        is_owner: The sender is a bot owner.
        is_admin: The sender is an admin of the group (False outside groups).
        is_private: The chat is a private chat.
        sender: Sender JID (participant in groups).
        chat_id: Chat JID the message arrived in.
        push_name: Display name reported by the sender's client.
        command: The resolved command.
        prefix: Command prefix in effect.
        group_metadata: Group metadata, None outside groups or on fetch failure.
        transport: Transport the event arrived on.
    """

    is_group: bool
    is_owner: bool
    is_admin: bool
    is_private: bool
    sender: str
    chat_id: str
    push_name: str
    command: Command
    prefix: str
    group_metadata: Mapping[str, Any] | None = None
    transport: Any = field(default=None, repr=False)
