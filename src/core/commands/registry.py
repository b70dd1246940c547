# src/core/commands/registry.py
"""In-memory registry of bot commands and their aliases.

The registry holds two tables: canonical name -> Command and
alias -> canonical name. Every mutation builds new tables and swaps them in
with a single assignment, so a resolve() running between two awaits never
sees a half-applied registration.

Usage:
    registry = CommandRegistry()
    registry.register(Command(name="ping", handler=ping, aliases=("p",)))
    registry.resolve("P")  # -> the ping command
"""

import logging
from dataclasses import dataclass

from src.core.commands.models import Command
from src.core.errors import CommandConflictError, CommandValidationError

logger = logging.getLogger(__name__)


@dataclass
class CategoryInfo:
    """Summary of a command category.

    Attributes:
        key: Category key as stored on commands (lowercase).
        name: Display name, e.g. "owner_tools" -> "Owner Tools".
        count: Number of unique commands in the category.
    """

    key: str
    name: str
    count: int


def format_category_name(category: str) -> str:
    """Format a category key for display.

    Args:
        category: Category key such as "owner_tools" or "fun-games".

    Returns:
        Title-cased name with separators replaced by spaces.
    """
    words = category.replace("_", " ").replace("-", " ").split()
    return " ".join(word.capitalize() for word in words)


class CommandRegistry:
    """Registry mapping command names and aliases to Command objects.

    Invariants:
        - Names and aliases are unique across all commands.
        - Every alias points at an existing command.
        - Removing a command removes all of its aliases.
    """

    def __init__(self) -> None:
        self._commands: dict[str, Command] = {}
        self._aliases: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def register(self, command: Command) -> Command:
        """Register a command and all of its aliases.

        Either the name and every alias are registered, or nothing changes.

        Args:
            command: Command to register.

        Returns:
            The registered command.

        Raises:
            CommandValidationError: If the command has no name or handler.
            CommandConflictError: If the name or an alias is already claimed.
        """
        self._validate(command)
        commands, aliases = self._tables_with(command, self._commands, self._aliases)
        self._commands, self._aliases = commands, aliases
        logger.debug("Registered command: %s (%s)", command.name, command.category)
        return command

    def replace(self, command: Command, previous: str | None = None) -> Command:
        """Register a command, replacing any existing command of the same name.

        Used for hot-reload. The old command and its aliases are dropped and
        the new definition is published in one step. If the new definition
        conflicts with a different command, the old one stays registered.

        Args:
            command: New definition.
            previous: Name of the command being replaced when the new
                definition renamed it. Dropped in the same step.

        Returns:
            The registered command.

        Raises:
            CommandValidationError: If the command has no name or handler.
            CommandConflictError: If a token is claimed by another command.
        """
        self._validate(command)
        names = {command.name}
        if previous:
            names.add(previous)
        base_commands, base_aliases = self._tables_without(*names)
        commands, aliases = self._tables_with(command, base_commands, base_aliases)
        self._commands, self._aliases = commands, aliases
        logger.info("Replaced command: %s", command.name)
        return command

    def unregister(self, name: str) -> bool:
        """Remove a command and every alias pointing at it.

        Args:
            name: Canonical command name (case-insensitive).

        Returns:
            True if a command was removed, False if the name was unknown.
        """
        key = name.lower()
        if key not in self._commands:
            return False
        self._commands, self._aliases = self._tables_without(key)
        logger.info("Unregistered command: %s", key)
        return True

    def clear(self) -> None:
        """Remove all commands."""
        self._commands, self._aliases = {}, {}

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def resolve(self, name_or_alias: str) -> Command | None:
        """Look up a command by name or alias, case-insensitively.

        Direct names are checked before aliases.

        Args:
            name_or_alias: Token typed by the user.

        Returns:
            The matching Command, or None.
        """
        if not name_or_alias:
            return None
        key = name_or_alias.lower()
        commands = self._commands
        command = commands.get(key)
        if command is not None:
            return command
        canonical = self._aliases.get(key)
        if canonical is None:
            return None
        return commands.get(canonical)

    def get(self, name: str) -> Command | None:
        """Get a command by canonical name only."""
        return self._commands.get(name.lower())

    def all(self) -> list[Command]:
        """Get all registered commands in registration order."""
        return list(self._commands.values())

    def list_by_category(self, category: str) -> list[Command]:
        """Get commands in a category, each command listed once.

        Args:
            category: Category key (case-insensitive).

        Returns:
            Commands whose category matches, in registration order.
        """
        wanted = category.lower()
        seen: set[str] = set()
        result: list[Command] = []
        for command in self._commands.values():
            if command.category == wanted and command.name not in seen:
                seen.add(command.name)
                result.append(command)
        return result

    def categories(self) -> dict[str, CategoryInfo]:
        """Get category summaries keyed by category, in first-seen order."""
        result: dict[str, CategoryInfo] = {}
        for command in self._commands.values():
            info = result.get(command.category)
            if info is None:
                result[command.category] = CategoryInfo(
                    key=command.category,
                    name=format_category_name(command.category),
                    count=1,
                )
            else:
                info.count += 1
        return result

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, name_or_alias: object) -> bool:
        return isinstance(name_or_alias, str) and self.resolve(name_or_alias) is not None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(command: Command) -> None:
        if command is None or not getattr(command, "name", None):
            raise CommandValidationError("Command is missing a name")
        if not callable(getattr(command, "handler", None)):
            raise CommandValidationError(
                f"Command '{command.name}' is missing an execute handler"
            )

    @staticmethod
    def _tables_with(
        command: Command,
        commands: dict[str, Command],
        aliases: dict[str, str],
    ) -> tuple[dict[str, Command], dict[str, str]]:
        """Build new tables with the command added, checking every token."""
        for token in command.tokens:
            if token in commands:
                raise CommandConflictError(token, commands[token].name)
            if token in aliases:
                raise CommandConflictError(token, aliases[token])

        new_commands = dict(commands)
        new_aliases = dict(aliases)
        new_commands[command.name] = command
        for alias in command.aliases:
            if alias != command.name:
                new_aliases[alias] = command.name
        return new_commands, new_aliases

    def _tables_without(self, *names: str) -> tuple[dict[str, Command], dict[str, str]]:
        """Build new tables with the named commands and their aliases removed."""
        keys = {name.lower() for name in names}
        commands = {k: v for k, v in self._commands.items() if k not in keys}
        aliases = {k: v for k, v in self._aliases.items() if v not in keys}
        return commands, aliases
