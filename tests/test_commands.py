"""Tests for command parsing, definitions, registry and loading."""

import importlib
import sys
import textwrap
import uuid

import pytest

from src.core.commands.loader import CommandLoader
from src.core.commands.models import Command
from src.core.commands.parser import parse_command
from src.core.commands.registry import CommandRegistry, format_category_name
from src.core.errors import CommandConflictError, CommandValidationError


async def noop(bot, event, args, context):
    return None


class TestParser:
    """Test suite for command parser."""

    def test_parse_command_basic(self) -> None:
        """Test basic command parsing with arguments."""
        result = parse_command("!sticker crop now")
        assert result is not None
        assert result.name == "sticker"
        assert result.args == ["crop", "now"]
        assert result.raw_args == "crop now"

    def test_parse_command_no_args(self) -> None:
        """Test command without arguments."""
        result = parse_command("!help")
        assert result is not None
        assert result.name == "help"
        assert result.args == []

    def test_parse_command_not_command(self) -> None:
        """Test that regular text returns None."""
        assert parse_command("just chatting") is None

    def test_parse_command_prefix_only(self) -> None:
        """Test that a lone prefix returns None."""
        assert parse_command("!") is None
        assert parse_command("!   ") is None

    def test_parse_command_uppercase(self) -> None:
        """Test that command names are lowercased but args keep case."""
        result = parse_command("!HeLLo WoRLd")
        assert result is not None
        assert result.name == "hello"
        assert result.args == ["WoRLd"]

    def test_parse_command_whitespace_runs(self) -> None:
        """Test that runs of whitespace separate arguments."""
        result = parse_command("!cmd   a \t b   ")
        assert result is not None
        assert result.args == ["a", "b"]

    def test_parse_command_custom_prefix(self) -> None:
        """Test multi-character and custom prefixes."""
        result = parse_command(">>menu", prefix=">>")
        assert result is not None
        assert result.name == "menu"
        assert parse_command("!menu", prefix=".") is None

    def test_parse_command_leading_space_not_prefixed(self) -> None:
        """Test that text must start with the prefix exactly."""
        assert parse_command(" !ping") is None


class TestCommandDefinition:
    """Test Command construction and from_definition."""

    def test_name_and_aliases_normalized(self) -> None:
        """Test name and aliases are lowercased and deduplicated."""
        cmd = Command(name="Ping", handler=noop, aliases=("P", "p", "Pong"))
        assert cmd.name == "ping"
        assert cmd.aliases == ("p", "pong")
        assert cmd.tokens == ("ping", "p", "pong")

    def test_missing_handler_rejected(self) -> None:
        """Test that a definition without execute is invalid."""
        with pytest.raises(CommandValidationError):
            Command.from_definition({"name": "broken"})

    def test_missing_name_rejected(self) -> None:
        """Test that a definition without a name is invalid."""
        with pytest.raises(CommandValidationError):
            Command.from_definition({"execute": noop})

    def test_camel_case_flags(self) -> None:
        """Test camelCase access flags are accepted."""
        cmd = Command.from_definition(
            {"name": "kick", "execute": noop, "groupOnly": True, "adminOnly": True}
        )
        assert cmd.group_only is True
        assert cmd.admin_only is True
        assert cmd.owner_only is False

    def test_owner_category_implies_owner_only(self) -> None:
        """Test commands in the owner category default to owner-only."""
        cmd = Command.from_definition({"name": "eval", "execute": noop}, category="owner")
        assert cmd.owner_only is True
        assert cmd.category == "owner"

    def test_explicit_owner_flag_wins(self) -> None:
        """Test an explicit ownerOnly=False overrides the owner category."""
        cmd = Command.from_definition(
            {"name": "status", "execute": noop, "ownerOnly": False}, category="owner"
        )
        assert cmd.owner_only is False

    def test_category_precedence(self) -> None:
        """Test explicit category beats directory category, then general."""
        explicit = Command.from_definition(
            {"name": "a", "execute": noop, "category": "Fun"}, category="media"
        )
        directory = Command.from_definition({"name": "b", "execute": noop}, category="media")
        default = Command.from_definition({"name": "c", "execute": noop})
        assert explicit.category == "fun"
        assert directory.category == "media"
        assert default.category == "general"

    def test_string_alias(self) -> None:
        """Test a single alias given as a string."""
        cmd = Command.from_definition({"name": "ping", "execute": noop, "aliases": "p"})
        assert cmd.aliases == ("p",)

    def test_invalid_cooldown(self) -> None:
        """Test non-numeric and negative cooldowns are rejected."""
        with pytest.raises(CommandValidationError):
            Command.from_definition({"name": "x", "execute": noop, "cooldown": "soon"})
        with pytest.raises(CommandValidationError):
            Command(name="x", handler=noop, cooldown=-1)


class TestCommandRegistry:
    """Test registry registration, conflicts and lookup."""

    def test_resolve_by_name_and_alias(self, registry: CommandRegistry) -> None:
        """Test case-insensitive resolution by name and alias."""
        cmd = registry.register(Command(name="ping", handler=noop, aliases=("p",)))
        assert registry.resolve("PING") is cmd
        assert registry.resolve("P") is cmd
        assert registry.resolve("pong") is None
        assert registry.resolve("") is None

    @pytest.mark.parametrize(
        "second",
        [
            Command(name="ping", handler=noop),
            Command(name="other", handler=noop, aliases=("ping",)),
            Command(name="p", handler=noop),
            Command(name="other", handler=noop, aliases=("p",)),
        ],
        ids=["name-name", "alias-name", "name-alias", "alias-alias"],
    )
    def test_conflicts_rejected(self, registry: CommandRegistry, second: Command) -> None:
        """Test every kind of name/alias collision raises a conflict."""
        first = registry.register(Command(name="ping", handler=noop, aliases=("p",)))
        with pytest.raises(CommandConflictError):
            registry.register(second)
        assert registry.resolve("ping") is first
        assert registry.resolve("p") is first
        assert registry.resolve("other") is None

    def test_conflict_is_all_or_nothing(self, registry: CommandRegistry) -> None:
        """Test a partially conflicting command registers none of its tokens."""
        registry.register(Command(name="menu", handler=noop))
        with pytest.raises(CommandConflictError) as exc_info:
            registry.register(Command(name="help", handler=noop, aliases=("h", "menu")))
        assert exc_info.value.token == "menu"
        assert exc_info.value.owner == "menu"
        assert registry.resolve("help") is None
        assert registry.resolve("h") is None
        assert len(registry) == 1

    def test_unregister_removes_aliases(self, registry: CommandRegistry) -> None:
        """Test removing a command removes every alias pointing at it."""
        registry.register(Command(name="help", handler=noop, aliases=("h", "menu")))
        assert registry.unregister("HELP") is True
        assert registry.resolve("h") is None
        assert registry.resolve("menu") is None
        assert registry._aliases == {}
        assert registry.unregister("help") is False

    def test_replace_swaps_definition(self, registry: CommandRegistry) -> None:
        """Test replace publishes the new definition and drops old aliases."""
        registry.register(Command(name="ping", handler=noop, aliases=("p", "pp")))
        new = registry.replace(
            Command(name="ping", handler=noop, aliases=("p",), description="v2")
        )
        assert registry.resolve("ping") is new
        assert registry.resolve("p") is new
        assert registry.resolve("pp") is None

    def test_replace_conflict_keeps_old(self, registry: CommandRegistry) -> None:
        """Test a conflicting replacement leaves the old command in place."""
        old = registry.register(Command(name="ping", handler=noop, aliases=("p",)))
        registry.register(Command(name="help", handler=noop, aliases=("h",)))
        with pytest.raises(CommandConflictError):
            registry.replace(Command(name="ping", handler=noop, aliases=("h",)))
        assert registry.resolve("ping") is old
        assert registry.resolve("p") is old
        assert registry.resolve("h").name == "help"

    def test_replace_with_rename(self, registry: CommandRegistry) -> None:
        """Test a renamed replacement drops the previous name and its aliases."""
        registry.register(Command(name="ping", handler=noop, aliases=("p",)))
        new = registry.replace(Command(name="pong", handler=noop, aliases=("p",)), previous="ping")
        assert registry.resolve("ping") is None
        assert registry.resolve("p") is new
        assert len(registry) == 1

    def test_rename_conflict_keeps_old(self, registry: CommandRegistry) -> None:
        """Test a renamed replacement that conflicts keeps the previous command."""
        old = registry.register(Command(name="ping", handler=noop, aliases=("p",)))
        registry.register(Command(name="help", handler=noop))
        with pytest.raises(CommandConflictError):
            registry.replace(Command(name="help", handler=noop), previous="ping")
        assert registry.resolve("ping") is old
        assert registry.resolve("p") is old

    def test_resolve_sees_old_tables_during_mutation(self, registry: CommandRegistry) -> None:
        """Test mutations publish new tables instead of editing in place."""
        registry.register(Command(name="ping", handler=noop))
        before = registry._commands
        registry.register(Command(name="help", handler=noop))
        assert "help" not in before
        assert registry._commands is not before

    def test_list_by_category_and_categories(self, registry: CommandRegistry) -> None:
        """Test category listings are deduplicated and counted."""
        registry.register(Command(name="ping", handler=noop, aliases=("p",)))
        registry.register(Command(name="help", handler=noop, aliases=("h", "menu")))
        registry.register(Command(name="config", handler=noop, category="owner_tools"))

        general = registry.list_by_category("GENERAL")
        assert [c.name for c in general] == ["ping", "help"]

        categories = registry.categories()
        assert list(categories) == ["general", "owner_tools"]
        assert categories["general"].count == 2
        assert categories["owner_tools"].name == "Owner Tools"

    def test_format_category_name(self) -> None:
        """Test display formatting of category keys."""
        assert format_category_name("fun-games") == "Fun Games"
        assert format_category_name("general") == "General"

    def test_register_rejects_invalid(self, registry: CommandRegistry) -> None:
        """Test non-command objects are rejected."""
        with pytest.raises(CommandValidationError):
            registry.register(None)


@pytest.fixture
def command_package(tmp_path, monkeypatch):
    """Create an importable throwaway command package on disk."""
    monkeypatch.setattr(sys, "dont_write_bytecode", True)
    name = f"cmdpkg_{uuid.uuid4().hex[:8]}"
    root = tmp_path / name
    (root / "owner").mkdir(parents=True)
    (root / "__init__.py").write_text("")
    (root / "owner" / "__init__.py").write_text("")

    def write(relative: str, body: str) -> None:
        (root / relative).write_text(textwrap.dedent(body))

    write(
        "hello.py",
        """
        async def execute(bot, event, args, context):
            return "hi"

        command = {"name": "hello", "aliases": ["hi"], "description": "v1",
                   "execute": execute}
        """,
    )
    write(
        "owner/secret.py",
        """
        async def execute(bot, event, args, context):
            return None

        command = {"name": "secret", "execute": execute}
        """,
    )
    write("broken.py", 'command = {"name": "broken"}\n')
    write(
        "zz_dupe.py",
        """
        async def execute(bot, event, args, context):
            return None

        command = {"name": "zz_dupe", "aliases": ["hi"], "execute": execute}
        """,
    )
    write("explodes.py", "raise RuntimeError('import failure')\n")

    monkeypatch.syspath_prepend(str(tmp_path))
    importlib.invalidate_caches()
    yield name, write
    for module in [m for m in sys.modules if m == name or m.startswith(name + ".")]:
        del sys.modules[module]


class TestCommandLoader:
    """Test command discovery from packages."""

    def test_load_all_skips_invalid(self, registry: CommandRegistry, command_package) -> None:
        """Test invalid, conflicting and failing modules are skipped."""
        name, _ = command_package
        loader = CommandLoader(registry, name)

        assert loader.load_all() == 2
        assert registry.resolve("hi").name == "hello"
        assert registry.resolve("broken") is None
        assert registry.resolve("zz_dupe") is None
        assert registry.resolve("hello").source == f"{name}.hello"

    def test_subpackage_category(self, registry: CommandRegistry, command_package) -> None:
        """Test sub-package name becomes the category and owner implies owner-only."""
        name, _ = command_package
        CommandLoader(registry, name).load_all()

        secret = registry.resolve("secret")
        assert secret.category == "owner"
        assert secret.owner_only is True
        assert registry.resolve("hello").category == "general"

    def test_reload_replaces_command(self, registry: CommandRegistry, command_package) -> None:
        """Test reloading picks up edited module source."""
        name, write = command_package
        loader = CommandLoader(registry, name)
        loader.load_all()

        write(
            "hello.py",
            """
            async def execute(bot, event, args, context):
                return "hey"

            command = {"name": "hello", "aliases": ["hey"], "description": "v2",
                       "execute": execute}
            """,
        )
        importlib.invalidate_caches()

        reloaded = loader.reload("hi")
        assert reloaded is not None
        assert reloaded.description == "v2"
        assert registry.resolve("hey") is reloaded
        assert registry.resolve("hi") is None

    def test_reload_broken_module_unregisters(
        self, registry: CommandRegistry, command_package
    ) -> None:
        """Test a module that no longer defines a command is unregistered."""
        name, write = command_package
        loader = CommandLoader(registry, name)
        loader.load_all()

        write("hello.py", 'command = {"name": "hello"}\n')
        importlib.invalidate_caches()

        assert loader.reload("hello") is None
        assert registry.resolve("hello") is None

    def test_reload_rename_conflict_keeps_command(
        self, registry: CommandRegistry, command_package
    ) -> None:
        """Test a reload that renames onto a taken name leaves the old command."""
        name, write = command_package
        loader = CommandLoader(registry, name)
        loader.load_all()
        old = registry.resolve("hello")

        write(
            "hello.py",
            """
            async def execute(bot, event, args, context):
                return None

            command = {"name": "secret", "execute": execute}
            """,
        )
        importlib.invalidate_caches()

        assert loader.reload("hello") is None
        assert registry.resolve("hello") is old
        assert registry.resolve("hi") is old
        assert registry.resolve("secret").category == "owner"

    def test_missing_package(self, registry: CommandRegistry) -> None:
        """Test a missing package loads nothing instead of raising."""
        assert CommandLoader(registry, "no_such_package_xyz").load_all() == 0

    def test_builtin_commands(self, registry: CommandRegistry) -> None:
        """Test the bundled command package loads every built-in command."""
        count = CommandLoader(registry, "src.commands").load_all()

        assert count == 10
        assert registry.resolve("menu").name == "help"
        assert registry.resolve("p").name == "ping"
        assert registry.resolve("botinfo").name == "info"
        assert registry.resolve("settings").owner_only is True
        assert registry.resolve("reload").owner_only is True
        assert registry.resolve("ping").cooldown == 5
        assert registry.resolve("pfp").name == "avatar"
        assert registry.resolve("setname").owner_only is True
        promote = registry.resolve("promote")
        assert promote.category == "group"
        assert promote.group_only is True
        assert promote.admin_only is True
