"""Tests for the command permission gate."""

import pytest
from conftest import GROUP_CHAT, OWNER, PRIVATE_CHAT

from src.core.commands.models import Command, CommandContext
from src.core.commands.permissions import (
    ADMIN_ONLY,
    GROUP_ONLY,
    OWNER_ONLY,
    PRIVATE_ONLY,
    bare_id,
    evaluate,
    is_group_admin,
    is_owner,
)


async def noop(bot, event, args, context):
    return None


def make_context(
    command: Command,
    is_group: bool = False,
    is_owner: bool = False,
    is_admin: bool = False,
) -> CommandContext:
    return CommandContext(
        is_group=is_group,
        is_owner=is_owner,
        is_admin=is_admin,
        is_private=not is_group,
        sender="628999@s.whatsapp.net",
        chat_id=GROUP_CHAT if is_group else PRIVATE_CHAT,
        push_name="Tester",
        command=command,
        prefix="!",
    )


class TestEvaluate:
    """Test permission evaluation order and outcomes."""

    def test_unrestricted_command_allowed(self) -> None:
        """Test a command without flags is allowed everywhere."""
        cmd = Command(name="ping", handler=noop)
        assert evaluate(cmd, make_context(cmd)).allowed is True
        assert evaluate(cmd, make_context(cmd, is_group=True)).allowed is True

    def test_group_only_in_private(self) -> None:
        """Test group-only commands are denied in private chats."""
        cmd = Command(name="kick", handler=noop, group_only=True)
        result = evaluate(cmd, make_context(cmd))
        assert result.allowed is False
        assert result.reason == GROUP_ONLY
        assert result.message == "❌ This command can only be used in groups."

    def test_private_only_in_group(self) -> None:
        """Test private-only commands are denied in groups."""
        cmd = Command(name="secret", handler=noop, private_only=True)
        result = evaluate(cmd, make_context(cmd, is_group=True))
        assert result.reason == PRIVATE_ONLY

    def test_owner_only(self) -> None:
        """Test owner-only commands need an owner."""
        cmd = Command(name="config", handler=noop, owner_only=True)
        denied = evaluate(cmd, make_context(cmd))
        assert denied.reason == OWNER_ONLY
        assert denied.message == "❌ This command can only be used by the bot owner."
        assert evaluate(cmd, make_context(cmd, is_owner=True)).allowed is True

    def test_admin_only_applies_in_groups(self) -> None:
        """Test admin-only denies non-admins in groups but not private chats."""
        cmd = Command(name="mute", handler=noop, admin_only=True)
        assert evaluate(cmd, make_context(cmd, is_group=True)).reason == ADMIN_ONLY
        assert evaluate(cmd, make_context(cmd, is_group=True, is_admin=True)).allowed
        assert evaluate(cmd, make_context(cmd)).allowed is True

    def test_owner_is_not_admin(self) -> None:
        """Test owners are not exempt from admin-only checks."""
        cmd = Command(name="mute", handler=noop, admin_only=True)
        result = evaluate(cmd, make_context(cmd, is_group=True, is_owner=True))
        assert result.reason == ADMIN_ONLY

    def test_first_failing_check_wins(self) -> None:
        """Test group-only is reported before owner-only."""
        cmd = Command(name="ban", handler=noop, group_only=True, owner_only=True)
        assert evaluate(cmd, make_context(cmd)).reason == GROUP_ONLY

    def test_allowed_has_no_message(self) -> None:
        """Test allowed results carry no denial text."""
        cmd = Command(name="ping", handler=noop)
        assert evaluate(cmd, make_context(cmd)).message is None


class TestIdentityHelpers:
    """Test owner and admin identity helpers."""

    @pytest.mark.parametrize(
        "jid",
        [f"{OWNER}@s.whatsapp.net", f"{OWNER}:7@s.whatsapp.net", OWNER],
    )
    def test_is_owner_matches_bare_number(self, jid: str) -> None:
        """Test owner matching ignores server and device suffixes."""
        assert is_owner(jid, [OWNER]) is True

    def test_is_owner_rejects_others(self) -> None:
        """Test unknown and missing senders are not owners."""
        assert is_owner("628000@s.whatsapp.net", [OWNER]) is False
        assert is_owner(None, [OWNER]) is False
        assert is_owner(f"{OWNER}@s.whatsapp.net", []) is False

    def test_bare_id(self) -> None:
        """Test JID normalization."""
        assert bare_id("628123:12@s.whatsapp.net") == "628123"

    def test_is_group_admin(self) -> None:
        """Test admin and superadmin roles count as admins."""
        metadata = {
            "participants": [
                {"id": "1@s.whatsapp.net", "admin": "admin"},
                {"id": "2@s.whatsapp.net", "admin": "superadmin"},
                {"id": "3@s.whatsapp.net", "admin": None},
            ]
        }
        assert is_group_admin("1@s.whatsapp.net", metadata) is True
        assert is_group_admin("2@s.whatsapp.net", metadata) is True
        assert is_group_admin("3@s.whatsapp.net", metadata) is False
        assert is_group_admin("1@s.whatsapp.net", None) is False
