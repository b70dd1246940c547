# src/core/commands/permissions.py
"""Access policy evaluation for commands.

evaluate() is a pure function: the first failing check wins, in the order
group-only, private-only, owner-only, admin-only.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from src.core.commands.models import Command, CommandContext

GROUP_ONLY = "group-only"
PRIVATE_ONLY = "private-only"
OWNER_ONLY = "owner-only"
ADMIN_ONLY = "admin-only"

DENIAL_MESSAGES: dict[str, str] = {
    GROUP_ONLY: "❌ This command can only be used in groups.",
    PRIVATE_ONLY: "❌ This command can only be used in private chats.",
    OWNER_ONLY: "❌ This command can only be used by the bot owner.",
    ADMIN_ONLY: "❌ This command can only be used by group admins.",
}

ADMIN_ROLES = frozenset({"admin", "superadmin"})


@dataclass(frozen=True)
class PermissionResult:
    """Outcome of a permission check.

    Attributes:
        allowed: True if the command may run.
        reason: One of the denial reason constants when denied.
    """

    allowed: bool
    reason: str | None = None

    @property
    def message(self) -> str | None:
        """User-facing denial text, None when allowed."""
        if self.reason is None:
            return None
        return DENIAL_MESSAGES.get(self.reason, "❌ You cannot use this command here.")


ALLOWED = PermissionResult(allowed=True)


def evaluate(command: Command, context: CommandContext) -> PermissionResult:
    """Evaluate a command's access flags against the invoking context.

    Args:
        command: Command being invoked.
        context: Resolved execution context.

    Returns:
        PermissionResult with the first failing reason, or ALLOWED.
    """
    if command.group_only and not context.is_group:
        return PermissionResult(allowed=False, reason=GROUP_ONLY)
    if command.private_only and context.is_group:
        return PermissionResult(allowed=False, reason=PRIVATE_ONLY)
    if command.owner_only and not context.is_owner:
        return PermissionResult(allowed=False, reason=OWNER_ONLY)
    if command.admin_only and context.is_group and not context.is_admin:
        return PermissionResult(allowed=False, reason=ADMIN_ONLY)
    return ALLOWED


def bare_id(jid: str) -> str:
    """Strip the server and device parts of a JID.

    "628123:12@s.whatsapp.net" -> "628123"
    """
    return jid.split("@", 1)[0].split(":", 1)[0]


def is_owner(jid: str | None, owners: Iterable[str]) -> bool:
    """Check whether a JID belongs to one of the configured owners."""
    if not jid:
        return False
    return bare_id(jid) in {bare_id(owner) for owner in owners if owner}


def is_group_admin(jid: str | None, metadata: Mapping[str, Any] | None) -> bool:
    """Check whether a JID is an admin in the given group metadata."""
    if not jid or not metadata:
        return False
    for participant in metadata.get("participants") or ():
        if participant.get("id") == jid and participant.get("admin") in ADMIN_ROLES:
            return True
    return False
