"""Group management commands, usable by group admins inside groups."""

from typing import Any

from src.core.messaging.content import phone_number, target_jids

PAST_TENSE = {"promote": "Promoted", "demote": "Demoted"}


async def change_roles(bot: Any, event: dict[str, Any], context: Any, action: str) -> None:
    """Promote or demote the mentioned (or quoted) users."""
    targets = target_jids(event)
    if not targets:
        await bot.reply(
            event, f"❌ Mention a user or reply to their message to {action} them."
        )
        return

    groups = bot.groups
    if not await groups.is_bot_admin(context.chat_id):
        await bot.reply(event, "❌ I need to be a group admin to do that.")
        return

    if action == "promote":
        result = await groups.promote_participants(context.chat_id, targets)
    else:
        result = await groups.demote_participants(context.chat_id, targets)

    if result is None:
        await bot.reply(event, f"❌ Failed to {action} the selected users.")
        return

    names = ", ".join(f"@{phone_number(jid)}" for jid in targets)
    await bot.reply(event, {"text": f"✅ {PAST_TENSE[action]} {names}.", "mentions": targets})
