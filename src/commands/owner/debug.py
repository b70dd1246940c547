"""Debug command: registry and invocation context dump."""

from collections import Counter
from typing import Any

from src.core.messaging.content import message_type, phone_number, quoted_message_id


def reaction_summary(bot: Any, message_id: str | None) -> str | None:
    """Summarize reactions on a message, e.g. "👍 x2, ❤️ x1"."""
    if not message_id or getattr(bot, "reactions", None) is None:
        return None
    counts = Counter(r.emoji for r in bot.reactions.for_message(message_id))
    if not counts:
        return "none"
    return ", ".join(f"{emoji} x{n}" for emoji, n in counts.most_common())


async def execute(bot: Any, event: dict[str, Any], args: list[str], context: Any) -> None:
    registry = bot.registry
    key = event.get("key") or {}
    categories = registry.categories()

    lines = [
        "*🔍 Debug Information*",
        "",
        f"*Commands loaded:* {len(registry)}",
        f"*Categories:* {len(categories)}",
        f"*Commands:* {', '.join(c.name for c in registry.all())}",
        f"*Categories:* {', '.join(categories)}",
        f"*Queue:* {bot.send_queue.pending} pending",
        "",
        "*Context:*",
        f"isGroup: {context.is_group}",
        f"isOwner: {context.is_owner}",
        f"isAdmin: {context.is_admin}",
        "",
        "*Message Information:*",
        f"From: {context.chat_id}",
        f"Sender: {context.sender}",
        f"Message ID: {key.get('id')}",
        f"Timestamp: {event.get('messageTimestamp')}",
        f"Message Type: {message_type(event)}",
    ]

    quoted_id = quoted_message_id(event)
    reactions = reaction_summary(bot, quoted_id)
    if reactions is not None:
        lines.append(f"Quoted Message Reactions ({quoted_id}): {reactions}")

    lines += [
        "",
        "*User Information:*",
        f"User Name: {context.push_name or '-'}",
        f"User Phone Number: {phone_number(context.sender)}",
    ]
    await bot.reply(event, "\n".join(lines))


command = {
    "name": "debug",
    "description": "Debug information",
    "execute": execute,
}
