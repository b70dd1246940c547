"""Setname command: changes the bot account's profile name."""

import logging
from typing import Any

from src.core.errors import TransportError

logger = logging.getLogger(__name__)


async def execute(bot: Any, event: dict[str, Any], args: list[str], context: Any) -> None:
    name = " ".join(args).strip()
    if not name:
        await bot.reply(event, f"⚠️ Please provide a name. Usage: {context.prefix}setname <name>")
        return

    try:
        await bot.transport.update_profile_name(name)
    except TransportError as e:
        logger.error("Failed to update profile name: %s", e)
        await bot.reply(event, "⚠️ Could not change the profile name.")
        return

    await bot.reply(event, f'✅ Profile name changed to "{name}"')


command = {
    "name": "setname",
    "description": "Set bot profile name",
    "usage": "{prefix}setname <name>",
    "execute": execute,
}
