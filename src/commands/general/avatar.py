"""Avatar command: sends a user's profile picture."""

import logging
from typing import Any

import aiohttp

from src.core.messaging.content import phone_number, target_jids

logger = logging.getLogger(__name__)


async def execute(bot: Any, event: dict[str, Any], args: list[str], context: Any) -> None:
    targets = target_jids(event)
    target = targets[0] if targets else context.sender
    contacts = bot.contacts
    name = await contacts.get_name(target) if contacts is not None else phone_number(target)

    try:
        await bot.transport.send_presence(context.chat_id, "composing")
    except Exception as e:
        logger.debug("Typing indicator unavailable: %s", e)

    url = await contacts.get_profile_picture(target) if contacts is not None else None
    if not url:
        await bot.reply(event, f"❌ No profile picture found for *{name}*.")
        return

    try:
        await bot.send_image(
            context.chat_id, url, f"🖼️ Profile picture of *{name}*", quoted=event
        )
    except aiohttp.ClientError as e:
        logger.error("Could not download profile picture of %s: %s", target, e)
        await bot.reply(event, "❌ Could not download the profile picture.")


command = {
    "name": "avatar",
    "description": "Display user profile picture",
    "aliases": ["pfp", "dp", "profile"],
    "usage": "{prefix}avatar [@mention or reply]",
    "cooldown": 5,
    "execute": execute,
}
