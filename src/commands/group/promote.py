"""Promote command: makes users group admins."""

from typing import Any

from src.commands.group import change_roles


async def execute(bot: Any, event: dict[str, Any], args: list[str], context: Any) -> None:
    await change_roles(bot, event, context, "promote")


command = {
    "name": "promote",
    "description": "Make the mentioned users group admins",
    "usage": "{prefix}promote @user",
    "groupOnly": True,
    "adminOnly": True,
    "cooldown": 3,
    "execute": execute,
}
