"""Demote command: removes group admin rights."""

from typing import Any

from src.commands.group import change_roles


async def execute(bot: Any, event: dict[str, Any], args: list[str], context: Any) -> None:
    await change_roles(bot, event, context, "demote")


command = {
    "name": "demote",
    "description": "Remove admin rights from the mentioned users",
    "usage": "{prefix}demote @user",
    "groupOnly": True,
    "adminOnly": True,
    "cooldown": 3,
    "execute": execute,
}
