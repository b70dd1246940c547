"""Reload command: re-imports command modules without restarting."""

from typing import Any


async def execute(bot: Any, event: dict[str, Any], args: list[str], context: Any) -> None:
    loader = bot.loader
    if loader is None:
        await bot.reply(event, "❌ Command reloading is not available.")
        return

    if not args:
        count = loader.reload_all()
        await bot.reply(event, f"♻️ Reloaded {count} commands.")
        return

    name = args[0].lower()
    if bot.registry.resolve(name) is None:
        await bot.reply(event, f"❌ Command *{name}* not found.")
        return

    command = loader.reload(name)
    if command is None:
        if bot.registry.resolve(name) is None:
            await bot.reply(event, f"⚠️ Command *{name}* failed to reload and was removed.")
        else:
            await bot.reply(event, f"⚠️ Command *{name}* could not be reloaded.")
    else:
        await bot.reply(event, f"♻️ Reloaded *{command.name}*.")


command = {
    "name": "reload",
    "description": "Reload one command or all commands",
    "usage": "{prefix}reload [command]",
    "execute": execute,
}
