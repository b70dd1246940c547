"""Config command: view and change persisted bot settings."""

import logging
from typing import Any

from pydantic import ValidationError

from src.config import save_settings

logger = logging.getLogger(__name__)

ON_VALUES = ("on", "true")
OFF_VALUES = ("off", "false")


def render_config(settings: Any) -> str:
    return (
        "*🤖 Bot Configuration*\n\n"
        f"• Prefix: {settings.prefix}\n"
        f"• Private Mode: {'✅ ON' if settings.private_mode else '❌ OFF'}\n"
        f"• Read Receipts: {'✅ ON' if settings.enable_read_receipts else '❌ OFF'}\n"
        f"• Typing Indicator: {'✅ ON' if settings.enable_typing_indicator else '❌ OFF'}\n"
        f"• Owners: {', '.join(settings.owners) or '-'}"
    )


def _persist(settings: Any) -> str | None:
    """Save settings; returns a warning suffix if saving failed."""
    if save_settings(settings):
        return None
    return "\n\n⚠️ Setting was changed but the configuration could not be saved."


async def execute(bot: Any, event: dict[str, Any], args: list[str], context: Any) -> None:
    settings = bot.settings
    if not args:
        await bot.reply(event, render_config(settings))
        return

    setting = args[0].lower()
    value = args[1] if len(args) > 1 else None

    if setting in ("privatemode", "private"):
        flag = (value or "").lower()
        if flag in ON_VALUES:
            settings.private_mode = True
            text = (
                "✅ Private mode has been *enabled*. "
                "Bot will only respond to owners and admins."
            )
        elif flag in OFF_VALUES:
            settings.private_mode = False
            text = "✅ Private mode has been *disabled*. Bot will respond to everyone."
        else:
            await bot.reply(event, "❌ Invalid value. Use 'on' or 'off'.")
            return
    elif setting == "prefix":
        if not value:
            await bot.reply(event, f"❌ Usage: {context.prefix}config prefix <new prefix>")
            return
        try:
            settings.prefix = value
        except ValidationError:
            await bot.reply(event, "❌ Invalid prefix.")
            return
        text = f"✅ Prefix changed to *{value}*"
    else:
        await bot.reply(
            event,
            f"❌ Unknown setting: {setting}\n\nAvailable settings:\n- privatemode\n- prefix",
        )
        return

    logger.info("Configuration changed by %s: %s=%s", context.sender, setting, value)
    warning = _persist(settings)
    await bot.reply(event, text + (warning or ""))


command = {
    "name": "config",
    "description": "Configure bot settings",
    "aliases": ["settings", "setting"],
    "usage": "{prefix}config [setting] [value]",
    "examples": ["{prefix}config privatemode on", "{prefix}config prefix ."],
    "execute": execute,
}
