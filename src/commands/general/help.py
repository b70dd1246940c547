"""Help command: lists commands by category or shows one command in detail."""

from typing import Any

from src.core.commands.models import Command
from src.core.commands.registry import format_category_name

HEADER = "*🤖 {bot_name} Command Center*"
FOOTER = "✨ Use *{prefix}help <command>* for detailed info on any command."
NOT_FOUND = "❌ Command *{command}* not found. Try *{prefix}help* to see all commands."
CATEGORY_HEADER = "━━━━━ *{category}* ━━━━━"
STATS = "*🔎 {total}* commands across *{categories}* categories"

CATEGORY_EMOJIS = {
    "general": "🔧",
    "media": "🎬",
    "fun": "🎮",
    "utility": "🛠️",
    "admin": "⚙️",
    "owner": "👑",
    "sticker": "🖼️",
    "group": "👥",
    "download": "📥",
    "info": "ℹ️",
    "game": "🎲",
}


def category_emoji(category: str) -> str:
    return CATEGORY_EMOJIS.get(category.lower(), "📌")


def badges(command: Command) -> str:
    marks = []
    if command.owner_only:
        marks.append("👑")
    if command.group_only:
        marks.append("👥")
    if command.private_only:
        marks.append("💌")
    return f" {''.join(marks)}" if marks else ""


def render_all(registry: Any, prefix: str, bot_name: str) -> str:
    categories = registry.categories()
    total = sum(info.count for info in categories.values())
    lines = [HEADER.format(bot_name=bot_name), ""]
    lines.append(STATS.format(total=total, categories=len(categories)))
    lines.append("")

    for key, info in categories.items():
        title = f"{category_emoji(key)} {info.name}"
        lines.append(CATEGORY_HEADER.format(category=title))
        for command in registry.list_by_category(key):
            description = command.description or "No description"
            lines.append(f"  • *{prefix}{command.name}*{badges(command)} - {description}")
        lines.append("")

    lines.append(FOOTER.format(prefix=prefix))
    return "\n".join(lines)


def render_category(registry: Any, category: str, prefix: str) -> str | None:
    commands = registry.list_by_category(category)
    if not commands:
        return None

    lines = [f"*{category_emoji(category)} {format_category_name(category)} Commands*", ""]
    for command in commands:
        lines.append(f"• *{prefix}{command.name}*{badges(command)}")
        lines.append(f"  ↳ {command.description or 'No description'}")
        if command.aliases:
            lines.append(f"  ↳ Aliases: {', '.join(command.aliases)}")
        lines.append("")

    lines.append(FOOTER.format(prefix=prefix))
    return "\n".join(lines)


def render_command(command: Command, prefix: str) -> str:
    sections = [
        f"*{category_emoji(command.category)} Command: {prefix}{command.name}*",
        f"*Description:* {command.description or 'No description'}",
    ]

    notes = []
    if command.owner_only:
        notes.append("👑 Owner-only command")
    if command.group_only:
        notes.append("👥 Group-only command")
    if command.private_only:
        notes.append("💌 Private chat only command")
    if command.admin_only:
        notes.append("⚙️ Group admin command")
    if notes:
        sections.append(f"*Notes:* {', '.join(notes)}")

    if command.aliases:
        sections.append(f"*Aliases:* {', '.join(command.aliases)}")
    if command.usage:
        sections.append(f"*Usage:* {command.usage.replace('{prefix}', prefix)}")
    if command.examples:
        examples = "\n".join(
            f"  • {example.replace('{prefix}', prefix)}" for example in command.examples
        )
        sections.append(f"💡 Examples:\n{examples}")
    if command.cooldown:
        sections.append(f"*Cooldown:* {command.cooldown} seconds")

    sections.append(f"*Category:* {command.category}")
    return "\n\n".join(sections)


async def execute(bot: Any, event: dict[str, Any], args: list[str], context: Any) -> None:
    registry = bot.registry
    prefix = context.prefix

    if args and args[0].lower().startswith("category:"):
        category = args[0][len("category:"):].lower()
        text = render_category(registry, category, prefix)
        if text is None:
            text = f"❌ No commands found in category *{category}*"
        await bot.reply(event, text)
        return

    if not args:
        await bot.reply(event, render_all(registry, prefix, bot.settings.bot_name))
        return

    name = args[0].lower()
    command = registry.resolve(name)
    if command is None:
        await bot.reply(event, NOT_FOUND.format(command=name, prefix=prefix))
        return
    await bot.reply(event, render_command(command, prefix))


command = {
    "name": "help",
    "description": "Display available commands or command info",
    "aliases": ["h", "menu", "commands"],
    "usage": "{prefix}help [command] | {prefix}help category:[category]",
    "examples": ["{prefix}help", "{prefix}help ping", "{prefix}help category:general"],
    "cooldown": 5,
    "execute": execute,
}
