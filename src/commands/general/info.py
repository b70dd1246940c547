"""Info command: bot details, performance and message statistics."""

import platform
from typing import Any

try:
    import resource
except ImportError:  # Windows
    resource = None


def peak_memory_mb() -> float | None:
    """Peak resident memory of this process in MB, if the platform reports it."""
    if resource is None:
        return None
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS and kilobytes elsewhere
    divisor = 1024 * 1024 if platform.system() == "Darwin" else 1024
    return round(peak / divisor, 1)


def build_info(bot: Any) -> str:
    stats = bot.get_stats()
    messages = stats["messages"]
    ratio = f"{messages['received'] / messages['sent']:.1f}" if messages["sent"] else "0"
    categories = bot.registry.categories() if bot.registry is not None else {}
    command_count = len(bot.registry) if bot.registry is not None else "N/A"
    memory = peak_memory_mb()
    name = bot.settings.bot_name

    lines = [
        f"*🤖 {name} Information*",
        "",
        "*━━━━ Bot Details ━━━━*",
        f"👤 *Name:* {name}",
        f"⚡ *Runtime:* {platform.python_implementation()} {platform.python_version()}",
        f"🧩 *Commands:* {command_count} ({len(categories)} categories)",
        f"✅ *Status:* {'Connected' if stats['is_connected'] else 'Disconnected'}",
        "",
        "*━━━━ Performance ━━━━*",
        f"⏱️ *Uptime:* {stats['formatted_uptime']}",
        f"🧠 *Peak Memory:* {f'{memory}MB' if memory is not None else 'N/A'}",
        f"🔁 *Reconnects:* {stats['reconnect_count']}",
        "",
        "*━━━━ Statistics ━━━━*",
        f"📥 *Messages Received:* {messages['received']:,}",
        f"📤 *Messages Sent:* {messages['sent']:,}",
        f"📊 *Msg Ratio:* {ratio}:1 (received:sent)",
    ]
    return "\n".join(lines)


async def execute(bot: Any, event: dict[str, Any], args: list[str], context: Any) -> None:
    await bot.reply(event, build_info(bot))


command = {
    "name": "info",
    "description": "Show bot information and statistics",
    "aliases": ["stats", "about", "botinfo"],
    "cooldown": 10,
    "execute": execute,
}
