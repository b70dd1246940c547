"""Ping command: reports the reply round-trip time."""

import time
from typing import Any


async def execute(bot: Any, event: dict[str, Any], args: list[str], context: Any) -> None:
    start = time.monotonic()
    sent = await bot.reply(event, "🏓 Pong!")
    elapsed_ms = max(0, round((time.monotonic() - start) * 1000))

    text = f"🏓 Pong! Response time: {elapsed_ms}ms"
    key = (sent or {}).get("key") if isinstance(sent, dict) else None
    if key:
        await bot.send_message(context.chat_id, {"text": text, "edit": key})
    else:
        await bot.reply(event, text)


command = {
    "name": "ping",
    "description": "Check bot response time",
    "aliases": ["p"],
    "cooldown": 5,
    "execute": execute,
}
