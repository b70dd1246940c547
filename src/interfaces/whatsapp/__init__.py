"""WhatsApp interface: transport, bot facade, event handlers and wiring."""

from src.interfaces.whatsapp.bot import App, create_app, main, start_bot
from src.interfaces.whatsapp.facade import Bot, format_uptime
from src.interfaces.whatsapp.handlers import MessageHandler, ReactionTracker
from src.interfaces.whatsapp.transport import BridgeTransport, Transport

__all__ = [
    "App",
    "Bot",
    "BridgeTransport",
    "MessageHandler",
    "ReactionTracker",
    "Transport",
    "create_app",
    "format_uptime",
    "main",
    "start_bot",
]
