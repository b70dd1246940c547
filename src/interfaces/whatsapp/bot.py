# src/interfaces/whatsapp/bot.py
"""WhatsApp bot wiring and process entry point.

create_app() builds every service once and injects them into each other.
start_bot() runs the app until SIGINT/SIGTERM, then shuts down in reverse
order: background jobs flush the stores, the send queue is closed and the
transport disconnects without logging the session out.
"""

import asyncio
import contextlib
import logging
import os
import signal
from dataclasses import dataclass, field
from typing import Any

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from src.config import Settings, get_settings
from src.core.commands.cooldown import CooldownTracker
from src.core.commands.dispatcher import Dispatcher
from src.core.commands.loader import CommandLoader
from src.core.commands.registry import CommandRegistry
from src.core.contacts import ContactManager, GroupManager
from src.core.errors import TransportError
from src.core.lifecycle import LifecycleManager
from src.core.messaging.queue import SendQueue
from src.core.store import BackgroundJobs, KeyValueStore, MessageStore
from src.interfaces.whatsapp.facade import Bot
from src.interfaces.whatsapp.handlers import MessageHandler, ReactionTracker
from src.interfaces.whatsapp.transport import BridgeTransport
from src.utils.logging import configure_logging
from src.utils.media import close_aiohttp_session
from src.utils.observability import setup_logfire

logger = logging.getLogger(__name__)

KV_STORES = ("users", "groups")


@dataclass
class App:
    """All long-lived services of one bot process."""

    settings: Settings
    transport: Any
    registry: CommandRegistry
    loader: CommandLoader
    cooldowns: CooldownTracker
    send_queue: SendQueue
    contacts: ContactManager
    groups: GroupManager
    store: MessageStore
    kv: dict[str, KeyValueStore]
    jobs: BackgroundJobs
    bot: Bot
    dispatcher: Dispatcher
    messages: MessageHandler
    reactions: ReactionTracker
    lifecycle: LifecycleManager = field(default_factory=LifecycleManager)


def create_app(settings: Settings | None = None, transport: Any = None) -> App:
    """Build the service graph.

    Args:
        settings: Settings to use. Defaults to the global settings.
        transport: Transport to use. Defaults to a BridgeTransport built from
            settings.

    Returns:
        The wired App. Nothing is started or connected yet.
    """
    settings = settings or get_settings()
    transport = transport or BridgeTransport(
        settings.bridge_url,
        token=settings.bridge_token,
        connection_timeout=settings.connection_timeout,
        max_reconnects=settings.max_reconnects,
        reconnect_interval=settings.reconnect_interval,
    )

    registry = CommandRegistry()
    loader = CommandLoader(registry, settings.commands_package)
    cooldowns = CooldownTracker()
    send_queue = SendQueue(min_interval_ms=settings.send_interval_ms)
    contacts = ContactManager(transport, timeout=settings.metadata_timeout)
    groups = GroupManager(transport, timeout=settings.metadata_timeout)
    store = MessageStore(settings.session_path, limit=settings.message_store_limit)
    kv = {
        name: KeyValueStore(name, os.path.join(settings.data_path, f"{name}.json"))
        for name in KV_STORES
    }

    jobs = BackgroundJobs(interval=settings.autosave_interval)
    jobs.add_store("messages", store)
    for name, db in kv.items():
        jobs.add_store(name, db)

    reactions = ReactionTracker()
    bot = Bot(
        transport,
        send_queue,
        settings,
        registry=registry,
        contacts=contacts,
        groups=groups,
        store=store,
        kv=kv,
        loader=loader,
        reactions=reactions,
    )
    dispatcher = Dispatcher(registry, cooldowns, bot, settings, groups=groups)
    messages = MessageHandler(bot, dispatcher, settings, store=store)

    app = App(
        settings=settings,
        transport=transport,
        registry=registry,
        loader=loader,
        cooldowns=cooldowns,
        send_queue=send_queue,
        contacts=contacts,
        groups=groups,
        store=store,
        kv=kv,
        jobs=jobs,
        bot=bot,
        dispatcher=dispatcher,
        messages=messages,
        reactions=reactions,
    )

    transport.on("messages.upsert", messages.on_messages_upsert)
    transport.on("messages.reaction", reactions.on_reactions)
    transport.on("connection.update", lambda update: _on_connection_update(app, update))
    transport.on("groups.update", lambda updates: _on_groups_update(app, updates))
    transport.on("groups.upsert", lambda groups_: _on_groups_upsert(app, groups_))
    transport.on("contacts.upsert", lambda contacts_: _on_contacts_upsert(app, contacts_))
    return app


async def _on_connection_update(app: App, update: dict[str, Any]) -> None:
    connection = (update or {}).get("connection")
    if connection == "open":
        logger.info("Connected to WhatsApp as %s", (app.transport.user or {}).get("id"))
        try:
            await app.transport.update_profile_status(app.settings.status_message)
        except Exception as e:
            logger.warning("Could not update profile status: %s", e)
    elif connection == "close":
        app.bot.reconnect_count += 1
        logger.warning("WhatsApp connection closed")


def _on_groups_update(app: App, updates: list[dict[str, Any]]) -> None:
    # Partial updates: refetch on next use
    for update in updates or ():
        if update.get("id"):
            app.groups.invalidate(update["id"])


def _on_groups_upsert(app: App, groups: list[dict[str, Any]]) -> None:
    # Full metadata of groups the bot joined
    for metadata in groups or ():
        if metadata.get("id"):
            app.groups.update_cache(metadata["id"], metadata)


def _on_contacts_upsert(app: App, contacts: list[dict[str, Any]]) -> None:
    app.contacts.preload({c["id"]: c for c in contacts or () if c and c.get("id")})


class _Resources:
    """Loads the stores at startup and closes the shared HTTP session."""

    def __init__(self, app: App) -> None:
        self.app = app

    def start(self) -> None:
        self.app.store.load()
        for db in self.app.kv.values():
            db.load()

    async def shutdown(self) -> None:
        await close_aiohttp_session()


class _TransportComponent:
    def __init__(self, transport: Any) -> None:
        self.transport = transport

    async def start(self) -> None:
        await self.transport.connect()

    async def shutdown(self) -> None:
        await self.transport.close()


class _QueueComponent:
    def __init__(self, queue: SendQueue) -> None:
        self.queue = queue

    async def shutdown(self) -> None:
        await self.queue.close()


def register_components(app: App) -> None:
    """Register services with the lifecycle manager.

    Shutdown runs in reverse: stores are flushed, then the send queue is
    closed, then the transport disconnects.
    """
    lifecycle = app.lifecycle
    lifecycle.register("resources", _Resources(app))
    lifecycle.register("transport", _TransportComponent(app.transport))
    lifecycle.register("send_queue", _QueueComponent(app.send_queue))
    lifecycle.register("jobs", app.jobs)


async def start_bot(settings: Settings | None = None, transport: Any = None) -> None:
    """Run the bot until a shutdown signal arrives."""
    app = create_app(settings, transport)
    count = app.loader.load_all()
    logger.info("Starting %s with %d commands", app.settings.bot_name, count)

    register_components(app)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    try:
        await app.lifecycle.startup()
        await stop.wait()
        logger.info("Received shutdown signal")
    except TransportError as e:
        logger.error("Could not start bot: %s", e)
    except asyncio.CancelledError:
        logger.info("Received shutdown signal")
    finally:
        await app.lifecycle.shutdown()
        logger.info("%s stopped", app.settings.bot_name)


def main() -> None:
    """Entry point with graceful shutdown handling."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    setup_logfire()

    try:
        asyncio.run(start_bot(settings))
    except KeyboardInterrupt:
        logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
