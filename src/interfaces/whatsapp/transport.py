# src/interfaces/whatsapp/transport.py
"""WhatsApp transport over a websocket bridge.

The WhatsApp protocol itself is spoken by a Baileys bridge process. This
module talks to that bridge with JSON frames over a websocket:

    request  -> {"type": "request", "requestId", "method", "params", "token"}
    response <- {"type": "response", "requestId", "ok", "result" | "error"}
    event    <- {"type": "event", "event": "messages.upsert", "data": {...}}

Binary values in outbound params (media buffers) are sent as
{"$bytes": "<base64>"}.
"""

import asyncio
import base64
import contextlib
import inspect
import json
import logging
import uuid
from collections import defaultdict
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

import aiohttp
import tenacity

from src.core.errors import BridgeProtocolError, TransportError

logger = logging.getLogger(__name__)

EventCallback = Callable[[Any], Any]

REQUEST_TIMEOUT = 30.0
HEARTBEAT_SECONDS = 20.0
RECONNECT_EXP_BASE = 1.5


@runtime_checkable
class Transport(Protocol):
    """What the bot needs from a WhatsApp connection."""

    @property
    def is_connected(self) -> bool: ...

    @property
    def user(self) -> dict[str, Any] | None: ...

    def on(self, event_name: str, callback: EventCallback) -> None: ...

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def send_message(self, chat: str, content: dict[str, Any], **options: Any) -> Any: ...

    async def send_presence(self, chat: str, state: str) -> None: ...

    async def read_messages(self, keys: list[dict[str, Any]]) -> None: ...

    async def group_metadata(self, jid: str) -> dict[str, Any] | None: ...

    async def contact_query(self, jid: str) -> dict[str, Any] | None: ...

    async def profile_picture_url(self, jid: str) -> str | None: ...

    async def update_profile_status(self, text: str) -> None: ...

    async def update_profile_name(self, name: str) -> None: ...

    async def group_participants_update(
        self, jid: str, participants: list[str], action: str
    ) -> list[dict[str, Any]] | None: ...


def encode_params(value: Any) -> Any:
    """Make outbound params JSON-safe, wrapping bytes as base64."""
    if isinstance(value, (bytes, bytearray)):
        return {"$bytes": base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, dict):
        return {k: encode_params(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_params(v) for v in value]
    return value


def reconnect_policy(max_reconnects: int, reconnect_interval: float) -> tenacity.AsyncRetrying:
    """Build the connect retry policy.

    The wait before retry n is reconnect_interval * 1.5 ** (n - 1), and at
    most max_reconnects retries follow the first attempt.
    """
    return tenacity.AsyncRetrying(
        stop=tenacity.stop_after_attempt(max(0, max_reconnects) + 1),
        wait=tenacity.wait_exponential(
            multiplier=reconnect_interval, exp_base=RECONNECT_EXP_BASE
        ),
        retry=tenacity.retry_if_exception_type(
            (aiohttp.ClientError, asyncio.TimeoutError, OSError)
        ),
        before_sleep=lambda state: logger.warning(
            "Bridge connection failed (attempt %d/%d), retrying in %.1fs",
            state.attempt_number,
            max_reconnects + 1,
            state.next_action.sleep if state.next_action else 0.0,
        ),
        reraise=True,
    )


class BridgeTransport:
    """Transport implementation backed by a Baileys websocket bridge.

    Args:
        url: Bridge websocket URL.
        token: Shared secret sent with every request.
        connection_timeout: Seconds allowed for the websocket handshake.
        request_timeout: Seconds to wait for a response frame.
        max_reconnects: Retries after a failed or dropped connection.
        reconnect_interval: Base delay between retries in seconds.
    """

    def __init__(
        self,
        url: str,
        token: str = "",
        connection_timeout: float = 60.0,
        request_timeout: float = REQUEST_TIMEOUT,
        max_reconnects: int = 5,
        reconnect_interval: float = 3.0,
    ) -> None:
        self.url = url
        self.token = token
        self.connection_timeout = connection_timeout
        self.request_timeout = request_timeout
        self.max_reconnects = max_reconnects
        self.reconnect_interval = reconnect_interval

        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader_task: asyncio.Task | None = None
        self._reconnect_task: asyncio.Task | None = None
        self._pending: dict[str, asyncio.Future] = {}
        self._listeners: dict[str, list[EventCallback]] = defaultdict(list)
        self._callback_tasks: set[asyncio.Task] = set()
        self._send_lock = asyncio.Lock()
        self._state = "close"
        self._user: dict[str, Any] | None = None
        self._closing = False

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and not self._ws.closed and self._state == "open"

    @property
    def user(self) -> dict[str, Any] | None:
        return self._user

    def on(self, event_name: str, callback: EventCallback) -> None:
        """Register a callback for a bridge event (sync or async)."""
        self._listeners[event_name].append(callback)

    async def connect(self) -> None:
        """Connect to the bridge, retrying with backoff.

        Raises:
            TransportError: If every attempt failed.
        """
        self._closing = False
        try:
            async for attempt in reconnect_policy(self.max_reconnects, self.reconnect_interval):
                with attempt:
                    await self._open()
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            if self._session is not None and not self._session.closed:
                await self._session.close()
            self._session = None
            raise TransportError(f"Could not connect to bridge at {self.url}: {e}") from e

    async def _open(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        logger.info("Connecting to WhatsApp bridge at %s", self.url)
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else None
        self._ws = await asyncio.wait_for(
            self._session.ws_connect(
                self.url, headers=headers, heartbeat=HEARTBEAT_SECONDS, max_msg_size=0
            ),
            timeout=self.connection_timeout,
        )
        self._state = "connecting"
        self._reader_task = asyncio.create_task(self._read_loop(self._ws))
        logger.info("Connected to WhatsApp bridge")

    async def close(self) -> None:
        """Close the bridge connection without logging the session out."""
        self._closing = True
        for task in (self._reconnect_task, self._reader_task):
            if task is not None and task is not asyncio.current_task() and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._reconnect_task = None
        self._reader_task = None

        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
        self._state = "close"
        self._fail_pending("Transport closed")
        logger.info("Bridge transport closed")

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._handle_frame(msg.data)
                elif msg.type in (aiohttp.WSMsgType.ERROR, aiohttp.WSMsgType.CLOSED):
                    break
        finally:
            self._state = "close"
            self._fail_pending("Bridge connection closed")
            if not self._closing:
                logger.warning("Bridge connection lost")
                self._emit("connection.update", {"connection": "close"})
                self._reconnect_task = asyncio.create_task(self._reconnect())

    async def _reconnect(self) -> None:
        try:
            await self.connect()
        except TransportError as e:
            logger.error("Giving up on bridge reconnect: %s", e)
            self._emit("connection.update", {"connection": "close", "fatal": True})

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------

    def _handle_frame(self, raw: str) -> None:
        try:
            frame = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Invalid JSON from bridge")
            return
        if not isinstance(frame, dict):
            logger.warning("Invalid bridge frame shape")
            return

        frame_type = frame.get("type")
        if frame_type == "response":
            self._resolve_pending(frame)
        elif frame_type == "event":
            event_name = frame.get("event")
            data = frame.get("data")
            if event_name == "connection.update" and isinstance(data, dict):
                self._apply_connection_update(data)
            if isinstance(event_name, str):
                self._emit(event_name, data)
        else:
            logger.debug("Ignoring bridge frame of type %r", frame_type)

    def _apply_connection_update(self, update: dict[str, Any]) -> None:
        connection = update.get("connection")
        if connection:
            self._state = connection
        if update.get("user"):
            self._user = update["user"]
        if update.get("loggedOut"):
            # Session is gone, reconnecting cannot help
            logger.error("WhatsApp session logged out; not reconnecting")
            self._closing = True

    def _emit(self, event_name: str, data: Any) -> None:
        for callback in list(self._listeners.get(event_name, ())):
            try:
                result = callback(data)
            except Exception:
                logger.exception("Error in %s listener", event_name)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._callback_tasks.add(task)
                task.add_done_callback(self._on_callback_done)

    def _on_callback_done(self, task: asyncio.Task) -> None:
        self._callback_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Bridge event listener failed: %s", task.exception())

    def _resolve_pending(self, frame: dict[str, Any]) -> None:
        future = self._pending.get(frame.get("requestId"))
        if future is None or future.done():
            return
        if frame.get("ok"):
            future.set_result(frame.get("result"))
            return
        error = frame.get("error") if isinstance(frame.get("error"), dict) else {}
        future.set_exception(
            BridgeProtocolError(
                str(error.get("code") or "ERR_INTERNAL"),
                str(error.get("message") or "Bridge request failed"),
                bool(error.get("retryable", False)),
            )
        )

    def _fail_pending(self, reason: str) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(TransportError(reason))
        self._pending.clear()

    async def request(
        self, method: str, params: dict[str, Any] | None = None, timeout: float | None = None
    ) -> Any:
        """Send a request frame and wait for its response.

        Raises:
            TransportError: If not connected, the connection drops or no
                response arrives in time.
            BridgeProtocolError: If the bridge answers with an error.
        """
        ws = self._ws
        if ws is None or ws.closed:
            raise TransportError("Bridge websocket not connected")

        request_id = uuid.uuid4().hex
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        frame = {
            "type": "request",
            "requestId": request_id,
            "method": method,
            "params": encode_params(params or {}),
        }
        if self.token:
            frame["token"] = self.token

        wait = timeout or self.request_timeout
        try:
            async with self._send_lock:
                await ws.send_str(json.dumps(frame))
            return await asyncio.wait_for(future, timeout=wait)
        except TimeoutError as e:
            raise TransportError(f"Bridge request {method} timed out after {wait}s") from e
        finally:
            self._pending.pop(request_id, None)

    # ------------------------------------------------------------------
    # WhatsApp operations
    # ------------------------------------------------------------------

    async def send_message(self, chat: str, content: dict[str, Any], **options: Any) -> Any:
        return await self.request(
            "sendMessage", {"jid": chat, "content": content, "options": options}
        )

    async def send_presence(self, chat: str, state: str) -> None:
        await self.request("sendPresenceUpdate", {"jid": chat, "presence": state})

    async def read_messages(self, keys: list[dict[str, Any]]) -> None:
        await self.request("readMessages", {"keys": keys})

    async def group_metadata(self, jid: str) -> dict[str, Any] | None:
        return await self.request("groupMetadata", {"jid": jid})

    async def contact_query(self, jid: str) -> dict[str, Any] | None:
        return await self.request("getContact", {"jid": jid})

    async def profile_picture_url(self, jid: str) -> str | None:
        return await self.request("profilePictureUrl", {"jid": jid, "type": "image"})

    async def update_profile_status(self, text: str) -> None:
        await self.request("updateProfileStatus", {"status": text})

    async def update_profile_name(self, name: str) -> None:
        await self.request("updateProfileName", {"name": name})

    async def group_participants_update(
        self, jid: str, participants: list[str], action: str
    ) -> list[dict[str, Any]] | None:
        """Add, remove, promote or demote group participants."""
        return await self.request(
            "groupParticipantsUpdate",
            {"jid": jid, "participants": participants, "action": action},
        )
