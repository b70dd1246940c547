# src/utils/media.py
"""Media source handling for outbound messages.

A media source may be raw bytes, a local file path or an http(s) URL.
URLs are downloaded with a shared aiohttp session.
"""

import asyncio
import logging
import os

import aiohttp

logger = logging.getLogger(__name__)

# Timeout settings
AIOHTTP_TOTAL_TIMEOUT = 120
AIOHTTP_CONNECT_TIMEOUT = 30

MediaSource = bytes | bytearray | str

# Global aiohttp session
_session: aiohttp.ClientSession | None = None
_session_loop: asyncio.AbstractEventLoop | None = None


async def get_aiohttp_session() -> aiohttp.ClientSession:
    """Get or create a shared aiohttp session bound to the running loop.

    Returns:
        Shared aiohttp.ClientSession instance.
    """
    global _session, _session_loop

    current_loop = asyncio.get_running_loop()
    if _session is not None and not _session.closed and _session_loop is current_loop:
        return _session

    if _session is not None and not _session.closed:
        try:
            await _session.close()
        except Exception as e:
            logger.debug("Error closing old session: %s", e)

    timeout = aiohttp.ClientTimeout(
        total=AIOHTTP_TOTAL_TIMEOUT,
        connect=AIOHTTP_CONNECT_TIMEOUT,
    )
    connector = aiohttp.TCPConnector(limit=20, ttl_dns_cache=300)
    _session = aiohttp.ClientSession(connector=connector, timeout=timeout)
    _session_loop = current_loop
    logger.debug("Created new aiohttp session")
    return _session


async def close_aiohttp_session() -> None:
    """Close the shared aiohttp session."""
    global _session
    if _session is not None and not _session.closed:
        await _session.close()
        logger.debug("Closed aiohttp session")
    _session = None


def is_url(source: object) -> bool:
    return isinstance(source, str) and source.startswith(("http://", "https://"))


async def get_buffer(source: MediaSource) -> bytes:
    """Resolve a media source to bytes.

    Args:
        source: Bytes, a local file path or an http(s) URL.

    Returns:
        The media content.

    Raises:
        FileNotFoundError: If a path does not exist.
        aiohttp.ClientError: If a download fails.
        TypeError: For unsupported source types.
    """
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if is_url(source):
        session = await get_aiohttp_session()
        async with session.get(source) as response:
            response.raise_for_status()
            return await response.read()
    if isinstance(source, str):
        if not os.path.isfile(source):
            raise FileNotFoundError(f"Media file not found: {source}")
        return await asyncio.to_thread(_read_file, source)
    raise TypeError(f"Unsupported media source: {type(source).__name__}")


def _read_file(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()
