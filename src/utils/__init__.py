# src/utils/__init__.py
"""Utility functions for the WhatsApp bot."""

from src.utils.logging import (
    bind_event_context,
    clear_event_context,
    configure_logging,
    get_request_id,
    set_request_id,
)
from src.utils.media import close_aiohttp_session, get_aiohttp_session, get_buffer
from src.utils.observability import setup_logfire

__all__ = [
    "setup_logfire",
    "configure_logging",
    "bind_event_context",
    "clear_event_context",
    "set_request_id",
    "get_request_id",
    "get_aiohttp_session",
    "close_aiohttp_session",
    "get_buffer",
]
