"""Outbound messaging and inbound content helpers.

This module provides:
- SendQueue: FIFO, paced execution of outbound sends
- extract_text: Text extraction from inbound message events
- JID helpers: is_group_jid, chat_of, sender_of, phone_number
"""

from src.core.messaging.content import (
    chat_of,
    extract_text,
    is_from_me,
    is_group_jid,
    message_key,
    phone_number,
    sender_of,
)
from src.core.messaging.queue import SendQueue

__all__ = [
    "SendQueue",
    "extract_text",
    "chat_of",
    "sender_of",
    "is_from_me",
    "is_group_jid",
    "message_key",
    "phone_number",
]
