# src/core/messaging/content.py
"""Helpers for reading inbound WhatsApp message events.

Events use the Baileys WebMessageInfo shape:
    {"key": {"remoteJid", "participant", "id", "fromMe"},
     "message": {...}, "pushName": str, "messageTimestamp": int}
"""

from typing import Any

GROUP_SUFFIX = "@g.us"
USER_SUFFIX = "@s.whatsapp.net"
STATUS_BROADCAST = "status@broadcast"


def extract_text(event: dict[str, Any] | None) -> str | None:
    """Extract the text content of a message event.

    Sources are checked in order: plain conversation text, extended (quoted /
    link preview) text, image caption, video caption, interactive response
    body. The first populated one wins.

    Args:
        event: Inbound message event.

    Returns:
        The text, or None if the message carries none.
    """
    if not event:
        return None
    message = event.get("message")
    if not message:
        return None

    if message.get("conversation"):
        return message["conversation"]

    extended = message.get("extendedTextMessage") or {}
    if extended.get("text"):
        return extended["text"]

    image = message.get("imageMessage") or {}
    if image.get("caption"):
        return image["caption"]

    video = message.get("videoMessage") or {}
    if video.get("caption"):
        return video["caption"]

    interactive = message.get("interactiveResponseMessage") or {}
    body = interactive.get("body") or {}
    if body.get("text"):
        return body["text"]

    return None


def message_type(event: dict[str, Any]) -> str | None:
    """Get the first content type key of a message, e.g. "imageMessage"."""
    message = event.get("message") or {}
    return next(iter(message), None)


def is_group_jid(jid: str | None) -> bool:
    """Check whether a JID identifies a group chat."""
    return bool(jid) and jid.endswith(GROUP_SUFFIX)


def chat_of(event: dict[str, Any]) -> str | None:
    """Get the chat JID an event belongs to."""
    return (event.get("key") or {}).get("remoteJid")


def sender_of(event: dict[str, Any]) -> str | None:
    """Get the sender JID: the participant in groups, else the chat JID."""
    key = event.get("key") or {}
    return key.get("participant") or key.get("remoteJid")


def is_from_me(event: dict[str, Any]) -> bool:
    """Check whether an event was sent by the bot's own account."""
    return bool((event.get("key") or {}).get("fromMe"))


def phone_number(jid: str) -> str:
    """Get the user part of a JID ("628123@s.whatsapp.net" -> "628123")."""
    return jid.split("@", 1)[0]


def message_key(event: dict[str, Any]) -> str | None:
    """Get the store key "<remoteJid>_<id>" of an event."""
    key = event.get("key") or {}
    if not key.get("remoteJid") or not key.get("id"):
        return None
    return f"{key['remoteJid']}_{key['id']}"


def context_info(event: dict[str, Any]) -> dict[str, Any]:
    """Get the contextInfo (quote and mention data) of a message, if any."""
    message = event.get("message") or {}
    for kind in ("extendedTextMessage", "imageMessage", "videoMessage"):
        info = (message.get(kind) or {}).get("contextInfo")
        if info:
            return info
    return {}


def mentioned_jids(event: dict[str, Any]) -> list[str]:
    """Get the JIDs @-mentioned in a message."""
    return list(context_info(event).get("mentionedJid") or [])


def quoted_participant(event: dict[str, Any]) -> str | None:
    """Get the author JID of the message being replied to."""
    return context_info(event).get("participant")


def quoted_message_id(event: dict[str, Any]) -> str | None:
    """Get the id of the message being replied to."""
    return context_info(event).get("stanzaId")


def target_jids(event: dict[str, Any]) -> list[str]:
    """Get the users a command is aimed at: mentions, else the quoted author."""
    mentioned = mentioned_jids(event)
    if mentioned:
        return mentioned
    quoted = quoted_participant(event)
    return [quoted] if quoted else []
