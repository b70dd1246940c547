# src/core/contacts.py
"""Cached contact and group metadata.

Both managers fetch through the transport with a fixed timeout and degrade
to "not found" (None) instead of blocking or raising.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from src.core.commands.permissions import bare_id, is_group_admin
from src.core.messaging.content import (
    STATUS_BROADCAST,
    USER_SUFFIX,
    is_group_jid,
    phone_number,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class GroupManager:
    """Group metadata cache backed by the transport."""

    def __init__(self, transport: Any, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.transport = transport
        self.timeout = timeout
        self._groups: dict[str, dict[str, Any]] = {}

    async def fetch_group_metadata(self, group_jid: str) -> dict[str, Any] | None:
        """Fetch group metadata from the transport and cache it.

        Args:
            group_jid: Group JID (must end with @g.us).

        Returns:
            Metadata dict, or None if the JID is not a group, the fetch timed
            out or failed.
        """
        if not is_group_jid(group_jid):
            logger.error("Invalid group JID: %s", group_jid)
            return None

        try:
            metadata = await asyncio.wait_for(
                self.transport.group_metadata(group_jid), timeout=self.timeout
            )
        except TimeoutError:
            logger.warning("Timed out fetching group metadata for %s", group_jid)
            return None
        except Exception as e:
            logger.error("Failed to fetch group metadata for %s: %s", group_jid, e)
            return None

        if metadata:
            self._groups[group_jid] = metadata
            return metadata
        return None

    async def get_group_metadata(
        self, group_jid: str, force_refresh: bool = False
    ) -> dict[str, Any] | None:
        """Get group metadata from cache, fetching it when missing."""
        if not force_refresh and group_jid in self._groups:
            return self._groups[group_jid]
        return await self.fetch_group_metadata(group_jid)

    async def is_user_admin(self, group_jid: str, user_jid: str) -> bool:
        """Check whether a user is an admin of a group."""
        metadata = await self.get_group_metadata(group_jid)
        return is_group_admin(user_jid, metadata)

    async def is_bot_admin(self, group_jid: str) -> bool:
        """Check whether the bot's own account is an admin of a group."""
        user_id = (getattr(self.transport, "user", None) or {}).get("id")
        if not user_id:
            return False
        # Device suffix: "628000:12@s.whatsapp.net" -> "628000@s.whatsapp.net"
        return await self.is_user_admin(group_jid, bare_id(user_id) + USER_SUFFIX)

    async def promote_participants(
        self, group_jid: str, participants: list[str]
    ) -> list[dict[str, Any]] | None:
        """Make participants group admins. Returns None on failure."""
        return await self._update_participants(group_jid, participants, "promote")

    async def demote_participants(
        self, group_jid: str, participants: list[str]
    ) -> list[dict[str, Any]] | None:
        """Turn group admins back into regular participants. Returns None on failure."""
        return await self._update_participants(group_jid, participants, "demote")

    async def _update_participants(
        self, group_jid: str, participants: list[str], action: str
    ) -> list[dict[str, Any]] | None:
        if not is_group_jid(group_jid) or not participants:
            logger.error("Invalid parameters for %s in %s", action, group_jid)
            return None

        try:
            result = await asyncio.wait_for(
                self.transport.group_participants_update(group_jid, list(participants), action),
                timeout=self.timeout,
            )
        except TimeoutError:
            logger.error("Timed out trying to %s participants in %s", action, group_jid)
            return None
        except Exception as e:
            logger.error("Failed to %s participants in %s: %s", action, group_jid, e)
            return None

        logger.info("%s: %d participants in %s", action, len(participants), group_jid)
        await self.fetch_group_metadata(group_jid)
        return result

    def update_cache(self, group_jid: str, metadata: dict[str, Any]) -> None:
        """Store metadata pushed by the transport (e.g. groups.update)."""
        self._groups[group_jid] = metadata

    def invalidate(self, group_jid: str | None = None) -> None:
        """Drop cached metadata for one group or all groups."""
        if group_jid is None:
            self._groups.clear()
        else:
            self._groups.pop(group_jid, None)

    def __len__(self) -> int:
        return len(self._groups)


@dataclass
class _FailedFetch:
    count: int = 0
    last_try: float = 0.0


class ContactManager:
    """Contact cache with fetch timeout and failure back-off.

    After max_retries failed fetches for a JID, further fetches are skipped
    until retry_delay seconds have passed since the last attempt.
    """

    def __init__(
        self,
        transport: Any,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = 3,
        retry_delay: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.transport = transport
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._clock = clock
        self._contacts: dict[str, dict[str, Any]] = {}
        self._failed: dict[str, _FailedFetch] = {}

    def preload(self, contacts: dict[str, dict[str, Any]]) -> int:
        """Seed the cache with contacts that carry a usable name.

        Returns:
            Number of contacts added.
        """
        added = 0
        for jid, contact in contacts.items():
            if contact and (
                contact.get("name") or contact.get("notify") or contact.get("verifiedName")
            ):
                self._contacts[jid] = contact
                added += 1
        logger.debug("Preloaded %d contacts", added)
        return added

    def _is_backing_off(self, jid: str) -> bool:
        failed = self._failed.get(jid)
        if failed is None:
            return False
        return (
            failed.count >= self.max_retries
            and self._clock() - failed.last_try < self.retry_delay
        )

    def _track_failure(self, jid: str) -> None:
        failed = self._failed.setdefault(jid, _FailedFetch())
        failed.count += 1
        failed.last_try = self._clock()

    async def get_contact(self, jid: str | None) -> dict[str, Any] | None:
        """Get contact details, from cache or the transport.

        Args:
            jid: Contact JID.

        Returns:
            Contact dict, or None if unknown, backing off, disconnected or
            the fetch timed out.
        """
        if not jid:
            return None
        if jid in self._contacts:
            return self._contacts[jid]
        if self._is_backing_off(jid):
            logger.debug("Skipping fetch for %s - too many recent failures", jid)
            return None
        if not getattr(self.transport, "is_connected", False):
            logger.debug("Cannot fetch contact %s: transport not connected", jid)
            return None

        try:
            contact = await asyncio.wait_for(
                self.transport.contact_query(jid), timeout=self.timeout
            )
        except TimeoutError:
            contact = None
        except Exception as e:
            logger.error("Error fetching contact %s: %s", jid, e)
            contact = None

        if contact:
            self._contacts[jid] = contact
            self._failed.pop(jid, None)
            return contact

        self._track_failure(jid)
        return None

    async def get_name(self, jid: str | None) -> str:
        """Get a display name for a JID.

        Falls back through name, notify and verifiedName to the phone number.
        """
        if not jid:
            return "Unknown"
        if jid == STATUS_BROADCAST:
            return "Status Updates"

        contact = await self.get_contact(jid)
        if contact:
            for key in ("name", "notify", "verifiedName"):
                if contact.get(key):
                    return contact[key]
        return phone_number(jid)

    async def get_profile_picture(self, jid: str) -> str | None:
        """Get the profile picture URL of a contact or group, if any."""
        if not getattr(self.transport, "is_connected", False):
            return None
        try:
            return await asyncio.wait_for(
                self.transport.profile_picture_url(jid), timeout=self.timeout
            )
        except TimeoutError:
            return None
        except Exception as e:
            logger.debug("No profile picture available for %s: %s", jid, e)
            return None

    def clear_cache(self) -> None:
        """Forget cached contacts and failure history."""
        self._contacts.clear()
        self._failed.clear()
        logger.debug("Contact cache cleared")
