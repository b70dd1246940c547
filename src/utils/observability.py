"""Observability configuration with Pydantic Logfire."""

import logging

from src.config import settings

logger = logging.getLogger(__name__)


def setup_logfire(token: str | None = None) -> bool:
    """Configure Logfire for observability.

    Only activates if a Logfire token is configured (LOGFIRE_TOKEN).
    Call this at startup before the transport opens its HTTP session.

    Returns:
        True if Logfire was configured.
    """
    token = token if token is not None else settings.logfire_token
    if not token:
        return False

    try:
        import logfire

        logfire.configure(token=token, service_name=settings.bot_name)
        logfire.instrument_aiohttp_client()
    except Exception as e:
        # Log but don't fail - observability is optional
        logger.warning("Failed to configure Logfire: %s", str(e))
        return False
    return True
