# src/config.py
"""Application configuration using pydantic-settings.

Provides a centralized Settings class for the bot. Values come from
environment variables, a .env file and a JSON config file (config.json by
default). Owner commands that change configuration write the persistable
fields back to that same JSON file via save_settings().
"""

import json
import logging
import os
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

logger = logging.getLogger(__name__)

CONFIG_FILE = os.environ.get("TERRABOT_CONFIG_FILE", "config.json")

# Fields written back to config.json. Secrets and process-level tunables
# stay in the environment.
PERSISTED_FIELDS = (
    "prefix",
    "owners",
    "private_mode",
    "bot_name",
    "status_message",
    "session_path",
    "max_reconnects",
    "reconnect_interval",
    "enable_read_receipts",
    "enable_typing_indicator",
    "typing_timeout",
)


class Settings(BaseSettings):
    """Bot settings.

    Environment variables take precedence over .env values, which take
    precedence over config.json.
    """

    # Command handling
    prefix: str = "!"
    owners: Annotated[list[str], NoDecode] = Field(default_factory=list)
    private_mode: bool = False
    commands_package: str = "src.commands"
    handler_timeout: float = 60.0  # Seconds, 0 disables the bound

    # Identity
    bot_name: str = "TerraBot"
    status_message: str = "TerraBot Active"

    # Transport (WhatsApp bridge)
    bridge_url: str = "ws://127.0.0.1:3001"
    bridge_token: str = ""
    max_reconnects: int = 5
    reconnect_interval: float = 3.0
    connection_timeout: float = 60.0
    metadata_timeout: float = 5.0

    # Outbound pacing
    send_interval_ms: int = 1000
    enable_read_receipts: bool = True
    enable_typing_indicator: bool = True
    typing_timeout: float = 3.0

    # Storage
    session_path: str = "sessions"
    data_path: str = "data"
    message_store_limit: int = 1000
    autosave_interval: int = 20

    # Logging / observability
    log_level: str = "INFO"
    log_json: bool = False
    debug_message: bool = False
    logfire_token: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        json_file=CONFIG_FILE,
        json_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        validate_assignment=True,
    )

    @field_validator("owners", mode="before")
    @classmethod
    def split_owners(cls, value: Any) -> Any:
        """Accept a comma separated string and strip JID suffixes."""
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, list):
            return [
                str(owner).strip().split("@")[0]
                for owner in value
                if str(owner).strip()
            ]
        return value

    @field_validator("prefix")
    @classmethod
    def non_empty_prefix(cls, value: str) -> str:
        if not value or value.isspace():
            raise ValueError("prefix must not be empty")
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    def persisted_values(self) -> dict[str, Any]:
        """Get the subset of settings stored in config.json.

        Returns:
            Mapping of persisted field names to JSON-compatible values.
        """
        data = self.model_dump(mode="json")
        return {key: data[key] for key in PERSISTED_FIELDS}


def save_settings(config: Settings, path: str | os.PathLike | None = None) -> bool:
    """Write persistable settings back to the JSON config file.

    Existing keys in the file that are not managed here are preserved.

    Args:
        config: Settings instance to persist.
        path: Target file. Defaults to the file the loader reads.

    Returns:
        True on success, False if the file could not be written.
    """
    target = Path(path or config.model_config.get("json_file") or CONFIG_FILE)
    existing: dict[str, Any] = {}
    if target.exists():
        try:
            existing = json.loads(target.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable config file %s: %s", target, e)

    existing.update(config.persisted_values())

    try:
        if target.parent and not target.parent.exists():
            target.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = target.with_suffix(target.suffix + ".tmp")
        tmp_path.write_text(json.dumps(existing, indent=2), encoding="utf-8")
        os.replace(tmp_path, target)
    except OSError as e:
        logger.error("Failed to save configuration to %s: %s", target, e)
        return False

    logger.info("Configuration saved to %s", target)
    return True


# Singleton instance - import this in your code
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings
