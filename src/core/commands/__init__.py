"""Command module for registration, parsing and dispatch.

This module provides:
- Command / CommandContext: Command definition and per-invocation context
- CommandRegistry: Name and alias lookup with atomic replace
- CommandLoader: Discovers command modules in a package
- CooldownTracker: Per-command, per-chat rate limiting
- evaluate: Permission gate for command access flags
- ParsedCommand / parse_command: Prefix and argument parsing
- Dispatcher: Routes inbound events to handlers
"""

from src.core.commands.cooldown import CooldownResult, CooldownTracker
from src.core.commands.dispatcher import DispatchOutcome, Dispatcher
from src.core.commands.loader import CommandLoader
from src.core.commands.models import Command, CommandContext
from src.core.commands.parser import ParsedCommand, parse_command
from src.core.commands.permissions import (
    DENIAL_MESSAGES,
    PermissionResult,
    evaluate,
    is_group_admin,
    is_owner,
)
from src.core.commands.registry import CategoryInfo, CommandRegistry

__all__ = [
    "Command",
    "CommandContext",
    "CommandRegistry",
    "CategoryInfo",
    "CommandLoader",
    "CooldownTracker",
    "CooldownResult",
    "PermissionResult",
    "DENIAL_MESSAGES",
    "evaluate",
    "is_owner",
    "is_group_admin",
    "ParsedCommand",
    "parse_command",
    "Dispatcher",
    "DispatchOutcome",
]
