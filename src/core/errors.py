# src/core/errors.py
"""Exception hierarchy for the bot core.

Cooldown and permission denials are not exceptions: they are returned as
CooldownResult / PermissionResult values and turned into chat replies.
"""


class BotError(Exception):
    """Base class for all bot errors."""


class CommandValidationError(BotError):
    """A command definition is missing its name or handler."""


class CommandConflictError(BotError):
    """A command name or alias is already claimed by another command.

    Attributes:
        token: The conflicting name or alias.
        owner: Canonical name of the command that already holds the token.
    """

    def __init__(self, token: str, owner: str) -> None:
        self.token = token
        self.owner = owner
        super().__init__(f"'{token}' is already registered by command '{owner}'")


class QueueCancelledError(BotError):
    """A queued send task was discarded before it started."""


class TransportError(BotError):
    """Sending through the transport failed or the transport is not connected."""


class BridgeProtocolError(TransportError):
    """The WhatsApp bridge answered a request with an error frame.

    Attributes:
        code: Error code reported by the bridge.
        retryable: Whether the bridge marked the failure as retryable.
    """

    def __init__(self, code: str, message: str, retryable: bool = False) -> None:
        self.code = code
        self.retryable = retryable
        super().__init__(f"{code}: {message}")
