"""Pure function-based command parser for extracting commands from text."""

from dataclasses import dataclass, field


@dataclass
class ParsedCommand:
    """Represents a parsed command invocation.

    Attributes:
        name: The command token (lowercase normalized).
        args: Positional arguments split on whitespace runs.
        raw_args: Everything after the command token, with original spacing.
    """

    name: str
    args: list[str] = field(default_factory=list)
    raw_args: str = ""


def parse_command(text: str, prefix: str = "!") -> ParsedCommand | None:
    """Parse a command from text.

    Detects commands in the format `<prefix>command arg1 arg2 ...`. The text
    must start with the prefix exactly (no leading whitespace). The command
    token is lowercased; arguments keep their case.

    Args:
        text: The text to parse for a command.
        prefix: Configured command prefix.

    Returns:
        ParsedCommand if text starts with the prefix and has a command token,
        otherwise None.

    Examples:
        >>> parse_command("!ping")
        ParsedCommand(name='ping', args=[], raw_args='')

        >>> parse_command("!HELP   sticker  now")
        ParsedCommand(name='help', args=['sticker', 'now'], raw_args='sticker  now')

        >>> parse_command(".menu", prefix=".")
        ParsedCommand(name='menu', args=[], raw_args='')

        >>> parse_command("hello")
        None

        >>> parse_command("!")
        None
    """
    if not text or not prefix or not text.startswith(prefix):
        return None

    body = text[len(prefix) :].strip()

    if not body:
        return None

    parts = body.split(None, 1)
    command_name = parts[0].lower()
    raw_args = parts[1] if len(parts) > 1 else ""

    return ParsedCommand(name=command_name, args=raw_args.split(), raw_args=raw_args)
