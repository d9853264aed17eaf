"""Build and parse ``installPlugins`` commands.

The generated command has the shape::

    <path or "path"> installPlugins <id1> <id2> "id with spaces" ...

Parsing is the literal inverse of building for the commands this module
produces. It is not a shell parser: there is no support for backslash
escapes, single quotes or nested quotes, and identifiers containing a double
quote do not survive a round trip.
"""

import re
from collections.abc import Iterable

INSTALL_VERB = "installPlugins"

_INSTALL_RE = re.compile(rf"{INSTALL_VERB}\s+(.+)", re.IGNORECASE)


def quote_if_needed(value: str) -> str:
    """Wrap a value in double quotes if it contains a space."""
    if " " in value:
        return f'"{value}"'
    return value


def encode_command(executable_path: str, plugin_ids: Iterable[str]) -> str:
    """Build the install command for a set of plugins.

    Args:
        executable_path: IDE executable or bare command name. A path that is
                         already wrapped in double quotes is used as-is.
        plugin_ids: Plugin identifiers in install order

    Returns:
        The command string
    """
    if executable_path.startswith('"') and executable_path.endswith('"'):
        path = executable_path
    else:
        path = quote_if_needed(executable_path)
    return " ".join([path, INSTALL_VERB, *(quote_if_needed(i) for i in plugin_ids)])


def decode_command(command: str) -> list[str]:
    """Extract plugin identifiers from an install command.

    Args:
        command: Text containing "installPlugins" (any case) followed by ids

    Returns:
        Identifiers in order; empty if the verb is missing or has no arguments
    """
    command = command.strip()
    if command.startswith('"'):
        # Skip a quoted executable path so a verb-like segment inside it is ignored
        closing = command.find('"', 1)
        if closing != -1:
            command = command[closing + 1 :]

    match = _INSTALL_RE.search(command)
    if not match:
        return []

    plugin_ids: list[str] = []
    current = ""
    in_quote = False
    for char in match.group(1).strip():
        if char == '"':
            in_quote = not in_quote
        elif char == " " and not in_quote:
            if current:
                plugin_ids.append(current)
            current = ""
        else:
            current += char
    if current:
        plugin_ids.append(current)

    return plugin_ids
