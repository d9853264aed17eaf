"""Clipboard access through the platform's command-line tools."""

import logging
import shutil
import subprocess

from jbplugins.utils.platform import get_env, get_os, is_wsl

logger = logging.getLogger(__name__)

CLIPBOARD_TIMEOUT = 3  # seconds


def clipboard_commands() -> list[list[str]]:
    """Candidate copy commands for this platform, in order of preference."""
    os_name = get_os()
    if os_name == "macos":
        return [["pbcopy"]]
    if os_name == "windows":
        return [["clip"]]

    commands: list[list[str]] = []
    if is_wsl():
        commands.append(["clip.exe"])
    if get_env("WAYLAND_DISPLAY"):
        commands.append(["wl-copy"])
    commands.append(["xclip", "-selection", "clipboard"])
    commands.append(["xsel", "--clipboard", "--input"])
    return commands


def copy_to_clipboard(text: str) -> bool:
    """Copy text to the system clipboard.

    Args:
        text: Text to copy

    Returns:
        True if one of the clipboard tools accepted the text
    """
    for command in clipboard_commands():
        if shutil.which(command[0]) is None:
            continue
        try:
            subprocess.run(
                command, input=text.encode("utf-8"), check=True, timeout=CLIPBOARD_TIMEOUT
            )
        except (subprocess.SubprocessError, OSError) as e:
            logger.debug("Clipboard command %s failed: %s", command[0], e)
            continue
        logger.debug("Copied %d characters with %s", len(text), command[0])
        return True

    logger.info("No working clipboard tool found")
    return False
