"""Platform and OS detection utilities."""

import os
import platform
from pathlib import Path
from typing import Literal

PlatformOS = Literal["windows", "linux", "macos"]

# Profile directories under C:\Users that never belong to a real user
RESERVED_WINDOWS_PROFILES = frozenset({"Public", "Default", "Default User", "All Users"})

WSL_USERS_DIR = Path("/mnt/c/Users")


def get_os() -> PlatformOS:
    """Get the current operating system.

    Returns:
        One of: "windows", "linux", "macos"
    """
    system = platform.system().lower()
    if system == "darwin":
        return "macos"
    elif system == "windows":
        return "windows"
    else:
        return "linux"


def is_wsl() -> bool:
    """Check if running inside the Windows Subsystem for Linux.

    Returns:
        True if the Linux kernel release identifies itself as WSL
    """
    if get_os() != "linux":
        return False
    release = platform.release().lower()
    return "microsoft" in release or "wsl" in release


def get_home_directory() -> str:
    """Get the user's home directory.

    Returns:
        Path to the home directory
    """
    return os.path.expanduser("~")


def get_env(name: str, default: str | None = None) -> str | None:
    """Get an environment variable.

    Args:
        name: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default
    """
    return os.environ.get(name, default)


def find_windows_username(users_dir: Path = WSL_USERS_DIR) -> str | None:
    """Find the Windows user whose profile is mounted under WSL.

    Args:
        users_dir: The mounted C:\\Users directory

    Returns:
        The first real profile name (alphabetical), or None if none is readable
    """
    try:
        names = sorted(os.listdir(users_dir))
    except OSError:
        return None

    for name in names:
        if name in RESERVED_WINDOWS_PROFILES:
            continue
        if (users_dir / name).is_dir():
            return name
    return None


def get_platform_info() -> dict[str, str]:
    """Get platform information for diagnostics.

    Returns:
        Dictionary with platform details
    """
    return {
        "os": get_os(),
        "wsl": str(is_wsl()).lower(),
        "release": platform.release(),
        "python_version": platform.python_version(),
    }
