"""IntelliJ IDEA installation discovery.

Probes the well-known installation directories of the current operating
system. Discovery only reads the filesystem; any directory that cannot be read
contributes no candidates.
"""

from __future__ import annotations

import logging
import os
import stat
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Literal

from jbplugins.utils.platform import (
    PlatformOS,
    WSL_USERS_DIR,
    find_windows_username,
    get_env,
    get_home_directory,
    get_os,
    is_wsl,
)

logger = logging.getLogger(__name__)

Layout = Literal["windows", "macos", "linux", "wsl"]

# Most specific first; an entry matches only the first pattern it contains
IDE_PRODUCTS: list[tuple[str, str]] = [
    ("IntelliJ IDEA Ultimate", "IntelliJ IDEA Ultimate"),
    ("IntelliJ IDEA Community", "IntelliJ IDEA Community"),
    ("IntelliJ IDEA", "IntelliJ IDEA"),
]

# Toolbox channel directory -> edition
TOOLBOX_CHANNELS: dict[str, str] = {
    "IDEA-U": "Ultimate",
    "IDEA-C": "Community",
}

WINDOWS_EXECUTABLE = Path("bin") / "idea64.exe"
LINUX_EXECUTABLE = Path("bin") / "idea.sh"
MACOS_EXECUTABLE = Path("Contents") / "MacOS" / "idea"


@dataclass(frozen=True)
class IdeCandidate:
    """An IDE executable found on this machine."""

    executable_path: str
    display_name: str


def _is_file(path: Path) -> bool:
    try:
        return stat.S_ISREG(os.stat(path).st_mode)
    except OSError:
        return False


def _is_dir(path: Path) -> bool:
    try:
        return stat.S_ISDIR(os.stat(path).st_mode)
    except OSError:
        return False


def _list_dir(path: Path) -> list[str]:
    """List a directory in name order, returning [] if it cannot be read."""
    try:
        return sorted(os.listdir(path))
    except OSError as e:
        logger.debug("Skipping %s: %s", path, e)
        return []


def match_product(entry: str) -> str | None:
    """Return the product name for a directory entry, most specific match first."""
    for pattern, product in IDE_PRODUCTS:
        if pattern in entry:
            return product
    return None


def sort_versions(versions: list[str]) -> list[str]:
    """Order toolbox version directories, highest first.

    This is a plain string sort: "2023.10" sorts below "2023.9".
    """
    return sorted(versions, reverse=True)


class IdeLocator:
    """Finds IntelliJ IDEA executables in the standard install locations."""

    def __init__(
        self,
        os_name: PlatformOS | None = None,
        home: Path | None = None,
        env: Mapping[str, str] | None = None,
        wsl: bool | None = None,
        wsl_users_dir: Path = WSL_USERS_DIR,
        search_paths: list[tuple[Path, Layout]] | None = None,
    ):
        """Initialize the locator.

        Args:
            os_name: Operating system to probe for (defaults to the host OS)
            home: Home directory (defaults to the current user's)
            env: Environment used for Windows directory variables
            wsl: Whether to also probe Windows installs from WSL
                 (defaults to detecting WSL)
            wsl_users_dir: Mounted C:\\Users directory when running in WSL
            search_paths: Explicit (directory, layout) pairs, replacing the
                          platform defaults
        """
        self._os = os_name or get_os()
        self._home = home or Path(get_home_directory())
        self._env = env
        self._wsl = is_wsl() if wsl is None else wsl
        self._wsl_users_dir = wsl_users_dir
        self._search_paths = search_paths

    def _getenv(self, name: str) -> str | None:
        if self._env is not None:
            return self._env.get(name)
        return get_env(name)

    def search_paths(self) -> list[tuple[Path, Layout]]:
        """Base directories to probe, with the layout used inside each."""
        if self._search_paths is not None:
            return list(self._search_paths)

        paths: list[tuple[Path, Layout]] = []
        if self._os == "windows":
            for var, suffix in (
                ("LOCALAPPDATA", "Programs"),
                ("PROGRAMFILES", "JetBrains"),
                ("PROGRAMFILES(X86)", "JetBrains"),
            ):
                base = self._getenv(var)
                if base:
                    paths.append((Path(base) / suffix, "windows"))
            paths.append(
                (self._home / "AppData" / "Local" / "JetBrains" / "Toolbox" / "apps", "windows")
            )
        elif self._os == "macos":
            paths.extend(
                [
                    (Path("/Applications"), "macos"),
                    (self._home / "Applications", "macos"),
                    (
                        self._home
                        / "Library"
                        / "Application Support"
                        / "JetBrains"
                        / "Toolbox"
                        / "apps",
                        "macos",
                    ),
                ]
            )
        else:
            paths.extend(
                [
                    (Path("/opt"), "linux"),
                    (Path("/usr/local"), "linux"),
                    (self._home / ".local" / "share" / "JetBrains" / "Toolbox" / "apps", "linux"),
                    (Path("/snap"), "linux"),
                ]
            )
            if self._wsl:
                paths.extend(self._wsl_search_paths())
        return paths

    def _wsl_search_paths(self) -> list[tuple[Path, Layout]]:
        user = find_windows_username(self._wsl_users_dir)
        if user is None:
            logger.debug("Running in WSL but no Windows user found in %s", self._wsl_users_dir)
            return []
        drive = self._wsl_users_dir.parent
        user_dir = self._wsl_users_dir / user
        return [
            (user_dir / "AppData" / "Local" / "Programs", "wsl"),
            (drive / "Program Files" / "JetBrains", "wsl"),
            (drive / "Program Files (x86)" / "JetBrains", "wsl"),
            (user_dir / "AppData" / "Local" / "JetBrains" / "Toolbox" / "apps", "wsl"),
        ]

    def discover(self) -> list[IdeCandidate]:
        """Find installed IDE executables.

        Returns:
            Candidates in search-path order; never raises
        """
        candidates: list[IdeCandidate] = []
        for base, layout in self.search_paths():
            if not _is_dir(base):
                continue
            found = self.scan_directory(base, layout)
            logger.debug("Found %d candidate(s) in %s", len(found), base)
            candidates.extend(found)
        return candidates

    def scan_directory(self, base: Path, layout: Layout) -> list[IdeCandidate]:
        """Probe the immediate children of one base directory."""
        candidates: list[IdeCandidate] = []
        for entry in _list_dir(base):
            entry_path = base / entry
            edition = TOOLBOX_CHANNELS.get(entry)
            if edition is not None:
                candidates.extend(self.scan_toolbox(entry_path, layout, edition))
                continue
            candidates.extend(self._probe_entry(entry_path, layout))
        return candidates

    def _probe_entry(self, entry_path: Path, layout: Layout) -> list[IdeCandidate]:
        entry = entry_path.name

        if layout == "macos":
            if "IntelliJ IDEA" not in entry or not entry.endswith(".app"):
                return []
            exe = entry_path / MACOS_EXECUTABLE
            if _is_file(exe):
                return [IdeCandidate(str(exe), entry.removesuffix(".app"))]
            return []

        if layout == "linux":
            lowered = entry.lower()
            if "intellij" not in lowered and "idea" not in lowered:
                return []
            found = []
            exe = entry_path / LINUX_EXECUTABLE
            if _is_file(exe):
                found.append(IdeCandidate(str(exe), f"IntelliJ IDEA - {entry}"))
            snap_exe = entry_path / "current" / LINUX_EXECUTABLE
            if _is_file(snap_exe):
                found.append(IdeCandidate(str(snap_exe), f"IntelliJ IDEA - {entry} (Snap)"))
            return found

        product = match_product(entry)
        if product is None:
            return []
        exe = entry_path / WINDOWS_EXECUTABLE
        if not _is_file(exe):
            return []
        if layout == "wsl":
            return [IdeCandidate(f'"{exe}"', f"{product} - {entry} (Windows)")]
        return [IdeCandidate(str(exe), f"{product} - {entry}")]

    def scan_toolbox(self, channel_root: Path, layout: Layout, edition: str) -> list[IdeCandidate]:
        """Probe a toolbox product directory.

        Each child is a channel holding one directory per installed version.
        Only the highest version (by string order) with an executable is
        reported for a channel.
        """
        candidates: list[IdeCandidate] = []
        for channel in _list_dir(channel_root):
            channel_path = channel_root / channel
            if not _is_dir(channel_path):
                continue

            versions = [v for v in _list_dir(channel_path) if _is_dir(channel_path / v)]
            for version in sort_versions(versions):
                exe = self._toolbox_executable(channel_path / version, layout)
                if exe is None:
                    continue
                if layout == "wsl":
                    candidates.append(
                        IdeCandidate(
                            f'"{exe}"', f"IntelliJ IDEA {edition} {version} (Toolbox/Windows)"
                        )
                    )
                else:
                    candidates.append(
                        IdeCandidate(str(exe), f"IntelliJ IDEA {edition} {version} (Toolbox)")
                    )
                break
        return candidates

    def _toolbox_executable(self, version_path: Path, layout: Layout) -> Path | None:
        if layout == "macos":
            for bundle in _list_dir(version_path):
                if bundle.endswith(".app") and _is_file(version_path / bundle / MACOS_EXECUTABLE):
                    return version_path / bundle / MACOS_EXECUTABLE
            return None

        exe = version_path / (LINUX_EXECUTABLE if layout == "linux" else WINDOWS_EXECUTABLE)
        return exe if _is_file(exe) else None


# =============================================================================
# Resolution Policy
# =============================================================================


class ResolutionStatus(str, Enum):
    """How the IDE executable was chosen."""

    CACHED = "cached"
    AUTO_SELECTED = "auto_selected"
    CHOSEN = "chosen"
    NOT_FOUND = "not_found"
    CANCELLED = "cancelled"


@dataclass
class IdeResolution:
    """Result of resolving which IDE executable to use."""

    status: ResolutionStatus
    path: str | None = None
    candidates: list[IdeCandidate] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return self.status == ResolutionStatus.CANCELLED


# Receives the candidates and the default command; returns the chosen path,
# or None if the user cancelled.
IdeChooser = Callable[[list[IdeCandidate], str], Awaitable[str | None]]


class IdeResolver:
    """Applies the selection policy on top of discovery.

    A successful resolution is remembered for the lifetime of the resolver.
    """

    def __init__(self, locator: IdeLocator, default_command: str = "idea"):
        self._locator = locator
        self._default_command = default_command
        self._cached_path: str | None = None

    async def resolve(self, choose: IdeChooser) -> IdeResolution:
        """Decide which executable the install command should use.

        Args:
            choose: Called only when two or more candidates exist

        Returns:
            The resolution; NOT_FOUND carries the default command as its path
            and CANCELLED carries no path
        """
        if self._cached_path is not None:
            return IdeResolution(ResolutionStatus.CACHED, self._cached_path)

        candidates = self._locator.discover()
        logger.info("Discovered %d IDE installation(s)", len(candidates))

        if not candidates:
            self._cached_path = self._default_command
            return IdeResolution(ResolutionStatus.NOT_FOUND, self._default_command)

        if len(candidates) == 1:
            self._cached_path = candidates[0].executable_path
            return IdeResolution(
                ResolutionStatus.AUTO_SELECTED, self._cached_path, candidates
            )

        chosen = await choose(candidates, self._default_command)
        if chosen is None:
            return IdeResolution(ResolutionStatus.CANCELLED, None, candidates)
        self._cached_path = chosen
        return IdeResolution(ResolutionStatus.CHOSEN, chosen, candidates)
