"""Tests for jbplugins.core.locator module."""

import asyncio
from pathlib import Path

from jbplugins.core.locator import (
    IdeCandidate,
    IdeLocator,
    IdeResolver,
    ResolutionStatus,
    match_product,
    sort_versions,
)


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n")
    return path


def _toolbox(apps: Path, channel_dir: str, versions: list[str], layout: str = "linux") -> None:
    for version in versions:
        version_dir = apps / channel_dir / "ch-0" / version
        if layout == "linux":
            _touch(version_dir / "bin" / "idea.sh")
        elif layout == "macos":
            _touch(version_dir / "IntelliJ IDEA.app" / "Contents" / "MacOS" / "idea")
        else:
            _touch(version_dir / "bin" / "idea64.exe")


def _locator(base: Path, layout: str) -> IdeLocator:
    return IdeLocator(os_name="linux", home=base, wsl=False, search_paths=[(base, layout)])


class TestMatchProduct:
    """Tests for match_product function."""

    def test_prefers_most_specific_name(self):
        """An Ultimate directory matches only the Ultimate product."""
        assert match_product("IntelliJ IDEA Ultimate 2023.3") == "IntelliJ IDEA Ultimate"

    def test_generic_name(self):
        """A plain IntelliJ IDEA directory matches the generic product."""
        assert match_product("IntelliJ IDEA 2023.3.2") == "IntelliJ IDEA"

    def test_unrelated_directory(self):
        """Other JetBrains products do not match."""
        assert match_product("PyCharm 2023.3") is None


class TestSortVersions:
    """Tests for sort_versions function."""

    def test_descending(self):
        """Versions are ordered highest first."""
        assert sort_versions(["2023.1", "2023.3", "2023.2"]) == ["2023.3", "2023.2", "2023.1"]

    def test_string_order_is_not_semantic(self):
        """Ordering is by string, so 2023.9 sorts above 2023.10.

        A semantic comparison would put 2023.10 first; this pins the
        current string ordering so a change to it is deliberate.
        """
        assert sort_versions(["2023.10", "2023.9"]) == ["2023.9", "2023.10"]


class TestToolboxDiscovery:
    """Tests for toolbox channel scanning."""

    def test_one_candidate_per_channel(self, temp_dir: Path):
        """Only the highest version of a channel is reported."""
        _toolbox(temp_dir, "IDEA-U", ["2023.1", "2023.3", "2023.2"])

        candidates = _locator(temp_dir, "linux").discover()

        assert len(candidates) == 1
        assert candidates[0].display_name == "IntelliJ IDEA Ultimate 2023.3 (Toolbox)"
        assert candidates[0].executable_path.endswith("2023.3/bin/idea.sh")

    def test_double_digit_version_loses_to_string_order(self, temp_dir: Path):
        """With 2023.9 and 2023.10 installed, 2023.9 is picked."""
        _toolbox(temp_dir, "IDEA-C", ["2023.9", "2023.10"])

        candidates = _locator(temp_dir, "linux").discover()

        assert [c.display_name for c in candidates] == [
            "IntelliJ IDEA Community 2023.9 (Toolbox)"
        ]

    def test_skips_version_without_executable(self, temp_dir: Path):
        """A newer version missing its launcher falls back to the next one."""
        _toolbox(temp_dir, "IDEA-U", ["2023.2"])
        (temp_dir / "IDEA-U" / "ch-0" / "2023.3").mkdir()

        candidates = _locator(temp_dir, "linux").discover()

        assert candidates[0].display_name == "IntelliJ IDEA Ultimate 2023.2 (Toolbox)"

    def test_each_channel_reported(self, temp_dir: Path):
        """Two channels of one edition yield two candidates."""
        _toolbox(temp_dir, "IDEA-U", ["2023.3"])
        _touch(temp_dir / "IDEA-U" / "ch-1" / "2024.1" / "bin" / "idea.sh")

        candidates = _locator(temp_dir, "linux").discover()

        assert len(candidates) == 2

    def test_macos_bundle(self, temp_dir: Path):
        """On macOS the executable lives inside the .app bundle."""
        _toolbox(temp_dir, "IDEA-U", ["2023.3"], layout="macos")

        candidates = _locator(temp_dir, "macos").discover()

        assert candidates[0].executable_path.endswith(
            "IntelliJ IDEA.app/Contents/MacOS/idea"
        )

    def test_wsl_paths_are_quoted(self, temp_dir: Path):
        """Windows toolbox installs seen from WSL get quoted paths."""
        _toolbox(temp_dir, "IDEA-U", ["2023.3"], layout="wsl")

        candidates = _locator(temp_dir, "wsl").discover()

        assert candidates[0].executable_path.startswith('"')
        assert candidates[0].executable_path.endswith('idea64.exe"')
        assert candidates[0].display_name.endswith("(Toolbox/Windows)")


class TestStandaloneDiscovery:
    """Tests for non-toolbox installs."""

    def test_linux_install(self, temp_dir: Path):
        """A tarball install under /opt is found."""
        _touch(temp_dir / "idea-IU-233.11799" / "bin" / "idea.sh")
        (temp_dir / "unrelated" / "bin").mkdir(parents=True)

        candidates = _locator(temp_dir, "linux").discover()

        assert candidates == [
            IdeCandidate(
                str(temp_dir / "idea-IU-233.11799" / "bin" / "idea.sh"),
                "IntelliJ IDEA - idea-IU-233.11799",
            )
        ]

    def test_linux_snap(self, temp_dir: Path):
        """A snap install is found through its current link."""
        _touch(temp_dir / "intellij-idea-community" / "current" / "bin" / "idea.sh")

        candidates = _locator(temp_dir, "linux").discover()

        assert candidates[0].display_name == "IntelliJ IDEA - intellij-idea-community (Snap)"

    def test_macos_application(self, temp_dir: Path):
        """An application bundle is named after the bundle."""
        _touch(temp_dir / "IntelliJ IDEA CE.app" / "Contents" / "MacOS" / "idea")
        _touch(temp_dir / "PyCharm.app" / "Contents" / "MacOS" / "pycharm")

        candidates = _locator(temp_dir, "macos").discover()

        assert [c.display_name for c in candidates] == ["IntelliJ IDEA CE"]

    def test_windows_install_matched_once(self, temp_dir: Path):
        """An Ultimate install is reported once, under its specific product."""
        _touch(temp_dir / "IntelliJ IDEA Ultimate 2023.3" / "bin" / "idea64.exe")

        candidates = _locator(temp_dir, "windows").discover()

        assert [c.display_name for c in candidates] == [
            "IntelliJ IDEA Ultimate - IntelliJ IDEA Ultimate 2023.3"
        ]
        assert not candidates[0].executable_path.startswith('"')

    def test_wsl_install_is_quoted(self, temp_dir: Path):
        """A Windows install seen from WSL has a pre-quoted path."""
        _touch(temp_dir / "IntelliJ IDEA 2023.3" / "bin" / "idea64.exe")

        candidates = _locator(temp_dir, "wsl").discover()

        assert candidates[0].display_name == "IntelliJ IDEA - IntelliJ IDEA 2023.3 (Windows)"
        assert candidates[0].executable_path == f'"{temp_dir / "IntelliJ IDEA 2023.3" / "bin" / "idea64.exe"}"'

    def test_missing_base_directory(self, temp_dir: Path):
        """A search path that does not exist contributes nothing."""
        candidates = _locator(temp_dir / "nope", "linux").discover()

        assert candidates == []


class TestSearchPaths:
    """Tests for the default search paths per platform."""

    def test_windows_uses_environment(self, temp_dir: Path):
        """Windows paths come from the environment and the home directory."""
        locator = IdeLocator(
            os_name="windows",
            home=temp_dir,
            env={"LOCALAPPDATA": "C:/Users/me/AppData/Local", "PROGRAMFILES": "C:/Program Files"},
            wsl=False,
        )

        paths = [str(p) for p, _ in locator.search_paths()]

        assert paths[0].endswith("Programs")
        assert any(p.endswith("JetBrains") for p in paths)
        assert paths[-1].endswith("apps")
        assert len(paths) == 3

    def test_linux_without_wsl(self, temp_dir: Path):
        """Linux probes /opt, /usr/local, the toolbox and /snap."""
        locator = IdeLocator(os_name="linux", home=temp_dir, wsl=False)

        paths = [p for p, _ in locator.search_paths()]

        assert Path("/opt") in paths
        assert Path("/snap") in paths
        assert all(layout == "linux" for _, layout in locator.search_paths())

    def test_wsl_adds_windows_locations(self, temp_dir: Path):
        """Under WSL the Windows user's directories are probed too."""
        users = temp_dir / "c" / "Users"
        (users / "Public").mkdir(parents=True)
        (users / "alex").mkdir()
        locator = IdeLocator(os_name="linux", home=temp_dir, wsl=True, wsl_users_dir=users)

        wsl_paths = [p for p, layout in locator.search_paths() if layout == "wsl"]

        assert users / "alex" / "AppData" / "Local" / "Programs" in wsl_paths
        assert temp_dir / "c" / "Program Files" / "JetBrains" in wsl_paths

    def test_wsl_without_windows_user(self, temp_dir: Path):
        """No Windows user means no Windows locations."""
        locator = IdeLocator(
            os_name="linux", home=temp_dir, wsl=True, wsl_users_dir=temp_dir / "missing"
        )

        assert all(layout == "linux" for _, layout in locator.search_paths())


class _FixedLocator(IdeLocator):
    def __init__(self, candidates: list[IdeCandidate]):
        super().__init__(os_name="linux", home=Path("/nonexistent"), wsl=False, search_paths=[])
        self.candidates = candidates
        self.calls = 0

    def discover(self) -> list[IdeCandidate]:
        self.calls += 1
        return list(self.candidates)


class _Chooser:
    def __init__(self, answer: str | None):
        self.answer = answer
        self.calls: list[list[IdeCandidate]] = []

    async def __call__(self, candidates: list[IdeCandidate], default_command: str) -> str | None:
        self.calls.append(candidates)
        return self.answer


class TestIdeResolver:
    """Tests for IdeResolver.resolve() method."""

    def test_no_candidates_uses_default_command(self):
        """Without installs the bare default command is used."""
        chooser = _Chooser("unused")
        resolver = IdeResolver(_FixedLocator([]), "idea")

        resolution = asyncio.run(resolver.resolve(chooser))

        assert resolution.status == ResolutionStatus.NOT_FOUND
        assert resolution.path == "idea"
        assert chooser.calls == []

    def test_single_candidate_is_used_without_prompt(self):
        """One install is picked automatically."""
        chooser = _Chooser("unused")
        resolver = IdeResolver(_FixedLocator([IdeCandidate("/opt/idea/bin/idea.sh", "IDEA")]))

        resolution = asyncio.run(resolver.resolve(chooser))

        assert resolution.status == ResolutionStatus.AUTO_SELECTED
        assert resolution.path == "/opt/idea/bin/idea.sh"
        assert chooser.calls == []

    def test_several_candidates_prompt(self):
        """With several installs the chooser decides."""
        candidates = [IdeCandidate("/a/idea.sh", "A"), IdeCandidate("/b/idea.sh", "B")]
        chooser = _Chooser("/b/idea.sh")
        resolver = IdeResolver(_FixedLocator(candidates))

        resolution = asyncio.run(resolver.resolve(chooser))

        assert resolution.status == ResolutionStatus.CHOSEN
        assert resolution.path == "/b/idea.sh"
        assert chooser.calls == [candidates]

    def test_cancelled_choice(self):
        """Cancelling the chooser yields no path and nothing is remembered."""
        candidates = [IdeCandidate("/a/idea.sh", "A"), IdeCandidate("/b/idea.sh", "B")]
        resolver = IdeResolver(_FixedLocator(candidates))

        resolution = asyncio.run(resolver.resolve(_Chooser(None)))

        assert resolution.cancelled
        assert resolution.path is None

        retry = asyncio.run(resolver.resolve(_Chooser("/b/idea.sh")))
        assert retry.status == ResolutionStatus.CHOSEN
        assert retry.path == "/b/idea.sh"

    def test_result_is_remembered(self):
        """A resolved path is reused without probing again."""
        locator = _FixedLocator([IdeCandidate("/opt/idea/bin/idea.sh", "IDEA")])
        resolver = IdeResolver(locator)
        asyncio.run(resolver.resolve(_Chooser(None)))

        resolution = asyncio.run(resolver.resolve(_Chooser(None)))

        assert resolution.status == ResolutionStatus.CACHED
        assert resolution.path == "/opt/idea/bin/idea.sh"
        assert locator.calls == 1
