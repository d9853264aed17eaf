"""Shared fixtures for jb-plugins tests."""

import asyncio
import shutil
import tempfile
from collections.abc import Callable, Generator, Iterable
from pathlib import Path

import pytest

from jbplugins.config.schemas import PluginRecord
from jbplugins.registry.marketplace import FailureKind
from jbplugins.ui.keys import KeyEvent, KeyKind, KeySource

# A scripted key stream item: a key event, a string typed one character at a
# time, or a pause in seconds
ScriptItem = KeyEvent | str | float


class ScriptedKeys(KeySource):
    """Key source replaying a fixed script; Ctrl-C once the script runs out."""

    def __init__(self, script: Iterable[ScriptItem] = ()):
        self._items: list[KeyEvent | float] = []
        for item in script:
            if isinstance(item, str):
                self._items.extend(KeyEvent.of(c) for c in item)
            else:
                self._items.append(item)

    async def read(self) -> KeyEvent:
        while self._items:
            item = self._items.pop(0)
            if isinstance(item, float):
                await asyncio.sleep(item)
                continue
            return item
        return KeyEvent(KeyKind.INTERRUPT)


class FakeCatalog:
    """In-memory stand-in for MarketplaceClient that records its calls."""

    def __init__(
        self,
        results: dict[str, list[PluginRecord]] | None = None,
        popular: list[PluginRecord] | None = None,
        max_results: int = 20,
        base_url: str = "https://plugins.jetbrains.com",
    ):
        self.results = results or {}
        self.popular = popular or []
        self.max_results = max_results
        self.base_url = base_url
        self.last_failure: FailureKind | None = None
        self.fail_with: FailureKind | None = None
        self.delays: dict[str, float] = {}
        self.calls: list[tuple[str, str]] = []

    def _answer(self, method: str, query: str) -> list[PluginRecord]:
        self.calls.append((method, query))
        self.last_failure = self.fail_with
        if self.fail_with is not None:
            return []
        return list(self.results.get(query, []))

    async def browse_search(
        self, query: str, max_results: int | None = None, timeout: float = 15
    ) -> list[PluginRecord]:
        answer = self._answer("browse", query)
        if query in self.delays:
            await asyncio.sleep(self.delays[query])
        return answer

    async def typeahead_search(self, query: str) -> list[PluginRecord]:
        return self._answer("typeahead", query)

    async def lookup_plugin(self, xml_id: str) -> PluginRecord | None:
        for record in self._answer("lookup", xml_id):
            if record.xml_id == xml_id:
                return record
        return None

    async def fetch_all_popular_plugins(
        self, progress: Callable[[int, int, str], None] | None = None
    ) -> list[PluginRecord]:
        self.calls.append(("popular", ""))
        if progress is not None:
            progress(1, 1, "java")
        # Popular records are returned even when failing, like a partial sweep
        self.last_failure = self.fail_with
        return list(self.popular)


def make_plugin(
    xml_id: str,
    name: str | None = None,
    organization: str = "JetBrains",
    downloads: int | None = None,
) -> PluginRecord:
    """Build a plugin record with sensible defaults."""
    return PluginRecord(
        xml_id=xml_id,
        name=name if name is not None else xml_id,
        organization=organization,
        downloads=downloads,
    )


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory."""
    path = Path(tempfile.mkdtemp(prefix="jbplugins_test_"))
    yield path
    if path.exists():
        shutil.rmtree(path)


@pytest.fixture
def selection_path(temp_dir: Path) -> Path:
    """Path for a selection file inside the temporary directory."""
    return temp_dir / ".jb-plugins-config.json"


@pytest.fixture
def sample_plugins() -> list[PluginRecord]:
    """A few plugins with distinct names, authors and download counts."""
    return [
        make_plugin("IdeaVIM", "IdeaVim", "JetBrains", 20_000_000),
        make_plugin("izhangzhihao.rainbow.brackets", "Rainbow Brackets", "izhangzhihao", 9_000_000),
        make_plugin("org.sonarlint.idea", "SonarLint", "SonarSource", 7_000_000),
        make_plugin("com.intellij.plugins.haml", "Haml", "JetBrains", 300_000),
    ]


@pytest.fixture
def fake_catalog() -> FakeCatalog:
    """Catalog with no canned results."""
    return FakeCatalog()


@pytest.fixture
def make_keys() -> type[ScriptedKeys]:
    """Factory for scripted key sources."""
    return ScriptedKeys
