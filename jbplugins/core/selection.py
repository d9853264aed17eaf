"""Persistent plugin selection ("basket")."""

import logging
from collections.abc import Iterable
from enum import Enum
from pathlib import Path

from jbplugins.config.parser import load_selection_file, save_selection_file
from jbplugins.config.schemas import PluginRecord

logger = logging.getLogger(__name__)


class AddResult(str, Enum):
    """Outcome of adding a plugin to the selection."""

    ADDED = "added"
    ALREADY_SELECTED = "already_selected"


class SelectionStore:
    """Ordered, xmlId-unique collection of selected plugins.

    The selection is written to disk after every mutation. Only one process
    is expected to use the file; concurrent writers simply overwrite each
    other.
    """

    def __init__(self, path: Path):
        """Initialize the selection store.

        Args:
            path: Path to the persisted selection file
        """
        self._path = path
        self._plugins: list[PluginRecord] = []
        self.last_save_error: OSError | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def plugins(self) -> list[PluginRecord]:
        """Selected plugins in the order they were added."""
        return list(self._plugins)

    @property
    def xml_ids(self) -> list[str]:
        return [plugin.xml_id for plugin in self._plugins]

    def __len__(self) -> int:
        return len(self._plugins)

    def __bool__(self) -> bool:
        return bool(self._plugins)

    def load(self) -> bool:
        """Load the selection from disk.

        A missing, unreadable or malformed file leaves the selection empty.

        Returns:
            True if a well-formed selection file was loaded
        """
        stored = load_selection_file(self._path)
        if stored is None:
            self._plugins = []
            return False

        self._plugins = []
        seen: set[str] = set()
        for plugin in stored:
            if plugin.xml_id in seen:
                continue
            seen.add(plugin.xml_id)
            self._plugins.append(plugin)
        logger.info("Loaded %d plugin(s) from %s", len(self._plugins), self._path)
        return True

    def save(self) -> bool:
        """Write the selection to disk.

        Returns:
            True if the file was written; on failure the error is kept in
            last_save_error and False is returned
        """
        try:
            save_selection_file(self._path, self._plugins)
        except OSError as e:
            logger.error("Could not save selection to %s: %s", self._path, e)
            self.last_save_error = e
            return False
        self.last_save_error = None
        return True

    def contains(self, xml_id: str) -> bool:
        """Check if a plugin is selected.

        Args:
            xml_id: Plugin identifier

        Returns:
            True if the plugin is in the selection
        """
        return any(plugin.xml_id == xml_id for plugin in self._plugins)

    def add(self, plugin: PluginRecord) -> AddResult:
        """Add a plugin to the end of the selection.

        Args:
            plugin: Plugin to add

        Returns:
            ADDED, or ALREADY_SELECTED if the identifier was present (no change)
        """
        if self.contains(plugin.xml_id):
            return AddResult.ALREADY_SELECTED
        self._plugins.append(plugin)
        self.save()
        return AddResult.ADDED

    def add_many(self, plugins: Iterable[PluginRecord]) -> tuple[list[PluginRecord], list[str]]:
        """Add several plugins, saving once.

        Args:
            plugins: Plugins to add

        Returns:
            Tuple of (added records, identifiers skipped as already selected)
        """
        added: list[PluginRecord] = []
        skipped: list[str] = []
        for plugin in plugins:
            if self.contains(plugin.xml_id):
                skipped.append(plugin.xml_id)
                continue
            self._plugins.append(plugin)
            added.append(plugin)
        if added:
            self.save()
        return added, skipped

    def remove(self, xml_ids: Iterable[str]) -> list[PluginRecord]:
        """Remove plugins from the selection.

        Args:
            xml_ids: Identifiers to remove

        Returns:
            The removed records, in selection order
        """
        to_remove = set(xml_ids)
        removed = [p for p in self._plugins if p.xml_id in to_remove]
        if removed:
            self._plugins = [p for p in self._plugins if p.xml_id not in to_remove]
            self.save()
        return removed

    def replace(self, plugins: Iterable[PluginRecord]) -> None:
        """Replace the whole selection, dropping duplicate identifiers."""
        self._plugins = []
        seen: set[str] = set()
        for plugin in plugins:
            if plugin.xml_id not in seen:
                seen.add(plugin.xml_id)
                self._plugins.append(plugin)
        self.save()

    def clear(self) -> None:
        """Remove every plugin from the selection."""
        self._plugins = []
        self.save()
