"""Interactive main menu.

Every screen reads from the same KeySource. Backing out of any prompt with
Esc or Ctrl-C returns to the menu; backing out of the menu itself exits.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import NamedTuple

from rich.console import Console
from rich.rule import Rule

from jbplugins.config.schemas import UNKNOWN_ORGANIZATION, PluginRecord
from jbplugins.core.command import INSTALL_VERB, decode_command, encode_command
from jbplugins.core.locator import IdeCandidate, ResolutionStatus
from jbplugins.core.selection import AddResult
from jbplugins.core.session import Session
from jbplugins.registry.marketplace import MIN_QUERY_LENGTH, FailureKind, advisory_message
from jbplugins.ui.keys import CANCELLED, KeySource
from jbplugins.ui.prompts import Choice, ask_text, confirm, select_many, select_one
from jbplugins.ui.selector import InteractiveSelector
from jbplugins.utils.clipboard import copy_to_clipboard
from jbplugins.utils.formatting import format_plugin_label

logger = logging.getLogger(__name__)


class Action(str, Enum):
    """Main menu entries."""

    BROWSE = "browse"
    SEARCH = "search"
    IMPORT = "import"
    VIEW = "view"
    REMOVE = "remove"
    CLEAR = "clear"
    GENERATE = "generate"
    EXIT = "exit"


def menu_choices(has_selection: bool) -> list[Choice[Action]]:
    """Menu entries; the ones acting on the selection need a non-empty one."""
    choices = [
        Choice(Action.BROWSE, "Browse all plugins (multi-select with filter)", key="1"),
        Choice(Action.SEARCH, "Quick search and add a plugin", key="2"),
        Choice(Action.IMPORT, "Import from install command", key="3"),
        Choice(Action.VIEW, "View selected plugins", key="4"),
    ]
    if has_selection:
        choices += [
            Choice(Action.REMOVE, "Remove plugins from selection", key="5"),
            Choice(Action.CLEAR, "Clear all selections", key="6"),
            Choice(Action.GENERATE, "Generate install command", key="7"),
        ]
    choices.append(Choice(Action.EXIT, "Exit", key="0"))
    return choices


def show_install_command(console: Console, command: str) -> None:
    """Print an install command framed for copying."""
    console.print()
    console.print(Rule("INSTALLATION COMMAND"))
    console.print()
    console.print(command, markup=False, highlight=False, soft_wrap=True)
    console.print()
    console.print(Rule())


def show_install_instructions(console: Console) -> None:
    console.print()
    console.print("To install the plugins:")
    console.print("   1. Make sure IntelliJ IDEA is closed")
    console.print("   2. Run the command above in your terminal")
    console.print("   3. Restart IntelliJ IDEA")
    console.print()


class MainMenu:
    """Runs the interactive session until the user exits."""

    def __init__(self, session: Session, keys: KeySource):
        self.session = session
        self.keys = keys

    @property
    def console(self) -> Console:
        return self.session.console

    def _success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def _warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def _report_save(self) -> None:
        error = self.session.selection.last_save_error
        if error is not None:
            self._warning(f"Could not save selection to {self.session.selection.path}: {error}")

    def _report_catalog_failure(self) -> None:
        kind = self.session.catalog.last_failure
        if kind is not None:
            self._warning(advisory_message(kind))

    async def run(self) -> None:
        """Show the menu repeatedly until Exit (or Esc on the menu)."""
        self.show_banner()
        selection = self.session.selection
        if selection:
            self._success(f"Loaded {len(selection)} saved plugin(s) from previous session")

        handlers = {
            Action.BROWSE: self.browse,
            Action.SEARCH: self.quick_search,
            Action.IMPORT: self.import_command,
            Action.VIEW: self.view,
            Action.REMOVE: self.remove,
            Action.CLEAR: self.clear,
            Action.GENERATE: self.generate,
        }

        while True:
            self.show_basket()
            action = await select_one(
                self.keys,
                self.console,
                "What would you like to do? (use arrow keys or number)",
                menu_choices(bool(selection)),
            )
            if action is CANCELLED or action == Action.EXIT:
                break
            logger.debug("Menu action: %s", action.value)
            await handlers[action]()

        self.console.print("\nGoodbye!\n")

    def show_banner(self) -> None:
        self.console.print(Rule("JetBrains Plugin Installer"))
        self.console.print("  Search and install IntelliJ IDEA plugins with ease", style="dim")
        self.console.print()

    def show_basket(self) -> None:
        """Print the current selection."""
        plugins = self.session.selection.plugins
        self.console.print(Rule(style="dim"))
        if not plugins:
            self.console.print("Your basket is empty")
        else:
            self.console.print(f"Selected Plugins ({len(plugins)}):")
            for index, plugin in enumerate(plugins, start=1):
                self.console.print(f"   {index}. {plugin.name} ({plugin.xml_id})", markup=False)
        self.console.print(Rule(style="dim"))

    async def view(self) -> None:
        # The basket is printed before every menu prompt
        return None

    async def browse(self) -> None:
        """Fetch the popular catalog, run the selector and replace the selection."""
        session = self.session
        with self.console.status("Fetching plugins...") as status:

            def progress(index: int, total: int, category: str) -> None:
                status.update(f"Fetching plugins... [{index}/{total}] {category}")

            plugins = await session.catalog.fetch_all_popular_plugins(progress)

        self._report_catalog_failure()
        if not plugins:
            self._warning("Could not fetch plugins. Please check your internet connection.")
            return

        selector = InteractiveSelector(
            session.catalog,
            plugins,
            self.keys,
            selected=session.selection.plugins,
            console=self.console,
            debounce=session.settings.debounce_seconds,
            page_size=session.settings.page_size,
        )
        outcome = await selector.run()
        self.console.clear()

        if outcome is CANCELLED:
            self.console.print("Cancelled. No changes made.")
            return

        session.selection.replace(outcome)
        self._success(f"Selection updated: {len(outcome)} plugin(s) selected.")
        self._report_save()

    async def quick_search(self) -> None:
        """Search by name and add single plugins until the user stops."""
        selection = self.session.selection
        while True:
            query = await ask_text(self.keys, self.console, "Search for a plugin (Esc to go back):")
            if query is CANCELLED:
                return
            if len(query.strip()) < MIN_QUERY_LENGTH:
                self._warning(f"Type at least {MIN_QUERY_LENGTH} characters to search.")
                continue

            with self.console.status("Searching..."):
                results = await self.session.catalog.typeahead_search(query)
            if not results:
                self._report_catalog_failure()
                self.console.print("No results found")
                continue

            choices = [
                Choice(p, format_plugin_label(p.name, p.organization, p.downloads), p.xml_id)
                for p in results
            ]
            plugin = await select_one(self.keys, self.console, "Select a plugin:", choices)
            if plugin is CANCELLED:
                return

            if selection.add(plugin) == AddResult.ALREADY_SELECTED:
                self._warning(f'"{plugin.name}" is already in your selection.')
            else:
                self._success(f'Added "{plugin.name}" to your selection.')
                self._report_save()

            again = await confirm(self.keys, self.console, "Add another plugin?", default=True)
            if again is not True:
                return

    async def import_command(self) -> None:
        """Add the plugins named in a pasted install command."""
        command = await ask_text(
            self.keys, self.console, "Paste the install command (Esc to cancel):"
        )
        if command is CANCELLED:
            return
        if not command.strip():
            self._warning("No command provided.")
            return

        xml_ids = decode_command(command)
        if not xml_ids:
            self._warning(
                f'No plugin IDs found in the command. Make sure it contains "{INSTALL_VERB}" '
                "followed by plugin IDs."
            )
            return

        with self.console.status("Looking up plugin information..."):
            added, skipped, failure = await import_plugins(self.session, xml_ids)

        if failure is not None:
            self._warning(advisory_message(failure))
        if added:
            self._success(f"Added {len(added)} plugin(s):")
            for plugin in added:
                self.console.print(f"   - {plugin.name} ({plugin.xml_id})", markup=False)
            self._report_save()
        if skipped:
            self._warning(f"Skipped {len(skipped)} plugin(s) already in selection.")
        if not added and not skipped:
            self._warning("No plugins were added.")

    async def remove(self) -> None:
        """Multi-select plugins to drop from the selection."""
        selection = self.session.selection
        if not selection:
            self.console.print("No plugins to remove.")
            return

        choices = [Choice(p.xml_id, f"{p.name} ({p.xml_id})") for p in selection.plugins]
        answer = await select_many(
            self.keys,
            self.console,
            "Select plugins to remove (Space to toggle, Enter to confirm, Esc to cancel):",
            choices,
        )
        if answer is CANCELLED:
            return

        removed = selection.remove(answer)
        if not removed:
            self.console.print("No plugins removed.")
            return
        self._success(f"Removed {len(removed)} plugin(s):")
        for plugin in removed:
            self.console.print(f"   - {plugin.name}", markup=False)
        self._report_save()

    async def clear(self) -> None:
        selection = self.session.selection
        confirmed = await confirm(
            self.keys,
            self.console,
            f"Are you sure you want to clear all {len(selection)} selected plugins? "
            "(Esc to cancel)",
            default=False,
        )
        if confirmed is True:
            selection.clear()
            self._success("All selections cleared.")
            self._report_save()

    async def choose_ide(self, candidates: list[IdeCandidate], default_command: str) -> str | None:
        """Ask which of several installations to use.

        Returns:
            The chosen executable path (or the default command), None if cancelled
        """
        self.console.print(f"\nFound {len(candidates)} IntelliJ IDEA installations:\n")
        choices = [
            Choice(c.executable_path, c.display_name, c.executable_path) for c in candidates
        ]
        choices.append(
            Choice(default_command, f"Use default ({default_command})", "Command on your PATH")
        )
        answer = await select_one(
            self.keys, self.console, "Select which IntelliJ IDEA to use:", choices
        )
        return None if answer is CANCELLED else answer

    async def generate(self) -> None:
        """Resolve the IDE, print the install command and offer to copy it."""
        session = self.session
        if not session.selection:
            self.console.print("No plugins selected. Add some plugins first.")
            return

        resolution = await session.resolver.resolve(self.choose_ide)
        if resolution.cancelled:
            return
        if resolution.status == ResolutionStatus.NOT_FOUND:
            self._warning("No IntelliJ IDEA installation found automatically.")
            self.console.print(f"   Using default command: {resolution.path}")
        elif resolution.status == ResolutionStatus.AUTO_SELECTED:
            self._success(f"Found: {resolution.candidates[0].display_name}")

        command = encode_command(resolution.path, session.selection.xml_ids)
        show_install_command(self.console, command)

        copy = await confirm(
            self.keys, self.console, "Copy command to clipboard? (Esc to skip)", default=True
        )
        if copy is True:
            if copy_to_clipboard(command):
                self._success("Command copied to clipboard!")
            else:
                self._warning("Could not copy to clipboard. Please copy the command manually.")

        show_install_instructions(self.console)


class ImportResult(NamedTuple):
    added: list[PluginRecord]
    skipped: list[str]
    failure: FailureKind | None  # First failed lookup, if any


async def import_plugins(session: Session, xml_ids: list[str]) -> ImportResult:
    """Look up and add plugins by identifier.

    Identifiers already selected are skipped without a lookup. A plugin the
    marketplace cannot find is still added, named after its identifier; the
    same happens when the lookup itself fails, and the first such failure is
    returned so it can be reported once.

    Args:
        session: Current session
        xml_ids: Identifiers in command order

    Returns:
        ImportResult with added records, skipped identifiers and failure
    """
    records: list[PluginRecord] = []
    skipped: list[str] = []
    failure: FailureKind | None = None
    for xml_id in xml_ids:
        if session.selection.contains(xml_id) or any(r.xml_id == xml_id for r in records):
            skipped.append(xml_id)
            continue
        found = await session.catalog.lookup_plugin(xml_id)
        failure = failure or session.catalog.last_failure
        if found is None:
            logger.info("No marketplace match for %s; adding it by identifier", xml_id)
            found = PluginRecord(xml_id=xml_id, name=xml_id, organization=UNKNOWN_ORGANIZATION)
        records.append(found)

    added, already = session.selection.add_many(records)
    return ImportResult(added, skipped + already, failure)
