"""Interactive multi-select over a local plugin cache and live marketplace search.

Typing filters the in-memory cache immediately and schedules a marketplace
search once the query has been stable for the debounce interval. A newer
keystroke cancels the pending search (including its in-flight request), and a
reply is always applied against the query current at the time it arrives, so
results for an edited query never replace the view of the current one.

The cache only grows during a session; for any identifier the first record
seen is kept.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from rich.console import Console

from jbplugins.config.schemas import DEFAULT_MARKETPLACE_URL, PluginRecord
from jbplugins.registry.marketplace import (
    MIN_QUERY_LENGTH,
    TYPEAHEAD_TIMEOUT,
    MarketplaceClient,
    advisory_message,
)
from jbplugins.ui.keys import CANCELLED, CancelledType, KeyEvent, KeyKind, KeySource
from jbplugins.ui.render import render_selector

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.3  # seconds
DEFAULT_PAGE_SIZE = 8


def filter_plugins(plugins: Iterable[PluginRecord], term: str) -> list[PluginRecord]:
    """Case-insensitive substring filter over name, organization and identifier.

    An empty term keeps every plugin. Input order is preserved.
    """
    plugins = list(plugins)
    if not term:
        return plugins
    term = term.lower()
    return [
        p
        for p in plugins
        if term in p.name.lower() or term in p.organization.lower() or term in p.xml_id.lower()
    ]


def relevance(plugin: PluginRecord, term: str) -> int:
    """Score a plugin for a term: a name match counts twice an identifier match."""
    term = term.lower()
    name_match = 1 if term in plugin.name.lower() else 0
    id_match = 1 if term in plugin.xml_id.lower() else 0
    return name_match * 2 + id_match


def rank_plugins(plugins: Iterable[PluginRecord], term: str) -> list[PluginRecord]:
    """Order plugins by relevance, then by downloads (both descending)."""
    return sorted(plugins, key=lambda p: (-relevance(p, term), -(p.downloads or 0)))


@dataclass
class SelectorState:
    """Everything the selector screen shows."""

    cache: dict[str, PluginRecord]
    selected_ids: set[str]
    query: str = ""
    cursor: int = 0
    filtered: list[PluginRecord] = field(default_factory=list)
    searching: bool = False
    remote_contributed: bool = False
    page_size: int = DEFAULT_PAGE_SIZE
    min_query_length: int = MIN_QUERY_LENGTH
    marketplace_url: str = DEFAULT_MARKETPLACE_URL

    @property
    def current(self) -> PluginRecord | None:
        if 0 <= self.cursor < len(self.filtered):
            return self.filtered[self.cursor]
        return None


class InteractiveSelector:
    """Keystroke-driven plugin picker."""

    def __init__(
        self,
        catalog: MarketplaceClient,
        plugins: Iterable[PluginRecord],
        keys: KeySource,
        selected: Iterable[PluginRecord] = (),
        console: Console | None = None,
        debounce: float = DEFAULT_DEBOUNCE,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        """Initialize the selector.

        Args:
            catalog: Marketplace client used for live searches
            plugins: Initial cache contents, in display order
            keys: Source of key events
            selected: Plugins that start out selected; any not already in
                      the cache are appended to it so confirming keeps them
            console: Console to draw on (None draws nothing)
            debounce: Quiet period before a live search, in seconds
            page_size: Number of visible rows
        """
        self._catalog = catalog
        self._keys = keys
        self._console = console
        self._debounce = debounce
        self._pending: asyncio.Task[None] | None = None
        self._advisory: str | None = None

        cache: dict[str, PluginRecord] = {}
        for plugin in plugins:
            cache.setdefault(plugin.xml_id, plugin)
        selected_ids: set[str] = set()
        for plugin in selected:
            cache.setdefault(plugin.xml_id, plugin)
            selected_ids.add(plugin.xml_id)

        self.state = SelectorState(
            cache=cache,
            selected_ids=selected_ids,
            filtered=list(cache.values()),
            page_size=page_size,
            marketplace_url=catalog.base_url,
        )

    def selected_records(self) -> list[PluginRecord]:
        """Selected plugins in cache order."""
        return [p for p in self.state.cache.values() if p.xml_id in self.state.selected_ids]

    async def run(self) -> list[PluginRecord] | CancelledType:
        """Run the selector until the user confirms or cancels.

        Returns:
            Selected plugins (cache order) on Enter, CANCELLED on Esc or Ctrl-C
        """
        self.redraw()
        with self._keys.screen():
            try:
                while True:
                    event = await self._keys.read()
                    outcome = self.handle_key(event)
                    if outcome is not None:
                        return outcome
                    self.redraw()
            finally:
                self._cancel_pending()

    def handle_key(self, event: KeyEvent) -> list[PluginRecord] | CancelledType | None:
        """Apply one keystroke.

        Returns:
            The final outcome if the key ends the session, otherwise None
        """
        state = self.state
        if event.kind == KeyKind.ENTER:
            return self.selected_records()
        if event.cancels:
            return CANCELLED

        if event.kind == KeyKind.SPACE:
            current = state.current
            if current is not None:
                if current.xml_id in state.selected_ids:
                    state.selected_ids.discard(current.xml_id)
                else:
                    state.selected_ids.add(current.xml_id)
        elif event.kind == KeyKind.UP:
            state.cursor = max(state.cursor - 1, 0)
        elif event.kind == KeyKind.DOWN:
            state.cursor = min(state.cursor + 1, max(len(state.filtered) - 1, 0))
        elif event.kind == KeyKind.BACKSPACE:
            self.set_query(state.query[:-1])
        elif event.kind == KeyKind.CHAR:
            self.set_query(state.query + event.char)
        return None

    def set_query(self, query: str) -> None:
        """Change the search buffer: filter the cache now, search remotely later."""
        state = self.state
        state.query = query
        state.cursor = 0
        state.filtered = filter_plugins(state.cache.values(), query)
        state.remote_contributed = False
        self._advisory = None
        self._schedule_search(query)

    def _schedule_search(self, query: str) -> None:
        self._cancel_pending()
        if len(query.strip()) < MIN_QUERY_LENGTH:
            return
        self._pending = asyncio.get_running_loop().create_task(
            self._search_after_quiet_period(query)
        )

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
        self.state.searching = False

    async def _search_after_quiet_period(self, query: str) -> None:
        await asyncio.sleep(self._debounce)

        self.state.searching = True
        self.redraw()
        try:
            results = await self._catalog.browse_search(
                query, self._catalog.max_results, timeout=TYPEAHEAD_TIMEOUT
            )
        finally:
            self.state.searching = False

        if self._catalog.last_failure is not None:
            self._advisory = advisory_message(self._catalog.last_failure)
        self.apply_remote_results(query, results)
        self.redraw()

    def apply_remote_results(self, query: str, results: Iterable[PluginRecord]) -> None:
        """Merge search results into the cache and rebuild the view.

        The view is derived from the query current now, which may differ from
        the query the results were requested for. Results are only ranked
        into the view when the two match.

        Args:
            query: Query the results were requested for
            results: Records returned by the marketplace
        """
        state = self.state
        added = 0
        for record in results:
            if record.xml_id not in state.cache:
                state.cache[record.xml_id] = record
                added += 1
        logger.debug("Search '%s' added %d plugin(s) to the cache", query, added)

        matches = filter_plugins(state.cache.values(), state.query)
        if query == state.query and len(state.query.strip()) >= MIN_QUERY_LENGTH:
            state.filtered = rank_plugins(matches, state.query)
            state.remote_contributed = True
            state.cursor = 0
        else:
            state.filtered = matches
            state.cursor = min(state.cursor, max(len(matches) - 1, 0))

    def redraw(self) -> None:
        if self._console is None:
            return
        self._console.clear()
        self._console.print(render_selector(self.state, self._advisory))
