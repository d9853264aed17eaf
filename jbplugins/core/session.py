"""Per-process session state shared by the menu actions."""

from __future__ import annotations

from dataclasses import dataclass, field

from rich.console import Console

from jbplugins.config.schemas import Settings
from jbplugins.core.locator import IdeLocator, IdeResolver
from jbplugins.core.selection import SelectionStore
from jbplugins.registry.marketplace import MarketplaceClient


@dataclass
class Session:
    """Everything one run of the tool works with.

    The selection store is the only state that outlives the process; the
    resolved IDE path is remembered only for the current run.
    """

    settings: Settings
    selection: SelectionStore
    catalog: MarketplaceClient
    resolver: IdeResolver
    console: Console = field(default_factory=Console)

    @classmethod
    def create(
        cls,
        settings: Settings,
        console: Console | None = None,
        locator: IdeLocator | None = None,
    ) -> Session:
        """Build a session from settings and load the persisted selection.

        Args:
            settings: Loaded settings
            console: Console for output (defaults to stdout)
            locator: IDE locator (defaults to probing the host platform)

        Returns:
            The new session
        """
        selection = SelectionStore(settings.selection_file)
        selection.load()
        catalog = MarketplaceClient(
            base_url=settings.marketplace_url,
            max_results=settings.max_results,
            enrich_limit=settings.enrich_limit,
        )
        resolver = IdeResolver(locator or IdeLocator(), settings.default_command)
        return cls(
            settings=settings,
            selection=selection,
            catalog=catalog,
            resolver=resolver,
            console=console or Console(),
        )
