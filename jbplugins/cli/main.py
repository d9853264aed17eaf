"""Main CLI application for jb-plugins."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from jbplugins import __version__
from jbplugins.cli.menu import (
    MainMenu,
    import_plugins,
    show_install_command,
    show_install_instructions,
)
from jbplugins.config.parser import ConfigError, load_settings
from jbplugins.core.command import INSTALL_VERB, decode_command, encode_command
from jbplugins.core.locator import IdeCandidate, IdeLocator, ResolutionStatus
from jbplugins.core.session import Session
from jbplugins.registry.marketplace import advisory_message
from jbplugins.ui.keys import KeySource, TerminalKeySource
from jbplugins.utils.clipboard import copy_to_clipboard
from jbplugins.utils.formatting import format_number
from jbplugins.utils.platform import get_platform_info

# Create the main Typer app
app = typer.Typer(
    name="jb-plugins",
    help="Search the JetBrains Marketplace and build IntelliJ IDEA plugin install commands",
    add_completion=False,
    invoke_without_command=True,
)

console = Console()
error_console = Console(stderr=True)

# Set up logger for the jbplugins package
logger = logging.getLogger("jbplugins")


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2=DEBUG, 3+=TRACE (DEBUG with extra detail)
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logger.setLevel(level)

    # Only add handler if not already configured
    if not logger.handlers:
        handler = RichHandler(
            console=error_console,
            show_time=verbosity >= 2,
            show_path=verbosity >= 3,
            rich_tracebacks=True,
        )
        handler.setLevel(level)
        logger.addHandler(handler)
    else:
        for h in logger.handlers:
            h.setLevel(level)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def create_key_source() -> KeySource:
    """Key source for interactive screens."""
    return TerminalKeySource()


def get_session(ctx: typer.Context) -> Session:
    """Get the session created by the callback."""
    session = ctx.obj
    if session is None:
        settings_path = ctx.meta.get("settings_path")
        session = _create_session(settings_path)
        ctx.obj = session
    return session


def _create_session(settings_path: Path | None) -> Session:
    try:
        settings = load_settings(settings_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e
    return Session.create(settings, console=console)


def report_save(session: Session) -> None:
    error = session.selection.last_save_error
    if error is not None:
        print_error(f"Could not save selection to {session.selection.path}: {error}")
        raise typer.Exit(1)


def run_interactive(session: Session, screen: str = "menu") -> None:
    """Run an interactive screen, turning unexpected failures into exit status 1."""
    menu = MainMenu(session, create_key_source())
    entry = menu.browse if screen == "browse" else menu.run
    try:
        asyncio.run(entry())
    except KeyboardInterrupt:
        console.print("\nGoodbye!\n")
    except Exception as e:
        logger.debug("Interactive session failed", exc_info=True)
        print_error(f"An unexpected error occurred: {e}")
        raise typer.Exit(1) from e


@app.callback()
def callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase verbosity (-v info, -vv debug, -vvv trace)",
        ),
    ] = 0,
    settings: Annotated[
        Path | None,
        typer.Option(
            "--settings",
            help="Settings file (defaults to ~/.config/jb-plugins/config.yaml)",
        ),
    ] = None,
) -> None:
    """jb-plugins - pick IntelliJ IDEA plugins and generate the install command.

    Without a command, starts the interactive menu.
    """
    setup_logging(verbose)
    logger.debug("Platform: %s", get_platform_info())
    ctx.meta["settings_path"] = settings
    if ctx.invoked_subcommand is None:
        run_interactive(get_session(ctx))


@app.command()
def version() -> None:
    """Show the jb-plugins version."""
    console.print(f"jb-plugins {__version__}")


@app.command()
def menu(ctx: typer.Context) -> None:
    """Start the interactive menu."""
    run_interactive(get_session(ctx))


@app.command()
def browse(ctx: typer.Context) -> None:
    """Browse popular plugins and edit the selection interactively."""
    run_interactive(get_session(ctx), screen="browse")


@app.command("list")
def list_plugins(ctx: typer.Context) -> None:
    """List selected plugins."""
    session = get_session(ctx)
    plugins = session.selection.plugins

    if not plugins:
        console.print("No plugins selected")
        return

    table = Table(title=f"Selected Plugins ({len(plugins)})")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Plugin", style="cyan")
    table.add_column("ID", style="green")
    table.add_column("Author", style="dim")

    for index, plugin in enumerate(plugins, start=1):
        table.add_row(str(index), plugin.name, plugin.xml_id, plugin.organization)

    console.print(table)


def _add_by_id(session: Session, xml_ids: list[str]) -> None:
    added, skipped, failure = asyncio.run(import_plugins(session, xml_ids))
    report_save(session)

    if failure is not None:
        print_warning(advisory_message(failure))
    for plugin in added:
        print_success(f"Added {plugin.name} ({plugin.xml_id})")
    if skipped:
        print_warning(f"Skipped {len(skipped)} plugin(s) already in selection")
    if not added and not skipped:
        print_warning("No plugins were added")


@app.command()
def add(
    ctx: typer.Context,
    xml_ids: Annotated[
        list[str],
        typer.Argument(help="Plugin IDs to add (e.g. 'IdeaVIM', 'com.intellij.plugins.haml')"),
    ],
) -> None:
    """Add plugins to the selection by ID.

    Each ID is looked up on the marketplace for its name and author; IDs the
    marketplace does not know are added as-is.
    """
    _add_by_id(get_session(ctx), xml_ids)


@app.command("import")
def import_command(
    ctx: typer.Context,
    command: Annotated[
        str,
        typer.Argument(help=f"Install command, e.g. 'idea {INSTALL_VERB} IdeaVIM'"),
    ],
) -> None:
    """Add the plugins named in an existing install command."""
    xml_ids = decode_command(command)
    if not xml_ids:
        print_error(
            f'No plugin IDs found in the command. Make sure it contains "{INSTALL_VERB}" '
            "followed by plugin IDs."
        )
        raise typer.Exit(1)
    _add_by_id(get_session(ctx), xml_ids)


@app.command()
def remove(
    ctx: typer.Context,
    xml_ids: Annotated[list[str], typer.Argument(help="Plugin IDs to remove")],
) -> None:
    """Remove plugins from the selection."""
    session = get_session(ctx)
    removed = session.selection.remove(xml_ids)
    report_save(session)

    if not removed:
        print_warning("No plugins removed")
        return
    for plugin in removed:
        print_success(f"Removed {plugin.name} ({plugin.xml_id})")


@app.command()
def clear(
    ctx: typer.Context,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Don't ask for confirmation"),
    ] = False,
) -> None:
    """Remove every plugin from the selection."""
    session = get_session(ctx)
    count = len(session.selection)
    if count == 0:
        console.print("No plugins selected")
        return

    if not yes and not typer.confirm(f"Clear all {count} selected plugins?"):
        console.print("Cancelled")
        return

    session.selection.clear()
    report_save(session)
    print_success("All selections cleared")


async def _pick_first(candidates: list[IdeCandidate], default_command: str) -> str:
    first = candidates[0]
    print_warning(
        f"Found {len(candidates)} IntelliJ IDEA installations; using {first.display_name}. "
        "Pass --ide to choose another."
    )
    return first.executable_path


@app.command()
def generate(
    ctx: typer.Context,
    ide: Annotated[
        str | None,
        typer.Option(
            "--ide",
            help="IDE executable or command (defaults to the detected installation)",
        ),
    ] = None,
    copy: Annotated[
        bool,
        typer.Option("--copy", "-c", help="Copy the command to the clipboard"),
    ] = False,
) -> None:
    """Print the install command for the selected plugins."""
    session = get_session(ctx)
    if not session.selection:
        print_error("No plugins selected. Add some plugins first.")
        raise typer.Exit(1)

    if ide is None:
        resolution = asyncio.run(session.resolver.resolve(_pick_first))
        if resolution.status == ResolutionStatus.NOT_FOUND:
            print_warning("No IntelliJ IDEA installation found automatically.")
            console.print(f"   Using default command: {resolution.path}")
        ide = resolution.path

    command = encode_command(ide, session.selection.xml_ids)
    show_install_command(console, command)

    if copy:
        if copy_to_clipboard(command):
            print_success("Command copied to clipboard")
        else:
            print_warning("Could not copy to clipboard. Please copy the command manually.")

    show_install_instructions(console)


@app.command()
def ides() -> None:
    """List detected IntelliJ IDEA installations."""
    candidates = IdeLocator().discover()

    if not candidates:
        console.print("No IntelliJ IDEA installation found")
        return

    table = Table(title="IntelliJ IDEA Installations")
    table.add_column("Name", style="cyan")
    table.add_column("Executable", style="dim")

    for candidate in candidates:
        table.add_row(candidate.display_name, candidate.executable_path)

    console.print(table)


@app.command()
def search(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Search text (at least 2 characters)")],
) -> None:
    """Search the marketplace."""
    session = get_session(ctx)
    results = asyncio.run(session.catalog.typeahead_search(query))

    if not results:
        if session.catalog.last_failure is not None:
            print_warning(advisory_message(session.catalog.last_failure))
        console.print("No results found")
        return

    table = Table(title=f"Marketplace results for '{query}'")
    table.add_column("Plugin", style="cyan")
    table.add_column("ID", style="green")
    table.add_column("Downloads", justify="right")
    table.add_column("Author", style="dim")

    for plugin in results:
        selected = " ✓" if session.selection.contains(plugin.xml_id) else ""
        table.add_row(
            plugin.name + selected,
            plugin.xml_id,
            format_number(plugin.downloads or 0),
            plugin.organization,
        )

    console.print(table)


if __name__ == "__main__":
    app()
