"""Rendering of the interactive selector.

render_selector is a pure function of the selector state, so frames can be
checked in tests by printing them to a recording Console.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich import box
from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text

from jbplugins.utils.formatting import format_number, truncate

if TYPE_CHECKING:
    from jbplugins.ui.selector import SelectorState

KEY_HELP = (
    "[cyan]Space[/cyan] toggle  [cyan]Enter[/cyan] confirm  [cyan]Esc[/cyan] cancel  "
    "[cyan]↑/↓[/cyan] navigate  [cyan]Type[/cyan] search"
)


def page_window(cursor: int, total: int, page_size: int) -> tuple[int, int]:
    """Visible slice [start, end) of a list, centered on the cursor.

    Args:
        cursor: Index of the highlighted row
        total: Number of rows in the list
        page_size: Number of visible rows

    Returns:
        Tuple of (start, end) indices
    """
    start = max(0, cursor - page_size // 2)
    end = min(total, start + page_size)
    start = max(0, end - page_size)
    return start, end


def render_selector(state: SelectorState, advisory: str | None = None) -> RenderableType:
    """Build one frame of the selector screen.

    Args:
        state: Current selector state
        advisory: Optional message about a failed marketplace search

    Returns:
        A rich renderable for the whole screen
    """
    parts: list[RenderableType] = [Text("Browse All Plugins", style="bold"), Text()]

    status = Text()
    status.append(f"Selected: {len(state.selected_ids)} plugin(s)", style="green")
    status.append("    Filter: ")
    status.append(state.query or "(type to search any plugin)", style="yellow")
    if state.searching:
        status.append(" (searching...)", style="yellow")
    parts.append(status)
    parts.append(Text.from_markup(KEY_HELP))
    parts.append(Text())

    filtered = state.filtered
    start, end = page_window(state.cursor, len(filtered), state.page_size)

    if not filtered and not state.searching:
        if len(state.query) >= state.min_query_length:
            parts.append(Text("No plugins found. Try a different search term."))
        else:
            parts.append(Text("Type at least 2 characters to search..."))
    elif filtered:
        table = Table(box=box.SQUARE, header_style="cyan", border_style="bright_black")
        table.add_column("", width=1)
        table.add_column("", width=1)
        table.add_column("Plugin Name", width=26, no_wrap=True)
        table.add_column("Plugin ID", width=28, no_wrap=True)
        table.add_column("Downloads", width=10, justify="right")
        table.add_column("Author", width=18, no_wrap=True)
        table.add_column("IDEA Version", width=12, no_wrap=True)

        for index in range(start, end):
            plugin = filtered[index]
            is_current = index == state.cursor
            table.add_row(
                Text("❯", style="yellow") if is_current else "",
                Text("◉", style="green") if plugin.xml_id in state.selected_ids else "○",
                Text(truncate(plugin.name, 26), style="cyan" if is_current else ""),
                truncate(plugin.xml_id, 28),
                format_number(plugin.downloads or 0),
                truncate(plugin.organization, 18),
                truncate(plugin.idea_version or "N/A", 12),
            )
        parts.append(table)

        current = filtered[state.cursor] if state.cursor < len(filtered) else None
        url = current.page_url(state.marketplace_url) if current is not None else None
        if url:
            parts.append(Text(f"URL: {url}", style="bright_black"))

    if advisory:
        parts.append(Text(f"[!] {advisory}", style="yellow"))

    shown_from = start + 1 if filtered else 0
    parts.append(
        Text(
            f"Showing {shown_from}-{end} of {len(filtered)} plugins "
            f"({len(state.cache)} in cache)"
        )
    )
    return Group(*parts)
