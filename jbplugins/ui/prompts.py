"""Small keystroke-driven prompts used by the menu.

Each prompt reads from a KeySource and returns CANCELLED when the user presses
Esc or Ctrl-C, which callers treat as "go back" rather than as an answer.
"""

from __future__ import annotations

import contextlib
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.text import Text

from jbplugins.ui.keys import CANCELLED, CancelledType, KeyKind, KeySource

T = TypeVar("T")


@dataclass(frozen=True)
class Choice(Generic[T]):
    """One option of a selection prompt."""

    value: T
    label: str
    description: str | None = None
    key: str | None = None  # Hotkey that picks this option immediately


@contextlib.contextmanager
def _live(
    console: Console | None, render: Callable[[], RenderableType]
) -> Iterator[Callable[[], None]]:
    """Show a redrawable frame; yields a function that redraws it."""
    if console is None:
        yield lambda: None
        return
    with Live(render(), console=console, auto_refresh=False, transient=False) as live:
        yield lambda: live.update(render(), refresh=True)


async def select_one(
    keys: KeySource,
    console: Console | None,
    message: str,
    choices: Sequence[Choice[T]],
    default_index: int = 0,
) -> T | CancelledType:
    """Pick one option with the arrow keys, Enter or a hotkey.

    Args:
        keys: Source of key events
        console: Console to draw on (None draws nothing)
        message: Question shown above the options
        choices: Options in display order
        default_index: Initially highlighted option

    Returns:
        The chosen value, or CANCELLED
    """
    if not choices:
        return CANCELLED
    index = min(max(default_index, 0), len(choices) - 1)
    hotkeys = {c.key: c.value for c in choices if c.key}

    def render() -> RenderableType:
        lines: list[RenderableType] = [Text(message, style="bold")]
        for i, choice in enumerate(choices):
            prefix = f"[{choice.key}] " if choice.key else ""
            if i == index:
                lines.append(Text(f"> {prefix}{choice.label}", style="cyan"))
            else:
                lines.append(Text(f"  {prefix}{choice.label}"))
        description = choices[index].description
        if description:
            lines.append(Text(f"  {description}", style="bright_black"))
        return Group(*lines)

    with keys.screen(), _live(console, render) as redraw:
        while True:
            event = await keys.read()
            if event.cancels:
                return CANCELLED
            if event.kind == KeyKind.ENTER:
                return choices[index].value
            if event.kind == KeyKind.CHAR and event.char in hotkeys:
                return hotkeys[event.char]
            if event.kind in (KeyKind.UP, KeyKind.LEFT):
                index = (index - 1) % len(choices)
            elif event.kind in (KeyKind.DOWN, KeyKind.RIGHT):
                index = (index + 1) % len(choices)
            redraw()


async def select_many(
    keys: KeySource,
    console: Console | None,
    message: str,
    choices: Sequence[Choice[T]],
) -> list[T] | CancelledType:
    """Check any number of options with Space and confirm with Enter.

    Returns:
        Checked values in display order, or CANCELLED
    """
    if not choices:
        return []
    index = 0
    checked: set[int] = set()

    def render() -> RenderableType:
        lines: list[RenderableType] = [Text(message, style="bold")]
        for i, choice in enumerate(choices):
            cursor = ">" if i == index else " "
            mark = "◉" if i in checked else "○"
            style = "cyan" if i == index else ""
            lines.append(Text(f"{cursor} {mark} {choice.label}", style=style))
        return Group(*lines)

    with keys.screen(), _live(console, render) as redraw:
        while True:
            event = await keys.read()
            if event.cancels:
                return CANCELLED
            if event.kind == KeyKind.ENTER:
                return [choices[i].value for i in sorted(checked)]
            if event.kind == KeyKind.SPACE:
                if index in checked:
                    checked.discard(index)
                else:
                    checked.add(index)
            elif event.kind == KeyKind.UP:
                index = max(index - 1, 0)
            elif event.kind == KeyKind.DOWN:
                index = min(index + 1, len(choices) - 1)
            redraw()


async def confirm(
    keys: KeySource,
    console: Console | None,
    message: str,
    default: bool = False,
) -> bool | CancelledType:
    """Ask a yes/no question; Enter takes the default.

    Returns:
        True or False, or CANCELLED
    """
    hint = "[Y/n]" if default else "[y/N]"
    if console is not None:
        console.print(f"{message} {hint} ", end="", markup=False)

    with keys.screen():
        while True:
            event = await keys.read()
            if event.cancels:
                answer: bool | CancelledType = CANCELLED
            elif event.kind == KeyKind.ENTER:
                answer = default
            elif event.kind == KeyKind.CHAR and event.char.lower() in ("y", "n"):
                answer = event.char.lower() == "y"
            else:
                continue
            break

    if console is not None:
        console.print("" if answer is CANCELLED else ("yes" if answer else "no"))
    return answer


async def ask_text(
    keys: KeySource,
    console: Console | None,
    message: str,
) -> str | CancelledType:
    """Read a line of text; Enter submits.

    Returns:
        The entered text, or CANCELLED
    """
    buffer = ""

    def render() -> RenderableType:
        line = Text(f"{message} ", style="bold")
        line.append(buffer, style="")
        return line

    with keys.screen(), _live(console, render) as redraw:
        while True:
            event = await keys.read()
            if event.cancels:
                return CANCELLED
            if event.kind == KeyKind.ENTER:
                return buffer
            if event.kind == KeyKind.BACKSPACE:
                buffer = buffer[:-1]
            elif event.kind in (KeyKind.CHAR, KeyKind.SPACE):
                buffer += event.char
            redraw()
