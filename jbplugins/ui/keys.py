"""Keyboard input as a stream of normalized key events.

Screens (the selector and the prompts) read KeyEvent values from a KeySource
instead of touching the terminal directly, so they can be driven by a scripted
source in tests. TerminalKeySource reads raw keystrokes through prompt_toolkit.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Literal

from prompt_toolkit.input import create_input
from prompt_toolkit.keys import Keys

if TYPE_CHECKING:
    from prompt_toolkit.input import Input
    from prompt_toolkit.key_binding import KeyPress

logger = logging.getLogger(__name__)


class Cancelled(Enum):
    """Marker returned when the user backs out of a screen with Esc or Ctrl-C."""

    CANCELLED = "cancelled"

    def __repr__(self) -> str:
        return "CANCELLED"


CANCELLED = Cancelled.CANCELLED

CancelledType = Literal[Cancelled.CANCELLED]


class KeyKind(str, Enum):
    """Normalized key categories."""

    CHAR = "char"
    SPACE = "space"
    BACKSPACE = "backspace"
    ENTER = "enter"
    ESCAPE = "escape"
    INTERRUPT = "interrupt"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class KeyEvent:
    """A single keystroke."""

    kind: KeyKind
    char: str = ""

    @classmethod
    def of(cls, char: str) -> KeyEvent:
        """Event for a typed character."""
        if char == " ":
            return cls(KeyKind.SPACE, " ")
        return cls(KeyKind.CHAR, char)

    @property
    def cancels(self) -> bool:
        return self.kind in (KeyKind.ESCAPE, KeyKind.INTERRUPT)


_SPECIAL_KEYS: dict[str, KeyKind] = {
    Keys.ControlC.value: KeyKind.INTERRUPT,
    Keys.Escape.value: KeyKind.ESCAPE,
    Keys.ControlM.value: KeyKind.ENTER,
    Keys.ControlJ.value: KeyKind.ENTER,
    Keys.ControlH.value: KeyKind.BACKSPACE,
    Keys.Up.value: KeyKind.UP,
    Keys.Down.value: KeyKind.DOWN,
    Keys.Left.value: KeyKind.LEFT,
    Keys.Right.value: KeyKind.RIGHT,
}


def normalize_key(key: Keys | str) -> KeyEvent | None:
    """Convert a prompt_toolkit key to a KeyEvent.

    Args:
        key: KeyPress.key value (a Keys member or a typed character)

    Returns:
        The event, or None for keys screens do not react to
    """
    name = key.value if isinstance(key, Keys) else key
    kind = _SPECIAL_KEYS.get(name)
    if kind is not None:
        return KeyEvent(kind)
    if len(name) == 1 and name.isprintable():
        return KeyEvent.of(name)
    return None


class KeySource(ABC):
    """Produces key events for one screen at a time."""

    @contextlib.contextmanager
    def screen(self) -> Iterator[None]:
        """Hold the input for the duration of one screen."""
        yield

    @abstractmethod
    async def read(self) -> KeyEvent:
        """Wait for the next key event."""
        ...


class TerminalKeySource(KeySource):
    """Reads keystrokes from the terminal in raw mode."""

    # A lone ESC byte is only reported once no escape sequence follows it
    ESCAPE_FLUSH_DELAY = 0.05

    def __init__(self, terminal_input: Input | None = None):
        self._input = terminal_input
        self._queue: asyncio.Queue[KeyEvent] | None = None

    def _feed(self, presses: list[KeyPress]) -> None:
        assert self._queue is not None
        for press in presses:
            event = normalize_key(press.key)
            if event is not None:
                self._queue.put_nowait(event)

    @contextlib.contextmanager
    def screen(self) -> Iterator[None]:
        if self._queue is not None:
            yield
            return

        if self._input is None:
            self._input = create_input(always_prefer_tty=True)
        terminal_input = self._input
        loop = asyncio.get_running_loop()
        flush_handle: asyncio.TimerHandle | None = None

        def flush() -> None:
            if self._queue is not None:
                self._feed(terminal_input.flush_keys())

        def on_input_ready() -> None:
            nonlocal flush_handle
            if self._queue is None:
                return
            self._feed(terminal_input.read_keys())
            if terminal_input.closed:
                logger.debug("Terminal input closed")
                self._queue.put_nowait(KeyEvent(KeyKind.INTERRUPT))
                return
            if flush_handle is not None:
                flush_handle.cancel()
            flush_handle = loop.call_later(self.ESCAPE_FLUSH_DELAY, flush)

        self._queue = asyncio.Queue()
        try:
            with terminal_input.raw_mode(), terminal_input.attach(on_input_ready):
                yield
        finally:
            if flush_handle is not None:
                flush_handle.cancel()
            self._queue = None

    async def read(self) -> KeyEvent:
        if self._queue is None:
            raise RuntimeError("TerminalKeySource.read() called outside of screen()")
        return await self._queue.get()
