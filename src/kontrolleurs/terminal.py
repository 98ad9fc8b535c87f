"""Terminal abstraction for raw-mode keystroke reading and frame rendering.

Provides a ``Terminal`` protocol and a concrete ``TtyTerminal``
implementation that manages raw mode, the alternate screen, bracketed paste
and signal delivery via ANSI escape sequences and :mod:`termios`.

Everything the search loop waits for (keystrokes, pastes, resizes and
interrupt signals) arrives through the single blocking ``read_event`` call.
Signals are routed through :func:`signal.set_wakeup_fd` so they wake the
same ``select`` as the keyboard.
"""

from __future__ import annotations

import codecs
import contextlib
import logging
import os
import select
import signal
import termios
import tty
from collections import deque
from dataclasses import dataclass
from typing import Iterator, Protocol, Union

from kontrolleurs.errors import TerminalIOError, TerminalUnavailable
from kontrolleurs.keys import KeyId, parse_key
from kontrolleurs.stdin_buffer import StdinBuffer

logger = logging.getLogger(__name__)

TTY_PATH = "/dev/tty"

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

_ALT_SCREEN_ENTER = "\x1b[?1049h"
_ALT_SCREEN_LEAVE = "\x1b[?1049l"

_BRACKETED_PASTE_ENABLE = "\x1b[?2004h"
_BRACKETED_PASTE_DISABLE = "\x1b[?2004l"

_SYNC_BEGIN = "\x1b[?2026h"
_SYNC_END = "\x1b[?2026l"

_HIDE_CURSOR = "\x1b[?25l"
_SHOW_CURSOR = "\x1b[?25h"
_RESET_STYLE = "\x1b[0m"
_CLEAR_TO_EOL = "\x1b[K"
_CLEAR_BELOW = "\x1b[J"
_MOVE_TO_FMT = "\x1b[{};{}H"

_HANDLED_SIGNALS = (signal.SIGWINCH, signal.SIGINT, signal.SIGTERM, signal.SIGHUP)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyEvent:
    data: str
    key: KeyId | None


@dataclass(frozen=True)
class PasteEvent:
    text: str


@dataclass(frozen=True)
class ResizeEvent:
    columns: int
    rows: int


@dataclass(frozen=True)
class InterruptEvent:
    signum: int


Event = Union[KeyEvent, PasteEvent, ResizeEvent, InterruptEvent]


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """Interface for terminal I/O operations."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def read_event(self) -> Event: ...

    def render(self, lines: list[str], cursor_row: int, cursor_col: int) -> None: ...

    @property
    def columns(self) -> int: ...

    @property
    def rows(self) -> int: ...


@contextlib.contextmanager
def acquire(terminal: Terminal) -> Iterator[Terminal]:
    """Hold *terminal* in raw mode for the duration of the block.

    The terminal is restored on every way out of the block, including
    exceptions raised by the body.
    """
    terminal.start()
    try:
        yield terminal
    finally:
        terminal.stop()


def compose_frame(lines: list[str], cursor_row: int, cursor_col: int) -> str:
    """Build the escape string that repaints the whole screen in one write."""
    out = [_SYNC_BEGIN, _HIDE_CURSOR]
    for row, line in enumerate(lines):
        out.append(_MOVE_TO_FMT.format(row + 1, 1))
        out.append(line)
        out.append(_RESET_STYLE)
        out.append(_CLEAR_TO_EOL)
    out.append(_CLEAR_BELOW)
    out.append(_MOVE_TO_FMT.format(cursor_row + 1, cursor_col + 1))
    out.append(_SHOW_CURSOR)
    out.append(_SYNC_END)
    return "".join(out)


# ---------------------------------------------------------------------------
# TtyTerminal implementation
# ---------------------------------------------------------------------------


class TtyTerminal:
    """Concrete terminal backed by the controlling terminal device.

    Standard input may carry the history and standard output is captured by
    the shell, so both directions go through ``/dev/tty``.
    """

    def __init__(self, path: str = TTY_PATH, *, escape_timeout: float = 0.025) -> None:
        self._path = path
        self._fd: int | None = None
        self._original_termios: list | None = None
        self._prev_handlers: dict[int, object] = {}
        self._prev_wakeup_fd: int | None = None
        self._wakeup_read: int | None = None
        self._wakeup_write: int | None = None
        self._active = False

        self._pending: deque[Event] = deque()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._stdin_buffer = StdinBuffer(timeout=escape_timeout)
        self._stdin_buffer.on_data(self._on_buffer_data)
        self._stdin_buffer.on_paste(self._on_buffer_paste)

    # -- properties ---------------------------------------------------------

    @property
    def columns(self) -> int:
        try:
            return os.get_terminal_size(self._require_fd()).columns
        except (ValueError, OSError):
            return 80

    @property
    def rows(self) -> int:
        try:
            return os.get_terminal_size(self._require_fd()).lines
        except (ValueError, OSError):
            return 24

    # -- open / close -------------------------------------------------------

    def open(self) -> None:
        """Open the terminal device without changing its mode."""
        if self._fd is not None:
            return
        try:
            fd = os.open(self._path, os.O_RDWR | os.O_NOCTTY)
        except OSError as e:
            raise TerminalUnavailable(f"cannot open {self._path}: {e}") from e
        if not os.isatty(fd):
            os.close(fd)
            raise TerminalUnavailable(f"{self._path} is not a terminal")
        self._fd = fd

    def close(self) -> None:
        self.stop()
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None

    # -- start / stop -------------------------------------------------------

    def start(self) -> None:
        """Enter raw mode and the alternate screen, and route signals to the reader."""
        self.open()
        fd = self._require_fd()

        try:
            self._original_termios = termios.tcgetattr(fd)
        except termios.error as e:
            raise TerminalUnavailable(f"cannot read terminal attributes: {e}") from e

        self._active = True
        try:
            self._install_signal_routing()
            try:
                tty.setraw(fd)
            except termios.error as e:
                raise TerminalUnavailable(f"cannot enter raw mode: {e}") from e
            self.write(_ALT_SCREEN_ENTER + _BRACKETED_PASTE_ENABLE)
        except BaseException:
            self.stop()
            raise
        logger.debug("Terminal %s acquired (%dx%d)", self._path, self.columns, self.rows)

    def stop(self) -> None:
        """Restore terminal state and clean up all handlers. Safe to call twice."""
        if not self._active:
            return
        self._active = False
        fd = self._require_fd()

        with contextlib.suppress(OSError, TerminalIOError):
            self.write(_BRACKETED_PASTE_DISABLE + _RESET_STYLE + _SHOW_CURSOR + _ALT_SCREEN_LEAVE)

        if self._original_termios is not None:
            with contextlib.suppress(termios.error):
                termios.tcsetattr(fd, termios.TCSADRAIN, self._original_termios)
            self._original_termios = None

        self._remove_signal_routing()
        self._stdin_buffer.clear()
        self._pending.clear()
        logger.debug("Terminal %s restored", self._path)

    # -- events -------------------------------------------------------------

    def read_event(self) -> Event:
        """Block until the next key, paste, resize or interrupt."""
        fd = self._require_fd()
        while not self._pending:
            timeout = self._stdin_buffer.timeout if self._stdin_buffer.has_pending() else None
            watched = [fd] if self._wakeup_read is None else [fd, self._wakeup_read]
            try:
                readable, _, _ = select.select(watched, [], [], timeout)
            except OSError as e:
                raise TerminalIOError(f"waiting for terminal input failed: {e}") from e

            if not readable:
                self._stdin_buffer.flush_pending()
                continue
            if self._wakeup_read is not None and self._wakeup_read in readable:
                self._drain_signals()
            if fd in readable:
                self._read_input(fd)
        return self._pending.popleft()

    def _read_input(self, fd: int) -> None:
        try:
            raw = os.read(fd, 4096)
        except OSError as e:
            raise TerminalIOError(f"reading from terminal failed: {e}") from e
        if not raw:
            raise TerminalIOError("terminal closed")
        self._stdin_buffer.process(self._decoder.decode(raw))

    def _on_buffer_data(self, data: str) -> None:
        self._pending.append(KeyEvent(data=data, key=parse_key(data)))

    def _on_buffer_paste(self, data: str) -> None:
        self._pending.append(PasteEvent(text=data))

    def _drain_signals(self) -> None:
        if self._wakeup_read is None:
            return
        try:
            signums = os.read(self._wakeup_read, 512)
        except BlockingIOError:
            return
        for signum in signums:
            if signum == signal.SIGWINCH:
                # Several resizes in one burst collapse into one repaint.
                if not (self._pending and isinstance(self._pending[-1], ResizeEvent)):
                    self._pending.append(ResizeEvent(columns=self.columns, rows=self.rows))
            else:
                self._pending.append(InterruptEvent(signum=signum))

    # -- output -------------------------------------------------------------

    def render(self, lines: list[str], cursor_row: int, cursor_col: int) -> None:
        self.write(compose_frame(lines, cursor_row, cursor_col))

    def write(self, data: str) -> None:
        fd = self._require_fd()
        view = memoryview(data.encode("utf-8"))
        try:
            while view:
                written = os.write(fd, view)
                view = view[written:]
        except OSError as e:
            raise TerminalIOError(f"writing to terminal failed: {e}") from e

    # -- private: signals ---------------------------------------------------

    def _install_signal_routing(self) -> None:
        read_fd, write_fd = os.pipe()
        os.set_blocking(read_fd, False)
        os.set_blocking(write_fd, False)
        self._wakeup_read, self._wakeup_write = read_fd, write_fd
        try:
            self._prev_wakeup_fd = signal.set_wakeup_fd(write_fd)
        except ValueError as e:
            raise TerminalUnavailable(f"cannot route signals: {e}") from e
        for signum in _HANDLED_SIGNALS:
            self._prev_handlers[signum] = signal.signal(signum, _note_signal)

    def _remove_signal_routing(self) -> None:
        for signum, handler in self._prev_handlers.items():
            # None means the previous handler was not installed from Python.
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        self._prev_handlers.clear()
        if self._prev_wakeup_fd is not None:
            signal.set_wakeup_fd(self._prev_wakeup_fd)
            self._prev_wakeup_fd = None
        for pipe_fd in (self._wakeup_read, self._wakeup_write):
            if pipe_fd is not None:
                os.close(pipe_fd)
        self._wakeup_read = self._wakeup_write = None

    def _require_fd(self) -> int:
        if self._fd is None:
            raise TerminalUnavailable("terminal is not open")
        return self._fd


def _note_signal(signum: int, frame: object) -> None:
    """Signal handler; the wakeup fd already carries the signal number."""
