"""Tests for kontrolleurs.terminal -- frame composition and acquisition."""

from __future__ import annotations

import fcntl
import os
import pty
import select
import signal
import struct
import termios
import threading
from pathlib import Path
from typing import Iterator

import pytest

from kontrolleurs.errors import TerminalUnavailable
from kontrolleurs.history import HistoryEntry
from kontrolleurs.search import SearchSession
from kontrolleurs.state import Cancelled
from kontrolleurs.terminal import TtyTerminal, acquire, compose_frame

from .virtual_terminal import VirtualTerminal


class TestComposeFrame:
    def test_single_synchronized_write(self) -> None:
        out = compose_frame(["> g", "→ git push"], 0, 3)
        assert out.startswith("\x1b[?2026h")
        assert out.endswith("\x1b[?2026l")
        assert out.count("\x1b[?2026h") == 1

    def test_lines_positioned_and_cleared(self) -> None:
        out = compose_frame(["first", "second"], 0, 0)
        assert "\x1b[1;1Hfirst\x1b[0m\x1b[K" in out
        assert "\x1b[2;1Hsecond\x1b[0m\x1b[K" in out
        assert "\x1b[J" in out

    def test_cursor_placed_last(self) -> None:
        out = compose_frame(["> git"], 0, 5)
        assert out.index("\x1b[1;6H") > out.index("> git")
        assert "\x1b[?25h" in out


class TestAcquire:
    def test_starts_and_stops(self) -> None:
        term = VirtualTerminal()
        with acquire(term):
            assert term.started is True
        assert term.started is False
        assert term.stop_count == 1

    def test_stops_on_exception(self) -> None:
        term = VirtualTerminal()
        with pytest.raises(RuntimeError):
            with acquire(term):
                raise RuntimeError("boom")
        assert term.started is False
        assert term.stop_count == 1


class TestTtyTerminal:
    def test_missing_device(self, tmp_path: Path) -> None:
        with pytest.raises(TerminalUnavailable):
            TtyTerminal(str(tmp_path / "no-such-tty")).open()

    def test_not_a_terminal(self, tmp_path: Path) -> None:
        path = tmp_path / "plain-file"
        path.write_text("")
        with pytest.raises(TerminalUnavailable):
            TtyTerminal(str(path)).open()

    def test_stop_before_start_is_noop(self) -> None:
        TtyTerminal().stop()

    def test_close_without_open(self) -> None:
        TtyTerminal().close()

    def test_drain_signals_without_routing_is_noop(self) -> None:
        term = TtyTerminal()
        term._drain_signals()
        assert not term._pending


# ---------------------------------------------------------------------------
# Real pseudo-terminal
# ---------------------------------------------------------------------------


@pytest.fixture
def pty_pair() -> Iterator[tuple[int, int]]:
    """A pseudo-terminal sized 80x24 whose output side is read and discarded."""
    master, slave = pty.openpty()
    fcntl.ioctl(slave, termios.TIOCSWINSZ, struct.pack("HHHH", 24, 80, 0, 0))
    done = threading.Event()

    def discard_output() -> None:
        while not done.is_set():
            readable, _, _ = select.select([master], [], [], 0.05)
            if readable:
                try:
                    os.read(master, 65536)
                except OSError:
                    return

    reader = threading.Thread(target=discard_output, daemon=True)
    reader.start()
    try:
        yield master, slave
    finally:
        done.set()
        reader.join()
        os.close(slave)
        os.close(master)


class ScriptedTty(TtyTerminal):
    """Types the next scripted step into the pty after each repaint.

    Input has to arrive after raw mode is set, since entering raw mode
    flushes anything already queued.
    """

    def __init__(self, path: str, master: int, steps: list) -> None:
        super().__init__(path)
        self._master = master
        self._steps = list(steps)

    def render(self, lines: list[str], cursor_row: int, cursor_col: int) -> None:
        super().render(lines, cursor_row, cursor_col)
        if not self._steps:
            return
        step = self._steps.pop(0)
        if isinstance(step, bytes):
            os.write(self._master, step)
        else:
            step()


HISTORY = [HistoryEntry("git status", 0), HistoryEntry("ls -la", 1)]


class TestPseudoTerminal:
    def test_escape_cancels_and_restores_modes(self, pty_pair: tuple[int, int]) -> None:
        master, slave = pty_pair
        before = termios.tcgetattr(slave)
        term = ScriptedTty(os.ttyname(slave), master, [b"g", b"\x1b"])
        try:
            state = SearchSession(HISTORY).run(term)
        finally:
            term.close()
        assert state == Cancelled(reason="escape")
        assert termios.tcgetattr(slave) == before

    def test_raw_mode_while_running(self, pty_pair: tuple[int, int]) -> None:
        master, slave = pty_pair
        seen: list[list] = []
        steps = [lambda: seen.append(termios.tcgetattr(slave)), b"\x1b"]
        term = ScriptedTty(os.ttyname(slave), master, steps)
        try:
            SearchSession(HISTORY).run(term)
        finally:
            term.close()
        lflag = seen[0][3]
        assert not lflag & termios.ICANON
        assert not lflag & termios.ECHO

    def test_interrupt_signal_cancels(self, pty_pair: tuple[int, int]) -> None:
        master, slave = pty_pair
        before = termios.tcgetattr(slave)
        previous_handler = signal.getsignal(signal.SIGINT)
        term = ScriptedTty(os.ttyname(slave), master, [lambda: os.kill(os.getpid(), signal.SIGINT)])
        try:
            state = SearchSession(HISTORY).run(term)
        finally:
            term.close()
        assert state == Cancelled(reason="interrupt", signum=signal.SIGINT)
        assert termios.tcgetattr(slave) == before
        assert signal.getsignal(signal.SIGINT) == previous_handler

    def test_raw_mode_failure_reported_and_undone(
        self, pty_pair: tuple[int, int], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _, slave = pty_pair
        before = termios.tcgetattr(slave)
        previous_handler = signal.getsignal(signal.SIGINT)

        def refuse(fd: int, when: int = termios.TCSAFLUSH) -> None:
            raise termios.error(25, "Inappropriate ioctl for device")

        monkeypatch.setattr("kontrolleurs.terminal.tty.setraw", refuse)
        term = TtyTerminal(os.ttyname(slave))
        try:
            with pytest.raises(TerminalUnavailable, match="raw mode"):
                term.start()
        finally:
            term.close()
        assert termios.tcgetattr(slave) == before
        assert signal.getsignal(signal.SIGINT) == previous_handler
