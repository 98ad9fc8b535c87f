"""StdinBuffer buffers input and emits complete sequences.

This is necessary because terminal reads can return partial chunks,
especially for escape sequences like arrow keys. Without buffering, partial
sequences can be misinterpreted as regular keypresses.

The buffer never waits on its own: when a chunk ends in an incomplete escape
sequence the owner keeps polling for at most :attr:`StdinBuffer.timeout`
seconds and calls :meth:`StdinBuffer.flush_pending` if nothing else arrives.
That is how a lone ESC keypress is told apart from the start of a sequence.
"""

from __future__ import annotations

import re
from typing import Callable, Literal

ESC = "\x1b"
BRACKETED_PASTE_START = "\x1b[200~"
BRACKETED_PASTE_END = "\x1b[201~"

_SGR_MOUSE_RE = re.compile(r"^<\d+;\d+;\d+[Mm]$")

SequenceStatus = Literal["complete", "incomplete", "not-escape"]


def _is_complete_sequence(data: str) -> SequenceStatus:
    """Check if a string is a complete escape sequence or needs more data."""
    if not data.startswith(ESC):
        return "not-escape"

    if len(data) == 1:
        return "incomplete"

    after_esc = data[1:]

    # CSI sequences: ESC [
    if after_esc.startswith("["):
        if after_esc.startswith("[M"):
            return "complete" if len(data) >= 6 else "incomplete"
        return _is_complete_csi_sequence(data)

    # OSC sequences: ESC ]
    if after_esc.startswith("]"):
        return _is_complete_string_sequence(data, allow_bel=True)

    # DCS and APC sequences: ESC P, ESC _
    if after_esc.startswith("P") or after_esc.startswith("_"):
        return _is_complete_string_sequence(data, allow_bel=False)

    # SS3 sequences: ESC O
    if after_esc.startswith("O"):
        return "complete" if len(after_esc) >= 2 else "incomplete"

    # Meta key sequences: ESC followed by a single character
    return "complete"


def _is_complete_csi_sequence(data: str) -> SequenceStatus:
    if len(data) < 3:
        return "incomplete"

    payload = data[2:]
    last_char = payload[-1]

    if 0x40 <= ord(last_char) <= 0x7E:
        if payload.startswith("<"):
            return "complete" if _SGR_MOUSE_RE.match(payload) else "incomplete"
        return "complete"

    return "incomplete"


def _is_complete_string_sequence(data: str, *, allow_bel: bool) -> SequenceStatus:
    if data.endswith(f"{ESC}\\") or (allow_bel and data.endswith("\x07")):
        return "complete"
    return "incomplete"


def _extract_complete_sequences(buffer: str) -> tuple[list[str], str]:
    """Split accumulated buffer into complete sequences.

    Returns (sequences, remainder).
    """
    sequences: list[str] = []
    pos = 0

    while pos < len(buffer):
        remaining = buffer[pos:]

        if not remaining.startswith(ESC):
            sequences.append(remaining[0])
            pos += 1
            continue

        seq_end = 1
        while seq_end <= len(remaining):
            candidate = remaining[:seq_end]
            if _is_complete_sequence(candidate) == "incomplete":
                seq_end += 1
                continue
            sequences.append(candidate)
            pos += seq_end
            break
        else:
            return sequences, remaining

    return sequences, ""


class StdinBuffer:
    """Buffers terminal input and emits complete sequences and pastes."""

    def __init__(self, *, timeout: float = 0.025) -> None:
        self.timeout = timeout
        self._buffer: str = ""
        self._paste_mode: bool = False
        self._paste_buffer: str = ""

        self._on_data: Callable[[str], None] | None = None
        self._on_paste: Callable[[str], None] | None = None

    def on_data(self, callback: Callable[[str], None]) -> None:
        """Set callback for complete sequences."""
        self._on_data = callback

    def on_paste(self, callback: Callable[[str], None]) -> None:
        """Set callback for paste content."""
        self._on_paste = callback

    def _emit_data(self, data: str) -> None:
        if self._on_data:
            self._on_data(data)

    def _emit_paste(self, data: str) -> None:
        if self._on_paste:
            self._on_paste(data)

    def process(self, data: str) -> None:
        """Feed input data into the buffer."""
        self._buffer += data

        if self._paste_mode:
            self._paste_buffer += self._buffer
            self._buffer = ""
            self._finish_paste_if_complete()
            return

        start_index = self._buffer.find(BRACKETED_PASTE_START)
        if start_index != -1:
            if start_index > 0:
                sequences, _ = _extract_complete_sequences(self._buffer[:start_index])
                for sequence in sequences:
                    self._emit_data(sequence)

            self._paste_mode = True
            self._paste_buffer = self._buffer[start_index + len(BRACKETED_PASTE_START):]
            self._buffer = ""
            self._finish_paste_if_complete()
            return

        sequences, remainder = _extract_complete_sequences(self._buffer)
        self._buffer = remainder

        for sequence in sequences:
            self._emit_data(sequence)

    def _finish_paste_if_complete(self) -> None:
        end_index = self._paste_buffer.find(BRACKETED_PASTE_END)
        if end_index == -1:
            return

        pasted_content = self._paste_buffer[:end_index]
        remaining = self._paste_buffer[end_index + len(BRACKETED_PASTE_END):]

        self._paste_mode = False
        self._paste_buffer = ""

        self._emit_paste(pasted_content)

        if remaining:
            self.process(remaining)

    def has_pending(self) -> bool:
        """True while an incomplete escape sequence is waiting for more bytes."""
        return bool(self._buffer)

    def flush_pending(self) -> None:
        """Give up waiting and emit whatever is buffered as one sequence."""
        if not self._buffer:
            return
        data = self._buffer
        self._buffer = ""
        self._emit_data(data)

    def clear(self) -> None:
        self._buffer = ""
        self._paste_mode = False
        self._paste_buffer = ""
