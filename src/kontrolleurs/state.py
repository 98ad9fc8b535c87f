"""Mutable search state and the loop's tagged outcome states."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

from kontrolleurs.history import HistoryEntry
from kontrolleurs.utils import next_cluster_length, previous_cluster_length

_WORD_SEPARATORS = " \t/"


class Query:
    """The text typed so far, with a cursor measured in code points."""

    def __init__(self, text: str = "") -> None:
        self.text = text
        self.cursor = len(text)

    def __repr__(self) -> str:
        return f"Query(text={self.text!r}, cursor={self.cursor})"

    def insert(self, chars: str) -> bool:
        if not chars:
            return False
        self.text = self.text[: self.cursor] + chars + self.text[self.cursor :]
        self.cursor += len(chars)
        return True

    def delete_backward(self) -> bool:
        width = previous_cluster_length(self.text, self.cursor)
        if width == 0:
            return False
        self.text = self.text[: self.cursor - width] + self.text[self.cursor :]
        self.cursor -= width
        return True

    def delete_forward(self) -> bool:
        width = next_cluster_length(self.text, self.cursor)
        if width == 0:
            return False
        self.text = self.text[: self.cursor] + self.text[self.cursor + width :]
        return True

    def delete_word_backward(self) -> bool:
        if self.cursor == 0:
            return False
        start = self.cursor
        while start > 0 and self.text[start - 1] in _WORD_SEPARATORS:
            start -= 1
        while start > 0 and self.text[start - 1] not in _WORD_SEPARATORS:
            start -= 1
        self.text = self.text[:start] + self.text[self.cursor :]
        self.cursor = start
        return True

    def delete_to_start(self) -> bool:
        if self.cursor == 0:
            return False
        self.text = self.text[self.cursor :]
        self.cursor = 0
        return True

    def move_left(self) -> None:
        self.cursor -= previous_cluster_length(self.text, self.cursor)

    def move_right(self) -> None:
        self.cursor += next_cluster_length(self.text, self.cursor)

    def move_home(self) -> None:
        self.cursor = 0

    def move_end(self) -> None:
        self.cursor = len(self.text)


@dataclass
class SelectionState:
    """Highlighted row of the ranked list and the first visible row.

    ``index`` always points at an existing row, or is 0 when the list is
    empty.
    """

    index: int = 0
    offset: int = 0

    def clamp(self, length: int) -> None:
        if length <= 0:
            self.index = 0
            self.offset = 0
            return
        self.index = max(0, min(self.index, length - 1))
        self.offset = max(0, min(self.offset, self.index))

    def move(self, delta: int, length: int) -> None:
        """Move by *delta* rows, stopping at either end (no wraparound)."""
        if length <= 0:
            return
        self.index = max(0, min(self.index + delta, length - 1))

    def scroll_into_view(self, window: int, length: int) -> None:
        """Adjust ``offset`` so the selected row is inside a window of *window* rows."""
        if window <= 0 or length <= 0:
            self.offset = 0
            return
        if self.index < self.offset:
            self.offset = self.index
        elif self.index >= self.offset + window:
            self.offset = self.index - window + 1
        self.offset = max(0, min(self.offset, max(0, length - window)))


# ---------------------------------------------------------------------------
# Loop states
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Typing:
    pass


@dataclass(frozen=True)
class Confirmed:
    entry: HistoryEntry
    execute: bool
    cursor: int


CancelReason = Literal["escape", "interrupt"]


@dataclass(frozen=True)
class Cancelled:
    reason: CancelReason
    signum: int | None = None


SearchState = Union[Typing, Confirmed, Cancelled]

TYPING = Typing()
