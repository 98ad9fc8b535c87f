"""The interactive search loop.

``SearchSession`` owns the query, the ranked results and the selection. Its
``handle_event`` method is the whole state machine and needs no terminal;
``run`` wraps it in the blocking read/react/render loop.
"""

from __future__ import annotations

import logging
from typing import Sequence

from kontrolleurs.fuzzy import DEFAULT_WEIGHTS, ScoringWeights
from kontrolleurs.history import HistoryEntry
from kontrolleurs.keybindings import KeybindingsManager, SearchAction
from kontrolleurs.keys import is_printable_text
from kontrolleurs.ranker import RankedItem, Ranker
from kontrolleurs.render import AnsiTheme, Frame, SearchTheme, build_frame, list_rows
from kontrolleurs.state import (
    TYPING,
    Cancelled,
    Confirmed,
    Query,
    SearchState,
    SelectionState,
    Typing,
)
from kontrolleurs.terminal import (
    Event,
    InterruptEvent,
    KeyEvent,
    PasteEvent,
    ResizeEvent,
    Terminal,
    acquire,
)

logger = logging.getLogger(__name__)

DEFAULT_PROMPT = "bck-i-search: "
DEFAULT_MAX_RESULTS = 500


class SearchSession:
    def __init__(
        self,
        entries: Sequence[HistoryEntry],
        *,
        query: str = "",
        prompt: str = DEFAULT_PROMPT,
        max_results: int | None = DEFAULT_MAX_RESULTS,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        keybindings: KeybindingsManager | None = None,
        theme: SearchTheme | None = None,
    ) -> None:
        self.query = Query(query)
        self.selection = SelectionState()
        self.prompt = prompt
        self.state: SearchState = TYPING
        self._ranker = Ranker(entries, max_results, weights)
        self._keybindings = keybindings or KeybindingsManager()
        self._theme = theme or AnsiTheme()
        self._page_size = 10
        self.ranked: list[RankedItem] = self._ranker.rank(self.query.text)

    # -- state machine -------------------------------------------------------

    def handle_event(self, event: Event) -> SearchState:
        """Apply one event and return the resulting state.

        Events arriving after a terminal state are ignored.
        """
        if not isinstance(self.state, Typing):
            return self.state

        if isinstance(event, InterruptEvent):
            self.state = Cancelled(reason="interrupt", signum=event.signum)
        elif isinstance(event, ResizeEvent):
            self._page_size = max(1, list_rows(event.rows))
        elif isinstance(event, PasteEvent):
            # The query is a single line; pasted newlines become spaces.
            text = "".join(" " if ch in "\r\n\t" else ch for ch in event.text)
            if is_printable_text(text) and self.query.insert(text):
                self._rerank()
        elif isinstance(event, KeyEvent):
            self._handle_key(event)
        return self.state

    def _handle_key(self, event: KeyEvent) -> None:
        action = self._keybindings.action_for(event.key)
        if action is not None:
            self._apply(action)
        elif event.key == "space":
            self._edit(self.query.insert(" "))
        elif event.key is not None and is_printable_text(event.data) and event.key == event.data:
            self._edit(self.query.insert(event.data))

    def _apply(self, action: SearchAction) -> None:  # noqa: C901
        length = len(self.ranked)
        if action == "selectCancel":
            self.state = Cancelled(reason="escape")
        elif action == "selectConfirm" or action == "selectAccept":
            self._confirm(execute=action == "selectConfirm")
        elif action == "selectUp":
            self.selection.move(-1, length)
        elif action == "selectDown":
            self.selection.move(1, length)
        elif action == "selectPageUp":
            self.selection.move(-self._page_size, length)
        elif action == "selectPageDown":
            self.selection.move(self._page_size, length)
        elif action == "deleteCharBackward":
            self._edit(self.query.delete_backward())
        elif action == "deleteCharForward":
            self._edit(self.query.delete_forward())
        elif action == "deleteWordBackward":
            self._edit(self.query.delete_word_backward())
        elif action == "deleteToLineStart":
            self._edit(self.query.delete_to_start())
        elif action == "cursorLeft":
            self.query.move_left()
        elif action == "cursorRight":
            self.query.move_right()
        elif action == "cursorLineStart":
            self.query.move_home()
        elif action == "cursorLineEnd":
            self.query.move_end()

    def _confirm(self, *, execute: bool) -> None:
        if not self.ranked:
            return
        item = self.ranked[self.selection.index]
        positions = item.match.positions
        cursor = positions[-1] + 1 if positions else len(item.entry.text)
        self.state = Confirmed(entry=item.entry, execute=execute, cursor=cursor)

    def _edit(self, changed: bool) -> None:
        if changed:
            self._rerank()

    def _rerank(self) -> None:
        self.ranked = self._ranker.rank(self.query.text)
        self.selection.clamp(len(self.ranked))

    # -- rendering -----------------------------------------------------------

    def frame(self, width: int, height: int) -> Frame:
        window = list_rows(height)
        self._page_size = max(1, window)
        self.selection.scroll_into_view(window, len(self.ranked))
        return build_frame(
            self.prompt,
            self.query,
            self.ranked,
            self.selection,
            width,
            height,
            self._theme,
        )

    def _render(self, terminal: Terminal) -> None:
        frame = self.frame(terminal.columns, terminal.rows)
        terminal.render(frame.lines, frame.cursor_row, frame.cursor_col)

    # -- loop ----------------------------------------------------------------

    def run(self, terminal: Terminal) -> SearchState:
        """Drive the search on *terminal* until it is confirmed or cancelled.

        The terminal is restored before this returns or raises.
        """
        logger.debug(
            "Search started over %d entries, seed query %r",
            self._ranker.entry_count,
            self.query.text,
        )
        with acquire(terminal):
            self._render(terminal)
            while isinstance(self.state, Typing):
                self.handle_event(terminal.read_event())
                if isinstance(self.state, Typing):
                    self._render(terminal)
        logger.debug("Search finished: %s", type(self.state).__name__)
        return self.state
