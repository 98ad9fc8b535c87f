"""Frame rendering: the prompt line, the visible result window, the status line.

Pure functions of the search state; the terminal writes the returned lines
in a single update.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

from kontrolleurs.ranker import RankedItem
from kontrolleurs.state import Query, SelectionState
from kontrolleurs.utils import display_cluster, grapheme_width, iter_clusters, visible_width

ELLIPSIS = "…"
SELECTED_PREFIX = "→ "
UNSELECTED_PREFIX = "  "
NO_MATCH_TEXT = "  No matching history"


class SearchTheme(Protocol):
    prompt: Callable[[str], str]
    match: Callable[[str], str]
    selected_text: Callable[[str], str]
    selected_match: Callable[[str], str]
    scroll_info: Callable[[str], str]
    no_match: Callable[[str], str]


def _sgr(params: str) -> Callable[[str], str]:
    if not params:
        return lambda text: text
    return lambda text: f"\x1b[{params}m{text}\x1b[0m" if text else text


class AnsiTheme:
    """Theme built from SGR parameter strings such as ``"1;31"``."""

    def __init__(
        self,
        *,
        prompt: str = "1",
        match: str = "1;31",
        selected: str = "1",
        info: str = "2",
    ) -> None:
        self.prompt = _sgr(prompt)
        self.match = _sgr(match)
        self.selected_text = _sgr(selected)
        self.selected_match = _sgr(";".join(p for p in (selected, match) if p))
        self.scroll_info = _sgr(info)
        self.no_match = _sgr(info)


@dataclass(frozen=True)
class Frame:
    lines: list[str]
    cursor_row: int
    cursor_col: int


def list_rows(height: int) -> int:
    """Rows available for results under the prompt and above the status line."""
    if height >= 3:
        return height - 2
    return max(1, height - 1)


# ---------------------------------------------------------------------------
# Prompt line
# ---------------------------------------------------------------------------


def _render_prompt(prompt: str, query: Query, width: int, theme: SearchTheme) -> tuple[str, int]:
    """Return the prompt line and the screen column of the query cursor."""
    prompt_width = visible_width(prompt)
    avail = max(1, width - prompt_width - 1)

    clusters = [(offset, g, grapheme_width(display_cluster(g))) for offset, g in iter_clusters(query.text)]
    before = [c for c in clusters if c[0] < query.cursor]

    # Drop clusters from the left until the cursor fits on the line.
    start = 0
    used = sum(w for _, _, w in before)
    while used > avail and start < len(before):
        used -= before[start][2]
        start += 1

    shown: list[str] = []
    total = 0
    for _, g, w in clusters[start:]:
        if total + w > avail:
            break
        shown.append(display_cluster(g))
        total += w

    return theme.prompt(prompt) + "".join(shown), prompt_width + used


# ---------------------------------------------------------------------------
# Result rows
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Cell:
    text: str
    width: int
    matched: bool


def _cells(text: str, positions: Sequence[int]) -> list[_Cell]:
    matched = set(positions)
    cells: list[_Cell] = []
    for offset, g in iter_clusters(text):
        shown = display_cluster(g)
        hit = any(i in matched for i in range(offset, offset + len(g)))
        cells.append(_Cell(shown, grapheme_width(shown), hit))
    return cells


def _window(cells: list[_Cell], avail: int) -> tuple[list[_Cell], bool, bool]:
    """Pick the cells to show in *avail* columns, keeping the first match visible.

    Returns ``(cells, clipped_left, clipped_right)``.
    """
    if sum(c.width for c in cells) <= avail:
        return cells, False, False

    start = 0
    first_match = next((i for i, c in enumerate(cells) if c.matched), 0)
    if sum(c.width for c in cells[: first_match + 1]) > avail - 1:
        # Shift so the first match sits a third of the way in.
        start = first_match
        context = 0
        while start > 0 and context + cells[start - 1].width <= avail // 3:
            start -= 1
            context += cells[start].width

    budget = avail - (1 if start > 0 else 0)
    taken: list[_Cell] = []
    used = 0
    for cell in cells[start:]:
        if used + cell.width > budget:
            break
        taken.append(cell)
        used += cell.width

    clipped_right = start + len(taken) < len(cells)
    if clipped_right:
        while taken and used + 1 > budget:
            used -= taken.pop().width
    return taken, start > 0, clipped_right


def _render_entry(item: RankedItem, selected: bool, width: int, theme: SearchTheme) -> str:
    prefix = SELECTED_PREFIX if selected else UNSELECTED_PREFIX
    avail = max(1, width - visible_width(prefix))
    shown, clipped_left, clipped_right = _window(_cells(item.entry.text, item.match.positions), avail)

    plain = theme.selected_text if selected else (lambda text: text)
    hit = theme.selected_match if selected else theme.match

    parts: list[str] = [plain(prefix + (ELLIPSIS if clipped_left else ""))]
    run: list[str] = []
    run_matched = False
    for cell in shown:
        if run and cell.matched != run_matched:
            parts.append((hit if run_matched else plain)("".join(run)))
            run = []
        run.append(cell.text)
        run_matched = cell.matched
    if run:
        parts.append((hit if run_matched else plain)("".join(run)))
    if clipped_right:
        parts.append(plain(ELLIPSIS))
    return "".join(parts)


# ---------------------------------------------------------------------------
# Whole frame
# ---------------------------------------------------------------------------


def build_frame(
    prompt: str,
    query: Query,
    ranked: Sequence[RankedItem],
    selection: SelectionState,
    width: int,
    height: int,
    theme: SearchTheme,
) -> Frame:
    """Lay out one screen.

    *selection* must already be scrolled into view for ``list_rows(height)``.
    """
    width = max(1, width)
    height = max(1, height)

    prompt_line, cursor_col = _render_prompt(prompt, query, width, theme)
    lines = [prompt_line]

    if height == 1:
        return Frame(lines, 0, min(cursor_col, width - 1))

    window = list_rows(height)
    if not ranked:
        lines.append(theme.no_match(NO_MATCH_TEXT[: width]))
    else:
        visible = ranked[selection.offset : selection.offset + window]
        for row, item in enumerate(visible):
            index = selection.offset + row
            lines.append(_render_entry(item, index == selection.index, width, theme))
        if height >= 3:
            lines.extend([""] * (window - len(visible)))
            status = f"  ({selection.index + 1}/{len(ranked)})"
            lines.append(theme.scroll_info(status[: width]))

    return Frame(lines, 0, min(cursor_col, width - 1))
