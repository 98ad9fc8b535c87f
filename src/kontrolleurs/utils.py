"""Terminal text utilities: display width of grapheme clusters.

History entries are drawn one grapheme cluster at a time so that match
highlighting never splits a combining sequence and width accounting matches
what the terminal shows.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Iterator

import grapheme
import wcwidth as _wcwidth

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")

# ---------------------------------------------------------------------------
# Width cache (capped at 512 entries)
# ---------------------------------------------------------------------------

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def _cache_width(key: str, value: int) -> int:
    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[key] = value
    return value


# ---------------------------------------------------------------------------
# Grapheme width
# ---------------------------------------------------------------------------


def grapheme_width(g: str) -> int:
    """Return the terminal display width of a single grapheme cluster.

    Rules:
    1. Zero-width characters (control, combining marks, etc.) -> 0
    2. Emoji (multi-codepoint, contains VS16 U+FE0F, ZWJ sequences, etc.) -> 2
    3. Otherwise delegate to wcwidth for the first meaningful codepoint.
    """
    if not g:
        return 0

    if len(g) == 1:
        cp = ord(g)
        if cp < 0x20 or (0x7F <= cp <= 0x9F):
            return 0
        return max(_wcwidth.wcwidth(g), 0)

    for ch in g:
        cp = ord(ch)
        if cp in (0xFE0F, 0x200D):  # VS16, ZWJ
            return 2
        if 0x1F3FB <= cp <= 0x1F3FF:  # Skin tone modifiers
            return 2
        if 0x1F1E6 <= cp <= 0x1F1FF:  # Regional indicators
            return 2

    first_cp = ord(g[0])
    if first_cp >= 0x1F000 or 0x2600 <= first_cp <= 0x27BF:
        return 2

    cat = unicodedata.category(g[0])
    if cat.startswith("M") or cat == "Cf":
        return 0

    return max(_wcwidth.wcwidth(g[0]), 0)


def visible_width(text: str) -> int:
    """Calculate the visible terminal width of *text*, ignoring SGR codes."""
    if not text:
        return 0

    stripped = _ANSI_RE.sub("", text)
    if not stripped:
        return 0

    if stripped.isascii() and stripped.isprintable():
        return len(stripped)

    cached = _width_cache.get(stripped)
    if cached is not None:
        return cached

    total = sum(grapheme_width(g) for g in grapheme.graphemes(stripped))
    return _cache_width(stripped, total)


def iter_clusters(text: str) -> Iterator[tuple[int, str]]:
    """Yield ``(code point offset, cluster)`` for each grapheme cluster."""
    offset = 0
    for g in grapheme.graphemes(text):
        yield offset, g
        offset += len(g)


def display_cluster(g: str) -> str:
    """Replace control characters with a printable single-column stand-in."""
    if g == "\n" or g == "\r\n":
        return "↵"
    if g == "\t":
        return " "
    if len(g) == 1 and (ord(g) < 0x20 or 0x7F <= ord(g) <= 0x9F):
        return "?"
    return g


def previous_cluster_length(text: str, cursor: int) -> int:
    """Code points in the grapheme cluster ending at *cursor* (0 at the start)."""
    if cursor <= 0:
        return 0
    clusters = list(grapheme.graphemes(text[:cursor]))
    return len(clusters[-1]) if clusters else 1


def next_cluster_length(text: str, cursor: int) -> int:
    """Code points in the grapheme cluster starting at *cursor* (0 at the end)."""
    if cursor >= len(text):
        return 0
    for g in grapheme.graphemes(text[cursor:]):
        return len(g)
    return 1
