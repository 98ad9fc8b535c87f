"""Fuzzy matching of a query against a history entry.

Matches if all query characters appear in order (not necessarily
consecutive), ignoring case. Higher score = better match.
"""

from __future__ import annotations

from dataclasses import dataclass

_WORD_BOUNDARY_CHARS = frozenset(" \t\n-_./:;|&=(){}[]'\"$")


@dataclass(frozen=True)
class ScoringWeights:
    base: float = 100.0
    gap_penalty: float = 10.0
    boundary_bonus: float = 8.0
    contiguous_bonus: float = 5.0

    def validate(self) -> None:
        """Raise ``ValueError`` unless a shorter span always outweighs a boundary."""
        if self.gap_penalty <= 0:
            raise ValueError("gap_penalty must be positive")
        if self.boundary_bonus < 0 or self.contiguous_bonus < 0:
            raise ValueError("bonuses must not be negative")
        if self.boundary_bonus >= self.gap_penalty:
            raise ValueError("boundary_bonus must be smaller than gap_penalty")


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True)
class MatchResult:
    matches: bool
    score: float
    positions: tuple[int, ...] = ()


NO_MATCH = MatchResult(matches=False, score=0)
EMPTY_QUERY_MATCH = MatchResult(matches=True, score=0)


def fold_case(text: str) -> str:
    """Lowercase *text* while keeping one character per input code point.

    ``str.lower`` can expand some characters (``"İ"`` becomes two code
    points), which would shift match positions off the original text.
    """
    lowered = text.lower()
    if len(lowered) == len(text):
        return lowered
    return "".join(ch.lower()[0] for ch in text)


def is_subsequence(folded_query: str, folded_text: str) -> bool:
    """Fast in-order containment check on already case-folded strings."""
    pos = -1
    for ch in folded_query:
        pos = folded_text.find(ch, pos + 1)
        if pos == -1:
            return False
    return True


def is_word_boundary(text: str, index: int) -> bool:
    return index == 0 or text[index - 1] in _WORD_BOUNDARY_CHARS


def _best_window(query: str, text: str) -> list[int] | None:
    """Return match positions of the shortest window containing *query*.

    Each occurrence of the first query character is tried as a start: a
    forward scan finds the earliest end, a backward scan from that end finds
    the tightest start. Among windows of equal span, one starting at a word
    boundary wins, then the earliest.
    """
    best_key: tuple[int, bool, int] | None = None
    best_positions: list[int] | None = None
    head, rest = query[0], query[1:]

    start = text.find(head)
    while start != -1:
        end = start
        for ch in rest:
            end = text.find(ch, end + 1)
            if end == -1:
                return best_positions

        positions = [end]
        cursor = end
        for ch in reversed(query[:-1]):
            cursor = text.rfind(ch, start, cursor)
            positions.append(cursor)
        positions.reverse()

        begin = positions[0]
        key = (end - begin + 1, not is_word_boundary(text, begin), begin)
        if best_key is None or key < best_key:
            best_key = key
            best_positions = positions

        start = text.find(head, begin + 1)

    return best_positions


def _single_char_position(ch: str, text: str) -> int:
    """First occurrence of *ch* at a word boundary, else the first occurrence."""
    first = text.find(ch)
    pos = first
    while pos != -1:
        if is_word_boundary(text, pos):
            return pos
        pos = text.find(ch, pos + 1)
    return first


def score_folded(
    folded_query: str,
    folded_text: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> tuple[float, tuple[int, ...]] | None:
    """Score a non-empty folded query, or ``None`` when it does not match.

    Builds no result object, so ranking can afford it per entry.
    """
    if len(folded_query) == 1:
        if folded_query not in folded_text:
            return None
        pos = _single_char_position(folded_query, folded_text)
        score = weights.base + weights.contiguous_bonus
        if is_word_boundary(folded_text, pos):
            score += weights.boundary_bonus
        return score, (pos,)

    if len(folded_query) > len(folded_text) or not is_subsequence(folded_query, folded_text):
        return None

    positions = _best_window(folded_query, folded_text)
    if positions is None:
        return None

    gap = positions[-1] - positions[0] + 1 - len(folded_query)
    score = weights.base - gap * weights.gap_penalty
    if is_word_boundary(folded_text, positions[0]):
        score += weights.boundary_bonus
    if gap == 0:
        score += weights.contiguous_bonus
    return score, tuple(positions)


def fuzzy_match(
    query: str,
    text: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> MatchResult:
    return match_folded(fold_case(query), fold_case(text), weights)


def match_folded(
    folded_query: str,
    folded_text: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> MatchResult:
    """Like :func:`fuzzy_match` for inputs already passed through :func:`fold_case`."""
    if not folded_query:
        return EMPTY_QUERY_MATCH
    scored = score_folded(folded_query, folded_text, weights)
    if scored is None:
        return NO_MATCH
    score, positions = scored
    return MatchResult(matches=True, score=score, positions=positions)
