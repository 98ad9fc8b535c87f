"""Ranking history entries against the current query."""

from __future__ import annotations

import heapq
import logging
import time
from dataclasses import dataclass
from typing import Sequence

from kontrolleurs.fuzzy import (
    DEFAULT_WEIGHTS,
    EMPTY_QUERY_MATCH,
    MatchResult,
    ScoringWeights,
    fold_case,
    is_subsequence,
    score_folded,
)
from kontrolleurs.history import HistoryEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankedItem:
    entry: HistoryEntry
    match: MatchResult


# (entry, folded text, position in the input)
_Candidate = tuple[HistoryEntry, str, int]

# (-score, rank, position in the input, positions); sorts best first, and
# the input position keeps the order total when ranks repeat.
_Scored = tuple[float, int, int, tuple[int, ...]]


def _recency_order(candidates: Sequence[_Candidate], limit: int | None) -> list[RankedItem]:
    # Every entry matches the empty query with the same score.
    ordered = sorted(candidates, key=lambda c: (c[0].rank, c[2]))
    if limit is not None:
        ordered = ordered[:limit]
    return [RankedItem(entry, EMPTY_QUERY_MATCH) for entry, _, _ in ordered]


def _score_all(
    candidates: Sequence[_Candidate],
    folded_query: str,
    weights: ScoringWeights,
) -> tuple[list[_Candidate], list[_Scored]]:
    matched: list[_Candidate] = []
    scored: list[_Scored] = []
    for candidate in candidates:
        result = score_folded(folded_query, candidate[1], weights)
        if result is not None:
            matched.append(candidate)
            scored.append((-result[0], candidate[0].rank, candidate[2], result[1]))
    return matched, scored


def _top(scored: list[_Scored], limit: int | None, by_index: Sequence[_Candidate]) -> list[RankedItem]:
    if limit is None or limit >= len(scored):
        best = sorted(scored)
    else:
        best = heapq.nsmallest(limit, scored)
    return [
        RankedItem(by_index[index][0], MatchResult(matches=True, score=-neg_score, positions=positions))
        for neg_score, _, index, positions in best
    ]


def _candidates(entries: Sequence[HistoryEntry]) -> list[_Candidate]:
    return [(entry, fold_case(entry.text), i) for i, entry in enumerate(entries)]


def rank(
    entries: Sequence[HistoryEntry],
    query: str,
    limit: int | None = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[RankedItem]:
    """Return the best *limit* matches for *query*, best first.

    Pure function of its arguments: the same entries and query always give
    the same list.
    """
    candidates = _candidates(entries)
    folded_query = fold_case(query)
    if not folded_query:
        return _recency_order(candidates, limit)
    _, scored = _score_all(candidates, folded_query, weights)
    return _top(scored, limit, candidates)


@dataclass
class _Level:
    query: str
    matched: list[_Candidate]
    ranked: list[RankedItem]


class Ranker:
    """Re-ranks on every query change, narrowing the scan when possible.

    Each query typed so far is kept on a stack with the entries it matched.
    Any entry matching a new query also matches every stacked query that is
    a subsequence of it, so only the nearest such level is rescanned.
    Deleting characters pops back to a level already computed. The result
    is always the same as :func:`rank`.
    """

    def __init__(
        self,
        entries: Sequence[HistoryEntry],
        limit: int | None = None,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
    ) -> None:
        self._all = _candidates(entries)
        self._limit = limit
        self._weights = weights
        self._stack = [_Level("", self._all, _recency_order(self._all, limit))]

    @property
    def entry_count(self) -> int:
        return len(self._all)

    def rank(self, query: str) -> list[RankedItem]:
        folded_query = fold_case(query)
        started = time.perf_counter()

        # The empty query at the bottom is a subsequence of everything.
        while not is_subsequence(self._stack[-1].query, folded_query):
            self._stack.pop()
        level = self._stack[-1]
        if level.query == folded_query:
            return level.ranked

        matched, scored = _score_all(level.matched, folded_query, self._weights)
        ranked = _top(scored, self._limit, self._all)
        self._stack.append(_Level(folded_query, matched, ranked))

        logger.debug(
            "Ranked %r: scanned %d, matched %d in %.1fms",
            query,
            len(level.matched),
            len(matched),
            (time.perf_counter() - started) * 1000,
        )
        return ranked
