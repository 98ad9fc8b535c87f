"""Tests for kontrolleurs.ranker -- ordering, limits and incremental narrowing."""

from __future__ import annotations

import time

from kontrolleurs.history import HistoryEntry
from kontrolleurs.ranker import Ranker, rank


def _entries(*texts: str) -> list[HistoryEntry]:
    return [HistoryEntry(text=t, rank=i) for i, t in enumerate(texts)]


def _texts(items) -> list[str]:
    return [item.entry.text for item in items]


HISTORY = _entries("git status", "git commit", "ls -la", "git push")


def _large_history(size: int = 30_000) -> list[HistoryEntry]:
    words = ["git", "push", "commit", "docker", "compose", "make", "test", "cd", "ls", "grep", "cargo", "kubectl"]
    texts = [
        f"{words[i % len(words)]} {words[(i * 7) % len(words)]} --flag-{i} {words[(i * 5) % len(words)]}/{i}"
        for i in range(size)
    ]
    return _entries(*texts)


# ---------------------------------------------------------------------------
# rank()
# ---------------------------------------------------------------------------


class TestRank:
    def test_empty_query_keeps_recency_order(self) -> None:
        assert _texts(rank(HISTORY, "")) == [e.text for e in HISTORY]

    def test_empty_query_orders_by_rank_not_input_order(self) -> None:
        entries = [HistoryEntry("older", 1), HistoryEntry("newer", 0)]
        assert _texts(rank(entries, "")) == ["newer", "older"]

    def test_filters_non_matching(self) -> None:
        assert _texts(rank(HISTORY, "gp")) == ["git push"]

    def test_shorter_span_outranks_recency(self) -> None:
        entries = _entries("git push", "grep -rn TODO src")
        # "grep" spans g..p in 4 columns, "git push" needs 5.
        assert _texts(rank(entries, "gp")) == ["grep -rn TODO src", "git push"]

    def test_best_score_first(self) -> None:
        entries = _entries("make test", "git status")
        # Both hold "st" contiguously; only "status" starts a word with it.
        assert _texts(rank(entries, "st")) == ["git status", "make test"]

    def test_ties_broken_by_recency(self) -> None:
        entries = _entries("make build", "make test")
        assert _texts(rank(entries, "make")) == ["make build", "make test"]
        reordered = _entries("make test", "make build")
        assert _texts(rank(reordered, "make")) == ["make test", "make build"]

    def test_limit(self) -> None:
        assert len(rank(HISTORY, "", limit=3)) == 3
        assert _texts(rank(HISTORY, "", limit=2)) == ["git status", "git commit"]

    def test_limit_larger_than_matches(self) -> None:
        assert len(rank(HISTORY, "git", limit=100)) == 3

    def test_no_matches(self) -> None:
        assert rank(HISTORY, "zzz") == []

    def test_empty_history(self) -> None:
        assert rank([], "git") == []
        assert rank([], "") == []

    def test_deterministic(self) -> None:
        assert rank(HISTORY, "g") == rank(HISTORY, "g")

    def test_positions_attached(self) -> None:
        [item] = rank(HISTORY, "gp")
        assert item.match.positions == (0, 4)
        assert item.match.matches is True


# ---------------------------------------------------------------------------
# Ranker
# ---------------------------------------------------------------------------


class TestRanker:
    def test_incremental_matches_full_scan(self) -> None:
        ranker = Ranker(HISTORY)
        for query in ["g", "gi", "git", "gits", "git", "gt", "g", "", "l", "ls", "c", "git c", "git p"]:
            assert ranker.rank(query) == rank(HISTORY, query), query

    def test_incremental_with_limit(self) -> None:
        ranker = Ranker(HISTORY, limit=2)
        for query in ["", "g", "gi", "git", "gi", "s", ""]:
            assert ranker.rank(query) == rank(HISTORY, query, limit=2), query

    def test_insert_in_middle_of_query(self) -> None:
        ranker = Ranker(HISTORY)
        ranker.rank("gt")
        assert ranker.rank("git") == rank(HISTORY, "git")

    def test_case_change_still_exact(self) -> None:
        ranker = Ranker(HISTORY)
        ranker.rank("git")
        assert ranker.rank("GIT S") == rank(HISTORY, "git s")

    def test_backspace_returns_cached_result(self) -> None:
        ranker = Ranker(HISTORY)
        first = ranker.rank("git")
        ranker.rank("git p")
        assert ranker.rank("git") is first

    def test_entry_count(self) -> None:
        assert Ranker(HISTORY).entry_count == len(HISTORY)

    def test_large_history(self) -> None:
        entries = _entries(*(f"command number {i}" for i in range(5000)))
        ranker = Ranker(entries, limit=10)
        ranked = ranker.rank("number 42")
        assert ranked[0].entry.text == "command number 42"
        assert len(ranked) == 10

    def test_keystrokes_on_large_history_stay_fast(self) -> None:
        entries = _large_history()
        ranker = Ranker(entries, limit=500)

        def timed(query: str) -> float:
            started = time.perf_counter()
            ranker.rank(query)
            return time.perf_counter() - started

        # Browsing and deleting back to an earlier query reuse earlier work.
        assert timed("") < 0.01
        timed("g")
        timed("gi")
        timed("git p")
        assert timed("gi") < 0.01
        assert timed("") < 0.01

        # Fresh scans over every entry; the bound leaves room for slow machines.
        assert timed("c") < 0.5
        assert timed("cargo t") < 0.5
        assert ranker.rank("cargo t") == rank(entries, "cargo t", limit=500)
