"""kontrolleurs: incremental fuzzy search over shell history."""

from kontrolleurs.errors import (
    ConfigError,
    HistoryUnavailable,
    KontrolleursError,
    LoadError,
    MalformedHistoryLine,
    TerminalIOError,
    TerminalUnavailable,
)

# Fuzzy matching
from kontrolleurs.fuzzy import DEFAULT_WEIGHTS, MatchResult, ScoringWeights, fuzzy_match

# History loading
from kontrolleurs.history import HistoryEntry, load_history, load_history_from, read_records

# Ranking
from kontrolleurs.ranker import RankedItem, Ranker, rank

# Interaction
from kontrolleurs.search import SearchSession
from kontrolleurs.state import Cancelled, Confirmed, Query, SelectionState, Typing

# Terminal
from kontrolleurs.terminal import (
    InterruptEvent,
    KeyEvent,
    PasteEvent,
    ResizeEvent,
    Terminal,
    TtyTerminal,
)

# Output
from kontrolleurs.output import EXIT_CANCELLED, EXIT_ERROR, EXIT_SELECTED, emit

__version__ = "0.1.0"

__all__ = [
    # Errors
    "KontrolleursError",
    "LoadError",
    "HistoryUnavailable",
    "TerminalUnavailable",
    "TerminalIOError",
    "ConfigError",
    "MalformedHistoryLine",
    # Fuzzy
    "MatchResult",
    "ScoringWeights",
    "DEFAULT_WEIGHTS",
    "fuzzy_match",
    # History
    "HistoryEntry",
    "load_history",
    "load_history_from",
    "read_records",
    # Ranking
    "RankedItem",
    "Ranker",
    "rank",
    # Interaction
    "SearchSession",
    "Query",
    "SelectionState",
    "Typing",
    "Confirmed",
    "Cancelled",
    # Terminal
    "Terminal",
    "TtyTerminal",
    "KeyEvent",
    "PasteEvent",
    "ResizeEvent",
    "InterruptEvent",
    # Output
    "emit",
    "EXIT_SELECTED",
    "EXIT_CANCELLED",
    "EXIT_ERROR",
]
