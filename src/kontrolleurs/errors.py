"""Exception hierarchy.

Every fatal error derives from :class:`KontrolleursError` so the CLI can
report it once and exit. ``MalformedHistoryLine`` sits outside the
hierarchy: it never leaves the history loader.
"""

from __future__ import annotations


class KontrolleursError(Exception):
    """Base class for errors reported to the user."""


class LoadError(KontrolleursError):
    """The history store could not be loaded."""


class HistoryUnavailable(LoadError):
    """The history store is missing, unreadable, or not a file."""

    def __init__(self, path: str, cause: BaseException | None = None) -> None:
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"cannot read history from {path}{detail}")


class TerminalUnavailable(KontrolleursError):
    """No interactive terminal could be acquired."""


class TerminalIOError(KontrolleursError):
    """Reading from or writing to the terminal failed mid-session."""


class ConfigError(KontrolleursError):
    """The configuration file or an option value is invalid."""


class MalformedHistoryLine(ValueError):
    """A single history record could not be parsed; the loader skips it."""
