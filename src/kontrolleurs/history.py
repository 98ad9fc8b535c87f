"""History loading: read the shell's history store into ranked entries.

Three record formats are understood:

``nul``
    Records separated by NUL bytes, newest first (``history -z`` in fish).
``lines``
    One command per line, oldest first (bash, zsh, plain files).
``fish``
    The ``fish_history`` file itself, oldest first.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Iterator, Literal

from kontrolleurs.errors import HistoryUnavailable, MalformedHistoryLine

logger = logging.getLogger(__name__)

HistoryFormat = Literal["auto", "nul", "lines", "fish"]

HISTORY_FORMATS: tuple[str, ...] = ("auto", "nul", "lines", "fish")

STDIN_PATH = "-"

_READ_CHUNK = 64 * 1024

_BASH_TIMESTAMP_RE = re.compile(rb"^#\d+$")
_ZSH_HEADER_RE = re.compile(rb"^: \d+:")
_ZSH_EXTENDED_RE = re.compile(rb"^: \d+:\d+;")
_ZSH_META = 0x83
_FISH_CMD_PREFIX = b"- cmd:"


@dataclass(frozen=True)
class HistoryEntry:
    """One distinct command line. ``rank`` 0 is the most recent."""

    text: str
    rank: int


# ---------------------------------------------------------------------------
# Opening the store
# ---------------------------------------------------------------------------


def open_history(path: str) -> BinaryIO:
    """Open the history store for binary reading.

    ``"-"`` returns standard input. Any failure to open raises
    :class:`HistoryUnavailable`.
    """
    if path == STDIN_PATH:
        return sys.stdin.buffer
    expanded = os.path.expanduser(path)
    if os.path.isdir(expanded):
        raise HistoryUnavailable(path, IsADirectoryError(f"is a directory: {expanded}"))
    try:
        return open(expanded, "rb")
    except OSError as e:
        raise HistoryUnavailable(path, e) from e


def default_history_path() -> str:
    """Where to read history from when no path is given.

    Piped standard input wins; otherwise ``$HISTFILE``, then fish's history
    file, then bash's.
    """
    if not sys.stdin.isatty():
        return STDIN_PATH
    histfile = os.environ.get("HISTFILE")
    if histfile:
        return histfile
    data_home = os.environ.get("XDG_DATA_HOME") or os.path.expanduser("~/.local/share")
    fish_history = os.path.join(data_home, "fish", "fish_history")
    if os.path.exists(fish_history):
        return fish_history
    return os.path.expanduser("~/.bash_history")


def resolve_format(fmt: HistoryFormat, path: str) -> Literal["nul", "lines", "fish"]:
    """Resolve ``auto`` to a concrete format based on where history comes from."""
    if fmt != "auto":
        return fmt
    if path == STDIN_PATH:
        return "nul"
    if os.path.basename(path) == "fish_history":
        return "fish"
    return "lines"


def is_newest_first(fmt: str) -> bool:
    return fmt == "nul"


# ---------------------------------------------------------------------------
# Record splitting
# ---------------------------------------------------------------------------


def _split_stream(stream: BinaryIO, separator: bytes) -> Iterator[bytes]:
    """Yield raw records split on *separator*; a missing trailing separator is fine."""
    pending = b""
    while True:
        chunk = stream.read(_READ_CHUNK)
        if not chunk:
            break
        pending += chunk
        *complete, pending = pending.split(separator)
        yield from complete
    if pending:
        yield pending


def _decode(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedHistoryLine(f"undecodable record: {e}") from e


def _parse_nul_records(stream: BinaryIO) -> Iterator[str | MalformedHistoryLine]:
    for raw in _split_stream(stream, b"\0"):
        try:
            yield _decode(raw)
        except MalformedHistoryLine as e:
            yield e


def _unmetafy(raw: bytes) -> bytes:
    """Undo zsh's history encoding: a Meta byte marks the next byte as XOR 0x20."""
    out = bytearray()
    i = 0
    while i < len(raw):
        byte = raw[i]
        if byte == _ZSH_META and i + 1 < len(raw):
            out.append(raw[i + 1] ^ 0x20)
            i += 2
            continue
        out.append(byte)
        i += 1
    return bytes(out)


def _decode_line(raw: bytes) -> str:
    try:
        return _decode(raw)
    except MalformedHistoryLine:
        # zsh stores bytes 0x83-0xa2 (and NUL) escaped, which breaks UTF-8.
        if _ZSH_META not in raw:
            raise
    return _decode(_unmetafy(raw))


def _parse_line_records(stream: BinaryIO) -> Iterator[str | MalformedHistoryLine]:
    continued: list[bytes] = []
    for raw in _split_stream(stream, b"\n"):
        raw = raw.rstrip(b"\r")
        if not continued:
            if _BASH_TIMESTAMP_RE.match(raw):
                continue
            if _ZSH_HEADER_RE.match(raw):
                match = _ZSH_EXTENDED_RE.match(raw)
                if match is None:
                    yield MalformedHistoryLine(f"zsh extended record without command: {raw!r}")
                    continue
                raw = raw[match.end():]
        # zsh writes multi-line commands with a trailing backslash per line
        if raw.endswith(b"\\") and not raw.endswith(b"\\\\"):
            continued.append(raw[:-1])
            continue
        continued.append(raw)
        record = b"\n".join(continued)
        continued = []
        try:
            yield _decode_line(record)
        except MalformedHistoryLine as e:
            yield e
    if continued:
        try:
            yield _decode_line(b"\n".join(continued))
        except MalformedHistoryLine as e:
            yield e


def _unescape_fish(value: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(value):
        ch = value[i]
        if ch == "\\" and i + 1 < len(value):
            nxt = value[i + 1]
            if nxt == "n":
                out.append("\n")
                i += 2
                continue
            if nxt == "\\":
                out.append("\\")
                i += 2
                continue
        out.append(ch)
        i += 1
    return "".join(out)


def _parse_fish_records(stream: BinaryIO) -> Iterator[str | MalformedHistoryLine]:
    for raw in _split_stream(stream, b"\n"):
        if not raw.startswith(_FISH_CMD_PREFIX):
            # "when:", "paths:" and their list items belong to the previous record
            continue
        value = raw[len(_FISH_CMD_PREFIX):]
        if not value.startswith(b" "):
            yield MalformedHistoryLine(f"fish record without command: {raw!r}")
            continue
        try:
            yield _unescape_fish(_decode(value[1:]))
        except MalformedHistoryLine as e:
            yield e


_PARSERS = {
    "nul": _parse_nul_records,
    "lines": _parse_line_records,
    "fish": _parse_fish_records,
}


def read_records(stream: BinaryIO, fmt: str) -> Iterator[str]:
    """Yield decoded commands in on-disk order, skipping malformed records."""
    parser = _PARSERS.get(fmt)
    if parser is None:
        raise ValueError(f"unknown history format: {fmt}")
    skipped = 0
    for record in parser(stream):
        if isinstance(record, MalformedHistoryLine):
            skipped += 1
            logger.debug("Skipping history record: %s", record)
            continue
        yield record
    if skipped:
        logger.debug("Skipped %d malformed history record(s)", skipped)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_history(records: Iterable[str], *, newest_first: bool) -> list[HistoryEntry]:
    """Build the deduplicated entry list, most recent first.

    A command that appears several times keeps only its most recent
    occurrence. Blank records are dropped.
    """
    ordered = list(records)
    if not newest_first:
        ordered.reverse()

    seen: set[str] = set()
    entries: list[HistoryEntry] = []
    for text in ordered:
        if not text.strip() or text in seen:
            continue
        seen.add(text)
        entries.append(HistoryEntry(text=text, rank=len(entries)))
    return entries


def load_history_from(path: str, fmt: HistoryFormat = "auto") -> list[HistoryEntry]:
    """Open *path*, parse it in *fmt*, and return the entry list."""
    concrete = resolve_format(fmt, path)
    stream = open_history(path)
    try:
        try:
            entries = load_history(read_records(stream, concrete), newest_first=is_newest_first(concrete))
        except OSError as e:
            raise HistoryUnavailable(path, e) from e
    finally:
        if stream is not sys.stdin.buffer:
            stream.close()
    logger.debug("Loaded %d history entries from %s (%s)", len(entries), path, concrete)
    return entries
