"""Keyboard input parsing.

Turns one complete input sequence (as split by
:class:`kontrolleurs.stdin_buffer.StdinBuffer`) into a key identifier such as
``"a"``, ``"ctrl+r"``, ``"alt+backspace"`` or ``"pageUp"``.

Only what xterm-compatible terminals send without any keyboard protocol
negotiation is understood: CSI and SS3 cursor keys, ``~``-terminated editing
keys with an optional modifier parameter, C0 control characters and
ESC-prefixed meta keys.
"""

from __future__ import annotations

import re

KeyId = str


class Key:
    """Named key constants and modifier combinators."""

    escape = "escape"
    enter = "enter"
    tab = "tab"
    space = "space"
    backspace = "backspace"
    delete = "delete"
    insert = "insert"
    home = "home"
    end = "end"
    page_up = "pageUp"
    page_down = "pageDown"
    up = "up"
    down = "down"
    left = "left"
    right = "right"

    @staticmethod
    def ctrl(key: str) -> str:
        return f"ctrl+{key}"

    @staticmethod
    def alt(key: str) -> str:
        return f"alt+{key}"


# ---------------------------------------------------------------------------
# CSI / SS3 sequences
# ---------------------------------------------------------------------------

# ESC [ <code> ; <modifier> <final>   or   ESC O <final>
_CSI_RE = re.compile(r"^\x1b\[(?:(\d+)(?:;(\d+))?)?([A-Z~])$")
_SS3_RE = re.compile(r"^\x1bO([A-Z])$")

_CURSOR_FINALS: dict[str, KeyId] = {
    "A": Key.up,
    "B": Key.down,
    "C": Key.right,
    "D": Key.left,
    "H": Key.home,
    "F": Key.end,
}

# ESC [ <code> ~  (vt220 editing keypad; rxvt sends 7/8 for home/end)
_TILDE_CODES: dict[int, KeyId] = {
    1: Key.home,
    2: Key.insert,
    3: Key.delete,
    4: Key.end,
    5: Key.page_up,
    6: Key.page_down,
    7: Key.home,
    8: Key.end,
}

# xterm encodes modifiers as 1 + bitmask in the second parameter.
_MOD_SHIFT = 1
_MOD_ALT = 2
_MOD_CTRL = 4


def _with_modifiers(key: KeyId, param: str | None) -> KeyId | None:
    if param is None:
        return key
    mask = int(param) - 1
    if mask < 0 or mask & ~(_MOD_SHIFT | _MOD_ALT | _MOD_CTRL):
        return None
    prefix = ""
    if mask & _MOD_CTRL:
        prefix += "ctrl+"
    if mask & _MOD_SHIFT:
        prefix += "shift+"
    if mask & _MOD_ALT:
        prefix += "alt+"
    return prefix + key


def _parse_csi(data: str) -> KeyId | None:
    match = _CSI_RE.match(data)
    if match is None:
        ss3 = _SS3_RE.match(data)
        return _CURSOR_FINALS.get(ss3.group(1)) if ss3 else None

    code, modifier, final = match.groups()
    if final == "~":
        key = _TILDE_CODES.get(int(code)) if code else None
    elif final == "Z" and code is None:
        return "shift+tab"
    elif code in (None, "1"):
        key = _CURSOR_FINALS.get(final)
    else:
        key = None
    return _with_modifiers(key, modifier) if key else None


# ---------------------------------------------------------------------------
# Single characters
# ---------------------------------------------------------------------------

_NAMED_CONTROLS: dict[str, KeyId] = {
    "\x1b": Key.escape,
    "\r": Key.enter,
    "\n": Key.enter,
    "\t": Key.tab,
    " ": Key.space,
    "\x7f": Key.backspace,
    "\x08": Key.backspace,
    "\x00": "ctrl+space",
    "\x1f": "ctrl+-",
}


def _parse_char(ch: str) -> KeyId | None:
    named = _NAMED_CONTROLS.get(ch)
    if named is not None:
        return named
    if 1 <= ord(ch) <= 26:
        return Key.ctrl(chr(ord(ch) + ord("a") - 1))
    return None


def parse_key(data: str) -> KeyId | None:
    """Parse raw terminal input and return the key identifier, or ``None``.

    Unknown escape sequences yield ``None`` so callers can ignore them
    instead of inserting their bytes as text.
    """
    if not data:
        return None

    if len(data) == 1:
        key = _parse_char(data)
        if key is not None:
            return key

    elif data[0] == "\x1b":
        if len(data) > 2:
            return _parse_csi(data)
        # ESC + one character: the terminal's meta (alt) prefix
        inner = _parse_char(data[1])
        if inner is not None:
            return "alt+" + inner if not inner.startswith("ctrl+") else "ctrl+alt+" + inner[5:]
        return Key.alt(data[1].lower()) if data[1].isprintable() else None

    if is_printable_text(data):
        return data
    return None


def is_printable_text(data: str) -> bool:
    """True if *data* contains no control characters and can be inserted as text."""
    return bool(data) and not any(
        ord(ch) < 32 or ord(ch) == 0x7F or (0x80 <= ord(ch) <= 0x9F) for ch in data
    )
