"""Tests for kontrolleurs.keys -- keyboard input parsing."""

from __future__ import annotations

import pytest

from kontrolleurs.keys import Key, is_printable_text, parse_key


class TestKeyHelper:
    def test_modifiers(self) -> None:
        assert Key.ctrl("r") == "ctrl+r"
        assert Key.alt("b") == "alt+b"

    def test_named_keys(self) -> None:
        assert Key.page_up == "pageUp"
        assert Key.escape == "escape"


class TestParseKey:
    @pytest.mark.parametrize(
        "data,expected",
        [
            ("\x1b[A", "up"),
            ("\x1b[B", "down"),
            ("\x1bOC", "right"),
            ("\x1b[D", "left"),
            ("\x1b[H", "home"),
            ("\x1b[4~", "end"),
            ("\x1b[5~", "pageUp"),
            ("\x1b[6~", "pageDown"),
            ("\x1b[3~", "delete"),
            ("\x1b[1;5C", "ctrl+right"),
            ("\x1b[1;3D", "alt+left"),
            ("\x1b[1;2A", "shift+up"),
            ("\x1b[Z", "shift+tab"),
            ("\x1b[3;5~", "ctrl+delete"),
            ("\x1b[1;6C", "ctrl+shift+right"),
            ("\x1b[5;3~", "alt+pageUp"),
        ],
    )
    def test_escape_sequences(self, data: str, expected: str) -> None:
        assert parse_key(data) == expected

    @pytest.mark.parametrize(
        "data,expected",
        [
            ("\x1b", "escape"),
            ("\r", "enter"),
            ("\n", "enter"),
            ("\t", "tab"),
            (" ", "space"),
            ("\x7f", "backspace"),
            ("\x08", "backspace"),
            ("\x00", "ctrl+space"),
        ],
    )
    def test_single_byte_keys(self, data: str, expected: str) -> None:
        assert parse_key(data) == expected

    def test_ctrl_letters(self) -> None:
        assert parse_key("\x03") == "ctrl+c"
        assert parse_key("\x07") == "ctrl+g"
        assert parse_key("\x12") == "ctrl+r"
        assert parse_key("\x17") == "ctrl+w"

    def test_alt_keys(self) -> None:
        assert parse_key("\x1bb") == "alt+b"
        assert parse_key("\x1b\x7f") == "alt+backspace"
        assert parse_key("\x1b\r") == "alt+enter"
        assert parse_key("\x1b\x01") == "ctrl+alt+a"

    def test_printable(self) -> None:
        assert parse_key("a") == "a"
        assert parse_key("A") == "A"
        assert parse_key("é") == "é"
        assert parse_key("日") == "日"

    def test_unknown_escape_sequence(self) -> None:
        assert parse_key("\x1b[99~") is None
        assert parse_key("\x1b[200;1x") is None
        assert parse_key("\x1b[1;99A") is None

    def test_empty(self) -> None:
        assert parse_key("") is None


class TestIsPrintableText:
    def test_plain_text(self) -> None:
        assert is_printable_text("git push") is True
        assert is_printable_text("grün") is True

    def test_control_characters(self) -> None:
        assert is_printable_text("a\x1bb") is False
        assert is_printable_text("\x7f") is False
        assert is_printable_text("\x85") is False

    def test_empty(self) -> None:
        assert is_printable_text("") is False
