"""Tests for kontrolleurs.config -- loading and validating the JSON config."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from kontrolleurs.config import Config, config_from_dict, get_config_path, load_config
from kontrolleurs.errors import ConfigError
from kontrolleurs.fuzzy import ScoringWeights
from kontrolleurs.search import DEFAULT_MAX_RESULTS, DEFAULT_PROMPT


def _write(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "missing.json")
        assert config == Config()
        assert config.prompt == DEFAULT_PROMPT
        assert config.max_results == DEFAULT_MAX_RESULTS

    def test_values_read(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path / "config.json",
            {
                "prompt": "history> ",
                "max_results": 50,
                "history_format": "lines",
                "keybindings": {"selectAccept": ["tab", "right"]},
                "weights": {"gap_penalty": 20, "boundary_bonus": 4},
                "theme": {"match": "4"},
            },
        )
        config = load_config(path)
        assert config.prompt == "history> "
        assert config.max_results == 50
        assert config.history_format == "lines"
        assert config.keybindings == {"selectAccept": ["tab", "right"]}
        assert config.weights == ScoringWeights(gap_penalty=20.0, boundary_bonus=4.0)
        assert config.theme.match == "4"
        assert config.theme.prompt == "1"

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_not_an_object(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path / "config.json", ["prompt"]))


class TestValidation:
    @pytest.mark.parametrize(
        "data",
        [
            {"colour": "red"},
            {"max_results": 0},
            {"max_results": "many"},
            {"escape_timeout": 0},
            {"history_format": "yaml"},
            {"prompt": 3},
            {"keybindings": {"launchRocket": "ctrl+x"}},
            {"keybindings": {"selectCancel": [""]}},
            {"keybindings": []},
            {"weights": {"boundary_bonus": 12}},
            {"weights": {"base": "high"}},
            {"weights": {"bonus": 1}},
            {"weights": 3},
            {"theme": {"background": "1"}},
            {"theme": {"match": 31}},
        ],
    )
    def test_rejected(self, data) -> None:
        with pytest.raises(ConfigError):
            config_from_dict(data)

    def test_empty_dict_is_default(self) -> None:
        assert config_from_dict({}) == Config()


class TestConfigPath:
    def test_env_override(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("KONTROLLEURS_CONFIG", str(tmp_path / "custom.json"))
        assert get_config_path() == tmp_path / "custom.json"

    def test_xdg_config_home(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.delenv("KONTROLLEURS_CONFIG", raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert get_config_path() == tmp_path / "kontrolleurs" / "config.json"
