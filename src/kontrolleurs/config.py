"""Configuration management. Reads ``~/.config/kontrolleurs/config.json``."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from kontrolleurs.errors import ConfigError
from kontrolleurs.fuzzy import ScoringWeights
from kontrolleurs.history import HISTORY_FORMATS
from kontrolleurs.keybindings import SEARCH_ACTIONS, KeybindingsConfig
from kontrolleurs.search import DEFAULT_MAX_RESULTS, DEFAULT_PROMPT

CONFIG_ENV = "KONTROLLEURS_CONFIG"
CONFIG_DIR_NAME = "kontrolleurs"
CONFIG_FILE_NAME = "config.json"


@dataclass
class ThemeSettings:
    """SGR parameter strings, e.g. ``"1;31"`` for bold red."""

    prompt: str = "1"
    match: str = "1;31"
    selected: str = "1"
    info: str = "2"


@dataclass
class Config:
    prompt: str = DEFAULT_PROMPT
    max_results: int = DEFAULT_MAX_RESULTS
    escape_timeout: float = 0.025
    history_format: str = "auto"
    keybindings: KeybindingsConfig = field(default_factory=dict)
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    theme: ThemeSettings = field(default_factory=ThemeSettings)


def get_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV)
    if override:
        return Path(override).expanduser()
    base = os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config"
    return Path(base) / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def load_config(path: Path | None = None) -> Config:
    """Load the config file; a missing file yields the defaults."""
    config_path = path or get_config_path()
    if not config_path.exists():
        return Config()
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigError(f"cannot read config {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config {config_path} must contain a JSON object")
    return config_from_dict(data)


def _build(cls: type, data: Any, section: str) -> Any:
    if not isinstance(data, dict):
        raise ConfigError(f"'{section}' must be an object")
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"unknown key(s) in '{section}': {', '.join(sorted(unknown))}")
    try:
        return cls(**data)
    except TypeError as e:
        raise ConfigError(f"invalid '{section}': {e}") from e


def config_from_dict(data: dict[str, Any]) -> Config:
    """Deserialize and validate a Config from a JSON-compatible dict."""
    config = _build(Config, {k: v for k, v in data.items() if k not in ("weights", "theme")}, "config")
    if "weights" in data:
        weights = _build(ScoringWeights, data["weights"], "weights")
        try:
            config.weights = ScoringWeights(**{f.name: float(getattr(weights, f.name)) for f in fields(weights)})
        except (TypeError, ValueError) as e:
            raise ConfigError(f"weights must be numbers: {e}") from e
    if "theme" in data:
        config.theme = _build(ThemeSettings, data["theme"], "theme")
    validate_config(config)
    return config


def validate_config(config: Config) -> None:
    if not isinstance(config.prompt, str):
        raise ConfigError("'prompt' must be a string")
    if not isinstance(config.max_results, int) or config.max_results < 1:
        raise ConfigError("'max_results' must be a positive integer")
    if not isinstance(config.escape_timeout, (int, float)) or config.escape_timeout <= 0:
        raise ConfigError("'escape_timeout' must be a positive number")
    if config.history_format not in HISTORY_FORMATS:
        raise ConfigError(f"'history_format' must be one of {', '.join(HISTORY_FORMATS)}")
    if not isinstance(config.keybindings, dict):
        raise ConfigError("'keybindings' must be an object")
    for action, keys in config.keybindings.items():
        if action not in SEARCH_ACTIONS:
            raise ConfigError(f"unknown keybinding action: {action}")
        key_list = keys if isinstance(keys, list) else [keys]
        if not all(isinstance(k, str) and k for k in key_list):
            raise ConfigError(f"keybinding '{action}' must be a key name or a list of key names")
    for name, value in vars(config.theme).items():
        if not isinstance(value, str):
            raise ConfigError(f"theme '{name}' must be a string")
    try:
        config.weights.validate()
    except ValueError as e:
        raise ConfigError(f"invalid weights: {e}") from e
