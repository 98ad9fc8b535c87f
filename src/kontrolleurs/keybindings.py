"""Search prompt keybindings manager."""

from __future__ import annotations

from typing import Literal, get_args

from kontrolleurs.keys import KeyId

SearchAction = Literal[
    # Query cursor movement
    "cursorLeft",
    "cursorRight",
    "cursorLineStart",
    "cursorLineEnd",
    # Query deletion
    "deleteCharBackward",
    "deleteCharForward",
    "deleteWordBackward",
    "deleteToLineStart",
    # Result selection
    "selectUp",
    "selectDown",
    "selectPageUp",
    "selectPageDown",
    # Outcome
    "selectConfirm",
    "selectAccept",
    "selectCancel",
]

SEARCH_ACTIONS: tuple[str, ...] = get_args(SearchAction)

KeybindingsConfig = dict[SearchAction, KeyId | list[KeyId]]

# "up" moves towards the top of the list (better matches / newer entries);
# ctrl+r keeps the reverse-i-search habit of stepping to the next older hit.
DEFAULT_KEYBINDINGS: dict[SearchAction, KeyId | list[KeyId]] = {
    "cursorLeft": ["left", "ctrl+b"],
    "cursorRight": ["right", "ctrl+f"],
    "cursorLineStart": ["home", "ctrl+a"],
    "cursorLineEnd": ["end", "ctrl+e"],
    "deleteCharBackward": "backspace",
    "deleteCharForward": ["delete", "ctrl+d"],
    "deleteWordBackward": ["ctrl+w", "alt+backspace"],
    "deleteToLineStart": "ctrl+u",
    "selectUp": ["up", "ctrl+p", "ctrl+s"],
    "selectDown": ["down", "ctrl+n", "ctrl+r"],
    "selectPageUp": "pageUp",
    "selectPageDown": "pageDown",
    "selectConfirm": "enter",
    "selectAccept": "tab",
    "selectCancel": ["escape", "ctrl+c", "ctrl+g"],
}


class KeybindingsManager:
    """Maps decoded key identifiers to search actions."""

    def __init__(self, config: KeybindingsConfig | None = None) -> None:
        self._action_to_keys: dict[SearchAction, list[KeyId]] = {}
        self._key_to_action: dict[KeyId, SearchAction] = {}
        self._build_maps(config or {})

    def _build_maps(self, config: KeybindingsConfig) -> None:
        self._action_to_keys.clear()
        self._key_to_action.clear()

        # Start with defaults
        for action, keys in DEFAULT_KEYBINDINGS.items():
            key_array = keys if isinstance(keys, list) else [keys]
            self._action_to_keys[action] = list(key_array)

        # Override with user config
        for action, keys in config.items():
            if action not in SEARCH_ACTIONS:
                raise ValueError(f"unknown action: {action}")
            key_array = keys if isinstance(keys, list) else [keys]
            self._action_to_keys[action] = list(key_array)

        # A key rebound by the user is taken away from its default action.
        for action, keys in self._action_to_keys.items():
            if action in config:
                continue
            for key in keys:
                self._key_to_action.setdefault(key, action)
        for action in config:
            for key in self._action_to_keys[action]:
                self._key_to_action[key] = action

    def action_for(self, key: KeyId | None) -> SearchAction | None:
        """Return the action bound to *key*, if any."""
        if key is None:
            return None
        return self._key_to_action.get(key)
