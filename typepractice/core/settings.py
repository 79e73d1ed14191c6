from __future__ import annotations

import json
import logging
from dataclasses import dataclass, asdict, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class GameMode(Enum):
    SENTENCE = ("Sentence practice", "Type ten short sentences quickly and accurately.")
    LONG_TEXT = ("Long text practice", "Type one long passage from start to finish, sentence by sentence.")
    MOLE_GAME = ("Word moles", "Type the words that pop up before they disappear.")

    def __init__(self, display_name: str, description: str) -> None:
        self.display_name = display_name
        self.description = description


class Difficulty(Enum):
    EASY = "Easy"
    NORMAL = "Normal"
    HARD = "Hard"

    @property
    def display_name(self) -> str:
        return self.value


class Theme(Enum):
    LIGHT = "Light"
    DARK = "Dark"

    def toggled(self) -> "Theme":
        return Theme.DARK if self is Theme.LIGHT else Theme.LIGHT


@dataclass
class GameSettings:
    mode: GameMode = GameMode.SENTENCE
    language: str = "ko"
    difficulty: Difficulty = Difficulty.NORMAL
    theme: Theme = Theme.LIGHT
    length_based_completion: bool = True

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, Enum):
                data[key] = value.name
        return data

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "GameSettings":
        """Build settings from a JSON payload.

        Enum fields must hold a member name; anything else raises KeyError.
        Values of the wrong type for ``language`` and
        ``length_based_completion`` are ignored and keep their defaults.
        """
        settings = cls()
        if "mode" in payload:
            settings.mode = _member(GameMode, payload["mode"])
        if "difficulty" in payload:
            settings.difficulty = _member(Difficulty, payload["difficulty"])
        if "theme" in payload:
            settings.theme = _member(Theme, payload["theme"])
        if isinstance(payload.get("language"), str):
            settings.language = payload["language"]
        if isinstance(payload.get("length_based_completion"), bool):
            settings.length_based_completion = payload["length_based_completion"]
        return settings


def _member(enum_cls, name: Any):
    if not isinstance(name, str):
        raise KeyError(name)
    return enum_cls[name]


class SettingsStore:
    """Stores the player's settings. Persists to disk across app restarts.
    File: ~/.typepractice/settings.json unless another path is given."""

    def __init__(self, file_path: Optional[Path] = None) -> None:
        self._file_path = file_path or Path.home() / ".typepractice" / "settings.json"
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        self._settings = self._load()

    @property
    def settings(self) -> GameSettings:
        return self._settings

    def update(self, **changes: Any) -> GameSettings:
        """Apply field changes and persist them."""
        known = {f.name for f in fields(GameSettings)}
        for key, value in changes.items():
            if key not in known:
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self._settings, key, value)
        self._save()
        return self._settings

    def reset(self) -> None:
        """Restore defaults and persist them."""
        self._settings = GameSettings()
        self._save()

    def save(self) -> None:
        """Persist current state to disk (e.g. on app exit)."""
        self._save()

    def _load(self) -> GameSettings:
        if not self._file_path.exists():
            return GameSettings()
        try:
            payload = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.warning("Could not load settings from %s: %s", self._file_path, e)
            return GameSettings()
        if not isinstance(payload, dict):
            logger.warning("Ignoring malformed settings in %s", self._file_path)
            return GameSettings()
        try:
            return GameSettings.from_dict(payload)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Unknown value %s in %s, using defaults", e, self._file_path)
            return GameSettings()

    def _save(self) -> None:
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._file_path.write_text(json.dumps(self._settings.to_dict(), indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not save settings to %s: %s", self._file_path, e)
