"""Device preferences persisted between sessions."""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Optional

from config import config

logger = logging.getLogger(__name__)


@dataclass
class Preferences:
    """User-facing toggles kept on the device."""

    sound_enabled: bool = True
    haptics_enabled: bool = True
    volume: float = 0.7
    require_authentication: bool = True
    auto_blur_enabled: bool = True

    def __post_init__(self) -> None:
        self.volume = min(1.0, max(0.0, float(self.volume)))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Preferences":
        """Create from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


class PreferencesManager:
    """Loads and saves preferences as a JSON file."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or config.preferences_path
        self._preferences: Optional[Preferences] = None

    @property
    def preferences(self) -> Preferences:
        """Current preferences, loaded from disk on first access."""
        if self._preferences is None:
            self._preferences = self._load()
        return self._preferences

    def _load(self) -> Preferences:
        if not os.path.exists(self.path):
            return Preferences()
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable preferences at %s: %s", self.path, exc)
            return Preferences()
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed preferences at %s", self.path)
            return Preferences()
        return Preferences.from_dict(data)

    def save(self) -> None:
        if self._preferences is None:
            return
        with open(self.path, "w") as f:
            json.dump(self._preferences.to_dict(), f, indent=2)

    def update(self, **changes: Any) -> Preferences:
        """Apply changes, persist them and return the new preferences."""
        merged = {**self.preferences.to_dict(), **changes}
        self._preferences = Preferences.from_dict(merged)
        self.save()
        return self._preferences

    def reset_to_defaults(self) -> None:
        self._preferences = Preferences()
        self.save()


_preferences_manager: Optional[PreferencesManager] = None


def get_preferences_manager() -> PreferencesManager:
    """Get the singleton preferences manager."""
    global _preferences_manager
    if _preferences_manager is None:
        _preferences_manager = PreferencesManager()
    return _preferences_manager
