"""
Player Preferences

The player id and preferred difficulty, kept in a small JSON file in the
data directory so they survive restarts. Unknown keys are dropped and
invalid values fall back to the configured defaults.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from config import config
from engine.models import validate_difficulty

logger = logging.getLogger(__name__)

# Settings file location (in the data directory, not committed to git)
SETTINGS_FILE = Path(config.SETTINGS_FILE)

DEFAULTS = {
    "user_id": config.USER_ID,
    "difficulty": config.DEFAULT_DIFFICULTY,
}

# In-memory cache to avoid reading file on every call
_settings_cache: Optional[Dict[str, Any]] = None


def _clean_user_id(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"user_id must be a non-empty string, got {value!r}")
    return value.strip()


def _clean_difficulty(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"difficulty must be a string, got {value!r}")
    return validate_difficulty(value)


_VALIDATORS = {
    "user_id": _clean_user_id,
    "difficulty": _clean_difficulty,
}


def _read_file() -> Dict[str, Any]:
    if not SETTINGS_FILE.exists():
        logger.info("No settings file found, using defaults")
        return {}

    try:
        with open(SETTINGS_FILE, 'r', encoding='utf-8') as f:
            raw = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load settings: {e}")
        return {}

    if not isinstance(raw, dict):
        logger.warning(f"Ignoring malformed settings file {SETTINGS_FILE}")
        return {}
    return raw


def load_settings(force_reload: bool = False) -> Dict[str, Any]:
    """Load preferences, keeping only valid known keys over the defaults."""
    global _settings_cache

    if _settings_cache is not None and not force_reload:
        return _settings_cache.copy()

    preferences = DEFAULTS.copy()
    for key, value in _read_file().items():
        validator = _VALIDATORS.get(key)
        if validator is None:
            logger.debug(f"Ignoring unknown setting '{key}'")
            continue
        try:
            preferences[key] = validator(value)
        except ValueError as e:
            logger.warning(f"Ignoring invalid setting '{key}': {e}")

    _settings_cache = preferences
    return _settings_cache.copy()


def save_settings(preferences: Dict[str, Any]) -> bool:
    """Write preferences to the file and refresh the cache. False on I/O failure."""
    global _settings_cache
    try:
        SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
        with open(SETTINGS_FILE, 'w', encoding='utf-8') as f:
            json.dump(preferences, f, indent=2, sort_keys=True)
    except OSError as e:
        logger.error(f"Failed to save settings: {e}")
        return False

    logger.debug(f"Saved settings to {SETTINGS_FILE}")
    _settings_cache = preferences.copy()
    return True


def get_setting(key: str, default: Any = None) -> Any:
    return load_settings().get(key, default)


def set_setting(key: str, value: Any) -> bool:
    """
    Validate and store one preference.

    Raises:
        KeyError: unknown preference
        ValueError: invalid value (e.g. an unknown difficulty)
    """
    if key not in _VALIDATORS:
        raise KeyError(f"Unknown setting '{key}'")
    preferences = load_settings()
    preferences[key] = _VALIDATORS[key](value)
    return save_settings(preferences)


def player_id() -> str:
    """Id the statistics are recorded under"""
    return load_settings()["user_id"]


def preferred_difficulty() -> str:
    """Difficulty dealt when a game is started without one"""
    return load_settings()["difficulty"]


def clear_cache():
    """Drop the in-memory cache so the next load reads the file again."""
    global _settings_cache
    _settings_cache = None
