"""JSON-based configuration loading for the calendar engine."""

import json
import logging
import os
from datetime import date
from typing import Any

from calendar_logic import normalize_date
from calendar_models import CalendarConfig, CalendarEvent

logger = logging.getLogger(__name__)

_SETTINGS_ENV = "KALENDLY_SETTINGS"
_SETTINGS_PATH = os.path.join(os.path.expanduser("~"), ".kalendly-settings.json")

_DEFAULTS = {
    "events": [],
    "initial_date": None,
    "min_year": None,
    "max_year": None,
    "week_starts_on": 0,
}


def settings_path() -> str:
    """Return the settings file location, honouring $KALENDLY_SETTINGS."""
    return os.environ.get(_SETTINGS_ENV) or _SETTINGS_PATH


def load_settings(path: str | None = None) -> dict:
    """Load settings from disk, returning defaults for missing or invalid keys."""
    path = path or settings_path()
    settings = dict(_DEFAULTS, events=[])
    try:
        with open(path, "r", encoding="utf-8") as f:
            stored = json.load(f)
    except FileNotFoundError:
        logger.debug("No settings file at %s, using defaults", path)
        return settings
    except (ValueError, OSError) as exc:
        # ValueError covers both JSONDecodeError and UnicodeDecodeError
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return settings

    if not isinstance(stored, dict):
        logger.warning("Ignoring settings file %s: top level is not an object", path)
        return settings

    if "events" in stored and isinstance(stored["events"], list):
        settings["events"] = [e for e in stored["events"] if _is_event(e)]
        dropped = len(stored["events"]) - len(settings["events"])
        if dropped:
            logger.warning("Dropped %d malformed event(s) from %s", dropped, path)
    if isinstance(stored.get("initial_date"), str):
        settings["initial_date"] = stored["initial_date"]
    for key in ("min_year", "max_year"):
        if key in stored and _is_int(stored[key]):
            settings[key] = stored[key]
    if stored.get("week_starts_on") in (0, 1) and _is_int(stored["week_starts_on"]):
        settings["week_starts_on"] = stored["week_starts_on"]
    return settings


def config_from_settings(settings: dict) -> CalendarConfig:
    """Build an engine configuration from a settings dict."""
    initial: date | None = None
    if settings.get("initial_date"):
        try:
            initial = normalize_date(settings["initial_date"])
        except ValueError:
            logger.warning("Ignoring invalid initial_date %r", settings["initial_date"])
    return CalendarConfig(
        events=tuple(CalendarEvent.from_dict(e) for e in settings.get("events", [])),
        initial_date=initial,
        min_year=settings.get("min_year"),
        max_year=settings.get("max_year"),
        week_starts_on=settings.get("week_starts_on", 0),
    )


def load_config(path: str | None = None) -> CalendarConfig:
    """Shortcut for ``config_from_settings(load_settings(path))``."""
    return config_from_settings(load_settings(path))


def _is_int(value: Any) -> bool:
    # bool is an int subclass; JSON true/false are not years
    return isinstance(value, int) and not isinstance(value, bool)


def _is_event(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and isinstance(value.get("id"), (str, int))
        and isinstance(value.get("name"), str)
        and isinstance(value.get("date"), str)
    )
