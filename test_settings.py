"""Tests for JSON configuration loading."""

import json
from datetime import date

import pytest

from settings import config_from_settings, load_config, load_settings, settings_path


def _write(tmp_path, payload) -> str:
    path = tmp_path / "settings.json"
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload),
                    encoding="utf-8")
    return str(path)


def test_missing_file_returns_defaults(tmp_path):
    settings = load_settings(str(tmp_path / "absent.json"))
    assert settings == {
        "events": [],
        "initial_date": None,
        "min_year": None,
        "max_year": None,
        "week_starts_on": 0,
    }


def test_malformed_json_returns_defaults(tmp_path, caplog):
    settings = load_settings(_write(tmp_path, "{not json"))
    assert settings["events"] == []
    assert "Ignoring unreadable settings file" in caplog.text


def test_non_object_returns_defaults(tmp_path):
    assert load_settings(_write(tmp_path, [1, 2, 3]))["week_starts_on"] == 0


def test_valid_settings(tmp_path):
    path = _write(tmp_path, {
        "events": [{"id": 1, "name": "A", "date": "2024-01-15", "room": "4B"}],
        "initial_date": "2024-01-15",
        "min_year": 2020,
        "max_year": 2030,
        "week_starts_on": 1,
    })
    config = load_config(path)
    assert config.initial_date == date(2024, 1, 15)
    assert (config.min_year, config.max_year, config.week_starts_on) == (2020, 2030, 1)
    assert config.events[0].name == "A"
    assert config.events[0].extra["room"] == "4B"


def test_wrongly_typed_keys_are_ignored(tmp_path):
    settings = load_settings(_write(tmp_path, {
        "events": "nope",
        "initial_date": 20240115,
        "min_year": "2020",
        "max_year": True,
        "week_starts_on": 3,
    }))
    assert settings["events"] == []
    assert settings["initial_date"] is None
    assert settings["min_year"] is None
    assert settings["max_year"] is None
    assert settings["week_starts_on"] == 0


def test_malformed_events_are_dropped(tmp_path, caplog):
    settings = load_settings(_write(tmp_path, {"events": [
        {"id": 1, "name": "ok", "date": "2024-01-15"},
        {"id": 2, "name": "no date"},
        "junk",
    ]}))
    assert [e["id"] for e in settings["events"]] == [1]
    assert "Dropped 2 malformed event(s)" in caplog.text


def test_invalid_initial_date_falls_back(caplog):
    config = config_from_settings({"initial_date": "yesterday-ish"})
    assert config.initial_date is None
    assert "invalid initial_date" in caplog.text


def test_inverted_year_bounds_are_rejected():
    with pytest.raises(ValueError):
        config_from_settings({"min_year": 2030, "max_year": 2020})


def test_settings_path_env_override(monkeypatch, tmp_path):
    target = str(tmp_path / "custom.json")
    monkeypatch.setenv("KALENDLY_SETTINGS", target)
    assert settings_path() == target
    monkeypatch.delenv("KALENDLY_SETTINGS")
    assert settings_path().endswith(".kalendly-settings.json")


def test_non_utf8_file_returns_defaults(tmp_path, caplog):
    path = tmp_path / "settings.json"
    path.write_bytes(b'{"week_starts_on": 1, "x": "\xff\xfe"}')
    settings = load_settings(str(path))
    assert settings["week_starts_on"] == 0
    assert "Ignoring unreadable settings file" in caplog.text
