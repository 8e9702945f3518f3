"""Tests for Config class — settings persistence and retrieval."""

import json

import pytest

from workshop_jobs.config import Config, _as_bool, _load_settings


@pytest.fixture
def settings_file(tmp_path):
    """Temporary settings file for isolation."""
    return tmp_path / "settings.json"


@pytest.fixture(autouse=True)
def isolate_config(settings_file, monkeypatch):
    """Redirect settings I/O to temp file so tests don't touch real config."""
    import workshop_jobs.config as config_mod
    monkeypatch.setattr(config_mod, "_SETTINGS_FILE", settings_file)

    saved = {
        "APP_TITLE": Config.APP_TITLE,
        "COMPANY_NAME": Config.COMPANY_NAME,
        "PUBLIC_BASE_URL": Config.PUBLIC_BASE_URL,
        "REQUIRE_ODOMETER_TO_CLOSE": Config.REQUIRE_ODOMETER_TO_CLOSE,
    }
    yield
    for attr, val in saved.items():
        setattr(Config, attr, val)


class TestConfigDefaults:
    """Verify default configuration values."""

    def test_photo_bucket(self):
        assert Config.PHOTO_BUCKET

    def test_odometer_rule_is_bool(self):
        assert isinstance(Config.REQUIRE_ODOMETER_TO_CLOSE, bool)

    def test_tick_interval_positive(self):
        assert Config.TICK_INTERVAL_MS > 0

    @pytest.mark.parametrize("raw, expected", [
        ("true", True), ("1", True), ("Yes", True), (True, True),
        ("false", False), ("0", False), ("", False), (False, False),
    ])
    def test_as_bool(self, raw, expected):
        assert _as_bool(raw) is expected


class TestConfigUpdates:
    """Runtime updates are applied and persisted."""

    def test_update_branding(self, settings_file):
        Config.update_branding("Auftraege", "Garage Muster")
        assert Config.APP_TITLE == "Auftraege"
        assert Config.COMPANY_NAME == "Garage Muster"

        data = json.loads(settings_file.read_text(encoding="utf-8"))
        assert data["company_name"] == "Garage Muster"

    def test_update_close_rules(self, settings_file):
        Config.update_close_rules(False)
        assert Config.REQUIRE_ODOMETER_TO_CLOSE is False
        assert _load_settings()["require_odometer_to_close"] is False

    def test_update_public_base_url_strips_slash(self):
        Config.update_public_base_url("https://shop.example/")
        assert Config.PUBLIC_BASE_URL == "https://shop.example"

    def test_updates_merge(self, settings_file):
        Config.update_close_rules(True)
        Config.update_public_base_url("https://a.example")
        data = json.loads(settings_file.read_text(encoding="utf-8"))
        assert data["require_odometer_to_close"] is True
        assert data["public_base_url"] == "https://a.example"

    def test_corrupt_file_ignored(self, settings_file):
        settings_file.write_text("{not json", encoding="utf-8")
        assert _load_settings() == {}
