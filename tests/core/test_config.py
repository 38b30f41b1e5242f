"""Tests for Yalt configuration loading."""

import logging

import pytest
from pydantic import ValidationError

from src.yalt.core.config import (
    CONFIG_ENV_VAR,
    YaltSettings,
    find_config_file,
    get_settings,
    reload_settings,
    use_settings,
)
from src.yalt.core.locales import get_locale_registry


class TestYaltSettings:
    """Test the settings model."""

    def test_defaults(self):
        settings = YaltSettings()

        assert settings.locales == {}
        assert settings.locale_separator == "-"
        assert settings.locale_key == "locale"
        assert settings.locale == "en"
        assert settings.fallback_locale is None
        assert settings.use_fallback is False
        assert settings.loads_translations is False
        assert settings.translation_suffix == "translations"
        assert settings.database.url.startswith("sqlite+aiosqlite://")

    def test_locale_list_is_normalized(self):
        settings = YaltSettings(locales=["en", "fr"])
        assert settings.locales == {"en": [], "fr": []}

    def test_null_variants_become_empty(self):
        settings = YaltSettings(locales={"en": ["US"], "ru": None})
        assert settings.locales == {"en": ["US"], "ru": []}

    def test_mixed_list_entries(self):
        settings = YaltSettings(locales=["ru", {"en": ["US", "GB"]}])
        assert settings.locales == {"ru": [], "en": ["US", "GB"]}

    def test_empty_separator_rejected(self):
        with pytest.raises(ValidationError):
            YaltSettings(locale_separator="")


class TestSettingsLoading:
    """Test settings lookup and caching."""

    @pytest.fixture
    def config_file(self, tmp_path, monkeypatch):
        path = tmp_path / "yalt.yaml"
        path.write_text(
            "locales:\n"
            "  de: [AT, CH]\n"
            "  it:\n"
            "locale: de\n"
            "fallback_locale: de\n"
            "use_fallback: true\n",
            encoding="utf-8",
        )
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        use_settings(None)
        return path

    def test_find_config_file_uses_env(self, config_file):
        assert find_config_file() == config_file

    def test_get_settings_reads_yaml(self, config_file):
        settings = get_settings()

        assert settings.locales == {"de": ["AT", "CH"], "it": []}
        assert settings.locale == "de"
        assert settings.use_fallback is True

    def test_get_settings_is_cached(self, config_file):
        assert get_settings() is get_settings()

    def test_reload_rebuilds_registry(self, config_file):
        assert get_locale_registry().is_valid_locale("de-AT")

        config_file.write_text("locales: [es]\n", encoding="utf-8")
        reload_settings()

        assert get_locale_registry().is_valid_locale("es")
        assert not get_locale_registry().is_valid_locale("de-AT")

    def test_invalid_file_falls_back_to_defaults(self, tmp_path, monkeypatch, caplog):
        path = tmp_path / "broken.yaml"
        path.write_text("locale_separator: ''\n", encoding="utf-8")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        use_settings(None)

        with caplog.at_level(logging.WARNING):
            settings = get_settings()

        assert settings == YaltSettings()
        assert "Failed to load config" in caplog.text

    def test_override_wins_over_file(self, config_file):
        override = YaltSettings(locales=["pt"])
        use_settings(override)

        assert get_settings() is override
        assert get_locale_registry().get_locales() == frozenset({"pt"})
