"""Tests for settings."""

from pathlib import Path

import pytest

from markswitch.config import Settings, get_settings, load_settings


class TestSettings:
    """Tests for Settings and its environment overrides."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
        monkeypatch.chdir(tmp_path)
        settings = Settings()

        assert settings.caption_marker == "^^^"
        assert settings.caption_style == "caption"
        assert settings.hidden_marker_style == "hidden-marker"
        assert settings.relaxed_bold is True
        assert settings.native_task_lists is True
        assert settings.log_level == "WARNING"

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MARKSWITCH_CAPTION_MARKER", "%%%")
        monkeypatch.setenv("MARKSWITCH_RELAXED_BOLD", "false")
        settings = Settings()

        assert settings.caption_marker == "%%%"
        assert settings.relaxed_bold is False

    def test_empty_marker_rejected(self):
        with pytest.raises(ValueError):
            Settings(caption_marker="")

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()

    def test_load_from_env_file(self, tmp_path: Path):
        env_file = tmp_path / "custom.env"
        env_file.write_text("MARKSWITCH_CAPTION_STYLE=figure\n", encoding="utf-8")

        settings = load_settings(env_file)

        assert settings.caption_style == "figure"
        assert get_settings() is settings
