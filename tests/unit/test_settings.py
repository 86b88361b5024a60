"""Tests for environment driven settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from coverscout.config import Settings
from coverscout.config.settings import DatabaseSettings, ObservabilitySettings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(Path(__file__).parent)
        settings = Settings()

        assert settings.network.enabled is True
        assert settings.network.cover_supplier == "coverartarchive"
        assert settings.cache.ticket_timeout == 10.0
        assert settings.cache.cleanup_interval == 120.0
        assert (settings.thumbnail.max_width, settings.thumbnail.max_height) == (640, 480)

    def test_nested_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("COVERSCOUT_NETWORK__ENABLED", "false")
        monkeypatch.setenv("COVERSCOUT_CACHE__TICKET_TIMEOUT", "2.5")
        monkeypatch.setenv("COVERSCOUT_MUSICBRAINZ__CONTACT", "ops@example.org")

        settings = Settings()

        assert settings.network.enabled is False
        assert settings.cache.ticket_timeout == 2.5
        assert settings.user_agent == "CoverScout/0.1.0 ( ops@example.org )"

    def test_unknown_supplier_is_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("COVERSCOUT_NETWORK__COVER_SUPPLIER", "lastfm")
        with pytest.raises(ValidationError):
            Settings()


class TestDatabaseSettings:
    """Tests for DatabaseSettings."""

    def test_sync_driver_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DatabaseSettings(url="sqlite:///covers.db")

    def test_sqlite_path(self) -> None:
        settings = DatabaseSettings(url="sqlite+aiosqlite:///./data/covers.db")
        assert settings.sqlite_path == Path("./data/covers.db")

    def test_memory_database_has_no_path(self) -> None:
        assert DatabaseSettings(url="sqlite+aiosqlite:///:memory:").sqlite_path is None


class TestObservabilitySettings:
    """Tests for ObservabilitySettings."""

    def test_log_level_is_normalized(self) -> None:
        assert ObservabilitySettings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError):
            ObservabilitySettings(log_level="LOUD")
