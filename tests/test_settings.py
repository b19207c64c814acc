"""Environment-driven settings."""

import pytest

from cert_settings import get_settings


@pytest.fixture
def fresh_settings():
    get_settings.cache_clear()
    yield get_settings
    get_settings.cache_clear()


class TestLogLevel:
    def test_default(self, fresh_settings, monkeypatch):
        monkeypatch.delenv("CERT_LOG_LEVEL", raising=False)
        assert fresh_settings().log_level == "INFO"

    def test_known_level(self, fresh_settings, monkeypatch):
        monkeypatch.setenv("CERT_LOG_LEVEL", "debug")
        assert fresh_settings().log_level == "DEBUG"

    def test_unknown_level_falls_back(self, fresh_settings, monkeypatch, capsys):
        monkeypatch.setenv("CERT_LOG_LEVEL", "verbose")
        assert fresh_settings().log_level == "INFO"
        assert "[WARN] CERT_LOG_LEVEL='VERBOSE' is not a logging level" in capsys.readouterr().out


class TestNumbers:
    def test_bad_values_fall_back(self, fresh_settings, monkeypatch):
        monkeypatch.setenv("CERT_RENDER_SCALE", "big")
        monkeypatch.setenv("CERT_EXPORT_WORKERS", "0")
        settings = fresh_settings()
        assert settings.render_scale == 1.0
        assert settings.export_workers == 1
