"""Tests for settings and deployment profiles."""

from component_extractor.config import PROFILES, Settings


class TestSettings:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("EXTRACTOR_DEPLOYMENT", "serverless")
        monkeypatch.setenv("EXTRACTOR_BATCH_SIZE", "3")
        settings = Settings()
        assert settings.deployment == "serverless"
        assert settings.batch_size == 3
        assert settings.profile is PROFILES["serverless"]

    def test_profiles(self):
        assert PROFILES["development"].skip_screenshots is False
        assert PROFILES["production"].skip_screenshots is True
        assert PROFILES["serverless"].max_components < PROFILES["production"].max_components
        assert PROFILES["serverless"].timeout_ms < PROFILES["production"].timeout_ms
