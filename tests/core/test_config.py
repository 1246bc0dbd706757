"""Tests for environment driven settings."""
from facefinder.core.config import Settings


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("MATCH_THRESHOLD", "0.75")
    monkeypatch.setenv("INGESTION_WORKERS", "4")

    settings = Settings(_env_file=None)

    assert settings.MATCH_THRESHOLD == 0.75
    assert settings.INGESTION_WORKERS == 4


def test_unused_variables_are_ignored(monkeypatch):
    monkeypatch.setenv("DEBUG", "true")

    settings = Settings(_env_file=None)

    assert "DEBUG" not in Settings.model_fields
    assert not hasattr(settings, "DEBUG")
