from __future__ import annotations

from skyverse_terrain.config import load_settings


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("SKYVERSE_API_KEY", "env-key")
    monkeypatch.setenv("SKYVERSE_ENDPOINT", "https://env.example.com/tiles?")
    s = load_settings()
    assert s.api_key == "env-key"
    assert s.endpoint == "https://env.example.com/tiles?"
    assert s.api_key_header == "SKYVERSE_KEY"


def test_explicit_overrides_win_and_none_falls_through(monkeypatch):
    monkeypatch.setenv("SKYVERSE_API_KEY", "env-key")
    monkeypatch.setenv("SKYVERSE_ENDPOINT", "https://env.example.com/tiles?")
    s = load_settings(api_key="cli-key", endpoint=None)
    assert s.api_key == "cli-key"
    assert s.endpoint == "https://env.example.com/tiles?"
