"""Tests for credentials and voice settings loading."""

import json
import logging

import pytest

from podcast_producer.config import (
    find_voice_settings,
    load_credentials,
    load_voice_settings,
    settings_from_dict,
)
from podcast_producer.errors import ConfigurationError
from podcast_producer.models import RoleConfig, VoiceSettings


def test_load_credentials_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("GEMINI_API_KEY", "placeholder")
    monkeypatch.delenv("GEMINI_API_KEY")
    monkeypatch.setenv("GOOGLE_API_KEY", "google-env")
    creds = load_credentials(str(tmp_path / "missing.env"))
    assert creds == {"openai": "sk-env", "gemini": "google-env"}


def test_load_credentials_from_env_file(monkeypatch, tmp_path):
    # setenv first so monkeypatch restores the original state afterwards
    monkeypatch.setenv("OPENAI_API_KEY", "placeholder")
    monkeypatch.delenv("OPENAI_API_KEY")
    monkeypatch.setenv("GEMINI_API_KEY", "gemini-env")
    env_file = tmp_path / ".env"
    env_file.write_text("OPENAI_API_KEY=sk-from-file\nGEMINI_API_KEY=ignored\n")
    creds = load_credentials(str(env_file))
    assert creds["openai"] == "sk-from-file"
    # Existing environment wins over the file
    assert creds["gemini"] == "gemini-env"


def test_settings_from_dict():
    settings = settings_from_dict({
        "host": {"name": "Jane", "voice": "alloy", "style": "Warm."},
        "guest": {"voice": "echo"},
        "extras": [{"name": "Bob", "voice": "fable"}],
        "narrator_voice": "sage",
        "num_speakers": 3,
    })
    assert settings.host == RoleConfig(name="Jane", voice="alloy", style="Warm.")
    assert settings.guest == RoleConfig(name="", voice="echo", style="")
    assert settings.extras == [RoleConfig(name="Bob", voice="fable", style="")]
    assert settings.narrator_voice == "sage"
    assert settings.num_speakers == 3


def test_settings_from_dict_empty():
    assert settings_from_dict({}) == VoiceSettings()


@pytest.mark.parametrize("data", [
    [],
    {"extras": "Bob"},
    {"num_speakers": 0},
    {"num_speakers": "two"},
    {"host": "alloy"},
])
def test_settings_from_dict_invalid(data):
    with pytest.raises(ConfigurationError):
        settings_from_dict(data)


def test_load_voice_settings(tmp_path):
    path = tmp_path / "voices.json"
    path.write_text(json.dumps({"host": {"voice": "ash"}}))
    settings = load_voice_settings(str(path))
    assert settings.host.voice == "ash"


def test_load_voice_settings_missing(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_voice_settings(str(tmp_path / "nope.json"))


def test_load_voice_settings_malformed(tmp_path):
    path = tmp_path / "voices.json"
    path.write_text("{not json")
    with pytest.raises(ConfigurationError, match="Malformed"):
        load_voice_settings(str(path))


def test_find_voice_settings_sidecar(tmp_path):
    script = tmp_path / "episode.txt"
    script.write_text("Host: Hi.")
    (tmp_path / "episode.voices.json").write_text(json.dumps({"guest": {"voice": "echo"}}))
    settings = find_voice_settings(str(script))
    assert settings.guest.voice == "echo"


def test_find_voice_settings_no_sidecar(tmp_path):
    assert find_voice_settings(str(tmp_path / "episode.txt")) == VoiceSettings()


def test_find_voice_settings_malformed_sidecar_warns(tmp_path, caplog):
    (tmp_path / "episode.voices.json").write_text("[1, 2")
    with caplog.at_level(logging.WARNING, logger="podcast_producer.config"):
        settings = find_voice_settings(str(tmp_path / "episode.txt"))
    assert settings == VoiceSettings()
    assert "Ignoring voice settings sidecar" in caplog.text
