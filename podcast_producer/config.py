"""Credentials and voice-settings loading."""

import json
import logging
import os

from dotenv import load_dotenv

from podcast_producer.errors import ConfigurationError
from podcast_producer.models import RoleConfig, VoiceSettings

logger = logging.getLogger(__name__)


def load_credentials(env_file: str | None = None) -> dict:
    """Read vendor API keys from the environment (and a .env file if present)."""
    load_dotenv(env_file)
    return {
        "openai": os.environ.get("OPENAI_API_KEY"),
        "gemini": os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY"),
    }


def _role_from_dict(data, key: str) -> RoleConfig | None:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ConfigurationError(f"Voice settings '{key}' must be an object")
    return RoleConfig(
        name=str(data.get("name", "")),
        voice=str(data.get("voice", "")),
        style=str(data.get("style", "")),
    )


def settings_from_dict(data: dict) -> VoiceSettings:
    """Build VoiceSettings from the JSON structure.

    {"host": {"name", "voice", "style"}, "guest": {...}, "extras": [...],
     "narrator_voice": "...", "num_speakers": 2}
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Voice settings must be a JSON object")

    extras = data.get("extras") or []
    if not isinstance(extras, list):
        raise ConfigurationError("Voice settings 'extras' must be a list")

    num_speakers = data.get("num_speakers")
    if num_speakers is not None and (not isinstance(num_speakers, int) or num_speakers < 1):
        raise ConfigurationError(f"Invalid num_speakers: {num_speakers!r}")

    return VoiceSettings(
        host=_role_from_dict(data.get("host"), "host"),
        guest=_role_from_dict(data.get("guest"), "guest"),
        extras=[_role_from_dict(e, f"extras[{i}]") for i, e in enumerate(extras)],
        narrator_voice=data.get("narrator_voice"),
        num_speakers=num_speakers,
    )


def load_voice_settings(path: str) -> VoiceSettings:
    """Load an explicitly requested voice settings file."""
    if not os.path.exists(path):
        raise ConfigurationError(f"Voice settings file not found: {path}")
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Malformed voice settings file {path}: {e}") from e
    return settings_from_dict(data)


def find_voice_settings(script_path: str) -> VoiceSettings:
    """Load the optional <script>.voices.json sidecar next to a script file.

    Missing or malformed sidecars fall back to backend defaults.
    """
    base = os.path.splitext(script_path)[0]
    sidecar = base + ".voices.json"
    if not os.path.exists(sidecar):
        return VoiceSettings()
    try:
        return load_voice_settings(sidecar)
    except ConfigurationError as e:
        logger.warning("Ignoring voice settings sidecar %s: %s", sidecar, e)
        return VoiceSettings()
