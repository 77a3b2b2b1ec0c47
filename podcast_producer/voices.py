"""Speaker-to-voice resolution.

Builds the frozen speaker → (voice, style, order) mapping used by every batch
of a job. Multi-speaker backends bind voices by declaration order inside a
request, so ``order`` is assigned once here and never recomputed.
"""

import hashlib
import logging
from collections.abc import Mapping
from types import MappingProxyType

from podcast_producer.errors import ConfigurationError, SpeakerLimitError
from podcast_producer.models import RoleConfig, SpeakerVoiceConfig, Utterance, VoiceSettings
from podcast_producer.parser import distinct_speakers

logger = logging.getLogger(__name__)

HOST_STYLE = "Speak in a clear, professional tone."
GUEST_STYLE = "Speak in a natural, conversational tone."
NARRATOR_STYLE = "Speak in a calm, measured narration tone."

# Hardcoded voice pools per engine (avoids network calls at startup)
VOICE_POOLS = {
    "openai": [
        "alloy", "ash", "ballad", "coral", "echo", "fable",
        "nova", "onyx", "sage", "shimmer", "verse",
    ],
    "gemini": [
        "Achernar", "Achird", "Algenib", "Algieba", "Alnilam", "Aoede",
        "Autonoe", "Callirrhoe", "Charon", "Despina", "Enceladus", "Erinome",
        "Fenrir", "Gacrux", "Iapetus", "Kore", "Laomedeia", "Leda",
        "Orus", "Puck", "Pulcherrima", "Rasalgethi", "Sadachbia", "Sadaltager",
        "Schedar", "Sulafat", "Umbriel", "Vindemiatrix", "Zephyr", "Zubenelgenubi",
    ],
    "edge": [
        "en-US-AriaNeural",
        "en-US-DavisNeural",
        "en-US-TonyNeural",
        "en-US-JennyNeural",
        "en-US-SaraNeural",
        "en-US-RogerNeural",
        "en-GB-SoniaNeural",
        "en-GB-RyanNeural",
        "en-GB-ThomasNeural",
        "en-AU-NatashaNeural",
        "en-AU-WilliamNeural",
        "en-CA-ClaraNeural",
        "en-CA-LiamNeural",
        "en-IE-EmilyNeural",
    ],
}

DEFAULT_ROLES = {
    "openai": {
        "host": RoleConfig(name="Host", voice="nova", style=HOST_STYLE),
        "guest": RoleConfig(name="Guest", voice="coral", style=GUEST_STYLE),
        "narrator": RoleConfig(name="Narrator", voice="onyx", style=NARRATOR_STYLE),
    },
    "gemini": {
        "host": RoleConfig(name="Host", voice="Kore", style=HOST_STYLE),
        "guest": RoleConfig(name="Guest", voice="Puck", style=GUEST_STYLE),
        "narrator": RoleConfig(name="Narrator", voice="Charon", style=NARRATOR_STYLE),
    },
    "edge": {
        "host": RoleConfig(name="Host", voice="en-US-JennyNeural", style=HOST_STYLE),
        "guest": RoleConfig(name="Guest", voice="en-US-DavisNeural", style=GUEST_STYLE),
        "narrator": RoleConfig(name="Narrator", voice="en-US-RogerNeural", style=NARRATOR_STYLE),
    },
}


class SpeakerVoiceMap(Mapping):
    """Read-only speaker → SpeakerVoiceConfig mapping for one job."""

    def __init__(self, configs: list[SpeakerVoiceConfig]):
        ordered = sorted(configs, key=lambda c: c.order)
        self._configs = MappingProxyType({c.speaker: c for c in ordered})

    def __getitem__(self, speaker: str) -> SpeakerVoiceConfig:
        return self._configs[speaker]

    def __iter__(self):
        return iter(self._configs)

    def __len__(self) -> int:
        return len(self._configs)

    def ordered(self) -> list[SpeakerVoiceConfig]:
        return list(self._configs.values())

    def for_batch(self, utterances: list[Utterance]) -> list[SpeakerVoiceConfig]:
        """Configs of the speakers in a batch, in mapping order."""
        present = {u.speaker for u in utterances}
        unknown = present - set(self._configs)
        if unknown:
            raise ConfigurationError(
                f"Batch references speakers missing from the voice map: {', '.join(sorted(unknown))}"
            )
        return [c for c in self._configs.values() if c.speaker in present]


def hash_voice(speaker: str, pool: list[str]) -> str:
    """Deterministic voice assignment via sha256 hash."""
    h = hashlib.sha256(speaker.encode()).hexdigest()
    idx = int(h, 16) % len(pool)
    return pool[idx]


def _merge_role(configured: RoleConfig | None, default: RoleConfig) -> RoleConfig:
    if configured is None:
        return default
    return RoleConfig(
        name=configured.name or default.name,
        voice=configured.voice or default.voice,
        style=configured.style or default.style,
    )


def classify_speaker(speaker: str, settings: VoiceSettings) -> str:
    """Classify a speaker as "host", "guest", "narrator" or "extra:<i>".

    Extra roles match by exact name only. A name containing "host" or equal
    to the configured host name is host-like; "narrator" gets the narrator
    voice; everything else falls back to guest-like.
    """
    name = speaker.strip().lower()

    for i, extra in enumerate(settings.extras):
        if extra.name and extra.name.strip().lower() == name:
            return f"extra:{i}"

    if "host" in name or (settings.host and settings.host.name and settings.host.name.strip().lower() == name):
        return "host"
    if settings.guest and settings.guest.name and settings.guest.name.strip().lower() == name:
        return "guest"
    if name == "narrator":
        return "narrator"
    return "guest"


def speaker_limit(settings: VoiceSettings, max_speakers: int) -> int:
    if settings.num_speakers is not None and settings.num_speakers > 0:
        return min(settings.num_speakers, max_speakers)
    return max_speakers


def resolve_speaker_voices(
    utterances: list[Utterance],
    settings: VoiceSettings | None,
    backend,
) -> SpeakerVoiceMap:
    """Build the frozen speaker-voice mapping for a job.

    ``backend`` supplies ``max_speakers``, ``voices`` (hash fallback pool)
    and ``default_roles``. Raises SpeakerLimitError before any synthesis
    when the script has more distinct speakers than the backend allows.
    """
    if settings is None:
        settings = VoiceSettings()

    speakers = distinct_speakers(utterances)
    limit = speaker_limit(settings, backend.max_speakers)
    if len(speakers) > limit:
        raise SpeakerLimitError(len(speakers), limit, speakers)

    defaults = backend.default_roles
    roles = {
        "host": _merge_role(settings.host, defaults["host"]),
        "guest": _merge_role(settings.guest, defaults["guest"]),
        "narrator": RoleConfig(
            name=defaults["narrator"].name,
            voice=settings.narrator_voice or defaults["narrator"].voice,
            style=defaults["narrator"].style,
        ),
    }
    for i, extra in enumerate(settings.extras):
        roles[f"extra:{i}"] = extra

    classified = {s: classify_speaker(s, settings) for s in speakers}

    # Extras claimed by name are reserved before anyone falls through to them
    taken = {role for role in classified.values() if role.startswith("extra:")}
    spare_extras = [key for key in roles if key.startswith("extra:") and key not in taken]

    assigned: dict[str, tuple[str, RoleConfig]] = {}
    for speaker in speakers:
        role = classified[speaker]
        if role.startswith("extra:"):
            assigned[speaker] = (role, roles[role])
            continue
        if role not in taken:
            taken.add(role)
            assigned[speaker] = (role, roles[role])
        elif spare_extras:
            key = spare_extras.pop(0)
            taken.add(key)
            assigned[speaker] = (key, roles[key])
        else:
            assigned[speaker] = ("pool", None)

    used_voices = {cfg.voice for _, cfg in assigned.values() if cfg is not None}
    for speaker in speakers:
        role, cfg = assigned[speaker]
        if cfg is not None:
            continue
        pool = [v for v in backend.voices if v not in used_voices] or list(backend.voices)
        voice = hash_voice(speaker.lower(), pool)
        used_voices.add(voice)
        style = roles["guest"].style
        assigned[speaker] = (role, RoleConfig(name=speaker, voice=voice, style=style))
        logger.info("Speaker %r has no configured role, using pool voice %s", speaker, voice)

    host_like = {s for s in speakers if classified[s] == "host"}
    ordering = sorted(speakers, key=lambda s: (s not in host_like, s.lower(), s))

    configs = []
    for order, speaker in enumerate(ordering):
        role, cfg = assigned[speaker]
        configs.append(SpeakerVoiceConfig(
            speaker=speaker,
            voice_id=cfg.voice,
            style_instructions=cfg.style,
            order=order,
            role=role.split(":")[0],
        ))

    return SpeakerVoiceMap(configs)


def list_voices(engine: str, filter_str: str | None = None) -> list[str]:
    if engine not in VOICE_POOLS:
        raise ConfigurationError(f"Unknown engine: {engine}")
    voices = VOICE_POOLS[engine]
    if filter_str:
        voices = [v for v in voices if filter_str.lower() in v.lower()]
    return voices
