"""Data models for podcast production."""

from dataclasses import dataclass, field

from podcast_producer.constants import (
    PCM_SAMPLE_RATE,
    PCM_CHANNELS,
    PCM_BITS_PER_SAMPLE,
)


@dataclass(frozen=True)
class Utterance:
    speaker: str       # speaker label as written in the script, or "Narrator"
    text: str


@dataclass(frozen=True)
class RoleConfig:
    name: str          # speaker name this role answers to ("" = role default)
    voice: str
    style: str = ""    # free-form delivery instructions


@dataclass
class VoiceSettings:
    host: RoleConfig | None = None
    guest: RoleConfig | None = None
    extras: list[RoleConfig] = field(default_factory=list)
    narrator_voice: str | None = None
    num_speakers: int | None = None    # optional limit below the backend maximum


@dataclass(frozen=True)
class SpeakerVoiceConfig:
    speaker: str
    voice_id: str
    style_instructions: str
    order: int         # position in multi-speaker requests, fixed for the job
    role: str = "guest"


@dataclass(frozen=True)
class SynthesisResult:
    audio: bytes
    encoding: str      # "container" (ready to play) or "pcm" (needs a WAV header)
    index: int = 0     # batch position, set by the pipeline
    sample_rate: int = PCM_SAMPLE_RATE
    channels: int = PCM_CHANNELS
    bits_per_sample: int = PCM_BITS_PER_SAMPLE


@dataclass
class PodcastArtifact:
    task_id: str
    script_text: str
    audio_bytes: bytes
    file_path: str
    audio_path: str    # relative URL served to clients
    engine: str
    format: str

    def to_response(self) -> dict:
        return {
            "message": "Podcast created successfully",
            "task_id": self.task_id,
            "script": self.script_text,
            "audioPath": self.audio_path,
            "engine": self.engine,
            "format": self.format,
        }
