"""Shared fixtures for podcast producer tests."""

import numpy as np
import pytest

from podcast_producer.assembly import ENCODING_CONTAINER, ENCODING_PCM
from podcast_producer.errors import VendorError, REASON_EMPTY_RESPONSE
from podcast_producer.models import SynthesisResult, Utterance
from podcast_producer.tts import TTSBackend
from podcast_producer.voices import DEFAULT_ROLES, VOICE_POOLS


def make_tone(duration_ms=100, freq=440.0, sample_rate=24000) -> bytes:
    """16-bit mono PCM sine tone."""
    n = int(sample_rate * duration_ms / 1000)
    t = np.arange(n) / sample_rate
    samples = (np.sin(2 * np.pi * freq * t) * 8000).astype("<i2")
    return samples.tobytes()


class FakeSingleSpeakerBackend(TTSBackend):
    """Per-utterance backend that records calls and can fail on demand.

    ``failures`` is a list of exceptions (or None for an empty payload)
    consumed one per call before calls start succeeding.
    """

    name = "fake"
    output_formats = ("mp3", "wav")
    voices = VOICE_POOLS["openai"]
    default_roles = DEFAULT_ROLES["openai"]

    def __init__(self, failures=None, max_speakers=4):
        self.failures = list(failures or [])
        self.max_speakers = max_speakers
        self.calls = []

    async def synthesize_utterance(self, text, voice_id, style, output_format):
        self.calls.append((text, voice_id, style, output_format))
        if self.failures:
            failure = self.failures.pop(0)
            if failure is None:
                raise VendorError(REASON_EMPTY_RESPONSE, "no audio", self.name)
            raise failure
        if output_format == "wav":
            return SynthesisResult(audio=make_tone(50), encoding=ENCODING_PCM)
        return SynthesisResult(audio=f"<{voice_id}:{text}>".encode(), encoding=ENCODING_CONTAINER)


class FakeMultiSpeakerBackend(TTSBackend):
    """Batch backend with a two-speaker limit, like Gemini."""

    name = "fake-multi"
    multi_speaker = True
    max_speakers = 2
    max_batch_seconds = 90
    output_formats = ("wav",)
    voices = VOICE_POOLS["gemini"]
    default_roles = DEFAULT_ROLES["gemini"]

    def __init__(self, failures=None):
        self.failures = list(failures or [])
        self.calls = []

    async def synthesize_batch(self, utterances, voice_map):
        self.calls.append((list(utterances), [c.speaker for c in voice_map.ordered()]))
        if self.failures:
            failure = self.failures.pop(0)
            if failure is None:
                raise VendorError(REASON_EMPTY_RESPONSE, "no audio", self.name)
            raise failure
        return SynthesisResult(audio=make_tone(100), encoding=ENCODING_PCM)


@pytest.fixture
def pcm_tone():
    return make_tone()


@pytest.fixture
def single_backend():
    return FakeSingleSpeakerBackend()


@pytest.fixture
def multi_backend():
    return FakeMultiSpeakerBackend()


@pytest.fixture
def sample_script():
    return (
        "Host: Welcome to the show.\n"
        "Guest: Thanks for having me.\n"
        "It is great to be here.\n"
        "Host: Let's dive in."
    )


@pytest.fixture
def sample_utterances():
    return [
        Utterance(speaker="Host", text="Welcome to the show."),
        Utterance(speaker="Guest", text="Thanks for having me. It is great to be here."),
        Utterance(speaker="Host", text="Let's dive in."),
    ]


async def no_sleep(delay):
    """Drop-in for asyncio.sleep that returns immediately."""
    return None
