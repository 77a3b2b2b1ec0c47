"""TTS backend adapters: OpenAI, Gemini multi-speaker and edge-tts.

Every adapter turns vendor failures into a classified VendorError and treats
an empty audio payload as a failure rather than a zero-length success.
"""

import asyncio
import logging

import edge_tts
import openai
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from podcast_producer.assembly import ENCODING_CONTAINER, ENCODING_PCM
from podcast_producer.constants import (
    BATCH_MAX_SECONDS,
    FALLBACK_PRIMARY_TIMEOUT,
    GEMINI_BATCH_MAX_SECONDS,
    GEMINI_TTS_MODEL,
    OPENAI_TTS_MODEL,
    PCM_BITS_PER_SAMPLE,
    PCM_SAMPLE_RATE,
    TTS_CALL_TIMEOUT,
    TTS_RATE,
)
from podcast_producer.errors import (
    ConfigurationError,
    VendorError,
    classify_vendor_error,
    REASON_EMPTY_RESPONSE,
    REASON_TIMEOUT,
)
from podcast_producer.models import SynthesisResult, Utterance
from podcast_producer.voices import DEFAULT_ROLES, VOICE_POOLS, SpeakerVoiceMap, hash_voice

logger = logging.getLogger(__name__)

ENGINES = ("openai", "gemini", "edge")


class TTSBackend:
    """Common interface of all synthesis backends.

    Single-speaker backends implement synthesize_utterance() and are called
    once per utterance; multi-speaker backends implement synthesize_batch()
    and receive a whole batch plus the job's voice map.
    """

    name = ""
    multi_speaker = False
    max_speakers = 4
    max_batch_seconds = BATCH_MAX_SECONDS
    output_formats: tuple[str, ...] = ("mp3",)
    voices: list[str] = []
    default_roles: dict = {}

    def check_format(self, output_format: str) -> None:
        if output_format not in self.output_formats:
            raise ConfigurationError(
                f"Format '{output_format}' is not supported by {self.name}. "
                f"Choose one of: {', '.join(self.output_formats)}"
            )

    def file_extension(self, output_format: str) -> str:
        return output_format

    async def synthesize_utterance(
        self, text: str, voice_id: str, style: str, output_format: str
    ) -> SynthesisResult:
        raise NotImplementedError(f"{self.name} does not synthesize single utterances")

    async def synthesize_batch(
        self, utterances: list[Utterance], voice_map: SpeakerVoiceMap
    ) -> SynthesisResult:
        raise NotImplementedError(f"{self.name} does not synthesize multi-speaker batches")

    def _empty(self, detail: str) -> VendorError:
        return VendorError(REASON_EMPTY_RESPONSE, detail, self.name)


class OpenAIBackend(TTSBackend):
    """One speech request per utterance; wav is requested as raw PCM."""

    name = "openai"
    output_formats = ("mp3", "wav", "opus", "aac", "flac")
    voices = VOICE_POOLS["openai"]
    default_roles = DEFAULT_ROLES["openai"]

    def __init__(self, client, model: str = OPENAI_TTS_MODEL):
        self.client = client
        self.model = model

    async def synthesize_utterance(self, text, voice_id, style, output_format):
        pcm = output_format == "wav"
        kwargs = {
            "model": self.model,
            "voice": voice_id,
            "input": text,
            "response_format": "pcm" if pcm else output_format,
        }
        # tts-1 / tts-1-hd reject instructions
        if style and not self.model.startswith("tts-1"):
            kwargs["instructions"] = style

        try:
            response = await self.client.audio.speech.create(**kwargs)
        except openai.APITimeoutError as e:
            raise VendorError(REASON_TIMEOUT, str(e), self.name) from e
        except openai.OpenAIError as e:
            raise VendorError(classify_vendor_error(e), str(e), self.name) from e

        audio = response.content
        if not audio:
            raise self._empty(f"No audio returned for: {text[:50]}...")

        return SynthesisResult(
            audio=audio,
            encoding=ENCODING_PCM if pcm else ENCODING_CONTAINER,
            sample_rate=PCM_SAMPLE_RATE,
        )


def parse_audio_mime_type(mime_type: str) -> tuple[int, int]:
    """Parse (sample_rate, bits_per_sample) from e.g. "audio/L16;codec=pcm;rate=24000"."""
    rate = PCM_SAMPLE_RATE
    bits = PCM_BITS_PER_SAMPLE

    for param in (mime_type or "").split(";"):
        param = param.strip()
        if param.lower().startswith("rate="):
            value = param.split("=", 1)[1]
            if value.isdigit():
                rate = int(value)
        elif param.startswith("audio/L"):
            value = param[len("audio/L"):]
            if value.isdigit():
                bits = int(value)

    return rate, bits


class GeminiBackend(TTSBackend):
    """Multi-speaker synthesis: one request per batch, raw PCM back."""

    name = "gemini"
    multi_speaker = True
    max_speakers = 2
    max_batch_seconds = GEMINI_BATCH_MAX_SECONDS
    output_formats = ("wav",)
    voices = VOICE_POOLS["gemini"]
    default_roles = DEFAULT_ROLES["gemini"]

    def __init__(self, client, model: str = GEMINI_TTS_MODEL):
        self.client = client
        self.model = model

    def build_prompt(self, utterances: list[Utterance], voice_map: SpeakerVoiceMap) -> str:
        directions = [
            f"{cfg.speaker}: {cfg.style_instructions}"
            for cfg in voice_map.ordered()
            if cfg.style_instructions
        ]
        lines = "\n".join(f"{u.speaker}: {u.text}" for u in utterances)
        header = "Read this podcast conversation aloud naturally."
        if directions:
            header += " Speaker directions:\n" + "\n".join(directions)
        return f"{header}\n\n{lines}"

    def build_speech_config(self, voice_map: SpeakerVoiceMap) -> types.SpeechConfig:
        configs = voice_map.ordered()
        if len(configs) == 1:
            return types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=configs[0].voice_id)
                )
            )
        # Declaration order must match the map's order in every batch
        return types.SpeechConfig(
            multi_speaker_voice_config=types.MultiSpeakerVoiceConfig(
                speaker_voice_configs=[
                    types.SpeakerVoiceConfig(
                        speaker=cfg.speaker,
                        voice_config=types.VoiceConfig(
                            prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=cfg.voice_id)
                        ),
                    )
                    for cfg in configs
                ]
            )
        )

    async def synthesize_batch(self, utterances, voice_map):
        voice_map.for_batch(utterances)
        config = types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=self.build_speech_config(voice_map),
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=self.build_prompt(utterances, voice_map),
                config=config,
            )
        except genai_errors.APIError as e:
            raise VendorError(classify_vendor_error(e), str(e), self.name) from e

        inline = _first_inline_audio(response)
        if inline is None or not inline.data:
            raise self._empty(f"No audio content in response for {len(utterances)} utterance(s)")

        rate, bits = parse_audio_mime_type(inline.mime_type)
        return SynthesisResult(
            audio=inline.data,
            encoding=ENCODING_PCM,
            sample_rate=rate,
            bits_per_sample=bits,
        )


def _first_inline_audio(response):
    candidates = getattr(response, "candidates", None) or []
    for candidate in candidates:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            if part.inline_data and part.inline_data.data:
                return part.inline_data
    return None


class EdgeBackend(TTSBackend):
    """Free Microsoft Edge voices via edge-tts; mp3 only, style is ignored."""

    name = "edge"
    output_formats = ("mp3",)
    voices = VOICE_POOLS["edge"]
    default_roles = DEFAULT_ROLES["edge"]

    def __init__(self, rate: str = TTS_RATE):
        self.rate = rate

    async def synthesize_utterance(self, text, voice_id, style, output_format):
        audio = bytearray()
        try:
            communicate = edge_tts.Communicate(text, voice_id, rate=self.rate)
            async for chunk in communicate.stream():
                if chunk["type"] == "audio":
                    audio.extend(chunk["data"])
        except edge_tts.exceptions.NoAudioReceived as e:
            raise self._empty(str(e)) from e
        except Exception as e:
            raise VendorError(classify_vendor_error(e), str(e), self.name) from e

        if not audio:
            raise self._empty(f"TTS produced 0 bytes for: {text[:50]}...")
        return SynthesisResult(audio=bytes(audio), encoding=ENCODING_CONTAINER)


class FallbackBackend(TTSBackend):
    """Try a primary single-speaker backend, fall back to a second one.

    Auth failures on the primary are not masked: they propagate so the job
    fails fast. Any other vendor error re-synthesizes the utterance with the
    fallback backend, using ``fallback_voice`` or a stable per-voice pick
    from the fallback's pool.

    The primary gets its own ``primary_timeout``, which must stay below the
    pipeline's per-call timeout so a hanging primary still leaves time for
    the fallback.
    """

    def __init__(
        self,
        primary: TTSBackend,
        fallback: TTSBackend,
        fallback_voice: str | None = None,
        primary_timeout: float | None = FALLBACK_PRIMARY_TIMEOUT,
    ):
        if primary.multi_speaker or fallback.multi_speaker:
            raise ConfigurationError("Fallback is only supported between single-speaker engines")
        self.primary = primary
        self.fallback = fallback
        self.fallback_voice = fallback_voice
        self.primary_timeout = primary_timeout
        self.name = primary.name
        self.max_speakers = min(primary.max_speakers, fallback.max_speakers)
        self.max_batch_seconds = primary.max_batch_seconds
        self.output_formats = tuple(f for f in primary.output_formats if f in fallback.output_formats)
        self.voices = primary.voices
        self.default_roles = primary.default_roles

    async def _primary(self, text, voice_id, style, output_format):
        call = self.primary.synthesize_utterance(text, voice_id, style, output_format)
        if self.primary_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.primary_timeout)
        except asyncio.TimeoutError as e:
            raise VendorError(
                REASON_TIMEOUT, f"No response within {self.primary_timeout}s", self.primary.name
            ) from e

    async def synthesize_utterance(self, text, voice_id, style, output_format):
        try:
            return await self._primary(text, voice_id, style, output_format)
        except VendorError as e:
            if not e.retryable:
                raise
            voice = self.fallback_voice or hash_voice(voice_id, self.fallback.voices)
            logger.warning(
                "%s failed (%s), falling back to %s with voice %s",
                self.primary.name, e.reason, self.fallback.name, voice,
            )
            return await self.fallback.synthesize_utterance(text, voice, style, output_format)


def create_backend(
    engine: str,
    credentials: dict | None = None,
    fallback: str | None = None,
    fallback_voice: str | None = None,
    model: str | None = None,
    timeout: float = TTS_CALL_TIMEOUT,
) -> TTSBackend:
    """Construct a backend with real vendor clients.

    Raises ConfigurationError for unknown engines or missing API keys.
    """
    credentials = credentials or {}

    if engine == "openai":
        api_key = credentials.get("openai")
        if not api_key:
            raise ConfigurationError("OpenAI API key is missing. Set OPENAI_API_KEY.")
        # Retries are handled by the pipeline
        client = openai.AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        backend = OpenAIBackend(client, model=model or OPENAI_TTS_MODEL)
    elif engine == "gemini":
        api_key = credentials.get("gemini")
        if not api_key:
            raise ConfigurationError("Gemini API key is missing. Set GEMINI_API_KEY.")
        backend = GeminiBackend(genai.Client(api_key=api_key), model=model or GEMINI_TTS_MODEL)
    elif engine == "edge":
        backend = EdgeBackend()
    else:
        raise ConfigurationError(f"Unknown engine: {engine}. Choose one of: {', '.join(ENGINES)}")

    if fallback:
        if fallback == engine:
            raise ConfigurationError("Fallback engine must differ from the primary engine")
        secondary = create_backend(fallback, credentials, timeout=timeout)
        backend = FallbackBackend(
            backend,
            secondary,
            fallback_voice=fallback_voice,
            primary_timeout=min(FALLBACK_PRIMARY_TIMEOUT, timeout / 2),
        )

    return backend
