"""Podcast generation pipeline: parse → voices → batch → synthesize → assemble → persist."""

import asyncio
import enum
import logging
from dataclasses import replace

from podcast_producer.artifacts import ArtifactStore
from podcast_producer.assembly import assemble, combine_results
from podcast_producer.batching import batch_items, estimate_duration
from podcast_producer.constants import (
    DEFAULT_FORMAT,
    INTER_BATCH_DELAY,
    MAX_SCRIPT_CHARS,
    TTS_CALL_TIMEOUT,
    TTS_RETRY_BASE_DELAY,
    TTS_RETRY_COUNT,
)
from podcast_producer.errors import InputError, PodcastError, VendorError, REASON_TIMEOUT
from podcast_producer.exporter import export_manifest
from podcast_producer.models import PodcastArtifact, SynthesisResult, Utterance, VoiceSettings
from podcast_producer.parser import parse_script
from podcast_producer.retry import with_retry
from podcast_producer.tts import TTSBackend
from podcast_producer.voices import SpeakerVoiceMap, resolve_speaker_voices

logger = logging.getLogger(__name__)


class Stage(enum.Enum):
    IDLE = "idle"
    PARSING = "parsing"
    RESOLVING_VOICES = "resolving_voices"
    BATCHING = "batching"
    SYNTHESIZING = "synthesizing"
    ASSEMBLING = "assembling"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


class PodcastPipeline:
    """Runs one synthesis job at a time against a single backend.

    Utterances inside a batch are synthesized concurrently; batches run one
    after another with ``inter_batch_delay`` between them. The voice map is
    built once per job and shared read-only by all batches. Any failure
    after retries aborts the job before anything is written.
    """

    def __init__(
        self,
        backend: TTSBackend,
        store: ArtifactStore,
        settings: VoiceSettings | None = None,
        *,
        retry_attempts: int = TTS_RETRY_COUNT,
        retry_base_delay: float = TTS_RETRY_BASE_DELAY,
        inter_batch_delay: float = INTER_BATCH_DELAY,
        call_timeout: float | None = TTS_CALL_TIMEOUT,
        max_script_chars: int = MAX_SCRIPT_CHARS,
        sleep=asyncio.sleep,
    ):
        self.backend = backend
        self.store = store
        self.settings = settings or VoiceSettings()
        self.retry_attempts = retry_attempts
        self.retry_base_delay = retry_base_delay
        self.inter_batch_delay = inter_batch_delay
        self.call_timeout = call_timeout
        self.max_script_chars = max_script_chars
        self.sleep = sleep

        self.stage = Stage.IDLE
        self.batch_count = 0
        self.current_batch: int | None = None
        self.failed_stage: Stage | None = None

    def _enter(self, stage: Stage) -> None:
        logger.info("Stage: %s", stage.value)
        self.stage = stage

    def _validate_script(self, script) -> str:
        if not isinstance(script, str) or not script.strip():
            raise InputError("Script text is required")
        if len(script) > self.max_script_chars:
            raise InputError(
                f"Script is too long: {len(script)} characters (limit {self.max_script_chars})"
            )
        return script

    async def _call(self, make_call) -> SynthesisResult:
        """Await one vendor call under the per-call timeout."""
        if self.call_timeout is None:
            return await make_call()
        try:
            return await asyncio.wait_for(make_call(), timeout=self.call_timeout)
        except asyncio.TimeoutError as e:
            raise VendorError(
                REASON_TIMEOUT, f"No response within {self.call_timeout}s", self.backend.name
            ) from e

    async def _synthesize_utterances(
        self,
        index: int,
        batch: list[Utterance],
        voice_map: SpeakerVoiceMap,
        output_format: str,
    ) -> SynthesisResult:
        async def one(utt: Utterance) -> SynthesisResult:
            cfg = voice_map[utt.speaker]
            return await with_retry(
                lambda: self._call(lambda: self.backend.synthesize_utterance(
                    utt.text, cfg.voice_id, cfg.style_instructions, output_format,
                )),
                max_attempts=self.retry_attempts,
                base_delay=self.retry_base_delay,
                batch_index=index,
                sleep=self.sleep,
            )

        tasks = [asyncio.ensure_future(one(utt)) for utt in batch]
        try:
            # gather keeps submission order regardless of completion order
            parts = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return combine_results(list(parts), index=index)

    async def _synthesize_batch(
        self,
        index: int,
        batch: list[Utterance],
        voice_map: SpeakerVoiceMap,
        output_format: str,
    ) -> SynthesisResult:
        if not self.backend.multi_speaker:
            return await self._synthesize_utterances(index, batch, voice_map, output_format)

        voice_map.for_batch(batch)
        result = await with_retry(
            lambda: self._call(lambda: self.backend.synthesize_batch(batch, voice_map)),
            max_attempts=self.retry_attempts,
            base_delay=self.retry_base_delay,
            batch_index=index,
            sleep=self.sleep,
        )
        return replace(result, index=index)

    async def run(
        self,
        script: str,
        output_format: str = DEFAULT_FORMAT,
        task_id: str | None = None,
    ) -> PodcastArtifact:
        """Run the whole job and return the persisted artifact."""
        try:
            return await self._run(script, output_format, task_id)
        except BaseException:
            self.failed_stage = self.stage
            self.stage = Stage.FAILED
            raise

    async def _run(self, script, output_format, task_id) -> PodcastArtifact:
        backend = self.backend

        self._enter(Stage.PARSING)
        script = self._validate_script(script)
        backend.check_format(output_format)
        resolved_id = self.store.resolve_id(task_id)
        utterances = parse_script(script)

        self._enter(Stage.RESOLVING_VOICES)
        voice_map = resolve_speaker_voices(utterances, self.settings, backend)

        self._enter(Stage.BATCHING)
        batches = batch_items(
            utterances,
            backend.max_batch_seconds,
            lambda u: estimate_duration(u.text),
        )
        self.batch_count = len(batches)
        logger.info(
            "%d utterances, %d speakers, %d batches on %s",
            len(utterances), len(voice_map), len(batches), backend.name,
        )

        self._enter(Stage.SYNTHESIZING)
        results = []
        for index, batch in enumerate(batches):
            if index > 0 and self.inter_batch_delay > 0:
                await self.sleep(self.inter_batch_delay)
            self.current_batch = index
            logger.info("Synthesizing batch %d/%d (%d utterances)", index + 1, len(batches), len(batch))
            results.append(await self._synthesize_batch(index, batch, voice_map, output_format))

        self._enter(Stage.ASSEMBLING)
        audio = assemble(results)

        self._enter(Stage.PERSISTING)
        extension = backend.file_extension(output_format)
        path = await asyncio.to_thread(self.store.save, resolved_id, audio, extension)

        artifact = PodcastArtifact(
            task_id=resolved_id,
            script_text=script,
            audio_bytes=audio,
            file_path=path,
            audio_path=self.store.relative_url(self.store.audio_filename(resolved_id, extension)),
            engine=backend.name,
            format=output_format,
        )
        stats = {
            "utterances": len(utterances),
            "batches": len(batches),
            "speakers": len(voice_map),
        }
        try:
            await asyncio.to_thread(export_manifest, self.store, artifact, voice_map, stats, extension)
        except BaseException:
            # A job without its manifest is not persisted
            self.store.discard(resolved_id, extension)
            raise

        self._enter(Stage.DONE)
        return artifact


def error_response(error: Exception, engine: str) -> dict:
    return {"error": str(error), "engine": engine}


def generate_podcast(
    script: str,
    backend: TTSBackend,
    store: ArtifactStore,
    settings: VoiceSettings | None = None,
    output_format: str = DEFAULT_FORMAT,
    task_id: str | None = None,
    **pipeline_options,
) -> dict:
    """Sync wrapper around PodcastPipeline.run().

    Returns the success descriptor, or {"error", "engine"} for any engine
    failure.
    """
    pipeline = PodcastPipeline(backend, store, settings, **pipeline_options)
    try:
        artifact = asyncio.run(pipeline.run(script, output_format, task_id))
    except PodcastError as e:
        logger.error("Podcast generation failed at %s: %s", pipeline.failed_stage.value, e)
        return error_response(e, backend.name)
    return artifact.to_response()
