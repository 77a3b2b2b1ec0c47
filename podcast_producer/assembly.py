"""Assemble per-batch synthesis results into one audio byte stream."""

import struct

from podcast_producer.constants import (
    PCM_SAMPLE_RATE,
    PCM_CHANNELS,
    PCM_BITS_PER_SAMPLE,
)
from podcast_producer.errors import AssemblyError
from podcast_producer.models import SynthesisResult

ENCODING_CONTAINER = "container"
ENCODING_PCM = "pcm"


def create_wav_buffer(
    pcm: bytes,
    sample_rate: int = PCM_SAMPLE_RATE,
    channels: int = PCM_CHANNELS,
    bits_per_sample: int = PCM_BITS_PER_SAMPLE,
) -> bytes:
    """Wrap raw PCM samples in a canonical 44-byte RIFF/WAVE header."""
    data_size = len(pcm)
    block_align = channels * (bits_per_sample // 8)
    byte_rate = sample_rate * block_align

    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,                 # fmt chunk size
        1,                  # PCM
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        b"data",
        data_size,
    )
    return header + pcm


def _pcm_params(result: SynthesisResult) -> tuple[int, int, int]:
    return (result.sample_rate, result.channels, result.bits_per_sample)


def _check_uniform(results: list[SynthesisResult]) -> None:
    encodings = {r.encoding for r in results}
    if len(encodings) > 1:
        raise AssemblyError(f"Cannot mix audio encodings: {', '.join(sorted(encodings))}")
    if results[0].encoding == ENCODING_PCM:
        params = {_pcm_params(r) for r in results}
        if len(params) > 1:
            raise AssemblyError(f"PCM parameters differ between parts: {sorted(params)}")


def combine_results(parts: list[SynthesisResult], index: int = 0) -> SynthesisResult:
    """Join the per-utterance results of one batch, in submission order."""
    if not parts:
        raise AssemblyError("No audio parts to combine")
    _check_uniform(parts)
    first = parts[0]
    return SynthesisResult(
        audio=b"".join(p.audio for p in parts),
        encoding=first.encoding,
        index=index,
        sample_rate=first.sample_rate,
        channels=first.channels,
        bits_per_sample=first.bits_per_sample,
    )


def assemble(results: list[SynthesisResult]) -> bytes:
    """Concatenate batch results in batch order into the final audio.

    Container audio (mp3, opus, ...) is joined frame-wise. Raw PCM is joined
    first and wrapped in exactly one WAV header, since a header per batch
    would break playback mid-stream.
    """
    if not results:
        raise AssemblyError("No synthesis results to assemble")

    ordered = sorted(results, key=lambda r: r.index)
    indices = [r.index for r in ordered]
    if len(set(indices)) != len(indices):
        raise AssemblyError(f"Duplicate batch indices: {indices}")
    _check_uniform(ordered)

    body = b"".join(r.audio for r in ordered)
    if not body:
        raise AssemblyError("Assembled audio is empty")

    first = ordered[0]
    if first.encoding == ENCODING_PCM:
        return create_wav_buffer(body, *_pcm_params(first))
    return body
