"""Tests for assembly module."""

import io
import struct

import pytest
from pydub import AudioSegment

from conftest import make_tone
from podcast_producer.assembly import (
    ENCODING_CONTAINER,
    ENCODING_PCM,
    assemble,
    combine_results,
    create_wav_buffer,
)
from podcast_producer.errors import AssemblyError
from podcast_producer.models import SynthesisResult


def _pcm(index, duration_ms=100, freq=440.0):
    return SynthesisResult(audio=make_tone(duration_ms, freq), encoding=ENCODING_PCM, index=index)


def _container(index, data):
    return SynthesisResult(audio=data, encoding=ENCODING_CONTAINER, index=index)


def test_wav_header_fields(pcm_tone):
    wav = create_wav_buffer(pcm_tone, 24000, 1, 16)
    assert len(wav) == 44 + len(pcm_tone)
    (riff, riff_size, wave, fmt, fmt_size, audio_format, channels, rate,
     byte_rate, block_align, bits, data_tag, data_size) = struct.unpack("<4sI4s4sIHHIIHH4sI", wav[:44])
    assert (riff, wave, fmt, data_tag) == (b"RIFF", b"WAVE", b"fmt ", b"data")
    assert riff_size == 36 + len(pcm_tone)
    assert fmt_size == 16
    assert audio_format == 1
    assert (channels, rate, bits) == (1, 24000, 16)
    assert byte_rate == 48000
    assert block_align == 2
    assert data_size == len(pcm_tone)
    assert wav[44:] == pcm_tone


def test_wav_header_stereo():
    wav = create_wav_buffer(b"\x00" * 8, 44100, 2, 16)
    channels, rate, byte_rate, block_align = struct.unpack("<HIIH", wav[22:34])
    assert (channels, rate, byte_rate, block_align) == (2, 44100, 176400, 4)


def test_assemble_pcm_single_header():
    """Several PCM batches become one WAV with one header."""
    results = [_pcm(0), _pcm(1, freq=660.0), _pcm(2, freq=880.0)]
    wav = assemble(results)
    assert wav.count(b"RIFF") == 1
    assert struct.unpack("<I", wav[40:44])[0] == sum(len(r.audio) for r in results)
    assert wav[44:] == b"".join(r.audio for r in results)


def test_assemble_pcm_decodes_with_pydub():
    wav = assemble([_pcm(0, 100), _pcm(1, 200)])
    segment = AudioSegment.from_wav(io.BytesIO(wav))
    assert segment.frame_rate == 24000
    assert segment.channels == 1
    assert segment.sample_width == 2
    assert len(segment) == 300


def test_assemble_orders_by_index():
    results = [_container(2, b"C"), _container(0, b"A"), _container(1, b"B")]
    assert assemble(results) == b"ABC"


def test_assemble_container_has_no_wav_header():
    audio = assemble([_container(0, b"ID3frame1"), _container(1, b"frame2")])
    assert audio == b"ID3frame1frame2"


def test_assemble_is_deterministic():
    results = [_pcm(0), _pcm(1, freq=550.0)]
    assert assemble(results) == assemble(list(results))


def test_assemble_empty_list():
    with pytest.raises(AssemblyError):
        assemble([])


def test_assemble_empty_audio():
    with pytest.raises(AssemblyError):
        assemble([_container(0, b""), _container(1, b"")])


def test_assemble_duplicate_index():
    with pytest.raises(AssemblyError, match="Duplicate"):
        assemble([_container(0, b"A"), _container(0, b"B")])


def test_assemble_mixed_encodings():
    with pytest.raises(AssemblyError, match="mix"):
        assemble([_pcm(0), _container(1, b"A")])


def test_assemble_mismatched_pcm_params():
    other = SynthesisResult(audio=b"\x00\x00", encoding=ENCODING_PCM, index=1, sample_rate=16000)
    with pytest.raises(AssemblyError):
        assemble([_pcm(0), other])


def test_assemble_pcm_keeps_result_params():
    result = SynthesisResult(audio=b"\x00" * 8, encoding=ENCODING_PCM, sample_rate=16000)
    wav = assemble([result])
    assert struct.unpack("<I", wav[24:28])[0] == 16000


def test_combine_results():
    combined = combine_results([_container(0, b"A"), _container(0, b"B")], index=5)
    assert combined.audio == b"AB"
    assert combined.index == 5
    assert combined.encoding == ENCODING_CONTAINER


def test_combine_results_empty():
    with pytest.raises(AssemblyError):
        combine_results([])
