"""Write the provenance manifest that accompanies a generated podcast."""

import io
import logging
from datetime import datetime, timezone

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from podcast_producer.artifacts import ArtifactStore
from podcast_producer.constants import VERSION
from podcast_producer.models import PodcastArtifact
from podcast_producer.voices import SpeakerVoiceMap

logger = logging.getLogger(__name__)


def probe_duration(audio: bytes, extension: str) -> float | None:
    """Decode audio with pydub and return its duration in seconds.

    WAV decodes natively; compressed formats need ffmpeg. Returns None when
    the audio cannot be decoded here.
    """
    try:
        segment = AudioSegment.from_file(io.BytesIO(audio), format=extension)
    except (CouldntDecodeError, OSError) as e:
        logger.warning("Could not probe %s duration: %s", extension, e)
        return None
    return round(len(segment) / 1000, 1)


def manifest_filename(task_id: str) -> str:
    return f"{task_id}_state.json"


def export_manifest(
    store: ArtifactStore,
    artifact: PodcastArtifact,
    voice_map: SpeakerVoiceMap,
    stats: dict,
    extension: str,
) -> str:
    """Write {task_id}_state.json next to the audio file.

    Returns path to the manifest.
    """
    manifest = {
        "task_id": artifact.task_id,
        "script": artifact.script_text,
        "audioPath": artifact.audio_path,
        "engine": artifact.engine,
        "format": artifact.format,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "producer_version": VERSION,
        "cast": {
            cfg.speaker: {
                "voice": cfg.voice_id,
                "style": cfg.style_instructions,
                "order": cfg.order,
                "role": cfg.role,
            }
            for cfg in voice_map.ordered()
        },
        "stats": {
            **stats,
            "bytes": len(artifact.audio_bytes),
            "duration_seconds": probe_duration(artifact.audio_bytes, extension),
        },
    }
    return store.write_artifact(manifest_filename(artifact.task_id), manifest)
