"""Output directory management, task ids and durable artifact writes."""

import json
import os
import re
import tempfile
import uuid

from podcast_producer.constants import OUTPUT_DIR, AUDIO_URL_PREFIX
from podcast_producer.errors import AssemblyError, InputError

_AUDIO_FILE_RE = re.compile(r"^(?P<task_id>.+)_combined\.(?P<ext>[A-Za-z0-9]+)$")


def _sort_key(task_id: str, mtime: float) -> tuple:
    """Numeric timestamp ids compare by value, everything else by mtime."""
    if task_id.isdigit():
        return (1, int(task_id), mtime)
    return (0, mtime, 0)


class ArtifactStore:
    """Stores generated podcasts as ``{task_id}_combined.{ext}`` files.

    Also answers "which task was written last" so callers can reuse the
    latest id and overwrite the previous result.
    """

    def __init__(self, base_dir: str = OUTPUT_DIR, url_prefix: str = AUDIO_URL_PREFIX):
        self.base_dir = base_dir
        self.url_prefix = url_prefix.rstrip("/")

    def ensure_dir(self) -> str:
        # exist_ok makes concurrent jobs safe
        try:
            os.makedirs(self.base_dir, exist_ok=True)
        except OSError as e:
            raise AssemblyError(f"Cannot create output directory {self.base_dir}: {e}") from e
        return self.base_dir

    def new_id(self) -> str:
        return str(uuid.uuid4())

    def latest_id(self) -> str | None:
        """Task id of the newest audio artifact, or None if there is none."""
        if not os.path.isdir(self.base_dir):
            return None

        best = None
        for name in os.listdir(self.base_dir):
            match = _AUDIO_FILE_RE.match(name)
            if not match:
                continue
            task_id = match.group("task_id")
            try:
                mtime = os.path.getmtime(os.path.join(self.base_dir, name))
            except FileNotFoundError:
                # Removed by another job since listdir
                continue
            key = _sort_key(task_id, mtime)
            if best is None or key > best[0]:
                best = (key, task_id)

        return best[1] if best else None

    def resolve_id(self, task_id: str | None) -> str:
        """None → fresh id; "last" → latest existing id (or fresh); else as given."""
        if task_id is None:
            return self.new_id()
        if task_id == "last":
            return self.latest_id() or self.new_id()
        if not re.fullmatch(r"[\w.-]+", task_id):
            raise InputError(f"Invalid task id: {task_id!r}")
        return task_id

    def audio_filename(self, task_id: str, extension: str) -> str:
        return f"{task_id}_combined.{extension}"

    def relative_url(self, filename: str) -> str:
        return f"{self.url_prefix}/{filename}"

    def save(self, task_id: str, audio: bytes, extension: str) -> str:
        """Write audio atomically and verify the on-disk size.

        Returns path to the written file.
        """
        if not audio:
            raise AssemblyError("Refusing to save empty audio")

        self.ensure_dir()
        path = os.path.join(self.base_dir, self.audio_filename(task_id, extension))

        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.base_dir, prefix=f".{task_id}_", suffix=".part")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(audio)
                os.replace(tmp_path, path)
            finally:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
            written = os.path.getsize(path)
        except OSError as e:
            raise AssemblyError(f"Could not write {path}: {e}") from e

        if written != len(audio):
            raise AssemblyError(
                f"Write verification failed for {path}: expected {len(audio)} bytes, found {written}"
            )
        return path

    def write_artifact(self, filename: str, data: dict) -> str:
        """Write JSON artifact to base_dir/filename.

        Returns path to the written file.
        """
        self.ensure_dir()
        path = os.path.join(self.base_dir, filename)
        try:
            with open(path, "w") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise AssemblyError(f"Could not write {path}: {e}") from e
        return path

    def discard(self, task_id: str, extension: str) -> None:
        """Remove a saved audio file, if present."""
        path = os.path.join(self.base_dir, self.audio_filename(task_id, extension))
        try:
            os.remove(path)
        except FileNotFoundError:
            pass

    def load_artifact(self, filename: str) -> dict | None:
        """Read JSON artifact. Returns None if file doesn't exist."""
        path = os.path.join(self.base_dir, filename)
        if not os.path.exists(path):
            return None
        with open(path) as f:
            return json.load(f)
