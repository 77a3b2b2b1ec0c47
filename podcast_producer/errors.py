"""Error taxonomy for the podcast engine.

Input and configuration errors are detected before any vendor call. Vendor
errors are raised per synthesis call and classified so the retry controller
can tell transient failures from fatal ones.
"""

import re

REASON_AUTH = "auth"
REASON_QUOTA = "quota"
REASON_MODEL_UNAVAILABLE = "model_unavailable"
REASON_EMPTY_RESPONSE = "empty_response"
REASON_TIMEOUT = "timeout"
REASON_UNKNOWN = "unknown"

FATAL_REASONS = {REASON_AUTH}

_AUTH_RE = re.compile(
    r"api[ _-]?key|unauthori[sz]ed|authentication|permission[ _]denied|invalid[ _]credentials|forbidden",
    re.IGNORECASE,
)
_QUOTA_RE = re.compile(
    r"quota|rate[ _-]?limit|resource[ _]exhausted|too many requests",
    re.IGNORECASE,
)
_MODEL_RE = re.compile(
    r"model.*(not found|does not exist|unavailable|not supported)|overloaded|service unavailable",
    re.IGNORECASE,
)


class PodcastError(RuntimeError):
    """Base class for every failure the engine reports to its caller."""


class InputError(PodcastError):
    pass


class ConfigurationError(PodcastError):
    pass


class SpeakerLimitError(ConfigurationError):
    def __init__(self, count: int, limit: int, speakers: list[str]) -> None:
        self.count = count
        self.limit = limit
        self.speakers = list(speakers)
        super().__init__(
            f"Script has {count} distinct speakers but this engine supports at most {limit}: "
            f"{', '.join(self.speakers)}"
        )


class VendorError(PodcastError):
    def __init__(self, reason: str, message: str, engine: str = "") -> None:
        self.reason = reason or REASON_UNKNOWN
        self.engine = engine
        self.vendor_message = message
        prefix = f"{engine} " if engine else ""
        super().__init__(f"{prefix}TTS failed ({self.reason}): {message}")

    @property
    def retryable(self) -> bool:
        return self.reason not in FATAL_REASONS


class BatchSynthesisError(PodcastError):
    def __init__(self, batch_index: int | None, attempts: int, cause: Exception) -> None:
        self.batch_index = batch_index
        self.attempts = attempts
        self.cause = cause
        self.reason = getattr(cause, "reason", REASON_UNKNOWN)
        where = f"batch {batch_index}" if batch_index is not None else "synthesis"
        super().__init__(f"Synthesis failed for {where} after {attempts} attempt(s): {cause}")


class AssemblyError(PodcastError):
    pass


def classify_vendor_error(exc: BaseException) -> str:
    """Map a vendor exception to one of the REASON_* constants.

    Looks at an HTTP status code first (``status_code`` on openai errors,
    ``code`` on google-genai errors), then at the message text.
    """
    status = getattr(exc, "status_code", None) or getattr(exc, "code", None)
    if isinstance(status, int):
        if status in (401, 403):
            return REASON_AUTH
        if status == 429:
            return REASON_QUOTA
        if status in (404, 503):
            return REASON_MODEL_UNAVAILABLE

    message = str(exc)
    if _AUTH_RE.search(message):
        return REASON_AUTH
    if _QUOTA_RE.search(message):
        return REASON_QUOTA
    if _MODEL_RE.search(message):
        return REASON_MODEL_UNAVAILABLE
    return REASON_UNKNOWN
