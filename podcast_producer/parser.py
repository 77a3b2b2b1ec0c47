"""Parse dialogue script text into ordered utterances with speaker attribution."""

import re

from podcast_producer.models import Utterance
from podcast_producer.constants import NARRATOR_NAME, MAX_SPEAKER_NAME_WORDS

# "Speaker: text" / "**Speaker**: text" / "**Speaker:** text"
_COLON_RE = re.compile(r"^\s*(?:\*\*|\*|__)?([^:\[\]()*]+?)(?:\*\*|\*|__)?\s*:\s*(.*)$")

# "[Speaker] text"
_BRACKET_RE = re.compile(r"^\s*\[([^\]]+)\]\s*(.*)$")

# A whole line that is only a stage direction: "(laughs)" or "[music fades]"
_STAGE_DIRECTION_RE = re.compile(r"^\s*(?:\([^()]*\)|\[[^\[\]]*\])\s*$")

# Emphasis left over after the colon in "**Host:** text"
_LEADING_EMPHASIS_RE = re.compile(r"^(?:\*\*|\*|__)\s*")

# Text after a colon that looks like a time, a ratio or an amount of money
_NUMERIC_START_RE = re.compile(r"^[\d$€£¥]")


def _match_colon_marker(line: str) -> tuple[str, str] | None:
    match = _COLON_RE.match(line)
    if not match:
        return None

    speaker = match.group(1).strip()
    text = _LEADING_EMPHASIS_RE.sub("", match.group(2)).strip()

    if not speaker or not text:
        return None
    if len(speaker.split()) > MAX_SPEAKER_NAME_WORDS:
        return None
    # "3:30pm: results are in", "Total: $20"
    if _NUMERIC_START_RE.match(text) or _NUMERIC_START_RE.match(speaker):
        return None
    return speaker, text


def _match_bracket_marker(line: str) -> tuple[str, str] | None:
    match = _BRACKET_RE.match(line)
    if not match:
        return None
    speaker = match.group(1).strip()
    text = match.group(2).strip()
    if not speaker or not text:
        return None
    return speaker, text


def match_speaker_marker(line: str) -> tuple[str, str] | None:
    """Return (speaker, text) if the line opens a new utterance, else None."""
    if _STAGE_DIRECTION_RE.match(line):
        return None
    return _match_colon_marker(line) or _match_bracket_marker(line)


def parse_script(script: str) -> list[Utterance]:
    """Parse script text into a list of Utterances.

    Lines carrying a speaker marker start a new utterance; all other lines
    are continuation of the current one, joined with single spaces. Text
    before the first marker belongs to an implicit Narrator.
    """
    utterances = []
    speaker = None
    parts: list[str] = []

    def flush():
        if speaker is not None:
            text = " ".join(p for p in parts if p).strip()
            if text:
                utterances.append(Utterance(speaker=speaker, text=text))

    for line in script.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue

        marker = match_speaker_marker(line)
        if marker:
            flush()
            speaker, first = marker
            parts = [first]
        elif speaker is not None:
            # Stage directions stay inline with the surrounding speech
            parts.append(stripped)
        else:
            speaker = NARRATOR_NAME
            parts = [stripped]

    flush()

    if not utterances and script.strip():
        utterances.append(Utterance(speaker=NARRATOR_NAME, text=script.strip()))

    return utterances


def distinct_speakers(utterances: list[Utterance]) -> list[str]:
    """Speakers in order of first appearance."""
    seen = []
    for utt in utterances:
        if utt.speaker not in seen:
            seen.append(utt.speaker)
    return seen


def format_script(utterances: list[Utterance]) -> str:
    """Render utterances back to canonical "Speaker: text" lines."""
    return "\n".join(f"{u.speaker}: {u.text}" for u in utterances)
