"""Tests for parser module."""

from podcast_producer.parser import (
    distinct_speakers,
    format_script,
    match_speaker_marker,
    parse_script,
)
from podcast_producer.models import Utterance
from podcast_producer.constants import NARRATOR_NAME


def test_parse_colon_markers(sample_script):
    """'Speaker: text' lines open utterances; plain lines continue them."""
    utterances = parse_script(sample_script)
    assert utterances == [
        Utterance(speaker="Host", text="Welcome to the show."),
        Utterance(speaker="Guest", text="Thanks for having me. It is great to be here."),
        Utterance(speaker="Host", text="Let's dive in."),
    ]


def test_parse_markdown_bold_markers():
    """Both **Host**: and **Host:** forms are recognized."""
    utterances = parse_script("**Host**: Hello there.\n**Guest:** Hi!")
    assert [(u.speaker, u.text) for u in utterances] == [
        ("Host", "Hello there."),
        ("Guest", "Hi!"),
    ]


def test_parse_bracket_markers():
    """[Speaker] text is a marker too."""
    utterances = parse_script("[Host] Good morning.\n[Guest] Morning!")
    assert [u.speaker for u in utterances] == ["Host", "Guest"]
    assert utterances[0].text == "Good morning."


def test_parse_text_before_first_marker_is_narrator():
    utterances = parse_script("Recorded live in Berlin.\nHost: Welcome.")
    assert utterances[0] == Utterance(speaker=NARRATOR_NAME, text="Recorded live in Berlin.")
    assert utterances[1].speaker == "Host"


def test_parse_no_markers_single_narrator():
    """Script without any marker becomes one narrator utterance."""
    utterances = parse_script("Just some prose.\nAnd a second line.")
    assert len(utterances) == 1
    assert utterances[0].speaker == NARRATOR_NAME
    assert utterances[0].text == "Just some prose. And a second line."


def test_parse_empty_script():
    assert parse_script("") == []
    assert parse_script("   \n\n  ") == []


def test_parse_skips_blank_lines():
    utterances = parse_script("Host: One.\n\n\nMore from host.\n\nGuest: Two.")
    assert utterances[0].text == "One. More from host."
    assert len(utterances) == 2


def test_parse_time_is_not_a_marker():
    """Colons inside times and amounts stay in the text."""
    utterances = parse_script("Host: The show starts at\n3:30 sharp.\nTotal: $20 for tickets.")
    assert len(utterances) == 1
    assert "3:30 sharp." in utterances[0].text
    assert "Total: $20" in utterances[0].text


def test_parse_timestamp_line_is_continuation():
    utterances = parse_script("Host: Breaking news.\n3:30pm: results are in")
    assert utterances == [Utterance(speaker="Host", text="Breaking news. 3:30pm: results are in")]


def test_parse_long_prefix_is_not_a_marker():
    """A sentence ending in a colon is not a speaker name."""
    utterances = parse_script("Host: Here is the list.\nThe things you will need to bring: a towel.")
    assert len(utterances) == 1
    assert utterances[0].text.endswith("a towel.")


def test_parse_stage_direction_stays_inline():
    utterances = parse_script("Host: That's funny.\n(laughs)\nGuest: Right?")
    assert utterances[0].text == "That's funny. (laughs)"
    assert utterances[1].speaker == "Guest"


def test_parse_multiword_speaker():
    utterances = parse_script("Dr. Jane Smith: Thanks for inviting me.")
    assert utterances[0].speaker == "Dr. Jane Smith"


def test_parse_underscore_speaker():
    utterances = parse_script("speaker_1: Hello.\nspeaker_2: Hi.")
    assert [u.speaker for u in utterances] == ["speaker_1", "speaker_2"]


def test_parse_preserves_order():
    script = "\n".join(f"{'Host' if i % 2 == 0 else 'Guest'}: line {i}" for i in range(10))
    utterances = parse_script(script)
    assert [u.text for u in utterances] == [f"line {i}" for i in range(10)]


def test_match_speaker_marker():
    assert match_speaker_marker("Host: Hello") == ("Host", "Hello")
    assert match_speaker_marker("Host:") is None
    assert match_speaker_marker("(music fades)") is None
    assert match_speaker_marker("no marker here") is None


def test_distinct_speakers_first_appearance(sample_utterances):
    assert distinct_speakers(sample_utterances) == ["Host", "Guest"]


def test_format_script_reparses(sample_utterances):
    """Rendered script parses back to the same utterances."""
    assert parse_script(format_script(sample_utterances)) == sample_utterances
