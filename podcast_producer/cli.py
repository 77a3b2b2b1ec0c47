"""CLI interface with subcommand routing."""

import argparse
import json
import logging
import os
import sys

from podcast_producer.artifacts import ArtifactStore
from podcast_producer.config import find_voice_settings, load_credentials, load_voice_settings
from podcast_producer.constants import DEFAULT_ENGINE, DEFAULT_FORMAT, OUTPUT_DIR, VERSION
from podcast_producer.errors import ConfigurationError
from podcast_producer.parser import parse_script
from podcast_producer.pipeline import generate_podcast
from podcast_producer.tts import ENGINES, create_backend
from podcast_producer.voices import list_voices


def _read_script(file_path: str) -> str:
    """Read a script file, exiting with an error if it is missing or empty."""
    if not os.path.exists(file_path):
        print(f"Error: File not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)

    with open(file_path) as f:
        text = f.read()

    if not text.strip():
        print(f"Error: File is empty: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    return text


def _output_dir(args) -> str:
    return args.output_dir or OUTPUT_DIR


def cmd_parse(args):
    """Print parsed utterances as JSON."""
    script = _read_script(args.file)
    utterances = parse_script(script)
    print(json.dumps([{"speaker": u.speaker, "text": u.text} for u in utterances], indent=2))


def cmd_generate(args):
    """Synthesize a script into one podcast audio file."""
    script = _read_script(args.file)

    try:
        if args.voices:
            settings = load_voice_settings(args.voices)
        else:
            settings = find_voice_settings(args.file)
        backend = create_backend(
            args.engine,
            load_credentials(),
            fallback=args.fallback,
            fallback_voice=args.fallback_voice,
        )
    except ConfigurationError as e:
        print(json.dumps({"error": str(e), "engine": args.engine}), file=sys.stderr)
        raise SystemExit(1)

    output_format = args.format or ("wav" if backend.multi_speaker else DEFAULT_FORMAT)
    store = ArtifactStore(_output_dir(args))

    result = generate_podcast(
        script,
        backend,
        store,
        settings,
        output_format=output_format,
        task_id=args.task_id,
    )
    if "error" in result:
        print(json.dumps(result), file=sys.stderr)
        raise SystemExit(1)

    print(json.dumps(result, indent=2))


def cmd_latest(args):
    """Print the id of the most recent podcast."""
    task_id = ArtifactStore(_output_dir(args)).latest_id()
    if not task_id:
        print("No podcasts found.")
        return
    print(task_id)


def cmd_voices(args):
    """List available voices."""
    voices = list_voices(args.engine, args.filter)
    if not voices:
        print("No matching voices found.")
        return
    print(f"Available {args.engine} voices:")
    for v in voices:
        print(f"  {v}")


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="producer.py",
        description="Podcast Producer: turn dialogue scripts into multi-speaker audio",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # parse
    parse_parser = subparsers.add_parser("parse", help="Parse a script and print its utterances")
    parse_parser.add_argument("file", help="Path to the script text file")
    parse_parser.set_defaults(func=cmd_parse)

    # generate
    gen_parser = subparsers.add_parser("generate", help="Generate podcast audio from a script")
    gen_parser.add_argument("file", help="Path to the script text file")
    gen_parser.add_argument("--engine", choices=ENGINES, default=DEFAULT_ENGINE, help="TTS engine")
    gen_parser.add_argument("--format", help="Output format (engine dependent, e.g. mp3, wav)")
    gen_parser.add_argument("--voices", help="Voice settings JSON file")
    gen_parser.add_argument("--task-id", help="Task id to write, or 'last' to overwrite the latest")
    gen_parser.add_argument("--fallback", choices=ENGINES, help="Engine to use when the primary fails")
    gen_parser.add_argument("--fallback-voice", help="Voice for the fallback engine")
    gen_parser.add_argument("--output-dir", help=f"Output directory (default: {OUTPUT_DIR})")
    gen_parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline progress")
    gen_parser.set_defaults(func=cmd_generate)

    # latest
    latest_parser = subparsers.add_parser("latest", help="Print the latest task id")
    latest_parser.add_argument("--output-dir", help=f"Output directory (default: {OUTPUT_DIR})")
    latest_parser.set_defaults(func=cmd_latest)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List available voices")
    voices_parser.add_argument("--engine", choices=ENGINES, default=DEFAULT_ENGINE, help="TTS engine")
    voices_parser.add_argument("--filter", help="Filter voices by substring")
    voices_parser.set_defaults(func=cmd_voices)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    logging.basicConfig(
        level=logging.INFO if getattr(args, "verbose", False) else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    args.func(args)
