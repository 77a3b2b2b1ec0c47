"""Command-line entry point: python producer.py <command> ..."""

from podcast_producer.cli import main

if __name__ == "__main__":
    main()
