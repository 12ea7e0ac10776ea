#!/usr/bin/env python3
"""
Flashcards - Terminal Study Tool
================================
Study topic decks of paired question/answer text files in the terminal,
edit the cards, and keep a transcript of every completed session.

Each topic is a directory under the topics root holding questions.txt and
answers.txt, one card per line. Completed sessions are written to
flashcard_responses_<YYYYMMDD>-<HHMMSS>.txt in the transcripts directory.

Usage:
    python flashcards.py
    python flashcards.py --root ~/decks
    python flashcards.py --list
    python flashcards.py questions.txt answers.txt
"""

import argparse
import io
import logging
import os
import sys

from flash_decks import MalformedDeckError, TopicCatalog, load_files
from flash_screens import FlashcardMachine
from flash_tui import run

# Fix Windows console encoding for Unicode symbols
if sys.platform == "win32":
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    else:
        sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")
    if hasattr(sys.stderr, "reconfigure"):
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")
    else:
        sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding="utf-8", errors="replace")

log = logging.getLogger("flashcards")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HOME_DIR = os.path.expanduser(os.environ.get("FLASHCARDS_HOME", "~/.flashcards"))
TOPICS_DIR = os.path.join(HOME_DIR, "topics")
TRANSCRIPTS_DIR = os.path.join(HOME_DIR, "transcripts")
LOG_FILE = os.path.join(HOME_DIR, "flashcards.log")

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# ANSI color codes
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
CYAN = "\033[96m"
BOLD = "\033[1m"
RESET = "\033[0m"


def fail(message):
    """Print a startup diagnostic to stderr and exit with status 1."""
    print(f"{RED}Error: {message}{RESET}", file=sys.stderr)
    sys.exit(1)


def setup_logging(log_file, verbose=False):
    """Send log records to *log_file*; the terminal belongs to the TUI."""
    directory = os.path.dirname(os.path.abspath(log_file))
    os.makedirs(directory, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def open_catalog(root):
    """Return a catalog for *root*, creating it; exit if it is unusable."""
    try:
        os.makedirs(root, exist_ok=True)
        catalog = TopicCatalog(root)
        catalog.list()
    except OSError as exc:
        fail(f"Topics directory {root} is not accessible: {exc}")
    return catalog


def build_parser():
    parser = argparse.ArgumentParser(
        description="Flashcards -- terminal study tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Keys:
  Topic list   Up/Down move, Enter open, C create
  Main menu    S study, E edit cards, T change topic
  Study        Enter submit/next, Ctrl+E/Ctrl+A edit card, Ctrl+R review
  Cards        E/A edit, N new, D delete, S save, B back
  Anywhere     Ctrl+Q quit

Environment:
  FLASHCARDS_HOME   base directory (default ~/.flashcards)
        """,
    )
    parser.add_argument("questions", nargs="?", help="Questions file (single-deck mode)")
    parser.add_argument("answers", nargs="?", help="Answers file (single-deck mode)")
    parser.add_argument("--root", default=TOPICS_DIR, help="Topics directory")
    parser.add_argument("--transcripts", default=TRANSCRIPTS_DIR, help="Where session transcripts go")
    parser.add_argument("--log-file", default=LOG_FILE, help="Log file path")
    parser.add_argument("--verbose", action="store_true", help="Log debug messages")
    parser.add_argument("--list", action="store_true", help="Print the available topics and exit")
    return parser


def build_machine(args):
    """Create the state machine for *args*; exits on unrecoverable startup errors."""
    if args.questions or args.answers:
        if not (args.questions and args.answers):
            fail("Single-deck mode needs both a questions file and an answers file.")
        try:
            deck = load_files(args.questions, args.answers)
        except MalformedDeckError as exc:
            fail(str(exc))
        return FlashcardMachine(transcripts_dir=args.transcripts, deck=deck)

    return FlashcardMachine(open_catalog(args.root), transcripts_dir=args.transcripts)


def print_topics(root):
    catalog = open_catalog(root)
    topics = catalog.list()
    if not topics:
        print(f"{YELLOW}No topics in {root}{RESET}")
        return
    print(f"{BOLD}Topics in {root}:{RESET}")
    for name in topics:
        print(f"  {CYAN}{name}{RESET}")


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.list:
        print_topics(args.root)
        return

    try:
        setup_logging(args.log_file, args.verbose)
    except OSError as exc:
        fail(f"Cannot open log file {args.log_file}: {exc}")

    machine = build_machine(args)
    log.info("Starting flashcards")

    run(machine)

    if machine.last_transcript:
        print(f"{GREEN}Saved session: {machine.last_transcript}{RESET}")


if __name__ == "__main__":
    main()
