"""
Flashcards — Deck Store and Topic Catalog
=========================================
A topic is a directory under the topics root holding two line-aligned
text files: line i of answers.txt answers line i of questions.txt.

Saves are atomic across *both* files. The two temp files are written and
fsync'd first, then a commit marker naming them is put in place, and only
then are the real files replaced. ``recover`` runs before every load and
save: it finishes a committed save that was interrupted and throws away
temp files that were never committed, so a reader only ever sees the
complete old pair or the complete new pair.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import Optional

log = logging.getLogger(__name__)

QUESTIONS_NAME = "questions.txt"
ANSWERS_NAME = "answers.txt"
COMMIT_MARKER = ".commit"
TEMP_SUFFIX = ".tmp"


# ── Errors ────────────────────────────────────────────────────────────────────


class FlashcardError(Exception):
    """Base class for every recoverable error the screens report inline."""


class MalformedDeckError(FlashcardError):
    pass


class EmptyDeckError(FlashcardError):
    pass


class InvalidTopicNameError(FlashcardError):
    pass


class TopicExistsError(FlashcardError):
    pass


class BlankCardError(FlashcardError):
    pass


class DeckWriteError(FlashcardError):
    pass


class TranscriptWriteError(FlashcardError):
    pass


# ── Data ──────────────────────────────────────────────────────────────────────


@dataclass
class Card:
    question: str
    answer: str


@dataclass
class Deck:
    """The single writable copy of a topic's cards for this run.

    ``dirty`` is set by every mutation and cleared by a successful save.
    """

    topic: str
    questions_path: str
    answers_path: str
    cards: list = field(default_factory=list)
    dirty: bool = False

    def __len__(self) -> int:
        return len(self.cards)

    @property
    def directory(self) -> str:
        return os.path.dirname(os.path.abspath(self.questions_path))

    def add_card(self, question: str = "", answer: str = "") -> int:
        self.cards.append(Card(question, answer))
        self.dirty = True
        return len(self.cards) - 1

    def set_question(self, index: int, text: str) -> None:
        self.cards[index].question = text
        self.dirty = True

    def set_answer(self, index: int, text: str) -> None:
        self.cards[index].answer = text
        self.dirty = True

    def delete_card(self, index: int) -> Card:
        card = self.cards.pop(index)
        self.dirty = True
        return card


# ── Reading ───────────────────────────────────────────────────────────────────


def _read_lines(path: str) -> list:
    """Read one file as a list of lines.

    Only the line terminator is removed; trailing blank or whitespace-only
    lines at the end of the file are dropped.
    """
    with open(path, "r", encoding="utf-8") as fh:
        lines = fh.read().split("\n")
    while lines and not lines[-1].strip():
        lines.pop()
    return lines


def _temp_prefix(path: str) -> str:
    return f".{os.path.basename(path)}."


def _discard_temps(paths: tuple) -> None:
    for path in paths:
        directory = os.path.dirname(os.path.abspath(path))
        prefix = _temp_prefix(path)
        for name in os.listdir(directory):
            if name.startswith(prefix) and name.endswith(TEMP_SUFFIX):
                os.remove(os.path.join(directory, name))
                log.warning("Removed uncommitted temp file %s", name)


def recover(questions_path: str, answers_path: str) -> None:
    """Roll a committed save of this file pair forward, or drop an uncommitted one."""
    directory = os.path.dirname(os.path.abspath(questions_path))
    marker = os.path.join(directory, COMMIT_MARKER)
    if os.path.isfile(marker):
        with open(marker, "r", encoding="utf-8") as fh:
            pending = json.load(fh)
        for tmp_path, target_path in pending:
            if os.path.exists(tmp_path):
                os.replace(tmp_path, target_path)
        os.remove(marker)
        log.info("Completed interrupted save in %s", directory)
    _discard_temps((questions_path, answers_path, marker))


def load_files(questions_path: str, answers_path: str, topic: Optional[str] = None) -> Deck:
    """Load a deck from an explicit question/answer file pair."""
    if topic is None:
        topic = os.path.splitext(os.path.basename(questions_path))[0]
    try:
        recover(questions_path, answers_path)
        questions = _read_lines(questions_path)
        answers = _read_lines(answers_path)
    except (OSError, ValueError) as exc:
        raise MalformedDeckError(f"Cannot read deck '{topic}': {exc}") from exc

    if len(questions) != len(answers):
        raise MalformedDeckError(
            f"Mismatched counts in '{topic}': "
            f"{len(questions)} questions vs {len(answers)} answers"
        )

    cards = [Card(q, a) for q, a in zip(questions, answers)]
    log.info("Loaded deck '%s' (%d cards)", topic, len(cards))
    return Deck(topic, questions_path, answers_path, cards)


# ── Writing ───────────────────────────────────────────────────────────────────


def _write_temp(target_path: str, lines: list) -> str:
    """Write *lines* to a fresh temp file beside *target_path*; return its path."""
    target_path = os.path.abspath(target_path)
    fd, tmp_path = tempfile.mkstemp(
        dir=os.path.dirname(target_path),
        prefix=_temp_prefix(target_path),
        suffix=TEMP_SUFFIX,
    )
    try:
        fh = os.fdopen(fd, "w", encoding="utf-8", newline="\n")
    except BaseException:
        os.close(fd)
        _remove_quietly(tmp_path)
        raise
    try:
        with fh:
            for line in lines:
                fh.write(line + "\n")
            fh.flush()
            os.fsync(fh.fileno())
    except BaseException:
        _remove_quietly(tmp_path)
        raise
    return tmp_path


def _remove_quietly(path: str) -> None:
    with contextlib.suppress(OSError):
        os.remove(path)


def save_deck(deck: Deck) -> None:
    """Atomically write both backing files of *deck*.

    Raises BlankCardError before touching the disk if the last card has a
    blank question or answer (loading trims trailing blank lines, so it
    would not come back), and DeckWriteError if the write itself fails.
    Blank cards in between are written as blank lines. The in-memory deck
    is left untouched on failure.
    """
    if deck.cards:
        number, card = len(deck.cards), deck.cards[-1]
        if not card.question.strip():
            raise BlankCardError(f"Card {number} has a blank question")
        if not card.answer.strip():
            raise BlankCardError(f"Card {number} has a blank answer")

    targets = (
        (os.path.abspath(deck.questions_path), [c.question for c in deck.cards]),
        (os.path.abspath(deck.answers_path), [c.answer for c in deck.cards]),
    )
    marker = os.path.join(deck.directory, COMMIT_MARKER)
    pending = []
    try:
        recover(deck.questions_path, deck.answers_path)
        for target_path, lines in targets:
            pending.append((_write_temp(target_path, lines), target_path))
        tmp_marker = _write_temp(marker, [json.dumps(pending)])
    except (OSError, ValueError) as exc:
        for tmp_path, _ in pending:
            _remove_quietly(tmp_path)
        raise DeckWriteError(f"Could not save '{deck.topic}': {exc}") from exc

    try:
        os.replace(tmp_marker, marker)
        for tmp_path, target_path in pending:
            os.replace(tmp_path, target_path)
        os.remove(marker)
    except OSError as exc:
        # Once the marker is in place the next recover() finishes the save.
        raise DeckWriteError(f"Could not save '{deck.topic}': {exc}") from exc

    deck.dirty = False
    log.info("Saved deck '%s' (%d cards)", deck.topic, len(deck.cards))


# ── Topics on disk ────────────────────────────────────────────────────────────


def validate_topic_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise InvalidTopicNameError("Topic name cannot be empty")
    separators = {"/", "\\", os.sep} | ({os.altsep} if os.altsep else set())
    if any(sep in name for sep in separators) or "\0" in name:
        raise InvalidTopicNameError("Topic name cannot contain path separators")
    if name.startswith("."):
        raise InvalidTopicNameError("Topic name cannot start with '.'")
    return name


def topic_paths(root: str, name: str) -> tuple:
    directory = os.path.join(root, name)
    return (
        os.path.join(directory, QUESTIONS_NAME),
        os.path.join(directory, ANSWERS_NAME),
    )


def load_topic(root: str, name: str) -> Deck:
    questions_path, answers_path = topic_paths(root, name)
    if not os.path.isdir(os.path.join(root, name)):
        raise MalformedDeckError(f"Topic '{name}' does not exist")
    return load_files(questions_path, answers_path, topic=name)


def create_topic(root: str, name: str) -> Deck:
    """Create the topic directory with two empty files; return its empty deck."""
    name = validate_topic_name(name)
    directory = os.path.join(root, name)
    try:
        os.mkdir(directory)
    except FileExistsError as exc:
        raise TopicExistsError(f"Topic '{name}' already exists") from exc
    except OSError as exc:
        raise DeckWriteError(f"Could not create topic '{name}': {exc}") from exc
    questions_path, answers_path = topic_paths(root, name)
    try:
        for path in (questions_path, answers_path):
            with open(path, "x", encoding="utf-8"):
                pass
    except OSError as exc:
        raise DeckWriteError(f"Could not create topic '{name}': {exc}") from exc
    log.info("Created topic '%s'", name)
    return Deck(name, questions_path, answers_path)


# ── Topic catalog ─────────────────────────────────────────────────────────────


class TopicCatalog:
    """Topics are the non-hidden directories of ``root``, listed alphabetically."""

    def __init__(self, root: str) -> None:
        self.root = root

    def list(self) -> list:
        names = [
            entry.name for entry in os.scandir(self.root)
            if entry.is_dir() and not entry.name.startswith(".")
        ]
        return sorted(names, key=str.lower)

    def exists(self, name: str) -> bool:
        return os.path.isdir(os.path.join(self.root, name))

    def load(self, name: str) -> Deck:
        return load_topic(self.root, name)

    def create(self, name: str) -> Deck:
        return create_topic(self.root, name)
