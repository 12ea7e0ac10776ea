"""
Flashcards — Session Tracker and Transcript Writer
==================================================
A Session is one quiz run over a deck: a traversal order fixed at start,
the current position (0..N, N meaning done) and the responses recorded so
far, one per visited card, in traversal order.
"""

from __future__ import annotations

import datetime
import logging
import os
import random
from dataclasses import dataclass, field
from typing import Optional

from flash_decks import Card, Deck, EmptyDeckError, TranscriptWriteError

log = logging.getLogger(__name__)

TRANSCRIPT_PREFIX = "flashcard_responses_"
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
SEPARATOR = "-" * 60


@dataclass
class Response:
    card_index: int
    question: str
    given_answer: str
    correct_answer: str


@dataclass
class Session:
    deck: Deck
    order: list
    randomized: bool = False
    position: int = 0
    responses: list = field(default_factory=list)
    transcript_path: Optional[str] = None

    @property
    def total(self) -> int:
        return len(self.order)

    def current_index(self):
        """Deck index of the current card, or None once done."""
        if self.position >= len(self.order):
            return None
        return self.order[self.position]

    def current_card(self):
        index = self.current_index()
        return None if index is None else self.deck.cards[index]

    def is_done(self) -> bool:
        return self.position >= len(self.order)

    def answered_current(self) -> bool:
        return len(self.responses) > self.position

    def submit_answer(self, text: str) -> Response:
        """Record the answer for the current card; at most once per position."""
        index = self.current_index()
        if index is None:
            raise IndexError("Session is already done")
        if self.answered_current():
            return self.responses[self.position]
        card = self.deck.cards[index]
        response = Response(index, card.question, text, card.answer)
        self.responses.append(response)
        return response

    def advance(self) -> None:
        if self.position < len(self.order):
            self.position += 1

    def progress(self) -> tuple:
        return self.position, len(self.order)

    def refresh_card(self, card_index: int) -> None:
        """Copy edited card text into the responses already recorded for it."""
        card: Card = self.deck.cards[card_index]
        for response in self.responses:
            if response.card_index == card_index:
                response.question = card.question
                response.correct_answer = card.answer


def start_session(deck: Deck, randomized: bool, rng: Optional[random.Random] = None) -> Session:
    """Build the traversal order for *deck*; refuse an empty deck."""
    if not deck.cards:
        raise EmptyDeckError(f"Topic '{deck.topic}' has no cards to study")
    order = list(range(len(deck.cards)))
    if randomized:
        (rng or random).shuffle(order)
    log.info(
        "Started %s session on '%s' (%d cards)",
        "random" if randomized else "sequential", deck.topic, len(order),
    )
    return Session(deck, order, randomized)


# ── Transcript ────────────────────────────────────────────────────────────────


def format_transcript(session: Session, when: datetime.datetime) -> str:
    lines = [
        f"Topic: {session.deck.topic}",
        f"Date: {when.strftime('%Y-%m-%d %H:%M:%S')}",
        f"Order: {'random' if session.randomized else 'sequential'}",
        "",
        SEPARATOR,
        "",
    ]
    for number, response in enumerate(session.responses, 1):
        lines += [
            f"Q{number} (#{response.card_index + 1})",
            response.question,
            "",
            "Your answer:",
            response.given_answer or "(none)",
            "",
            "Correct:",
            response.correct_answer,
            "",
            SEPARATOR,
            "",
        ]
    return "\n".join(lines)


def write_transcript(session: Session, directory: str, now=None) -> str:
    """Write *session* to a new timestamped file in *directory*; return its path.

    An existing file is never overwritten: a second write within the same
    second gets a ``-1``, ``-2``... suffix.
    """
    when = now or datetime.datetime.now()
    stem = TRANSCRIPT_PREFIX + when.strftime(TIMESTAMP_FORMAT)
    body = format_transcript(session, when)
    try:
        os.makedirs(directory, exist_ok=True)
        suffix = 0
        while True:
            name = f"{stem}.txt" if suffix == 0 else f"{stem}-{suffix}.txt"
            path = os.path.join(directory, name)
            try:
                with open(path, "x", encoding="utf-8") as fh:
                    fh.write(body)
                break
            except FileExistsError:
                suffix += 1
    except OSError as exc:
        raise TranscriptWriteError(f"Could not write transcript: {exc}") from exc
    log.info("Wrote transcript %s (%d responses)", path, len(session.responses))
    return path
