"""
Flashcards — Screen State Machine
=================================
Exactly one screen is live at a time. Every screen is a small frozen
dataclass carrying only its own working data (selection, text buffer,
edit target...). ``FlashcardMachine.handle`` takes one abstract key
identifier, runs the transition for the live screen and replaces the
screen as a whole. ``FlashcardMachine.view`` turns the current state into
a ``View`` snapshot for whatever draws the terminal.

Key identifiers are the names Textual uses: single printable characters
("a", "Y", " "), "enter", "escape", "backspace", "up", "down" and
"ctrl+<letter>".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from flash_decks import (
    BlankCardError, Deck, DeckWriteError, FlashcardError, MalformedDeckError,
    TopicCatalog, save_deck,
)
from flash_quiz import Session, start_session, write_transcript

log = logging.getLogger(__name__)

ENTER = "enter"
ESCAPE = "escape"
BACKSPACE = "backspace"
UP = "up"
DOWN = "down"
CTRL_A = "ctrl+a"
CTRL_B = "ctrl+b"
CTRL_E = "ctrl+e"
CTRL_Q = "ctrl+q"
CTRL_R = "ctrl+r"
CTRL_S = "ctrl+s"


# ── Screens ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TopicSelect:
    selected: int = 0
    message: str = ""


@dataclass(frozen=True)
class TopicCreate:
    buffer: str = ""
    message: str = ""


@dataclass(frozen=True)
class MainMenu:
    message: str = ""
    confirm_discard: bool = False


@dataclass(frozen=True)
class Mode:
    message: str = ""


@dataclass(frozen=True)
class Ask:
    buffer: str = ""


@dataclass(frozen=True)
class Reveal:
    message: str = ""


@dataclass(frozen=True)
class CardList:
    selected: int = 0
    message: str = ""


@dataclass(frozen=True)
class EditQuestion:
    card_index: int
    buffer: str
    return_to: object


@dataclass(frozen=True)
class EditAnswer:
    card_index: int
    buffer: str
    return_to: object


@dataclass(frozen=True)
class Review:
    return_to: object
    scroll: int = 0


@dataclass(frozen=True)
class Done:
    message: str = ""


@dataclass(frozen=True)
class ConfirmQuit:
    return_to: object


SCREENS = (
    TopicSelect, TopicCreate, MainMenu, Mode, Ask, Reveal, CardList,
    EditQuestion, EditAnswer, Review, Done, ConfirmQuit,
)

# Only their own commit/cancel keys apply; global keys are ignored here.
TEXT_ENTRY = (TopicCreate, EditQuestion, EditAnswer)

TITLES = {
    TopicSelect:  "Select Topic",
    TopicCreate:  "New Topic",
    MainMenu:     "Main Menu",
    Mode:         "Mode Select",
    Ask:          "Question",
    Reveal:       "Answer",
    CardList:     "Cards",
    EditQuestion: "Edit Question",
    EditAnswer:   "Edit Answer",
    Review:       "Review",
    Done:         "Session Complete",
    ConfirmQuit:  "Quit",
}

HINTS = {
    TopicSelect:  "↑/↓ Move • Enter Open • C Create topic • Ctrl+Q Quit",
    TopicCreate:  "Type a name • Enter Create • Esc Cancel",
    MainMenu:     "S Study • E Edit cards • T Change topic • Ctrl+Q Quit",
    Mode:         "Study in random order? Y Yes • N No • Esc Back",
    Ask:          "Type your answer • Enter Submit • Ctrl+R Review • Esc Menu",
    Reveal:       "N/Enter Next • Ctrl+E Edit question • Ctrl+A Edit answer • Ctrl+S Save • Ctrl+R Review",
    CardList:     "↑/↓ Move • E Question • A Answer • N New • D Delete • S Save • B Back",
    EditQuestion: "Enter Apply • Esc Cancel • Ctrl+S Apply and save to file",
    EditAnswer:   "Enter Apply • Esc Cancel • Ctrl+S Apply and save to file",
    Review:       "↑/↓ Scroll • Esc/Ctrl+B Back",
    Done:         "R Review • Enter Main menu • Ctrl+Q Quit",
    ConfirmQuit:  "Y Quit • N Stay",
}


def is_char(key: str) -> bool:
    return len(key) == 1 and key.isprintable()


def edit_buffer(buffer: str, key: str):
    """Apply a typing key to *buffer*; None if the key is not a typing key."""
    if key == BACKSPACE:
        return buffer[:-1]
    if is_char(key):
        return buffer + key
    return None


# ── Render snapshot ───────────────────────────────────────────────────────────


@dataclass
class View:
    screen: str
    title: str
    hint: str
    message: str = ""
    topic: Optional[str] = None
    topics: list = field(default_factory=list)
    selected: int = 0
    question: Optional[str] = None
    answer: Optional[str] = None
    buffer: Optional[str] = None
    progress: tuple = (0, 0)
    responses: list = field(default_factory=list)
    cards: list = field(default_factory=list)
    scroll: int = 0
    dirty: bool = False
    card_count: int = 0

    @property
    def percent(self) -> float:
        current, total = self.progress
        return current / total * 100 if total else 0.0


# ── Machine ───────────────────────────────────────────────────────────────────


class FlashcardMachine:
    """Owns the live screen, the loaded deck and the current session.

    Pass a ``catalog`` to start at TopicSelect, or a ready ``deck`` to start
    at MainMenu (single-deck mode, no catalog needed).
    """

    def __init__(
        self,
        catalog: Optional[TopicCatalog] = None,
        transcripts_dir: str = ".",
        deck: Optional[Deck] = None,
        rng=None,
    ) -> None:
        if catalog is None and deck is None:
            raise ValueError("Need a topic catalog or a deck")
        self.catalog = catalog
        self.transcripts_dir = transcripts_dir
        self.rng = rng
        self.deck: Optional[Deck] = deck
        self.session: Optional[Session] = None
        self.topics: list = []
        self.quit_requested = False
        self.last_transcript: Optional[str] = None
        if deck is None:
            self.topics = catalog.list()
            self.screen = TopicSelect()
        else:
            self.screen = MainMenu(f"Loaded '{deck.topic}' ({len(deck)} cards)")

        self._handlers = {
            TopicSelect:  self._on_topic_select,
            TopicCreate:  self._on_topic_create,
            MainMenu:     self._on_main_menu,
            Mode:         self._on_mode,
            Ask:          self._on_ask,
            Reveal:       self._on_reveal,
            CardList:     self._on_card_list,
            EditQuestion: self._on_edit,
            EditAnswer:   self._on_edit,
            Review:       self._on_review,
            Done:         self._on_done,
            ConfirmQuit:  self._on_confirm_quit,
        }

    # ── Dispatch ──────────────────────────────────────────────────────────────

    def handle(self, key: str) -> bool:
        """Process one key; return True once the user has confirmed quitting."""
        if self.quit_requested:
            return True
        screen = self.screen
        if not isinstance(screen, TEXT_ENTRY):
            if key == CTRL_Q and not isinstance(screen, ConfirmQuit):
                self.screen = ConfirmQuit(screen)
                return False
            if (key == CTRL_R and self.session is not None
                    and not isinstance(screen, (Review, ConfirmQuit))):
                self.screen = Review(screen)
                return False
        self._handlers[type(screen)](screen, key)
        return self.quit_requested

    # ── Side effects ──────────────────────────────────────────────────────────

    def _refresh_topics(self) -> None:
        self.topics = self.catalog.list()

    def _save(self) -> str:
        """Persist the deck; return the message to show where save was asked."""
        try:
            save_deck(self.deck)
        except (BlankCardError, DeckWriteError) as exc:
            log.warning("Save failed: %s", exc)
            return str(exc)
        return f"Saved {len(self.deck)} cards to '{self.deck.topic}'"

    def _write_transcript(self) -> str:
        session = self.session
        try:
            session.transcript_path = write_transcript(session, self.transcripts_dir)
        except FlashcardError as exc:
            log.warning("Transcript failed: %s", exc)
            return f"{exc} (press S to retry)"
        self.last_transcript = session.transcript_path
        return f"Saved session: {session.transcript_path}"

    def _finish(self) -> None:
        log.info("Finished session on '%s'", self.deck.topic)
        self.screen = Done(self._write_transcript())

    def _leave_session(self, message: str = "") -> None:
        if self.session is not None and not self.session.is_done():
            log.info("Abandoned session on '%s'", self.deck.topic)
        self.session = None
        self.screen = MainMenu(message)

    # ── Transitions ───────────────────────────────────────────────────────────

    def _on_topic_select(self, screen: TopicSelect, key: str) -> None:
        command = key.lower()
        if key == UP:
            self.screen = replace(screen, selected=max(0, screen.selected - 1))
        elif key == DOWN:
            last = max(0, len(self.topics) - 1)
            self.screen = replace(screen, selected=min(last, screen.selected + 1))
        elif key == ENTER:
            if not self.topics:
                self.screen = replace(screen, message="No topics yet. Press C to create one.")
                return
            name = self.topics[min(screen.selected, len(self.topics) - 1)]
            try:
                deck = self.catalog.load(name)
            except MalformedDeckError as exc:
                log.warning("Cannot open topic '%s': %s", name, exc)
                self.screen = replace(screen, message=str(exc))
                return
            self.deck = deck
            self.session = None
            self.screen = MainMenu(f"Loaded '{deck.topic}' ({len(deck)} cards)")
        elif command == "c":
            self.screen = TopicCreate()

    def _on_topic_create(self, screen: TopicCreate, key: str) -> None:
        if key == ENTER:
            try:
                deck = self.catalog.create(screen.buffer)
            except FlashcardError as exc:
                self.screen = replace(screen, message=str(exc))
                return
            self._refresh_topics()
            self.deck = deck
            self.session = None
            self.screen = MainMenu(f"Created topic '{deck.topic}'. Press E to add cards.")
        elif key == ESCAPE:
            self._refresh_topics()
            self.screen = TopicSelect()
        else:
            buffer = edit_buffer(screen.buffer, key)
            if buffer is not None:
                self.screen = replace(screen, buffer=buffer, message="")

    def _on_main_menu(self, screen: MainMenu, key: str) -> None:
        command = key.lower()
        if command == "s":
            if not self.deck.cards:
                self.screen = MainMenu(f"Topic '{self.deck.topic}' has no cards to study")
            else:
                self.screen = Mode()
        elif command == "e":
            self.screen = CardList()
        elif command == "t" and self.catalog is not None:
            if self.deck.dirty and not screen.confirm_discard:
                self.screen = MainMenu(
                    "Unsaved edits. Press T again to discard them, or E then S to save.",
                    confirm_discard=True,
                )
                return
            self._refresh_topics()
            selected = self.topics.index(self.deck.topic) if self.deck.topic in self.topics else 0
            self.deck = None
            self.screen = TopicSelect(selected)

    def _on_mode(self, screen: Mode, key: str) -> None:
        command = key.lower()
        if command in ("y", "n"):
            try:
                self.session = start_session(self.deck, command == "y", self.rng)
            except FlashcardError as exc:
                self.screen = MainMenu(str(exc))
                return
            self.screen = Ask()
        elif key == ESCAPE:
            self.screen = MainMenu()

    def _on_ask(self, screen: Ask, key: str) -> None:
        if key == ENTER:
            self.session.submit_answer(screen.buffer)
            self.screen = Reveal()
        elif key == ESCAPE:
            self._leave_session("Session abandoned")
        else:
            buffer = edit_buffer(screen.buffer, key)
            if buffer is not None:
                self.screen = replace(screen, buffer=buffer)

    def _on_reveal(self, screen: Reveal, key: str) -> None:
        session = self.session
        if key == ENTER or key.lower() == "n":
            session.advance()
            if session.is_done():
                self._finish()
            else:
                self.screen = Ask()
        elif key in (CTRL_E, CTRL_A):
            index = session.current_index()
            card = self.deck.cards[index]
            back = replace(screen, message="")
            if key == CTRL_E:
                self.screen = EditQuestion(index, card.question, back)
            else:
                self.screen = EditAnswer(index, card.answer, back)
        elif key == CTRL_S:
            self.screen = Reveal(self._save())
        elif key == ESCAPE:
            self._leave_session("Session abandoned")

    def _on_edit(self, screen, key: str) -> None:
        if key in (ENTER, CTRL_S):
            if isinstance(screen, EditQuestion):
                self.deck.set_question(screen.card_index, screen.buffer)
            else:
                self.deck.set_answer(screen.card_index, screen.buffer)
            if self.session is not None:
                self.session.refresh_card(screen.card_index)
            message = self._save() if key == CTRL_S else ""
            self.screen = replace(screen.return_to, message=message)
        elif key == ESCAPE:
            self.screen = screen.return_to
        else:
            buffer = edit_buffer(screen.buffer, key)
            if buffer is not None:
                self.screen = replace(screen, buffer=buffer)

    def _on_card_list(self, screen: CardList, key: str) -> None:
        cards = self.deck.cards
        command = key.lower()
        if key == UP:
            self.screen = replace(screen, selected=max(0, screen.selected - 1), message="")
        elif key == DOWN:
            last = max(0, len(cards) - 1)
            self.screen = replace(screen, selected=min(last, screen.selected + 1), message="")
        elif command in ("e", "a"):
            if not cards:
                return
            back = replace(screen, message="")
            card = cards[screen.selected]
            if command == "e":
                self.screen = EditQuestion(screen.selected, card.question, back)
            else:
                self.screen = EditAnswer(screen.selected, card.answer, back)
        elif command == "n":
            index = self.deck.add_card()
            self.screen = CardList(index, f"Added card {index + 1}. Press E and A to fill it in.")
        elif command == "d":
            if not cards:
                return
            self.deck.delete_card(screen.selected)
            selected = min(screen.selected, max(0, len(cards) - 1))
            self.screen = CardList(selected, f"Deleted card {screen.selected + 1}")
        elif command == "s" or key == CTRL_S:
            self.screen = replace(screen, message=self._save())
        elif command == "b" or key == ESCAPE:
            self.screen = MainMenu("Unsaved edits" if self.deck.dirty else "")

    def _on_review(self, screen: Review, key: str) -> None:
        if key == UP:
            self.screen = replace(screen, scroll=max(0, screen.scroll - 1))
        elif key == DOWN:
            last = max(0, len(self.session.responses) - 1) if self.session else 0
            self.screen = replace(screen, scroll=min(last, screen.scroll + 1))
        elif key in (ESCAPE, CTRL_B):
            self.screen = screen.return_to

    def _on_done(self, screen: Done, key: str) -> None:
        command = key.lower()
        if command == "r":
            self.screen = Review(screen)
        elif key == ENTER or command == "m":
            self._leave_session()
        elif command == "s" and self.session.transcript_path is None:
            self.screen = Done(self._write_transcript())

    def _on_confirm_quit(self, screen: ConfirmQuit, key: str) -> None:
        command = key.lower()
        if command == "y":
            log.info("Quit confirmed")
            self.quit_requested = True
        elif command == "n" or key == ESCAPE:
            self.screen = screen.return_to

    # ── Snapshot ──────────────────────────────────────────────────────────────

    def view(self) -> View:
        screen = self.screen
        kind = type(screen)
        session = self.session
        deck = self.deck
        view = View(
            screen=kind.__name__,
            title=TITLES[kind],
            hint=HINTS[kind],
            message=getattr(screen, "message", ""),
            topic=deck.topic if deck else None,
            dirty=bool(deck and deck.dirty),
            card_count=len(deck) if deck else 0,
        )
        if session is not None:
            view.progress = session.progress()
            if kind is Reveal:
                # Counts the card just answered.
                view.progress = (len(session.responses), session.total)
            view.responses = list(session.responses)

        if kind is TopicSelect:
            view.topics = list(self.topics)
            view.selected = screen.selected
        elif kind is TopicCreate:
            view.buffer = screen.buffer
        elif kind in (Ask, Reveal):
            card = session.current_card()
            view.question = card.question
            if kind is Ask:
                view.buffer = screen.buffer
            else:
                view.answer = card.answer
                view.buffer = session.responses[session.position].given_answer
        elif kind is CardList:
            view.cards = [(c.question, c.answer) for c in deck.cards]
            view.selected = screen.selected
        elif kind in (EditQuestion, EditAnswer):
            card = deck.cards[screen.card_index]
            view.question = card.question
            view.answer = card.answer
            view.buffer = screen.buffer
            view.selected = screen.card_index
        elif kind is Review:
            view.scroll = screen.scroll
        elif kind is ConfirmQuit:
            view.message = (
                "You have unsaved edits. Quit anyway?" if view.dirty else "Really quit?"
            )
        return view
