#!/usr/bin/env python3
"""
Flashcards — Textual front end
==============================
Draws the state machine's ``View`` snapshots and feeds it key presses.
All flow lives in flash_screens; this module only turns Textual key events
into key identifiers and snapshots into Rich markup.

Run:
    pip install textual
    python flashcards.py
"""

from __future__ import annotations

from typing import Optional

from rich.markup import escape
from textual import events
from textual.app import App, ComposeResult
from textual.containers import Container, Vertical
from textual.screen import Screen
from textual.widgets import Header, Rule, Static

from flash_screens import CTRL_Q, FlashcardMachine, View

INPUT_SCREENS = ("TopicCreate", "Ask", "EditQuestion", "EditAnswer")


# ── Helpers ───────────────────────────────────────────────────────────────────


def normalize_key(event: events.Key):
    """Key identifier for the state machine, or None for keys it never uses."""
    if event.is_printable and event.character:
        return event.character
    if event.key in ("tab", "shift+tab"):
        return None
    return event.key


def progress_bar(current: int, total: int, width: int = 30) -> str:
    if not total:
        return f"[dim]{'░' * width}[/dim] [dim]--[/dim]"
    pct = current / total
    filled = round(pct * width)
    return (
        f"[cyan]{'█' * filled}[/cyan]"
        f"[dim]{'░' * (width - filled)}[/dim]"
        f" [bold]{pct * 100:.0f}%[/bold] ({current}/{total})"
    )


def shorten(text: str, width: int = 48) -> str:
    return text if len(text) <= width else text[: width - 1] + "…"


# ── Body renderers ────────────────────────────────────────────────────────────


def _topic_select(view: View) -> list:
    if not view.topics:
        return ["[dim]No topics yet. Press C to create one.[/dim]"]
    lines = []
    for i, name in enumerate(view.topics):
        if i == view.selected:
            lines.append(f"[bold cyan]▶ {escape(name)}[/bold cyan]")
        else:
            lines.append(f"  {escape(name)}")
    return lines


def _topic_create(view: View) -> list:
    return ["[bold]Name for the new topic:[/bold]"]


def _main_menu(view: View) -> list:
    return [
        f"[bold]Topic:[/bold] [cyan]{escape(view.topic)}[/cyan]",
        f"[bold]Cards:[/bold] {view.card_count}",
        "",
        "[bold]S[/bold]  Study",
        "[bold]E[/bold]  Edit cards",
    ]


def _mode(view: View) -> list:
    return ["[bold]Study in random order?[/bold]  [dim](Y/N)[/dim]"]


def _ask(view: View) -> list:
    return [f"[bold cyan]{escape(view.question)}[/bold cyan]"]


def _reveal(view: View) -> list:
    return [
        f"[bold]Question:[/bold] {escape(view.question)}",
        "",
        f"[bold]Your answer:[/bold] {escape(view.buffer) or '[dim](none)[/dim]'}",
        "",
        f"[bold green]Answer:[/bold green] [green]{escape(view.answer)}[/green]",
    ]


def _card_list(view: View) -> list:
    if not view.cards:
        return ["[dim]No cards. Press N to add one.[/dim]"]
    lines = []
    for i, (question, answer) in enumerate(view.cards):
        row = f"{i + 1:>3}. {escape(shorten(question))}  [dim]→[/dim]  {escape(shorten(answer))}"
        if i == view.selected:
            lines.append(f"[reverse]{row}[/reverse]")
        else:
            lines.append(row)
    return lines


def _edit(view: View) -> list:
    current = view.question if view.screen == "EditQuestion" else view.answer
    return [
        f"[dim]Card {view.selected + 1}[/dim]",
        f"[bold]Current:[/bold] {escape(current)}",
    ]


def _review(view: View) -> list:
    if not view.responses:
        return ["[dim]No answers recorded yet.[/dim]"]
    lines = []
    for response in view.responses[view.scroll:]:
        lines += [
            f"[bold]Q#{response.card_index + 1}[/bold]",
            escape(response.question),
            "",
            f"You: {escape(response.given_answer) or '[dim](none)[/dim]'}",
            f"Correct: [green]{escape(response.correct_answer)}[/green]",
            "─" * 40,
        ]
    return lines


def _done(view: View) -> list:
    answered, total = len(view.responses), view.progress[1]
    return [
        "[bold green]Session Complete! 🎯[/bold green]",
        "",
        f"Answered {answered} of {total} cards.",
    ]


def _confirm_quit(view: View) -> list:
    return [f"[bold yellow]{view.message}[/bold yellow]  [dim](Y/N)[/dim]"]


RENDERERS = {
    "TopicSelect":  _topic_select,
    "TopicCreate":  _topic_create,
    "MainMenu":     _main_menu,
    "Mode":         _mode,
    "Ask":          _ask,
    "Reveal":       _reveal,
    "CardList":     _card_list,
    "EditQuestion": _edit,
    "EditAnswer":   _edit,
    "Review":       _review,
    "Done":         _done,
    "ConfirmQuit":  _confirm_quit,
}


def render_body(view: View) -> str:
    return "\n".join(RENDERERS[view.screen](view))


def render_input(view: View) -> str:
    if view.screen not in INPUT_SCREENS:
        return ""
    return f"[bold]>[/bold] {escape(view.buffer)}[blink]▌[/blink]"


def render_message(view: View) -> str:
    if not view.message or view.screen == "ConfirmQuit":
        return ""
    return f"[yellow]{escape(view.message)}[/yellow]"


# ── Screen ────────────────────────────────────────────────────────────────────


class DeckScreen(Screen):
    """The single screen; its widgets are refilled from each View snapshot."""

    AUTO_FOCUS = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Container(id="main-layout"):
            yield Static(id="screen-title", classes="section-title")
            yield Rule()
            with Vertical(id="card-area"):
                yield Static(id="body")
            yield Static(id="input-line")
            yield Static(id="message", classes="feedback-text")
            yield Static(id="progress")
            yield Static(id="hint", classes="hint-text")

    def on_mount(self) -> None:
        self.refresh_view()

    def refresh_view(self) -> None:
        view = self.app.machine.view()
        dirty = "  [red]● unsaved[/red]" if view.dirty else ""
        self.query_one("#screen-title", Static).update(f"[bold]{view.title}[/bold]{dirty}")
        self.query_one("#body", Static).update(render_body(view))
        self.query_one("#input-line", Static).update(render_input(view))
        self.query_one("#message", Static).update(render_message(view))
        self.query_one("#progress", Static).update(progress_bar(*view.progress))
        self.query_one("#hint", Static).update(f"[dim]{view.hint}[/dim]")
        self.app.sub_title = view.topic or ""

    def on_key(self, event: events.Key) -> None:
        key = normalize_key(event)
        if key is None:
            return
        event.stop()
        event.prevent_default()
        self.app.dispatch_key(key)


# ── App ───────────────────────────────────────────────────────────────────────


class FlashcardsApp(App):
    TITLE = "Flashcards"
    SUB_TITLE = ""
    ENABLE_COMMAND_PALETTE = False

    CSS = """
    Screen { background: $surface; }

    #main-layout {
        padding: 1 2;
        height: 1fr;
    }
    .section-title { color: $accent; }

    #card-area {
        height: 1fr;
        border: solid $primary-darken-2;
        padding: 1 2;
        margin-bottom: 1;
        overflow-y: hidden;
    }
    #input-line   { height: 1; }
    .feedback-text { height: auto; padding: 0 0 1 0; }
    #progress     { height: 1; }
    .hint-text    { height: 1; margin-top: 1; }

    Rule { margin: 1 0; }
    """

    def __init__(self, machine: FlashcardMachine) -> None:
        super().__init__()
        self.machine = machine
        self.deck_screen: Optional[DeckScreen] = None

    def on_mount(self) -> None:
        self.deck_screen = DeckScreen()
        self.push_screen(self.deck_screen)

    async def action_quit(self) -> None:
        # Ctrl+Q is bound by Textual itself; route it through the machine.
        self.dispatch_key(CTRL_Q)

    def dispatch_key(self, key: str) -> None:
        if self.machine.handle(key):
            self.exit()
            return
        self.deck_screen.refresh_view()


def run(machine: FlashcardMachine) -> None:
    FlashcardsApp(machine).run()
