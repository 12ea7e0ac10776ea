import os

import pytest

import flash_decks
from flash_decks import (
    BlankCardError, Card, DeckWriteError, InvalidTopicNameError,
    MalformedDeckError, TopicCatalog, TopicExistsError, create_topic,
    load_files, load_topic, save_deck,
)
from conftest import read_lines, write_topic


def test_load_topic_pairs_lines(topics_root, ai_topic):
    deck = load_topic(topics_root, "AI")
    assert deck.topic == "AI"
    assert deck.cards == [Card("Q1", "A1"), Card("Q2", "A2")]
    assert not deck.dirty


def test_load_rejects_mismatched_counts(topics_root):
    write_topic(topics_root, "Broken", ["Q1", "Q2", "Q3"], ["A1", "A2"])
    with pytest.raises(MalformedDeckError, match="3 questions vs 2 answers"):
        load_topic(topics_root, "Broken")


def test_load_rejects_missing_answers_file(topics_root, ai_topic):
    os.remove(os.path.join(ai_topic, "answers.txt"))
    with pytest.raises(MalformedDeckError):
        load_topic(topics_root, "AI")


def test_load_rejects_unknown_topic(topics_root):
    with pytest.raises(MalformedDeckError):
        load_topic(topics_root, "Nope")


def test_empty_files_give_empty_deck(topics_root):
    write_topic(topics_root, "Empty", [], [])
    assert load_topic(topics_root, "Empty").cards == []


def test_trailing_blank_lines_are_trimmed_identically(topics_root):
    directory = write_topic(topics_root, "T", [], [])
    with open(os.path.join(directory, "questions.txt"), "w", encoding="utf-8") as fh:
        fh.write("Q1\nQ2\n\n   \n")
    with open(os.path.join(directory, "answers.txt"), "w", encoding="utf-8") as fh:
        fh.write("A1\nA2")
    deck = load_topic(topics_root, "T")
    assert [c.question for c in deck.cards] == ["Q1", "Q2"]
    assert [c.answer for c in deck.cards] == ["A1", "A2"]


def test_interior_whitespace_and_blank_lines_are_preserved(topics_root):
    write_topic(topics_root, "T", ["  indented  ", "", "last"], ["a", "b", "c"])
    deck = load_topic(topics_root, "T")
    assert [c.question for c in deck.cards] == ["  indented  ", "", "last"]


def test_interior_blank_card_survives_a_save(topics_root):
    write_topic(topics_root, "T", ["Q1", "", "Q3"], ["A1", "A2", "A3"])
    first = load_topic(topics_root, "T")
    save_deck(first)
    second = load_topic(topics_root, "T")
    assert second.cards == [Card("Q1", "A1"), Card("", "A2"), Card("Q3", "A3")]


def test_blank_card_in_the_middle_is_saved(topics_root, ai_topic):
    deck = load_topic(topics_root, "AI")
    deck.set_answer(0, "   ")
    save_deck(deck)
    assert read_lines(os.path.join(ai_topic, "answers.txt")) == ["   ", "A2"]
    assert load_topic(topics_root, "AI").cards == deck.cards


def test_crlf_line_endings(topics_root):
    directory = write_topic(topics_root, "T", [], [])
    for name, body in (("questions.txt", b"Q1\r\nQ2\r\n"), ("answers.txt", b"A1\r\nA2\r\n")):
        with open(os.path.join(directory, name), "wb") as fh:
            fh.write(body)
    deck = load_topic(topics_root, "T")
    assert deck.cards == [Card("Q1", "A1"), Card("Q2", "A2")]


def test_load_save_load_round_trip(topics_root):
    questions = ["What is 2+2?", "Capital of France?", "  spaced  out  "]
    answers = ["4", "Paris", "yes, with spaces"]
    write_topic(topics_root, "Mixed", questions, answers)

    first = load_topic(topics_root, "Mixed")
    save_deck(first)
    second = load_topic(topics_root, "Mixed")

    assert second.cards == first.cards
    assert [c.question for c in second.cards] == questions


def test_save_writes_edits_and_clears_dirty(topics_root, ai_topic):
    deck = load_topic(topics_root, "AI")
    deck.set_answer(0, "Artificial")
    deck.add_card("Q3", "A3")
    assert deck.dirty

    save_deck(deck)

    assert not deck.dirty
    assert read_lines(os.path.join(ai_topic, "questions.txt")) == ["Q1", "Q2", "Q3"]
    assert read_lines(os.path.join(ai_topic, "answers.txt")) == ["Artificial", "A2", "A3"]
    assert sorted(os.listdir(ai_topic)) == ["answers.txt", "questions.txt"]


def test_save_empty_deck_writes_empty_files(topics_root, ai_topic):
    deck = load_topic(topics_root, "AI")
    deck.delete_card(0)
    deck.delete_card(0)
    save_deck(deck)
    assert load_topic(topics_root, "AI").cards == []


def test_blank_card_is_not_saved(topics_root, ai_topic):
    deck = load_topic(topics_root, "AI")
    deck.add_card("Q3", "")
    with pytest.raises(BlankCardError, match="Card 3 has a blank answer"):
        save_deck(deck)
    assert deck.dirty
    assert read_lines(os.path.join(ai_topic, "answers.txt")) == ["A1", "A2"]


def test_failure_before_commit_keeps_old_files(topics_root, ai_topic, monkeypatch):
    deck = load_topic(topics_root, "AI")
    deck.add_card("Q3", "A3")
    real_write_temp = flash_decks._write_temp

    def failing_write_temp(target_path, lines):
        if target_path.endswith("answers.txt"):
            raise OSError("disk full")
        return real_write_temp(target_path, lines)

    monkeypatch.setattr(flash_decks, "_write_temp", failing_write_temp)
    with pytest.raises(DeckWriteError, match="disk full"):
        save_deck(deck)
    monkeypatch.undo()

    assert sorted(os.listdir(ai_topic)) == ["answers.txt", "questions.txt"]
    assert load_topic(topics_root, "AI").cards == [Card("Q1", "A1"), Card("Q2", "A2")]
    assert deck.dirty
    assert len(deck.cards) == 3


def test_failed_fdopen_leaves_no_temp_file(topics_root, ai_topic, monkeypatch):
    deck = load_topic(topics_root, "AI")
    deck.add_card("Q3", "A3")

    def broken_fdopen(*args, **kwargs):
        raise OSError("no file objects left")

    monkeypatch.setattr(flash_decks.os, "fdopen", broken_fdopen)
    with pytest.raises(DeckWriteError, match="no file objects left"):
        save_deck(deck)
    monkeypatch.undo()
    assert sorted(os.listdir(ai_topic)) == ["answers.txt", "questions.txt"]


def test_cleanup_failure_keeps_the_original_error(topics_root, ai_topic, monkeypatch):
    deck = load_topic(topics_root, "AI")
    deck.add_card("Q3", "A3")
    real_write_temp = flash_decks._write_temp

    def failing_write_temp(target_path, lines):
        if target_path.endswith("answers.txt"):
            raise OSError("disk full")
        return real_write_temp(target_path, lines)

    def broken_remove(path):
        raise PermissionError("cannot remove")

    monkeypatch.setattr(flash_decks, "_write_temp", failing_write_temp)
    monkeypatch.setattr(flash_decks.os, "remove", broken_remove)
    with pytest.raises(DeckWriteError, match="disk full"):
        save_deck(deck)
    monkeypatch.undo()
    assert load_topic(topics_root, "AI").cards == [Card("Q1", "A1"), Card("Q2", "A2")]


def test_interrupted_replace_is_rolled_forward_on_load(topics_root, ai_topic, monkeypatch):
    deck = load_topic(topics_root, "AI")
    deck.add_card("Q3", "A3")
    real_replace = os.replace
    calls = []

    def crash_on_answers(src, dst):
        calls.append(dst)
        if str(dst).endswith("answers.txt"):
            raise OSError("power cut")
        real_replace(src, dst)

    monkeypatch.setattr(flash_decks.os, "replace", crash_on_answers)
    with pytest.raises(DeckWriteError):
        save_deck(deck)
    monkeypatch.undo()

    # The questions file is already new, the answers file still old.
    assert len(read_lines(os.path.join(ai_topic, "questions.txt"))) == 3
    assert len(read_lines(os.path.join(ai_topic, "answers.txt"))) == 2

    reloaded = load_topic(topics_root, "AI")
    assert reloaded.cards == [Card("Q1", "A1"), Card("Q2", "A2"), Card("Q3", "A3")]
    assert sorted(os.listdir(ai_topic)) == ["answers.txt", "questions.txt"]


def test_uncommitted_temp_files_are_discarded_on_load(topics_root, ai_topic):
    stray = os.path.join(ai_topic, ".questions.txt.abc123.tmp")
    with open(stray, "w", encoding="utf-8") as fh:
        fh.write("half written")
    deck = load_topic(topics_root, "AI")
    assert len(deck.cards) == 2
    assert not os.path.exists(stray)


def test_save_retry_after_failure(topics_root, ai_topic, monkeypatch):
    deck = load_topic(topics_root, "AI")
    deck.set_question(1, "Q2 edited")

    def refuse(src, dst):
        raise OSError("read-only")

    monkeypatch.setattr(flash_decks.os, "replace", refuse)
    with pytest.raises(DeckWriteError):
        save_deck(deck)
    monkeypatch.undo()

    save_deck(deck)
    assert read_lines(os.path.join(ai_topic, "questions.txt")) == ["Q1", "Q2 edited"]


def test_single_deck_files_in_different_directories(tmp_path):
    (tmp_path / "q").mkdir()
    (tmp_path / "a").mkdir()
    qpath = tmp_path / "q" / "capitals.txt"
    apath = tmp_path / "a" / "capitals-answers.txt"
    qpath.write_text("France\nSpain\n", encoding="utf-8")
    apath.write_text("Paris\nMadrid\n", encoding="utf-8")

    deck = load_files(str(qpath), str(apath))
    assert deck.topic == "capitals"
    deck.set_answer(1, "Madrid!")
    save_deck(deck)

    assert read_lines(str(apath)) == ["Paris", "Madrid!"]
    assert read_lines(str(qpath)) == ["France", "Spain"]


# ── Topics ────────────────────────────────────────────────────────────────────


def test_create_topic_makes_two_empty_files(topics_root):
    deck = create_topic(topics_root, "  Biology ")
    assert deck.topic == "Biology"
    assert deck.cards == []
    directory = os.path.join(topics_root, "Biology")
    assert sorted(os.listdir(directory)) == ["answers.txt", "questions.txt"]
    assert load_topic(topics_root, "Biology").cards == []


def test_create_existing_topic_fails(topics_root, ai_topic):
    with pytest.raises(TopicExistsError):
        create_topic(topics_root, "AI")


@pytest.mark.parametrize("name", ["", "   ", "a/b", "..", "../escape", "back\\slash", ".hidden"])
def test_create_topic_rejects_bad_names(topics_root, name):
    with pytest.raises(InvalidTopicNameError):
        create_topic(topics_root, name)
    assert os.listdir(topics_root) == []


def test_catalog_lists_topics_alphabetically(topics_root):
    for name in ("zoology", "Algebra", "chemistry"):
        write_topic(topics_root, name, [], [])
    os.makedirs(os.path.join(topics_root, ".cache"))
    with open(os.path.join(topics_root, "notes.txt"), "w", encoding="utf-8") as fh:
        fh.write("not a topic")

    catalog = TopicCatalog(topics_root)
    assert catalog.list() == ["Algebra", "chemistry", "zoology"]
    assert catalog.list() == catalog.list()
    assert catalog.exists("Algebra")
    assert not catalog.exists("physics")


def test_catalog_create_delegates_to_store(topics_root):
    catalog = TopicCatalog(topics_root)
    deck = catalog.create("History")
    assert catalog.exists("History")
    assert catalog.list() == ["History"]
    assert catalog.load("History").cards == deck.cards == []
