import os

import pytest


def write_topic(root, name, questions, answers):
    """Create topic *name* under *root* with the given lines; return its directory."""
    directory = os.path.join(str(root), name)
    os.makedirs(directory, exist_ok=True)
    for filename, lines in (("questions.txt", questions), ("answers.txt", answers)):
        with open(os.path.join(directory, filename), "w", encoding="utf-8") as fh:
            fh.write("".join(line + "\n" for line in lines))
    return directory


def read_lines(path):
    with open(path, encoding="utf-8") as fh:
        return fh.read().splitlines()


@pytest.fixture
def topics_root(tmp_path):
    root = tmp_path / "topics"
    root.mkdir()
    return str(root)


@pytest.fixture
def transcripts_dir(tmp_path):
    return str(tmp_path / "transcripts")


@pytest.fixture
def ai_topic(topics_root):
    return write_topic(topics_root, "AI", ["Q1", "Q2"], ["A1", "A2"])
