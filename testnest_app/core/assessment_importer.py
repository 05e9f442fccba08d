"""Utilities for importing a test from a human-friendly text file.

File format: a header block followed by question blocks, separated by blank
lines or '---':

    TITLE: Test title
    DESCRIPTION: One line describing the test (optional)
    TIMELIMIT: minutes (optional, defaults to 30)

    Q: Question text. Additional lines until the next marker are treated as
       part of the question.
    A: First choice
    B: Second choice
    C: Third choice (optional)
    D: Fourth choice (optional)
    CORRECT: A|B|C|D

Choice markers must be upper-case, so a line such as ``a: first`` continues
the current section. ``Q:`` and ``CORRECT:`` are matched in any case.

Example:

    TITLE: Python Basics
    TIMELIMIT: 10

    Q: What does `len("abc")` return?
    A: 2
    B: 3
    CORRECT: B
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from testnest_app.constants.test_constants import CHOICE_LETTERS, DEFAULT_TIME_LIMIT_MINUTES, MIN_CHOICES
from testnest_app.core.errors import TestImportError
from testnest_app.core.models import Question, Test
from testnest_app.core.validators import validate_question

_HEADER_KEYS = ("TITLE:", "DESCRIPTION:", "TIMELIMIT:")


@dataclass(slots=True)
class ImportedTest:
    """Container for an imported test and the file it came from."""

    source_path: Path
    test: Test


def load_test_from_file(file_path: Path, test_id: str = "") -> ImportedTest:
    text = file_path.read_text(encoding="utf-8")
    test = parse_test_text(text, test_id=test_id)
    return ImportedTest(source_path=file_path, test=test)


def parse_test_text(text: str, test_id: str = "") -> Test:
    blocks = _split_blocks(text)
    if not blocks:
        raise TestImportError("Test file is empty.")

    header: dict[str, str] = {}
    if blocks[0].upper().startswith(_HEADER_KEYS):
        header = _parse_header(blocks.pop(0))

    title = header.get("TITLE", "").strip()
    if not title:
        raise TestImportError("TITLE is required.")

    questions = [_parse_block(block) for block in blocks]
    if not questions:
        raise TestImportError("Test file did not contain any questions.")

    return Test(
        id=test_id,
        title=title,
        description=header.get("DESCRIPTION", "").strip(),
        time_limit_minutes=_parse_time_limit(header.get("TIMELIMIT")),
        questions=questions,
    )


def _split_blocks(text: str) -> list[str]:
    """Split on blank lines and ``---`` separators, dropping empty blocks."""
    blocks: list[list[str]] = [[]]
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if line and line != "---":
            blocks[-1].append(line)
        elif blocks[-1]:
            blocks.append([])
    return ["\n".join(lines) for lines in blocks if lines]


def _parse_header(block: str) -> dict[str, str]:
    header: dict[str, str] = {}
    for raw_line in block.splitlines():
        line = raw_line.strip()
        key, separator, value = line.partition(":")
        key = key.strip().upper()
        if not separator or f"{key}:" not in _HEADER_KEYS:
            raise TestImportError(f"Unknown header line: '{line}'.")
        header[key] = value.strip()
    return header


def _parse_time_limit(raw_value: str | None) -> int:
    if raw_value is None:
        return DEFAULT_TIME_LIMIT_MINUTES
    try:
        minutes = int(raw_value)
    except ValueError as exc:
        raise TestImportError("TIMELIMIT must be an integer number of minutes.") from exc
    if minutes <= 0:
        raise TestImportError("TIMELIMIT must be a positive integer.")
    return minutes


def _marker(line: str) -> tuple[str | None, str]:
    """Split ``"B: text"`` into ``("B", "text")``; lines without a marker give ``(None, line)``."""
    key, separator, rest = line.partition(":")
    key = key.strip()
    if not separator:
        return None, line
    if key in CHOICE_LETTERS:
        return key, rest.strip()
    if key.upper() in ("Q", "CORRECT"):
        return key.upper(), rest.strip()
    return None, line


def _parse_block(block: str) -> Question:
    sections: dict[str, list[str]] = {}
    correct_letter: str | None = None
    section: str | None = None

    for line in block.splitlines():
        key, value = _marker(line)
        if key == "CORRECT":
            correct_letter = value.upper()
            section = None
        elif key is not None:
            sections[key] = [value]
            section = key
        elif section is not None:
            sections[section].append(value)
        else:
            raise TestImportError(f"Encountered text outside of a known section: '{line}'.")

    question_text = "\n".join(sections.pop("Q", [])).strip()
    if not question_text:
        raise TestImportError("Question text missing (Q: ...)")

    options = {letter: "\n".join(lines) for letter, lines in sections.items()}
    letters = [letter for letter in CHOICE_LETTERS if letter in options]
    if len(letters) < MIN_CHOICES:
        raise TestImportError(f"Each question must define at least {MIN_CHOICES} choices (A, B).")
    if letters != list(CHOICE_LETTERS[: len(letters)]):
        raise TestImportError("Choices must be given in order without gaps (A, B, C, D).")

    if correct_letter is None:
        raise TestImportError("CORRECT is required for every question.")
    if correct_letter not in letters:
        raise TestImportError(f"CORRECT must be one of {', '.join(letters)}.")

    question = Question.from_choices(
        id="",  # assigned by the store
        text=question_text,
        choices=[options[letter].strip() for letter in letters],
        correct_index=CHOICE_LETTERS.index(correct_letter) + 1,
    )
    validation = validate_question(question)
    if not validation.is_valid:
        raise TestImportError("; ".join(validation.errors))
    return question
