"""Utilities for exporting a test to the plain-text format used for imports."""

from __future__ import annotations

from pathlib import Path

from testnest_app.constants.test_constants import CHOICE_LETTERS
from testnest_app.core.models import Question, Test


def save_test_to_file(file_path: Path, test: Test) -> None:
    """Persist the provided test to disk in the text import format."""

    if not test.questions:
        raise ValueError("Cannot export a test without questions.")

    file_path = file_path.resolve()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(serialize_test(test), encoding="utf-8")


def serialize_test(test: Test) -> str:
    header = [f"TITLE: {test.title}"]
    if test.description:
        header.append(f"DESCRIPTION: {test.description}")
    header.append(f"TIMELIMIT: {test.time_limit_minutes}")

    blocks = ["\n".join(header)] + [_serialize_question(question) for question in test.questions]
    return "\n\n---\n\n".join(blocks) + "\n"


def _serialize_question(question: Question) -> str:
    lines: list[str] = []

    question_lines = question.text.splitlines() or [question.text]
    lines.append(f"Q: {question_lines[0]}")
    lines.extend(question_lines[1:])

    for letter, choice in zip(CHOICE_LETTERS, question.choice_slots()):
        if not choice:
            continue
        choice_lines = choice.splitlines()
        lines.append(f"{letter}: {choice_lines[0]}")
        lines.extend(choice_lines[1:])

    lines.append(f"CORRECT: {CHOICE_LETTERS[question.correct_index - 1]}")
    return "\n".join(lines)
