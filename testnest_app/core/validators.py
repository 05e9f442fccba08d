"""Validation of authored questions and tests and of user-supplied identifiers.

Validators never raise. They return a :class:`ValidationResult` whose error
messages can be shown to the user as-is.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from testnest_app.constants.test_constants import MAX_CHOICES, MIN_CHOICES, NO_ANSWER_TEXT
from testnest_app.core.models import Question, Test


@dataclass(slots=True)
class ValidationResult:
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_question(question: Question) -> ValidationResult:
    errors: list[str] = []

    if not (question.text or "").strip():
        errors.append("Question text is required")
    if not (question.choice1 or "").strip():
        errors.append("Choice 1 is required")
    if not (question.choice2 or "").strip():
        errors.append("Choice 2 is required")

    slots = [(choice or "").strip() for choice in question.choice_slots()]
    if slots[3] and not slots[2]:
        errors.append("Choice 3 must be filled in before choice 4")

    populated = [choice for choice in slots if choice]
    if len(populated) < MIN_CHOICES:
        errors.append(f"At least {MIN_CHOICES} choices are required")
    if len(set(populated)) != len(populated):
        errors.append("Choices must not repeat the same text")
    if NO_ANSWER_TEXT in populated:
        errors.append(f"'{NO_ANSWER_TEXT}' is reserved and cannot be used as a choice")

    if not isinstance(question.correct_index, int) or not 1 <= question.correct_index <= MAX_CHOICES:
        errors.append(f"Correct answer must be a choice number between 1 and {MAX_CHOICES}")
    elif not slots[question.correct_index - 1]:
        errors.append("Correct answer must match one of the provided choices")

    return ValidationResult(errors)


def validate_test(test: Test) -> ValidationResult:
    """Authoring checks for a whole test, including each of its questions."""
    errors: list[str] = []

    if not (test.title or "").strip():
        errors.append("Test title is required")
    if not (test.description or "").strip():
        errors.append("Test description is required")
    if not isinstance(test.time_limit_minutes, int) or test.time_limit_minutes <= 0:
        errors.append("Time limit must be a positive number of minutes")
    if not test.questions:
        errors.append("Add at least one question to the test")

    for number, question in enumerate(test.questions, start=1):
        errors.extend(f"Question {number}: {message}" for message in validate_question(question).errors)

    return ValidationResult(errors)


def validate_identifier(value: object, label: str) -> ValidationResult:
    if not isinstance(value, str) or not value.strip():
        return ValidationResult([f"{label} is required"])
    return ValidationResult()


def validate_student_id(student_id: object) -> bool:
    """Student ids are 7 or 8 digit numbers."""
    try:
        number = int(str(student_id).strip())
    except ValueError:
        return False
    return 1_000_000 <= number <= 99_999_999
