"""Builders for questions and result rows used across tests."""

from __future__ import annotations

from datetime import datetime, timezone

from testnest_app.core.models import Question, RawResult

SUBMITTED_AT = datetime(2024, 3, 5, 14, 30, tzinfo=timezone.utc)


def make_question(question_id: str, choices: list[str], correct_index: int, text: str | None = None) -> Question:
    return Question.from_choices(
        id=question_id,
        text=text or f"Question {question_id}?",
        choices=choices,
        correct_index=correct_index,
    )


def make_row(
    test_id: str,
    question_id: str,
    given_answer: int,
    student_id: str = "1234567",
    attempt_id: str | None = None,
    created_at: datetime = SUBMITTED_AT,
) -> RawResult:
    return RawResult(
        student_id=student_id,
        test_id=test_id,
        question_id=question_id,
        given_answer=given_answer,
        created_at=created_at,
        attempt_id=attempt_id,
    )
