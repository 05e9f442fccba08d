"""Service converting a completed attempt into persisted result rows."""

from __future__ import annotations

from datetime import datetime
import logging

from testnest_app.constants.test_constants import NO_ANSWER_CODE
from testnest_app.core.choice_resolver import ChoiceResolver
from testnest_app.core.models import RawResult, SubmissionOutcome, SubmittedAttempt, Test

logger = logging.getLogger(__name__)


def percent_score(correct_count: int, total: int) -> int:
    """Whole percentage rounded half up; 0 when there is nothing to score."""
    if total <= 0:
        return 0
    return (200 * correct_count + total) // (2 * total)


class ScoringEngine:
    """Emits one result row per question; correctness is left to the resolver."""

    def __init__(self, resolver: ChoiceResolver | None = None) -> None:
        self._resolver = resolver or ChoiceResolver()

    def grade(
        self,
        test: Test,
        answers: dict[str, int],
        student_id: str,
        submitted_at: datetime,
        attempt_id: str | None = None,
    ) -> list[RawResult]:
        rows: list[RawResult] = []
        for question in test.questions:
            position = answers.get(question.id)
            if position is None:
                logger.warning("Question %s of test %s has no answer; storing code %d", question.id, test.id, NO_ANSWER_CODE)
                given_answer = NO_ANSWER_CODE
            else:
                given_answer = position + 1
            rows.append(
                RawResult(
                    student_id=student_id,
                    test_id=test.id,
                    question_id=question.id,
                    given_answer=given_answer,
                    created_at=submitted_at,
                    attempt_id=attempt_id,
                )
            )
        return rows

    def grade_attempt(self, attempt: SubmittedAttempt) -> list[RawResult]:
        return self.grade(
            attempt.test,
            attempt.answers,
            student_id=attempt.student_id,
            submitted_at=attempt.submitted_at,
            attempt_id=attempt.attempt_id,
        )

    def summarize(self, test: Test, rows: list[RawResult], recorded: bool = True) -> SubmissionOutcome:
        """Score freshly graded rows for the completion screen."""
        questions_by_id = {question.id: question for question in test.questions}
        correct = 0
        for row in rows:
            question = questions_by_id.get(row.question_id)
            if question is None:
                continue
            if self._resolver.resolve(question, row.given_answer).is_correct:
                correct += 1
        total = len(rows)
        return SubmissionOutcome(
            correct_count=correct,
            total_questions=total,
            score_percent=percent_score(correct, total),
            recorded=recorded,
            rows=list(rows),
        )
