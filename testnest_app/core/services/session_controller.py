"""Service driving a single test-taking attempt."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
import logging
from uuid import uuid4

from testnest_app.core.errors import AttemptAlreadySubmittedError, EmptyTestError, IncompleteSessionError
from testnest_app.core.models import Question, SessionState, SubmittedAttempt, Test

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionController:
    """Question sequencing, answer capture and submission gating for one attempt.

    A controller belongs to exactly one test-taking flow. Answers are stored as
    0-based choice positions keyed by question id.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._submitted = False
        self._test: Test | None = None
        self._student_id: str | None = None
        self._current_index: int = 0
        self._answers: dict[str, int] = {}
        self._started_at: datetime | None = None

    # --- Lifecycle ---

    def start(self, test: Test, student_id: str) -> None:
        if not test.questions:
            raise EmptyTestError(test.id)
        self._test = test
        self._student_id = student_id
        self._submitted = False
        self._current_index = 0
        self._answers = {}
        self._started_at = self._clock()
        logger.info("Student %s started test %s (%d questions)", student_id, test.id, len(test.questions))

    def submit(self) -> SubmittedAttempt:
        """Close the attempt and return its completed answer set."""
        if self._test is None:
            raise IncompleteSessionError(answered=0, total=0)
        if self._submitted:
            raise AttemptAlreadySubmittedError(f"Attempt at test {self._test.id!r} was already submitted.")
        if not self.can_submit():
            raise IncompleteSessionError(answered=self.answered_count, total=self.question_count)

        self._submitted = True
        attempt = SubmittedAttempt(
            test=self._test,
            student_id=self._student_id or "",
            answers=dict(self._answers),
            attempt_id=uuid4().hex,
            started_at=self._started_at or self._clock(),
            submitted_at=self._clock(),
        )
        logger.info("Student %s submitted test %s (attempt %s)", attempt.student_id, self._test.id, attempt.attempt_id)
        return attempt

    def reset(self) -> None:
        self._submitted = False
        self._test = None
        self._student_id = None
        self._current_index = 0
        self._answers = {}
        self._started_at = None

    @property
    def state(self) -> SessionState:
        if self._test is None:
            return SessionState.NOT_STARTED
        if self._submitted:
            return SessionState.SUBMITTED
        if self.can_submit():
            return SessionState.READY_TO_SUBMIT
        return SessionState.IN_PROGRESS

    def is_active(self) -> bool:
        return self.state in (SessionState.IN_PROGRESS, SessionState.READY_TO_SUBMIT)

    # --- Answers ---

    def select_answer(self, question_id: str, choice_position: int) -> bool:
        """Record or overwrite an answer. Returns False when no attempt is open."""
        if not self.is_active():
            return False
        self._answers[question_id] = choice_position
        return True

    def answer_for(self, question_id: str) -> int | None:
        return self._answers.get(question_id)

    def can_submit(self) -> bool:
        if self._test is None or not self._test.questions:
            return False
        return all(question.id in self._answers for question in self._test.questions)

    @property
    def answered_count(self) -> int:
        if self._test is None:
            return 0
        return sum(1 for question in self._test.questions if question.id in self._answers)

    @property
    def answers(self) -> dict[str, int]:
        return dict(self._answers)

    # --- Navigation ---

    def advance(self) -> None:
        if self._test is None:
            return
        if self._current_index < len(self._test.questions) - 1:
            self._current_index += 1

    def retreat(self) -> None:
        if self._current_index > 0:
            self._current_index -= 1

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current_question(self) -> Question | None:
        if self._test is None:
            return None
        return self._test.questions[self._current_index]

    @property
    def is_last_question(self) -> bool:
        return self._test is not None and self._current_index == len(self._test.questions) - 1

    @property
    def progress_percent(self) -> float:
        if self._test is None:
            return 0.0
        return (self._current_index + 1) / len(self._test.questions) * 100

    # --- Read-only state ---

    @property
    def test(self) -> Test | None:
        return self._test

    @property
    def student_id(self) -> str | None:
        return self._student_id

    @property
    def started_at(self) -> datetime | None:
        return self._started_at

    @property
    def question_count(self) -> int:
        return len(self._test.questions) if self._test is not None else 0
