"""Self-contained demo test for visitors without an account.

Nothing here touches the store. Demo questions keep a 0-based
``correct_position`` and answers are graded by comparing positions directly.
"""

from __future__ import annotations

import logging

from testnest_app.core.models import DemoOutcome, DemoQuestion
from testnest_app.core.services.scoring_engine import percent_score

logger = logging.getLogger(__name__)

DEMO_TITLE = "Demo Test: Python Basics"

DEMO_QUESTIONS: tuple[DemoQuestion, ...] = (
    DemoQuestion(
        id="demo-1",
        text="What does `len([1, 2, 3])` return?",
        choices=("2", "3", "4", "An error"),
        correct_position=1,
    ),
    DemoQuestion(
        id="demo-2",
        text="Which keyword defines a function in Python?",
        choices=("func", "define", "def", "lambda"),
        correct_position=2,
    ),
    DemoQuestion(
        id="demo-3",
        text="What is the type of `{}`?",
        choices=("dict", "set", "list"),
        correct_position=0,
    ),
    DemoQuestion(
        id="demo-4",
        text="What does `print(2 ** 3)` output?",
        choices=("6", "8", "9", "23"),
        correct_position=1,
    ),
    DemoQuestion(
        id="demo-5",
        text="Strings in Python are mutable.",
        choices=("True", "False"),
        correct_position=1,
    ),
)


class DemoRunner:
    """Runs one pass through the demo questions."""

    def __init__(self, questions: tuple[DemoQuestion, ...] = DEMO_QUESTIONS) -> None:
        if not questions:
            raise ValueError("Demo must contain at least one question.")
        self._questions = questions
        self._current_index = 0
        self._answers: dict[str, int] = {}
        self._outcome: DemoOutcome | None = None

    def start(self) -> None:
        self._current_index = 0
        self._answers = {}
        self._outcome = None

    def reset(self) -> None:
        self.start()

    @property
    def questions(self) -> tuple[DemoQuestion, ...]:
        return self._questions

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current_question(self) -> DemoQuestion:
        return self._questions[self._current_index]

    @property
    def is_last_question(self) -> bool:
        return self._current_index == len(self._questions) - 1

    @property
    def outcome(self) -> DemoOutcome | None:
        return self._outcome

    def select_answer(self, question_id: str, choice_position: int) -> None:
        if self._outcome is not None:
            return
        self._answers[question_id] = choice_position

    def answer_for(self, question_id: str) -> int | None:
        return self._answers.get(question_id)

    def can_advance(self) -> bool:
        """The demo only moves on once the current question has an answer."""
        return self.current_question.id in self._answers

    def advance(self) -> bool:
        if not self.can_advance() or self.is_last_question:
            return False
        self._current_index += 1
        return True

    def retreat(self) -> None:
        if self._current_index > 0:
            self._current_index -= 1

    def can_finish(self) -> bool:
        """Finishing is offered on the last question once it has an answer."""
        return self.is_last_question and self.can_advance()

    def finish(self) -> DemoOutcome | None:
        """Grade the demo. Returns None while it cannot be finished yet."""
        if not self.can_finish():
            return None
        correct = sum(
            1
            for question in self._questions
            if self._answers.get(question.id) == question.correct_position
        )
        total = len(self._questions)
        self._outcome = DemoOutcome(
            correct_count=correct,
            total_questions=total,
            score_percent=percent_score(correct, total),
        )
        logger.info("Demo finished: %d/%d correct", correct, total)
        return self._outcome
