"""Conversion between 1-based answer codes and authored choice text.

Correctness is decided here and nowhere else. In the default text mode a
student answer is correct when the text of the slot they picked equals the text
of the correct slot, so a choice that moved to another column between authoring
and display still grades by what the student actually saw. Index mode compares
answer codes instead and exists so aggregation does not need to change if that
policy is ever switched.

Invalid answer codes never raise: they resolve to the text of slot 1 and a
warning is logged on the ``testnest_app`` logger.
"""

from __future__ import annotations

from enum import Enum
import logging

from testnest_app.constants.test_constants import MAX_CHOICES, NO_ANSWER_CODE, NO_ANSWER_TEXT
from testnest_app.core.models import Question, QuestionDetail

logger = logging.getLogger(__name__)


class GradingMode(str, Enum):
    TEXT = "text"
    INDEX = "index"


class ChoiceResolver:
    """Resolves answer codes to text and grades a single answer."""

    def __init__(self, mode: GradingMode = GradingMode.TEXT) -> None:
        self._mode = GradingMode(mode)
        self._fallback_count = 0

    @property
    def mode(self) -> GradingMode:
        return self._mode

    @property
    def fallback_count(self) -> int:
        """Number of answer codes resolved through the slot 1 fallback."""
        return self._fallback_count

    def text_for_index(self, question: Question, index: int | None) -> str:
        """Return the text of slot ``index`` (1-based), or slot 1 if it is not populated."""
        slot = self._populated_slot(question, index)
        if slot is not None:
            return slot
        self._fallback_count += 1
        logger.warning(
            "Invalid answer code %r for question %s; falling back to choice 1",
            index,
            question.id,
        )
        return question.choice_slots()[0]

    def index_for_text(self, question: Question, text: str) -> int:
        """Return the 1-based slot holding exactly ``text``, or 1 when none does."""
        for position, choice in enumerate(question.choice_slots(), start=1):
            if choice and choice == text:
                return position
        return 1

    def answer_text(self, question: Question, given_answer: int | None) -> str:
        """Text to show for a student's answer code."""
        if self.is_unanswered(given_answer):
            return NO_ANSWER_TEXT
        return self.text_for_index(question, given_answer)

    def resolve(self, question: Question, given_answer: int | None) -> QuestionDetail:
        """Grade one answer code against the question's current definition."""
        correct_text = self.text_for_index(question, question.correct_index)
        student_text = self.answer_text(question, given_answer)

        if self.is_unanswered(given_answer):
            is_correct = False
        elif self._mode is GradingMode.INDEX:
            is_correct = given_answer == question.correct_index
        else:
            is_correct = student_text == correct_text

        return QuestionDetail(
            question_text=question.text,
            student_answer_text=student_text,
            correct_answer_text=correct_text,
            is_correct=is_correct,
        )

    @staticmethod
    def is_unanswered(given_answer: int | None) -> bool:
        return given_answer is None or given_answer == NO_ANSWER_CODE

    @staticmethod
    def _populated_slot(question: Question, index: int | None) -> str | None:
        if not isinstance(index, int) or isinstance(index, bool):
            return None
        if not 1 <= index <= MAX_CHOICES:
            return None
        text = question.choice_slots()[index - 1]
        return text or None
