"""Domain models for the assessment engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto

from testnest_app.constants.test_constants import DEFAULT_TIME_LIMIT_MINUTES


@dataclass(slots=True)
class Question:
    """Multiple-choice question with two to four choice slots.

    Slots 3 and 4 are optional. ``correct_index`` is the 1-based answer code of
    the correct slot.
    """

    id: str
    text: str
    choice1: str
    choice2: str
    correct_index: int
    choice3: str | None = None
    choice4: str | None = None

    def choice_slots(self) -> tuple[str, str, str, str]:
        """Return the four fixed slots, with ``""`` for an absent choice."""
        return (
            self.choice1 or "",
            self.choice2 or "",
            self.choice3 or "",
            self.choice4 or "",
        )

    @property
    def choices(self) -> list[str]:
        """Populated choices in slot order."""
        return [choice for choice in self.choice_slots() if choice]

    @classmethod
    def from_choices(
        cls,
        id: str,
        text: str,
        choices: list[str],
        correct_index: int,
    ) -> Question:
        padded = list(choices) + [None] * (4 - len(choices))
        return cls(
            id=id,
            text=text,
            choice1=padded[0] or "",
            choice2=padded[1] or "",
            correct_index=correct_index,
            choice3=padded[2] or None,
            choice4=padded[3] or None,
        )


@dataclass(slots=True)
class Test:
    """A titled, ordered set of questions."""

    __test__ = False  # not a pytest test class

    id: str
    title: str
    description: str = ""
    time_limit_minutes: int = DEFAULT_TIME_LIMIT_MINUTES
    questions: list[Question] = field(default_factory=list)

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def is_startable(self) -> bool:
        return bool(self.questions)


@dataclass(slots=True)
class TestInfo:
    """Test metadata embedded in a joined result row."""

    __test__ = False

    title: str
    description: str
    time_limit_minutes: int


@dataclass(slots=True)
class RawResult:
    """One persisted answer code for a single question of one attempt."""

    student_id: str
    test_id: str
    question_id: str
    given_answer: int
    created_at: datetime
    attempt_id: str | None = None
    result_id: int | None = None


@dataclass(slots=True)
class JoinedResultRow:
    """A result row joined with its test metadata and current question."""

    result: RawResult
    test: TestInfo
    question: Question


@dataclass(slots=True)
class QuestionDetail:
    """Per-question review line of a scored attempt."""

    question_text: str
    student_answer_text: str
    correct_answer_text: str
    is_correct: bool


@dataclass(slots=True)
class TestResultSummary:
    """Scored view over the result rows of one test attempt."""

    __test__ = False

    test_id: str
    test_title: str
    total_questions: int
    correct_count: int
    score_percent: int
    submitted_at: datetime
    details: list[QuestionDetail]
    attempt_id: str | None = None
    description: str = ""
    time_limit_minutes: int | None = None

    @property
    def incorrect_count(self) -> int:
        return self.total_questions - self.correct_count


@dataclass(slots=True)
class ResultsOverview:
    """Headline statistics across a student's scored attempts."""

    tests_taken: int
    average_score: int
    best_score: int


class SessionState(Enum):
    NOT_STARTED = auto()
    IN_PROGRESS = auto()
    READY_TO_SUBMIT = auto()
    SUBMITTED = auto()


@dataclass(slots=True)
class SubmittedAttempt:
    """Completed answer set handed from a session to the scoring engine."""

    test: Test
    student_id: str
    answers: dict[str, int]
    attempt_id: str
    started_at: datetime
    submitted_at: datetime


@dataclass(slots=True)
class SubmissionOutcome:
    """Immediate score shown once an attempt has been submitted."""

    correct_count: int
    total_questions: int
    score_percent: int
    recorded: bool
    rows: list[RawResult] = field(default_factory=list)

    @property
    def incorrect_count(self) -> int:
        return self.total_questions - self.correct_count


@dataclass(slots=True, frozen=True)
class DemoQuestion:
    """Question of the built-in demo, graded by 0-based position."""

    id: str
    text: str
    choices: tuple[str, ...]
    correct_position: int


@dataclass(slots=True)
class DemoOutcome:
    correct_count: int
    total_questions: int
    score_percent: int
