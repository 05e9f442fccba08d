"""Persistence interface consumed by the engine, plus an in-memory store."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
from typing import Protocol

from testnest_app.core.errors import PersistenceError
from testnest_app.core.models import JoinedResultRow, Question, RawResult, Test, TestInfo
from testnest_app.core.validators import validate_question

logger = logging.getLogger(__name__)


class AssessmentStore(Protocol):
    """Read/write operations of the external store.

    Implementations raise :class:`PersistenceError` when a call fails.
    """

    async def fetch_test(self, test_id: str) -> Test | None: ...

    async def fetch_tests(self) -> list[Test]: ...

    async def fetch_questions_for_test(self, test_id: str) -> list[Question]: ...

    async def insert_results(self, rows: list[RawResult]) -> None: ...

    async def fetch_results_for_student(self, student_id: str) -> list[JoinedResultRow]: ...


@dataclass(slots=True)
class _StoredTest:
    id: str
    title: str
    description: str
    time_limit_minutes: int
    question_ids: list[str] = field(default_factory=list)


class InMemoryAssessmentStore:
    """Process-local store with the same shape as the hosted database.

    Questions live in a bank shared by all tests. Tests and joined result rows
    are always built from the current question definitions, so edits are
    visible in old results too. ``fail_reads`` and ``fail_writes`` make every
    read or write raise :class:`PersistenceError`.
    """

    def __init__(self) -> None:
        self._questions: dict[str, Question] = {}
        self._tests: dict[str, _StoredTest] = {}
        self._results: list[RawResult] = []
        self._question_counter: int = 0
        self._test_counter: int = 0
        self._result_counter: int = 0
        self.fail_reads: bool = False
        self.fail_writes: bool = False

    # --- Authoring ---

    def add_question(self, question: Question) -> Question:
        """Store a question in the bank, assigning an id when it has none."""
        prepared = self._prepare_question(question)
        if not prepared.id:
            prepared = replace(prepared, id=self._next_question_id())
        if prepared.id in self._questions:
            raise ValueError(f"Question id {prepared.id!r} already exists")
        self._questions[prepared.id] = prepared
        return prepared

    def update_question(self, question_id: str, question: Question) -> Question:
        if question_id not in self._questions:
            raise KeyError(question_id)
        prepared = replace(self._prepare_question(question), id=question_id)
        self._questions[question_id] = prepared
        return prepared

    def get_question(self, question_id: str) -> Question | None:
        return self._questions.get(question_id)

    def list_questions(self) -> list[Question]:
        return list(self._questions.values())

    def add_test(self, test: Test) -> Test:
        """Store a test, adding any of its questions the bank does not hold yet."""
        test_id = test.id or self._next_test_id()
        if test_id in self._tests:
            raise ValueError(f"Test id {test_id!r} already exists")
        if test.time_limit_minutes <= 0:
            raise ValueError("Time limit must be a positive integer.")

        question_ids: list[str] = []
        for question in test.questions:
            if question.id and question.id in self._questions:
                question_ids.append(question.id)
            else:
                question_ids.append(self.add_question(question).id)

        self._tests[test_id] = _StoredTest(
            id=test_id,
            title=test.title.strip(),
            description=test.description.strip(),
            time_limit_minutes=test.time_limit_minutes,
            question_ids=question_ids,
        )
        return self._build_test(self._tests[test_id])

    def link_question(self, test_id: str, question_id: str) -> None:
        if question_id not in self._questions:
            raise KeyError(question_id)
        self._tests[test_id].question_ids.append(question_id)

    def result_count(self) -> int:
        return len(self._results)

    # --- Store interface ---

    async def fetch_test(self, test_id: str) -> Test | None:
        self._check_reads()
        stored = self._tests.get(test_id)
        return self._build_test(stored) if stored is not None else None

    async def fetch_tests(self) -> list[Test]:
        self._check_reads()
        return [self._build_test(stored) for stored in self._tests.values()]

    async def fetch_questions_for_test(self, test_id: str) -> list[Question]:
        self._check_reads()
        stored = self._tests.get(test_id)
        if stored is None:
            return []
        return self._questions_for(stored)

    async def insert_results(self, rows: list[RawResult]) -> None:
        if self.fail_writes:
            raise PersistenceError("Result store is not accepting writes.")
        for row in rows:
            self._result_counter += 1
            self._results.append(replace(row, result_id=self._result_counter))

    async def fetch_results_for_student(self, student_id: str) -> list[JoinedResultRow]:
        self._check_reads()
        joined: list[JoinedResultRow] = []
        for row in self._results:
            if row.student_id != student_id:
                continue
            stored = self._tests.get(row.test_id)
            question = self._questions.get(row.question_id)
            if stored is None or question is None:
                logger.warning("Result %s references a missing test or question", row.result_id)
                continue
            joined.append(
                JoinedResultRow(
                    result=row,
                    test=TestInfo(
                        title=stored.title,
                        description=stored.description,
                        time_limit_minutes=stored.time_limit_minutes,
                    ),
                    question=question,
                )
            )
        return joined

    # --- Helpers ---

    def _check_reads(self) -> None:
        if self.fail_reads:
            raise PersistenceError("Result store is not accepting reads.")

    def _build_test(self, stored: _StoredTest) -> Test:
        return Test(
            id=stored.id,
            title=stored.title,
            description=stored.description,
            time_limit_minutes=stored.time_limit_minutes,
            questions=self._questions_for(stored),
        )

    def _questions_for(self, stored: _StoredTest) -> list[Question]:
        return [self._questions[question_id] for question_id in stored.question_ids if question_id in self._questions]

    @staticmethod
    def _prepare_question(question: Question) -> Question:
        """Validate and normalize a question before storage."""
        result = validate_question(question)
        if not result.is_valid:
            raise ValueError("; ".join(result.errors))
        return Question(
            id=question.id,
            text=question.text.strip(),
            choice1=question.choice1.strip(),
            choice2=question.choice2.strip(),
            correct_index=question.correct_index,
            choice3=(question.choice3 or "").strip() or None,
            choice4=(question.choice4 or "").strip() or None,
        )

    def _next_question_id(self) -> str:
        self._question_counter += 1
        while f"q{self._question_counter}" in self._questions:
            self._question_counter += 1
        return f"q{self._question_counter}"

    def _next_test_id(self) -> str:
        self._test_counter += 1
        while f"t{self._test_counter}" in self._tests:
            self._test_counter += 1
        return f"t{self._test_counter}"
