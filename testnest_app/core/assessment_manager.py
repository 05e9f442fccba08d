"""Business logic coordinating the store with the session and scoring services."""

from __future__ import annotations

import logging

from testnest_app.constants.test_constants import MAX_CHOICES
from testnest_app.core.choice_resolver import ChoiceResolver
from testnest_app.core.errors import PersistenceError
from testnest_app.core.models import (
    Question,
    ResultsOverview,
    SubmissionOutcome,
    Test,
    TestResultSummary,
)
from testnest_app.core.services.assessment_store import AssessmentStore
from testnest_app.core.services.result_aggregator import ResultAggregator
from testnest_app.core.services.scoring_engine import ScoringEngine
from testnest_app.core.services.session_controller import SessionController
from testnest_app.core.validators import (
    ValidationResult,
    validate_identifier,
    validate_question,
    validate_student_id,
)

logger = logging.getLogger(__name__)


class AssessmentManager:
    """Facade for the engine services: store, SessionController, ScoringEngine, ResultAggregator.

    Store failures never escape from here. Failed reads come back as empty
    collections and a failed write is reported through
    ``SubmissionOutcome.recorded``; neither is retried.
    """

    def __init__(self, store: AssessmentStore, resolver: ChoiceResolver | None = None) -> None:
        self._store = store
        self._resolver = resolver or ChoiceResolver()
        self._scoring = ScoringEngine(self._resolver)
        self._aggregator = ResultAggregator(self._resolver)

    @property
    def resolver(self) -> ChoiceResolver:
        return self._resolver

    # --- Tests ---

    async def list_tests(self) -> list[Test]:
        try:
            return await self._store.fetch_tests()
        except PersistenceError as exc:
            logger.warning("Could not load tests: %s", exc)
            return []

    async def get_test(self, test_id: str) -> Test | None:
        try:
            test = await self._store.fetch_test(test_id)
        except PersistenceError as exc:
            logger.warning("Could not load test %s: %s", test_id, exc)
            return None
        if test is None:
            return None
        if not test.questions:
            try:
                test.questions = await self._store.fetch_questions_for_test(test_id)
            except PersistenceError as exc:
                logger.warning("Could not load questions for test %s: %s", test_id, exc)
        return test

    # --- Test taking ---

    async def start_session(
        self,
        test_id: str,
        student_id: str,
    ) -> tuple[SessionController | None, ValidationResult]:
        """Open a session on a test.

        Raises :class:`EmptyTestError` when the test exists but has no questions.
        """
        validation = ValidationResult(
            validate_identifier(test_id, "Test id").errors + validate_identifier(student_id, "Student id").errors
        )
        if validation.is_valid and not validate_student_id(student_id):
            validation.errors.append("Student id must be a 7 or 8 digit number")
        if not validation.is_valid:
            return None, validation

        test = await self.get_test(test_id)
        if test is None:
            return None, ValidationResult([f"Test {test_id} was not found"])

        session = SessionController()
        session.start(test, student_id)
        return session, validation

    async def submit(self, session: SessionController) -> SubmissionOutcome:
        """Grade a completed session and record its rows.

        Raises :class:`IncompleteSessionError` while questions are unanswered.
        """
        attempt = session.submit()
        rows = self._scoring.grade_attempt(attempt)
        recorded = True
        try:
            await self._store.insert_results(rows)
        except PersistenceError as exc:
            logger.error("Attempt %s for test %s was not recorded: %s", attempt.attempt_id, attempt.test.id, exc)
            recorded = False
        return self._scoring.summarize(attempt.test, rows, recorded=recorded)

    # --- Results ---

    async def student_results(self, student_id: str) -> list[TestResultSummary]:
        try:
            rows = await self._store.fetch_results_for_student(student_id)
        except PersistenceError as exc:
            logger.warning("Could not load results for student %s: %s", student_id, exc)
            return []
        return self._aggregator.aggregate_joined(rows)

    def results_overview(self, summaries: list[TestResultSummary]) -> ResultsOverview:
        return self._aggregator.overview(summaries)

    # --- Authoring ---

    def compose_question(
        self,
        question_id: str,
        text: str,
        choices: list[str],
        correct_text: str,
    ) -> tuple[Question, ValidationResult]:
        """Build a question from its choices and the text of the correct one."""
        cleaned = [choice.strip() for choice in choices]
        question = Question.from_choices(question_id, text.strip(), cleaned, correct_index=1)
        question.correct_index = self._resolver.index_for_text(question, correct_text.strip())

        validation = validate_question(question)
        if len([choice for choice in cleaned if choice]) > MAX_CHOICES:
            validation.errors.append(f"At most {MAX_CHOICES} choices are allowed")
        if correct_text.strip() not in question.choices:
            validation.errors.append("Correct answer must match one of the provided choices")
        return question, validation
