"""Tests for the test-taking session state machine."""

from datetime import datetime, timezone

import pytest

from testnest_app.core.errors import AttemptAlreadySubmittedError, EmptyTestError, IncompleteSessionError
from testnest_app.core.models import SessionState, Test
from testnest_app.core.services.session_controller import SessionController

FIXED_NOW = datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def session(sample_test: Test) -> SessionController:
    controller = SessionController(clock=lambda: FIXED_NOW)
    controller.start(sample_test, "1234567")
    return controller


def _answer_all(session: SessionController, test: Test) -> None:
    for question in test.questions:
        session.select_answer(question.id, 0)


class TestLifecycle:
    def test_new_controller_is_not_started(self):
        controller = SessionController()

        assert controller.state is SessionState.NOT_STARTED
        assert controller.current_question is None
        assert controller.can_submit() is False

    def test_start_opens_attempt(self, session, sample_test):
        assert session.state is SessionState.IN_PROGRESS
        assert session.current_index == 0
        assert session.current_question == sample_test.questions[0]
        assert session.answers == {}
        assert session.started_at == FIXED_NOW
        assert session.student_id == "1234567"

    def test_start_rejects_empty_test(self):
        controller = SessionController()

        with pytest.raises(EmptyTestError):
            controller.start(Test(id="empty", title="Empty"), "1234567")
        assert controller.state is SessionState.NOT_STARTED

    def test_restart_clears_previous_answers(self, session, sample_test):
        session.select_answer("q1", 1)
        session.advance()

        session.start(sample_test, "1234567")

        assert session.answers == {}
        assert session.current_index == 0

    def test_reset_discards_everything(self, session):
        session.select_answer("q1", 1)

        session.reset()

        assert session.state is SessionState.NOT_STARTED
        assert session.answers == {}
        assert session.test is None


class TestAnswers:
    def test_select_answer_overwrites(self, session):
        session.select_answer("q1", 0)
        session.select_answer("q1", 3)

        assert session.answer_for("q1") == 3
        assert session.answered_count == 1

    def test_select_answer_does_not_validate_position(self, session):
        assert session.select_answer("q2", 7) is True
        assert session.answer_for("q2") == 7

    def test_select_answer_before_start_is_ignored(self):
        controller = SessionController()

        assert controller.select_answer("q1", 0) is False
        assert controller.answers == {}

    def test_can_submit_only_when_every_question_answered(self, session, sample_test):
        for question in sample_test.questions[:-1]:
            session.select_answer(question.id, 0)
            assert session.can_submit() is False

        session.select_answer(sample_test.questions[-1].id, 0)

        assert session.can_submit() is True
        assert session.state is SessionState.READY_TO_SUBMIT

    def test_answers_for_other_questions_do_not_count(self, session):
        session.select_answer("q1", 0)
        session.select_answer("q2", 0)
        session.select_answer("not-in-test", 0)

        assert session.can_submit() is False
        assert session.answered_count == 2


class TestNavigation:
    def test_advance_and_retreat(self, session, sample_test):
        session.advance()
        session.advance()

        assert session.current_index == 2
        assert session.is_last_question is True
        assert session.current_question == sample_test.questions[2]

        session.retreat()

        assert session.current_index == 1

    def test_advance_is_clamped_at_last_question(self, session):
        for _ in range(10):
            session.advance()

        assert session.current_index == 2

    def test_retreat_is_clamped_at_first_question(self, session):
        session.retreat()

        assert session.current_index == 0

    def test_progress_percent(self, session):
        assert session.progress_percent == pytest.approx(100 / 3)
        session.advance()
        session.advance()
        assert session.progress_percent == pytest.approx(100.0)


class TestSubmit:
    def test_submit_incomplete_raises(self, session):
        session.select_answer("q1", 0)

        with pytest.raises(IncompleteSessionError) as excinfo:
            session.submit()

        assert excinfo.value.answered == 1
        assert excinfo.value.total == 3
        assert session.state is SessionState.IN_PROGRESS

    def test_submit_before_start_raises(self):
        with pytest.raises(IncompleteSessionError):
            SessionController().submit()

    def test_submit_returns_completed_attempt(self, session, sample_test):
        _answer_all(session, sample_test)

        attempt = session.submit()

        assert session.state is SessionState.SUBMITTED
        assert attempt.test is sample_test
        assert attempt.student_id == "1234567"
        assert attempt.answers == {"q1": 0, "q2": 0, "q3": 0}
        assert attempt.submitted_at == FIXED_NOW
        assert attempt.attempt_id

    def test_submitted_session_rejects_changes(self, session, sample_test):
        _answer_all(session, sample_test)
        session.submit()

        assert session.select_answer("q1", 2) is False
        with pytest.raises(AttemptAlreadySubmittedError):
            session.submit()

    def test_each_submission_gets_its_own_attempt_id(self, session, sample_test):
        _answer_all(session, sample_test)
        first = session.submit()

        session.start(sample_test, "1234567")
        _answer_all(session, sample_test)
        second = session.submit()

        assert first.attempt_id != second.attempt_id
