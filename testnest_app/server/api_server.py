"""FastAPI server exposing test-taking, results and demo endpoints to students."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from threading import Lock
import time
from typing import Callable, Generic, TypeVar
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from pydantic import BaseModel
import uvicorn

from testnest_app.constants.about import APP_NAME, APP_VERSION
from testnest_app.constants.network_constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEMO_IDLE_TIMEOUT_SECONDS,
    SESSION_IDLE_TIMEOUT_SECONDS,
)
from testnest_app.core.assessment_manager import AssessmentManager
from testnest_app.core.errors import AttemptAlreadySubmittedError, EmptyTestError, IncompleteSessionError
from testnest_app.core.models import SubmissionOutcome, Test, TestResultSummary
from testnest_app.core.services.demo_runner import DEMO_TITLE, DemoRunner
from testnest_app.core.services.session_controller import SessionController
from testnest_app.core.text_renderer import renderer
from testnest_app.utils.date_time import format_date_time, format_elapsed

logger = logging.getLogger(__name__)

_DEMO_COOKIE = "testnest_demo"

_Entry = TypeVar("_Entry")


class StartPayload(BaseModel):
    """Payload schema for starting a test."""

    test_id: str
    student_id: str


class AnswerPayload(BaseModel):
    """Payload schema for selecting a choice in a running test."""

    question_id: str
    choice_position: int


class DemoAnswerPayload(BaseModel):
    """Payload schema for answering the current demo question."""

    choice_position: int


class ClientRegistry(Generic[_Entry]):
    """Per-client state keyed by an opaque token.

    Entries idle for longer than ``idle_timeout`` seconds are dropped, either
    when looked up or by the sweep that runs on every ``add``. All access
    holds the registry lock.
    """

    def __init__(self, idle_timeout: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._entries: dict[str, tuple[_Entry, float]] = {}
        self._lock = Lock()

    def add(self, entry: _Entry) -> str:
        token = uuid4().hex
        with self._lock:
            now = self._clock()
            self._sweep(now)
            self._entries[token] = (entry, now)
        return token

    def get(self, token: str | None) -> _Entry | None:
        """Return the entry and mark it as used, or None when unknown or expired."""
        if not token:
            return None
        with self._lock:
            item = self._entries.get(token)
            if item is None:
                return None
            entry, last_used = item
            now = self._clock()
            if now - last_used > self._idle_timeout:
                del self._entries[token]
                logger.info("Dropped idle client state %s", token)
                return None
            self._entries[token] = (entry, now)
            return entry

    def remove(self, token: str) -> None:
        with self._lock:
            self._entries.pop(token, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _sweep(self, now: float) -> None:
        expired = [
            token
            for token, (_, last_used) in self._entries.items()
            if now - last_used > self._idle_timeout
        ]
        for token in expired:
            del self._entries[token]
        if expired:
            logger.info("Dropped %d idle client entries", len(expired))


def _test_payload(test: Test) -> dict[str, object]:
    return {
        "id": test.id,
        "title": test.title,
        "description": test.description,
        "time_limit_minutes": test.time_limit_minutes,
        "question_count": test.question_count,
        "startable": test.is_startable,
    }


def _session_payload(token: str, session: SessionController) -> dict[str, object]:
    test = session.test
    question = session.current_question
    question_payload = None
    if question is not None:
        question_payload = {
            "id": question.id,
            "number": session.current_index + 1,
            "question_html": renderer.render_fragment(question.text),
            "choices": [renderer.render_inline(choice) for choice in question.choices],
            "selected_position": session.answer_for(question.id),
        }
    return {
        "token": token,
        "test_id": test.id if test else None,
        "title": test.title if test else None,
        "state": session.state.name,
        "current_index": session.current_index,
        "question_count": session.question_count,
        "answered_count": session.answered_count,
        "progress_percent": session.progress_percent,
        "is_last_question": session.is_last_question,
        "can_submit": session.can_submit(),
        "question": question_payload,
    }


def _outcome_payload(outcome: SubmissionOutcome) -> dict[str, object]:
    return {
        "correct_count": outcome.correct_count,
        "incorrect_count": outcome.incorrect_count,
        "total_questions": outcome.total_questions,
        "score_percent": outcome.score_percent,
        "recorded": outcome.recorded,
    }


def _summary_payload(summary: TestResultSummary, now: datetime) -> dict[str, object]:
    submitted_date, submitted_time = format_date_time(summary.submitted_at)
    submitted_at = summary.submitted_at
    if submitted_at.tzinfo is None:
        submitted_at = submitted_at.replace(tzinfo=timezone.utc)
    return {
        "test_id": summary.test_id,
        "attempt_id": summary.attempt_id,
        "test_title": summary.test_title,
        "description": summary.description,
        "duration": f"{summary.time_limit_minutes} minutes",
        "total_questions": summary.total_questions,
        "correct_count": summary.correct_count,
        "score_percent": summary.score_percent,
        "submitted_at": submitted_at.isoformat(),
        "submitted_date": submitted_date,
        "submitted_time": submitted_time,
        "submitted_ago": format_elapsed(submitted_at, max(now, submitted_at)),
        "details": [
            {
                "question_text": detail.question_text,
                "student_answer_text": detail.student_answer_text,
                "correct_answer_text": detail.correct_answer_text,
                "is_correct": detail.is_correct,
            }
            for detail in summary.details
        ],
    }


def _demo_payload(runner: DemoRunner) -> dict[str, object]:
    question = runner.current_question
    outcome = runner.outcome
    return {
        "title": DEMO_TITLE,
        "current_index": runner.current_index,
        "question_count": len(runner.questions),
        "is_last_question": runner.is_last_question,
        "can_advance": runner.can_advance(),
        "can_finish": runner.can_finish(),
        "question": {
            "id": question.id,
            "question_html": renderer.render_fragment(question.text),
            "choices": [renderer.render_inline(choice) for choice in question.choices],
            "selected_position": runner.answer_for(question.id),
        },
        "outcome": None
        if outcome is None
        else {
            "correct_count": outcome.correct_count,
            "total_questions": outcome.total_questions,
            "score_percent": outcome.score_percent,
        },
    }


def _get_manager_dependency(manager: AssessmentManager):
    def dependency() -> AssessmentManager:
        return manager

    return dependency


def create_api_app(
    manager: AssessmentManager,
    sessions: ClientRegistry[SessionController] | None = None,
    demos: ClientRegistry[DemoRunner] | None = None,
) -> FastAPI:
    """Create a FastAPI application wired to the provided assessment manager."""
    app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION)
    manager_dep = _get_manager_dependency(manager)
    if sessions is None:
        sessions = ClientRegistry(SESSION_IDLE_TIMEOUT_SECONDS)
    if demos is None:
        demos = ClientRegistry(DEMO_IDLE_TIMEOUT_SECONDS)
    app.state.sessions = sessions
    app.state.demos = demos

    def session_or_404(token: str) -> SessionController:
        session = sessions.get(token)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return session

    def ensure_demo(request: Request, response: Response) -> DemoRunner:
        token = request.cookies.get(_DEMO_COOKIE)
        runner = demos.get(token)
        if runner is None:
            runner = DemoRunner()
            token = demos.add(runner)
            response.set_cookie(key=_DEMO_COOKIE, value=token, samesite="lax", httponly=True)
        return runner

    # --- Tests and sessions ---

    @app.get("/tests")
    async def list_tests(manager: AssessmentManager = Depends(manager_dep)) -> list[dict[str, object]]:
        return [_test_payload(test) for test in await manager.list_tests()]

    @app.post("/sessions", status_code=201)
    async def start_session(
        payload: StartPayload,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            session, validation = await manager.start_session(payload.test_id, payload.student_id)
        except EmptyTestError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        if session is None:
            raise HTTPException(status_code=422, detail=validation.errors)
        token = sessions.add(session)
        return _session_payload(token, session)

    @app.get("/sessions/{token}")
    def get_session(token: str) -> dict[str, object]:
        return _session_payload(token, session_or_404(token))

    @app.put("/sessions/{token}/answers")
    def select_answer(token: str, payload: AnswerPayload) -> dict[str, object]:
        session = session_or_404(token)
        if not session.select_answer(payload.question_id, payload.choice_position):
            raise HTTPException(status_code=409, detail="Session is not accepting answers")
        return _session_payload(token, session)

    @app.post("/sessions/{token}/advance")
    def advance(token: str) -> dict[str, object]:
        session = session_or_404(token)
        session.advance()
        return _session_payload(token, session)

    @app.post("/sessions/{token}/retreat")
    def retreat(token: str) -> dict[str, object]:
        session = session_or_404(token)
        session.retreat()
        return _session_payload(token, session)

    @app.post("/sessions/{token}/submit")
    async def submit(
        token: str,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = session_or_404(token)
        try:
            outcome = await manager.submit(session)
        except (IncompleteSessionError, AttemptAlreadySubmittedError) as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        sessions.remove(token)
        return _outcome_payload(outcome)

    @app.delete("/sessions/{token}", status_code=204)
    def exit_session(token: str) -> Response:
        session_or_404(token).reset()
        sessions.remove(token)
        return Response(status_code=204)

    # --- Results ---

    @app.get("/students/{student_id}/results")
    async def student_results(
        student_id: str,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        summaries = await manager.student_results(student_id)
        overview = manager.results_overview(summaries)
        now = datetime.now(timezone.utc)
        return {
            "overview": {
                "tests_taken": overview.tests_taken,
                "average_score": overview.average_score,
                "best_score": overview.best_score,
            },
            "results": [_summary_payload(summary, now) for summary in summaries],
        }

    # --- Demo ---

    @app.get("/demo")
    def get_demo(request: Request, response: Response) -> dict[str, object]:
        return _demo_payload(ensure_demo(request, response))

    @app.post("/demo/answers")
    def answer_demo(payload: DemoAnswerPayload, request: Request, response: Response) -> dict[str, object]:
        runner = ensure_demo(request, response)
        runner.select_answer(runner.current_question.id, payload.choice_position)
        return _demo_payload(runner)

    @app.post("/demo/advance")
    def advance_demo(request: Request, response: Response) -> dict[str, object]:
        runner = ensure_demo(request, response)
        if not runner.advance() and not runner.can_advance():
            raise HTTPException(status_code=409, detail="Answer the current question first")
        return _demo_payload(runner)

    @app.post("/demo/retreat")
    def retreat_demo(request: Request, response: Response) -> dict[str, object]:
        runner = ensure_demo(request, response)
        runner.retreat()
        return _demo_payload(runner)

    @app.post("/demo/finish")
    def finish_demo(request: Request, response: Response) -> dict[str, object]:
        runner = ensure_demo(request, response)
        if runner.finish() is None:
            raise HTTPException(status_code=409, detail="Answer the last question before finishing")
        return _demo_payload(runner)

    @app.post("/demo/reset")
    def reset_demo(request: Request, response: Response) -> dict[str, object]:
        runner = ensure_demo(request, response)
        runner.reset()
        return _demo_payload(runner)

    return app


def run_api_server(
    manager: AssessmentManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    log_level: str = "info",
) -> None:
    """Serve the API in the foreground until interrupted."""
    app = create_api_app(manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level=log_level.lower())
    server = uvicorn.Server(config)
    logger.info("Serving %s API on %s:%d", APP_NAME, host, port)
    server.run()
