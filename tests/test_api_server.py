"""Tests for the HTTP API using FastAPI's test client."""

import pytest
from fastapi.testclient import TestClient

from testnest_app.core.services.demo_runner import DEMO_QUESTIONS
from testnest_app.server.api_server import ClientRegistry, create_api_app


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def app(manager):
    return create_api_app(manager)


@pytest.fixture
def client(app):
    return TestClient(app)


def _start(client: TestClient, test_id: str = "t1", student_id: str = "1234567"):
    return client.post("/sessions", json={"test_id": test_id, "student_id": student_id})


def _answer(client: TestClient, token: str, question_id: str, position: int):
    return client.put(f"/sessions/{token}/answers", json={"question_id": question_id, "choice_position": position})


class TestTests:
    def test_list_tests(self, client):
        response = client.get("/tests")

        assert response.status_code == 200
        listed = {item["id"]: item for item in response.json()}
        assert listed["t1"]["question_count"] == 3
        assert listed["t1"]["startable"] is True
        assert listed["empty"]["startable"] is False

    def test_list_tests_when_store_is_down(self, client, store):
        store.fail_reads = True

        assert client.get("/tests").json() == []


class TestSessions:
    def test_start_session(self, client, app):
        response = _start(client)

        assert response.status_code == 201
        body = response.json()
        assert body["state"] == "IN_PROGRESS"
        assert body["question"]["number"] == 1
        assert body["question"]["question_html"] == "<p>2 + 2?</p>\n"
        assert body["question"]["choices"] == ["3", "4", "5", "22"]
        assert body["question"]["selected_position"] is None
        assert len(app.state.sessions) == 1

    def test_start_unknown_test(self, client):
        response = _start(client, test_id="missing")

        assert response.status_code == 422
        assert response.json()["detail"] == ["Test missing was not found"]

    def test_start_with_malformed_student_id(self, client):
        response = _start(client, student_id="12ab")

        assert response.status_code == 422
        assert response.json()["detail"] == ["Student id must be a 7 or 8 digit number"]

    def test_start_empty_test(self, client):
        response = _start(client, test_id="empty")

        assert response.status_code == 409

    def test_unknown_session(self, client):
        assert client.get("/sessions/nope").status_code == 404

    def test_navigation_and_answers(self, client):
        token = _start(client).json()["token"]

        body = _answer(client, token, "q1", 1).json()
        assert body["answered_count"] == 1
        assert body["question"]["selected_position"] == 1
        assert body["can_submit"] is False

        body = client.post(f"/sessions/{token}/advance").json()
        assert body["current_index"] == 1
        assert body["question"]["id"] == "q2"

        body = client.post(f"/sessions/{token}/retreat").json()
        assert body["current_index"] == 0

    def test_submit_incomplete_is_conflict(self, client):
        token = _start(client).json()["token"]
        _answer(client, token, "q1", 1)

        response = client.post(f"/sessions/{token}/submit")

        assert response.status_code == 409
        assert client.get(f"/sessions/{token}").status_code == 200

    def test_submit_and_fetch_results(self, client, app):
        token = _start(client).json()["token"]
        for question_id, position in (("q1", 1), ("q2", 0), ("q3", 0)):
            _answer(client, token, question_id, position)

        response = client.post(f"/sessions/{token}/submit")

        assert response.status_code == 200
        assert response.json() == {
            "correct_count": 2,
            "incorrect_count": 1,
            "total_questions": 3,
            "score_percent": 67,
            "recorded": True,
        }
        assert len(app.state.sessions) == 0

        results = client.get("/students/1234567/results").json()
        assert results["overview"] == {"tests_taken": 1, "average_score": 67, "best_score": 67}
        (summary,) = results["results"]
        assert summary["test_title"] == "Arithmetic"
        assert summary["duration"] == "10 minutes"
        assert summary["submitted_ago"] == "Just now"
        assert [detail["is_correct"] for detail in summary["details"]] == [True, True, False]

    def test_unrecorded_submission_is_reported(self, client, store):
        token = _start(client).json()["token"]
        for question_id in ("q1", "q2", "q3"):
            _answer(client, token, question_id, 0)
        store.fail_writes = True

        body = client.post(f"/sessions/{token}/submit").json()

        assert body["recorded"] is False
        assert body["correct_count"] == 1

    def test_exit_session(self, client, app):
        token = _start(client).json()["token"]

        assert client.delete(f"/sessions/{token}").status_code == 204
        assert len(app.state.sessions) == 0
        assert client.get(f"/sessions/{token}").status_code == 404


class TestResults:
    def test_no_results(self, client):
        body = client.get("/students/1234567/results").json()

        assert body == {"overview": {"tests_taken": 0, "average_score": 0, "best_score": 0}, "results": []}

    def test_results_are_scoped_to_student(self, client):
        token = _start(client, student_id="7654321").json()["token"]
        for question_id in ("q1", "q2", "q3"):
            _answer(client, token, question_id, 1)
        client.post(f"/sessions/{token}/submit")

        assert client.get("/students/1234567/results").json()["results"] == []
        (summary,) = client.get("/students/7654321/results").json()["results"]
        assert summary["details"][0]["student_answer_text"] == "4"
        assert summary["details"][1]["student_answer_text"] == "2"


class TestDemo:
    def test_demo_sets_cookie_and_starts_at_first_question(self, client):
        response = client.get("/demo")

        assert response.status_code == 200
        assert "testnest_demo" in response.cookies
        body = response.json()
        assert body["current_index"] == 0
        assert body["question_count"] == len(DEMO_QUESTIONS)
        assert body["outcome"] is None

    def test_advance_requires_answer(self, client):
        client.get("/demo")

        assert client.post("/demo/advance").status_code == 409

    def test_full_demo_run(self, client):
        client.get("/demo")
        for question in DEMO_QUESTIONS:
            client.post("/demo/answers", json={"choice_position": question.correct_position})
            client.post("/demo/advance")

        body = client.post("/demo/finish").json()

        assert body["outcome"] == {"correct_count": 5, "total_questions": 5, "score_percent": 100}

        body = client.post("/demo/reset").json()
        assert body["outcome"] is None
        assert body["current_index"] == 0

    def test_finish_on_first_question_is_conflict(self, client):
        client.get("/demo")
        client.post("/demo/answers", json={"choice_position": DEMO_QUESTIONS[0].correct_position})

        response = client.post("/demo/finish")

        assert response.status_code == 409
        assert client.get("/demo").json()["outcome"] is None

    def test_finish_with_last_question_unanswered_is_conflict(self, client):
        client.get("/demo")
        for question in DEMO_QUESTIONS[:-1]:
            client.post("/demo/answers", json={"choice_position": question.correct_position})
            client.post("/demo/advance")

        body = client.get("/demo").json()
        assert body["is_last_question"] is True
        assert body["can_finish"] is False
        assert client.post("/demo/finish").status_code == 409

    def test_demo_state_is_per_client(self, app):
        first = TestClient(app)
        second = TestClient(app)
        first.get("/demo")
        first.post("/demo/answers", json={"choice_position": 0})
        first.post("/demo/advance")

        assert second.get("/demo").json()["current_index"] == 0
        assert first.get("/demo").json()["current_index"] == 1


class TestClientRegistry:
    def setup_method(self):
        self.clock = FakeClock()
        self.registry = ClientRegistry(idle_timeout=60, clock=self.clock)

    def test_add_get_remove(self):
        token = self.registry.add("state")

        assert self.registry.get(token) == "state"
        assert self.registry.get(None) is None
        assert self.registry.get("unknown") is None

        self.registry.remove(token)
        assert len(self.registry) == 0

    def test_idle_entry_expires_on_lookup(self):
        token = self.registry.add("state")
        self.clock.now += 61

        assert self.registry.get(token) is None
        assert len(self.registry) == 0

    def test_lookup_keeps_entry_alive(self):
        token = self.registry.add("state")
        self.clock.now += 50
        self.registry.get(token)
        self.clock.now += 50

        assert self.registry.get(token) == "state"

    def test_add_sweeps_idle_entries(self):
        for _ in range(10):
            self.registry.add("old")
        self.clock.now += 61

        self.registry.add("new")

        assert len(self.registry) == 1


class TestIdleEviction:
    def test_cookieless_demo_requests_do_not_accumulate(self, manager):
        clock = FakeClock()
        demos = ClientRegistry(idle_timeout=60, clock=clock)
        app = create_api_app(manager, demos=demos)

        for _ in range(50):
            TestClient(app).get("/demo")
        assert len(demos) == 50

        clock.now += 61
        TestClient(app).get("/demo")

        assert len(demos) == 1

    def test_abandoned_session_expires(self, manager):
        clock = FakeClock()
        sessions = ClientRegistry(idle_timeout=60, clock=clock)
        client = TestClient(create_api_app(manager, sessions=sessions))
        token = _start(client).json()["token"]

        clock.now += 61

        assert client.get(f"/sessions/{token}").status_code == 404
        assert len(sessions) == 0
