"""Shared fixtures for the assessment engine tests."""

from __future__ import annotations

import pytest

from testnest_app.core.assessment_manager import AssessmentManager
from testnest_app.core.models import Question, Test
from testnest_app.core.services.assessment_store import InMemoryAssessmentStore
from tests.factories import make_question


@pytest.fixture
def four_choice_question() -> Question:
    return make_question("q1", ["A", "B", "C", "D"], correct_index=2)


@pytest.fixture
def sample_test() -> Test:
    return Test(
        id="t1",
        title="Arithmetic",
        description="Simple sums",
        time_limit_minutes=10,
        questions=[
            make_question("q1", ["3", "4", "5", "22"], correct_index=2, text="2 + 2?"),
            make_question("q2", ["1", "2"], correct_index=1, text="3 - 2?"),
            make_question("q3", ["6", "8", "9"], correct_index=3, text="3 * 3?"),
        ],
    )


@pytest.fixture
def store(sample_test: Test) -> InMemoryAssessmentStore:
    store = InMemoryAssessmentStore()
    store.add_test(sample_test)
    store.add_test(Test(id="empty", title="Empty", description="No questions yet", time_limit_minutes=5))
    return store


@pytest.fixture
def manager(store: InMemoryAssessmentStore) -> AssessmentManager:
    return AssessmentManager(store)
