"""Exceptions raised by the assessment engine."""

from __future__ import annotations


class AssessmentError(Exception):
    """Base class for assessment engine errors."""


class EmptyTestError(AssessmentError):
    """Raised when starting a test that has no questions."""

    def __init__(self, test_id: str) -> None:
        super().__init__(f"Test {test_id!r} has no questions and cannot be started.")
        self.test_id = test_id


class IncompleteSessionError(AssessmentError):
    """Raised when submitting before every question has an answer."""

    def __init__(self, answered: int, total: int) -> None:
        super().__init__(
            f"Only {answered} of {total} questions answered; answer all questions before submitting."
        )
        self.answered = answered
        self.total = total


class PersistenceError(AssessmentError):
    """Raised by a store when a read or write fails."""


class TestImportError(AssessmentError):
    """Raised when a test definition file cannot be parsed."""

    __test__ = False


class AttemptAlreadySubmittedError(AssessmentError):
    """Raised when submitting an attempt a second time."""
