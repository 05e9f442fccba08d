"""Service turning stored result rows into per-test score summaries."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
import logging

from testnest_app.core.choice_resolver import ChoiceResolver
from testnest_app.core.models import (
    JoinedResultRow,
    Question,
    QuestionDetail,
    RawResult,
    ResultsOverview,
    Test,
    TestResultSummary,
)
from testnest_app.core.services.scoring_engine import percent_score

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _AttemptGroup:
    """Mutable accumulator used while walking the rows."""

    test: Test
    attempt_id: str | None
    submitted_at: datetime
    correct_count: int = 0
    details: list[QuestionDetail] = field(default_factory=list)


class ResultAggregator:
    """Groups result rows by test attempt and scores them.

    The output depends only on the inputs: rows are grouped by
    ``(test_id, attempt_id)`` in first-seen order, details keep row order, and
    correctness always comes from :meth:`ChoiceResolver.resolve`. Rows written
    without an attempt id fall into one group per test.
    """

    def __init__(self, resolver: ChoiceResolver | None = None) -> None:
        self._resolver = resolver or ChoiceResolver()

    def aggregate(
        self,
        raw_results: Iterable[RawResult],
        tests_by_id: Mapping[str, Test],
        questions_by_id: Mapping[str, Question],
    ) -> list[TestResultSummary]:
        groups: dict[tuple[str, str | None], _AttemptGroup] = {}

        for row in raw_results:
            test = tests_by_id.get(row.test_id)
            if test is None:
                logger.warning("Skipping result for unknown test %s", row.test_id)
                continue
            question = questions_by_id.get(row.question_id)
            if question is None:
                logger.warning("Skipping result for unknown question %s in test %s", row.question_id, row.test_id)
                continue

            key = (row.test_id, row.attempt_id)
            group = groups.get(key)
            if group is None:
                group = _AttemptGroup(test=test, attempt_id=row.attempt_id, submitted_at=row.created_at)
                groups[key] = group

            detail = self._resolver.resolve(question, row.given_answer)
            if detail.is_correct:
                group.correct_count += 1
            group.details.append(detail)

        return [self._summarize(group) for group in groups.values()]

    def aggregate_joined(self, rows: Iterable[JoinedResultRow]) -> list[TestResultSummary]:
        """Aggregate rows that already embed their test and question."""
        rows = list(rows)
        tests_by_id: dict[str, Test] = {}
        questions_by_id: dict[str, Question] = {}
        for joined in rows:
            test_id = joined.result.test_id
            if test_id not in tests_by_id:
                tests_by_id[test_id] = Test(
                    id=test_id,
                    title=joined.test.title,
                    description=joined.test.description,
                    time_limit_minutes=joined.test.time_limit_minutes,
                )
            questions_by_id.setdefault(joined.result.question_id, joined.question)
        return self.aggregate((joined.result for joined in rows), tests_by_id, questions_by_id)

    @staticmethod
    def overview(summaries: list[TestResultSummary]) -> ResultsOverview:
        """Tests taken, average and best score across summaries."""
        if not summaries:
            return ResultsOverview(tests_taken=0, average_score=0, best_score=0)
        scores = [summary.score_percent for summary in summaries]
        count = len(scores)
        return ResultsOverview(
            tests_taken=count,
            average_score=(2 * sum(scores) + count) // (2 * count),
            best_score=max(scores),
        )

    @staticmethod
    def _summarize(group: _AttemptGroup) -> TestResultSummary:
        total = len(group.details)
        return TestResultSummary(
            test_id=group.test.id,
            test_title=group.test.title,
            total_questions=total,
            correct_count=group.correct_count,
            score_percent=percent_score(group.correct_count, total),
            submitted_at=group.submitted_at,
            details=list(group.details),
            attempt_id=group.attempt_id,
            description=group.test.description,
            time_limit_minutes=group.test.time_limit_minutes,
        )
