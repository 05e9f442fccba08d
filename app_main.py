"""Application entry point for the TestNest assessment server."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from testnest_app.constants.about import APP_NAME
from testnest_app.core.assessment_importer import load_test_from_file
from testnest_app.core.assessment_manager import AssessmentManager
from testnest_app.core.choice_resolver import ChoiceResolver
from testnest_app.core.errors import TestImportError
from testnest_app.core.services.assessment_store import InMemoryAssessmentStore
from testnest_app.server.api_server import run_api_server
from testnest_app.utils.logging_config import configure_logging
from testnest_app.utils.settings import get_settings

_SAMPLE_TEST = Path(__file__).resolve().parent / "testnest_app" / "data" / "sample_test.txt"


def build_store(seed_files: list[Path]) -> InMemoryAssessmentStore:
    """Create an in-memory store holding the tests from the given files."""
    logger = logging.getLogger("testnest_app")
    store = InMemoryAssessmentStore()
    for path in seed_files:
        try:
            imported = load_test_from_file(path)
        except (OSError, TestImportError) as exc:
            logger.error("Skipping test file %s: %s", path, exc)
            continue
        test = store.add_test(imported.test)
        logger.info("Loaded test %s (%s) with %d questions", test.id, test.title, test.question_count)
    return store


def main() -> None:
    """Initialize logging, load the configured tests and serve the API."""
    settings = get_settings()
    logger = configure_logging(settings.log_level)
    logger.info("Starting %s…", APP_NAME)

    store = build_store(settings.seed_files or [_SAMPLE_TEST])
    manager = AssessmentManager(store, ChoiceResolver(settings.grading_mode))
    tests = asyncio.run(manager.list_tests())
    logger.info("%d tests available", len(tests))

    run_api_server(manager, host=settings.host, port=settings.port, log_level=settings.log_level)


if __name__ == "__main__":
    main()
