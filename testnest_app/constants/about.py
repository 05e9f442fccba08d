"""Static metadata describing TestNest."""

APP_NAME = "TestNest"
APP_VERSION = "0.1.0"
APP_ABOUT_TEXT = (
    "TestNest is a multiple-choice testing platform. Tutors author tests of "
    "two to four choice questions and students take them and review a scored, "
    "question by question breakdown."
)
