"""Assessment-related constants shared across the core and server layers."""

MIN_CHOICES: int = 2
MAX_CHOICES: int = 4
CHOICE_LETTERS: tuple[str, ...] = ("A", "B", "C", "D")

# Answer code stored for a question the student never answered.
NO_ANSWER_CODE: int = 0
NO_ANSWER_TEXT: str = "No Answer"

DEFAULT_TIME_LIMIT_MINUTES: int = 30
