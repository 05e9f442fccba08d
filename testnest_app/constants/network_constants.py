"""Network configuration constants for the assessment server."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000

# Idle time after which the API forgets a client's open test or demo.
SESSION_IDLE_TIMEOUT_SECONDS: int = 3 * 60 * 60
DEMO_IDLE_TIMEOUT_SECONDS: int = 30 * 60
