"""Application defaults."""
import os
from pathlib import Path

DEFAULT_DB_PATH = os.environ.get(
    "LATIN_TUTOR_DB", str(Path.home() / ".latin_tutor" / "tutor.db")
)

# Review sessions
DEFAULT_SESSION_SIZE = 10
OVERFETCH_FACTOR = 5
SMALL_SESSION_THRESHOLD = 7
SESSION_CACHE_KEY = "review_session_cache"
SESSION_CACHE_TTL_HOURS = 24

# Quiz generation
VOCAB_COVERAGE = 0.5
QUEUE_TARGET_DEPTH = 5
QUEUE_EAGER_COUNT = 3
QUEUE_WORKERS = 2

# Store
TRANSIENT_RETRY_DELAY = 0.2
DB_TIMEOUT = 5.0
IDENTITY_WAIT_SECONDS = 5.0
