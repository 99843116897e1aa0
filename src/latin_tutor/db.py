"""Database initialization and connection management."""
import sqlite3
from pathlib import Path

from latin_tutor.config import DB_TIMEOUT, DEFAULT_DB_PATH

SCHEMA = """
CREATE TABLE IF NOT EXISTS lessons (
    lesson_number INTEGER PRIMARY KEY,
    title TEXT NOT NULL,
    module TEXT
);

CREATE TABLE IF NOT EXISTS vocabulary (
    id TEXT PRIMARY KEY,
    lesson_ref INTEGER NOT NULL REFERENCES lessons(lesson_number),
    word TEXT NOT NULL,
    meaning TEXT NOT NULL,
    part_of_speech TEXT,
    case_info TEXT,
    conjugation_info TEXT,
    frequency INTEGER DEFAULT 1,
    liturgical_context TEXT
);

CREATE TABLE IF NOT EXISTS quiz_questions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    lesson_ref INTEGER NOT NULL REFERENCES lessons(lesson_number),
    question_id TEXT NOT NULL,
    question_index INTEGER,
    type TEXT NOT NULL,
    question TEXT NOT NULL,
    options TEXT,
    correct_answer TEXT NOT NULL,
    explanation TEXT,
    UNIQUE(lesson_ref, question_id)
);

CREATE TABLE IF NOT EXISTS review_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id TEXT NOT NULL,
    lesson_ref INTEGER NOT NULL,
    question_id TEXT NOT NULL,
    vocab_word_ref TEXT,
    question_type TEXT NOT NULL DEFAULT 'translation',
    state TEXT NOT NULL DEFAULT 'learning',
    due_at TEXT NOT NULL,
    last_reviewed_at TEXT,
    interval_days INTEGER DEFAULT 0,
    streak INTEGER DEFAULT 0,
    lapses INTEGER DEFAULT 0,
    last_result TEXT
);

CREATE UNIQUE INDEX IF NOT EXISTS review_items_question
    ON review_items(owner_id, lesson_ref, question_id) WHERE vocab_word_ref IS NULL;

CREATE UNIQUE INDEX IF NOT EXISTS review_items_vocab
    ON review_items(owner_id, lesson_ref, vocab_word_ref) WHERE vocab_word_ref IS NOT NULL;

CREATE INDEX IF NOT EXISTS review_items_due ON review_items(owner_id, due_at);

CREATE TABLE IF NOT EXISTS review_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id TEXT NOT NULL,
    lesson_ref INTEGER NOT NULL,
    question_id TEXT NOT NULL,
    review_item_ref INTEGER NOT NULL REFERENCES review_items(id),
    result TEXT NOT NULL,
    occurred_at TEXT NOT NULL,
    answer TEXT
);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path, timeout=DB_TIMEOUT)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
