"""Seed the database with the bundled sample lessons."""
import json
from pathlib import Path

from latin_tutor.db import get_connection
from latin_tutor.importer import import_lessons

CONTENT_DIR = Path(__file__).parent / "content"


def is_seeded(db_path: str) -> bool:
    """Check whether the database already has lessons."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM lessons").fetchone()[0]
    conn.close()
    return count > 0


def load_sample_lessons() -> list[dict]:
    return json.loads((CONTENT_DIR / "lessons.json").read_text(encoding="utf-8"))["lessons"]


def seed_all(db_path: str) -> None:
    """Load the sample lessons, vocabulary and questions once."""
    if is_seeded(db_path):
        return
    import_lessons(db_path, load_sample_lessons())
