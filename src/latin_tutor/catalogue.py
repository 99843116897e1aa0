"""Read access to lesson content: lessons, vocabulary and static questions."""
import logging

from latin_tutor.db import get_connection
from latin_tutor.models import VocabWord, question_from_row

logger = logging.getLogger(__name__)


class Catalogue:
    def __init__(self, db_path: str):
        self.db_path = db_path
        self._vocab_cache: dict[int, list[VocabWord]] = {}

    def lesson_numbers(self) -> list[int]:
        conn = get_connection(self.db_path)
        rows = conn.execute("SELECT lesson_number FROM lessons ORDER BY lesson_number").fetchall()
        conn.close()
        return [r["lesson_number"] for r in rows]

    def get_lesson(self, lesson_ref: int) -> dict | None:
        conn = get_connection(self.db_path)
        row = conn.execute(
            "SELECT * FROM lessons WHERE lesson_number = ?", (lesson_ref,)
        ).fetchone()
        conn.close()
        return dict(row) if row else None

    def get_vocabulary(self, lesson_ref: int) -> list[VocabWord]:
        if lesson_ref in self._vocab_cache:
            return self._vocab_cache[lesson_ref]
        conn = get_connection(self.db_path)
        rows = conn.execute(
            "SELECT * FROM vocabulary WHERE lesson_ref = ? ORDER BY word", (lesson_ref,)
        ).fetchall()
        conn.close()
        words = [VocabWord.from_row(r) for r in rows]
        self._vocab_cache[lesson_ref] = words
        logger.debug("Fetched %d vocabulary words for lesson %s", len(words), lesson_ref)
        return words

    def get_word(self, word_id: str) -> VocabWord | None:
        conn = get_connection(self.db_path)
        row = conn.execute("SELECT * FROM vocabulary WHERE id = ?", (word_id,)).fetchone()
        conn.close()
        return VocabWord.from_row(row) if row else None

    def get_static_questions(self, lesson_ref: int) -> list:
        conn = get_connection(self.db_path)
        rows = conn.execute(
            "SELECT * FROM quiz_questions WHERE lesson_ref = ? ORDER BY question_index, id",
            (lesson_ref,),
        ).fetchall()
        conn.close()
        return [question_from_row(r) for r in rows]

    def invalidate(self, lesson_ref: int | None = None) -> None:
        if lesson_ref is None:
            self._vocab_cache.clear()
        else:
            self._vocab_cache.pop(lesson_ref, None)
