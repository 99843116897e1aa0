"""Import lesson content from JSON or YAML files."""
import json
import logging
import re
from pathlib import Path

import yaml

from latin_tutor.db import get_connection
from latin_tutor.errors import ImportFormatError
from latin_tutor.models import QuestionType

logger = logging.getLogger(__name__)

QUESTION_TYPES = {t.value for t in QuestionType}


def read_lesson_file(file_path: str) -> list[dict]:
    """Parse a lesson document. A file holds one lesson or ``{"lessons": [...]}``."""
    path = Path(file_path)
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    try:
        if suffix == ".json":
            data = json.loads(text)
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            raise ImportFormatError(f"Unsupported lesson file type: {suffix or path.name}")
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ImportFormatError(f"Could not parse {path.name}: {e}") from e

    if isinstance(data, dict) and "lessons" in data:
        lessons = data["lessons"]
    elif isinstance(data, dict):
        lessons = [data]
    else:
        lessons = data
    if not isinstance(lessons, list) or not all(isinstance(lesson, dict) for lesson in lessons):
        raise ImportFormatError(f"{path.name} does not contain lesson objects")
    return lessons


def word_id(lesson_number: int, word: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", word.lower()).strip("-")
    return f"L{lesson_number:02d}-{slug}"


def _validate_lesson(lesson: dict) -> int:
    try:
        number = int(lesson["lesson"])
    except (KeyError, TypeError, ValueError) as e:
        raise ImportFormatError("Lesson is missing a numeric 'lesson' field") from e
    for q in lesson.get("questions", []):
        if q.get("type") not in QUESTION_TYPES:
            raise ImportFormatError(f"Lesson {number}: unknown question type {q.get('type')!r}")
        if "question_id" not in q or "correct_answer" not in q:
            raise ImportFormatError(f"Lesson {number}: question needs 'question_id' and 'correct_answer'")
    for v in lesson.get("vocabulary", []):
        if not v.get("word") or not v.get("meaning"):
            raise ImportFormatError(f"Lesson {number}: vocabulary entries need 'word' and 'meaning'")
    return number


def import_lessons(db_path: str, lessons: list[dict]) -> dict:
    """Insert or replace lessons with their vocabulary and static questions."""
    numbers = [_validate_lesson(lesson) for lesson in lessons]
    counts = {"lessons": 0, "vocabulary": 0, "questions": 0}
    conn = get_connection(db_path)
    for number, lesson in zip(numbers, lessons):
        conn.execute(
            "INSERT INTO lessons (lesson_number, title, module) VALUES (?, ?, ?) "
            "ON CONFLICT(lesson_number) DO UPDATE SET title=excluded.title, module=excluded.module",
            (number, lesson.get("title", f"Lesson {number}"), lesson.get("module")),
        )
        counts["lessons"] += 1
        for v in lesson.get("vocabulary", []):
            conn.execute(
                """INSERT OR REPLACE INTO vocabulary
                (id, lesson_ref, word, meaning, part_of_speech, case_info, conjugation_info, frequency, liturgical_context)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    v.get("id") or word_id(number, v["word"]), number, v["word"], v["meaning"],
                    v.get("part_of_speech"), v.get("case_info"), v.get("conjugation_info"),
                    int(v.get("frequency", 1)), v.get("liturgical_context"),
                ),
            )
            counts["vocabulary"] += 1
        for index, q in enumerate(lesson.get("questions", [])):
            options = q.get("options")
            conn.execute(
                """INSERT OR REPLACE INTO quiz_questions
                (lesson_ref, question_id, question_index, type, question, options, correct_answer, explanation)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    number, q["question_id"], index, q["type"], q.get("question", ""),
                    json.dumps(options) if options is not None else None,
                    json.dumps(q["correct_answer"]), q.get("explanation", ""),
                ),
            )
            counts["questions"] += 1
    conn.commit()
    conn.close()
    logger.info("Imported %s", counts)
    return counts


def import_lesson_file(db_path: str, file_path: str) -> dict:
    counts = import_lessons(db_path, read_lesson_file(file_path))
    return {"filename": Path(file_path).name, **counts}
