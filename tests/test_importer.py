# tests/test_importer.py
import json

import pytest

from latin_tutor.catalogue import Catalogue
from latin_tutor.db import get_connection, init_db
from latin_tutor.errors import ImportFormatError
from latin_tutor.importer import import_lesson_file, read_lesson_file, word_id

YAML_LESSON = """
lesson: 4
title: The Glory Be
module: Doxologies
vocabulary:
  - word: gloria
    meaning: glory
    part_of_speech: noun
  - word: principium
    meaning: beginning
questions:
  - question_id: D04-Q01
    type: recitation
    question: Recite the Gloria Patri.
    correct_answer: Gloria Patri, et Filio, et Spiritui Sancto.
"""


def test_word_id():
    assert word_id(1, "Deus") == "L01-deus"
    assert word_id(12, "in saecula saeculorum") == "L12-in-saecula-saeculorum"


def test_read_yaml_file(tmp_path):
    f = tmp_path / "lesson4.yaml"
    f.write_text(YAML_LESSON)
    lessons = read_lesson_file(str(f))
    assert len(lessons) == 1
    assert lessons[0]["title"] == "The Glory Be"


def test_read_json_lesson_list(tmp_path):
    f = tmp_path / "lessons.json"
    f.write_text(json.dumps({"lessons": [{"lesson": 4}, {"lesson": 5}]}))
    assert [l["lesson"] for l in read_lesson_file(str(f))] == [4, 5]


def test_unsupported_file_type(tmp_path):
    f = tmp_path / "notes.txt"
    f.write_text("Gloria Patri")
    with pytest.raises(ImportFormatError):
        read_lesson_file(str(f))


def test_unparseable_file(tmp_path):
    f = tmp_path / "broken.json"
    f.write_text("{not json")
    with pytest.raises(ImportFormatError):
        read_lesson_file(str(f))


def test_import_yaml_lesson(tmp_path, tmp_db):
    init_db(tmp_db)
    f = tmp_path / "lesson4.yml"
    f.write_text(YAML_LESSON)
    result = import_lesson_file(tmp_db, str(f))
    assert result == {"filename": "lesson4.yml", "lessons": 1, "vocabulary": 2, "questions": 1}

    catalogue = Catalogue(tmp_db)
    assert catalogue.get_lesson(4)["title"] == "The Glory Be"
    assert [w.word for w in catalogue.get_vocabulary(4)] == ["gloria", "principium"]
    question = catalogue.get_static_questions(4)[0]
    assert question.correct_answer == "Gloria Patri, et Filio, et Spiritui Sancto."
    assert question.index == 0


def test_reimport_replaces_content(tmp_path, tmp_db):
    init_db(tmp_db)
    f = tmp_path / "lesson4.yaml"
    f.write_text(YAML_LESSON)
    import_lesson_file(tmp_db, str(f))
    f.write_text(YAML_LESSON.replace("The Glory Be", "Gloria Patri"))
    import_lesson_file(tmp_db, str(f))
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT title FROM lessons WHERE lesson_number = 4").fetchone()[0] == "Gloria Patri"
    assert conn.execute("SELECT COUNT(*) FROM vocabulary").fetchone()[0] == 2
    assert conn.execute("SELECT COUNT(*) FROM quiz_questions").fetchone()[0] == 1
    conn.close()


def test_invalid_question_type_rejected(tmp_path, tmp_db):
    init_db(tmp_db)
    f = tmp_path / "bad.json"
    f.write_text(json.dumps({"lesson": 4, "questions": [
        {"question_id": "Q1", "type": "essay", "correct_answer": "x"},
    ]}))
    with pytest.raises(ImportFormatError):
        import_lesson_file(tmp_db, str(f))
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM lessons").fetchone()[0] == 0
    conn.close()


def test_missing_lesson_number_rejected(tmp_path, tmp_db):
    init_db(tmp_db)
    f = tmp_path / "bad.yaml"
    f.write_text("title: No number\n")
    with pytest.raises(ImportFormatError):
        import_lesson_file(tmp_db, str(f))
