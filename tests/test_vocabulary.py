import random
import sqlite3

from latin_tutor.catalogue import Catalogue
from latin_tutor.models import VocabWord
from latin_tutor.vocabulary import build_word_bank, cumulative_vocabulary


class FakeCatalogue:
    def __init__(self, lessons, broken=()):
        self.lessons = lessons
        self.broken = set(broken)

    def get_vocabulary(self, lesson_ref):
        if lesson_ref in self.broken:
            raise sqlite3.OperationalError("database is locked")
        return self.lessons.get(lesson_ref, [])


def word(word_id, lesson_ref, text, meaning):
    return VocabWord(id=word_id, lesson_ref=lesson_ref, word=text, meaning=meaning)


def test_cumulative_vocabulary_dedupes_by_text():
    catalogue = FakeCatalogue({
        1: [word("a", 1, "Deus", "God"), word("b", 1, "et", "and")],
        2: [word("c", 2, "Deus", "a god"), word("d", 2, "panis", "bread")],
        3: [word("e", 3, "mater", "mother")],
    })
    words = cumulative_vocabulary(catalogue, 2)
    assert [w.id for w in words] == ["a", "b", "d"]


def test_cumulative_vocabulary_skips_failing_lessons():
    catalogue = FakeCatalogue({1: [word("a", 1, "Deus", "God")], 2: [word("d", 2, "panis", "bread")]},
                              broken={1})
    assert [w.id for w in cumulative_vocabulary(catalogue, 2)] == ["d"]


def test_word_bank_excludes_word_case_insensitively(seeded_db):
    catalogue = Catalogue(seeded_db)
    bank = build_word_bank(catalogue, 1, 20, exclude="deus", rng=random.Random(0))
    assert "Deus" not in {w.word for w in bank}
    assert len(bank) == 9


def test_word_bank_size_and_ceiling(seeded_db):
    catalogue = Catalogue(seeded_db)
    bank = build_word_bank(catalogue, 2, 3, rng=random.Random(0))
    assert len(bank) == 3
    assert all(w.lesson_ref <= 2 for w in bank)
    assert len({w.word for w in bank}) == 3


def test_word_bank_returns_everything_when_short():
    catalogue = FakeCatalogue({1: [word("a", 1, "Deus", "God"), word("b", 1, "et", "and")]})
    bank = build_word_bank(catalogue, 1, 5, rng=random.Random(0))
    assert sorted(w.id for w in bank) == ["a", "b"]
