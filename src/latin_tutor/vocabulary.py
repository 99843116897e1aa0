"""Vocabulary helpers shared by quizzes and review sessions."""
import logging
import random
import sqlite3
from typing import Optional

from latin_tutor.models import VocabWord

logger = logging.getLogger(__name__)


def cumulative_vocabulary(catalogue, lesson_ceiling: int) -> list[VocabWord]:
    """All words from lesson 1 up to ``lesson_ceiling``, deduplicated by text (first wins)."""
    seen: dict[str, VocabWord] = {}
    for lesson in range(1, lesson_ceiling + 1):
        try:
            words = catalogue.get_vocabulary(lesson)
        except sqlite3.Error as e:
            logger.warning("Failed to fetch vocabulary for lesson %s, skipping: %s", lesson, e)
            continue
        for word in words:
            seen.setdefault(word.word, word)
    return list(seen.values())


def build_word_bank(catalogue, lesson_ceiling: int, size: int, exclude: Optional[str] = None,
                    rng: Optional[random.Random] = None) -> list[VocabWord]:
    """Pick ``size`` distractor words from the lessons the learner has reached.

    ``exclude`` is compared by word text, case-insensitively. When fewer words
    exist than requested, all of them are returned in random order.
    """
    rng = rng or random.Random()
    words = cumulative_vocabulary(catalogue, lesson_ceiling)
    if exclude:
        words = [w for w in words if w.word.lower() != exclude.lower()]
    rng.shuffle(words)
    if len(words) < size:
        logger.warning(
            "Requested %d words but only %d available for lessons 1-%d, returning all available",
            size, len(words), lesson_ceiling,
        )
        return words
    return words[:size]
