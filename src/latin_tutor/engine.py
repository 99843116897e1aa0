"""Wiring of the review engine's services.

One ``ReviewEngine`` is built at startup and handed to whatever drives it, so
every caller shares the same store, catalogue and quiz queue.
"""
import logging
import random
from typing import Optional

from latin_tutor.catalogue import Catalogue
from latin_tutor.config import DEFAULT_SESSION_SIZE
from latin_tutor.identity import LocalIdentity, load_local_identity
from latin_tutor.quiz import grade_quiz, load_lesson_quiz, record_quiz_misses
from latin_tutor.quiz_queue import QuizQueue, create_executor
from latin_tutor.session import ReviewSession
from latin_tutor.session_cache import SessionCache, SettingsStore
from latin_tutor.store import ReviewStore

logger = logging.getLogger(__name__)


class ReviewEngine:
    def __init__(self, db_path: str, identity: Optional[LocalIdentity] = None,
                 queue: Optional[QuizQueue] = None, cache: Optional[SessionCache] = None,
                 rng: Optional[random.Random] = None):
        self.db_path = db_path
        self.identity = identity or load_local_identity(db_path)
        self.store = ReviewStore(db_path, self.identity)
        self.catalogue = Catalogue(db_path)
        self.queue = queue if queue is not None else QuizQueue(create_executor())
        self.cache = cache or SessionCache(SettingsStore(db_path))
        self.rng = rng

    # --- Review queue ---

    def due_items(self, limit: int = 10):
        return self.store.due_items(limit)

    def upcoming_items(self, limit: int = 50):
        return self.store.upcoming_items(limit)

    def suspended_items(self, limit: int = 50):
        return self.store.suspended_items(limit)

    def set_suspended(self, item, suspended: bool):
        return self.store.set_suspended(item, suspended)

    def start_session(self, size: int = DEFAULT_SESSION_SIZE, lesson_ceiling: int = 1) -> ReviewSession:
        session = ReviewSession(self.store, self.catalogue, self.cache, session_size=size,
                                lesson_ceiling=lesson_ceiling, rng=self.rng)
        session.start()
        return session

    # --- Lessons and quizzes ---

    def load_lesson(self, lesson_ref: int) -> None:
        """Start pre-generating quizzes for a lesson the learner just opened."""
        self.queue.eagerly_generate(
            lesson_ref,
            self.catalogue.get_vocabulary(lesson_ref),
            self.catalogue.get_static_questions(lesson_ref),
        )

    def take_quiz(self, lesson_ref: int) -> list:
        return load_lesson_quiz(self.queue, self.catalogue, lesson_ref, self.rng)

    def submit_quiz(self, questions: list, answers: list):
        result = grade_quiz(questions, answers)
        record_quiz_misses(self.store, result)
        return result

    def leave_lesson(self, lesson_ref: int) -> None:
        self.queue.clear(lesson_ref)

    def close(self) -> None:
        self.queue.shutdown()
