"""Background pre-generation of lesson quizzes.

When a lesson loads, a few quizzes are generated on a worker pool so that
taking the quiz is instant:

1. ``eagerly_generate`` submits the first requests
2. each finished quiz is queued and, while the lesson is below target depth,
   one more request is submitted
3. ``get_next`` pops a ready quiz or returns None so the caller can generate
   synchronously
4. without a worker pool every call degrades to that synchronous path
"""
import logging
import threading
import time
import uuid
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor

from latin_tutor.config import QUEUE_EAGER_COUNT, QUEUE_TARGET_DEPTH, QUEUE_WORKERS
from latin_tutor.generator import generate_lesson_quiz
from latin_tutor.models import QueueEntry

logger = logging.getLogger(__name__)


def create_executor(max_workers: int = QUEUE_WORKERS) -> ThreadPoolExecutor | None:
    """Start the generation pool, or return None where threads are unavailable."""
    try:
        return ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="quiz-gen")
    except (RuntimeError, OSError) as e:
        logger.warning("Failed to start quiz generation workers: %s", e)
        return None


class _LessonQueue:
    def __init__(self, payload: tuple, epoch: int):
        self.payload = payload
        self.epoch = epoch
        self.ready: deque[QueueEntry] = deque()
        self.in_flight = 0


class QuizQueue:
    def __init__(self, executor=None, target_depth: int = QUEUE_TARGET_DEPTH,
                 eager_count: int = QUEUE_EAGER_COUNT, generate=generate_lesson_quiz):
        self.executor = executor
        self.target_depth = target_depth
        self.eager_count = eager_count
        self._generate = generate
        self._lessons: dict[int, _LessonQueue] = {}
        self._lock = threading.Lock()
        self._epoch = 0

    @property
    def available(self) -> bool:
        return self.executor is not None

    def eagerly_generate(self, lesson_ref: int, vocab_words, static_questions) -> None:
        """Start filling a lesson's queue. Returns immediately."""
        if not self.available:
            logger.warning("Quiz queue not available, quizzes will be generated on demand")
            return
        # Frozen dataclasses in tuples: workers never share mutable state with the caller
        payload = (tuple(vocab_words), tuple(static_questions))
        with self._lock:
            self._epoch += 1
            lesson = self._lessons.get(lesson_ref)
            if lesson is None:
                lesson = _LessonQueue(payload, self._epoch)
                self._lessons[lesson_ref] = lesson
            else:
                lesson.payload = payload
        logger.info("Starting eager generation for lesson %s (%d quizzes)", lesson_ref, self.eager_count)
        for _ in range(self.eager_count):
            self._refill(lesson_ref, lesson)

    def _refill(self, lesson_ref: int, lesson: _LessonQueue) -> None:
        # The depth check and the in-flight reservation share one critical section
        with self._lock:
            executor = self.executor
            if executor is None or len(lesson.ready) + lesson.in_flight >= self.target_depth:
                return
            lesson.in_flight += 1
            epoch = lesson.epoch
            vocab_words, static_questions = lesson.payload
        try:
            future = executor.submit(self._generate, vocab_words, static_questions)
        except RuntimeError as e:
            # Pool shut down underneath us
            logger.warning("Quiz generation request for lesson %s rejected: %s", lesson_ref, e)
            with self._lock:
                lesson.in_flight -= 1
            return
        future.add_done_callback(lambda f: self._on_ready(lesson_ref, epoch, f))

    def _on_ready(self, lesson_ref: int, epoch: int, future: Future) -> None:
        with self._lock:
            lesson = self._lessons.get(lesson_ref)
            current = lesson is not None and lesson.epoch == epoch
            if current:
                lesson.in_flight -= 1
        if not current:
            logger.debug("Discarding quiz for cleared lesson %s", lesson_ref)
            return
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error("Quiz generation failed for lesson %s: %s", lesson_ref, error)
            return

        entry = QueueEntry(
            id=f"quiz_{lesson_ref}_{uuid.uuid4().hex[:8]}",
            lesson_ref=lesson_ref,
            questions=tuple(future.result()),
            created_at=time.time(),
        )
        with self._lock:
            lesson.ready.append(entry)
            depth = len(lesson.ready)
        logger.debug("Quiz ready for lesson %s, queue size: %d", lesson_ref, depth)
        self._refill(lesson_ref, lesson)

    def get_next(self, lesson_ref: int) -> QueueEntry | None:
        """Pop the oldest ready quiz without waiting. None means generate synchronously."""
        with self._lock:
            lesson = self._lessons.get(lesson_ref)
            entry = lesson.ready.popleft() if lesson and lesson.ready else None
        if entry is None:
            logger.debug("No queued quiz for lesson %s, will use fallback generation", lesson_ref)
            return None
        logger.debug("Serving queued quiz %s for lesson %s", entry.id, lesson_ref)
        self._refill(lesson_ref, lesson)
        return entry

    def is_ready(self, lesson_ref: int) -> bool:
        with self._lock:
            lesson = self._lessons.get(lesson_ref)
            return bool(lesson and lesson.ready)

    def depth(self, lesson_ref: int) -> int:
        with self._lock:
            lesson = self._lessons.get(lesson_ref)
            return len(lesson.ready) if lesson else 0

    def clear(self, lesson_ref: int) -> None:
        """Drop a lesson's queue; quizzes still being generated for it are discarded."""
        logger.debug("Clearing quiz queue for lesson %s", lesson_ref)
        with self._lock:
            self._lessons.pop(lesson_ref, None)

    def shutdown(self) -> None:
        with self._lock:
            self._lessons.clear()
            executor, self.executor = self.executor, None
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)
