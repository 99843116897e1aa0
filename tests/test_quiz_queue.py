import logging
import threading
import time
from concurrent.futures import Future

from latin_tutor.models import VocabWord
from latin_tutor.quiz_queue import QuizQueue, create_executor

WORDS = [VocabWord(id=f"w{i}", lesson_ref=1, word=f"verbum{i}", meaning=f"meaning {i}") for i in range(6)]


class ImmediateExecutor:
    """Runs each submission on the spot."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, *args):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True, cancel_futures=False):
        pass


class ManualExecutor:
    """Holds submissions until the test runs them."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, *args):
        future = Future()
        self.pending.append((future, fn, args))
        return future

    def run_pending(self):
        batch, self.pending = self.pending, []
        for future, fn, args in batch:
            future.set_result(fn(*args))

    def shutdown(self, wait=True, cancel_futures=False):
        pass


def test_without_executor_everything_is_a_no_op():
    queue = QuizQueue(None)
    assert not queue.available
    queue.eagerly_generate(1, WORDS, [])
    assert queue.get_next(1) is None
    assert queue.depth(1) == 0
    assert not queue.is_ready(1)


def test_eager_generation_fills_to_target_depth():
    executor = ImmediateExecutor()
    queue = QuizQueue(executor, target_depth=5, eager_count=3)
    queue.eagerly_generate(1, WORDS, [])
    assert queue.depth(1) == 5
    assert executor.submitted == 5
    assert queue.is_ready(1)


def test_get_next_serves_oldest_and_refills():
    executor = ImmediateExecutor()
    queue = QuizQueue(executor, target_depth=5, eager_count=3)
    queue.eagerly_generate(1, WORDS, [])
    entry = queue.get_next(1)
    assert entry.lesson_ref == 1
    assert entry.id.startswith("quiz_1_")
    assert isinstance(entry.questions, tuple)
    assert len(entry.questions) > 0
    assert queue.depth(1) == 5
    assert executor.submitted == 6


def test_lessons_are_queued_separately():
    queue = QuizQueue(ImmediateExecutor(), target_depth=2, eager_count=1)
    queue.eagerly_generate(1, WORDS, [])
    assert queue.depth(1) == 2
    assert queue.get_next(2) is None


def test_only_eager_count_requests_start_at_once():
    executor = ManualExecutor()
    queue = QuizQueue(executor, target_depth=5, eager_count=3)
    queue.eagerly_generate(1, WORDS, [])
    assert len(executor.pending) == 3
    executor.run_pending()
    assert queue.depth(1) == 3
    # each finished quiz asked for one more, up to the target
    assert len(executor.pending) == 2
    executor.run_pending()
    assert queue.depth(1) == 5
    assert executor.pending == []


def test_clear_discards_ready_and_in_flight_quizzes():
    executor = ManualExecutor()
    queue = QuizQueue(executor, target_depth=5, eager_count=3)
    queue.eagerly_generate(1, WORDS, [])
    queue.clear(1)
    executor.run_pending()
    assert queue.depth(1) == 0
    assert queue.get_next(1) is None
    assert executor.pending == []


def test_results_from_before_clear_do_not_leak_into_new_queue():
    executor = ManualExecutor()
    queue = QuizQueue(executor, target_depth=5, eager_count=2)
    queue.eagerly_generate(1, WORDS, [])
    stale = executor.pending
    executor.pending = []
    queue.clear(1)
    queue.eagerly_generate(1, WORDS, [])
    for future, fn, args in stale:
        future.set_result(fn(*args))
    assert queue.depth(1) == 0
    executor.run_pending()
    assert queue.depth(1) == 2


def test_generation_failure_is_logged_and_skipped(caplog):
    def broken(vocab_words, static_questions):
        raise ValueError("bad payload")

    queue = QuizQueue(ImmediateExecutor(), generate=broken)
    with caplog.at_level(logging.ERROR, logger="latin_tutor.quiz_queue"):
        queue.eagerly_generate(1, WORDS, [])
    assert queue.depth(1) == 0
    assert "Quiz generation failed for lesson 1" in caplog.text


def test_thread_pool_generation():
    queue = QuizQueue(create_executor(), target_depth=3, eager_count=2)
    try:
        queue.eagerly_generate(1, WORDS, [])
        deadline = time.monotonic() + 5
        while queue.depth(1) < 3 and time.monotonic() < deadline:
            time.sleep(0.01)
        assert queue.depth(1) == 3
    finally:
        queue.shutdown()
    assert not queue.available
    assert queue.get_next(1) is None


class InterleavingLock:
    """A lock that runs a queued callback right after each release."""

    def __init__(self):
        self._inner = threading.Lock()
        self.after_release = []

    def __enter__(self):
        self._inner.acquire()

    def __exit__(self, *exc):
        self._inner.release()
        if self.after_release:
            self.after_release.pop()()


def test_refill_racing_another_refill_stays_within_target():
    executor = ManualExecutor()
    queue = QuizQueue(executor, target_depth=2, eager_count=1)
    queue.eagerly_generate(1, WORDS, [])
    assert len(executor.pending) == 1
    lesson = queue._lessons[1]
    lock = InterleavingLock()
    queue._lock = lock
    lock.after_release.append(lambda: queue._refill(1, lesson))
    queue._refill(1, lesson)
    assert len(executor.pending) == 2
    executor.run_pending()
    assert queue.depth(1) == 2
