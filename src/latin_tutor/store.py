"""Review item persistence with the scheduling policy applied on write."""
import logging
import sqlite3
import time
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from latin_tutor.config import TRANSIENT_RETRY_DELAY
from latin_tutor.db import get_connection
from latin_tutor.errors import QuestionNotFoundError, ReviewItemNotFoundError, TransientStoreError
from latin_tutor.models import (
    QuestionType,
    ReviewEvent,
    ReviewItem,
    ReviewResult,
    ReviewState,
    question_from_row,
    to_iso,
    utc_now,
)
from latin_tutor.scheduler import next_schedule, suspension_update

logger = logging.getLogger(__name__)

_TRANSIENT_MARKERS = ("locked", "busy", "interrupted")


def is_transient(error: Exception) -> bool:
    """Whether a failed request is worth one more try."""
    if isinstance(error, TransientStoreError):
        return True
    if isinstance(error, sqlite3.OperationalError):
        message = str(error).lower()
        return any(marker in message for marker in _TRANSIENT_MARKERS)
    return False


def _db_value(value):
    return value.value if isinstance(value, Enum) else value


def vocab_question_id(vocab_word_ref: str) -> str:
    return f"VOCAB-{vocab_word_ref}"


class ReviewStore:
    def __init__(self, db_path: str, identity, retry_delay: float = TRANSIENT_RETRY_DELAY, sleep=time.sleep):
        self.db_path = db_path
        self.identity = identity
        self.retry_delay = retry_delay
        self._sleep = sleep

    def _retry_once(self, label: str, action):
        try:
            return action()
        except Exception as e:
            if not is_transient(e):
                logger.error("Failed to fetch %s: %s", label, e)
                raise
            logger.warning("Request for %s was cancelled (%s), retrying", label, e)
        self._sleep(self.retry_delay)
        try:
            return action()
        except Exception as e:
            logger.error("Failed to fetch %s after retry: %s", label, e)
            raise

    def _select_items(self, where: str, params: tuple, limit: int) -> list[ReviewItem]:
        conn = get_connection(self.db_path)
        try:
            rows = conn.execute(
                f"SELECT * FROM review_items WHERE owner_id = ? AND {where} ORDER BY due_at ASC LIMIT ?",
                (self.identity.current_owner_id(), *params, limit),
            ).fetchall()
        finally:
            conn.close()
        return [ReviewItem.from_row(r) for r in rows]

    # --- Listings ---

    def due_items(self, limit: int = 10, now: Optional[datetime] = None) -> list[ReviewItem]:
        """Items due now or earlier (suspended included, retired excluded), oldest first."""
        moment = to_iso(now or utc_now())
        return self._retry_once(
            "due review items",
            lambda: self._select_items("due_at <= ? AND state != ?", (moment, ReviewState.RETIRED.value), limit),
        )

    def upcoming_items(self, limit: int = 50, now: Optional[datetime] = None) -> list[ReviewItem]:
        moment = to_iso(now or utc_now())
        return self._retry_once(
            "upcoming review items",
            lambda: self._select_items(
                "due_at > ? AND state NOT IN (?, ?)",
                (moment, ReviewState.RETIRED.value, ReviewState.SUSPENDED.value),
                limit,
            ),
        )

    def suspended_items(self, limit: int = 50) -> list[ReviewItem]:
        return self._retry_once(
            "suspended review items",
            lambda: self._select_items("state = ?", (ReviewState.SUSPENDED.value,), limit),
        )

    def state_counts(self) -> dict:
        def action():
            conn = get_connection(self.db_path)
            try:
                rows = conn.execute(
                    "SELECT state, COUNT(*) AS n FROM review_items WHERE owner_id = ? GROUP BY state",
                    (self.identity.current_owner_id(),),
                ).fetchall()
            finally:
                conn.close()
            return {r["state"]: r["n"] for r in rows}

        return self._retry_once("review item counts", action)

    def get_item(self, item_id: int) -> ReviewItem:
        conn = get_connection(self.db_path)
        row = conn.execute(
            "SELECT * FROM review_items WHERE id = ? AND owner_id = ?",
            (item_id, self.identity.current_owner_id()),
        ).fetchone()
        conn.close()
        if row is None:
            raise ReviewItemNotFoundError(item_id)
        return ReviewItem.from_row(row)

    def get_question(self, lesson_ref: int, question_id: str):
        """Static question content referenced by a regular review item."""
        def action():
            conn = get_connection(self.db_path)
            try:
                return conn.execute(
                    "SELECT * FROM quiz_questions WHERE lesson_ref = ? AND question_id = ?",
                    (lesson_ref, question_id),
                ).fetchone()
            finally:
                conn.close()

        row = self._retry_once(f"question {question_id}", action)
        if row is None:
            raise QuestionNotFoundError(lesson_ref, question_id)
        return question_from_row(row)

    def events(self, limit: int = 20) -> list[ReviewEvent]:
        conn = get_connection(self.db_path)
        rows = conn.execute(
            "SELECT * FROM review_events WHERE owner_id = ? ORDER BY occurred_at DESC, id DESC LIMIT ?",
            (self.identity.current_owner_id(), limit),
        ).fetchall()
        conn.close()
        return [ReviewEvent.from_row(r) for r in rows]

    # --- Writes ---

    def _update(self, conn, item_id: int, fields: dict) -> None:
        columns = ", ".join(f"{name} = ?" for name in fields)
        conn.execute(
            f"UPDATE review_items SET {columns} WHERE id = ?",
            (*(_db_value(v) for v in fields.values()), item_id),
        )

    def record_result(self, item: ReviewItem, result, answer: str = None,
                      now: Optional[datetime] = None) -> ReviewItem:
        """Reschedule an item after an attempt and log the attempt."""
        now = now or utc_now()
        result = ReviewResult(result)
        event = ReviewEvent(
            owner_id=self.identity.current_owner_id(),
            lesson_ref=item.lesson_ref,
            question_id=item.question_id,
            review_item_ref=item.id,
            result=result,
            occurred_at=now,
            answer=answer,
        )
        fields = next_schedule(item, result, now)
        fields["last_reviewed_at"] = to_iso(now)
        fields["last_result"] = result
        conn = get_connection(self.db_path)
        try:
            self._update(conn, item.id, fields)
            conn.execute(
                """INSERT INTO review_events
                (owner_id, lesson_ref, question_id, review_item_ref, result, occurred_at, answer)
                VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (event.owner_id, event.lesson_ref, event.question_id, event.review_item_ref,
                 event.result.value, to_iso(event.occurred_at), event.answer),
            )
            conn.commit()
        except Exception:
            logger.error("Failed to submit review result for item %s", item.id)
            raise
        finally:
            conn.close()
        logger.debug("Item %s %s -> %s", item.id, result.value, fields)
        return self.get_item(item.id)

    def set_suspended(self, item: ReviewItem, suspended: bool) -> ReviewItem:
        conn = get_connection(self.db_path)
        try:
            self._update(conn, item.id, suspension_update(suspended))
            conn.commit()
        finally:
            conn.close()
        return self.get_item(item.id)

    def on_miss(self, lesson_ref: int, question_id: str, vocab_word_ref: str = None,
                question_type=None, now: Optional[datetime] = None) -> Optional[ReviewItem]:
        """Create or reset the review item for a missed question or word.

        Failures are logged and reported as None, never raised.
        """
        try:
            return self._upsert_miss(lesson_ref, question_id, vocab_word_ref, question_type, now)
        except Exception:
            logger.exception("Failed to handle quiz miss for %s in lesson %s", question_id, lesson_ref)
            return None

    def _upsert_miss(self, lesson_ref, question_id, vocab_word_ref, question_type, now):
        now = now or utc_now()
        owner_id = self.identity.current_owner_id()
        due_at = to_iso(now + timedelta(days=1))
        conn = get_connection(self.db_path)
        try:
            lesson = conn.execute(
                "SELECT lesson_number FROM lessons WHERE lesson_number = ?", (lesson_ref,)
            ).fetchone()
            if lesson is None:
                logger.warning("Lesson not found: %s; not scheduling %s", lesson_ref, question_id)
                return None

            if question_type is None:
                if vocab_word_ref:
                    question_type = QuestionType.TRANSLATION
                else:
                    row = conn.execute(
                        "SELECT type FROM quiz_questions WHERE lesson_ref = ? AND question_id = ?",
                        (lesson_ref, question_id),
                    ).fetchone()
                    if row is None:
                        logger.warning("Question not found: %s in lesson %s", question_id, lesson_ref)
                        return None
                    question_type = row["type"]
            question_type = QuestionType(question_type)

            # Vocabulary items are keyed by word, whichever template missed it
            if vocab_word_ref:
                existing = conn.execute(
                    "SELECT * FROM review_items WHERE owner_id = ? AND lesson_ref = ? AND vocab_word_ref = ?",
                    (owner_id, lesson_ref, vocab_word_ref),
                ).fetchone()
            else:
                existing = conn.execute(
                    """SELECT * FROM review_items
                    WHERE owner_id = ? AND lesson_ref = ? AND question_id = ? AND vocab_word_ref IS NULL""",
                    (owner_id, lesson_ref, question_id),
                ).fetchone()

            if existing:
                logger.debug("Updating existing review item %s for %s", existing["id"], question_id)
                self._update(conn, existing["id"], {
                    "state": ReviewState.LEARNING,
                    "streak": 0,
                    "lapses": max(0, existing["lapses"] or 0) + 1,
                    "due_at": due_at,
                    "last_result": ReviewResult.INCORRECT,
                })
                item_id = existing["id"]
            else:
                stored_question_id = vocab_question_id(vocab_word_ref) if vocab_word_ref else question_id
                cursor = conn.execute(
                    """INSERT INTO review_items
                    (owner_id, lesson_ref, question_id, vocab_word_ref, question_type, state,
                     due_at, interval_days, streak, lapses, last_result)
                    VALUES (?, ?, ?, ?, ?, ?, ?, 0, 0, 1, ?)""",
                    (owner_id, lesson_ref, stored_question_id, vocab_word_ref, question_type.value,
                     ReviewState.LEARNING.value, due_at, ReviewResult.INCORRECT.value),
                )
                item_id = cursor.lastrowid
                logger.debug("Created review item %s for %s (word %s)", item_id, question_id, vocab_word_ref)
            conn.commit()
        finally:
            conn.close()
        return self.get_item(item_id)
