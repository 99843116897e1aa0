import sqlite3
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from latin_tutor.db import get_connection
from latin_tutor.errors import QuestionNotFoundError, ReviewItemNotFoundError, TransientStoreError
from latin_tutor.identity import LocalIdentity
from latin_tutor.models import MultipleChoiceQuestion, QuestionType, ReviewResult, ReviewState
from latin_tutor.store import ReviewStore, is_transient

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def count_items(db_path):
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM review_items").fetchone()[0]
    conn.close()
    return count


def test_on_miss_creates_learning_item(store):
    item = store.on_miss(1, "D01-Q01", now=NOW)
    assert item.state == ReviewState.LEARNING
    assert item.question_type == QuestionType.MULTIPLE_CHOICE
    assert item.streak == 0
    assert item.lapses == 1
    assert item.last_result == ReviewResult.INCORRECT
    assert item.due_at == NOW + timedelta(days=1)
    assert item.owner_id == "owner-1"


def test_on_miss_again_updates_existing_item(store, seeded_db):
    first = store.on_miss(1, "D01-Q01", now=NOW)
    store.record_result(first, ReviewResult.CORRECT, now=NOW)
    second = store.on_miss(1, "D01-Q01", now=NOW + timedelta(days=2))
    assert second.id == first.id
    assert second.lapses == 2
    assert second.streak == 0
    assert second.due_at == NOW + timedelta(days=3)
    assert count_items(seeded_db) == 1


def test_vocab_miss_from_two_templates_shares_one_item(store, seeded_db):
    first = store.on_miss(1, "VOCAB-TRANS-L01-deus", vocab_word_ref="L01-deus",
                          question_type=QuestionType.TRANSLATION, now=NOW)
    second = store.on_miss(1, "VOCAB-MC-L01-deus", vocab_word_ref="L01-deus",
                           question_type=QuestionType.MULTIPLE_CHOICE, now=NOW)
    assert first.id == second.id
    assert second.lapses == 2
    assert second.question_id == "VOCAB-L01-deus"
    assert second.vocab_word_ref == "L01-deus"
    assert count_items(seeded_db) == 1


def test_vocab_miss_without_type_defaults_to_translation(store):
    item = store.on_miss(1, "VOCAB-MATCH-1", vocab_word_ref="L01-pater", now=NOW)
    assert item.question_type == QuestionType.TRANSLATION


def test_on_miss_unknown_lesson(store, seeded_db):
    assert store.on_miss(99, "D99-Q01", now=NOW) is None
    assert count_items(seeded_db) == 0


def test_on_miss_unknown_question(store):
    assert store.on_miss(1, "D01-Q99", now=NOW) is None


def test_on_miss_swallows_store_failure(store):
    with patch("latin_tutor.store.get_connection", side_effect=sqlite3.OperationalError("disk I/O error")):
        assert store.on_miss(1, "D01-Q01", now=NOW) is None


def test_due_upcoming_and_suspended(store, seeded_db):
    overdue = store.on_miss(1, "D01-Q01", now=NOW - timedelta(days=3))
    due = store.on_miss(1, "D01-Q02", now=NOW - timedelta(days=2))
    later = store.on_miss(1, "D01-Q03", now=NOW)
    suspended = store.set_suspended(store.on_miss(2, "D02-Q01", now=NOW - timedelta(days=2)), True)
    retired = store.on_miss(2, "D02-Q02", now=NOW - timedelta(days=2))
    conn = get_connection(seeded_db)
    conn.execute("UPDATE review_items SET state = 'retired' WHERE id = ?", (retired.id,))
    conn.commit()
    conn.close()

    due_ids = [i.id for i in store.due_items(now=NOW)]
    assert due_ids[0] == overdue.id
    assert set(due_ids) == {overdue.id, due.id, suspended.id}
    assert [i.id for i in store.upcoming_items(now=NOW)] == [later.id]
    assert [i.id for i in store.suspended_items()] == [suspended.id]


def test_due_items_limit(store):
    for qid in ("D01-Q01", "D01-Q02", "D01-Q03"):
        store.on_miss(1, qid, now=NOW - timedelta(days=2))
    assert len(store.due_items(limit=2, now=NOW)) == 2


def test_items_are_scoped_to_owner(store, seeded_db):
    store.on_miss(1, "D01-Q01", now=NOW - timedelta(days=2))
    other = LocalIdentity()
    other.sign_in("owner-2")
    other_store = ReviewStore(seeded_db, other)
    assert other_store.due_items(now=NOW) == []
    assert len(store.due_items(now=NOW)) == 1


def test_record_result_reschedules_and_logs_event(store):
    item = store.on_miss(1, "D01-Q02", now=NOW)
    updated = store.record_result(item, ReviewResult.CORRECT, answer="Holy Spirit", now=NOW)
    assert updated.streak == 1
    assert updated.interval_days == 1
    assert updated.last_result == ReviewResult.CORRECT
    assert updated.last_reviewed_at == NOW
    events = store.events()
    assert len(events) == 1
    assert events[0].result == ReviewResult.CORRECT
    assert events[0].answer == "Holy Spirit"
    assert events[0].occurred_at == NOW
    assert events[0].review_item_ref == item.id


def test_state_counts(store):
    store.on_miss(1, "D01-Q01", now=NOW)
    store.set_suspended(store.on_miss(1, "D01-Q02", now=NOW), True)
    assert store.state_counts() == {"learning": 1, "suspended": 1}


def test_unsuspend_returns_to_learning(store):
    item = store.set_suspended(store.on_miss(1, "D01-Q01", now=NOW), True)
    assert item.state == ReviewState.SUSPENDED
    assert store.set_suspended(item, False).state == ReviewState.LEARNING


def test_get_question(store):
    question = store.get_question(1, "D01-Q01")
    assert isinstance(question, MultipleChoiceQuestion)
    assert question.correct_answer == "In the name of the Father"
    assert len(question.options) == 4


def test_get_question_missing(store):
    with pytest.raises(QuestionNotFoundError):
        store.get_question(1, "D01-Q99")


def test_get_item_missing(store):
    with pytest.raises(ReviewItemNotFoundError):
        store.get_item(12345)


def test_is_transient():
    assert is_transient(TransientStoreError("cancelled"))
    assert is_transient(sqlite3.OperationalError("database is locked"))
    assert not is_transient(sqlite3.OperationalError("no such table: review_items"))
    assert not is_transient(ValueError("locked"))


def test_transient_read_is_retried_once(seeded_db, identity):
    sleeps = []
    store = ReviewStore(seeded_db, identity, retry_delay=0.2, sleep=sleeps.append)
    with patch.object(store, "_select_items",
                      side_effect=[sqlite3.OperationalError("database is locked"), []]) as select:
        assert store.due_items(now=NOW) == []
    assert select.call_count == 2
    assert sleeps == [0.2]


def test_second_transient_failure_propagates(seeded_db, identity):
    sleeps = []
    store = ReviewStore(seeded_db, identity, retry_delay=0.2, sleep=sleeps.append)
    with patch.object(store, "_select_items", side_effect=TransientStoreError("cancelled")) as select:
        with pytest.raises(TransientStoreError):
            store.due_items(now=NOW)
    assert select.call_count == 2
    assert sleeps == [0.2]


def test_other_failures_are_not_retried(seeded_db, identity):
    sleeps = []
    store = ReviewStore(seeded_db, identity, retry_delay=0.2, sleep=sleeps.append)
    with patch.object(store, "_select_items", side_effect=sqlite3.OperationalError("no such table: x")) as select:
        with pytest.raises(sqlite3.OperationalError):
            store.due_items(now=NOW)
    assert select.call_count == 1
    assert sleeps == []
