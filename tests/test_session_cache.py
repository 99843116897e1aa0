from latin_tutor.db import init_db
from latin_tutor.models import SessionStats
from latin_tutor.session_cache import CachedSession, MemoryStore, SessionCache, SettingsStore

HOUR_MS = 60 * 60 * 1000


class Clock:
    def __init__(self, seconds=1_700_000_000.0):
        self.seconds = seconds

    def __call__(self):
        return self.seconds

    def advance(self, hours):
        self.seconds += hours * 3600


def started_session(**overrides):
    fields = dict(session_id="abc", current_index=2, question_count=5,
                  stats=SessionStats(total=5, correct=1, incorrect=1))
    fields.update(overrides)
    return CachedSession(**fields)


def test_save_and_check_round_trip():
    clock = Clock()
    cache = SessionCache(MemoryStore(), clock=clock)
    cache.save(started_session(user_answer="pater", show_answer=True))
    clock.advance(1)
    cached = cache.check()
    assert cached.session_id == "abc"
    assert cached.current_index == 2
    assert cached.user_answer == "pater"
    assert cached.show_answer
    assert cached.stats.correct == 1
    assert cached.timestamp == 1_700_000_000.0 * 1000


def test_json_uses_camel_case_keys():
    raw = started_session(timestamp=5.0).to_json()
    for key in ("sessionId", "currentIndex", "userAnswer", "showAnswer",
                "questionCount", "sessionStats", "timestamp"):
        assert f'"{key}"' in raw


def test_cache_older_than_a_day_is_discarded():
    clock = Clock()
    store = MemoryStore()
    cache = SessionCache(store, clock=clock)
    cache.save(started_session())
    clock.advance(25)
    assert cache.check() is None
    assert store.data == {}


def test_unstarted_session_is_discarded():
    store = MemoryStore()
    cache = SessionCache(store, clock=Clock())
    cache.save(started_session(current_index=0, stats=SessionStats(total=5)))
    assert cache.check() is None
    assert store.data == {}


def test_first_question_answered_counts_as_started():
    cache = SessionCache(MemoryStore(), clock=Clock())
    cache.save(started_session(current_index=0, show_answer=True, stats=SessionStats(total=5, correct=1)))
    assert cache.check() is not None


def test_finished_session_is_discarded():
    cache = SessionCache(MemoryStore(), clock=Clock())
    cache.save(started_session(current_index=5))
    assert cache.check() is None


def test_unreadable_cache_is_discarded():
    store = MemoryStore()
    store.set("review_session_cache", "{not json")
    cache = SessionCache(store, clock=Clock())
    assert cache.load() is None
    assert store.data == {}


def test_settings_store_persists_in_database(tmp_db):
    init_db(tmp_db)
    clock = Clock()
    SessionCache(SettingsStore(tmp_db), clock=clock).save(started_session())
    cached = SessionCache(SettingsStore(tmp_db), clock=clock).check()
    assert cached.session_id == "abc"
