"""Resumable review-session state with a 24-hour lifetime."""
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

from latin_tutor.config import SESSION_CACHE_KEY, SESSION_CACHE_TTL_HOURS
from latin_tutor.models import SessionStats
from latin_tutor.settings import delete_setting, get_setting, set_setting

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class SettingsStore:
    """Key/value storage on the ``user_settings`` table."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    def get(self, key: str) -> Optional[str]:
        return get_setting(self.db_path, key)

    def set(self, key: str, value: str) -> None:
        set_setting(self.db_path, key, value)

    def delete(self, key: str) -> None:
        delete_setting(self.db_path, key)


class MemoryStore:
    def __init__(self):
        self.data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


@dataclass
class CachedSession:
    session_id: str
    current_index: int = 0
    user_answer: str = ""
    show_answer: bool = False
    question_count: int = 0
    stats: SessionStats = field(default_factory=SessionStats)
    timestamp: float = 0.0  # epoch milliseconds

    @property
    def has_started(self) -> bool:
        return self.current_index > 0 or self.stats.started

    def to_json(self) -> str:
        return json.dumps({
            "sessionId": self.session_id,
            "currentIndex": self.current_index,
            "userAnswer": self.user_answer,
            "showAnswer": self.show_answer,
            "questionCount": self.question_count,
            "sessionStats": self.stats.to_dict(),
            "timestamp": self.timestamp,
        })

    @classmethod
    def from_json(cls, raw: str) -> "CachedSession":
        data = json.loads(raw)
        stats = data.get("sessionStats") or {}
        return cls(
            session_id=str(data["sessionId"]),
            current_index=int(data.get("currentIndex", 0)),
            user_answer=data.get("userAnswer") or "",
            show_answer=bool(data.get("showAnswer", False)),
            question_count=int(data.get("questionCount", 0)),
            stats=SessionStats(
                total=int(stats.get("total", 0)),
                correct=int(stats.get("correct", 0)),
                incorrect=int(stats.get("incorrect", 0)),
                skipped=int(stats.get("skipped", 0)),
            ),
            timestamp=float(data.get("timestamp", 0)),
        )


class SessionCache:
    def __init__(self, store: KeyValueStore, key: str = SESSION_CACHE_KEY,
                 ttl_hours: float = SESSION_CACHE_TTL_HOURS, clock=time.time):
        self.store = store
        self.key = key
        self.ttl_ms = ttl_hours * 60 * 60 * 1000
        self._clock = clock

    def now_ms(self) -> float:
        return self._clock() * 1000

    def save(self, cached: CachedSession) -> None:
        cached.timestamp = self.now_ms()
        self.store.set(self.key, cached.to_json())

    def load(self) -> Optional[CachedSession]:
        raw = self.store.get(self.key)
        if not raw:
            return None
        try:
            return CachedSession.from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding unreadable session cache: %s", e)
            self.clear()
            return None

    def clear(self) -> None:
        self.store.delete(self.key)

    def check(self) -> Optional[CachedSession]:
        """Return a cached session worth offering to resume; discard anything else."""
        cached = self.load()
        if cached is None:
            return None
        if self.now_ms() - cached.timestamp >= self.ttl_ms:
            logger.debug("Cleared cached session older than 24 hours")
        elif cached.current_index >= cached.question_count:
            logger.debug("Cached session already finished, starting fresh")
        elif not cached.has_started:
            logger.debug("Found unstarted session, starting fresh")
        else:
            return cached
        self.clear()
        return None
