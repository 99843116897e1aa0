"""Data classes for the review engine domain model."""
import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Optional, Union


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    MATCHING = "matching"
    TRANSLATION = "translation"
    RECITATION = "recitation"


class ReviewState(str, Enum):
    LEARNING = "learning"
    REVIEW = "review"
    SUSPENDED = "suspended"
    RETIRED = "retired"


class ReviewResult(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    SKIPPED = "skipped"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    """Serialize an instant as fixed-width UTC ISO 8601 (sortable as text)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


@dataclass
class ReviewItem:
    id: int
    owner_id: str
    lesson_ref: int
    question_id: str
    question_type: QuestionType
    state: ReviewState
    due_at: datetime
    last_reviewed_at: Optional[datetime] = None
    interval_days: int = 0
    streak: int = 0
    lapses: int = 0
    last_result: Optional[ReviewResult] = None
    vocab_word_ref: Optional[str] = None

    @property
    def is_vocab(self) -> bool:
        return self.vocab_word_ref is not None

    @classmethod
    def from_row(cls, row) -> "ReviewItem":
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            lesson_ref=row["lesson_ref"],
            question_id=row["question_id"],
            question_type=QuestionType(row["question_type"]),
            state=ReviewState(row["state"]),
            due_at=parse_iso(row["due_at"]),
            last_reviewed_at=parse_iso(row["last_reviewed_at"]),
            interval_days=row["interval_days"] or 0,
            streak=row["streak"] or 0,
            lapses=row["lapses"] or 0,
            last_result=ReviewResult(row["last_result"]) if row["last_result"] else None,
            vocab_word_ref=row["vocab_word_ref"],
        )


@dataclass(frozen=True)
class ReviewEvent:
    owner_id: str
    lesson_ref: int
    question_id: str
    review_item_ref: int
    result: ReviewResult
    occurred_at: datetime
    answer: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "ReviewEvent":
        return cls(
            owner_id=row["owner_id"],
            lesson_ref=row["lesson_ref"],
            question_id=row["question_id"],
            review_item_ref=row["review_item_ref"],
            result=ReviewResult(row["result"]),
            occurred_at=parse_iso(row["occurred_at"]),
            answer=row["answer"],
        )


@dataclass(frozen=True)
class VocabWord:
    id: str
    lesson_ref: int
    word: str
    meaning: str
    part_of_speech: Optional[str] = None
    case_info: Optional[str] = None
    conjugation_info: Optional[str] = None
    frequency: int = 1
    liturgical_context: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "VocabWord":
        return cls(
            id=row["id"],
            lesson_ref=row["lesson_ref"],
            word=row["word"],
            meaning=row["meaning"],
            part_of_speech=row["part_of_speech"],
            case_info=row["case_info"],
            conjugation_info=row["conjugation_info"],
            frequency=row["frequency"] or 1,
            liturgical_context=row["liturgical_context"],
        )


# Question variants. Every variant carries its type as a class-level tag;
# consumers dispatch with ``match`` on the class.

Answer = Union[str, tuple]


@dataclass(frozen=True, kw_only=True)
class _Question:
    id: str
    question_id: str
    lesson_ref: int
    prompt: str
    correct_answer: Answer
    explanation: str = ""
    vocab_word_ids: tuple = ()
    index: Optional[int] = None

    def with_index(self, index: int):
        return replace(self, index=index)


@dataclass(frozen=True, kw_only=True)
class TranslationQuestion(_Question):
    type: ClassVar[QuestionType] = QuestionType.TRANSLATION


@dataclass(frozen=True, kw_only=True)
class MultipleChoiceQuestion(_Question):
    type: ClassVar[QuestionType] = QuestionType.MULTIPLE_CHOICE
    options: tuple


@dataclass(frozen=True, kw_only=True)
class MatchingQuestion(_Question):
    type: ClassVar[QuestionType] = QuestionType.MATCHING
    options: tuple


@dataclass(frozen=True, kw_only=True)
class RecitationQuestion(_Question):
    type: ClassVar[QuestionType] = QuestionType.RECITATION


Question = Union[TranslationQuestion, MultipleChoiceQuestion, MatchingQuestion, RecitationQuestion]


def _freeze(value):
    if isinstance(value, list):
        return tuple(value)
    return value


def question_from_row(row) -> Question:
    """Build a question variant from a ``quiz_questions`` row.

    ``options`` and ``correct_answer`` are stored as JSON. Answers keep their
    decoded shape so callers can reject malformed ones.
    """
    options = tuple(json.loads(row["options"])) if row["options"] else ()
    common = dict(
        id=f"{row['lesson_ref']}-{row['question_id']}",
        question_id=row["question_id"],
        lesson_ref=row["lesson_ref"],
        prompt=row["question"],
        correct_answer=_freeze(json.loads(row["correct_answer"])),
        explanation=row["explanation"] or "",
        index=row["question_index"],
    )
    match QuestionType(row["type"]):
        case QuestionType.MULTIPLE_CHOICE:
            return MultipleChoiceQuestion(options=options, **common)
        case QuestionType.MATCHING:
            return MatchingQuestion(options=options, **common)
        case QuestionType.RECITATION:
            return RecitationQuestion(**common)
        case QuestionType.TRANSLATION:
            return TranslationQuestion(**common)


@dataclass(frozen=True)
class QueueEntry:
    id: str
    lesson_ref: int
    questions: tuple
    created_at: float


@dataclass
class SessionStats:
    total: int = 0
    correct: int = 0
    incorrect: int = 0
    skipped: int = 0

    @property
    def started(self) -> bool:
        return bool(self.correct or self.incorrect or self.skipped)

    def to_dict(self) -> dict:
        return {
            "correct": self.correct,
            "incorrect": self.incorrect,
            "skipped": self.skipped,
            "total": self.total,
        }


@dataclass
class SessionQuestion:
    """A due review item resolved into something the learner can answer."""

    review_item_id: int
    question_id: str
    lesson_ref: int
    prompt: str
    correct_answer: str
    kind: str
    options: Optional[list] = None
    explanation: str = ""
    vocab_word_id: Optional[str] = None
    template: Optional[str] = None
    accepted_answers: tuple = ()

    @property
    def is_vocab(self) -> bool:
        return self.vocab_word_id is not None


@dataclass
class QuizResult:
    score: float
    correct: int
    total: int
    missed: list = field(default_factory=list)
    missed_words: list = field(default_factory=list)
