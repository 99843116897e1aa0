"""Review session runtime.

A session moves through ``loading -> active -> complete``. When an unfinished
session from the last 24 hours is cached, it first waits in ``resume-prompt``
until the learner chooses to resume or start over.

Loading over-fetches due items, resolves each into an answerable question,
pads short sessions with vocabulary repeats and shuffles the result.
"""
import logging
import random
import sqlite3
import uuid
from enum import Enum
from typing import Optional

from latin_tutor.config import DEFAULT_SESSION_SIZE, OVERFETCH_FACTOR, SMALL_SESSION_THRESHOLD
from latin_tutor.errors import QuestionNotFoundError, TutorError
from latin_tutor.grading import KIND_VOCAB_DEFINITION, KIND_VOCAB_TRANSLATION, is_correct
from latin_tutor.models import (
    MatchingQuestion,
    MultipleChoiceQuestion,
    QuestionType,
    ReviewItem,
    ReviewResult,
    SessionQuestion,
    SessionStats,
    VocabWord,
)
from latin_tutor.session_cache import CachedSession, SessionCache
from latin_tutor.vocabulary import build_word_bank

logger = logging.getLogger(__name__)

TEMPLATE_TRANSLATION = "translation"
TEMPLATE_DEFINITION = "definition"
TEMPLATES = (TEMPLATE_TRANSLATION, TEMPLATE_DEFINITION)
DISTRACTOR_COUNT = 3


class SessionState(str, Enum):
    LOADING = "loading"
    RESUME_PROMPT = "resume-prompt"
    ACTIVE = "active"
    COMPLETE = "complete"
    FAILED = "failed"


def needs_pairing_ui(question) -> bool:
    """Matching questions, or anything without a usable answer, can't be reviewed."""
    match question:
        case MatchingQuestion():
            return True
    answer = question.correct_answer
    if isinstance(answer, str):
        return not answer.strip()
    if isinstance(answer, tuple):
        return len(answer) == 0
    return True


class ReviewSession:
    def __init__(self, store, catalogue, cache: SessionCache, session_size: int = DEFAULT_SESSION_SIZE,
                 lesson_ceiling: int = 1, rng: Optional[random.Random] = None):
        self.store = store
        self.catalogue = catalogue
        self.cache = cache
        self.session_size = session_size
        self.lesson_ceiling = max(1, lesson_ceiling)
        self.rng = rng or random.Random()

        self.state = SessionState.LOADING
        self.session_id: Optional[str] = None
        self.questions: list[SessionQuestion] = []
        self.current_index = 0
        self.user_answer = ""
        self.show_answer = False
        self.last_correct: Optional[bool] = None
        self.stats = SessionStats()
        self.error: Optional[Exception] = None
        self.due_count = 0

        self._pending: Optional[CachedSession] = None
        self._items: dict[int, ReviewItem] = {}
        self._used_templates: dict[str, set] = {}

    # --- Lifecycle ---

    def start(self) -> SessionState:
        """Begin the session, pausing at ``resume-prompt`` if there is one to resume."""
        self.error = None
        cached = self.cache.check()
        if cached is not None:
            logger.debug("Found incomplete session %s, asking to resume", cached.session_id)
            self._pending = cached
            self.session_id = cached.session_id
            self.state = SessionState.RESUME_PROMPT
            return self.state
        self.session_id = uuid.uuid4().hex
        self._load(None)
        return self.state

    def resume(self, accept: bool) -> SessionState:
        if self.state != SessionState.RESUME_PROMPT:
            raise RuntimeError(f"Nothing to resume in state {self.state.value}")
        restore = self._pending if accept else None
        self._pending = None
        if restore is None:
            self.cache.clear()
            self.session_id = uuid.uuid4().hex
            logger.debug("Starting new session, cleared cache")
        self._load(restore)
        return self.state

    def retry(self) -> SessionState:
        if self.state != SessionState.FAILED:
            raise RuntimeError(f"Cannot retry a session in state {self.state.value}")
        return self.start()

    def _load(self, restore: Optional[CachedSession]) -> None:
        self.state = SessionState.LOADING
        try:
            questions = self._build_questions()
        except (TutorError, sqlite3.Error) as e:
            logger.error("Failed to load review session: %s", e)
            self.error = e
            self.state = SessionState.FAILED
            return

        self.questions = questions
        self.current_index = 0
        self.user_answer = ""
        self.show_answer = False
        self.stats = SessionStats(total=len(questions))
        if not questions:
            self.state = SessionState.COMPLETE
            self.cache.clear()
            return

        if restore is not None:
            if restore.question_count == len(questions) and restore.current_index < len(questions):
                self.current_index = restore.current_index
                self.user_answer = restore.user_answer
                self.show_answer = restore.show_answer
                self.stats = SessionStats(
                    total=len(questions),
                    correct=restore.stats.correct,
                    incorrect=restore.stats.incorrect,
                    skipped=restore.stats.skipped,
                )
                logger.debug("Restored session %s at question %d", self.session_id, self.current_index + 1)
            else:
                logger.debug("Cached session no longer matches due items, starting fresh")
                self.cache.clear()

        self.state = SessionState.ACTIVE
        self._save()

    # --- Building the question list ---

    def _build_questions(self) -> list[SessionQuestion]:
        due = self.store.due_items(self.session_size * OVERFETCH_FACTOR)
        self._items = {}
        self._used_templates = {}
        words: dict[str, VocabWord] = {}
        resolved = []
        for item in due:
            if item.id in self._items:
                continue
            self._items[item.id] = item
            question = self._resolve(item, words)
            if question is not None:
                resolved.append(question)
        self.due_count = len(self._items)
        if not self._items:
            return []

        if len(resolved) < self.session_size:
            resolved.extend(self._padding(resolved, words, self.session_size - len(resolved)))

        effective_size = self.session_size
        if self.due_count <= SMALL_SESSION_THRESHOLD:
            logger.debug(
                "Only %d due items available, reducing session size from %d to %d",
                self.due_count, self.session_size, self.due_count,
            )
            effective_size = self.due_count

        final = resolved[:effective_size]
        self.rng.shuffle(final)
        logger.debug("Loaded %d questions for session", len(final))
        return final

    def _resolve(self, item: ReviewItem, words: dict) -> Optional[SessionQuestion]:
        if item.is_vocab:
            word = words.get(item.vocab_word_ref) or self.catalogue.get_word(item.vocab_word_ref)
            if word is None:
                logger.warning("Vocabulary word %s not found, skipping item %s", item.vocab_word_ref, item.id)
                return None
            words[word.id] = word
            return self._vocab_question(item.id, item.question_id, item.lesson_ref, word,
                                        self._next_template(word.id))

        if item.question_type == QuestionType.MATCHING:
            logger.debug("Skipping matching question %s (requires pairing UI)", item.question_id)
            return None
        try:
            question = self.store.get_question(item.lesson_ref, item.question_id)
        except QuestionNotFoundError as e:
            logger.warning("%s; skipping item %s", e, item.id)
            return None
        if needs_pairing_ui(question):
            logger.debug("Skipping matching question %s (requires pairing UI)", item.question_id)
            return None

        options = None
        match question:
            case MultipleChoiceQuestion(options=choices):
                options = list(choices)
        answer = question.correct_answer
        return SessionQuestion(
            review_item_id=item.id,
            question_id=item.question_id,
            lesson_ref=item.lesson_ref,
            prompt=question.prompt,
            correct_answer=answer if isinstance(answer, str) else ", ".join(answer),
            kind=question.type.value,
            options=options,
            explanation=question.explanation,
            accepted_answers=answer if isinstance(answer, tuple) else (),
        )

    def _next_template(self, word_id: str) -> str:
        used = self._used_templates.setdefault(word_id, set())
        available = [t for t in TEMPLATES if t not in used]
        if not available:
            used.clear()
            available = list(TEMPLATES)
        template = self.rng.choice(available)
        used.add(template)
        return template

    def _vocab_question(self, review_item_id: int, question_id: str, lesson_ref: int,
                        word: VocabWord, template: str) -> SessionQuestion:
        question = SessionQuestion(
            review_item_id=review_item_id,
            question_id=question_id,
            lesson_ref=lesson_ref,
            prompt=f"Translate: {word.word}",
            correct_answer=word.meaning,
            kind=KIND_VOCAB_TRANSLATION,
            explanation=f'{word.word} means "{word.meaning}"',
            vocab_word_id=word.id,
            template=template,
        )
        if template == TEMPLATE_DEFINITION:
            # Distractors only from lessons the learner has reached
            ceiling = min(lesson_ref, self.lesson_ceiling)
            bank = build_word_bank(self.catalogue, ceiling, DISTRACTOR_COUNT, exclude=word.word, rng=self.rng)
            options = [word.meaning, *(w.meaning for w in bank)]
            self.rng.shuffle(options)
            question.prompt = f"Which definition matches {word.word}?"
            question.kind = KIND_VOCAB_DEFINITION
            question.options = options
        return question

    def _padding(self, resolved: list[SessionQuestion], words: dict, missing: int) -> list[SessionQuestion]:
        """Repeat vocabulary words with a different template until ``missing`` are added."""
        vocab = [q for q in resolved if q.is_vocab and q.vocab_word_id in words]
        extra = []
        while len(extra) < missing and vocab:
            for source in self.rng.sample(vocab, len(vocab)):
                if len(extra) >= missing:
                    break
                word = words[source.vocab_word_id]
                extra.append(self._vocab_question(
                    source.review_item_id, source.question_id, source.lesson_ref,
                    word, self._next_template(word.id),
                ))
        return extra

    # --- Answering ---

    @property
    def current(self) -> Optional[SessionQuestion]:
        if self.state != SessionState.ACTIVE or not self.questions:
            return None
        return self.questions[self.current_index]

    @property
    def progress(self) -> int:
        if not self.questions:
            return 0
        return round((self.current_index + 1) / len(self.questions) * 100)

    def _require_current(self) -> SessionQuestion:
        question = self.current
        if question is None:
            raise RuntimeError(f"No active question in state {self.state.value}")
        return question

    def _record(self, question: SessionQuestion, result: ReviewResult, answer: str = None) -> None:
        item = self._items.get(question.review_item_id) or self.store.get_item(question.review_item_id)
        self._items[item.id] = self.store.record_result(item, result, answer=answer)

    def submit_answer(self, answer: str) -> bool:
        """Grade and record the answer to the current question."""
        question = self._require_current()
        if self.show_answer:
            raise RuntimeError("Answer already submitted for this question")
        correct = is_correct(question.kind, question.accepted_answers or question.correct_answer, answer)
        logger.debug("Answer for %s: %s", question.question_id, "correct" if correct else "incorrect")
        self._record(question, ReviewResult.CORRECT if correct else ReviewResult.INCORRECT, answer)
        if correct:
            self.stats.correct += 1
        else:
            self.stats.incorrect += 1
        self.user_answer = answer
        self.last_correct = correct
        self.show_answer = True
        self._save()
        return correct

    def skip(self) -> SessionState:
        question = self._require_current()
        if self.show_answer:
            return self.advance()
        self._record(question, ReviewResult.SKIPPED)
        self.stats.skipped += 1
        return self.advance()

    def advance(self) -> SessionState:
        self._require_current()
        if self.current_index < len(self.questions) - 1:
            self.current_index += 1
            self.user_answer = ""
            self.show_answer = False
            self.last_correct = None
            self._save()
        else:
            self.state = SessionState.COMPLETE
            self.cache.clear()
            logger.debug("Session %s complete: %s", self.session_id, self.stats.to_dict())
        return self.state

    def _save(self) -> None:
        if self.state != SessionState.ACTIVE or not self.questions:
            return
        self.cache.save(CachedSession(
            session_id=self.session_id,
            current_index=self.current_index,
            user_answer=self.user_answer,
            show_answer=self.show_answer,
            question_count=len(self.questions),
            stats=SessionStats(**self.stats.to_dict()),
        ))
