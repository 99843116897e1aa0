"""Lesson quizzes: serving, grading, and feeding misses into review."""
import logging
import random
from typing import Optional

from latin_tutor.generator import generate_lesson_quiz
from latin_tutor.grading import (
    KIND_VOCAB_TRANSLATION,
    is_correct,
    matching_passes,
    normalize_answer,
    split_pairs,
)
from latin_tutor.models import MatchingQuestion, QuizResult, TranslationQuestion

logger = logging.getLogger(__name__)


def load_lesson_quiz(queue, catalogue, lesson_ref: int, rng: Optional[random.Random] = None) -> list:
    """Serve a pre-generated quiz, or generate one now if none is ready."""
    entry = queue.get_next(lesson_ref)
    if entry is not None:
        return list(entry.questions)
    vocab_words = catalogue.get_vocabulary(lesson_ref)
    static_questions = catalogue.get_static_questions(lesson_ref)
    if not static_questions:
        logger.warning("No static questions found for lesson %s - only vocab questions will be generated", lesson_ref)
    questions = generate_lesson_quiz(vocab_words, static_questions, rng)
    logger.debug("Generated quiz with %d total questions", len(questions))
    return questions


def grade_question(question, answer) -> bool:
    match question:
        case MatchingQuestion():
            return matching_passes(question.correct_answer, answer)
        case TranslationQuestion() if question.vocab_word_ids:
            return is_correct(KIND_VOCAB_TRANSLATION, question.correct_answer, answer)
        case _:
            return is_correct(question.type.value, question.correct_answer, answer)


def missed_matching_words(question: MatchingQuestion, answer) -> list[str]:
    """Word ids whose pair was not submitted correctly."""
    submitted = {normalize_answer(p) for p in split_pairs(answer)}
    return [
        word_id
        for word_id, pair in zip(question.vocab_word_ids, question.correct_answer)
        if normalize_answer(pair) not in submitted
    ]


def grade_quiz(questions: list, answers: list) -> QuizResult:
    """Grade a finished quiz. ``answers`` is aligned with ``questions``; missing answers count as wrong."""
    result = QuizResult(score=0.0, correct=0, total=len(questions))
    for i, question in enumerate(questions):
        answer = answers[i] if i < len(answers) else ""
        if grade_question(question, answer):
            result.correct += 1
            continue
        result.missed.append(question)
        if isinstance(question, MatchingQuestion) and question.vocab_word_ids:
            for word_id in missed_matching_words(question, answer):
                result.missed_words.append((question, word_id))
        else:
            for word_id in question.vocab_word_ids:
                result.missed_words.append((question, word_id))
    if questions:
        result.score = round(result.correct / len(questions) * 100, 1)
    return result


def record_quiz_misses(store, result: QuizResult) -> int:
    """Schedule every missed question or word for review. Returns the number scheduled."""
    scheduled = 0
    for question in result.missed:
        if question.vocab_word_ids:
            continue
        if store.on_miss(question.lesson_ref, question.question_id, question_type=question.type):
            scheduled += 1
    for question, word_id in result.missed_words:
        if store.on_miss(question.lesson_ref, question.question_id, vocab_word_ref=word_id,
                         question_type=question.type):
            scheduled += 1
    logger.debug("Scheduled %d review items from quiz misses", scheduled)
    return scheduled
