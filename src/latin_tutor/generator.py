"""Lesson quiz generation from a vocabulary pool.

Vocabulary questions are generated in a fixed rotation until at least half of
the lesson's words have been exercised:

    translation (1 word) -> multiple choice (1 word) -> matching (5 words) -> ...

The vocabulary questions are then shuffled together with the lesson's static
questions and numbered from 0. Generation only depends on its arguments and
the given random source, so it runs equally well on a worker thread.
"""
import math
import random
from typing import Iterable, Optional

from latin_tutor.config import VOCAB_COVERAGE
from latin_tutor.models import (
    MatchingQuestion,
    MultipleChoiceQuestion,
    QuestionType,
    TranslationQuestion,
    VocabWord,
)

ROTATION = (QuestionType.TRANSLATION, QuestionType.MULTIPLE_CHOICE, QuestionType.MATCHING)
MATCHING_SIZE = 5
DISTRACTOR_COUNT = 3


def required_coverage(pool_size: int, coverage: float = VOCAB_COVERAGE) -> int:
    return math.ceil(pool_size * coverage)


def translation_question(word: VocabWord, counter: int) -> TranslationQuestion:
    return TranslationQuestion(
        id=f"{word.lesson_ref}-VOCAB-TRANS-{counter}",
        question_id=f"VOCAB-TRANS-{word.id}",
        lesson_ref=word.lesson_ref,
        prompt=f'Translate to English: "{word.word}"',
        correct_answer=word.meaning,
        explanation=f'{word.word} means "{word.meaning}".',
        vocab_word_ids=(word.id,),
    )


def multiple_choice_question(word: VocabWord, pool: list[VocabWord], counter: int,
                             rng: random.Random) -> MultipleChoiceQuestion:
    others = [w for w in pool if w.id != word.id]
    distractors = [w.meaning for w in rng.sample(others, min(DISTRACTOR_COUNT, len(others)))]
    options = [word.meaning, *distractors]
    rng.shuffle(options)
    return MultipleChoiceQuestion(
        id=f"{word.lesson_ref}-VOCAB-MC-{counter}",
        question_id=f"VOCAB-MC-{word.id}",
        lesson_ref=word.lesson_ref,
        prompt=f'What does "{word.word}" mean?',
        options=tuple(options),
        correct_answer=word.meaning,
        explanation=f'{word.word} means "{word.meaning}".',
        vocab_word_ids=(word.id,),
    )


def matching_question(words: list[VocabWord], counter: int, rng: random.Random) -> MatchingQuestion:
    meanings = [w.meaning for w in words]
    rng.shuffle(meanings)
    lesson_ref = words[0].lesson_ref
    return MatchingQuestion(
        id=f"{lesson_ref}-VOCAB-MATCH-{counter}",
        question_id=f"VOCAB-MATCH-{counter}",
        lesson_ref=lesson_ref,
        prompt="Match each Latin word to its meaning:\n" + ", ".join(w.word for w in words),
        options=tuple(meanings),
        correct_answer=tuple(f"{w.word} - {w.meaning}" for w in words),
        explanation="Correct pairings: " + "; ".join(f"{w.word} = {w.meaning}" for w in words),
        vocab_word_ids=tuple(w.id for w in words),
    )


def generate_vocab_questions(pool: list[VocabWord], required: int,
                             rng: Optional[random.Random] = None) -> list:
    """Generate questions in rotation until ``required`` words are covered or the pool runs out."""
    rng = rng or random.Random()
    questions = []
    used: set[str] = set()
    counter = 1
    turn = 0
    while len(used) < required:
        remaining = [w for w in pool if w.id not in used]
        if not remaining:
            break
        kind = ROTATION[turn % len(ROTATION)]
        turn += 1
        wanted = MATCHING_SIZE if kind == QuestionType.MATCHING else 1
        selected = rng.sample(remaining, min(wanted, len(remaining)))

        match kind:
            case QuestionType.TRANSLATION:
                question = translation_question(selected[0], counter)
            case QuestionType.MULTIPLE_CHOICE:
                question = multiple_choice_question(selected[0], pool, counter, rng)
            case QuestionType.MATCHING:
                question = matching_question(selected, counter, rng)
            case _:
                raise ValueError(f"Unknown question type: {kind}")

        used.update(w.id for w in selected)
        questions.append(question)
        counter += 1
    return questions


def generate_lesson_quiz(vocab_words: Iterable[VocabWord], static_questions: Iterable = (),
                         rng: Optional[random.Random] = None) -> list:
    """Generate one complete lesson quiz.

    Args:
        vocab_words: The lesson's vocabulary pool
        static_questions: Pre-authored lesson questions to merge in
        rng: Random source, a fresh ``random.Random`` by default

    Returns:
        Shuffled list of question variants with ``index`` set 0..n-1.
    """
    rng = rng or random.Random()
    pool = list(vocab_words)
    vocab_questions = generate_vocab_questions(pool, required_coverage(len(pool)), rng)
    questions = [*static_questions, *vocab_questions]
    rng.shuffle(questions)
    return [q.with_index(i) for i, q in enumerate(questions)]
