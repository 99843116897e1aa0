"""Answer normalization and grading."""
import math
import re

MATCHING_PASS_RATIO = 0.8

# Accepted variants for vocabulary translations, both directions
TRANSLATION_VARIANTS = {
    "prayer": {"pray"},
    "pray": {"prayer"},
    "church": {"churches"},
    "churches": {"church"},
}

KIND_TRANSLATION = "translation"
KIND_MULTIPLE_CHOICE = "multiple-choice"
KIND_MATCHING = "matching"
KIND_RECITATION = "recitation"
KIND_VOCAB_TRANSLATION = "vocab-translation"
KIND_VOCAB_DEFINITION = "vocab-definition"


def normalize_answer(answer) -> str:
    if not isinstance(answer, str):
        return ""
    return re.sub(r"\s+", " ", answer.strip().lower())


def evaluate_translation(correct_answer: str, answer: str) -> bool:
    correct = normalize_answer(correct_answer)
    user = normalize_answer(answer)
    if correct == user:
        return True
    return user in TRANSLATION_VARIANTS.get(correct, ()) or correct in TRANSLATION_VARIANTS.get(user, ())


def split_pairs(answer) -> list[str]:
    """Matching answers come as a list of pairs or one ", "-joined string."""
    if isinstance(answer, str):
        return [p for p in answer.split(", ") if p.strip()]
    return list(answer or ())


def score_matching(correct_pairs, answer) -> int:
    """Number of submitted pairs that appear among the correct pairs."""
    expected = {normalize_answer(p) for p in correct_pairs}
    return sum(1 for pair in split_pairs(answer) if normalize_answer(pair) in expected)


def matching_passes(correct_pairs, answer) -> bool:
    correct_pairs = list(correct_pairs)
    if not correct_pairs:
        return False
    return score_matching(correct_pairs, answer) >= math.ceil(len(correct_pairs) * MATCHING_PASS_RATIO)


def is_correct(kind: str, correct_answer, answer) -> bool:
    """Grade an answer for a question of the given kind."""
    if kind == KIND_MATCHING:
        return matching_passes(correct_answer, answer)
    if kind == KIND_VOCAB_TRANSLATION:
        return evaluate_translation(correct_answer, answer)
    user = normalize_answer(answer)
    if isinstance(correct_answer, (list, tuple)):
        accepted = [normalize_answer(c) for c in correct_answer]
    else:
        accepted = [normalize_answer(correct_answer)]
    if kind == KIND_RECITATION:
        # Partial recitations that start with the canonical text are accepted
        return any(user.startswith(c) for c in accepted)
    return user in accepted
