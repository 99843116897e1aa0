"""Exception types raised across the tutor."""


class TutorError(Exception):
    """Base class for tutor errors."""


class TransientStoreError(TutorError):
    """A store request was cancelled or hit a busy database; safe to retry."""


class QuestionNotFoundError(TutorError):
    def __init__(self, lesson_ref: int, question_id: str):
        super().__init__(f"Question not found: {question_id} in lesson {lesson_ref}")
        self.lesson_ref = lesson_ref
        self.question_id = question_id


class ReviewItemNotFoundError(TutorError):
    def __init__(self, item_id: int):
        super().__init__(f"Review item not found: {item_id}")
        self.item_id = item_id


class IdentityTimeoutError(TutorError):
    """No owner signed in within the bounded wait."""


class ImportFormatError(TutorError):
    """A lesson file could not be parsed into lesson content."""
