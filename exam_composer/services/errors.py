"""Exceptions raised by form operations."""


class FieldValueError(ValueError):
    """Raised when a field update is rejected outright.

    Covers unknown field names and values outside a closed choice set
    (e.g. anything other than "true"/"false" for a true/false answer).
    The draft is left unchanged.

    Attributes:
        field: Path of the rejected field, e.g. "questions.0.correct_answer"
    """

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class SubmissionInProgressError(RuntimeError):
    """Raised when submit() is called while a submission is already in flight."""
