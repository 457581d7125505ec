"""Pydantic models for the in-progress exam draft.

The draft holds whatever the user has typed so far, already coerced to the
field's type but not yet validated. Validation happens separately, against
the submission schema in ``exam_composer.services.validation``.
"""

from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class ExamType(str, Enum):
    """How the exam is graded overall."""
    OBJECTIVE = "objective"
    DISCURSIVE = "discursive"
    MIXED = "mixed"


class QuestionType(str, Enum):
    """Discriminant for the per-question answer rule."""
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    ESSAY = "essay"


def new_question_key() -> str:
    """UI-only list key. Never sent to the exam service."""
    return uuid4().hex


class QuestionDraft(BaseModel):
    """One question entry inside an ExamDraft."""

    key: str = Field(default_factory=new_question_key, description="Stable UI-only key")
    text: str = Field(default="", description="Question text")
    type: QuestionType = Field(default=QuestionType.MULTIPLE_CHOICE, description="Question type")
    options: Optional[List[str]] = Field(
        default=None,
        description="Multiple choice only: ordered option texts"
    )
    correct_answer: str = Field(default="", description="Answer key; meaning depends on type")
    score: int = Field(default=1, ge=0, description="Points for this question")


class ExamDraft(BaseModel):
    """Unsaved exam-creation form state.

    Exam-level fields are Optional because a freshly opened form has no
    values yet; the submission schema decides what is required.
    """
    name: str = ""
    course_id: Optional[int] = None
    discipline_id: Optional[int] = None
    academic_period_id: Optional[int] = None
    exam_date: str = ""
    duration_minutes: Optional[int] = 60
    exam_type: str = ExamType.MIXED.value
    second_call_eligible: bool = False
    second_call_date: Optional[str] = None
    publication_date: Optional[str] = None
    content_matrix_id: Optional[int] = None
    questions: List[QuestionDraft] = Field(default_factory=list)


# Fields a user may set through update_field / update_question_field
EXAM_FIELDS: frozenset[str] = frozenset({
    "name",
    "course_id",
    "discipline_id",
    "academic_period_id",
    "exam_date",
    "duration_minutes",
    "exam_type",
    "second_call_eligible",
    "second_call_date",
    "publication_date",
    "content_matrix_id",
})

QUESTION_FIELDS: frozenset[str] = frozenset({
    "text",
    "type",
    "options",
    "correct_answer",
    "score",
})
