"""Declarative submission schema for exam drafts.

The draft is validated by feeding it through ExamSubmission. Every rule is
a pydantic validator raising PydanticCustomError so the message reaches the
user verbatim. The active FormVariant is passed in the validation context
and decides the minimum question score and whether multiple choice questions
need options.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from exam_composer.models.exam import ExamDraft, ExamType, QuestionType
from exam_composer.models.form import FieldError
from exam_composer.services.answer_rules import rule_for
from exam_composer.services.form_variants import FORM_VARIANTS, FormVariant
from exam_composer.utils.normalizers import parse_datetime

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 3

_ID_LABELS = {
    "course_id": "Course",
    "discipline_id": "Discipline",
    "academic_period_id": "Academic period",
}


def _variant(info: ValidationInfo) -> FormVariant:
    context = info.context or {}
    return context.get("variant") or FORM_VARIANTS["form_builder"]


def _question_type(value: Optional[str]) -> Optional[QuestionType]:
    try:
        return QuestionType(value)
    except ValueError:
        return None


class QuestionSubmission(BaseModel):
    """One question as it will be submitted.

    Field order matters: correct_answer is checked against the already
    validated type and options.
    """
    text: str = ""
    type: str = ""
    options: Optional[List[str]] = None
    correct_answer: str = ""
    score: int = 0

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        if not v.strip():
            raise PydanticCustomError("required", "Question text is required.")
        return v

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if _question_type(v) is None:
            raise PydanticCustomError(
                "question_type",
                "Choose a question type: multiple_choice, true_false or essay."
            )
        return v

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: Optional[List[str]], info: ValidationInfo) -> Optional[List[str]]:
        question_type = _question_type(info.data.get("type"))
        if question_type is not QuestionType.MULTIPLE_CHOICE:
            return None
        if not v and _variant(info).require_options:
            raise PydanticCustomError("required", "Add at least one option.")
        return v or []

    @field_validator("correct_answer")
    @classmethod
    def validate_correct_answer(cls, v: str, info: ValidationInfo) -> str:
        if not v.strip():
            raise PydanticCustomError("required", "The correct answer is required.")

        question_type = _question_type(info.data.get("type"))
        if question_type is None:
            return v

        message = rule_for(question_type).check(v, info.data.get("options"))
        if message:
            raise PydanticCustomError("answer", message)
        return v

    @field_validator("score")
    @classmethod
    def validate_score(cls, v: int, info: ValidationInfo) -> int:
        minimum = _variant(info).min_question_score
        if v < minimum:
            raise PydanticCustomError("score", f"Score must be at least {minimum}.")
        return v


class ExamSubmission(BaseModel):
    """The whole exam as it will be submitted."""
    name: str = ""
    course_id: Optional[int] = None
    discipline_id: Optional[int] = None
    academic_period_id: Optional[int] = None
    exam_date: str = ""
    duration_minutes: Optional[int] = None
    exam_type: str = ""
    second_call_eligible: bool = False
    second_call_date: Optional[str] = None
    publication_date: Optional[str] = None
    content_matrix_id: Optional[int] = None
    questions: List[QuestionSubmission] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if len(v.strip()) < MIN_NAME_LENGTH:
            raise PydanticCustomError(
                "name",
                "Exam name must be at least 3 characters."
            )
        return v.strip()

    @field_validator("course_id", "discipline_id", "academic_period_id")
    @classmethod
    def validate_reference_id(cls, v: Optional[int], info: ValidationInfo) -> Optional[int]:
        if v is None or v < 1:
            label = _ID_LABELS[info.field_name]
            raise PydanticCustomError("required", f"{label} is required.")
        return v

    @field_validator("exam_date")
    @classmethod
    def validate_exam_date(cls, v: str) -> str:
        if not v.strip():
            raise PydanticCustomError("required", "Exam date is required.")
        if parse_datetime(v) is None:
            raise PydanticCustomError("datetime", "Exam date must be a valid date and time.")
        return v

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, v: Optional[int]) -> Optional[int]:
        if v is None or v < 1:
            raise PydanticCustomError("duration", "Duration must be a positive number of minutes.")
        return v

    @field_validator("exam_type")
    @classmethod
    def validate_exam_type(cls, v: str) -> str:
        try:
            ExamType(v)
        except ValueError:
            raise PydanticCustomError(
                "exam_type",
                "Choose an exam type: objective, discursive or mixed."
            ) from None
        return v

    @field_validator("second_call_date")
    @classmethod
    def validate_second_call_date(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        if not v or not v.strip():
            if info.data.get("second_call_eligible"):
                raise PydanticCustomError(
                    "required",
                    "Second call date is required when the exam allows a second call."
                )
            return None
        if parse_datetime(v) is None:
            raise PydanticCustomError("datetime", "Second call date must be a valid date and time.")
        return v

    @field_validator("publication_date")
    @classmethod
    def validate_publication_date(cls, v: Optional[str]) -> Optional[str]:
        if not v or not v.strip():
            return None
        if parse_datetime(v) is None:
            raise PydanticCustomError("datetime", "Publication date must be a valid date and time.")
        return v

    @field_validator("content_matrix_id")
    @classmethod
    def validate_content_matrix_id(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise PydanticCustomError("content_matrix", "Content matrix id must be positive.")
        return v

    @field_validator("questions")
    @classmethod
    def validate_questions(cls, v: List[QuestionSubmission]) -> List[QuestionSubmission]:
        if not v:
            raise PydanticCustomError("questions", "At least one question is required.")
        return v


class ValidationReport(BaseModel):
    """Result of validating a draft: the submission if valid, else errors."""
    submission: Optional[ExamSubmission] = None
    errors: List[FieldError] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.submission is not None and not self.errors


def _error_path(loc: tuple) -> str:
    return ".".join(str(part) for part in loc)


def validate_draft(draft: ExamDraft, variant: FormVariant) -> ValidationReport:
    """Run the full submission schema over a draft.

    Args:
        draft: Current form state
        variant: Active schema variant

    Returns:
        ValidationReport with either the validated submission or every error
    """
    data = draft.model_dump(mode="json", exclude={"questions": {"__all__": {"key"}}})

    try:
        submission = ExamSubmission.model_validate(data, context={"variant": variant})
    except ValidationError as e:
        errors = [
            FieldError(path=_error_path(err["loc"]), message=err["msg"])
            for err in e.errors()
        ]
        logger.debug(f"Draft validation failed with {len(errors)} error(s)")
        return ValidationReport(errors=errors)

    return ValidationReport(submission=submission)
