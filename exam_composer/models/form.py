"""Pydantic models describing the form as seen by its callers.

Covers field errors, per-question render views, the full form state
returned by the API, notifications and submit results.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class FieldError(BaseModel):
    """A client-side validation error attached to one field path."""
    path: str = Field(description="Dotted field path, e.g. 'questions.1.text'")
    message: str = Field(description="Human readable error message")

    @property
    def question_index(self) -> Optional[int]:
        parts = self.path.split(".")
        if len(parts) >= 2 and parts[0] == "questions" and parts[1].isdigit():
            return int(parts[1])
        return None

    @property
    def label(self) -> str:
        """Message prefixed with the 1-based question number where relevant."""
        index = self.question_index
        if index is None:
            return self.message
        return f"question {index + 1}: {self.message}"


class QuestionView(BaseModel):
    """Render-ready view of one question entry."""
    key: str
    index: int
    text: str
    type: str
    options: Optional[List[str]] = None
    correct_answer: str
    score: int
    answer_widget: str = Field(description="select, option_select or textarea")
    answer_choices: Optional[List[str]] = Field(
        default=None,
        description="Values offered by the answer widget; None for free text"
    )


class FormState(BaseModel):
    """Snapshot of one open exam composition form."""
    draft_id: Optional[str] = None
    variant: str
    name: str
    course_id: Optional[int] = None
    discipline_id: Optional[int] = None
    academic_period_id: Optional[int] = None
    exam_date: str
    duration_minutes: Optional[int] = None
    exam_type: str
    second_call_eligible: bool
    second_call_date: Optional[str] = None
    publication_date: Optional[str] = None
    content_matrix_id: Optional[int] = None
    questions: List[QuestionView] = Field(default_factory=list)
    max_score: int = Field(description="Sum of question scores, computed on read")
    errors: List[FieldError] = Field(
        default_factory=list,
        description="Validation errors on touched fields"
    )
    is_submitting: bool = False
    can_submit: bool = True


class Notification(BaseModel):
    """Toast-style message shown after a submission attempt."""
    level: Literal["success", "error"]
    message: str


class SubmitResult(BaseModel):
    """Outcome of ExamComposer.submit()."""
    status: Literal["created", "invalid", "failed"]
    notification: Notification
    errors: List[FieldError] = Field(default_factory=list)
    redirect_to: Optional[str] = None
    status_code: Optional[int] = Field(
        default=None,
        description="Exam service status code when the request was answered"
    )
    exam: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Exam service response body on success, if any"
    )

    @property
    def ok(self) -> bool:
        return self.status == "created"
