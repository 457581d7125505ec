"""Exam composition form.

ExamComposer owns one ExamDraft: it applies user edits (with coercion and
type-conditional answer handling), tracks which fields the user has
touched so errors can be shown live, and submits the finished draft to the
exam service as a single request guarded against double submission.
"""

import logging
from typing import Any, Dict, List, Optional, Set

from exam_composer.config import get_settings
from exam_composer.models.exam import (
    EXAM_FIELDS,
    QUESTION_FIELDS,
    ExamDraft,
    QuestionDraft,
    QuestionType,
)
from exam_composer.models.form import FieldError, FormState, Notification, QuestionView, SubmitResult
from exam_composer.models.session import SessionContext
from exam_composer.services.answer_rules import rule_for, uses_options
from exam_composer.services.errors import FieldValueError, SubmissionInProgressError
from exam_composer.services.exam_client import ExamServiceClient, ExamServiceError
from exam_composer.services.form_variants import FormVariant, get_variant
from exam_composer.services.payload import build_exam_payload, compute_max_score
from exam_composer.services.validation import ValidationReport, validate_draft
from exam_composer.utils.normalizers import coerce_bool, coerce_optional_int, coerce_score, parse_options

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Exam created successfully."
INVALID_MESSAGE = "Please fix the highlighted fields before submitting."

_INT_FIELDS = {"course_id", "discipline_id", "academic_period_id", "duration_minutes", "content_matrix_id"}
_OPTIONAL_TEXT_FIELDS = {"second_call_date", "publication_date"}


class ExamComposer:
    """One open exam composition form.

    Args:
        variant: Schema variant (defaults to FORM_VARIANT from settings)
        session: Injected caller context, forwarded to the exam service
        client: Exam service client; built from settings on first submit if omitted
        draft_id: Identifier assigned by the draft store, if any
    """

    def __init__(
        self,
        variant: Optional[FormVariant] = None,
        session: Optional[SessionContext] = None,
        client: Optional[ExamServiceClient] = None,
        draft_id: Optional[str] = None,
    ):
        settings = get_settings()
        self.variant = variant or get_variant(settings.form_variant)
        self.session = session or SessionContext()
        self.draft_id = draft_id
        self.success_redirect_path = settings.success_redirect_path
        self._client = client
        self.draft = ExamDraft()
        self._touched: Set[str] = set()
        self._touch_all = False
        self._submitting = False

    @property
    def client(self) -> ExamServiceClient:
        if self._client is None:
            self._client = ExamServiceClient(session=self.session)
        return self._client

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    # ------------------------------------------------------------------
    # Question list
    # ------------------------------------------------------------------

    def _question(self, index: int) -> Optional[QuestionDraft]:
        if 0 <= index < len(self.draft.questions):
            return self.draft.questions[index]
        return None

    def append_question(self) -> QuestionDraft:
        """Append a blank question using the variant's defaults."""
        question_type = self.variant.default_question_type
        question = QuestionDraft(
            type=question_type,
            options=[] if uses_options(question_type) else None,
            score=1,
        )
        self.draft.questions.append(question)
        self._touched.add("questions")
        return question

    def remove_question(self, index: int) -> bool:
        """Remove the question at index. Out-of-range indices are ignored.

        Returns:
            True if a question was removed
        """
        question = self._question(index)
        if question is None:
            return False

        del self.draft.questions[index]
        self._touched = {
            path for path in self._touched if not path.startswith(f"{question.key}.")
        }
        self._touched.add("questions")
        return True

    def update_question_field(self, index: int, field: str, value: Any) -> Optional[QuestionDraft]:
        """Set one field of one question.

        Args:
            index: Question position
            field: One of text, type, options, correct_answer, score
            value: Raw input

        Returns:
            The updated question, or None when index is out of range

        Raises:
            FieldValueError: Unknown field, or a value the field can never hold
        """
        path = f"questions.{index}.{field}"
        if field not in QUESTION_FIELDS:
            raise FieldValueError(path, f"Unknown question field: {field}")

        question = self._question(index)
        if question is None:
            return None

        if field == "text":
            question.text = "" if value is None else str(value)
        elif field == "score":
            question.score = coerce_score(value)
        elif field == "type":
            self._change_type(question, path, value)
        elif field == "options":
            if not uses_options(question.type):
                raise FieldValueError(path, "Options only apply to multiple choice questions.")
            try:
                question.options = parse_options(value)
            except ValueError as e:
                raise FieldValueError(path, str(e)) from e
        elif field == "correct_answer":
            try:
                question.correct_answer = rule_for(question.type).normalize(value)
            except FieldValueError as e:
                raise FieldValueError(path, e.message) from e

        self._touched.add(f"{question.key}.{field}")
        return question

    def _change_type(self, question: QuestionDraft, path: str, value: Any) -> None:
        try:
            new_type = QuestionType(value)
        except ValueError:
            raise FieldValueError(
                path,
                "Question type must be multiple_choice, true_false or essay."
            ) from None

        if new_type is question.type:
            return

        question.type = new_type
        question.options = [] if uses_options(new_type) else None

        rule = rule_for(new_type)
        if rule.closed and question.correct_answer not in (rule.choices(question.options) or ()):
            question.correct_answer = ""

    # ------------------------------------------------------------------
    # Exam-level fields
    # ------------------------------------------------------------------

    def update_field(self, field: str, value: Any) -> None:
        """Set one exam-level field.

        Ids and durations that do not parse as integers are stored as unset,
        which the schema then reports as missing.

        Raises:
            FieldValueError: Unknown field or a non-boolean second_call_eligible
        """
        if field not in EXAM_FIELDS:
            raise FieldValueError(field, f"Unknown exam field: {field}")

        if field in _INT_FIELDS:
            setattr(self.draft, field, coerce_optional_int(value))
        elif field == "second_call_eligible":
            try:
                self.draft.second_call_eligible = coerce_bool(value)
            except ValueError as e:
                raise FieldValueError(field, str(e)) from e
        elif field in _OPTIONAL_TEXT_FIELDS:
            text = "" if value is None else str(value).strip()
            setattr(self.draft, field, text or None)
        elif field == "exam_type":
            self.draft.exam_type = "" if value is None else str(value).strip()
        else:
            setattr(self.draft, field, "" if value is None else str(value))

        self._touched.add(field)

    def load(self, data: Dict[str, Any]) -> None:
        """Fill the form from a dict, applying the same coercion as user edits.

        ``type`` is accepted as an alias of ``exam_type``. Questions are
        appended in order; their type is applied before the other fields.

        Raises:
            FieldValueError: Unknown field, a value the field can never hold,
                or a questions entry that is not a list of objects
        """
        questions = data.get("questions") or []
        if not isinstance(questions, list):
            raise FieldValueError("questions", "Questions must be a list of question objects.")
        for index, entry in enumerate(questions):
            if not isinstance(entry, dict):
                raise FieldValueError(f"questions.{index}", "Each question must be an object.")

        for field, value in data.items():
            if field == "questions":
                continue
            self.update_field("exam_type" if field == "type" else field, value)

        for entry in questions:
            self.append_question()
            index = len(self.draft.questions) - 1
            if "type" in entry:
                self.update_question_field(index, "type", entry["type"])
            for field in ("text", "options", "correct_answer", "score"):
                if field in entry and entry[field] is not None:
                    self.update_question_field(index, field, entry[field])

    # ------------------------------------------------------------------
    # Validation and state
    # ------------------------------------------------------------------

    def validate(self) -> ValidationReport:
        return validate_draft(self.draft, self.variant)

    def _is_touched(self, error: FieldError) -> bool:
        if self._touch_all:
            return True

        index = error.question_index
        if index is None:
            return error.path.split(".")[0] in self._touched

        question = self._question(index)
        if question is None:
            return False
        parts = error.path.split(".")
        if len(parts) < 3:
            return "questions" in self._touched
        return f"{question.key}.{parts[2]}" in self._touched

    def visible_errors(self) -> List[FieldError]:
        """Errors on fields the user has touched (all of them after a failed submit)."""
        return [error for error in self.validate().errors if self._is_touched(error)]

    def touch_all(self) -> None:
        self._touch_all = True

    def state(self) -> FormState:
        """Render-ready snapshot of the form."""
        questions = []
        for index, question in enumerate(self.draft.questions):
            rule = rule_for(question.type)
            choices = rule.choices(question.options)
            questions.append(QuestionView(
                key=question.key,
                index=index,
                text=question.text,
                type=question.type.value,
                options=list(question.options) if question.options is not None else None,
                correct_answer=question.correct_answer,
                score=question.score,
                answer_widget=rule.widget,
                answer_choices=list(choices) if choices is not None else None,
            ))

        draft = self.draft
        return FormState(
            draft_id=self.draft_id,
            variant=self.variant.name,
            name=draft.name,
            course_id=draft.course_id,
            discipline_id=draft.discipline_id,
            academic_period_id=draft.academic_period_id,
            exam_date=draft.exam_date,
            duration_minutes=draft.duration_minutes,
            exam_type=draft.exam_type,
            second_call_eligible=draft.second_call_eligible,
            second_call_date=draft.second_call_date,
            publication_date=draft.publication_date,
            content_matrix_id=draft.content_matrix_id,
            questions=questions,
            max_score=compute_max_score(draft.questions),
            errors=self.visible_errors(),
            is_submitting=self._submitting,
            can_submit=not self._submitting,
        )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def discard(self) -> None:
        """Drop the draft and all touched state."""
        self.draft = ExamDraft()
        self._touched = set()
        self._touch_all = False

    async def submit(self) -> SubmitResult:
        """Validate and send the draft as one creation request.

        Returns:
            SubmitResult: "invalid" (nothing sent), "failed" (draft kept)
            or "created" (draft cleared, redirect_to set)

        Raises:
            SubmissionInProgressError: If a submission is already in flight
        """
        if self._submitting:
            raise SubmissionInProgressError("A submission for this exam is already in progress")

        report = self.validate()
        if not report.is_valid:
            self._touch_all = True
            logger.info(
                f"Submission blocked by {len(report.errors)} validation error(s) "
                f"(draft_id={self.draft_id})"
            )
            return SubmitResult(
                status="invalid",
                notification=Notification(level="error", message=INVALID_MESSAGE),
                errors=report.errors,
            )

        payload = build_exam_payload(report.submission)

        self._submitting = True
        try:
            exam = await self.client.create_exam(payload)
        except ExamServiceError as e:
            logger.warning(
                f"Exam submission failed (draft_id={self.draft_id}, "
                f"status={e.status_code}): {e.message}"
            )
            return SubmitResult(
                status="failed",
                notification=Notification(level="error", message=e.message),
                status_code=e.status_code,
            )
        finally:
            self._submitting = False

        logger.info(f"Exam submitted (draft_id={self.draft_id}, max_score={payload['max_score']})")
        self.discard()
        return SubmitResult(
            status="created",
            notification=Notification(level="success", message=SUCCESS_MESSAGE),
            redirect_to=self.success_redirect_path,
            exam=exam or None,
        )
