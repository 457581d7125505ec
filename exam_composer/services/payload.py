"""Build the exam-creation request body from a validated submission."""

from datetime import UTC, datetime
from typing import Any, Dict, Iterable, Optional

from exam_composer.services.answer_rules import uses_options
from exam_composer.services.validation import ExamSubmission, QuestionSubmission
from exam_composer.utils.normalizers import normalize_datetime, to_utc_iso


def compute_max_score(questions: Iterable[Any]) -> int:
    """Sum of question scores. Always recomputed, never cached."""
    return sum(question.score for question in questions)


def _question_payload(question: QuestionSubmission) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "text": question.text,
        "type": question.type,
    }
    if uses_options(question.type):
        payload["options"] = list(question.options or [])
    payload["correct_answer"] = question.correct_answer
    payload["score"] = question.score
    return payload


def build_exam_payload(
    submission: ExamSubmission,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Flatten a submission into the JSON body for POST /exams.

    Args:
        submission: Validated exam submission
        now: Submission time, used when no publication date was entered

    Returns:
        Dict ready to be JSON encoded. ``options`` appears only on multiple
        choice questions, as a plain list of strings.
    """
    published_at = normalize_datetime(submission.publication_date)
    if published_at is None:
        published_at = to_utc_iso(now or datetime.now(UTC))

    payload: Dict[str, Any] = {
        "name": submission.name,
        "course_id": submission.course_id,
        "discipline_id": submission.discipline_id,
        "academic_period_id": submission.academic_period_id,
        "type": submission.exam_type,
        "exam_date": normalize_datetime(submission.exam_date),
        "duration_minutes": submission.duration_minutes,
        "max_score": compute_max_score(submission.questions),
        "second_call_eligible": submission.second_call_eligible,
        "second_call_date": (
            normalize_datetime(submission.second_call_date)
            if submission.second_call_eligible
            else None
        ),
        "publication_date": published_at,
        "questions": [_question_payload(q) for q in submission.questions],
    }

    if submission.content_matrix_id is not None:
        payload["content_matrix_id"] = submission.content_matrix_id

    return payload
