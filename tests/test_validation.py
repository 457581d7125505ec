"""Tests for the declarative exam submission schema."""

import pytest

from exam_composer.models.exam import ExamDraft, QuestionDraft, QuestionType
from exam_composer.services.form_variants import FORM_VARIANTS, FormVariant, get_variant
from exam_composer.services.validation import validate_draft

FORM_BUILDER = FORM_VARIANTS["form_builder"]
SIMPLE = FORM_VARIANTS["simple"]


def _valid_draft(**overrides) -> ExamDraft:
    data = dict(
        name="Midterm",
        course_id=1,
        discipline_id=2,
        academic_period_id=1,
        exam_date="2025-06-01T10:00",
        duration_minutes=60,
        exam_type="mixed",
        questions=[
            QuestionDraft(text="2+2=4?", type=QuestionType.TRUE_FALSE, correct_answer="true", score=2),
            QuestionDraft(text="Explain X", type=QuestionType.ESSAY, correct_answer="ref answer", score=8),
        ],
    )
    data.update(overrides)
    return ExamDraft(**data)


def _paths(report) -> dict:
    return {error.path: error.message for error in report.errors}


def test_valid_draft_produces_submission():
    """Test that a valid draft yields a submission."""
    report = validate_draft(_valid_draft(), FORM_BUILDER)

    assert report.is_valid
    assert report.errors == []
    assert report.submission.name == "Midterm"
    assert len(report.submission.questions) == 2


def test_empty_draft_reports_every_exam_field():
    """Test that an empty draft reports every exam-level field."""
    draft = ExamDraft(duration_minutes=None, exam_type="")
    report = validate_draft(draft, FORM_BUILDER)

    errors = _paths(report)
    assert not report.is_valid
    assert report.submission is None
    for path in (
        "name", "course_id", "discipline_id", "academic_period_id",
        "exam_date", "duration_minutes", "exam_type", "questions",
    ):
        assert path in errors
    assert errors["questions"] == "At least one question is required."
    assert errors["course_id"] == "Course is required."


def test_name_needs_three_characters():
    """Test the minimum name length after stripping."""
    errors = _paths(validate_draft(_valid_draft(name="  ab "), FORM_BUILDER))
    assert errors["name"] == "Exam name must be at least 3 characters."


def test_unparseable_exam_date():
    """Test that exam_date must parse."""
    errors = _paths(validate_draft(_valid_draft(exam_date="sometime soon"), FORM_BUILDER))
    assert errors["exam_date"] == "Exam date must be a valid date and time."


def test_zero_duration_and_ids():
    """Test that zero duration and ids are rejected."""
    errors = _paths(validate_draft(_valid_draft(duration_minutes=0, discipline_id=0), FORM_BUILDER))
    assert "duration_minutes" in errors
    assert errors["discipline_id"] == "Discipline is required."


def test_unknown_exam_type():
    """Test that exam_type must be a known value."""
    errors = _paths(validate_draft(_valid_draft(exam_type="oral"), FORM_BUILDER))
    assert "exam_type" in errors


class TestQuestionRules:
    def test_question_errors_are_keyed_by_index(self):
        """Test that question errors use indexed paths and labels."""
        draft = _valid_draft(questions=[
            QuestionDraft(text="fine", type=QuestionType.ESSAY, correct_answer="x", score=1),
            QuestionDraft(text="", type=QuestionType.ESSAY, correct_answer="", score=1),
        ])
        report = validate_draft(draft, FORM_BUILDER)

        errors = {error.path: error for error in report.errors}
        assert set(errors) == {"questions.1.text", "questions.1.correct_answer"}
        assert errors["questions.1.text"].label == "question 2: Question text is required."
        assert errors["questions.1.text"].question_index == 1

    def test_true_false_answer_must_be_true_or_false(self):
        """Test the true/false answer check."""
        draft = _valid_draft(questions=[
            QuestionDraft(text="Sky is blue", type=QuestionType.TRUE_FALSE, correct_answer="blue", score=1),
        ])
        errors = _paths(validate_draft(draft, FORM_BUILDER))
        assert errors["questions.0.correct_answer"] == "Select 'true' or 'false' as the correct answer."

    def test_multiple_choice_answer_must_match_an_option(self):
        """Test the multiple choice reference check."""
        draft = _valid_draft(questions=[
            QuestionDraft(
                text="Capital of France?",
                type=QuestionType.MULTIPLE_CHOICE,
                options=["Paris", "Lyon"],
                correct_answer="Nice",
                score=1,
            ),
        ])
        errors = _paths(validate_draft(draft, FORM_BUILDER))
        assert errors["questions.0.correct_answer"] == "The correct answer must match one of the options."

    def test_multiple_choice_without_options_is_accepted_by_default(self):
        """Test that empty options are accepted by default."""
        draft = _valid_draft(questions=[
            QuestionDraft(text="Pick one", type=QuestionType.MULTIPLE_CHOICE, options=[], correct_answer="B", score=1),
        ])
        assert validate_draft(draft, FORM_BUILDER).is_valid

    def test_variant_can_require_options(self):
        """Test a variant that requires options."""
        strict = FormVariant(
            name="strict",
            min_question_score=1,
            default_question_type=QuestionType.MULTIPLE_CHOICE,
            require_options=True,
        )
        draft = _valid_draft(questions=[
            QuestionDraft(text="Pick one", type=QuestionType.MULTIPLE_CHOICE, options=[], correct_answer="B", score=1),
        ])
        errors = _paths(validate_draft(draft, strict))
        assert errors["questions.0.options"] == "Add at least one option."

    def test_options_on_non_multiple_choice_are_dropped(self):
        """Test that stale options are dropped from other types."""
        draft = _valid_draft(questions=[
            QuestionDraft(text="Explain", type=QuestionType.ESSAY, options=["stale"], correct_answer="x", score=1),
        ])
        report = validate_draft(draft, FORM_BUILDER)
        assert report.submission.questions[0].options is None


class TestScoreMinimumByVariant:
    def _zero_score_draft(self) -> ExamDraft:
        return _valid_draft(questions=[
            QuestionDraft(text="Bonus", type=QuestionType.ESSAY, correct_answer="x", score=0),
        ])

    def test_form_builder_requires_at_least_one_point(self):
        """Test the form_builder score minimum."""
        errors = _paths(validate_draft(self._zero_score_draft(), FORM_BUILDER))
        assert errors["questions.0.score"] == "Score must be at least 1."

    def test_simple_variant_allows_zero(self):
        """Test that the simple variant allows a zero score."""
        assert validate_draft(self._zero_score_draft(), SIMPLE).is_valid


class TestSecondCall:
    def test_second_call_date_required_when_eligible(self):
        """Test that eligibility requires a second call date."""
        errors = _paths(validate_draft(_valid_draft(second_call_eligible=True), FORM_BUILDER))
        assert "second_call_date" in errors

    def test_second_call_date_ignored_when_not_eligible(self):
        """Test that the second call date is dropped when not eligible."""
        report = validate_draft(_valid_draft(second_call_date=""), FORM_BUILDER)
        assert report.is_valid
        assert report.submission.second_call_date is None

    def test_invalid_publication_date(self):
        """Test that publication_date must parse."""
        errors = _paths(validate_draft(_valid_draft(publication_date="tomorrow"), FORM_BUILDER))
        assert "publication_date" in errors

    def test_content_matrix_id_must_be_positive(self):
        """Test that content_matrix_id must be positive."""
        errors = _paths(validate_draft(_valid_draft(content_matrix_id=0), FORM_BUILDER))
        assert "content_matrix_id" in errors


def test_get_variant_unknown():
    """Test that unknown variants are rejected."""
    with pytest.raises(ValueError, match="Unknown form variant"):
        get_variant("wizard")
