"""Type-conditional answer input and validation.

Each question type maps to one AnswerRule: which widget renders the
correct answer, which choices it offers, how raw input is normalised and
how the answer is checked before submission. New question types are added
by extending ANSWER_RULES only.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from exam_composer.models.exam import QuestionType
from exam_composer.services.errors import FieldValueError

TRUE_FALSE_CHOICES: Tuple[str, str] = ("true", "false")


@dataclass(frozen=True)
class AnswerRule:
    """Widget and validator for one question type.

    Attributes:
        widget: Input control for the correct answer
            ("select", "option_select" or "textarea")
        closed: True when only values from choices() may ever be stored
        choices: Offered values given the question's options; None means free text
        normalize: Turns raw input into the stored answer string
        check: Returns an error message for a non-empty answer, or None
    """
    widget: str
    closed: bool
    choices: Callable[[Optional[List[str]]], Optional[Tuple[str, ...]]]
    normalize: Callable[[Any], str]
    check: Callable[[str, Optional[List[str]]], Optional[str]]


def _text(value: Any) -> str:
    return "" if value is None else str(value)


# true / false

def _true_false_choices(options: Optional[List[str]]) -> Tuple[str, ...]:
    return TRUE_FALSE_CHOICES


def _true_false_normalize(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    answer = _text(value).strip().lower()
    if answer and answer not in TRUE_FALSE_CHOICES:
        raise FieldValueError(
            "correct_answer",
            f"True/false answers must be 'true' or 'false' (got: {value!r})"
        )
    return answer


def _true_false_check(answer: str, options: Optional[List[str]]) -> Optional[str]:
    if answer not in TRUE_FALSE_CHOICES:
        return "Select 'true' or 'false' as the correct answer."
    return None


# multiple choice

def _multiple_choice_choices(options: Optional[List[str]]) -> Tuple[str, ...]:
    return tuple(options or ())


def _multiple_choice_check(answer: str, options: Optional[List[str]]) -> Optional[str]:
    # An empty option list is the variant's concern, not the answer's
    if not options:
        return None
    if answer not in options:
        return "The correct answer must match one of the options."
    return None


# essay

def _free_text_choices(options: Optional[List[str]]) -> None:
    return None


def _free_text_check(answer: str, options: Optional[List[str]]) -> Optional[str]:
    return None


ANSWER_RULES: dict[QuestionType, AnswerRule] = {
    QuestionType.TRUE_FALSE: AnswerRule(
        widget="select",
        closed=True,
        choices=_true_false_choices,
        normalize=_true_false_normalize,
        check=_true_false_check,
    ),
    QuestionType.MULTIPLE_CHOICE: AnswerRule(
        widget="option_select",
        closed=False,
        choices=_multiple_choice_choices,
        normalize=_text,
        check=_multiple_choice_check,
    ),
    QuestionType.ESSAY: AnswerRule(
        widget="textarea",
        closed=False,
        choices=_free_text_choices,
        normalize=_text,
        check=_free_text_check,
    ),
}


def rule_for(question_type: QuestionType) -> AnswerRule:
    """Resolve the answer rule for a question type."""
    return ANSWER_RULES[QuestionType(question_type)]


def uses_options(question_type: QuestionType) -> bool:
    """Whether questions of this type carry an option list."""
    return QuestionType(question_type) is QuestionType.MULTIPLE_CHOICE
