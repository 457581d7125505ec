"""Schema variants for the exam composition form.

Two versions of the create-exam form exist: the full form builder, which
requires every question to be worth at least one point and starts new
questions as multiple choice, and the simpler question list, which allows
zero-point questions and starts new questions as true/false.
"""

from dataclasses import dataclass

from exam_composer.models.exam import QuestionType


@dataclass(frozen=True)
class FormVariant:
    """Bundle of the schema differences between form versions."""
    name: str
    min_question_score: int
    default_question_type: QuestionType
    require_options: bool = False


FORM_VARIANTS: dict[str, FormVariant] = {
    "form_builder": FormVariant(
        name="form_builder",
        min_question_score=1,
        default_question_type=QuestionType.MULTIPLE_CHOICE,
    ),
    "simple": FormVariant(
        name="simple",
        min_question_score=0,
        default_question_type=QuestionType.TRUE_FALSE,
    ),
}


def get_variant(name: str) -> FormVariant:
    """Look up a variant by name.

    Raises:
        ValueError: If the variant name is unknown
    """
    try:
        return FORM_VARIANTS[name]
    except KeyError:
        raise ValueError(
            f"Unknown form variant {name!r}; expected one of {sorted(FORM_VARIANTS)}"
        ) from None
