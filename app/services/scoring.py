"""Quiz scoring for forms in quiz mode.

Forms carry no explicit answer key. By convention the first listed option
of a multipleChoice/dropdown question is the correct one, and the first half
of a checkbox question's options (rounded up) is the correct set.
"""

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from app.schemas.form import Form, Question, QuestionType
from app.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScoreResult:
    """Quiz score for one set of answers."""
    score: int
    max_score: int


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def correct_options(question: Question) -> list[str]:
    """Return the options treated as correct for a question."""
    if question.type in (QuestionType.MULTIPLE_CHOICE, QuestionType.DROPDOWN):
        return question.options[:1]
    if question.type == QuestionType.CHECKBOX:
        return question.options[:math.ceil(len(question.options) / 2)]
    return []


def question_credit(question: Question, answer: Any) -> float:
    """Compute the (unrounded) points earned on a single question.

    Args:
        question: Question definition with points set
        answer: Stored answer

    Returns:
        Points earned; 0 for question types that are not scored
    """
    points = question.points or 0

    if question.type in (QuestionType.MULTIPLE_CHOICE, QuestionType.DROPDOWN):
        correct = correct_options(question)
        if correct and answer == correct[0]:
            return float(points)
        return 0.0

    if question.type == QuestionType.CHECKBOX:
        if not isinstance(answer, (list, tuple)):
            return 0.0
        correct = correct_options(question)
        if not correct:
            return 0.0
        hits = len(set(answer) & set(correct))
        return max(0.0, points * hits / len(correct))

    return 0.0


def score_form(form: Form, answers: Mapping[str, Any]) -> Optional[ScoreResult]:
    """Score answers against a quiz form.

    Args:
        form: Form definition
        answers: Current answer state

    Returns:
        ScoreResult, or None if the form is not in quiz mode

    Example:
        >>> score_form(quiz, {"capital": "Paris"})
        ScoreResult(score=10, max_score=10)
    """
    if not form.settings.quiz_mode:
        return None

    total = 0.0
    max_score = 0

    for question in form.questions:
        if question.points is None or question.type == QuestionType.UNKNOWN:
            continue
        max_score += question.points
        total += question_credit(question, answers.get(question.id))

    result = ScoreResult(score=_round_half_up(total), max_score=max_score)
    logger.debug(f"Scored form {form.id}: {result.score}/{result.max_score}")
    return result
