"""Answer shapes and normalisation for each question type.

Every answer stored in a fill session has one of three shapes, selected by
the type of the question it answers:

- text-like: a single string (text, paragraph, multipleChoice, dropdown,
  date as ISO string, time, fileUpload filename, linearScale as a
  stringified number)
- multi-select: a list of strings (checkbox)
- row map: row index -> chosen column (grid); keys are strings so the
  value survives a JSON round trip unchanged

Raw input is coerced into the expected shape on entry so that the evaluator,
validator and scorer can rely on it.
"""

from datetime import date, datetime, time
from enum import Enum
from typing import Any, Union

from app.schemas.form import Question, QuestionType

Answer = Union[str, list[str], dict[str, str]]


class AnswerShape(str, Enum):
    """Storage shape of an answer."""
    TEXT = "text"
    MULTI = "multi"
    ROW_MAP = "row_map"
    NONE = "none"


ANSWER_SHAPES: dict[QuestionType, AnswerShape] = {
    QuestionType.TEXT: AnswerShape.TEXT,
    QuestionType.PARAGRAPH: AnswerShape.TEXT,
    QuestionType.MULTIPLE_CHOICE: AnswerShape.TEXT,
    QuestionType.CHECKBOX: AnswerShape.MULTI,
    QuestionType.DROPDOWN: AnswerShape.TEXT,
    QuestionType.LINEAR_SCALE: AnswerShape.TEXT,
    QuestionType.GRID: AnswerShape.ROW_MAP,
    QuestionType.DATE: AnswerShape.TEXT,
    QuestionType.TIME: AnswerShape.TEXT,
    QuestionType.FILE_UPLOAD: AnswerShape.TEXT,
    QuestionType.SECTION: AnswerShape.NONE,
    QuestionType.UNKNOWN: AnswerShape.NONE,
}


class InvalidAnswerError(Exception):
    """Raised when a value cannot be stored as an answer to a question."""
    pass


def shape_for(question: Question) -> AnswerShape:
    return ANSWER_SHAPES.get(question.type, AnswerShape.NONE)


def normalize_answer(question: Question, value: Any) -> Answer:
    """Coerce a raw value into the storage shape for `question`.

    Args:
        question: Question being answered
        value: Raw value from the respondent (must not be None)

    Returns:
        The answer in its canonical shape

    Raises:
        InvalidAnswerError: If the value does not fit the question type

    Example:
        >>> normalize_answer(scale_question, 4)
        '4'
        >>> normalize_answer(grid_question, {0: "Good", 1: "Bad"})
        {'0': 'Good', '1': 'Bad'}
    """
    shape = shape_for(question)

    if shape == AnswerShape.TEXT:
        return _normalize_text(question, value)
    elif shape == AnswerShape.MULTI:
        return _normalize_multi(question, value)
    elif shape == AnswerShape.ROW_MAP:
        return _normalize_row_map(question, value)
    else:
        raise InvalidAnswerError(
            f"Question '{question.id}' of type {question.type.value} does not take an answer"
        )


def _normalize_text(question: Question, value: Any) -> str:
    if isinstance(value, bool):
        raise InvalidAnswerError(f"Question '{question.id}' expects a string answer")
    if isinstance(value, str):
        return value
    if question.type == QuestionType.LINEAR_SCALE and isinstance(value, (int, float)):
        # 4.0 and 4 are the same scale point
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value)
    if question.type == QuestionType.DATE and isinstance(value, (date, datetime)):
        return value.isoformat()
    if question.type == QuestionType.TIME and isinstance(value, time):
        return value.strftime("%H:%M")
    raise InvalidAnswerError(f"Question '{question.id}' expects a string answer")


def _normalize_multi(question: Question, value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        raise InvalidAnswerError(f"Question '{question.id}' expects a list of options")
    selected = []
    for item in value:
        if not isinstance(item, str):
            raise InvalidAnswerError(f"Question '{question.id}' expects string options")
        if item not in selected:
            selected.append(item)
    return selected


def _normalize_row_map(question: Question, value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        raise InvalidAnswerError(f"Question '{question.id}' expects a row -> column mapping")
    rows = {}
    for key, column in value.items():
        try:
            row_index = int(key)
        except (TypeError, ValueError):
            raise InvalidAnswerError(f"Question '{question.id}' has a non-numeric row key: {key!r}")
        if row_index < 0 or (question.rows and row_index >= len(question.rows)):
            raise InvalidAnswerError(f"Question '{question.id}' has no row {row_index}")
        if not isinstance(column, str):
            raise InvalidAnswerError(f"Question '{question.id}' expects string column values")
        rows[str(row_index)] = column
    return rows


def is_blank(value: Any) -> bool:
    """Check whether an answer counts as "not filled in".

    Used both by the validator and to clear field errors as the
    respondent types.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def populated_rows(value: Any) -> int:
    """Count grid rows that have a non-empty column selected."""
    if not isinstance(value, dict):
        return 0
    return sum(1 for column in value.values() if isinstance(column, str) and column != "")
