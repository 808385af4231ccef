"""Completeness validation for form pages.

This module checks that every visible, required question on a page has
been answered according to its question type, and produces the aggregate
error message shown when a page cannot be left.
"""

from dataclasses import dataclass, field
from typing import AbstractSet, Any, Iterable, Mapping, Optional

from app.schemas.form import Question, QuestionType
from app.services.answers import is_blank, populated_rows
from app.logging_config import get_logger

logger = get_logger(__name__)

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields"


@dataclass
class ValidationResult:
    """Result of validating a set of questions.

    Attributes:
        is_valid: Whether every required question was answered
        failed_ids: IDs of questions that failed
        error_message: Aggregate message if validation failed
    """
    is_valid: bool
    failed_ids: frozenset[str] = field(default_factory=frozenset)
    error_message: Optional[str] = None


class ResponseValidator:
    """Service for validating answers against required questions."""

    @staticmethod
    def is_complete(question: Question, answer: Any) -> bool:
        """Check whether a single answer satisfies a required question.

        Args:
            question: Question definition
            answer: Stored answer (may be None)

        Returns:
            True if the answer counts as filled in
        """
        if is_blank(answer):
            return False

        if question.type == QuestionType.GRID:
            return populated_rows(answer) >= len(question.rows)

        return True

    @staticmethod
    def failing_questions(
        questions: Iterable[Question],
        visible: AbstractSet[str],
        required: AbstractSet[str],
        answers: Mapping[str, Any],
    ) -> set[str]:
        """Find visible, required questions that are not answered.

        Questions that take no answer never fail, nor do optional ones.

        Args:
            questions: Questions to check (a page, or the whole form)
            visible: Currently visible question IDs
            required: Currently required question IDs
            answers: Current answer state

        Returns:
            Set of failing question IDs
        """
        failed = set()
        for question in questions:
            if question.id not in visible or not question.is_answerable:
                continue
            if question.id not in required:
                continue
            if not ResponseValidator.is_complete(question, answers.get(question.id)):
                failed.add(question.id)
        return failed

    @staticmethod
    def validate(
        questions: Iterable[Question],
        visible: AbstractSet[str],
        required: AbstractSet[str],
        answers: Mapping[str, Any],
    ) -> ValidationResult:
        """Validate questions and wrap the outcome in a ValidationResult.

        Example:
            >>> result = ResponseValidator.validate(page, visible, required, {"name": "  "})
            >>> result.is_valid
            False
            >>> result.error_message
            'Please fill in all required fields'
        """
        failed = ResponseValidator.failing_questions(questions, visible, required, answers)
        if failed:
            logger.debug(f"Validation failed for questions: {sorted(failed)}")
            return ValidationResult(
                is_valid=False,
                failed_ids=frozenset(failed),
                error_message=REQUIRED_FIELDS_MESSAGE,
            )
        return ValidationResult(is_valid=True)
