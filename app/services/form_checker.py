"""Structural checks for form definitions.

This module lints a form's conditional logic and question setup to catch
authoring mistakes that would otherwise fail silently at fill time:
- Rules referencing questions that do not exist
- Skip rules that can never be taken, or that point back before their source
- Rules attached to section questions
- Conditions on questions that never hold an answer
- Choice questions without options, inverted linear scales
- Question types this engine does not support

None of these stop a form from loading; they are reported as issues and
logged as warnings.
"""

from dataclasses import dataclass
from typing import Optional

from app.schemas.form import CHOICE_TYPES, Form, QuestionType, RuleAction
from app.services.pagination import page_index_of, split_pages
from app.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FormIssue:
    """A single problem found in a form definition.

    Attributes:
        question_id: Question the issue was found on
        code: Stable machine-readable issue code
        message: Human-readable description
    """
    question_id: Optional[str]
    code: str
    message: str


class FormChecker:
    """Service for validating form structure and conditional logic."""

    @staticmethod
    def check(form: Form) -> list[FormIssue]:
        """Check a form for structural problems.

        Args:
            form: Form to check

        Returns:
            List of issues found, in question order (empty if none)

        Example:
            >>> issues = FormChecker.check(form)
            >>> [issue.code for issue in issues]
            ['skip_backward']
        """
        issues: list[FormIssue] = []
        questions_by_id = {q.id: q for q in form.questions}
        pages = split_pages(form.questions)

        for question in form.questions:
            if question.type == QuestionType.UNKNOWN:
                issues.append(FormIssue(
                    question.id, "unknown_type",
                    f"Question '{question.id}' has an unsupported type and will not be shown",
                ))

            if question.type in CHOICE_TYPES and not question.options:
                issues.append(FormIssue(
                    question.id, "no_options",
                    f"{question.type.value} question '{question.id}' has no options",
                ))

            if question.type == QuestionType.GRID and not question.rows:
                issues.append(FormIssue(
                    question.id, "no_rows",
                    f"Grid question '{question.id}' has no rows",
                ))

            if question.type == QuestionType.LINEAR_SCALE:
                low = question.scale_min if question.scale_min is not None else 0
                high = question.scale_max if question.scale_max is not None else 5
                if low > high:
                    issues.append(FormIssue(
                        question.id, "inverted_scale",
                        f"Linear scale '{question.id}' runs from {low} down to {high}",
                    ))

            if question.is_section and question.conditional_logic:
                issues.append(FormIssue(
                    question.id, "rules_on_section",
                    f"Section '{question.id}' has conditional rules; sections are never answered",
                ))

            for rule in question.conditional_logic:
                source = questions_by_id.get(rule.question_id)
                if source is None:
                    issues.append(FormIssue(
                        question.id, "missing_source",
                        f"Rule on '{question.id}' references missing question '{rule.question_id}'",
                    ))
                    continue

                if source.is_section:
                    issues.append(FormIssue(
                        question.id, "section_source",
                        f"Rule on '{question.id}' tests section '{source.id}', which has no answer",
                    ))

                if rule.action != RuleAction.SKIP_TO:
                    continue

                source_page = page_index_of(pages, source.id)
                target_page = page_index_of(pages, rule.target_question_id)
                if target_page is None:
                    issues.append(FormIssue(
                        question.id, "missing_target",
                        f"Skip rule on '{question.id}' targets missing question '{rule.target_question_id}'",
                    ))
                elif target_page == 0:
                    issues.append(FormIssue(
                        question.id, "skip_never_taken",
                        f"Skip rule on '{question.id}' targets the first page and can never be taken",
                    ))
                elif source_page is not None and target_page <= source_page:
                    issues.append(FormIssue(
                        question.id, "skip_backward",
                        f"Skip rule on '{question.id}' targets page {target_page}, which is not "
                        f"after page {source_page} where '{source.id}' is answered",
                    ))

        for issue in issues:
            logger.warning(f"Form {form.id}: {issue.message}", extra={"form_id": form.id})

        if not issues:
            logger.info(f"Form {form.id} checked successfully")
        return issues
