"""Conditional logic evaluation for fill sessions.

This module evaluates the conditional rules attached to questions to decide
which questions are visible, which are required, and where a skip rule
sends the respondent next.
"""

import math
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional, Sequence

from app.schemas.form import ConditionOperator, ConditionalRule, Form, Question, RuleAction
from app.services.pagination import Page, page_index_of
from app.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Evaluation:
    """Live visibility and requirement state of a form.

    Attributes:
        visible: IDs of questions currently shown
        required: IDs of questions currently required
    """
    visible: frozenset[str]
    required: frozenset[str]


def _as_number(value: Any) -> Optional[float]:
    """Coerce an answer or rule literal to a number, or None if it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        if not value.strip():
            return None
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


def _contains(answer: Any, needle: str) -> bool:
    if isinstance(answer, (list, tuple)):
        return needle in answer
    if isinstance(answer, dict):
        return needle in answer.values()
    return needle in ("" if answer is None else str(answer))


class ConditionEvaluator:
    """Service for evaluating conditional rules against answers."""

    @staticmethod
    def condition_holds(rule: ConditionalRule, answers: Mapping[str, Any]) -> bool:
        """Evaluate a rule's condition against the current answers.

        - equals/not_equals compare the stored answer to the literal exactly
        - contains/not_contains test list membership for multi-select
          answers and substring otherwise
        - greater_than/less_than compare numerically; a non-numeric side
          makes the condition false

        Args:
            rule: Rule to evaluate
            answers: Current answer state

        Returns:
            True if the condition holds

        Example:
            >>> rule = ConditionalRule(question_id="age", operator="greater_than",
            ...                        value="17", action="show")
            >>> ConditionEvaluator.condition_holds(rule, {"age": "21"})
            True
        """
        answer = answers.get(rule.question_id)
        operator = rule.operator

        if operator == ConditionOperator.EQUALS:
            return answer == rule.value
        elif operator == ConditionOperator.NOT_EQUALS:
            return answer != rule.value
        elif operator == ConditionOperator.CONTAINS:
            return _contains(answer, rule.value)
        elif operator == ConditionOperator.NOT_CONTAINS:
            return not _contains(answer, rule.value)
        elif operator in (ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN):
            left = _as_number(answer)
            right = _as_number(rule.value)
            if left is None or right is None:
                return False
            if operator == ConditionOperator.GREATER_THAN:
                return left > right
            return left < right

        logger.warning(f"Unknown condition operator: {operator}")
        return False

    @staticmethod
    def _active_rules(form: Form) -> Iterator[tuple[Question, ConditionalRule]]:
        """Yield (owner, rule) pairs in evaluation order.

        Rules whose source question does not exist in the form are skipped.
        """
        question_ids = {q.id for q in form.questions}
        for question in form.questions:
            for rule in question.conditional_logic:
                if rule.question_id not in question_ids:
                    logger.debug(
                        f"Rule on {question.id} references missing question {rule.question_id}"
                    )
                    continue
                yield question, rule

    @staticmethod
    def evaluate(form: Form, answers: Mapping[str, Any]) -> Evaluation:
        """Compute the visible and required question sets.

        Starts from the defaults (everything visible, static required flags)
        on every call and applies every rule in form order, then rule order.
        When rules conflict the last one applied wins.

        Args:
            form: Form definition
            answers: Current answer state

        Returns:
            Evaluation with visible and required ID sets
        """
        visible = {q.id for q in form.questions}
        required = {q.id for q in form.questions if q.required}

        for question, rule in ConditionEvaluator._active_rules(form):
            if not ConditionEvaluator.condition_holds(rule, answers):
                continue

            if rule.action == RuleAction.SHOW:
                visible.add(question.id)
            elif rule.action == RuleAction.HIDE:
                visible.discard(question.id)
            elif rule.action == RuleAction.REQUIRE:
                required.add(question.id)
            # skip_to only matters when navigating

        return Evaluation(visible=frozenset(visible), required=frozenset(required))

    @staticmethod
    def find_skip_target(
        form: Form,
        pages: Sequence[Page],
        answers: Mapping[str, Any],
        current_page_index: int,
    ) -> Optional[int]:
        """Determine the page a skip rule sends the respondent to.

        Scans the skip rules of every question in the form, not only the
        current page. The first rule whose condition holds and whose target
        lies on a later page wins; rules pointing at the current or an
        earlier page are ignored.

        Args:
            form: Form definition
            pages: Pages of the form
            answers: Current answer state
            current_page_index: Page being left

        Returns:
            Target page index, or None when no skip applies
        """
        for question, rule in ConditionEvaluator._active_rules(form):
            if rule.action != RuleAction.SKIP_TO or not rule.target_question_id:
                continue
            if not ConditionEvaluator.condition_holds(rule, answers):
                continue

            target_index = page_index_of(pages, rule.target_question_id)
            if target_index is None:
                logger.debug(f"Skip target {rule.target_question_id} is not on any page")
                continue
            if target_index > current_page_index:
                logger.info(
                    f"Skip rule on {question.id} matched: page {current_page_index} -> {target_index}"
                )
                return target_index

        return None
