"""Pydantic schemas for data validation.

This package contains the Pydantic models for form definitions, responses
and the fill-session API.
"""

from app.schemas.form import (
    QuestionType,
    CHOICE_TYPES,
    ConditionOperator,
    RuleAction,
    ConditionalRule,
    Question,
    FormSettings,
    Form,
    FormResponse,
)
from app.schemas.session import (
    AnswerUpdate,
    ScaleView,
    QuestionView,
    SessionView,
    OutcomeView,
)

__all__ = [
    "QuestionType",
    "CHOICE_TYPES",
    "ConditionOperator",
    "RuleAction",
    "ConditionalRule",
    "Question",
    "FormSettings",
    "Form",
    "FormResponse",
    "AnswerUpdate",
    "ScaleView",
    "QuestionView",
    "SessionView",
    "OutcomeView",
]
