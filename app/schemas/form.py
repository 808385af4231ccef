"""Pydantic schemas for form definitions and submitted responses.

This module defines the structure of a form as authored by the form builder:
an ordered list of typed questions, their conditional-logic rules, and the
form-level settings that govern how a fill session behaves. Field names are
snake_case in Python and camelCase on the wire, so both spellings load.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class QuestionType(str, Enum):
    """Valid question types in form definitions."""
    TEXT = "text"
    PARAGRAPH = "paragraph"
    MULTIPLE_CHOICE = "multipleChoice"
    CHECKBOX = "checkbox"
    DROPDOWN = "dropdown"
    LINEAR_SCALE = "linearScale"
    GRID = "grid"
    DATE = "date"
    TIME = "time"
    FILE_UPLOAD = "fileUpload"
    SECTION = "section"
    # Any type this engine does not know; loaded but never answered
    UNKNOWN = "unknown"


# Question types whose answer is picked from the `options` list
CHOICE_TYPES = frozenset({
    QuestionType.MULTIPLE_CHOICE,
    QuestionType.CHECKBOX,
    QuestionType.DROPDOWN,
})


class ConditionOperator(str, Enum):
    """Comparison applied between a source answer and a rule value."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"


class RuleAction(str, Enum):
    """Effect a rule has on the question that owns it."""
    SHOW = "show"
    HIDE = "hide"
    REQUIRE = "require"
    SKIP_TO = "skip_to"


class FormModel(BaseModel):
    """Base model accepting both camelCase and snake_case field names."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ConditionalRule(FormModel):
    """A condition/action pair attached to a question.

    Example: "if `likes_pets` equals 'No' then hide this question".

    Attributes:
        id: Optional rule identifier assigned by the builder
        question_id: Source question whose current answer is tested
        operator: Comparison to apply
        value: Comparison literal (numeric operators coerce it)
        action: Effect on the owning question when the condition holds
        target_question_id: Question whose page becomes the navigation
            target (skip_to only)
    """
    id: Optional[str] = Field(None, description="Rule identifier")
    question_id: str = Field(..., min_length=1, description="Source question ID")
    operator: ConditionOperator = Field(..., description="Comparison operator")
    value: str = Field("", description="Comparison literal")
    action: RuleAction = Field(..., description="Action when condition holds")
    target_question_id: Optional[str] = Field(None, description="Skip target question ID")

    @field_validator("value", mode="before")
    @classmethod
    def value_as_string(cls, v: Any) -> Any:
        """YAML turns `value: 3` into an int; rule literals are always strings."""
        if v is None:
            return ""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @model_validator(mode="after")
    def skip_to_needs_target(self):
        """Ensure skip_to rules name a target question."""
        if self.action == RuleAction.SKIP_TO and not self.target_question_id:
            raise ValueError("skip_to rules must set target_question_id")
        return self


class Question(FormModel):
    """A single field in a form.

    Type-specific attributes are only meaningful for the types that use
    them; they are kept on one flat model so definitions round-trip with
    the builder unchanged.
    """
    id: str = Field(..., min_length=1, description="Unique question identifier")
    type: QuestionType = Field(..., description="Question type")
    title: str = Field("", description="Question text")
    description: Optional[str] = Field(None, description="Help text")
    required: bool = Field(False, description="Statically required")
    options: list[str] = Field(default_factory=list, description="Choice options")
    rows: list[str] = Field(default_factory=list, description="Grid rows")
    columns: list[str] = Field(default_factory=list, description="Grid columns")
    scale_min: Optional[int] = Field(None, description="Linear scale lower bound")
    scale_max: Optional[int] = Field(None, description="Linear scale upper bound")
    min_label: Optional[str] = Field(None, description="Label for the lower bound")
    max_label: Optional[str] = Field(None, description="Label for the upper bound")
    points: Optional[int] = Field(None, ge=0, description="Quiz scoring weight")
    conditional_logic: list[ConditionalRule] = Field(
        default_factory=list,
        description="Ordered conditional rules",
    )

    @field_validator("type", mode="before")
    @classmethod
    def unknown_type(cls, v: Any) -> Any:
        """Load types added by newer builders instead of rejecting the form."""
        if isinstance(v, str) and v not in {t.value for t in QuestionType}:
            return QuestionType.UNKNOWN
        return v

    @field_validator("options", "rows", "columns", "conditional_logic", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        """Treat explicit nulls from the builder as empty lists."""
        return [] if v is None else v

    @property
    def is_section(self) -> bool:
        return self.type == QuestionType.SECTION

    @property
    def is_answerable(self) -> bool:
        return self.type not in (QuestionType.SECTION, QuestionType.UNKNOWN)


class FormSettings(FormModel):
    """Form-level behaviour switches.

    Presentational settings the builder also stores (theme, font,
    notifications) are ignored by this model.
    """
    collect_email: bool = False
    limit_one_response: bool = False
    show_progress_bar: bool = False
    confirmation_message: Optional[str] = None
    quiz_mode: bool = False
    deadline: Optional[datetime] = None
    shuffle_questions: bool = False
    shuffle_options: bool = False

    @field_validator("deadline", mode="before")
    @classmethod
    def blank_deadline_is_none(cls, v: Any) -> Any:
        """The builder stores an empty string when no deadline is set."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("deadline")
    @classmethod
    def deadline_is_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Interpret naive deadlines as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class Form(FormModel):
    """Complete form definition.

    Attributes:
        id: Form identifier
        title: Form title
        description: Form description
        questions: Ordered questions, including section breaks
        settings: Behaviour switches
    """
    id: str = Field(..., min_length=1, description="Form identifier")
    title: str = Field(..., min_length=1, description="Form title")
    description: str = Field("", description="Form description")
    questions: list[Question] = Field(default_factory=list)
    settings: FormSettings = Field(default_factory=FormSettings)

    @field_validator("id")
    @classmethod
    def id_alphanumeric(cls, v):
        """Ensure ID is alphanumeric with underscores/hyphens only."""
        if not v.replace("_", "").replace("-", "").isalnum():
            raise ValueError("Form ID must be alphanumeric with underscores/hyphens")
        return v

    @field_validator("settings", mode="before")
    @classmethod
    def none_settings(cls, v: Any) -> Any:
        return {} if v is None else v

    @model_validator(mode="after")
    def validate_unique_ids(self):
        """Reject forms that reuse a question ID."""
        question_ids = [q.id for q in self.questions]
        if len(question_ids) != len(set(question_ids)):
            duplicates = sorted({qid for qid in question_ids if question_ids.count(qid) > 1})
            raise ValueError(f"Duplicate question IDs found: {duplicates}")
        return self

    def get_question(self, question_id: str) -> Optional[Question]:
        """Get question by ID.

        Args:
            question_id: Question identifier

        Returns:
            Question if found, None otherwise
        """
        for question in self.questions:
            if question.id == question_id:
                return question
        return None


class FormResponse(FormModel):
    """Immutable record of one completed fill session."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: str
    form_id: str
    responses: dict[str, Any]
    created_at: datetime
    respondent_email: Optional[str] = None
    score: Optional[int] = None
    max_score: Optional[int] = None
