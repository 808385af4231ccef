"""Pydantic schemas for the fill-session HTTP API."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from app.schemas.form import FormModel, QuestionType


class AnswerUpdate(BaseModel):
    """Request body for setting an answer. A null value clears it."""
    value: Any = Field(None, description="Answer value shaped for the question type")


class ScaleView(FormModel):
    """Rendered linear scale: the selectable points and end labels."""
    values: list[str]
    min_label: str
    max_label: str


class QuestionView(FormModel):
    """A question as shown on the current page.

    Only the attributes relevant to the question's type are set.
    """
    id: str
    type: QuestionType
    title: str
    description: Optional[str] = None
    required: bool
    answer: Any = None
    has_error: bool = False
    options: Optional[list[str]] = None
    rows: Optional[list[str]] = None
    columns: Optional[list[str]] = None
    scale: Optional[ScaleView] = None
    points: Optional[int] = None


class SessionView(FormModel):
    """State of a fill session as returned by every session endpoint."""
    session_id: str
    form_id: str
    form_title: str
    form_description: str = ""
    status: str
    page_index: int
    page_count: int
    is_first_page: bool
    is_last_page: bool
    progress_percent: Optional[float] = None
    collect_email: bool = False
    questions: list[QuestionView] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    confirmation_message: Optional[str] = None
    response_id: Optional[str] = None
    score: Optional[int] = None
    max_score: Optional[int] = None


class OutcomeView(FormModel):
    """Error body returned when a transition is rejected."""
    kind: str
    message: Optional[str] = None
    failed_ids: list[str] = Field(default_factory=list)
    session: Optional[SessionView] = None
