"""Builds the per-question view of the page a respondent is on.

Each question type is rendered by its own branch; a type with nothing
special to show renders as a bare question, and an unknown type renders
nothing at all.
"""

from typing import Any

from app.models.session import FillSession
from app.schemas.form import Question, QuestionType
from app.schemas.session import QuestionView, ScaleView, SessionView
from app.services.navigation import FillStatus, NavigationController

# Defaults used by the form builder when a scale has no explicit bounds
DEFAULT_SCALE_MIN = 0
DEFAULT_SCALE_MAX = 5


def scale_values(question: Question) -> list[str]:
    """Selectable points of a linear scale, as stored answer strings."""
    low = question.scale_min if question.scale_min is not None else DEFAULT_SCALE_MIN
    high = question.scale_max if question.scale_max is not None else DEFAULT_SCALE_MAX
    return [str(value) for value in range(low, high + 1)]


def build_question_view(controller: NavigationController, question: Question) -> QuestionView:
    """Render one question for the current page.

    Args:
        controller: Session the question belongs to
        question: Question to render

    Returns:
        QuestionView with the type-specific attributes filled in
    """
    answers = controller.answers
    fields: dict[str, Any] = {}
    qtype = question.type

    if qtype in (QuestionType.MULTIPLE_CHOICE, QuestionType.CHECKBOX, QuestionType.DROPDOWN):
        fields["options"] = controller.options_for(question)
    elif qtype == QuestionType.GRID:
        fields["rows"] = list(question.rows)
        fields["columns"] = list(question.columns)
    elif qtype == QuestionType.LINEAR_SCALE:
        values = scale_values(question)
        fields["scale"] = ScaleView(
            values=values,
            min_label=question.min_label or (values[0] if values else ""),
            max_label=question.max_label or (values[-1] if values else ""),
        )
    # Free-entry types and sections carry no extra attributes

    if controller.form.settings.quiz_mode and question.points is not None:
        fields["points"] = question.points

    return QuestionView(
        id=question.id,
        type=qtype,
        title=question.title,
        description=question.description,
        required=question.is_answerable and question.id in controller.required,
        answer=answers.get(question.id),
        has_error=question.id in controller.errors,
        **fields,
    )


def build_page_view(controller: NavigationController) -> list[QuestionView]:
    """Render the visible questions of the controller's current page.

    Questions of an unknown type render nothing.
    """
    return [
        build_question_view(controller, q)
        for q in controller.current_questions()
        if q.type != QuestionType.UNKNOWN
    ]


def build_session_view(record: FillSession, controller: NavigationController) -> SessionView:
    """Render the full state of a fill session.

    Questions are only listed while the session is being viewed; a
    submitted session carries its confirmation and quiz result instead.

    Args:
        record: Persisted session row
        controller: Controller rebuilt from the row

    Returns:
        SessionView for the API response
    """
    form = controller.form
    viewing = controller.status == FillStatus.VIEWING
    response = controller.response

    return SessionView(
        session_id=record.id,
        form_id=form.id,
        form_title=form.title,
        form_description=form.description,
        status=controller.status.value,
        page_index=controller.current_page_index,
        page_count=controller.page_count,
        is_first_page=controller.is_first_page,
        is_last_page=controller.is_last_page,
        progress_percent=controller.progress_percent,
        collect_email=form.settings.collect_email,
        questions=build_page_view(controller) if viewing else [],
        errors=sorted(controller.errors),
        confirmation_message=controller.confirmation_message,
        response_id=response.id if response else record.response_id,
        score=response.score if response else None,
        max_score=response.max_score if response else None,
    )
