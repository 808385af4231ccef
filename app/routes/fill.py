"""Fill-session endpoints.

This module exposes the navigation controller over HTTP. Each request
loads the session, applies one transition through the fill engine, and
returns the resulting session view. Rejected transitions are returned as
an OutcomeView with a status code matching the outcome kind.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.middleware.identity import get_respondent
from app.models.database import get_db
from app.models.session import FillSession
from app.schemas.session import AnswerUpdate, OutcomeView, SessionView
from app.services.collaborators import Respondent
from app.services.fill_engine import FillEngine, SessionNotFoundError
from app.services.navigation import NavigationController, Outcome, OutcomeKind
from app.services.page_view import build_session_view
from app.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api")

OUTCOME_STATUS_CODES = {
    OutcomeKind.NOT_FOUND: 404,
    OutcomeKind.EXPIRED: 410,
    OutcomeKind.VALIDATION_FAILURE: 422,
    OutcomeKind.INVALID_ANSWER: 422,
    OutcomeKind.AUTH_REQUIRED: 401,
    OutcomeKind.PERSISTENCE_FAILURE: 502,
    OutcomeKind.ALREADY_RESPONDED: 409,
    OutcomeKind.BUSY: 409,
    OutcomeKind.INVALID_STATE: 409,
}


def get_fill_engine(db: Session = Depends(get_db)) -> FillEngine:
    """Dependency providing a fill engine bound to the request's DB session."""
    return FillEngine(db)


def outcome_response(
    outcome: Outcome,
    record: Optional[FillSession] = None,
    controller: Optional[NavigationController] = None,
) -> JSONResponse:
    """Build the error response for a rejected transition.

    Args:
        outcome: Non-ok outcome
        record: Session row, when one exists
        controller: Controller the outcome came from, when one exists

    Returns:
        JSONResponse with an OutcomeView body
    """
    session = None
    if record is not None and controller is not None:
        session = build_session_view(record, controller)

    body = OutcomeView(
        kind=outcome.kind.value,
        message=outcome.message,
        failed_ids=sorted(outcome.failed_ids),
        session=session,
    )
    return JSONResponse(
        status_code=OUTCOME_STATUS_CODES.get(outcome.kind, 400),
        content=body.model_dump(mode="json", by_alias=True),
    )


def session_not_found(session_id: str) -> JSONResponse:
    logger.info(f"Unknown fill session requested: {session_id}")
    return outcome_response(
        Outcome(OutcomeKind.NOT_FOUND, "This session doesn't exist or its form has been removed.")
    )


def session_response(
    outcome: Outcome, record: FillSession, controller: NavigationController
):
    if not outcome.ok:
        return outcome_response(outcome, record, controller)
    return build_session_view(record, controller)


@router.post("/forms/{form_id}/sessions", status_code=201, response_model=SessionView)
async def start_session(
    form_id: str,
    engine: FillEngine = Depends(get_fill_engine),
    respondent: Optional[Respondent] = Depends(get_respondent),
):
    """Start filling in a form.

    Returns:
        SessionView on the first page (201), 404 for an unknown form, or
        410 once the form's deadline has passed
    """
    outcome, record, controller = engine.start(form_id, respondent)
    if not outcome.ok:
        return outcome_response(outcome)
    return build_session_view(record, controller)


@router.get("/sessions/{session_id}", response_model=SessionView)
async def get_session(
    session_id: str,
    engine: FillEngine = Depends(get_fill_engine),
    respondent: Optional[Respondent] = Depends(get_respondent),
):
    """Return the current state of a fill session."""
    try:
        record, controller = engine.load(session_id, respondent)
    except SessionNotFoundError:
        return session_not_found(session_id)
    return build_session_view(record, controller)


@router.put("/sessions/{session_id}/answers/{question_id}", response_model=SessionView)
async def set_answer(
    session_id: str,
    question_id: str,
    update: AnswerUpdate,
    engine: FillEngine = Depends(get_fill_engine),
    respondent: Optional[Respondent] = Depends(get_respondent),
):
    """Record the answer to one question. A null value clears it."""
    try:
        outcome, record, controller = engine.set_answer(
            session_id, question_id, update.value, respondent
        )
    except SessionNotFoundError:
        return session_not_found(session_id)
    return session_response(outcome, record, controller)


@router.post("/sessions/{session_id}/advance", response_model=SessionView)
async def advance(
    session_id: str,
    engine: FillEngine = Depends(get_fill_engine),
    respondent: Optional[Respondent] = Depends(get_respondent),
):
    """Validate the current page and move forward (following skip rules)."""
    try:
        outcome, record, controller = engine.advance(session_id, respondent)
    except SessionNotFoundError:
        return session_not_found(session_id)
    return session_response(outcome, record, controller)


@router.post("/sessions/{session_id}/retreat", response_model=SessionView)
async def retreat(
    session_id: str,
    engine: FillEngine = Depends(get_fill_engine),
    respondent: Optional[Respondent] = Depends(get_respondent),
):
    """Go back one page."""
    try:
        outcome, record, controller = engine.retreat(session_id, respondent)
    except SessionNotFoundError:
        return session_not_found(session_id)
    return session_response(outcome, record, controller)


@router.post("/sessions/{session_id}/submit", response_model=SessionView)
async def submit(
    session_id: str,
    engine: FillEngine = Depends(get_fill_engine),
    respondent: Optional[Respondent] = Depends(get_respondent),
):
    """Submit the response from the last page.

    Returns:
        SessionView in the `submitted` state with the confirmation message
        and quiz result, or an OutcomeView describing why submission was
        refused
    """
    try:
        outcome, record, controller = await engine.submit(session_id, respondent)
    except SessionNotFoundError:
        return session_not_found(session_id)
    return session_response(outcome, record, controller)
