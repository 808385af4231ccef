"""Fill engine for running form sessions over HTTP.

Stateless per request: each call loads the FillSession row, rebuilds a
NavigationController from it, applies one transition, and writes the
resulting state back. The controller decides what happens; this module
only moves state between it and the database.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.response import StoredResponse
from app.models.session import FillSession
from app.schemas.form import Form
from app.services.collaborators import Respondent, StaticIdentityProvider
from app.services.form_loader import FormDefinitionError, FormLoader, FormNotFoundError, get_form_loader
from app.services.navigation import FillStatus, NavigationController, Outcome, OutcomeKind
from app.services.response_store import DatabaseResponseSink
from app.services.scoring import ScoreResult
from app.services.template_renderer import get_template_renderer
from app.logging_config import get_logger

logger = get_logger(__name__)

# A session left in "submitting" longer than this is assumed abandoned
SUBMIT_TIMEOUT = timedelta(minutes=2)

IN_FLIGHT = Outcome(OutcomeKind.BUSY, "Your response is already being submitted.")


class FillEngineError(Exception):
    """Raised when fill engine encounters an error."""
    pass


class SessionNotFoundError(FillEngineError):
    """Raised when a fill session (or the form behind it) does not exist."""
    pass


class FillEngine:
    """Orchestrates fill sessions persisted in the database."""

    def __init__(self, db: Session, loader: Optional[FormLoader] = None):
        """Initialize fill engine.

        Args:
            db: SQLAlchemy database session
            loader: Form loader (defaults to the global loader)
        """
        self.db = db
        self.loader = loader or get_form_loader()
        self.sink = DatabaseResponseSink(db)

    def start(
        self, form_id: str, respondent: Optional[Respondent] = None
    ) -> tuple[Outcome, Optional[FillSession], Optional[NavigationController]]:
        """Start a new fill session on a form's first page.

        Args:
            form_id: Form to fill in
            respondent: Respondent identity, if known

        Returns:
            Tuple of (outcome, session row, controller). No row is created
            when the form is missing or past its deadline.
        """
        outcome, controller = NavigationController.open(
            self.loader, form_id, self.sink, StaticIdentityProvider(respondent)
        )
        if not outcome.ok:
            return outcome, None, controller

        record = FillSession(
            form_id=form_id,
            current_page_index=controller.current_page_index,
            answers={},
            status=controller.status.value,
            shuffle_seed=controller.shuffle_seed,
            respondent_email=respondent.email if respondent else None,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)

        logger.info(
            f"Started fill session on page 0 of {controller.page_count}",
            extra={"form_id": form_id, "session_id": record.id},
        )
        return outcome, record, controller

    def load(
        self,
        session_id: str,
        respondent: Optional[Respondent] = None,
        for_update: bool = False,
    ) -> tuple[FillSession, NavigationController]:
        """Load a session and rebuild its controller.

        Args:
            session_id: Fill session ID
            respondent: Respondent identity for this request
            for_update: Lock the row for the rest of the transaction

        Returns:
            Tuple of (session row, controller)

        Raises:
            SessionNotFoundError: If the session or its form does not exist
        """
        query = select(FillSession).where(FillSession.id == session_id)
        if for_update:
            query = query.with_for_update()
        record = self.db.execute(query).scalar_one_or_none()
        if record is None:
            raise SessionNotFoundError(f"Fill session '{session_id}' not found")

        form = self._load_form(record)
        controller = NavigationController(
            form,
            self.sink,
            StaticIdentityProvider(respondent),
            page_index=record.current_page_index,
            answers=record.answers,
            status=FillStatus(record.status),
            shuffle_seed=record.shuffle_seed,
        )

        if controller.status == FillStatus.VIEWING and controller.is_past_deadline():
            logger.info("Form deadline passed during session", extra={"session_id": record.id})
            record.status = FillStatus.EXPIRED.value
            self.db.commit()
            controller = NavigationController(
                form, self.sink, status=FillStatus.EXPIRED, shuffle_seed=record.shuffle_seed
            )

        if controller.status == FillStatus.SUBMITTED and record.response_id:
            self._restore_response(record, controller)

        if respondent is not None and record.respondent_email != respondent.email:
            record.respondent_email = respondent.email

        return record, controller

    def _restore_response(self, record: FillSession, controller: NavigationController) -> None:
        stored = self.db.get(StoredResponse, record.response_id)
        if stored is None:
            logger.warning(f"Stored response {record.response_id} missing", extra={"session_id": record.id})
            return
        controller.response = stored.to_response()
        score = None
        if stored.score is not None and stored.max_score is not None:
            score = ScoreResult(score=stored.score, max_score=stored.max_score)
        controller.confirmation_message = get_template_renderer().render_confirmation(controller.form, score)

    def _load_form(self, record: FillSession) -> Form:
        try:
            return self.loader.load_form(record.form_id)
        except (FormNotFoundError, FormDefinitionError) as e:
            logger.error(f"Form for session {record.id} is unavailable: {e}")
            raise SessionNotFoundError(f"Form '{record.form_id}' is no longer available")

    def _save(self, record: FillSession, controller: NavigationController) -> None:
        record.current_page_index = controller.current_page_index
        record.update_answers(controller.answers)
        record.status = controller.status.value
        self.db.commit()

    def _in_flight(self, record: FillSession) -> bool:
        """Whether another request is still submitting this session."""
        if record.status != FillStatus.SUBMITTING.value or self._is_stale(record):
            return False
        logger.info("Submission already in flight", extra={"session_id": record.id})
        return True

    def set_answer(
        self, session_id: str, question_id: str, value: Any, respondent: Optional[Respondent] = None
    ) -> tuple[Outcome, FillSession, NavigationController]:
        """Record an answer in a session."""
        record, controller = self.load(session_id, respondent, for_update=True)
        if self._in_flight(record):
            return IN_FLIGHT, record, controller
        outcome = controller.set_answer(question_id, value)
        if outcome.ok:
            self._save(record, controller)
        return outcome, record, controller

    def advance(
        self, session_id: str, respondent: Optional[Respondent] = None
    ) -> tuple[Outcome, FillSession, NavigationController]:
        """Move a session past its current page."""
        record, controller = self.load(session_id, respondent, for_update=True)
        if self._in_flight(record):
            return IN_FLIGHT, record, controller
        outcome = controller.advance()
        self._save(record, controller)
        return outcome, record, controller

    def retreat(
        self, session_id: str, respondent: Optional[Respondent] = None
    ) -> tuple[Outcome, FillSession, NavigationController]:
        """Move a session back one page."""
        record, controller = self.load(session_id, respondent, for_update=True)
        if self._in_flight(record):
            return IN_FLIGHT, record, controller
        outcome = controller.retreat()
        self._save(record, controller)
        return outcome, record, controller

    async def submit(
        self, session_id: str, respondent: Optional[Respondent] = None
    ) -> tuple[Outcome, FillSession, NavigationController]:
        """Submit a session's response.

        The row is flagged `submitting` and committed before the response
        is stored, so a concurrent submit for the same session is turned
        away instead of storing a second response. The sink only flushes;
        the stored response and the session's `submitted` mark are
        committed together.

        Returns:
            Tuple of (outcome, session row, controller)
        """
        record, controller = self.load(session_id, respondent, for_update=True)

        if self._in_flight(record):
            return IN_FLIGHT, record, controller

        if controller.status != FillStatus.VIEWING:
            outcome = await controller.submit()
            return outcome, record, controller

        record.status = FillStatus.SUBMITTING.value
        self.db.commit()

        try:
            outcome = await controller.submit()
        except Exception:
            self._release(record)
            raise

        if outcome.ok:
            record.mark_submitted(outcome.response.id)
        try:
            self._save(record, controller)
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to record submission: {e}",
                extra={"session_id": session_id, "form_id": controller.form.id},
            )
            self._release(record)
            record, controller = self.load(session_id, respondent)
            return (
                Outcome(OutcomeKind.PERSISTENCE_FAILURE, "Error submitting form. Please try again later."),
                record,
                controller,
            )

        logger.info(
            f"Submit finished: {outcome.kind.value}",
            extra={"session_id": record.id, "form_id": record.form_id},
        )
        return outcome, record, controller

    def _release(self, record: FillSession) -> None:
        """Drop uncommitted work and return the session to `viewing`."""
        self.db.rollback()
        record.status = FillStatus.VIEWING.value
        self.db.commit()

    @staticmethod
    def _is_stale(record: FillSession) -> bool:
        updated_at = record.updated_at
        if updated_at is None:
            return True
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) - updated_at > SUBMIT_TIMEOUT
