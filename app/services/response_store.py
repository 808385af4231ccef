"""Database-backed response sink.

Stores submitted FormResponses through SQLAlchemy. The sink only flushes;
the caller commits the response together with its own bookkeeping.
Storage failures are reported back to the navigation controller as
failed SinkResults so the respondent can retry.
"""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.response import StoredResponse
from app.schemas.form import FormResponse
from app.services.collaborators import SinkResult
from app.logging_config import get_logger

logger = get_logger(__name__)


class DatabaseResponseSink:
    """Response sink writing to the form_responses table."""

    def __init__(self, db: Session):
        """Initialize sink.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    async def submit_response(self, response: FormResponse) -> SinkResult:
        """Add a response to the current transaction and flush it.

        Args:
            response: Completed form response

        Returns:
            SinkResult.ok() on success, a failed result otherwise
        """
        try:
            self.db.add(StoredResponse.from_response(response))
            self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Failed to store response: {e}",
                extra={"form_id": response.form_id, "response_id": response.id},
            )
            return SinkResult.failed("Response could not be stored")

        logger.info(
            "Stored response",
            extra={"form_id": response.form_id, "response_id": response.id},
        )
        return SinkResult.ok()

    def has_response(self, form_id: str, respondent_email: str) -> bool:
        return StoredResponse.exists_for(self.db, form_id, respondent_email)
