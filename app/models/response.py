"""StoredResponse model for completed form responses.

This module defines the StoredResponse model which keeps one row per
submitted FormResponse.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Index,
    String,
    Integer,
    DateTime,
    JSON,
    select,
)
from sqlalchemy.orm import Mapped, mapped_column, Session

from app.models.database import Base
from app.schemas.form import FormResponse


class StoredResponse(Base):
    """Model for storing submitted form responses.

    Attributes:
        id: Primary key (the FormResponse ID)
        form_id: Form the response belongs to
        responses: JSON snapshot of the answers
        respondent_email: Respondent email when known
        score: Quiz score (quiz mode only)
        max_score: Maximum quiz score (quiz mode only)
        created_at: When the response was submitted
    """

    __tablename__ = "form_responses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    form_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Form the response belongs to"
    )
    responses: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        comment="Answer snapshot keyed by question ID"
    )
    respondent_email: Mapped[Optional[str]] = mapped_column(
        String(320),
        nullable=True,
        comment="Respondent email when known"
    )

    # Quiz Results
    score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the response was submitted"
    )

    __table_args__ = (
        Index("idx_form_responses_form_email", "form_id", "respondent_email"),
    )

    @classmethod
    def from_response(cls, response: FormResponse) -> "StoredResponse":
        """Build a row from an immutable FormResponse."""
        return cls(
            id=response.id,
            form_id=response.form_id,
            responses=dict(response.responses),
            respondent_email=response.respondent_email,
            score=response.score,
            max_score=response.max_score,
            created_at=response.created_at,
        )

    def to_response(self) -> FormResponse:
        """Convert the row back into a FormResponse."""
        return FormResponse(
            id=self.id,
            form_id=self.form_id,
            responses=dict(self.responses),
            created_at=self.created_at,
            respondent_email=self.respondent_email,
            score=self.score,
            max_score=self.max_score,
        )

    @classmethod
    def exists_for(cls, db: Session, form_id: str, respondent_email: str) -> bool:
        """Check if a respondent has already responded to a form.

        Args:
            db: Database session
            form_id: Form identifier
            respondent_email: Respondent email

        Returns:
            bool: True if a response exists
        """
        result = db.execute(
            select(cls.id).where(
                cls.form_id == form_id,
                cls.respondent_email == respondent_email,
            )
        ).first()
        return result is not None

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<StoredResponse(id={self.id}, "
            f"form_id={self.form_id}, "
            f"score={self.score})>"
        )
