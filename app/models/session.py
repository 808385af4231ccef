"""FillSession model for tracking a respondent's progress through a form.

This module defines the FillSession model which persists the state of a
fill session between HTTP requests: the page the respondent is on, the
answers given so far, and where the session is in its lifecycle.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    Index,
    String,
    Integer,
    DateTime,
    JSON,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.database import Base


class FillSession(Base):
    """Model for persisting fill session state.

    The navigation controller is rebuilt from this row on every request
    and its resulting state written back.

    Attributes:
        id: Primary key (UUID string, handed to the client)
        form_id: Identifier of the form being filled in
        current_page_index: Page the respondent is on
        answers: JSON mapping of question ID to answer
        status: viewing, submitting, submitted or expired
        shuffle_seed: Seed keeping shuffled display order stable
        respondent_email: Email of the respondent when known
        started_at: When the session started
        updated_at: Last update timestamp
        submitted_at: When the response was submitted
        response_id: ID of the stored response after submission
    """

    __tablename__ = "fill_sessions"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    form_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Form identifier"
    )

    # Current State
    current_page_index: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Page the respondent is on"
    )
    answers: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        server_default=text("'{}'"),
        comment="JSON mapping of question ID to answer"
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="viewing",
        comment="Lifecycle state of the session"
    )
    shuffle_seed: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Seed for shuffled question/option order"
    )
    respondent_email: Mapped[Optional[str]] = mapped_column(
        String(320),
        nullable=True,
        comment="Respondent email when known"
    )

    # Timestamps
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When the session started"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
        comment="Last update timestamp"
    )
    submitted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the response was submitted (NULL until then)"
    )
    response_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        comment="Stored response ID after submission"
    )

    __table_args__ = (
        Index("idx_fill_sessions_form", "form_id"),
        Index("idx_fill_sessions_updated_at", "updated_at"),
    )

    def update_answers(self, answers: dict[str, Any]) -> None:
        """Replace the stored answers.

        Note:
            JSON columns only register a change on reassignment, so a
            fresh dict is always assigned.
        """
        self.answers = dict(answers)

    def mark_submitted(self, response_id: str) -> None:
        """Mark the session as submitted.

        Args:
            response_id: ID of the stored response
        """
        self.status = "submitted"
        self.response_id = response_id
        self.submitted_at = datetime.now(timezone.utc)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<FillSession(id={self.id}, "
            f"form_id={self.form_id}, "
            f"page={self.current_page_index}, "
            f"status={self.status})>"
        )
