"""Contracts for the services a fill session depends on.

The navigation controller never talks to storage or authentication
directly; it is handed objects satisfying these protocols.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from app.schemas.form import Form, FormResponse


class ResponseSinkError(Exception):
    """Raised by a response sink that cannot store a response."""
    pass


@dataclass(frozen=True)
class Respondent:
    """Identity of the person filling in a form."""
    email: str
    id: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class SinkResult:
    """Outcome of handing a response to the sink.

    Attributes:
        success: Whether the response was stored
        reason: Failure reason when success is False
    """
    success: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "SinkResult":
        return cls(success=True)

    @classmethod
    def failed(cls, reason: str) -> "SinkResult":
        return cls(success=False, reason=reason)


class FormRepository(Protocol):
    def load_form(self, form_id: str) -> Form:
        """Load a form by ID, raising FormNotFoundError if it does not exist."""
        ...


class IdentityProvider(Protocol):
    def current_respondent(self) -> Optional[Respondent]:
        ...


class ResponseSink(Protocol):
    async def submit_response(self, response: FormResponse) -> SinkResult:
        ...

    def has_response(self, form_id: str, respondent_email: str) -> bool:
        ...


class StaticIdentityProvider:
    """Identity provider that always returns the same respondent (or none).

    Used per request by the HTTP layer, where the respondent is known from
    the request headers.
    """

    def __init__(self, respondent: Optional[Respondent] = None):
        self.respondent = respondent

    def current_respondent(self) -> Optional[Respondent]:
        return self.respondent
