"""Respondent identity dependency.

The fill API sits behind whatever authenticates respondents (a reverse
proxy, an auth gateway); that layer passes the signed-in respondent's
email in a configurable request header. This module turns the header into
a Respondent for the navigation controller.
"""

from typing import Optional

from fastapi import Request

from app.config import get_settings
from app.services.collaborators import Respondent
from app.logging_config import get_logger


logger = get_logger(__name__)


def respondent_from_header(value: Optional[str]) -> Optional[Respondent]:
    """Build a Respondent from an identity header value.

    Args:
        value: Raw header value, if present

    Returns:
        Respondent, or None when the header is missing, blank or not an
        email address

    Example:
        >>> respondent_from_header("  Ada@Example.com ")
        Respondent(email='ada@example.com', id=None, name=None)
    """
    if value is None:
        return None

    email = value.strip().lower()
    if not email:
        return None
    if "@" not in email:
        logger.warning("Ignoring malformed respondent identity header")
        return None

    return Respondent(email=email)


# Dependency function for FastAPI routes
async def get_respondent(request: Request) -> Optional[Respondent]:
    """FastAPI dependency resolving the current respondent.

    Args:
        request: FastAPI request object

    Returns:
        Respondent, or None for anonymous requests

    Usage:
        @router.post("/api/sessions/{session_id}/submit")
        async def submit(respondent: Optional[Respondent] = Depends(get_respondent)):
            ...
    """
    header = get_settings().respondent_header
    respondent = respondent_from_header(request.headers.get(header))
    if respondent is None:
        logger.debug("Anonymous request")
    return respondent
