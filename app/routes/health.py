"""Health check endpoint for monitoring and deployment verification.

Reports whether the service can reach its database and how many form
definitions it can serve.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.database import get_db
from app.services.form_loader import get_form_loader
from app.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(db: Session = Depends(get_db)) -> dict:
    """Health check endpoint.

    Returns:
        dict: Database status and the number of available forms

    Raises:
        HTTPException: If the database is unreachable (503 Service Unavailable)

    Example response:
        {
            "status": "healthy",
            "database": "connected",
            "forms": 3
        }
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(
            status_code=503,
            detail="Service unavailable - database connection failed"
        )

    forms = get_form_loader().list_forms()
    logger.debug(f"Health check passed ({len(forms)} forms)")

    return {
        "status": "healthy",
        "database": "connected",
        "forms": len(forms),
    }
