"""Routes package for FastAPI endpoints.

This package contains all API route modules for the form fill service.
"""

from app.routes import fill, health

__all__ = ["fill", "health"]
