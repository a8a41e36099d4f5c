"""
iGarage360 API package.

Provides the FastAPI application for staff sign-in and terminal sessions.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
