"""
API v1 package.

Contains versioned registration and verification routes.
"""

from src.api.v1.routes import router

__all__ = ["router"]
