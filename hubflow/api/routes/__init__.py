"""
Route modules for the workflow API.

Each module contains related endpoints that are mounted on the main app.
"""

from .execution import router as execution_router
from .streaming import router as streaming_router

__all__ = [
    "execution_router",
    "streaming_router",
]
