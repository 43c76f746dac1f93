"""
Shared dependencies for FastAPI routes.

Provides dependency injection functions for the processor and the
requesting principal.
"""

from typing import Optional

from fastapi import Header, HTTPException

# Module-level reference set by the app on startup
_processor = None


def set_processor(processor):
    """Set the workflow processor instance. Called during app startup."""
    global _processor
    _processor = processor


def has_processor() -> bool:
    return _processor is not None


def get_processor():
    """
    Dependency that returns the workflow processor.

    Raises HTTPException if processor is not initialized.
    """
    if not _processor:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return _processor


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id")
) -> str:
    """
    Principal of the request, from the X-User-Id header.

    Authentication happens in front of this service; the header is trusted.

    Raises:
        HTTPException 401: Header missing
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized - provide X-User-Id header")
    return x_user_id.strip()
