"""
Pydantic schemas for API request/response validation.
"""
from app.schemas.file import (
    UploadResponse,
    PresignedUrlRequest,
    PresignedUrlResponse,
    MessageResponse,
)
from app.schemas.analytics import (
    OverviewResponse,
    FileAnalyticsResponse,
    StorageByTypeResponse,
)

__all__ = [
    "UploadResponse",
    "PresignedUrlRequest",
    "PresignedUrlResponse",
    "MessageResponse",
    "OverviewResponse",
    "FileAnalyticsResponse",
    "StorageByTypeResponse",
]
