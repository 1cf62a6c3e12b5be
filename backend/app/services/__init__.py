"""
Business logic services.
"""
from app.services.analytics_service import AnalyticsService
from app.services.content_validator import ContentValidator
from app.services.file_service import FileService, FileStream, UploadResult
from app.services.range_resolver import RangeWindow, resolve_range

__all__ = [
    "AnalyticsService",
    "ContentValidator",
    "FileService",
    "FileStream",
    "UploadResult",
    "RangeWindow",
    "resolve_range",
]
