"""
FastAPI dependencies wiring the file service to its collaborators.

Each dependency builds its object explicitly from the one below it, so tests
override any layer with app.dependency_overrides.
"""
from fastapi import Depends

from app.config import settings
from app.database import AsyncSessionLocal
from app.services.analytics_service import AnalyticsService
from app.services.content_validator import ContentValidator
from app.services.file_service import FileService
from app.storage.s3_client import ObjectStorageClient, get_storage_client


def get_storage() -> ObjectStorageClient:
    """Object store client (process-wide, boto3 clients are thread-safe)."""
    return get_storage_client()


def get_analytics_service() -> AnalyticsService:
    """Accounting ledger bound to the application's session factory."""
    return AnalyticsService(AsyncSessionLocal)


def get_content_validator() -> ContentValidator:
    return ContentValidator()


def get_file_service(
    storage: ObjectStorageClient = Depends(get_storage),
    analytics: AnalyticsService = Depends(get_analytics_service),
    validator: ContentValidator = Depends(get_content_validator),
) -> FileService:
    """
    FastAPI dependency returning a FileService.
    Usage: service: FileService = Depends(get_file_service)
    """
    return FileService(
        storage=storage,
        analytics=analytics,
        validator=validator,
        max_upload_bytes=settings.max_upload_bytes,
    )
