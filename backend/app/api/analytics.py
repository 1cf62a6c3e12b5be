"""
Analytics endpoints: read-only views over the accounting ledger.
"""
from typing import List

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_analytics_service
from app.schemas.analytics import FileAnalyticsResponse, OverviewResponse, StorageByTypeResponse
from app.services.analytics_service import AnalyticsService

router = APIRouter()


@router.get("/overview", response_model=OverviewResponse)
async def get_overview(analytics: AnalyticsService = Depends(get_analytics_service)):
    """Total files, stored bytes and served bytes."""
    return await analytics.get_overview()


@router.get("/top-downloads", response_model=List[FileAnalyticsResponse])
async def get_top_downloads(
    limit: int = Query(5, ge=1, le=100, description="Number of records to return"),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    """Most downloaded files first."""
    return await analytics.get_top_downloads(limit)


@router.get("/storage-by-type", response_model=List[StorageByTypeResponse])
async def get_storage_by_type(analytics: AnalyticsService = Depends(get_analytics_service)):
    """Stored bytes grouped by MIME type."""
    return await analytics.get_storage_by_mimetype()
