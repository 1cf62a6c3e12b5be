"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter
from app.api import analytics, files, health

api_router = APIRouter()

# Include route modules
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(files.router, prefix="/file", tags=["file"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
