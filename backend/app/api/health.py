"""
Health check endpoint.
Verifies database and object storage connectivity.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from app.api.dependencies import get_storage
from app.database import get_db
from app.storage.s3_client import ObjectStorageClient

router = APIRouter()


@router.get("")
async def health_check(
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorageClient = Depends(get_storage),
):
    """
    Health check endpoint.
    Returns status of database and object storage connections.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "storage": "unknown"
    }

    # Check database
    try:
        await db.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except Exception as e:
        health_status["database"] = f"error: {str(e)}"
        health_status["status"] = "unhealthy"

    # Check object storage
    try:
        await storage.ping()
        health_status["storage"] = "connected"
    except Exception as e:
        health_status["storage"] = f"error: {str(e)}"
        health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
