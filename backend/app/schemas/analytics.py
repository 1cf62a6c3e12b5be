"""
Pydantic schemas for analytics endpoints.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class OverviewResponse(BaseModel):
    """Totals across all recorded files."""
    total_files: int = Field(..., alias="totalFiles")
    total_size: int = Field(..., alias="totalSize")
    total_bandwidth: int = Field(..., alias="totalBandwidth")

    class Config:
        populate_by_name = True


class FileAnalyticsResponse(BaseModel):
    """Accounting record for one object."""
    object_key: str = Field(..., alias="objectKey")
    original_name: str = Field(..., alias="originalName")
    mimetype: str
    size: int
    upload_time: Optional[datetime] = Field(None, alias="uploadTime")
    download_count: int = Field(..., alias="downloadCount")
    bandwidth_usage: int = Field(..., alias="bandwidthUsage")
    last_access_time: Optional[datetime] = Field(None, alias="lastAccessTime")

    class Config:
        from_attributes = True
        populate_by_name = True


class StorageByTypeResponse(BaseModel):
    """Stored bytes for one MIME type."""
    mimetype: str
    total_size: int = Field(..., alias="totalSize")

    class Config:
        populate_by_name = True
