"""
Pydantic schemas for file endpoints.
"""
from pydantic import BaseModel, Field


class UploadResponse(BaseModel):
    """Schema for a stored upload."""
    object_key: str = Field(..., alias="objectKey", description="Storage key to use for all later requests")
    original_name: str = Field(..., alias="originalName", description="Filename as sent by the client")
    size: int = Field(..., description="Size in bytes")
    mimetype: str = Field(..., description="MIME type detected from the file content")
    download_url: str = Field(..., alias="downloadUrl", description="Relative URL to download the file")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "objectKey": "2026-10-18/images/0b7c1f9e-3f6a-4c1e-9a57-2f1d8c4e5b6a-holiday.png",
                "originalName": "Holiday.png",
                "size": 48213,
                "mimetype": "image/png",
                "downloadUrl": "/file/download/2026-10-18/images/0b7c1f9e-3f6a-4c1e-9a57-2f1d8c4e5b6a-holiday.png"
            }
        }


class PresignedUrlRequest(BaseModel):
    """Request schema for presigned URL generation."""
    filename: str = Field(..., min_length=1, description="Object key to sign a GET URL for")


class PresignedUrlResponse(BaseModel):
    """Response schema for presigned URL."""
    url: str = Field(..., description="Time-limited GET URL")


class MessageResponse(BaseModel):
    """Plain acknowledgement."""
    message: str
