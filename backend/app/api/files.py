"""
File endpoints: upload, download, ranged streaming, delete and presigned URLs.

Object keys contain slashes ({date}/{category}/{uuid}-{name}), so key
parameters use the `path` converter; clients may send them raw or with
the slashes percent-encoded.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Header, HTTPException, UploadFile, status
from fastapi.responses import StreamingResponse

from app.api.dependencies import get_file_service
from app.exceptions import (
    InvalidContentError,
    ObjectNotFoundError,
    OversizeUploadError,
    RangeNotSatisfiableError,
    StorageError,
)
from app.schemas.file import (
    MessageResponse,
    PresignedUrlRequest,
    PresignedUrlResponse,
    UploadResponse,
)
from app.services.file_service import FileService, FileStream

logger = logging.getLogger(__name__)

router = APIRouter()


def _storage_failure(e: StorageError) -> HTTPException:
    logger.error(f"Storage failure: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Storage {e.operation} failed"
    )


def _streaming_response(file_stream: FileStream) -> StreamingResponse:
    return StreamingResponse(
        file_stream.body,
        status_code=file_stream.status_code,
        headers=file_stream.headers,
    )


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(..., description="File to upload"),
    service: FileService = Depends(get_file_service),
):
    """
    Upload a file.

    Flow:
    1. Reject files over the size ceiling (before reading them)
    2. Sniff the real content type and check the allow-list
    3. Mint a new object key and store the bytes
    4. Record the upload in the accounting ledger

    Every call creates a new object, even for identical content.
    """
    declared_name = file.filename or ""
    logger.info(f"Uploading file: {declared_name}")

    try:
        if file.size is not None:
            service.check_size(file.size, declared_name)
        data = await file.read()
        result = await service.upload_file(data, declared_name, file.content_type)
    except OversizeUploadError as e:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=str(e)
        )
    except InvalidContentError as e:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=str(e)
        )
    except StorageError as e:
        raise _storage_failure(e)
    finally:
        await file.close()

    return UploadResponse(
        object_key=result.object_key,
        original_name=result.original_name,
        size=result.size,
        mimetype=result.mimetype,
        download_url=result.download_url,
    )


@router.post("/presigned-url", response_model=PresignedUrlResponse)
async def get_presigned_url(
    request: PresignedUrlRequest,
    service: FileService = Depends(get_file_service),
):
    """Generate a time-limited GET URL directly from the object store."""
    logger.info(f"Generating presigned URL for file: {request.filename}")
    try:
        url = await service.get_presigned_url(request.filename)
    except StorageError as e:
        raise _storage_failure(e)
    return PresignedUrlResponse(url=url)


@router.get("/download/{object_key:path}")
async def download_file(
    object_key: str,
    service: FileService = Depends(get_file_service),
):
    """Download a whole object as an attachment named after the original upload."""
    logger.info(f"Downloading file: {object_key}")
    try:
        file_stream = await service.open_download(object_key)
    except ObjectNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found"
        )
    except StorageError as e:
        raise _storage_failure(e)

    return _streaming_response(file_stream)


@router.get("/stream/{object_key:path}")
async def stream_file(
    object_key: str,
    range: Optional[str] = Header(None),
    service: FileService = Depends(get_file_service),
):
    """
    Stream an object, honouring a single `Range: bytes=start-end` header.

    - No Range: 200 with the whole object
    - Satisfiable Range: 206 with Content-Range
    - Range starting past the end, multi-range or malformed: 416

    Images, video, audio and PDFs are served inline, everything else as attachment.
    """
    try:
        file_stream = await service.open_stream(object_key, range)
    except ObjectNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found"
        )
    except RangeNotSatisfiableError as e:
        raise HTTPException(
            status_code=status.HTTP_416_REQUESTED_RANGE_NOT_SATISFIABLE,
            detail=str(e),
            headers={"Content-Range": f"bytes */{e.total_size}"},
        )
    except StorageError as e:
        raise _storage_failure(e)

    return _streaming_response(file_stream)


@router.delete("/{object_key:path}", response_model=MessageResponse)
async def delete_file(
    object_key: str,
    service: FileService = Depends(get_file_service),
):
    """
    Delete an object.

    Succeeds whether or not the object still exists. Accounting data is kept.
    """
    logger.info(f"Deleting file: {object_key}")
    try:
        await service.delete_file(object_key)
    except StorageError as e:
        raise _storage_failure(e)
    return MessageResponse(message="File deleted successfully")
