"""
File service: upload, download, stream and delete flows.

Upload:   validate content -> derive key -> store -> record upload
Download: stat -> resolve range -> open full/partial read -> record access

Accounting is best effort. Ledger failures are logged and counted but
never fail a request whose data path succeeded, and the upload record is
only written after the object store accepted the bytes.
"""
import logging
import posixpath
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Dict, Optional
from urllib.parse import quote

from app.config import settings
from app.exceptions import InvalidContentError, OversizeUploadError, RangeNotSatisfiableError
from app.services.analytics_service import AnalyticsService
from app.services.content_validator import ContentValidator
from app.services.range_resolver import RangeWindow, resolve_range
from app.storage.keys import derive_object_key
from app.storage.s3_client import ObjectStorageClient
from app.utils.logging import (
    log_accounting_failure,
    log_file_deleted,
    log_file_served,
    log_file_uploaded,
    log_upload_rejected,
)
from app.utils.metrics import (
    accounting_failures_total,
    bytes_served_total,
    files_uploaded_total,
    range_rejections_total,
    upload_bytes,
    uploads_rejected_total,
)

logger = logging.getLogger(__name__)

# Types browsers can preview or play in place
INLINE_TYPE_PREFIXES = ('video/', 'audio/', 'image/', 'application/pdf')

# Never allowed raw in a header value
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def content_disposition_for(content_type: str) -> str:
    """inline for previewable media and PDFs, attachment for everything else."""
    if (content_type or "").lower().startswith(INLINE_TYPE_PREFIXES):
        return "inline"
    return "attachment"


def build_content_disposition(disposition: str, filename: str) -> str:
    """Content-Disposition value with an ASCII fallback and an RFC 5987 UTF-8 filename."""
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "").replace("?", "_")
    fallback = _CONTROL_CHARS.sub("_", fallback)
    return f"{disposition}; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def download_url_for(object_key: str) -> str:
    return f"/file/download/{quote(object_key, safe='/')}"


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a stored upload."""
    object_key: str
    original_name: str
    size: int
    mimetype: str
    category: str
    download_url: str


@dataclass
class FileStream:
    """A readable object body plus the framing needed to send it."""
    object_key: str
    body: AsyncIterator[bytes]
    window: RangeWindow
    content_type: str
    disposition: str
    filename: str

    @property
    def partial(self) -> bool:
        return self.window.partial

    @property
    def content_length(self) -> int:
        return self.window.length

    @property
    def content_range(self) -> Optional[str]:
        return self.window.content_range

    @property
    def status_code(self) -> int:
        return 206 if self.partial else 200

    @property
    def headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": self.content_type,
            "Content-Length": str(self.content_length),
            "Content-Disposition": build_content_disposition(self.disposition, self.filename),
            "Accept-Ranges": "bytes",
            "X-Content-Type-Options": "nosniff",
        }
        if self.content_range:
            headers["Content-Range"] = self.content_range
        return headers


class FileService:
    """
    Orchestrates the object store, content validation and the accounting ledger.

    Collaborators are passed in explicitly so tests can swap any of them.
    """

    def __init__(
        self,
        storage: ObjectStorageClient,
        analytics: AnalyticsService,
        validator: Optional[ContentValidator] = None,
        max_upload_bytes: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.storage = storage
        self.analytics = analytics
        self.validator = validator or ContentValidator()
        self.max_upload_bytes = max_upload_bytes or settings.max_upload_bytes
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def check_size(self, size: int, declared_name: Optional[str] = None) -> None:
        """
        Reject uploads over the configured ceiling.

        Raises:
            OversizeUploadError: If size exceeds max_upload_bytes
        """
        if size > self.max_upload_bytes:
            uploads_rejected_total.labels(reason="oversize").inc()
            log_upload_rejected(
                self._logger,
                reason="oversize",
                declared_name=declared_name,
                size_bytes=size,
            )
            raise OversizeUploadError(size, self.max_upload_bytes)

    async def upload_file(
        self,
        data: bytes,
        declared_name: str,
        declared_mime: Optional[str] = None,
    ) -> UploadResult:
        """
        Validate, store and record an upload.

        Args:
            data: File bytes
            declared_name: Filename sent by the client (kept verbatim in metadata)
            declared_mime: Content-Type sent by the client (not trusted)

        Returns:
            UploadResult with the minted object key

        Raises:
            OversizeUploadError: Upload exceeds the size ceiling
            InvalidContentError: Sniffed type is unknown or not allowed
            StorageError: The object store rejected the write
        """
        size = len(data)
        self.check_size(size, declared_name)

        try:
            mimetype = self.validator.validate(data, declared_mime)
        except InvalidContentError as e:
            uploads_rejected_total.labels(reason="invalid_content").inc()
            log_upload_rejected(
                self._logger,
                reason="invalid_content",
                declared_name=declared_name,
                detail=str(e),
            )
            raise

        derived = derive_object_key(declared_name, mimetype, self._clock())

        await self.storage.put_object(
            derived.object_key,
            data,
            size,
            content_type=mimetype,
            original_name=declared_name,
            declared_type=declared_mime,
        )

        files_uploaded_total.labels(category=derived.category.value).inc()
        upload_bytes.observe(size)
        log_file_uploaded(
            self._logger,
            object_key=derived.object_key,
            size_bytes=size,
            mimetype=mimetype,
            category=derived.category.value,
        )

        await self._record_upload(derived.object_key, declared_name, mimetype, size)

        return UploadResult(
            object_key=derived.object_key,
            original_name=declared_name,
            size=size,
            mimetype=mimetype,
            category=derived.category.value,
            download_url=download_url_for(derived.object_key),
        )

    # ------------------------------------------------------------------
    # Download / stream
    # ------------------------------------------------------------------

    async def open_download(self, object_key: str) -> FileStream:
        """
        Open a whole object as an attachment named after the original upload.

        Raises:
            ObjectNotFoundError: Key does not exist
            StorageError: The object store failed
        """
        return await self._open(object_key, range_header=None, as_attachment=True)

    async def open_stream(self, object_key: str, range_header: Optional[str] = None) -> FileStream:
        """
        Open an object for streaming, honouring a single-range Range header.

        Raises:
            ObjectNotFoundError: Key does not exist
            RangeNotSatisfiableError: Range is malformed or starts past the end
            StorageError: The object store failed
        """
        return await self._open(object_key, range_header=range_header, as_attachment=False)

    async def _open(self, object_key: str, range_header: Optional[str], as_attachment: bool) -> FileStream:
        stat = await self.storage.stat_object(object_key)

        try:
            window = resolve_range(range_header, stat.size)
        except RangeNotSatisfiableError:
            range_rejections_total.inc()
            raise

        if window.partial:
            body = await self.storage.open_object(object_key, window.start, window.length)
        else:
            body = await self.storage.open_object(object_key)

        if as_attachment:
            disposition = "attachment"
            filename = stat.original_name or posixpath.basename(object_key)
        else:
            disposition = content_disposition_for(stat.content_type)
            filename = posixpath.basename(object_key)

        log_file_served(
            self._logger,
            object_key=object_key,
            size_bytes=window.length,
            partial=window.partial,
            content_range=window.content_range,
        )

        return FileStream(
            object_key=object_key,
            body=self._metered(object_key, body, window),
            window=window,
            content_type=stat.content_type,
            disposition=disposition,
            filename=filename,
        )

    async def _metered(
        self,
        object_key: str,
        body: AsyncIterator[bytes],
        window: RangeWindow,
    ) -> AsyncIterator[bytes]:
        """
        Pass body chunks through, recording the access exactly once.

        The access is recorded when the first chunk is ready (or when an empty
        body finishes), never before bytes start flowing, so a client that
        disconnects before receiving anything is not counted.
        """
        mode = "partial" if window.partial else "full"
        recorded = False
        try:
            async for chunk in body:
                if not recorded:
                    recorded = True
                    await self._record_access(object_key, window.length)
                bytes_served_total.labels(mode=mode).inc(len(chunk))
                yield chunk
            if not recorded:
                recorded = True
                await self._record_access(object_key, window.length)
        finally:
            aclose = getattr(body, "aclose", None)
            if aclose is not None:
                await aclose()

    # ------------------------------------------------------------------
    # Delete / presign
    # ------------------------------------------------------------------

    async def delete_file(self, object_key: str) -> None:
        """
        Remove an object. Removing an absent key succeeds.
        The accounting record is kept: it reflects history, not existence.
        """
        await self.storage.remove_object(object_key)
        log_file_deleted(self._logger, object_key=object_key)

    async def get_presigned_url(self, object_key: str, expiration: Optional[int] = None) -> str:
        """Time-limited GET URL straight from the object store."""
        url = await self.storage.presigned_get_url(object_key, expiration)
        self._logger.info(f"Presigned URL generated successfully: {object_key}")
        return url

    # ------------------------------------------------------------------
    # Accounting (best effort)
    # ------------------------------------------------------------------

    async def _record_upload(self, object_key: str, original_name: str, mimetype: str, size: int) -> None:
        try:
            await self.analytics.record_upload(object_key, original_name, mimetype, size)
        except Exception as e:
            accounting_failures_total.labels(operation="record_upload").inc()
            log_accounting_failure(self._logger, "record_upload", object_key, str(e))

    async def _record_access(self, object_key: str, bytes_transferred: int) -> None:
        try:
            await self.analytics.record_access(object_key, bytes_transferred)
        except Exception as e:
            accounting_failures_total.labels(operation="record_access").inc()
            log_accounting_failure(self._logger, "record_access", object_key, str(e))
