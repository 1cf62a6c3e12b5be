"""
S3-compatible object storage client (MinIO, AWS S3, Cloudflare R2).

Uses boto3 with the S3 API. boto3 is blocking, so every call is pushed to a
worker thread with asyncio.to_thread and the public methods are coroutines.

Errors are normalized:
- missing objects raise ObjectNotFoundError
- anything else raises StorageError wrapping the botocore exception
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional
from urllib.parse import quote, unquote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.config import settings
from app.exceptions import ObjectNotFoundError, StorageError

logger = logging.getLogger(__name__)

# Error codes S3-compatible backends use for absent keys
NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}

# Metadata keys attached to every stored object (x-amz-meta-*)
ORIGINAL_NAME_META = "original-name"
DECLARED_TYPE_META = "declared-content-type"

# S3 batch delete supports max 1000 objects per call
BATCH_SIZE = 1000


@dataclass(frozen=True)
class ObjectStat:
    """Result of a HEAD on a stored object."""
    size: int
    content_type: str
    original_name: Optional[str] = None
    last_modified: Optional[datetime] = None
    metadata: Dict[str, str] = field(default_factory=dict)


def _is_not_found(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") in NOT_FOUND_CODES


class ObjectBodyStream:
    """
    Async iterator over a botocore StreamingBody.

    The body holds a pooled HTTP connection. It is released when the body is
    exhausted, when a read fails, or on aclose(), even if iteration never started.
    """

    def __init__(self, object_key: str, body, chunk_size: int):
        self.object_key = object_key
        self._body = body
        self._chunk_size = chunk_size
        self._closed = False

    def __aiter__(self) -> "ObjectBodyStream":
        return self

    async def __anext__(self) -> bytes:
        if self._closed:
            raise StopAsyncIteration
        try:
            chunk = await asyncio.to_thread(self._body.read, self._chunk_size)
        except (ClientError, BotoCoreError) as e:
            self.close()
            raise StorageError("read", self.object_key, e) from e
        if not chunk:
            self.close()
            raise StopAsyncIteration
        return chunk

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._body.close()

    async def aclose(self) -> None:
        self.close()


def build_boto3_client(
    endpoint: Optional[str] = None,
    access_key: Optional[str] = None,
    secret_key: Optional[str] = None,
    region: Optional[str] = None,
):
    """Create a boto3 S3 client configured from settings (path-style, SigV4)."""
    return boto3.client(
        's3',
        endpoint_url=endpoint or settings.s3_endpoint,
        aws_access_key_id=access_key or settings.s3_access_key,
        aws_secret_access_key=secret_key or settings.s3_secret_key,
        region_name=region or settings.s3_region,
        config=Config(
            signature_version='s3v4',
            s3={'addressing_style': 'path'}  # MinIO uses path-style
        )
    )


class ObjectStorageClient:
    """
    Async facade over a boto3 S3 client.

    Provides the object-store operations the gateway needs:
    put, stat, full and ranged reads, remove, presigned GET URLs,
    plus listing and batch delete for maintenance tooling.
    """

    def __init__(
        self,
        client=None,
        bucket: Optional[str] = None,
        chunk_size: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            client: boto3 S3 client; built from settings when omitted
            bucket: Bucket name (default from settings)
            chunk_size: Read size for streamed bodies (default from settings)
            logger: Logger to use (default: module logger)
        """
        self._client = client if client is not None else build_boto3_client()
        self._bucket = bucket or settings.s3_bucket
        self._chunk_size = chunk_size or settings.stream_chunk_size
        self._logger = logger or logging.getLogger(__name__)

    @property
    def bucket(self) -> str:
        """Get configured bucket name."""
        return self._bucket

    async def ensure_bucket(self, region: Optional[str] = None) -> bool:
        """
        Create the bucket if it does not exist yet.

        Returns:
            True if the bucket was created, False if it already existed
        """
        try:
            await asyncio.to_thread(self._client.head_bucket, Bucket=self._bucket)
            self._logger.info(f"Bucket {self._bucket} already exists")
            return False
        except ClientError as e:
            if not _is_not_found(e):
                raise StorageError("head_bucket", cause=e) from e
        except BotoCoreError as e:
            raise StorageError("head_bucket", cause=e) from e

        self._logger.info(f"Bucket {self._bucket} not found. Creating...")
        kwargs = {"Bucket": self._bucket}
        region = region or settings.s3_region
        if region and region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}
        try:
            await asyncio.to_thread(self._client.create_bucket, **kwargs)
        except (ClientError, BotoCoreError) as e:
            raise StorageError("create_bucket", cause=e) from e
        self._logger.info(f"Bucket {self._bucket} created successfully")
        return True

    async def put_object(
        self,
        object_key: str,
        data: bytes,
        size: int,
        content_type: str,
        original_name: Optional[str] = None,
        declared_type: Optional[str] = None,
    ) -> None:
        """
        Store an object with its content type and original name as metadata.

        S3 metadata must be ASCII, so the original name is percent-encoded
        on the way in and decoded again by stat_object.
        """
        metadata = {}
        if original_name is not None:
            metadata[ORIGINAL_NAME_META] = quote(original_name, safe="")
        if declared_type:
            metadata[DECLARED_TYPE_META] = quote(declared_type, safe="/")

        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self._bucket,
                Key=object_key,
                Body=data,
                ContentLength=size,
                ContentType=content_type,
                Metadata=metadata,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError("put", object_key, e) from e

        self._logger.debug(f"Stored {object_key} ({size} bytes)")

    async def stat_object(self, object_key: str) -> ObjectStat:
        """
        HEAD an object.

        Raises:
            ObjectNotFoundError: If the key does not exist
            StorageError: On any other failure
        """
        try:
            response = await asyncio.to_thread(
                self._client.head_object, Bucket=self._bucket, Key=object_key
            )
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFoundError(object_key) from e
            raise StorageError("stat", object_key, e) from e
        except BotoCoreError as e:
            raise StorageError("stat", object_key, e) from e

        metadata = {k.lower(): v for k, v in (response.get("Metadata") or {}).items()}
        original_name = metadata.get(ORIGINAL_NAME_META)
        return ObjectStat(
            size=int(response.get("ContentLength", 0)),
            content_type=response.get("ContentType") or "application/octet-stream",
            original_name=unquote(original_name) if original_name is not None else None,
            last_modified=response.get("LastModified"),
            metadata=metadata,
        )

    async def open_object(
        self,
        object_key: str,
        offset: Optional[int] = None,
        length: Optional[int] = None,
    ) -> ObjectBodyStream:
        """
        Open an object for reading, whole or as an offset/length slice.

        The GET is issued before this coroutine returns, so a missing key
        or backend failure surfaces here rather than mid-stream.

        Args:
            object_key: Key to read
            offset: First byte to read (None for the whole object)
            length: Number of bytes to read from offset

        Returns:
            ObjectBodyStream of body chunks; iterate it to the end or aclose() it
        """
        kwargs = {"Bucket": self._bucket, "Key": object_key}
        if offset is not None:
            if length is None or length <= 0:
                raise ValueError("length must be positive for a partial read")
            kwargs["Range"] = f"bytes={offset}-{offset + length - 1}"

        try:
            response = await asyncio.to_thread(self._client.get_object, **kwargs)
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFoundError(object_key) from e
            raise StorageError("get", object_key, e) from e
        except BotoCoreError as e:
            raise StorageError("get", object_key, e) from e

        return ObjectBodyStream(object_key, response["Body"], self._chunk_size)

    async def remove_object(self, object_key: str) -> None:
        """
        Delete an object. Deleting an absent key is not an error (idempotent).

        Raises:
            StorageError: If the backend rejects the delete
        """
        try:
            await asyncio.to_thread(
                self._client.delete_object, Bucket=self._bucket, Key=object_key
            )
        except ClientError as e:
            if _is_not_found(e):
                self._logger.debug(f"Object {object_key} not found (already deleted)")
                return
            raise StorageError("remove", object_key, e) from e
        except BotoCoreError as e:
            raise StorageError("remove", object_key, e) from e

        self._logger.debug(f"Deleted object {object_key}")

    async def presigned_get_url(self, object_key: str, expiration: Optional[int] = None) -> str:
        """
        Generate a presigned GET URL for reading an object.

        Args:
            object_key: The S3 object key (path in bucket)
            expiration: URL expiration in seconds (default from settings)
        """
        if expiration is None:
            expiration = settings.s3_presign_expiration

        try:
            url = await asyncio.to_thread(
                self._client.generate_presigned_url,
                ClientMethod='get_object',
                Params={'Bucket': self._bucket, 'Key': object_key},
                ExpiresIn=expiration,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError("presign", object_key, e) from e

        self._logger.debug(f"Generated presigned URL for {object_key} (expires in {expiration}s)")
        return url

    async def list_objects(self, prefix: str = "") -> List[dict]:
        """List all objects under a prefix, following pagination."""
        objects: List[dict] = []
        kwargs = {"Bucket": self._bucket, "Prefix": prefix, "MaxKeys": 1000}

        while True:
            try:
                response = await asyncio.to_thread(self._client.list_objects_v2, **kwargs)
            except (ClientError, BotoCoreError) as e:
                raise StorageError("list", prefix, e) from e

            objects.extend(response.get("Contents", []))
            if not response.get("IsTruncated"):
                break
            kwargs["ContinuationToken"] = response.get("NextContinuationToken")

        return objects

    async def delete_objects_batch(self, object_keys: List[str]) -> tuple:
        """
        Delete multiple objects, chunked to the S3 batch limit.

        Returns:
            Tuple of (successful_count, failed_count)
        """
        successful = 0
        failed = 0

        for i in range(0, len(object_keys), BATCH_SIZE):
            batch = object_keys[i:i + BATCH_SIZE]
            try:
                response = await asyncio.to_thread(
                    self._client.delete_objects,
                    Bucket=self._bucket,
                    Delete={
                        'Objects': [{'Key': key} for key in batch],
                        'Quiet': True  # Only return errors, not successes
                    }
                )
            except (ClientError, BotoCoreError) as e:
                self._logger.error(f"Batch delete failed: {e}")
                failed += len(batch)
                continue

            errors = response.get('Errors', [])
            for error in errors[:5]:
                self._logger.warning(
                    f"Failed to delete {error.get('Key')}: "
                    f"{error.get('Code')} - {error.get('Message')}"
                )
            failed += len(errors)
            successful += len(batch) - len(errors)

        self._logger.info(f"Batch delete complete: {successful} deleted, {failed} failed")
        return successful, failed

    async def ping(self) -> None:
        """Check the bucket is reachable."""
        try:
            await asyncio.to_thread(self._client.head_bucket, Bucket=self._bucket)
        except (ClientError, BotoCoreError) as e:
            raise StorageError("head_bucket", cause=e) from e


# Singleton instance
_storage_client: Optional[ObjectStorageClient] = None


def get_storage_client() -> ObjectStorageClient:
    """
    Get the singleton storage client instance.
    """
    global _storage_client
    if _storage_client is None:
        _storage_client = ObjectStorageClient()
    return _storage_client
