"""
Storage module for S3-compatible object storage.

Holds the object key layout and the async boto3 client the gateway
uses to put, stat, read and remove objects.
"""
from app.storage.keys import DerivedKey, FileCategory, category_for_mimetype, derive_object_key
from app.storage.s3_client import ObjectBodyStream, ObjectStat, ObjectStorageClient, get_storage_client

__all__ = [
    "DerivedKey",
    "FileCategory",
    "category_for_mimetype",
    "derive_object_key",
    "ObjectBodyStream",
    "ObjectStat",
    "ObjectStorageClient",
    "get_storage_client",
]
