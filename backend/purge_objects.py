#!/usr/bin/env python3
"""
Delete stored objects uploaded before a cutoff date.

Object keys are laid out as {YYYY-MM-DD}/{category}/{uuid}-{name}, so the
upload date and category can be read from the key without touching the
accounting database. Accounting rows are left as they are.

Usage:
    # Dry run (default): list what would be deleted
    python purge_objects.py --before 2026-01-01

    # Only videos, actually delete, no confirmation prompt
    python purge_objects.py --before 2026-01-01 --category videos --delete --yes

Storage settings come from the same environment variables as the API
(S3_ENDPOINT, S3_ACCESS_KEY, S3_SECRET_KEY, S3_BUCKET).
"""
import argparse
import asyncio
import logging
import sys
from datetime import date, datetime
from typing import Iterable, List, Optional

from app.config import settings
from app.exceptions import StorageError
from app.storage.keys import FileCategory
from app.storage.s3_client import ObjectStorageClient
from app.utils.logging import configure_logging

logger = logging.getLogger("purge_objects")


def key_upload_date(object_key: str) -> Optional[date]:
    """Upload date encoded in the first key segment, or None for foreign keys."""
    head = object_key.split("/", 1)[0]
    try:
        return datetime.strptime(head, "%Y-%m-%d").date()
    except ValueError:
        return None


def select_keys_before(
    object_keys: Iterable[str],
    before: date,
    category: Optional[FileCategory] = None,
) -> List[str]:
    """
    Pick the keys uploaded strictly before `before`, optionally in one category.
    Keys that don't follow the date/category layout are never selected.
    """
    selected = []
    for key in object_keys:
        uploaded = key_upload_date(key)
        if uploaded is None or uploaded >= before:
            continue
        parts = key.split("/")
        if category is not None and (len(parts) < 3 or parts[1] != category.value):
            continue
        selected.append(key)
    return selected


async def purge(
    storage: ObjectStorageClient,
    before: date,
    category: Optional[FileCategory] = None,
    delete: bool = False,
) -> tuple:
    """
    List and optionally delete expired objects.

    Returns:
        Tuple of (selected_count, deleted_count, failed_count)
    """
    objects = await storage.list_objects()
    keys = select_keys_before((obj["Key"] for obj in objects), before, category)

    logger.info(f"Found {len(keys)} of {len(objects)} objects uploaded before {before.isoformat()}")
    for key in keys[:5]:
        logger.info(f"  - {key}")
    if len(keys) > 5:
        logger.info(f"  ... and {len(keys) - 5} more")

    if not delete or not keys:
        return len(keys), 0, 0

    deleted, failed = await storage.delete_objects_batch(keys)
    return len(keys), deleted, failed


def main():
    parser = argparse.ArgumentParser(description='Delete stored objects uploaded before a date')
    parser.add_argument('--before', required=True, type=date.fromisoformat,
                        help='Cutoff date (YYYY-MM-DD), exclusive')
    parser.add_argument('--category', choices=[c.value for c in FileCategory],
                        help='Only purge this category')
    parser.add_argument('--delete', action='store_true',
                        help='Actually delete (default is a dry run)')
    parser.add_argument('--yes', '-y', action='store_true',
                        help='Skip confirmation prompt (non-interactive mode)')
    args = parser.parse_args()

    configure_logging("purge-objects", settings.log_level)

    if args.delete and not args.yes:
        confirm = input(f"Delete objects in bucket '{settings.s3_bucket}' uploaded before {args.before}? (yes/no): ")
        if confirm.lower() != 'yes':
            print("Aborted.")
            sys.exit(0)

    category = FileCategory(args.category) if args.category else None
    try:
        selected, deleted, failed = asyncio.run(
            purge(ObjectStorageClient(), args.before, category, args.delete)
        )
    except StorageError as e:
        logger.error(f"Purge failed: {e}")
        sys.exit(1)

    logger.info(f"Selected: {selected}, deleted: {deleted}, failed: {failed}")
    if failed:
        sys.exit(1)


if __name__ == '__main__':
    main()
