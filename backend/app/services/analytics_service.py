"""
Analytics service: the per-object accounting ledger.

Counters are updated with a single UPDATE ... SET col = col + n statement,
so concurrent reads of the same object never lose increments.
Each operation opens its own short-lived session; accounting writes for a
stream happen after the request handler has returned.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.file_analytics import FileAnalytics

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Durable usage counters keyed by object key."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            session_factory: Factory producing AsyncSession instances
            logger: Logger to use (default: module logger)
        """
        self._session_factory = session_factory
        self._logger = logger or logging.getLogger(__name__)

    async def record_upload(
        self,
        object_key: str,
        original_name: str,
        mimetype: str,
        size: int,
    ) -> FileAnalytics:
        """
        Create the accounting row for a freshly stored object.

        Args:
            object_key: Storage key of the object
            original_name: Filename declared by the uploader
            mimetype: Sniffed MIME type
            size: Size in bytes

        Returns:
            The created FileAnalytics record
        """
        record = FileAnalytics(
            object_key=object_key,
            original_name=original_name,
            mimetype=mimetype,
            size=size,
            download_count=0,
            bandwidth_usage=0,
        )
        async with self._session_factory() as db:
            db.add(record)
            await db.commit()
            await db.refresh(record)

        self._logger.info(f"Tracked upload: {object_key}")
        return record

    async def record_access(self, object_key: str, bytes_transferred: int) -> bool:
        """
        Atomically count one read of an object.

        Increments download_count by 1, bandwidth_usage by bytes_transferred
        and sets last_access_time to now.

        Args:
            object_key: Storage key of the object
            bytes_transferred: Bytes served by this read

        Returns:
            True if a record was updated, False if the key is unknown
        """
        if bytes_transferred < 0:
            raise ValueError("bytes_transferred cannot be negative")

        async with self._session_factory() as db:
            result = await db.execute(
                update(FileAnalytics)
                .where(FileAnalytics.object_key == object_key)
                .values(
                    download_count=FileAnalytics.download_count + 1,
                    bandwidth_usage=FileAnalytics.bandwidth_usage + bytes_transferred,
                    last_access_time=datetime.now(timezone.utc),
                )
            )
            await db.commit()

        if result.rowcount == 0:
            self._logger.warning(f"Analytics record not found for: {object_key}")
            return False

        self._logger.debug(f"Tracked download: {object_key} ({bytes_transferred} bytes)")
        return True

    async def get_record(self, object_key: str) -> Optional[FileAnalytics]:
        """Get the accounting record for a key, or None."""
        async with self._session_factory() as db:
            result = await db.execute(
                select(FileAnalytics).where(FileAnalytics.object_key == object_key)
            )
            return result.scalar_one_or_none()

    async def get_overview(self) -> dict:
        """
        Totals across all recorded objects.

        Returns:
            Dict with totalFiles, totalSize and totalBandwidth
        """
        async with self._session_factory() as db:
            result = await db.execute(
                select(
                    func.count(FileAnalytics.id),
                    func.coalesce(func.sum(FileAnalytics.size), 0),
                    func.coalesce(func.sum(FileAnalytics.bandwidth_usage), 0),
                )
            )
            total_files, total_size, total_bandwidth = result.one()

        return {
            "totalFiles": int(total_files),
            "totalSize": int(total_size),
            "totalBandwidth": int(total_bandwidth),
        }

    async def get_top_downloads(self, limit: int = 5) -> List[FileAnalytics]:
        """Records with the highest download counts, most downloaded first."""
        async with self._session_factory() as db:
            result = await db.execute(
                select(FileAnalytics)
                .order_by(FileAnalytics.download_count.desc(), FileAnalytics.id)
                .limit(limit)
            )
            return list(result.scalars().all())

    async def get_storage_by_mimetype(self) -> List[dict]:
        """Total stored bytes per MIME type."""
        async with self._session_factory() as db:
            result = await db.execute(
                select(
                    FileAnalytics.mimetype,
                    func.sum(FileAnalytics.size).label("total_size"),
                )
                .group_by(FileAnalytics.mimetype)
                .order_by(FileAnalytics.mimetype)
            )
            rows = result.all()

        return [
            {"mimetype": mimetype, "totalSize": int(total_size or 0)}
            for mimetype, total_size in rows
        ]
